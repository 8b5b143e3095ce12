"""
Authentication routes: admin PIN login and logout.
A successful login opens a Flask-Login session; admin-only writes check it.
"""

from flask import current_app, Blueprint
from flask_login import login_user, logout_user, login_required, current_user
from flask_wtf.csrf import generate_csrf

from blueprints.auth.forms import PinLoginForm
from database import KVError
from models.admin import AdminUser, verify_pin
from models.shared_state import get_state
from utils.api_response import api_success, api_error
from utils.messages import MESSAGES

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/csrf-token', methods=['GET'])
def csrf_token():
    """Issue a CSRF token for JSON clients (send it back as X-CSRFToken)."""
    return api_success(data={'csrfToken': generate_csrf()})


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Admin login with a PIN.

    Request JSON or form:
        {"pin": "1234"}
    """
    if current_user.is_authenticated:
        return api_success(message=MESSAGES['login_success'])

    form = PinLoginForm()
    if not form.validate_on_submit():
        errors = [e for field_errors in form.errors.values() for e in field_errors]
        return api_error(errors[0] if errors else MESSAGES['invalid_request'], 400)

    pin_hash = current_app.config.get('ADMIN_PIN_HASH')
    state = None
    if not pin_hash:
        try:
            state = get_state()
        except KVError as e:
            current_app.logger.warning(f'Could not read admin PIN from store: {e}')
            return api_error(MESSAGES['store_unavailable'], 503)

    if not verify_pin(form.pin.data, state, pin_hash):
        current_app.logger.warning('Admin login rejected: invalid PIN')
        return api_error(MESSAGES['invalid_pin'], 401)

    login_user(AdminUser())
    current_app.logger.info('Admin logged in')
    return api_success(message=MESSAGES['login_success'])


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """Logout the admin session."""
    logout_user()
    return api_success(message=MESSAGES['logout_success'])
