"""
Flask extensions initialization.
Extensions are initialized here and then initialized with the app in app.py.
"""

from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect

# Initialize Flask-Login
login_manager = LoginManager()

# Initialize CSRF Protection
csrf = CSRFProtect()


@login_manager.user_loader
def load_user(user_id):
    """
    Load the admin identity for Flask-Login.

    Args:
        user_id: The user ID stored in the session

    Returns:
        AdminUser or None
    """
    from models.admin import AdminUser, ADMIN_USER_ID

    if user_id == ADMIN_USER_ID:
        return AdminUser()
    return None


@login_manager.unauthorized_handler
def unauthorized():
    """Answer JSON 401 instead of redirecting to a login page."""
    from utils.api_response import api_error
    from utils.messages import MESSAGES

    return api_error(MESSAGES['unauthorized'], 401)
