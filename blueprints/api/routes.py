"""
API routes for JSON endpoints.
Public venue state, tent holds and checkout summaries.
"""

from flask import current_app, Blueprint, jsonify

from database import KVError
from models.reservation import ReservationError, reserve, expire_holds, pending_reservations
from models.shared_state import get_state, get_revision, mutate_state, redact
from models.checkout import build_checkout
from models.tent import normalize_tents, count_by_state
from utils.api_response import api_success, api_error
from utils.decorators import json_body_required
from utils.messages import MESSAGES, get_message

api_bp = Blueprint('api', __name__)


@api_bp.route('/health')
def health_check():
    """
    Health check endpoint (no authentication required).

    Returns:
        JSON with status and version
    """
    return jsonify({
        'status': 'ok',
        'version': current_app.config.get('APP_VERSION', '1.0.0'),
        'app': 'Coral Club Tent Reservations'
    })


@api_bp.route('/state')
def api_state():
    """
    Get the shared document (admin secret removed) and its revision.

    Returns:
        JSON with state, rev and per-state tent counts
    """
    try:
        state = get_state() or {}
        rev = get_revision()
    except KVError as e:
        current_app.logger.warning(f'Error reading state: {e}')
        return api_error(MESSAGES['store_unavailable'], 503)

    state = redact(state)
    state['tents'] = normalize_tents(state.get('tents'))
    return api_success(data=state, rev=rev, counts=count_by_state(state['tents']))


@api_bp.route('/tents/<int:tent_id>/reserve', methods=['POST'])
def api_reserve(tent_id):
    """
    Hold an available tent for the configured window.

    Response JSON:
    {
        "success": true,
        "data": {"id": "3-1700000000000", "tentId": 3, "status": "pending", ...},
        "rev": 12
    }
    """
    hold_minutes = current_app.config.get('HOLD_MINUTES', 15)
    created = {}

    def build_patch(state):
        patch, reservation = reserve(state, tent_id, hold_minutes=hold_minutes)
        created['reservation'] = reservation
        return patch

    try:
        _, rev = mutate_state(build_patch, get_message('log_reserve', tent_id=tent_id))
    except ReservationError as e:
        status = 404 if e.code == 'tent_not_found' else 409
        return api_error(MESSAGES[e.code], status)
    except KVError as e:
        current_app.logger.warning(f'Error reserving tent {tent_id}: {e}')
        return api_error(MESSAGES['store_unavailable'], 503)

    current_app.logger.info(f"Tent {tent_id} held by reservation {created['reservation']['id']}")
    return api_success(
        data=created['reservation'],
        message=get_message('reservation_created', tent_id=tent_id, minutes=hold_minutes),
        rev=rev
    )


@api_bp.route('/reservations/expire', methods=['POST'])
def api_expire_holds():
    """
    Run the hold expiry sweep against the stored document.

    Response JSON:
        {"success": true, "data": {"expired": int}, "rev": int|null}
    """
    expired = {'count': 0}

    def build_patch(state):
        patch = expire_holds(state)
        if patch:
            expired['count'] = (
                len(pending_reservations(state.get('reservations')))
                - len(pending_reservations(patch['reservations']))
            )
        return patch

    try:
        _, rev = mutate_state(build_patch, MESSAGES['log_expire'])
    except KVError as e:
        current_app.logger.warning(f'Error expiring holds: {e}')
        return api_error(MESSAGES['store_unavailable'], 503)

    return api_success(data={'expired': expired['count']}, rev=rev)


@api_bp.route('/checkout', methods=['POST'])
@json_body_required
def api_checkout(data):
    """
    Build the cart summary and WhatsApp payment link.

    Request JSON:
    {
        "tentId": int (optional),
        "extras": [{"id": str, "qty": int}, ...] (optional)
    }
    """
    try:
        state = get_state() or {}
    except KVError as e:
        current_app.logger.warning(f'Error reading state for checkout: {e}')
        return api_error(MESSAGES['store_unavailable'], 503)

    try:
        summary = build_checkout(state, data.get('tentId'), data.get('extras'))
    except KeyError:
        return api_error(MESSAGES['not_found'], 404)
    except (TypeError, ValueError) as e:
        return api_error(str(e), 400)

    return api_success(data=summary)
