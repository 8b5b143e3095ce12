"""
Admin routes: map layout, pricing, payments, PIN and tent states.
Every operation builds a patch against the freshly read document and
writes it through the merge path, together with a log entry.
"""

from flask import current_app, Blueprint
from flask_login import login_required

from database import KVError
from models.reservation import ReservationError, confirm_reservation
from models.shared_state import mutate_state, ensure_seeded, redact
from models.tent import set_tent_state, set_tent_price, move_tent, normalize_tents
from models.venue import (
    toggle_edit_mode, recreate_grid, set_background, update_payments,
    change_admin_pin, touch, upsert_category, remove_category,
    upsert_extra, remove_extra
)
from utils.api_response import api_success, api_error
from utils.decorators import json_body_required
from utils.messages import MESSAGES, get_message

admin_bp = Blueprint('admin', __name__)


def _apply(build_patch, log_message: str):
    """
    Run an admin mutation and translate failures into JSON errors.

    Args:
        build_patch: Callable receiving the current document, returning a patch
        log_message: Event recorded in the document's logs

    Returns:
        Flask response tuple
    """
    try:
        state, rev = mutate_state(build_patch, log_message)
    except ReservationError as e:
        status = 404 if e.code.endswith('not_found') else 409
        return api_error(MESSAGES[e.code], status)
    except KeyError:
        return api_error(MESSAGES['not_found'], 404)
    except (TypeError, ValueError) as e:
        return api_error(str(e), 400)
    except KVError as e:
        current_app.logger.warning(f'Admin update failed: {e}')
        return api_error(MESSAGES['store_unavailable'], 503)

    current_app.logger.info(f'Admin: {log_message} (rev={rev})')
    return api_success(data=redact(state), message=MESSAGES['state_updated'], rev=rev)


def _with_normalized_tents(func):
    def build(state):
        return func({**state, 'tents': normalize_tents(state.get('tents'))})
    return build


# =============================================================================
# DOCUMENT
# =============================================================================

@admin_bp.route('/seed', methods=['POST'])
@login_required
def seed():
    """Write the default document if the store holds none."""
    try:
        state, rev, created = ensure_seeded()
    except KVError as e:
        current_app.logger.warning(f'Seeding failed: {e}')
        return api_error(MESSAGES['store_unavailable'], 503)

    message = MESSAGES['state_seeded'] if created else None
    return api_success(data=redact(state), message=message, rev=rev, created=created)


@admin_bp.route('/refresh', methods=['POST'])
@login_required
def refresh():
    """Bump the revision so every client reloads the document."""
    return _apply(lambda state: touch(), MESSAGES['log_refresh'])


# =============================================================================
# LAYOUT
# =============================================================================

@admin_bp.route('/layout/edit', methods=['POST'])
@login_required
def toggle_edit():
    """Toggle tent drag editing."""
    return _apply(toggle_edit_mode, MESSAGES['log_toggle_edit'])


@admin_bp.route('/layout/grid', methods=['POST'])
@login_required
@json_body_required
def grid(data):
    """
    Recreate the tent grid.

    Request JSON:
        {"count": int}
    """
    max_count = current_app.config.get('MAX_TENT_COUNT', 500)
    count = data.get('count')
    return _apply(
        lambda state: recreate_grid(state, count, max_count=max_count),
        get_message('log_recreate_grid', count=count)
    )


@admin_bp.route('/background', methods=['POST'])
@login_required
@json_body_required
def background(data):
    """
    Change the map background image.

    Request JSON:
        {"publicPath": str}
    """
    public_path = data.get('publicPath')
    if not public_path:
        return api_error(MESSAGES['invalid_request'], 400)
    return _apply(lambda state: set_background(state, public_path), MESSAGES['log_background'])


# =============================================================================
# TENTS
# =============================================================================

@admin_bp.route('/tents/<int:tent_id>/state', methods=['POST'])
@login_required
@json_body_required
def tent_state(tent_id, data):
    """
    Set a tent's state regardless of reservation bookkeeping.

    Request JSON:
        {"state": "available" | "pending" | "occupied" | "blocked"}
    """
    new_state = data.get('state')
    return _apply(
        _with_normalized_tents(lambda state: {'tents': set_tent_state(state['tents'], tent_id, new_state)}),
        get_message('log_tent_state', tent_id=tent_id)
    )


@admin_bp.route('/tents/<int:tent_id>/price', methods=['POST'])
@login_required
@json_body_required
def tent_price(tent_id, data):
    """
    Set a tent's price.

    Request JSON:
        {"price": number >= 0}
    """
    price = data.get('price')
    return _apply(
        _with_normalized_tents(lambda state: {'tents': set_tent_price(state['tents'], tent_id, price)}),
        get_message('log_tent_price', tent_id=tent_id)
    )


@admin_bp.route('/tents/<int:tent_id>/position', methods=['POST'])
@login_required
@json_body_required
def tent_position(tent_id, data):
    """
    Persist a tent's final position after a drag.

    Request JSON:
        {"x": float, "y": float}  (clamped into [0, 1])
    """
    x, y = data.get('x'), data.get('y')
    return _apply(
        _with_normalized_tents(lambda state: {'tents': move_tent(state['tents'], tent_id, x, y)}),
        get_message('log_move_tent', tent_id=tent_id)
    )


# =============================================================================
# RESERVATIONS
# =============================================================================

@admin_bp.route('/reservations/<reservation_id>/confirm', methods=['POST'])
@login_required
def confirm(reservation_id):
    """Confirm a pending reservation once payment is received."""
    return _apply(
        lambda state: confirm_reservation(state, reservation_id),
        get_message('log_confirm', reservation_id=reservation_id)
    )


# =============================================================================
# PAYMENTS & SECURITY
# =============================================================================

@admin_bp.route('/payments', methods=['POST'])
@login_required
@json_body_required
def payments(data):
    """
    Update payment settings.

    Request JSON (any subset):
        {"currency": str, "usdToVES": number, "whatsappNumber": str,
         "countryCode": str, "pagoMovil": object, "zelle": object}
    """
    return _apply(lambda state: update_payments(state, data), MESSAGES['log_payments'])


@admin_bp.route('/security/pin', methods=['POST'])
@login_required
@json_body_required
def pin(data):
    """
    Change the admin PIN stored in the document.

    Request JSON:
        {"pin": "4-8 digits"}
    """
    new_pin = data.get('pin')
    return _apply(lambda state: change_admin_pin(state, new_pin), MESSAGES['log_pin'])


# =============================================================================
# EXTRAS CATALOG
# =============================================================================

@admin_bp.route('/categories', methods=['POST'])
@login_required
@json_body_required
def category_upsert(data):
    """
    Create or rename an extras category.

    Request JSON:
        {"id": str, "name": str}
    """
    return _apply(
        lambda state: upsert_category(state, data.get('id'), data.get('name')),
        MESSAGES['log_categories']
    )


@admin_bp.route('/categories/<category_id>', methods=['DELETE'])
@login_required
def category_delete(category_id):
    """Delete an extras category."""
    return _apply(lambda state: remove_category(state, category_id), MESSAGES['log_categories'])


@admin_bp.route('/categories/<category_id>/items', methods=['POST'])
@login_required
@json_body_required
def extra_upsert(category_id, data):
    """
    Create or replace an extra.

    Request JSON:
        {"id": str, "name": str, "price": number, "image": str}
    """
    return _apply(lambda state: upsert_extra(state, category_id, data), MESSAGES['log_categories'])


@admin_bp.route('/categories/<category_id>/items/<item_id>', methods=['DELETE'])
@login_required
def extra_delete(category_id, item_id):
    """Delete an extra."""
    return _apply(lambda state: remove_extra(state, category_id, item_id), MESSAGES['log_categories'])
