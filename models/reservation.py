"""
Reservation hold lifecycle.

A reservation holds a tent for a fixed window while the customer pays
through an external channel:

    reserve()  : tent available -> pending, reservation pending
    expire_holds(): pending reservation past expiresAt -> expired,
                    its tent pending -> available
    confirm_reservation(): pending -> confirmed, tent -> occupied

Every operation is a pure function of the current document and returns a
patch ({'tents': [...], 'reservations': [...]}) to be sent through the
merge path as one write. Expired reservations stay in the sequence with
status 'expired'.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from models.tent import (
    TENT_AVAILABLE, TENT_PENDING, TENT_OCCUPIED,
    find_tent, normalize_tents
)
from utils.datetime_helpers import get_now, to_iso, parse_iso, add_minutes, epoch_millis

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

HOLD_MINUTES = 15

RESERVATION_PENDING = 'pending'
RESERVATION_CONFIRMED = 'confirmed'
RESERVATION_EXPIRED = 'expired'

RESERVATION_STATUSES = (RESERVATION_PENDING, RESERVATION_CONFIRMED, RESERVATION_EXPIRED)


class ReservationError(ValueError):
    """
    Rejected reservation operation.

    Attributes:
        code: Message key in utils.messages
    """

    def __init__(self, code: str, detail: str = ''):
        super().__init__(detail or code)
        self.code = code


# =============================================================================
# QUERIES
# =============================================================================

def reservation_status(reservation: dict) -> str:
    """Status of a reservation. Records without one predate statuses and are pending."""
    return reservation.get('status') or RESERVATION_PENDING


def is_hold_expired(reservation: dict, now: datetime) -> bool:
    """True if the reservation is pending and its hold window has elapsed."""
    if reservation_status(reservation) != RESERVATION_PENDING:
        return False
    expires_at = reservation.get('expiresAt')
    if not expires_at:
        return True
    try:
        return parse_iso(expires_at) <= now
    except (TypeError, ValueError, AttributeError):
        logger.warning(f"Reservation {reservation.get('id')} has unparseable expiresAt {expires_at!r}")
        return True


def pending_reservations(reservations: list, tent_id: int = None) -> List[Dict]:
    """Pending reservations, optionally restricted to one tent."""
    return [
        r for r in reservations or []
        if reservation_status(r) == RESERVATION_PENDING
        and (tent_id is None or r.get('tentId') == tent_id)
    ]


def find_reservation(reservations: list, reservation_id: str) -> Optional[Dict]:
    """Find a reservation by id."""
    for reservation in reservations or []:
        if reservation.get('id') == reservation_id:
            return reservation
    return None


# =============================================================================
# TRANSITIONS
# =============================================================================

def _expire(reservation: dict, now: datetime) -> dict:
    return {**reservation, 'status': RESERVATION_EXPIRED, 'expiredAt': to_iso(now)}


def build_reservation(tent_id: int, now: datetime, hold_minutes: int = HOLD_MINUTES,
                      existing_ids=()) -> dict:
    """
    Build a new pending reservation for tent_id.

    The id is derived from the tent id and the creation time in
    milliseconds; a numeric suffix is added if that id is already taken.
    """
    base_id = f'{tent_id}-{epoch_millis(now)}'
    reservation_id = base_id
    suffix = 1
    while reservation_id in existing_ids:
        reservation_id = f'{base_id}-{suffix}'
        suffix += 1

    return {
        'id': reservation_id,
        'tentId': tent_id,
        'createdAt': to_iso(now),
        'expiresAt': to_iso(add_minutes(now, hold_minutes)),
        'status': RESERVATION_PENDING,
    }


def reserve(state: dict, tent_id: int, now: datetime = None,
            hold_minutes: int = HOLD_MINUTES) -> Tuple[dict, dict]:
    """
    Hold an available tent.

    Any pending reservation still pointing at the tent (left behind when an
    admin released it by hand) is marked expired in the same patch, so at
    most one pending reservation references a tent.

    Args:
        state: Current shared document
        tent_id: Tent to reserve
        now: Evaluation time (defaults to current UTC time)
        hold_minutes: Hold window length

    Returns:
        Tuple of (patch, new reservation)

    Raises:
        ReservationError: tent_not_found, tent_unavailable
    """
    now = now or get_now()
    tents = normalize_tents(state.get('tents'))
    tent = find_tent(tents, tent_id)
    if tent is None:
        raise ReservationError('tent_not_found', f'Tent {tent_id} not found')
    if tent['state'] != TENT_AVAILABLE:
        raise ReservationError('tent_unavailable', f"Tent {tent_id} is {tent['state']}")

    reservations = [
        _expire(r, now)
        if r.get('tentId') == tent_id and reservation_status(r) == RESERVATION_PENDING else r
        for r in state.get('reservations') or []
    ]
    reservation = build_reservation(
        tent_id, now, hold_minutes,
        existing_ids={r.get('id') for r in reservations}
    )
    reservations.append(reservation)

    tents = [
        {**t, 'state': TENT_PENDING} if t['id'] == tent_id else t
        for t in tents
    ]
    return {'tents': tents, 'reservations': reservations}, reservation


def expire_holds(state: dict, now: datetime = None) -> Optional[dict]:
    """
    Expire pending reservations whose hold has elapsed.

    A tent is released (pending -> available) only if it is still pending;
    a tent an admin moved to another state keeps that state.

    Returns:
        Patch with tents and reservations, or None if nothing expired
    """
    now = now or get_now()
    reservations = state.get('reservations') or []
    expired_tent_ids = set()
    updated = []
    for reservation in reservations:
        if is_hold_expired(reservation, now):
            expired_tent_ids.add(reservation.get('tentId'))
            updated.append(_expire(reservation, now))
        else:
            updated.append(reservation)

    if not expired_tent_ids:
        return None

    tents = [
        {**t, 'state': TENT_AVAILABLE}
        if t.get('id') in expired_tent_ids and t['state'] == TENT_PENDING else t
        for t in normalize_tents(state.get('tents'))
    ]
    logger.info(f'Expired holds on tents {sorted(expired_tent_ids)}')
    return {'tents': tents, 'reservations': updated}


def confirm_reservation(state: dict, reservation_id: str, now: datetime = None) -> dict:
    """
    Confirm a pending reservation after payment.
    The tent becomes occupied if it is still pending.

    Raises:
        ReservationError: reservation_not_found, reservation_not_pending,
            reservation_expired
    """
    now = now or get_now()
    reservation = find_reservation(state.get('reservations'), reservation_id)
    if reservation is None:
        raise ReservationError('reservation_not_found')
    if reservation_status(reservation) != RESERVATION_PENDING:
        raise ReservationError('reservation_not_pending')
    if is_hold_expired(reservation, now):
        raise ReservationError('reservation_expired')

    reservations = [
        {**r, 'status': RESERVATION_CONFIRMED, 'confirmedAt': to_iso(now)}
        if r.get('id') == reservation_id else r
        for r in state.get('reservations') or []
    ]
    tents = [
        {**t, 'state': TENT_OCCUPIED}
        if t.get('id') == reservation.get('tentId') and t['state'] == TENT_PENDING else t
        for t in normalize_tents(state.get('tents'))
    ]
    return {'tents': tents, 'reservations': reservations}


def cascade_expire(reservations: list, now: datetime = None) -> List[Dict]:
    """Mark every pending reservation expired (used when the grid is recreated)."""
    now = now or get_now()
    return [
        _expire(r, now) if reservation_status(r) == RESERVATION_PENDING else r
        for r in reservations or []
    ]


# =============================================================================
# PUBLIC WRITE CHECK
# =============================================================================

def _without_state(tent: dict) -> dict:
    return {key: value for key, value in tent.items() if key != 'state'}


def is_bookkeeping_change(state: dict, patch: dict) -> bool:
    """
    True if the tents in patch differ from the stored ones only the way
    reserve() and expire_holds() change them.

    Allowed per tent:
        available -> pending, with a new pending reservation for it
        pending -> available, with one of its pending reservations expired

    Any other difference (tents added or removed, price, position, other
    states) is an admin operation.
    """
    try:
        return _changes_tents_as_bookkeeping(state, patch)
    except TypeError:
        # Unhashable ids
        return False


def _changes_tents_as_bookkeeping(state: dict, patch: dict) -> bool:
    if 'tents' not in patch:
        return True
    new_tents = patch['tents']
    if not isinstance(new_tents, list) or not all(isinstance(t, dict) for t in new_tents):
        return False

    before = {t.get('id'): t for t in normalize_tents(state.get('tents'))}
    after = {t.get('id'): t for t in normalize_tents(new_tents)}
    if len(after) != len(new_tents) or set(after) != set(before):
        return False

    old_reservations = {r.get('id'): r for r in state.get('reservations') or [] if isinstance(r, dict)}
    new_reservations = patch.get('reservations', state.get('reservations'))
    if not isinstance(new_reservations, list):
        new_reservations = []
    new_reservations = [r for r in new_reservations if isinstance(r, dict)]

    for tent_id, tent in after.items():
        old = before[tent_id]
        if _without_state(tent) != _without_state(old):
            return False
        if tent['state'] == old['state']:
            continue

        if old['state'] == TENT_AVAILABLE and tent['state'] == TENT_PENDING:
            allowed = any(
                r.get('tentId') == tent_id
                and reservation_status(r) == RESERVATION_PENDING
                and r.get('id') not in old_reservations
                for r in new_reservations
            )
        elif old['state'] == TENT_PENDING and tent['state'] == TENT_AVAILABLE:
            allowed = any(
                r.get('tentId') == tent_id
                and reservation_status(r) == RESERVATION_EXPIRED
                and r.get('id') in old_reservations
                and reservation_status(old_reservations[r.get('id')]) == RESERVATION_PENDING
                for r in new_reservations
            )
        else:
            allowed = False

        if not allowed:
            return False
    return True
