"""
Tent data functions.
Tents are plain dicts inside the shared document:
{id, x, y, state, price} with x, y relative to the map bounding box.

All functions here are pure: they take the current tents sequence and
return a new one, never mutating their input.
"""

import math
from typing import Dict, List, Optional, Tuple


# =============================================================================
# CONSTANTS
# =============================================================================

TENT_AVAILABLE = 'available'
TENT_PENDING = 'pending'
TENT_OCCUPIED = 'occupied'
TENT_BLOCKED = 'blocked'

TENT_STATES = (TENT_AVAILABLE, TENT_PENDING, TENT_OCCUPIED, TENT_BLOCKED)

# Short codes written by the first version of the map client
LEGACY_STATE_CODES = {
    'av': TENT_AVAILABLE,
    'pr': TENT_PENDING,
    'oc': TENT_OCCUPIED,
    'bl': TENT_BLOCKED,
}


# =============================================================================
# HELPERS
# =============================================================================

def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def normalize_state(state: Optional[str]) -> Optional[str]:
    """
    Map a tent state (long name or legacy short code) to its long name.

    Returns:
        One of TENT_STATES, or None if the value is unknown
    """
    if state in TENT_STATES:
        return state
    return LEGACY_STATE_CODES.get(state)


def normalize_tents(tents: Optional[list]) -> List[Dict]:
    """
    Copy a tents sequence with legacy state codes replaced.
    Unknown states are kept as-is so an admin can still see and fix them.
    """
    result = []
    for tent in tents or []:
        tent = dict(tent)
        tent['state'] = normalize_state(tent.get('state')) or tent.get('state')
        result.append(tent)
    return result


def find_tent(tents: list, tent_id: int) -> Optional[Dict]:
    """Find a tent by id."""
    for tent in tents or []:
        if tent.get('id') == tent_id:
            return tent
    return None


def _replace_tent(tents: list, tent_id: int, **changes) -> List[Dict]:
    if find_tent(tents, tent_id) is None:
        raise KeyError(f'Tent {tent_id} not found')
    return [
        {**tent, **changes} if tent.get('id') == tent_id else tent
        for tent in tents
    ]


# =============================================================================
# GRID
# =============================================================================

def make_grid(n: int = 20) -> List[Dict]:
    """
    Lay out n tents on a near-square grid of relative positions.

    Pure function of n: ids are 1..n, each tent sits at the centre of its
    grid cell, every tent starts available with price 0.

    Args:
        n: Number of tents (>= 1)

    Returns:
        List of tent dicts
    """
    if n < 1:
        raise ValueError('Tent count must be at least 1')

    cols = math.ceil(math.sqrt(n))
    rows = math.ceil(n / cols)
    tents = []
    tent_id = 1
    for r in range(rows):
        for c in range(cols):
            if tent_id > n:
                break
            tents.append({
                'id': tent_id,
                'x': (c + 0.5) / cols,
                'y': (r + 0.5) / rows,
                'state': TENT_AVAILABLE,
                'price': 0,
            })
            tent_id += 1
    return tents


# =============================================================================
# POSITIONING
# =============================================================================

def position_from_pointer(pointer_x: float, pointer_y: float,
                          rect: Tuple[float, float, float, float]) -> Tuple[float, float]:
    """
    Convert a pointer position into map-relative coordinates.

    Args:
        pointer_x: Pointer x in screen units
        pointer_y: Pointer y in screen units
        rect: Map bounding box as (left, top, width, height)

    Returns:
        (x, y), each clamped into [0, 1]
    """
    left, top, width, height = rect
    if width <= 0 or height <= 0:
        raise ValueError('Map bounding box must have a positive size')
    return (
        clamp((pointer_x - left) / width, 0.0, 1.0),
        clamp((pointer_y - top) / height, 0.0, 1.0),
    )


def move_tent(tents: list, tent_id: int, x: float, y: float) -> List[Dict]:
    """Return tents with tent_id moved to (x, y), clamped into the map."""
    return _replace_tent(tents, tent_id, x=clamp(float(x), 0.0, 1.0), y=clamp(float(y), 0.0, 1.0))


# =============================================================================
# STATE & PRICE
# =============================================================================

def set_tent_state(tents: list, tent_id: int, state: str) -> List[Dict]:
    """
    Return tents with tent_id set to state.
    No reservation bookkeeping is applied (admin override).
    """
    normalized = normalize_state(state)
    if normalized is None:
        raise ValueError(f'Estado de toldo inválido: {state}')
    return _replace_tent(tents, tent_id, state=normalized)


def set_tent_price(tents: list, tent_id: int, price: float) -> List[Dict]:
    """Return tents with tent_id priced at price (>= 0)."""
    price = float(price)
    if not math.isfinite(price) or price < 0:
        raise ValueError('El precio debe ser un número mayor o igual a 0')
    return _replace_tent(tents, tent_id, price=price)


def count_by_state(tents: list) -> Dict[str, int]:
    """Count tents per state (legacy codes normalized)."""
    counts = {state: 0 for state in TENT_STATES}
    for tent in normalize_tents(tents):
        if tent['state'] in counts:
            counts[tent['state']] += 1
    return counts
