"""
Admin patch builders for venue settings.

Each function takes the current shared document and returns a patch.
Nested objects (layout, payments, background, security) are merged
locally against their current value before being sent, because the
store-side merge replaces whole top-level keys.
"""

from datetime import datetime
from typing import Dict, List

from models.tent import make_grid
from models.reservation import cascade_expire
from utils.datetime_helpers import get_now, epoch_millis
from utils.validators import (
    validate_pin, validate_price, validate_currency, validate_country_code,
    parse_tent_count, sanitize_input
)


# =============================================================================
# LAYOUT & BACKGROUND
# =============================================================================

def toggle_edit_mode(state: dict) -> dict:
    """Flip the layout edit flag (enables tent dragging)."""
    layout = dict(state.get('layout') or {})
    layout['edit'] = not layout.get('edit', False)
    return {'layout': layout}


def recreate_grid(state: dict, count, now: datetime = None, max_count: int = 500) -> dict:
    """
    Replace every tent with a fresh grid.

    Pending reservations refer to tents that no longer exist once the grid
    is rebuilt, so they are all marked expired in the same patch.

    Args:
        state: Current shared document
        count: Requested tent count (clamped into [1, max_count])
        now: Evaluation time
        max_count: Upper bound for count

    Returns:
        Patch with tents, layout and reservations
    """
    layout = dict(state.get('layout') or {})
    count = parse_tent_count(count, default=layout.get('count') or 20, max_count=max_count)
    layout['count'] = count
    return {
        'tents': make_grid(count),
        'layout': layout,
        'reservations': cascade_expire(state.get('reservations'), now),
    }


def set_background(state: dict, public_path: str) -> dict:
    """Point the map at another background image."""
    background = dict(state.get('background') or {})
    background['publicPath'] = sanitize_input(public_path, max_length=500)
    return {'background': background}


def touch(now: datetime = None) -> dict:
    """Patch that only bumps the revision, forcing every client to reload."""
    return {'__touch': epoch_millis(now or get_now())}


# =============================================================================
# PAYMENTS & SECURITY
# =============================================================================

PAYMENT_METHOD_KEYS = ('pagoMovil', 'zelle')


def update_payments(state: dict, changes: dict) -> dict:
    """
    Apply payment setting changes on top of the current payments object.

    Supported keys: currency, usdToVES, whatsappNumber, countryCode and the
    payment method sub-records (pagoMovil, zelle).

    Raises:
        ValueError: on an unknown key or invalid value
    """
    payments = dict(state.get('payments') or {})
    for key, value in (changes or {}).items():
        if key == 'currency':
            if not validate_currency(value):
                raise ValueError('Moneda inválida')
            payments['currency'] = value.upper()
        elif key == 'usdToVES':
            if not validate_price(value):
                raise ValueError('La tasa debe ser un número mayor o igual a 0')
            payments['usdToVES'] = float(value)
        elif key == 'whatsappNumber':
            payments['whatsappNumber'] = sanitize_input(str(value or ''), max_length=20)
        elif key == 'countryCode':
            if not validate_country_code(value):
                raise ValueError('Código de país inválido')
            payments['countryCode'] = value.strip()
        elif key in PAYMENT_METHOD_KEYS:
            if value is not None and not isinstance(value, dict):
                raise ValueError(f'{key} debe ser un objeto')
            payments[key] = value
        else:
            raise ValueError(f'Campo de pago desconocido: {key}')
    return {'payments': payments}


def change_admin_pin(state: dict, pin: str) -> dict:
    """
    Replace the admin PIN stored in the document.

    Raises:
        ValueError: if the PIN is not 4 to 8 digits
    """
    pin = (pin or '').strip()
    is_valid, error = validate_pin(pin)
    if not is_valid:
        raise ValueError(error)
    security = dict(state.get('security') or {})
    security['adminPin'] = pin
    return {'security': security}


# =============================================================================
# EXTRAS CATALOG
# =============================================================================

def _categories(state: dict) -> List[Dict]:
    return [dict(c, items=list(c.get('items') or [])) for c in state.get('categories') or []]


def upsert_category(state: dict, category_id: str, name: str) -> dict:
    """Create or rename an extras category."""
    name = sanitize_input(name, max_length=100)
    if not category_id or not name:
        raise ValueError('La categoría requiere id y nombre')

    categories = _categories(state)
    for category in categories:
        if category['id'] == category_id:
            category['name'] = name
            break
    else:
        categories.append({'id': category_id, 'name': name, 'items': []})
    return {'categories': categories}


def remove_category(state: dict, category_id: str) -> dict:
    """Delete an extras category and its items."""
    categories = [c for c in _categories(state) if c['id'] != category_id]
    if len(categories) == len(state.get('categories') or []):
        raise KeyError(f'Category {category_id} not found')
    return {'categories': categories}


def upsert_extra(state: dict, category_id: str, item: dict) -> dict:
    """
    Create or replace a purchasable extra inside a category.

    Args:
        state: Current shared document
        category_id: Owning category
        item: {id, name, price, image}

    Raises:
        KeyError: unknown category
        ValueError: invalid item
    """
    item_id = item.get('id')
    name = sanitize_input(item.get('name') or '', max_length=100)
    if not item_id or not name:
        raise ValueError('El extra requiere id y nombre')
    if not validate_price(item.get('price', 0)):
        raise ValueError('El precio debe ser un número mayor o igual a 0')

    extra = {
        'id': item_id,
        'name': name,
        'price': float(item.get('price', 0)),
        'image': sanitize_input(item.get('image') or '', max_length=500),
    }

    categories = _categories(state)
    for category in categories:
        if category['id'] == category_id:
            category['items'] = [i for i in category['items'] if i.get('id') != item_id] + [extra]
            return {'categories': categories}
    raise KeyError(f'Category {category_id} not found')


def remove_extra(state: dict, category_id: str, item_id: str) -> dict:
    """Delete an extra from a category."""
    categories = _categories(state)
    for category in categories:
        if category['id'] == category_id:
            remaining = [i for i in category['items'] if i.get('id') != item_id]
            if len(remaining) == len(category['items']):
                raise KeyError(f'Extra {item_id} not found')
            category['items'] = remaining
            return {'categories': categories}
    raise KeyError(f'Category {category_id} not found')


def find_extra(state: dict, item_id: str) -> Dict:
    """Find an extra in any category, or None."""
    for category in state.get('categories') or []:
        for item in category.get('items') or []:
            if item.get('id') == item_id:
                return item
    return None
