"""
Checkout summary: cart totals and the WhatsApp payment message.
"""

import re
from typing import Dict, List
from urllib.parse import quote

from models.tent import find_tent
from models.venue import find_extra


def build_cart(state: dict, tent_id: int = None, extras: list = None) -> List[Dict]:
    """
    Build cart lines for the selected tent and extras.

    Args:
        state: Current shared document
        tent_id: Selected tent (optional)
        extras: List of {id, qty} referencing the extras catalog

    Returns:
        List of {name, price, qty}

    Raises:
        KeyError: unknown tent or extra
        ValueError: invalid quantity
    """
    lines = []
    if tent_id is not None:
        tent = find_tent(state.get('tents'), tent_id)
        if tent is None:
            raise KeyError(f'Tent {tent_id} not found')
        lines.append({'name': f'Toldo #{tent_id}', 'price': float(tent.get('price') or 0), 'qty': 1})

    for selection in extras or []:
        item = find_extra(state, selection.get('id'))
        if item is None:
            raise KeyError(f"Extra {selection.get('id')} not found")
        qty = int(selection.get('qty', 1))
        if qty < 1:
            raise ValueError('La cantidad debe ser al menos 1')
        lines.append({'name': item['name'], 'price': float(item.get('price') or 0), 'qty': qty})
    return lines


def cart_total(lines: list) -> float:
    """Sum of price * qty over the cart."""
    return sum(line['price'] * line['qty'] for line in lines)


def whatsapp_phone(payments: dict) -> str:
    """Country code plus the digits of the configured WhatsApp number."""
    country = (payments.get('countryCode') or '+58').lstrip('+')
    number = re.sub(r'\D', '', payments.get('whatsappNumber') or '')
    return f'{country}{number}'


def build_message(lines: list, payments: dict) -> str:
    """Plain-text reservation message sent to the venue."""
    currency = payments.get('currency') or 'USD'
    rate = float(payments.get('usdToVES') or 0)
    total = cart_total(lines)

    message = ['*Reserva Coral Club*']
    for line in lines:
        qty = f" x{line['qty']}" if line['qty'] > 1 else ''
        message.append(f"- {line['name']}{qty} - {currency} {line['price'] * line['qty']:.2f}")

    total_line = f'*Total:* {currency} {total:.2f}'
    if rate > 0:
        total_line += f' (Bs {total * rate:.2f})'
    message.append(total_line)
    return '\n'.join(message)


def build_checkout(state: dict, tent_id: int = None, extras: list = None) -> dict:
    """
    Full checkout summary.

    Returns:
        Dict with lines, total, totalVES (None without an exchange rate),
        currency, message and whatsappUrl
    """
    payments = state.get('payments') or {}
    lines = build_cart(state, tent_id, extras)
    total = cart_total(lines)
    rate = float(payments.get('usdToVES') or 0)
    message = build_message(lines, payments)
    return {
        'lines': lines,
        'total': round(total, 2),
        'totalVES': round(total * rate, 2) if rate > 0 else None,
        'currency': payments.get('currency') or 'USD',
        'message': message,
        'whatsappUrl': f'https://wa.me/{whatsapp_phone(payments)}?text={quote(message)}',
    }
