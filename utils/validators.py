"""
Input validation helper functions.
Provides validation for admin and checkout inputs.
"""

import math
import re


def validate_pin(pin: str) -> tuple:
    """
    Validate an admin PIN: 4 to 8 digits.

    Args:
        pin: PIN to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not pin:
        return False, 'El PIN es requerido'

    if not re.match(r'^[0-9]{4,8}$', pin):
        return False, 'El PIN debe tener entre 4 y 8 dígitos'

    return True, ''


def validate_price(value) -> bool:
    """
    Validate a price: a finite number >= 0.

    Args:
        value: Price to validate

    Returns:
        True if valid price
    """
    if isinstance(value, bool):
        return False
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(number) and number >= 0


def validate_currency(code: str) -> bool:
    """
    Validate a three-letter currency code.

    Args:
        code: Currency code (e.g., 'USD')

    Returns:
        True if valid format
    """
    if not code:
        return False
    return bool(re.match(r'^[A-Z]{3}$', code.upper()))


def validate_country_code(code: str) -> bool:
    """
    Validate an international dialing prefix (e.g., '+58').

    Args:
        code: Country code to validate

    Returns:
        True if valid format
    """
    if not code:
        return False
    return bool(re.match(r'^\+?[0-9]{1,4}$', code.strip()))


def parse_tent_count(value, default: int = 20, max_count: int = 500) -> int:
    """
    Parse a requested grid size, clamped into [1, max_count].

    Args:
        value: Requested count (int or numeric string)
        default: Used when value is not a number
        max_count: Upper bound

    Returns:
        Tent count
    """
    try:
        count = int(value)
    except (TypeError, ValueError):
        count = default
    return max(1, min(max_count, count))


def sanitize_input(text: str, max_length: int = None) -> str:
    """
    Sanitize text input by trimming and limiting length.

    Args:
        text: Text to sanitize
        max_length: Maximum length (optional)

    Returns:
        Sanitized text
    """
    if not text:
        return ''

    # Strip whitespace
    sanitized = text.strip()

    # Limit length if specified
    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized
