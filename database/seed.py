"""
Default shared document.
Used when neither the store nor the local cache holds any state.
"""

from models.tent import make_grid

DEFAULT_BACKGROUND = '/Mapa.png'
DEFAULT_ADMIN_PIN = '1234'


def default_payments() -> dict:
    """Default payment settings."""
    return {
        'currency': 'USD',
        'usdToVES': 0,
        'whatsappNumber': '',
        'countryCode': '+58',
    }


def build_seed_document(count: int = 20) -> dict:
    """
    Build a fresh shared document with a default grid of count tents.

    Args:
        count: Number of tents in the default grid

    Returns:
        Complete shared document dict
    """
    return {
        'background': {'publicPath': DEFAULT_BACKGROUND},
        'layout': {'count': count, 'edit': False},
        'payments': default_payments(),
        'security': {'adminPin': DEFAULT_ADMIN_PIN},
        'tents': make_grid(count),
        'reservations': [],
        'categories': [],
        'logs': [],
    }
