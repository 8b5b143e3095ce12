"""
Admin identity and credential check.
There is a single admin identity; holding the PIN grants it.
"""

import hmac

from werkzeug.security import check_password_hash

from database.seed import DEFAULT_ADMIN_PIN

ADMIN_USER_ID = 'admin'


class AdminUser:
    """
    Admin identity for Flask-Login integration.
    """

    id = ADMIN_USER_ID
    username = ADMIN_USER_ID

    @property
    def is_authenticated(self):
        """Required by Flask-Login."""
        return True

    @property
    def is_active(self):
        """Required by Flask-Login."""
        return True

    @property
    def is_anonymous(self):
        """Required by Flask-Login."""
        return False

    def get_id(self):
        """Required by Flask-Login."""
        return self.id


def verify_pin(pin: str, state: dict = None, pin_hash: str = None) -> bool:
    """
    Check an admin PIN.

    When pin_hash is configured it is the only accepted credential;
    otherwise the PIN stored in the shared document (or the default) is
    compared in constant time.

    Args:
        pin: Submitted PIN
        state: Current shared document
        pin_hash: Optional werkzeug password hash

    Returns:
        True if the PIN is valid
    """
    if not pin:
        return False
    if pin_hash:
        return check_password_hash(pin_hash, pin)

    stored = ((state or {}).get('security') or {}).get('adminPin') or DEFAULT_ADMIN_PIN
    return hmac.compare_digest(str(pin).encode(), str(stored).encode())
