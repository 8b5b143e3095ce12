"""
Recent-event ring buffer stored under the document's 'logs' key.
Most recent entry first, capped length.
"""

from datetime import datetime
from typing import Dict, List

from utils.datetime_helpers import get_now, to_iso

MAX_LOG_ENTRIES = 100


def append_log(logs: list, message: str, now: datetime = None,
               max_entries: int = MAX_LOG_ENTRIES) -> List[Dict]:
    """
    Return a new logs list with message prepended.

    Args:
        logs: Current logs (may be None)
        message: Event description
        now: Event time (defaults to current UTC time)
        max_entries: Cap on the list length

    Returns:
        New list, most recent first, at most max_entries long
    """
    entry = {'at': to_iso(now or get_now()), 'message': message}
    return [entry] + list(logs or [])[:max(max_entries - 1, 0)]


def with_log(state: dict, patch: dict, message: str, now: datetime = None,
             max_entries: int = MAX_LOG_ENTRIES) -> dict:
    """Return patch extended with a 'logs' entry describing it."""
    if not message:
        return patch
    return {**patch, 'logs': append_log(state.get('logs'), message, now, max_entries)}
