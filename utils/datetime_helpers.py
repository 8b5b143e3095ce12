"""UTC date/time helpers for timestamps stored in the shared document."""

from datetime import datetime, timedelta, timezone


def get_now() -> datetime:
    """Get the current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with millisecond precision and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_iso(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.
    Naive timestamps are taken as UTC.
    """
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def add_minutes(value: datetime, minutes: int) -> datetime:
    """Add minutes to a datetime."""
    return value + timedelta(minutes=minutes)


def epoch_millis(value: datetime) -> int:
    """Milliseconds since the Unix epoch."""
    return int(value.timestamp() * 1000)
