"""
Timestamp helpers shared by the selector, the ranker and the store.
"""

from datetime import datetime, timezone


def parse_timestamp(value):
    """
    Normalize a stored timestamp to an aware UTC datetime.

    Accepts datetimes and ISO-8601 strings (sqlite's CURRENT_TIMESTAMP
    format included). Naive values are taken to be UTC. None stays None.
    """
    if value is None or value == '':
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def utc_now():
    return datetime.now(timezone.utc)


def to_iso(value):
    """Render a timestamp for JSON responses; None passes through."""
    parsed = parse_timestamp(value)
    return parsed.isoformat() if parsed else None
