from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def utcnow():
    return datetime.now(timezone.utc)


def to_iso(value):
    return value.isoformat() if value is not None else None


def from_iso(value):
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    # Older records may carry naive timestamps; they were always written in UTC.
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def require_iso(value):
    """Like from_iso, but a missing timestamp is a malformed entry."""
    if value is None:
        raise ValueError("timestamp is missing")
    return from_iso(value)
