import logging
from typing import Dict, Optional, Protocol

from models import db, utcnow

logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """Single-key string storage. A write replaces the whole value or nothing."""

    def read(self, key: str) -> Optional[str]:
        ...

    def write(self, key: str, value: str) -> None:
        ...


class MemoryStorage:
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def read(self, key):
        return self._data.get(key)

    def write(self, key, value):
        self._data[key] = value


class StoredCollection(db.Model):
    __tablename__ = "stored_collection"

    key = db.Column(db.String(64), primary_key=True)
    payload = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class SQLAlchemyStorage:
    """Keeps each collection as one row; needs an application context."""

    def read(self, key):
        row = db.session.get(StoredCollection, key)
        return row.payload if row is not None else None

    def write(self, key, value):
        row = db.session.get(StoredCollection, key)
        if row is None:
            db.session.add(StoredCollection(key=key, payload=value))
        else:
            row.payload = value
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            logger.error("Failed to persist collection %r, previous value kept", key)
            raise
