"""Durable key/value storage backed by the database."""
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from vocabtrainer.models.base import SessionLocal
from vocabtrainer.models.models import StorageBlob

logger = logging.getLogger(__name__)


class BlobStore:
    """Service reading and writing whole documents by key."""

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        """Initialize the service with a database session factory."""
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        """Get the stored document for a key."""
        db = self.session_factory()
        try:
            blob = db.get(StorageBlob, key)
            return blob.value if blob else None
        finally:
            db.close()

    def set(self, key: str, value: str) -> None:
        """Store a document, replacing any previous one."""
        db = self.session_factory()
        try:
            blob = db.get(StorageBlob, key)
            if blob:
                blob.value = value
            else:
                db.add(StorageBlob(key=key, value=value))
            db.commit()
            logger.debug(f"Stored {len(value)} characters under key {key}")
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def delete(self, key: str) -> None:
        """Remove the document for a key if it exists."""
        db = self.session_factory()
        try:
            blob = db.get(StorageBlob, key)
            if blob:
                db.delete(blob)
                db.commit()
        finally:
            db.close()
