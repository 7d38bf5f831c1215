"""Database models for the trainer."""
from sqlalchemy import Column, String, Text

from vocabtrainer.models.base import Base, TimestampMixin


class StorageBlob(Base, TimestampMixin):
    """Whole-document key/value storage.

    Progress and the detail cache are written as one JSON document per key.
    """

    __tablename__ = "storage_blobs"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
