"""Persisted per-user category selection queue."""

from sqlalchemy import Column, DateTime, Uuid

from facetstudio.models.base import Base, JSONType, utcnow


class SelectionQueueRecord(Base):
    """One row per user holding the full queued category id array."""

    __tablename__ = "selection_queues"

    user_id = Column(Uuid(as_uuid=True), primary_key=True)
    category_ids = Column(JSONType, default=list, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<SelectionQueue {self.user_id} ({len(self.category_ids or [])})>"
