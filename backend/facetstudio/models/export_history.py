"""Export audit trail model."""

from sqlalchemy import Column, String, ForeignKey, Uuid

from facetstudio.models.base import Base, UUIDMixin, TimestampMixin, JSONType


class ExportHistory(Base, UUIDMixin, TimestampMixin):
    """Append-only record of each export action."""

    __tablename__ = "export_history"

    client_id = Column(Uuid(as_uuid=True), nullable=False)
    job_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("facet_generation_jobs.id", ondelete="SET NULL"),
        nullable=True,
    )
    category_ids = Column(JSONType, default=list, nullable=False)
    format = Column(String(20), default="csv", nullable=False)
    exported_by = Column(Uuid(as_uuid=True), nullable=True)

    def __repr__(self):
        return f"<ExportHistory {self.job_id} ({self.format})>"
