"""Category Import model for tracking uploaded taxonomy files."""

from sqlalchemy import Column, String, Integer, ForeignKey, Enum, Uuid
import enum

from facetstudio.models.base import Base, UUIDMixin, TimestampMixin


class ImportStatus(str, enum.Enum):
    """Status of category import processing."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class CategoryImport(Base, UUIDMixin, TimestampMixin):
    """Tracks an uploaded breadcrumb file and its processing counts."""

    __tablename__ = "category_imports"

    client_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
    )

    # File information
    filename = Column(String(255), nullable=False)
    file_path = Column(String(512), nullable=False)
    file_size = Column(Integer, nullable=True)

    # Processing status
    status = Column(
        Enum(ImportStatus, values_callable=lambda x: [e.value for e in x]),
        default=ImportStatus.PENDING,
        nullable=False,
    )
    error_message = Column(String(1024), nullable=True)

    # Processing statistics
    total_rows = Column(Integer, nullable=True)
    processed_rows = Column(Integer, default=0)
    failed_rows = Column(Integer, default=0)
    skipped_rows = Column(Integer, default=0)

    # Celery task ID for tracking
    task_id = Column(String(255), nullable=True)

    def __repr__(self):
        return f"<CategoryImport {self.filename} ({self.status})>"
