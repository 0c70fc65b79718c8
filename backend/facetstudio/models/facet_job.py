"""Facet generation job and recommended facet models."""

from sqlalchemy import Column, String, Integer, Text, ForeignKey, Enum, DateTime, Index, Uuid
from sqlalchemy.orm import relationship
import enum

from facetstudio.models.base import Base, UUIDMixin, TimestampMixin, JSONType


class JobStatus(str, enum.Enum):
    """Status of a facet generation job."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class FacetPriority(str, enum.Enum):
    """Facet priority buckets, ranked High first."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class FacetGenerationJob(Base, UUIDMixin, TimestampMixin):
    """One batch of categories run through a set of prompts.

    Jobs double as "projects" in the dashboard: a pending job with no
    categories is an empty placeholder project.
    """

    __tablename__ = "facet_generation_jobs"

    client_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
    )
    project_name = Column(String(255), nullable=True)

    category_ids = Column(JSONType, default=list, nullable=False)
    selected_prompts = Column(JSONType, default=list, nullable=False)

    status = Column(
        Enum(JobStatus, values_callable=lambda x: [e.value for e in x]),
        default=JobStatus.PENDING,
        nullable=False,
    )

    # Progress tracking
    progress = Column(Integer, default=0, nullable=False)
    total_categories = Column(Integer, default=0, nullable=False)
    processed_categories = Column(Integer, default=0, nullable=False)

    error_message = Column(String(1024), nullable=True)

    extra = Column("metadata", JSONType, default=dict)
    # Example: {"output_format": {"columns": [...9 headers...], "useTableFormat": true}}

    created_by = Column(Uuid(as_uuid=True), nullable=True)

    # Timing
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    facets = relationship(
        "RecommendedFacet",
        back_populates="job",
        cascade="all, delete-orphan",
        order_by="RecommendedFacet.sort_order",
    )

    __table_args__ = (
        Index("ix_facet_jobs_client_status_created", "client_id", "status", "created_at"),
    )

    def __repr__(self):
        return f"<FacetGenerationJob {self.id} ({self.status})>"


class RecommendedFacet(Base, UUIDMixin, TimestampMixin):
    """A filter attribute recommended for one category within a job."""

    __tablename__ = "recommended_facets"

    job_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("facet_generation_jobs.id", ondelete="CASCADE"),
        nullable=True,
    )
    # Null for sample facets attached to a placeholder project
    category_id = Column(Uuid(as_uuid=True), nullable=True)
    client_id = Column(Uuid(as_uuid=True), nullable=False)

    facet_name = Column(String(255), nullable=False)
    possible_values = Column(Text, nullable=True)
    filling_percentage = Column(Integer, default=0, nullable=False)  # 0-100
    priority = Column(
        Enum(FacetPriority, values_callable=lambda x: [e.value for e in x]),
        default=FacetPriority.MEDIUM,
        nullable=False,
    )
    confidence_score = Column(Integer, default=5, nullable=False)  # 1-10
    num_sources = Column(Integer, default=0, nullable=False)
    source_urls = Column(JSONType, default=list)

    # Echoed taxonomy columns (A and B of the export layout)
    input_taxonomy = Column(Text, nullable=True)
    end_category = Column(String(255), nullable=True)

    reasoning = Column(Text, nullable=True)
    prompt_used = Column(Text, nullable=True)

    sort_order = Column(Integer, nullable=False, default=0)

    job = relationship("FacetGenerationJob", back_populates="facets")

    __table_args__ = (
        Index("ix_recommended_facets_job_sort", "job_id", "sort_order"),
        Index("ix_recommended_facets_category", "category_id"),
    )

    def __repr__(self):
        return f"<RecommendedFacet {self.facet_name} #{self.sort_order}>"
