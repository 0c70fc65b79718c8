"""Per-level SEO meta produced by the analysis functions."""

from sqlalchemy import Column, Integer, ForeignKey, Uuid

from facetstudio.models.base import Base, UUIDMixin, TimestampMixin, JSONType


class ProjectMeta(Base, UUIDMixin, TimestampMixin):
    """Meta keywords/themes for one hierarchy level of a project."""

    __tablename__ = "project_meta"

    project_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("facet_generation_jobs.id", ondelete="CASCADE"),
        nullable=False,
    )
    level = Column(Integer, nullable=False)
    meta = Column(JSONType, default=dict)
    # Keys: meta_title_patterns, meta_keywords, meta_description_themes,
    # customer_intent_signals (title patterns only for levels 1-2)

    def __repr__(self):
        return f"<ProjectMeta {self.project_id} L{self.level}>"
