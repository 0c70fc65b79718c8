"""Prompt template and per-client override models."""

from sqlalchemy import Column, String, Integer, Text, Boolean, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship

from facetstudio.models.base import Base, UUIDMixin, TimestampMixin, JSONType


class PromptTemplate(Base, UUIDMixin, TimestampMixin):
    """Reusable generation instruction, global when client_id is null."""

    __tablename__ = "prompt_templates"

    client_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=True,
    )

    name = Column(String(255), nullable=False)
    level = Column(Integer, default=1, nullable=False)
    type = Column(String(50), default="facet", nullable=False)
    template = Column(Text, nullable=False)

    variables = Column(JSONType, default=dict)
    extra = Column("metadata", JSONType, default=dict)
    # "Industry Analysis" keeps additional level templates under
    # {"industry_levels": {"2": "...", "3": "..."}}

    is_active = Column(Boolean, default=True, nullable=False)
    execution_order = Column(Integer, default=99, nullable=False)
    current_version = Column(Integer, default=1, nullable=False)

    versions = relationship(
        "PromptOverride",
        back_populates="prompt_template",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<PromptTemplate {self.name}>"


class PromptOverride(Base, UUIDMixin, TimestampMixin):
    """Versioned template content; client rows supersede the base template.

    At most one active row per (client, template). Rows with a null client_id
    form the global version history.
    """

    __tablename__ = "prompt_versions"

    client_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=True,
    )
    prompt_template_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("prompt_templates.id", ondelete="CASCADE"),
        nullable=False,
    )

    template_content = Column(Text, nullable=False)
    extra = Column("metadata", JSONType, default=dict)
    version = Column(Integer, nullable=False)
    change_notes = Column(Text, nullable=True)
    edited_by = Column(Uuid(as_uuid=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    prompt_template = relationship("PromptTemplate", back_populates="versions")

    __table_args__ = (
        Index("ix_prompt_versions_template_client", "prompt_template_id", "client_id"),
    )

    def __repr__(self):
        return f"<PromptOverride {self.prompt_template_id} v{self.version}>"
