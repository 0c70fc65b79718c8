"""Category model for the per-client product taxonomy."""

from sqlalchemy import Column, String, Integer, Text, Boolean, ForeignKey, Index, Uuid

from facetstudio.models.base import Base, UUIDMixin, TimestampMixin, JSONType


PATH_SEPARATOR = " > "


class Category(Base, UUIDMixin, TimestampMixin):
    """Category model - one node of a ">"-delimited taxonomy path."""

    __tablename__ = "categories"

    client_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Full breadcrumb, e.g. "Marine > Safety > Life Jackets"
    category_path = Column(Text, nullable=False)
    level = Column(Integer, nullable=False)  # segment count
    name = Column(String(255), nullable=False)  # last segment

    parent_id = Column(Uuid(as_uuid=True), nullable=True)

    extra = Column("metadata", JSONType, default=dict)
    # Example: {"industry": "Marine", "source": "upload.csv", "row_index": 2}

    # Hidden categories drop out of every generation dropdown
    is_visible = Column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("ix_categories_client_path", "client_id", "category_path"),
    )

    def __repr__(self):
        return f"<Category {self.category_path}>"
