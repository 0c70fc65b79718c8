"""Client (tenant company) model."""

from sqlalchemy import Column, String, Boolean, Uuid
from sqlalchemy.orm import relationship

from facetstudio.models.base import Base, UUIDMixin, TimestampMixin, JSONType


class Client(Base, UUIDMixin, TimestampMixin):
    """Client model - owner of categories, prompt overrides and jobs."""

    __tablename__ = "clients"

    name = Column(String(255), nullable=False, unique=True)
    contact_email = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Free-form client preferences
    settings = Column(JSONType, default=dict)

    created_by = Column(Uuid(as_uuid=True), nullable=True)

    # Relationships
    users = relationship("UserProfile", back_populates="client")

    def __repr__(self):
        return f"<Client {self.name}>"
