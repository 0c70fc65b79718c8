"""User profile model.

Authentication itself is handled by the external auth provider; this table
only carries the role and client association the dashboard needs.
"""

from sqlalchemy import Column, String, Boolean, Enum, ForeignKey, Uuid
from sqlalchemy.orm import relationship
import enum

from facetstudio.models.base import Base, UUIDMixin, TimestampMixin


class UserRole(str, enum.Enum):
    """User roles for permissions."""
    SUPER_ADMIN = "super_admin"
    CLIENT_ADMIN = "client_admin"
    CLIENT_USER = "client_user"


class UserProfile(Base, UUIDMixin, TimestampMixin):
    """User profile linked to a client account."""

    __tablename__ = "user_profiles"

    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=True)

    role = Column(
        Enum(UserRole, values_callable=lambda x: [e.value for e in x]),
        default=UserRole.CLIENT_USER,
        nullable=False,
    )

    client_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("clients.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Invited users stay inactive until they set a password
    is_active = Column(Boolean, default=True, nullable=False)

    client = relationship("Client", back_populates="users")

    def __repr__(self):
        return f"<UserProfile {self.email}>"
