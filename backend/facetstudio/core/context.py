"""Explicit per-request acting-user context."""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from facetstudio.models.user import UserRole


@dataclass(frozen=True)
class ClientContext:
    """Who is acting and on behalf of which client.

    Built once per request and passed into every data-access call. Super
    admins may act for another client; everyone else acts for their own.
    """

    user_id: UUID
    client_id: Optional[UUID]
    role: UserRole = UserRole.CLIENT_USER

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN

    @property
    def is_admin(self) -> bool:
        return self.role in (UserRole.SUPER_ADMIN, UserRole.CLIENT_ADMIN)
