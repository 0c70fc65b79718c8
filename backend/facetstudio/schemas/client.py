"""Client and user Pydantic schemas."""

from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime
from uuid import UUID

from facetstudio.models.user import UserRole


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    contact_email: Optional[str] = None


class ClientUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact_email: Optional[str] = None
    is_active: Optional[bool] = None


class ClientResponse(BaseModel):
    """Schema for client response."""

    id: UUID
    name: str
    contact_email: Optional[str]
    is_active: bool
    created_at: datetime
    user_count: int = 0

    class Config:
        from_attributes = True


class UserResponse(BaseModel):
    id: UUID
    email: str
    full_name: Optional[str]
    role: UserRole
    client_id: Optional[UUID]
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class InviteRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    role: str = "client_user"
    full_name: Optional[str] = None


class UserAccessUpdate(BaseModel):
    is_active: bool


class ClientUsersResponse(BaseModel):
    users: List[UserResponse]
    total: int
