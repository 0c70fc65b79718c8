"""Common Pydantic schemas shared across modules."""

from typing import Optional, Any
from pydantic import BaseModel


class TaskStatus(BaseModel):
    """Background import task status response."""

    task_id: str
    status: str
    ready: bool
    progress: Optional[dict] = None
    result: Optional[Any] = None
    error: Optional[str] = None


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str
    success: bool = True
