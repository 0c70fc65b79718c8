"""Prompt template Pydantic schemas."""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, AliasChoices
from datetime import datetime
from uuid import UUID


class PromptResponse(BaseModel):
    """A prompt as the active client sees it."""

    id: UUID
    name: str
    level: int
    type: str
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    execution_order: int
    version: int
    is_override: bool = False
    client_id: Optional[UUID] = None

    class Config:
        from_attributes = True


class PromptListResponse(BaseModel):
    prompts: List[PromptResponse]
    total: int


class PromptCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    template: str = Field(..., min_length=1)
    level: int = Field(default=1, ge=1, le=6)
    type: str = "facet"
    client_specific: bool = False


class PromptVersionCreate(BaseModel):
    """New version of a prompt; ``scope`` "global" rewrites the base template."""

    content: str = Field(..., min_length=1)
    metadata: Optional[Dict[str, Any]] = None
    change_notes: Optional[str] = None
    scope: str = Field(default="client", pattern="^(client|global)$")


class PromptVersionResponse(BaseModel):
    id: UUID
    prompt_template_id: UUID
    client_id: Optional[UUID]
    template_content: str
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("extra", "metadata"),
    )
    version: int
    change_notes: Optional[str]
    edited_by: Optional[UUID]
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class PromptRestoreRequest(BaseModel):
    version_id: UUID
    scope: str = Field(default="client", pattern="^(client|global)$")
