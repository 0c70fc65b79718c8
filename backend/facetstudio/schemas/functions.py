"""Request bodies accepted by the functions endpoints."""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field
from uuid import UUID


class GenerateFacetsAIRequest(BaseModel):
    job_id: UUID
    category_ids: List[UUID] = Field(..., min_length=1)
    prompts: List[Dict[str, Any]] = Field(default_factory=list)


class GenerateFacetsRequest(BaseModel):
    project_id: UUID


class AnalyzeLevelRequest(BaseModel):
    project_id: UUID
    category: Optional[str] = None
    l1_category: Optional[str] = None
    l2_category: Optional[str] = None
    l3_category: Optional[str] = None


class InviteUserRequest(BaseModel):
    email: str
    role: str = "client_user"
    client_id: Optional[UUID] = None
    full_name: Optional[str] = None
