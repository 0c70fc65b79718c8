"""Project Pydantic schemas."""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field

from facetstudio.schemas.generation import JobResponse, FacetResponse


class ProjectCreate(BaseModel):
    """Schema for creating a placeholder project."""

    name: str = Field(..., min_length=1, max_length=255)


class ProjectResponse(BaseModel):
    job: JobResponse
    category_names: List[str]


class ProjectListResponse(BaseModel):
    projects: List[ProjectResponse]
    total: int


class ProjectDetail(BaseModel):
    job: JobResponse
    category_names: List[str]
    facets: List[FacetResponse]
    meta: Dict[int, Dict[str, Any]] = Field(default_factory=dict)
    columns: Optional[List[str]] = None


class AnalyzeLevelBody(BaseModel):
    """Category names for the level being analyzed."""

    category: Optional[str] = None
    l1_category: Optional[str] = None
    l2_category: Optional[str] = None
    l3_category: Optional[str] = None
