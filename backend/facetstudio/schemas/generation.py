"""Facet generation, result and export Pydantic schemas."""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, AliasChoices
from datetime import datetime
from uuid import UUID

from facetstudio.models.facet_job import JobStatus


class GenerationRequest(BaseModel):
    """Submit a generation run.

    ``category_ids`` defaults to the caller's queued categories.
    """

    prompt_ids: List[UUID] = Field(default_factory=list)
    category_ids: Optional[List[UUID]] = None
    depth: Optional[int] = Field(None, ge=0, le=6)
    project_name: Optional[str] = Field(None, max_length=255)
    force_new: bool = False


class DuplicateCheckRequest(BaseModel):
    prompt_ids: List[UUID] = Field(default_factory=list)
    category_ids: Optional[List[UUID]] = None


class DuplicateCheckResponse(BaseModel):
    duplicate: bool
    job_id: Optional[UUID] = None
    completed_at: Optional[datetime] = None


class JobResponse(BaseModel):
    """Schema for a facet generation job."""

    id: UUID
    client_id: UUID
    project_name: Optional[str]
    category_ids: List[str]
    selected_prompts: List[str]
    status: JobStatus
    progress: int
    total_categories: int
    processed_categories: int
    error_message: Optional[str]
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("extra", "metadata"),
    )
    created_by: Optional[UUID]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class FacetResponse(BaseModel):
    """Canonical facet row."""

    id: Optional[str] = None
    category_id: Optional[str] = None
    facet_name: str
    possible_values: str
    filling_percentage: int
    priority: str
    confidence_score: int
    num_sources: int
    source_urls: str
    input_taxonomy: str
    end_category: str
    sort_order: int


class FacetTab(BaseModel):
    category_id: Optional[str] = None
    category_name: str
    facets: List[FacetResponse]


class GenerationResponse(BaseModel):
    job: JobResponse
    reused: bool = False
    columns: List[str]
    tabs: List[FacetTab]
    total_facets: int


class ExportRequest(BaseModel):
    """Export the chosen rows; all rows of the job when ``facet_ids`` is omitted."""

    facet_ids: Optional[List[UUID]] = None
