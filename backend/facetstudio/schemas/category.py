"""Category and category import Pydantic schemas."""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, AliasChoices
from datetime import datetime
from uuid import UUID

from facetstudio.models.category_import import ImportStatus


class CategoryResponse(BaseModel):
    """Schema for category response."""

    id: UUID
    client_id: UUID
    category_path: str
    level: int
    name: str
    parent_id: Optional[UUID] = None
    metadata: Dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("extra", "metadata"),
    )
    is_visible: bool = True
    created_at: datetime

    class Config:
        from_attributes = True


class CategoryListResponse(BaseModel):
    categories: List[CategoryResponse]
    total: int


class CategoryCreate(BaseModel):
    """Manual entry of one category under the selected parent path."""

    level: int = Field(..., ge=1, le=6)
    name: str = Field(..., min_length=1, max_length=255)
    parent_path: str = ""
    industry: Optional[str] = None


class VisibilityUpdate(BaseModel):
    category_ids: List[UUID] = Field(..., min_length=1)
    visible: bool


class LevelOptionsResponse(BaseModel):
    level: int
    options: List[str]


class CategoryImportPreview(BaseModel):
    """Upload response: preview rows and the detected columns."""

    import_id: UUID
    filename: str
    columns: List[str]
    preview_rows: List[Dict[str, Any]]
    total_rows: int
    breadcrumbs_column: str
    industry_column: Optional[str] = None


class CategoryImportResponse(BaseModel):
    """Schema for category import status."""

    id: UUID
    client_id: UUID
    filename: str
    file_size: Optional[int]
    status: ImportStatus
    error_message: Optional[str]
    total_rows: Optional[int]
    processed_rows: Optional[int]
    failed_rows: Optional[int]
    skipped_rows: Optional[int]
    task_id: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class ImportResultResponse(BaseModel):
    imported: int
    failed: int
    skipped: int
