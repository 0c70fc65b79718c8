"""Category picker workspace Pydantic schemas."""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field
from uuid import UUID


class SelectLevelRequest(BaseModel):
    level: int = Field(..., ge=1, le=6)
    value: str = ""


class LevelSearchRequest(BaseModel):
    level: int = Field(..., ge=1, le=6)
    text: str = ""


class GlobalSearchRequest(BaseModel):
    text: str = ""


class PickSearchResultRequest(BaseModel):
    category_path: str = Field(..., min_length=1)


class ToggleRequest(BaseModel):
    category_id: UUID


class BulkConfirmRequest(BaseModel):
    category_ids: Optional[List[UUID]] = None


class BulkAddResponse(BaseModel):
    path: str
    added: int
    pending: List[str]
    needs_confirmation: bool


class WorkspaceSnapshot(BaseModel):
    user_id: str
    level_selections: List[str]
    level_searches: List[str]
    open_dropdown: Optional[int]
    global_search: str
    depth: int
    selected_path: str
    queue: List[str]
    pending_bulk: List[str]
    warn_on_exit: bool
    reset_armed: bool
    loaded: bool


class SearchResult(BaseModel):
    id: UUID
    category_path: str
    level: int
    name: str

    class Config:
        from_attributes = True


class WorkspaceView(BaseModel):
    """Snapshot plus the options each level dropdown currently offers."""

    state: WorkspaceSnapshot
    level_options: Dict[int, List[str]]
    search_results: List[SearchResult] = Field(default_factory=list)
    queued: List[Dict[str, Any]] = Field(default_factory=list)
