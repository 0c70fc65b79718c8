"""Pydantic schemas module."""

from facetstudio.schemas.category import (
    CategoryResponse,
    CategoryCreate,
    CategoryImportPreview,
    CategoryImportResponse,
)
from facetstudio.schemas.prompt import PromptResponse, PromptCreate, PromptVersionCreate, PromptVersionResponse
from facetstudio.schemas.generation import GenerationRequest, GenerationResponse, JobResponse, FacetResponse
from facetstudio.schemas.workspace import WorkspaceSnapshot, WorkspaceView
from facetstudio.schemas.client import ClientCreate, ClientResponse, UserResponse, InviteRequest
from facetstudio.schemas.project import ProjectCreate, ProjectResponse, ProjectDetail
from facetstudio.schemas.common import MessageResponse, TaskStatus

__all__ = [
    "CategoryResponse",
    "CategoryCreate",
    "CategoryImportPreview",
    "CategoryImportResponse",
    "PromptResponse",
    "PromptCreate",
    "PromptVersionCreate",
    "PromptVersionResponse",
    "GenerationRequest",
    "GenerationResponse",
    "JobResponse",
    "FacetResponse",
    "WorkspaceSnapshot",
    "WorkspaceView",
    "ClientCreate",
    "ClientResponse",
    "UserResponse",
    "InviteRequest",
    "ProjectCreate",
    "ProjectResponse",
    "ProjectDetail",
    "MessageResponse",
    "TaskStatus",
]
