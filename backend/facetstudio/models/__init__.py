"""SQLAlchemy models module."""

from facetstudio.models.base import Base
from facetstudio.models.client import Client
from facetstudio.models.user import UserProfile, UserRole
from facetstudio.models.category import Category
from facetstudio.models.prompt_template import PromptTemplate, PromptOverride
from facetstudio.models.selection_queue import SelectionQueueRecord
from facetstudio.models.facet_job import FacetGenerationJob, RecommendedFacet, JobStatus, FacetPriority
from facetstudio.models.export_history import ExportHistory
from facetstudio.models.category_import import CategoryImport, ImportStatus
from facetstudio.models.project_meta import ProjectMeta

__all__ = [
    "Base",
    "Client",
    "UserProfile",
    "UserRole",
    "Category",
    "PromptTemplate",
    "PromptOverride",
    "SelectionQueueRecord",
    "FacetGenerationJob",
    "RecommendedFacet",
    "JobStatus",
    "FacetPriority",
    "ExportHistory",
    "CategoryImport",
    "ImportStatus",
    "ProjectMeta",
]
