"""API routes module."""

from fastapi import APIRouter

from facetstudio.api.categories import router as categories_router
from facetstudio.api.workspace import router as workspace_router
from facetstudio.api.generation import router as generation_router
from facetstudio.api.projects import router as projects_router
from facetstudio.api.prompts import router as prompts_router
from facetstudio.api.clients import router as clients_router
from facetstudio.api.tasks import router as tasks_router
from facetstudio.api.functions import router as functions_router

router = APIRouter()

# Include all route modules
router.include_router(categories_router, prefix="/categories", tags=["Categories"])
router.include_router(workspace_router, prefix="/workspace", tags=["Workspace"])
router.include_router(generation_router, prefix="/generation", tags=["Facet Generation"])
router.include_router(projects_router, prefix="/projects", tags=["Projects"])
router.include_router(prompts_router, prefix="/prompts", tags=["Prompts"])
router.include_router(clients_router, prefix="/clients", tags=["Clients"])
router.include_router(tasks_router, prefix="/tasks", tags=["Tasks"])

__all__ = ["router", "functions_router"]
