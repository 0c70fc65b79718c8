"""Project management API endpoints."""

from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from facetstudio.api.deps import get_client_context, to_http
from facetstudio.api.generation import get_functions_client
from facetstudio.core.context import ClientContext
from facetstudio.core.database import get_db
from facetstudio.core.exceptions import FacetStudioError
from facetstudio.core.logging import get_logger
from facetstudio.models.category import Category
from facetstudio.models.facet_job import JobStatus
from facetstudio.models.project_meta import ProjectMeta
from facetstudio.schemas.common import MessageResponse
from facetstudio.schemas.generation import FacetResponse, JobResponse
from facetstudio.schemas.project import (
    AnalyzeLevelBody,
    ProjectCreate,
    ProjectDetail,
    ProjectListResponse,
    ProjectResponse,
)
from facetstudio.services import job_orchestrator, projects
from facetstudio.services.facet_export import export_columns, facet_record_to_row
from facetstudio.services.functions_client import FunctionsClient

logger = get_logger(__name__)
router = APIRouter()


@router.post("/", response_model=ProjectResponse)
async def create_project(
    project: ProjectCreate,
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Create an empty placeholder project."""
    try:
        job = await projects.create_project(db, context, project.name)
    except FacetStudioError as e:
        raise to_http(e)
    return ProjectResponse(job=JobResponse.model_validate(job), category_names=[])


@router.get("/", response_model=ProjectListResponse)
async def list_projects(
    status: Optional[JobStatus] = Query(None),
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """List projects newest first with their category names."""
    entries = await projects.list_projects(db, context, status)
    return ProjectListResponse(
        projects=[
            ProjectResponse(job=JobResponse.model_validate(e["job"]), category_names=e["category_names"])
            for e in entries
        ],
        total=len(entries),
    )


@router.get("/{project_id}", response_model=ProjectDetail)
async def get_project(
    project_id: UUID,
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Get a project with its facets and stored level meta."""
    try:
        result = await job_orchestrator.load_job_facets(db, context, project_id)
    except FacetStudioError as e:
        raise to_http(e)
    job = result.job

    names = {}
    ids = [UUID(str(c)) for c in (job.category_ids or [])]
    if ids:
        rows = await db.execute(select(Category.id, Category.name).where(Category.id.in_(ids)))
        names = {str(cid): name for cid, name in rows.all()}

    meta_rows = await db.execute(select(ProjectMeta).where(ProjectMeta.project_id == job.id))
    meta = {m.level: m.meta or {} for m in meta_rows.scalars().all()}

    return ProjectDetail(
        job=JobResponse.model_validate(job),
        category_names=[names.get(str(c), "Unknown") for c in (job.category_ids or [])],
        facets=[FacetResponse(**facet_record_to_row(f).to_dict()) for f in result.facets],
        meta=meta,
        columns=export_columns(job.extra),
    )


@router.delete("/{project_id}", response_model=MessageResponse)
async def delete_project(
    project_id: UUID,
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Delete a project and its facets."""
    try:
        await projects.delete_project(db, context, project_id)
    except FacetStudioError as e:
        raise to_http(e)
    return MessageResponse(message="Project deleted successfully")


@router.post("/{project_id}/analyze/{level}", response_model=dict)
async def analyze_level(
    project_id: UUID,
    level: int,
    request: AnalyzeLevelBody,
    context: ClientContext = Depends(get_client_context),
    functions: FunctionsClient = Depends(get_functions_client),
    db: AsyncSession = Depends(get_db),
):
    """Build and store SEO meta for one hierarchy level of a project."""
    if level not in (1, 2, 3):
        raise HTTPException(status_code=400, detail="Level must be 1, 2 or 3")
    try:
        await job_orchestrator.get_job(db, context, project_id)
    except FacetStudioError as e:
        raise to_http(e)

    payload = {"project_id": str(project_id), **request.model_dump(exclude_none=True)}
    response = await functions.analyze_level(level, payload)
    if not response.ok:
        raise HTTPException(status_code=502, detail=response.error)
    return response.body


@router.post("/{project_id}/sample-facets", response_model=dict)
async def sample_facets(
    project_id: UUID,
    context: ClientContext = Depends(get_client_context),
    functions: FunctionsClient = Depends(get_functions_client),
    db: AsyncSession = Depends(get_db),
):
    """Fill a placeholder project with the ranked sample facets."""
    try:
        await job_orchestrator.get_job(db, context, project_id)
    except FacetStudioError as e:
        raise to_http(e)

    response = await functions.call("generate-facets", {"project_id": str(project_id)})
    if not response.ok:
        raise HTTPException(status_code=502, detail=response.error)
    return response.body
