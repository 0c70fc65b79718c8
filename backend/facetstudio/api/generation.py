"""Facet generation, results and CSV export API endpoints."""

import io
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from facetstudio.api.deps import get_client_context, require_client, to_http
from facetstudio.api.workspace import get_registry
from facetstudio.core.context import ClientContext
from facetstudio.core.database import get_db
from facetstudio.core.exceptions import FacetStudioError, ValidationError
from facetstudio.core.logging import get_logger
from facetstudio.models.category import Category
from facetstudio.models.facet_job import FacetGenerationJob, RecommendedFacet
from facetstudio.schemas.generation import (
    DuplicateCheckRequest,
    DuplicateCheckResponse,
    ExportRequest,
    FacetResponse,
    FacetTab,
    GenerationRequest,
    GenerationResponse,
    JobResponse,
)
from facetstudio.services import job_orchestrator
from facetstudio.services.facet_export import (
    export_columns,
    facet_record_to_row,
    facets_to_csv,
    group_by_category,
    record_export,
)
from facetstudio.services.functions_client import FunctionsClient, functions_client
from facetstudio.services.prompt_resolver import order_prompts, resolve_prompts
from facetstudio.services.workspace import WorkspaceRegistry

logger = get_logger(__name__)
router = APIRouter()


def get_functions_client() -> FunctionsClient:
    return functions_client


async def _category_names(db: AsyncSession, ids: Sequence) -> Dict[str, Tuple[str, str]]:
    uuids = {UUID(str(i)) for i in ids if i}
    if not uuids:
        return {}
    result = await db.execute(
        select(Category.id, Category.category_path, Category.name).where(Category.id.in_(uuids))
    )
    return {str(cid): (path, name) for cid, path, name in result.all()}


async def _build_response(
    db: AsyncSession,
    job: FacetGenerationJob,
    facets: List[RecommendedFacet],
    reused: bool,
) -> GenerationResponse:
    rows = [facet_record_to_row(f) for f in facets]
    groups = group_by_category(rows)
    names = await _category_names(db, groups.keys())
    tabs = [
        FacetTab(
            category_id=category_id,
            category_name=names.get(category_id, ("", "Unknown"))[1],
            facets=[FacetResponse(**row.to_dict()) for row in group],
        )
        for category_id, group in groups.items()
    ]
    return GenerationResponse(
        job=JobResponse.model_validate(job),
        reused=reused,
        columns=export_columns(job.extra),
        tabs=tabs,
        total_facets=len(rows),
    )


async def _requested_categories(
    category_ids,
    depth: Optional[int],
    context: ClientContext,
    registry: WorkspaceRegistry,
) -> Tuple[List[str], Optional[int]]:
    """Explicit ids, or the workspace queue with its navigated depth as default."""
    if category_ids is not None:
        return [str(c) for c in category_ids], depth
    workspace = await registry.get(context.user_id)
    if depth is None:
        depth = workspace.state.depth
    return workspace.queue.ids, depth


@router.post("/check-duplicate", response_model=DuplicateCheckResponse)
async def check_duplicate(
    request: DuplicateCheckRequest,
    context: ClientContext = Depends(get_client_context),
    registry: WorkspaceRegistry = Depends(get_registry),
    db: AsyncSession = Depends(get_db),
):
    """Report whether an identical completed job already exists."""
    client_id = require_client(context)
    category_ids, _ = await _requested_categories(request.category_ids, None, context, registry)
    prompts = await resolve_prompts(db, client_id, request.prompt_ids)
    prompt_ids = [str(p.id) for p in order_prompts(prompts)]

    job = await job_orchestrator.find_duplicate_job(db, client_id, category_ids, prompt_ids)
    if job is None:
        return DuplicateCheckResponse(duplicate=False)
    return DuplicateCheckResponse(duplicate=True, job_id=job.id, completed_at=job.completed_at)


@router.post("/", response_model=GenerationResponse)
async def generate_facets(
    request: GenerationRequest,
    context: ClientContext = Depends(get_client_context),
    registry: WorkspaceRegistry = Depends(get_registry),
    client: FunctionsClient = Depends(get_functions_client),
    db: AsyncSession = Depends(get_db),
):
    """Run generation for the queued categories.

    Returns 409 with the existing job id when an identical job completed
    before; repeat with ``force_new`` or load that job instead.
    """
    category_ids, depth = await _requested_categories(request.category_ids, request.depth, context, registry)
    try:
        result = await job_orchestrator.submit_generation(
            db,
            context,
            category_ids,
            request.prompt_ids,
            depth=depth,
            project_name=request.project_name,
            force_new=request.force_new,
            client=client,
        )
    except FacetStudioError as e:
        raise to_http(e)

    workspace = registry.peek(context.user_id)
    if workspace is not None:
        workspace.clear_queue()

    return await _build_response(db, result.job, result.facets, result.reused)


@router.get("/jobs/{job_id}", response_model=GenerationResponse)
async def load_job(
    job_id: UUID,
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Facets of an existing job, without generating again."""
    try:
        result = await job_orchestrator.load_job_facets(db, context, job_id)
    except FacetStudioError as e:
        raise to_http(e)
    return await _build_response(db, result.job, result.facets, result.reused)


@router.post("/jobs/{job_id}/export")
async def export_job(
    job_id: UUID,
    request: ExportRequest,
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Download the selected facets as CSV and record the export."""
    try:
        job = await job_orchestrator.get_job(db, context, job_id)
        facets = await job_orchestrator.fetch_job_facets(db, job.id)
        if request.facet_ids is not None:
            wanted = {str(i) for i in request.facet_ids}
            facets = [f for f in facets if str(f.id) in wanted]
        if not facets:
            raise ValidationError("Select at least one facet to export.")
    except FacetStudioError as e:
        raise to_http(e)

    rows = [facet_record_to_row(f) for f in facets]
    category_ids = sorted({r.category_id for r in rows if r.category_id})
    content = facets_to_csv(rows, export_columns(job.extra), await _category_names(db, category_ids))

    await record_export(db, job.client_id, job.id, category_ids, context.user_id)

    filename = f"facets_{(job.project_name or str(job.id)).replace(' ', '_')}.csv"
    return StreamingResponse(
        io.BytesIO(content.encode("utf-8")),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/jobs/{job_id}/status", response_model=JobResponse)
async def job_status(
    job_id: UUID,
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    try:
        job = await job_orchestrator.get_job(db, context, job_id)
    except FacetStudioError as e:
        raise to_http(e)
    return JobResponse.model_validate(job)
