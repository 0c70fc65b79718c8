"""Facet generation job submission, duplicate detection and bookkeeping."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

import httpx
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from facetstudio.core.config import settings
from facetstudio.core.context import ClientContext
from facetstudio.core.exceptions import (
    ConfigurationError,
    DuplicateJobFound,
    GenerationFailed,
    NotFoundError,
    ValidationError,
)
from facetstudio.core.logging import get_logger
from facetstudio.models.category import Category
from facetstudio.models.facet_job import FacetGenerationJob, RecommendedFacet, JobStatus
from facetstudio.services.functions_client import FunctionsClient, functions_client
from facetstudio.services.level_navigator import truncate_to_depth
from facetstudio.services.prompt_resolver import (
    REQUIRED_PROMPT_NAMES,
    ResolvedPrompt,
    order_prompts,
    resolve_prompts,
)
from facetstudio.services.selection_queue import save_queue

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass
class GenerationResult:
    job: FacetGenerationJob
    facets: List[RecommendedFacet] = field(default_factory=list)
    reused: bool = False


def job_fingerprint(category_ids: Sequence, prompt_ids: Sequence) -> str:
    """Canonical identity of a request: sorted categories | sorted prompts."""
    categories = ",".join(sorted(str(c) for c in category_ids))
    prompts = ",".join(sorted(str(p) for p in prompt_ids))
    return f"{categories}|{prompts}"


def validate_submission(
    context: ClientContext,
    category_ids: Sequence,
    prompts: Sequence[Any],
) -> None:
    """Reject a submission before any job row or network call exists."""
    if not any(p.name in REQUIRED_PROMPT_NAMES for p in prompts):
        required = " or ".join(sorted(REQUIRED_PROMPT_NAMES))
        raise ValidationError(f"Select at least one required prompt: {required}.")
    if not category_ids:
        raise ValidationError("Queue at least one category before generating.")
    if context.client_id is None:
        raise ConfigurationError("Your account is not associated with a client.")


async def find_duplicate_job(
    db: AsyncSession,
    client_id: UUID,
    category_ids: Sequence,
    prompt_ids: Sequence,
    lookback: int = settings.DUPLICATE_LOOKBACK,
) -> Optional[FacetGenerationJob]:
    """Most recent completed job with the same fingerprint, within the lookback window."""
    target = job_fingerprint(category_ids, prompt_ids)
    result = await db.execute(
        select(FacetGenerationJob)
        .where(
            FacetGenerationJob.client_id == client_id,
            FacetGenerationJob.status == JobStatus.COMPLETED,
        )
        .order_by(FacetGenerationJob.created_at.desc())
        .limit(lookback)
    )
    for job in result.scalars().all():
        if job_fingerprint(job.category_ids or [], job.selected_prompts or []) == target:
            return job
    return None


def build_prompt_payload(
    prompts: Sequence[ResolvedPrompt],
    categories: Sequence[Category],
    depth: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """Request body prompts, each carrying the categories re-projected to ``depth``."""
    context_categories = []
    for category in categories:
        path, level, name = truncate_to_depth(category.category_path, depth or 0)
        context_categories.append({
            "id": str(category.id),
            "category_path": path or category.category_path,
            "level": level or category.level,
            "name": name or category.name,
        })

    return [
        {
            "id": str(prompt.id),
            "name": prompt.name,
            "content": prompt.content,
            "metadata": prompt.metadata,
            "context_categories": context_categories,
        }
        for prompt in order_prompts(prompts)
    ]


async def _load_categories(db: AsyncSession, client_id: UUID, category_ids: Sequence) -> List[Category]:
    ids = [UUID(str(c)) for c in category_ids]
    result = await db.execute(
        select(Category).where(Category.client_id == client_id, Category.id.in_(ids))
    )
    found = {c.id: c for c in result.scalars().all()}
    missing = [str(i) for i in ids if i not in found]
    if missing:
        raise NotFoundError(f"Categories not found: {', '.join(missing)}")
    return [found[i] for i in ids]


async def _mark_failed(db: AsyncSession, job: FacetGenerationJob, message: str) -> None:
    await db.refresh(job)
    job.status = JobStatus.FAILED
    job.error_message = message[:1000]
    job.completed_at = _now()
    await db.commit()
    logger.error("Facet generation failed", job_id=str(job.id), error=message)


async def fetch_job_facets(db: AsyncSession, job_id: UUID) -> List[RecommendedFacet]:
    result = await db.execute(
        select(RecommendedFacet)
        .where(RecommendedFacet.job_id == job_id)
        .order_by(RecommendedFacet.sort_order)
    )
    return list(result.scalars().all())


async def get_job(db: AsyncSession, context: ClientContext, job_id: UUID) -> FacetGenerationJob:
    job = await db.get(FacetGenerationJob, job_id)
    if not job or (not context.is_super_admin and job.client_id != context.client_id):
        raise NotFoundError("Job not found")
    return job


async def load_job_facets(db: AsyncSession, context: ClientContext, job_id: UUID) -> GenerationResult:
    """Reuse an existing job's facets without generating again."""
    job = await get_job(db, context, job_id)
    return GenerationResult(job=job, facets=await fetch_job_facets(db, job.id), reused=True)


async def submit_generation(
    db: AsyncSession,
    context: ClientContext,
    category_ids: Sequence,
    prompt_ids: Sequence,
    depth: Optional[int] = None,
    project_name: Optional[str] = None,
    force_new: bool = False,
    client: Optional[FunctionsClient] = None,
) -> GenerationResult:
    """Validate, dedupe, create the job and run the external generation.

    Raises ``DuplicateJobFound`` when an identical completed job exists and
    ``force_new`` is False; the caller decides whether to load it or force.
    """
    client = client or functions_client
    category_ids = [str(c) for c in category_ids]
    prompts = await resolve_prompts(db, context.client_id, [UUID(str(p)) for p in prompt_ids])
    if len(prompts) != len(set(str(p) for p in prompt_ids)):
        raise ValidationError("One or more selected prompts are unavailable.")

    validate_submission(context, category_ids, prompts)

    ordered_prompt_ids = [str(p.id) for p in order_prompts(prompts)]
    if not force_new:
        duplicate = await find_duplicate_job(db, context.client_id, category_ids, ordered_prompt_ids)
        if duplicate is not None:
            logger.info("Duplicate generation request", job_id=str(duplicate.id))
            raise DuplicateJobFound(duplicate)

    categories = await _load_categories(db, context.client_id, category_ids)

    job = FacetGenerationJob(
        client_id=context.client_id,
        project_name=project_name,
        category_ids=category_ids,
        selected_prompts=ordered_prompt_ids,
        status=JobStatus.PROCESSING,
        total_categories=len(category_ids),
        processed_categories=0,
        created_by=context.user_id,
        started_at=_now(),
    )
    db.add(job)
    await db.commit()
    await db.refresh(job)
    logger.info("Facet generation started", job_id=str(job.id), categories=len(category_ids))

    payload = build_prompt_payload(prompts, categories, depth)
    try:
        response = await client.generate_facets(str(job.id), category_ids, payload)
    except httpx.HTTPError as e:
        await _mark_failed(db, job, f"Generation request failed: {e}")
        raise GenerationFailed("Facet generation failed. Please try again.", job.id) from e

    if not response.ok:
        await _mark_failed(db, job, response.error)
        raise GenerationFailed("Facet generation failed. Please try again.", job.id)

    if not response.body.get("facets_generated"):
        await _mark_failed(db, job, "No facets were generated")
        raise GenerationFailed("No facets were generated for the selected categories.", job.id)

    facets = await fetch_job_facets(db, job.id)

    await db.refresh(job)
    job.status = JobStatus.COMPLETED
    job.progress = 100
    job.processed_categories = len(category_ids)
    job.completed_at = _now()
    job.error_message = None
    await db.commit()

    await save_queue(db, context.user_id, [])
    logger.info("Facet generation completed", job_id=str(job.id), facets=len(facets))
    return GenerationResult(job=job, facets=facets)
