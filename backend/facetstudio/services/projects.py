"""Generation jobs presented as named projects."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from facetstudio.core.context import ClientContext
from facetstudio.core.exceptions import ConfigurationError, NotFoundError, ValidationError
from facetstudio.core.logging import get_logger
from facetstudio.models.category import Category
from facetstudio.models.facet_job import FacetGenerationJob, JobStatus

logger = get_logger(__name__)


async def create_project(db: AsyncSession, context: ClientContext, name: str) -> FacetGenerationJob:
    """Empty pending job acting as a placeholder project."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("Project name is required.")
    if context.client_id is None:
        raise ConfigurationError("Your account is not associated with a client.")

    project = FacetGenerationJob(
        client_id=context.client_id,
        project_name=name,
        category_ids=[],
        selected_prompts=[],
        status=JobStatus.PENDING,
        created_by=context.user_id,
    )
    db.add(project)
    await db.commit()
    await db.refresh(project)
    logger.info("Project created", project_id=str(project.id), name=name)
    return project


async def list_projects(
    db: AsyncSession,
    context: ClientContext,
    status: Optional[JobStatus] = None,
) -> List[Dict[str, Any]]:
    """Jobs newest first, each with the names of its categories."""
    query = select(FacetGenerationJob).order_by(FacetGenerationJob.created_at.desc())
    if not context.is_super_admin or context.client_id is not None:
        query = query.where(FacetGenerationJob.client_id == context.client_id)
    if status is not None:
        query = query.where(FacetGenerationJob.status == status)
    jobs = list((await db.execute(query)).scalars().all())

    ids = {UUID(str(c)) for job in jobs for c in (job.category_ids or [])}
    names: Dict[str, str] = {}
    if ids:
        result = await db.execute(select(Category.id, Category.name).where(Category.id.in_(ids)))
        names = {str(cid): name for cid, name in result.all()}

    return [
        {
            "job": job,
            "category_names": [names.get(str(c), "Unknown") for c in (job.category_ids or [])],
        }
        for job in jobs
    ]


async def delete_project(db: AsyncSession, context: ClientContext, project_id: UUID) -> None:
    job = await db.get(FacetGenerationJob, project_id)
    if not job or (not context.is_super_admin and job.client_id != context.client_id):
        raise NotFoundError("Project not found")
    await db.delete(job)
    await db.commit()
    logger.info("Project deleted", project_id=str(project_id))
