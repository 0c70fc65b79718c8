"""Prompt template management API endpoints."""

from typing import List
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from facetstudio.api.deps import get_client_context, require_admin, require_super_admin, to_http
from facetstudio.core.context import ClientContext
from facetstudio.core.database import get_db
from facetstudio.core.exceptions import FacetStudioError
from facetstudio.core.logging import get_logger
from facetstudio.models.prompt_template import PromptTemplate
from facetstudio.schemas.prompt import (
    PromptCreate,
    PromptListResponse,
    PromptResponse,
    PromptRestoreRequest,
    PromptVersionCreate,
    PromptVersionResponse,
)
from facetstudio.services import prompt_resolver

logger = get_logger(__name__)
router = APIRouter()


async def _get_template(db: AsyncSession, context: ClientContext, prompt_id: UUID) -> PromptTemplate:
    template = await db.get(PromptTemplate, prompt_id)
    if not template or (template.client_id is not None and template.client_id != context.client_id):
        raise HTTPException(status_code=404, detail="Prompt not found")
    return template


def _scope_client(context: ClientContext, scope: str):
    """Client id for a client-scoped save, None for a global one."""
    if scope == "global":
        if not context.is_super_admin:
            raise HTTPException(status_code=403, detail="Only super admins can edit global prompts")
        return None
    if context.client_id is None:
        raise HTTPException(status_code=400, detail="Select a client before editing its prompts")
    return context.client_id


@router.get("/", response_model=PromptListResponse)
async def list_prompts(
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Active prompts for the active client, overrides applied, in execution order."""
    prompts = await prompt_resolver.resolve_prompts(db, context.client_id)
    return PromptListResponse(
        prompts=[PromptResponse.model_validate(p) for p in prompts],
        total=len(prompts),
    )


@router.post("/", response_model=PromptResponse)
async def create_prompt(
    request: PromptCreate,
    context: ClientContext = Depends(require_super_admin),
    db: AsyncSession = Depends(get_db),
):
    """Create a prompt template, global unless ``client_specific``."""
    client_id = context.client_id if request.client_specific else None
    try:
        template = await prompt_resolver.create_prompt(
            db, request.name, request.template, request.level, request.type, client_id
        )
    except FacetStudioError as e:
        raise to_http(e)
    resolved = await prompt_resolver.resolve_prompts(db, context.client_id, [template.id])
    return PromptResponse.model_validate(resolved[0])


@router.post("/{prompt_id}/versions", response_model=PromptVersionResponse)
async def save_version(
    prompt_id: UUID,
    request: PromptVersionCreate,
    context: ClientContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Save a new version, as the client's override or globally."""
    template = await _get_template(db, context, prompt_id)
    client_id = _scope_client(context, request.scope)
    try:
        version = await prompt_resolver.save_prompt_version(
            db,
            template,
            request.content,
            client_id=client_id,
            metadata=request.metadata,
            change_notes=request.change_notes,
            edited_by=context.user_id,
        )
    except FacetStudioError as e:
        raise to_http(e)
    return PromptVersionResponse.model_validate(version)


@router.get("/{prompt_id}/versions", response_model=List[PromptVersionResponse])
async def list_versions(
    prompt_id: UUID,
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Version history for the active client, or the global history when it has none."""
    template = await _get_template(db, context, prompt_id)
    versions = await prompt_resolver.prompt_history(db, template.id, context.client_id)
    return [PromptVersionResponse.model_validate(v) for v in versions]


@router.post("/{prompt_id}/restore", response_model=PromptVersionResponse)
async def restore_version(
    prompt_id: UUID,
    request: PromptRestoreRequest,
    context: ClientContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Save an older version again as the newest one."""
    template = await _get_template(db, context, prompt_id)
    client_id = _scope_client(context, request.scope)
    try:
        version = await prompt_resolver.restore_version(
            db, template, request.version_id, client_id, edited_by=context.user_id
        )
    except FacetStudioError as e:
        raise to_http(e)
    return PromptVersionResponse.model_validate(version)
