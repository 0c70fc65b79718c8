"""Serverless-style function endpoints served by this backend.

Mounted at ``/functions`` so the default ``FUNCTIONS_URL`` points the
functions client back at the same application. Failures are reported as
``{"error": ...}`` bodies rather than FastAPI's ``detail`` envelope.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from facetstudio.core.config import settings
from facetstudio.core.database import get_db
from facetstudio.core.exceptions import FacetStudioError
from facetstudio.core.logging import get_logger
from facetstudio.schemas.functions import (
    AnalyzeLevelRequest,
    GenerateFacetsAIRequest,
    GenerateFacetsRequest,
    InviteUserRequest,
)
from facetstudio.services import client_admin
from facetstudio.services.facet_generator import (
    FacetGenerator,
    facet_generator,
    generate_job_facets,
    replace_project_facets,
)
from facetstudio.services.level_analysis import build_level_meta, save_level_meta

logger = get_logger(__name__)


async def verify_anon_key(authorization: Optional[str] = Header(None)) -> None:
    if authorization != f"Bearer {settings.FUNCTIONS_ANON_KEY}":
        raise HTTPException(status_code=401, detail="Unauthorized")


def get_facet_generator() -> FacetGenerator:
    return facet_generator


router = APIRouter(dependencies=[Depends(verify_anon_key)])


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post("/generate-facets-ai")
async def generate_facets_ai(
    request: GenerateFacetsAIRequest,
    generator: FacetGenerator = Depends(get_facet_generator),
    db: AsyncSession = Depends(get_db),
):
    """Run each prompt for each category and store the ranked facets."""
    try:
        return await generate_job_facets(
            db,
            request.job_id,
            [str(c) for c in request.category_ids],
            request.prompts,
            generator=generator,
        )
    except FacetStudioError as e:
        logger.error("generate-facets-ai failed", job_id=str(request.job_id), error=e.message)
        return _error(e.message, 500)


@router.post("/generate-facets")
async def generate_facets(
    request: GenerateFacetsRequest,
    db: AsyncSession = Depends(get_db),
):
    """Attach the ranked sample facet list to a placeholder project."""
    try:
        facets = await replace_project_facets(db, request.project_id)
    except FacetStudioError as e:
        return _error(e.message, 500)
    return {
        "success": True,
        "facets": [
            {
                "id": str(f.id),
                "facet_name": f.facet_name,
                "priority": f.priority.value,
                "confidence_score": f.confidence_score,
                "filling_percentage": f.filling_percentage,
                "sort_order": f.sort_order,
            }
            for f in facets
        ],
    }


async def _analyze(level: int, request: AnalyzeLevelRequest, db: AsyncSession):
    try:
        meta = build_level_meta(level, request.model_dump(exclude_none=True))
        record = await save_level_meta(db, request.project_id, level, meta)
    except FacetStudioError as e:
        return _error(e.message, 500)
    return {
        "success": True,
        "meta": {"id": str(record.id), "project_id": str(record.project_id), "level": level, **record.meta},
    }


@router.post("/analyze-level1")
async def analyze_level1(request: AnalyzeLevelRequest, db: AsyncSession = Depends(get_db)):
    return await _analyze(1, request, db)


@router.post("/analyze-level2")
async def analyze_level2(request: AnalyzeLevelRequest, db: AsyncSession = Depends(get_db)):
    return await _analyze(2, request, db)


@router.post("/analyze-level3")
async def analyze_level3(request: AnalyzeLevelRequest, db: AsyncSession = Depends(get_db)):
    return await _analyze(3, request, db)


@router.post("/invite-user")
async def invite_user(request: InviteUserRequest, db: AsyncSession = Depends(get_db)):
    """Create an inactive profile for the invited email."""
    try:
        user = await client_admin.invite_user(
            db, request.email, request.role, request.client_id, request.full_name
        )
    except FacetStudioError as e:
        return _error(e.message, 400)
    return {
        "user": {
            "id": str(user.id),
            "email": user.email,
            "role": user.role.value,
            "client_id": str(user.client_id) if user.client_id else None,
            "is_active": user.is_active,
        }
    }
