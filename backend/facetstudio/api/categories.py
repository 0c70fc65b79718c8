"""Category taxonomy, upload and import API endpoints."""

import os
from typing import Optional
from uuid import UUID, uuid4
from fastapi import APIRouter, UploadFile, File, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from facetstudio.api.deps import get_client_context, require_client, to_http
from facetstudio.core.config import settings
from facetstudio.core.context import ClientContext
from facetstudio.core.database import get_db
from facetstudio.core.exceptions import FacetStudioError
from facetstudio.core.logging import get_logger
from facetstudio.models.category_import import CategoryImport, ImportStatus
from facetstudio.schemas.category import (
    CategoryCreate,
    CategoryImportPreview,
    CategoryImportResponse,
    CategoryListResponse,
    CategoryResponse,
    ImportResultResponse,
    LevelOptionsResponse,
    VisibilityUpdate,
)
from facetstudio.services import category_importer
from facetstudio.services.category_importer import category_file_parser
from facetstudio.services.level_navigator import MAX_LEVELS, global_search, level_options

logger = get_logger(__name__)
router = APIRouter()


@router.get("/", response_model=CategoryListResponse)
async def list_categories(
    include_hidden: bool = Query(False),
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """List the active client's categories ordered by path."""
    client_id = require_client(context)
    categories = await category_importer.list_categories(db, client_id, include_hidden)
    return CategoryListResponse(
        categories=[CategoryResponse.model_validate(c) for c in categories],
        total=len(categories),
    )


@router.get("/levels/{level}", response_model=LevelOptionsResponse)
async def get_level_options(
    level: int,
    l1: str = "",
    l2: str = "",
    l3: str = "",
    l4: str = "",
    l5: str = "",
    q: str = "",
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Options for one dropdown given the selections above it."""
    if not 1 <= level <= MAX_LEVELS:
        raise HTTPException(status_code=400, detail=f"Level must be between 1 and {MAX_LEVELS}")
    client_id = require_client(context)
    categories = await category_importer.list_categories(db, client_id)
    selections = [l1, l2, l3, l4, l5, ""]
    return LevelOptionsResponse(level=level, options=level_options(categories, selections, level, q))


@router.get("/search", response_model=CategoryListResponse)
async def search_categories(
    q: str = Query(..., min_length=1),
    within: str = Query("", description="Selected path prefix, e.g. 'Marine > Safety'"),
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Substring search over full paths, capped at the global search limit."""
    client_id = require_client(context)
    categories = await category_importer.list_categories(db, client_id)
    prefix = [part.strip() for part in within.split(">") if part.strip()]
    results = global_search(categories, q, prefix, settings.GLOBAL_SEARCH_LIMIT)
    return CategoryListResponse(
        categories=[CategoryResponse.model_validate(c) for c in results],
        total=len(results),
    )


@router.post("/", response_model=CategoryResponse)
async def create_category(
    request: CategoryCreate,
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Add a single category under the selected parent path."""
    client_id = require_client(context)
    try:
        category = await category_importer.create_category(
            db, client_id, request.level, request.name, request.parent_path, request.industry
        )
    except FacetStudioError as e:
        raise to_http(e)
    return CategoryResponse.model_validate(category)


@router.post("/visibility", response_model=dict)
async def set_visibility(
    request: VisibilityUpdate,
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Hide or unhide categories."""
    client_id = require_client(context)
    try:
        changed = await category_importer.set_visibility(db, client_id, request.category_ids, request.visible)
    except FacetStudioError as e:
        raise to_http(e)
    return {"updated": changed, "visible": request.visible}


@router.post("/imports/upload", response_model=CategoryImportPreview)
async def upload_categories(
    file: UploadFile = File(...),
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Upload a breadcrumb file and get a preview of its rows."""
    client_id = require_client(context)

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="The file is empty.")
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(status_code=400, detail="File too large")

    try:
        file_path = category_file_parser.save_uploaded_file(file.filename or "upload.csv", content)
    except FacetStudioError as e:
        raise to_http(e)

    try:
        columns, preview_rows, total_rows = category_file_parser.get_preview(file_path)
        breadcrumbs_column, industry_column = category_file_parser.check_headers(columns)
    except FacetStudioError as e:
        os.remove(file_path)
        raise to_http(e)

    category_import = CategoryImport(
        id=uuid4(),
        client_id=client_id,
        filename=file.filename,
        file_path=file_path,
        file_size=len(content),
        status=ImportStatus.PENDING,
        total_rows=total_rows,
    )
    db.add(category_import)
    await db.commit()

    return CategoryImportPreview(
        import_id=category_import.id,
        filename=file.filename,
        columns=columns,
        preview_rows=preview_rows,
        total_rows=total_rows,
        breadcrumbs_column=breadcrumbs_column,
        industry_column=industry_column,
    )


async def _get_import(db: AsyncSession, context: ClientContext, import_id: UUID) -> CategoryImport:
    category_import = await db.get(CategoryImport, import_id)
    if not category_import or category_import.client_id != context.client_id:
        raise HTTPException(status_code=404, detail="Import not found")
    return category_import


@router.post("/imports/{import_id}/process", response_model=dict)
async def process_import(
    import_id: UUID,
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Start the background import of an uploaded file."""
    category_import = await _get_import(db, context, import_id)
    if category_import.status not in [ImportStatus.PENDING, ImportStatus.FAILED]:
        raise HTTPException(status_code=400, detail=f"Import is already {category_import.status.value}")

    category_import.status = ImportStatus.PROCESSING
    await db.commit()

    from facetstudio.workers.category_tasks import process_category_import
    task = process_category_import.delay(str(import_id))

    category_import.task_id = task.id
    await db.commit()

    return {
        "import_id": str(import_id),
        "task_id": task.id,
        "status": "processing",
        "message": "Category import started",
    }


@router.post("/imports/{import_id}/run", response_model=ImportResultResponse)
async def run_import_inline(
    import_id: UUID,
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Import an uploaded file within the request, for small files."""
    category_import = await _get_import(db, context, import_id)
    if category_import.status not in [ImportStatus.PENDING, ImportStatus.FAILED]:
        raise HTTPException(status_code=400, detail=f"Import is already {category_import.status.value}")

    try:
        df = category_file_parser.read(category_import.file_path)
        result = await category_importer.import_categories(
            db,
            category_import.client_id,
            df.to_dict(orient="records"),
            source=category_import.filename,
        )
    except FacetStudioError as e:
        category_import.status = ImportStatus.FAILED
        category_import.error_message = e.message[:1000]
        await db.commit()
        raise to_http(e)

    # Row-level rollbacks expire the import record
    await db.refresh(category_import)
    category_import.status = ImportStatus.COMPLETED
    category_import.processed_rows = result.imported
    category_import.failed_rows = result.failed
    category_import.skipped_rows = result.skipped
    await db.commit()
    return ImportResultResponse(**result.to_dict())


@router.get("/imports/{import_id}", response_model=CategoryImportResponse)
async def get_import(
    import_id: UUID,
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Get category import status and counts."""
    return CategoryImportResponse.model_validate(await _get_import(db, context, import_id))


@router.get("/imports", response_model=dict)
async def list_imports(
    status: Optional[ImportStatus] = Query(None),
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """List the active client's imports, newest first."""
    client_id = require_client(context)
    query = select(CategoryImport).where(CategoryImport.client_id == client_id)
    if status:
        query = query.where(CategoryImport.status == status)
    result = await db.execute(query.order_by(CategoryImport.created_at.desc()))
    imports = result.scalars().all()
    return {
        "imports": [CategoryImportResponse.model_validate(i) for i in imports],
        "total": len(imports),
    }
