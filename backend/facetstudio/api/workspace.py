"""Category picker workspace API endpoints."""

from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from facetstudio.api.deps import get_client_context, require_client
from facetstudio.core.context import ClientContext
from facetstudio.core.database import get_db
from facetstudio.core.logging import get_logger
from facetstudio.schemas.common import MessageResponse
from facetstudio.schemas.workspace import (
    BulkAddResponse,
    BulkConfirmRequest,
    GlobalSearchRequest,
    LevelSearchRequest,
    PickSearchResultRequest,
    SearchResult,
    SelectLevelRequest,
    ToggleRequest,
    WorkspaceSnapshot,
    WorkspaceView,
)
from facetstudio.services.category_importer import list_categories
from facetstudio.services.level_navigator import (
    MAX_LEVELS,
    ClearSelections,
    OpenDropdown,
    PickSearchResult,
    SelectLevel,
    SetGlobalSearch,
    SetLevelSearch,
    global_search,
    level_options,
)
from facetstudio.services.workspace import GenerationWorkspace, WorkspaceRegistry, workspace_registry

logger = get_logger(__name__)
router = APIRouter()


def get_registry() -> WorkspaceRegistry:
    return workspace_registry


async def get_workspace(
    context: ClientContext = Depends(get_client_context),
    registry: WorkspaceRegistry = Depends(get_registry),
) -> GenerationWorkspace:
    return await registry.get(context.user_id)


async def _view(
    workspace: GenerationWorkspace,
    context: ClientContext,
    db: AsyncSession,
) -> WorkspaceView:
    client_id = require_client(context)
    categories = await list_categories(db, client_id)
    state = workspace.state

    options = {
        level: level_options(categories, state.level_selections, level, state.level_searches[level - 1])
        for level in range(1, MAX_LEVELS + 1)
    }
    results = global_search(categories, state.global_search, state.level_selections)
    by_id = {str(c.id): c for c in categories}
    queued = [
        {"id": cid, "category_path": by_id[cid].category_path, "name": by_id[cid].name}
        for cid in workspace.queue.ids
        if cid in by_id
    ]
    return WorkspaceView(
        state=WorkspaceSnapshot(**workspace.snapshot()),
        level_options=options,
        search_results=[SearchResult.model_validate(c) for c in results],
        queued=queued,
    )


@router.get("/", response_model=WorkspaceView)
async def get_workspace_view(
    workspace: GenerationWorkspace = Depends(get_workspace),
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Current selections, dropdown options, search results and queue."""
    return await _view(workspace, context, db)


@router.post("/select", response_model=WorkspaceView)
async def select_level(
    request: SelectLevelRequest,
    workspace: GenerationWorkspace = Depends(get_workspace),
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    workspace.dispatch(SelectLevel(request.level, request.value))
    return await _view(workspace, context, db)


@router.post("/search/level", response_model=WorkspaceView)
async def search_level(
    request: LevelSearchRequest,
    workspace: GenerationWorkspace = Depends(get_workspace),
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    workspace.dispatch(SetLevelSearch(request.level, request.text))
    return await _view(workspace, context, db)


@router.post("/search/global", response_model=WorkspaceView)
async def search_global(
    request: GlobalSearchRequest,
    workspace: GenerationWorkspace = Depends(get_workspace),
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    workspace.dispatch(SetGlobalSearch(request.text))
    return await _view(workspace, context, db)


@router.post("/pick", response_model=WorkspaceView)
async def pick_search_result(
    request: PickSearchResultRequest,
    workspace: GenerationWorkspace = Depends(get_workspace),
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Backfill every level from a global search result."""
    workspace.dispatch(PickSearchResult(request.category_path))
    return await _view(workspace, context, db)


@router.post("/dropdown", response_model=WorkspaceSnapshot)
async def open_dropdown(
    level: Optional[int] = None,
    workspace: GenerationWorkspace = Depends(get_workspace),
):
    workspace.dispatch(OpenDropdown(level))
    return WorkspaceSnapshot(**workspace.snapshot())


@router.post("/clear-selections", response_model=WorkspaceSnapshot)
async def clear_selections(workspace: GenerationWorkspace = Depends(get_workspace)):
    workspace.dispatch(ClearSelections())
    return WorkspaceSnapshot(**workspace.snapshot())


@router.post("/queue/toggle", response_model=WorkspaceSnapshot)
async def toggle_queued(
    request: ToggleRequest,
    workspace: GenerationWorkspace = Depends(get_workspace),
):
    """Add the category when absent, remove it when present."""
    workspace.toggle(request.category_id)
    return WorkspaceSnapshot(**workspace.snapshot())


@router.post("/queue/add-selection", response_model=BulkAddResponse)
async def add_selection(
    workspace: GenerationWorkspace = Depends(get_workspace),
    context: ClientContext = Depends(get_client_context),
    db: AsyncSession = Depends(get_db),
):
    """Queue the selected path, or stage its descendants for confirmation."""
    categories = await list_categories(db, require_client(context))
    outcome = workspace.request_bulk_add(categories)
    return BulkAddResponse(needs_confirmation=bool(outcome["pending"]), **outcome)


@router.post("/queue/confirm", response_model=WorkspaceSnapshot)
async def confirm_bulk_add(
    request: BulkConfirmRequest,
    workspace: GenerationWorkspace = Depends(get_workspace),
):
    workspace.confirm_bulk_add(request.category_ids)
    return WorkspaceSnapshot(**workspace.snapshot())


@router.delete("/queue", response_model=WorkspaceSnapshot)
async def clear_queue(workspace: GenerationWorkspace = Depends(get_workspace)):
    workspace.clear_queue()
    return WorkspaceSnapshot(**workspace.snapshot())


@router.delete("/", response_model=MessageResponse)
async def close_workspace(
    context: ClientContext = Depends(get_client_context),
    registry: WorkspaceRegistry = Depends(get_registry),
):
    """Dispose of the caller's workspace; the stored queue is kept."""
    workspace = registry.peek(context.user_id)
    try:
        if workspace is not None:
            await workspace.flush()
    finally:
        registry.discard(context.user_id)
    return MessageResponse(message="Workspace closed")
