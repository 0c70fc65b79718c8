"""Per-user generation workspace: navigator, queue, persistence and timers."""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import async_sessionmaker

from facetstudio.core.config import settings
from facetstudio.core.logging import get_logger
from facetstudio.services.level_navigator import (
    LEAF_LEVEL,
    Action,
    ClearSelections,
    NavigatorState,
    PickSearchResult,
    SelectLevel,
    reduce,
    resolve_selection,
)
from facetstudio.services.selection_queue import (
    AutoResetTimer,
    QueuePersister,
    SelectionQueue,
    load_queue,
    save_queue,
)

logger = get_logger(__name__)

LoadCallback = Callable[[UUID], Awaitable[List[str]]]


class GenerationWorkspace:
    """Everything the category picker keeps between requests for one user."""

    def __init__(
        self,
        user_id: UUID,
        load: LoadCallback,
        save: Callable[[UUID, List[str]], Awaitable[None]],
        debounce_ms: int = settings.QUEUE_SAVE_DEBOUNCE_MS,
        reset_seconds: float = settings.AUTO_RESET_SECONDS,
    ):
        self.user_id = user_id
        self.state = NavigatorState()
        self.queue = SelectionQueue()
        self._load = load
        self._persister = QueuePersister(user_id, save, debounce_ms)
        self._timer = AutoResetTimer(self._auto_reset, reset_seconds)
        self._pending_bulk: List[str] = []
        self._started = False
        self._start_lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._persister.loaded

    @property
    def reset_armed(self) -> bool:
        return self._timer.armed

    async def start(self) -> None:
        """Restore the stored queue once, then allow saves.

        Concurrent callers all wait for the same load; a failed load is
        retried by the next caller.
        """
        async with self._start_lock:
            if self._started:
                return
            stored = await self._load(self.user_id)
            self.queue.replace(stored)
            self._persister.mark_loaded()
            self._started = True
            logger.info("Workspace started", user_id=str(self.user_id), queued=len(self.queue))

    def _auto_reset(self) -> None:
        self.state = reduce(self.state, ClearSelections())
        self._pending_bulk = []
        logger.debug("Level selections auto-reset", user_id=str(self.user_id))

    def dispatch(self, action: Action) -> NavigatorState:
        before = self.state.level_selections
        self.state = reduce(self.state, action)

        if self.state.level_selections != before:
            self._pending_bulk = []
            if isinstance(action, SelectLevel) and action.level == LEAF_LEVEL and action.value:
                self._timer.start()
            else:
                self._timer.cancel()
        elif isinstance(action, (PickSearchResult, ClearSelections)):
            self._timer.cancel()
        return self.state

    def _changed(self) -> None:
        self._persister.schedule(self.queue.ids)

    def toggle(self, category_id) -> bool:
        queued = self.queue.toggle(category_id)
        self._changed()
        return queued

    def request_bulk_add(self, categories: Sequence) -> Dict[str, Any]:
        """Add the selected path's category, or stage its descendants.

        With an exact match the category is queued straight away. Without one,
        the descendants are held until ``confirm_bulk_add``.
        """
        resolution = resolve_selection(categories, self.state.level_selections)
        if resolution.exact_id is not None:
            self.queue.add_many([resolution.exact_id])
            self._changed()
            return {"path": resolution.path, "added": 1, "pending": []}

        self._pending_bulk = [str(i) for i in resolution.descendant_ids]
        return {"path": resolution.path, "added": 0, "pending": list(self._pending_bulk)}

    def confirm_bulk_add(self, category_ids: Optional[Sequence] = None) -> int:
        ids = [str(i) for i in category_ids] if category_ids is not None else self._pending_bulk
        added = self.queue.add_many(ids)
        self._pending_bulk = []
        if added:
            self._changed()
        return added

    def clear_queue(self) -> None:
        self.queue.clear()
        self._changed()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "user_id": str(self.user_id),
            "level_selections": list(self.state.level_selections),
            "level_searches": list(self.state.level_searches),
            "open_dropdown": self.state.open_dropdown,
            "global_search": self.state.global_search,
            "depth": self.state.depth,
            "selected_path": self.state.selected_path,
            "queue": self.queue.ids,
            "pending_bulk": list(self._pending_bulk),
            "warn_on_exit": self.queue.warn_on_exit,
            "reset_armed": self._timer.armed,
            "loaded": self.loaded,
        }

    async def flush(self) -> None:
        await self._persister.flush()

    def close(self) -> None:
        self._timer.cancel()
        self._persister.close()


class WorkspaceRegistry:
    """Live workspaces keyed by user id."""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self._session_factory = session_factory
        self._workspaces: Dict[UUID, GenerationWorkspace] = {}
        self._lock = asyncio.Lock()

    def configure(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    def _factory(self) -> async_sessionmaker:
        if self._session_factory is None:
            from facetstudio.core.database import get_session_factory

            self._session_factory = get_session_factory()
        return self._session_factory

    async def _load(self, user_id: UUID) -> List[str]:
        async with self._factory()() as db:
            return await load_queue(db, user_id)

    async def _save(self, user_id: UUID, ids: List[str]) -> None:
        async with self._factory()() as db:
            await save_queue(db, user_id, ids)

    async def get(self, user_id: UUID) -> GenerationWorkspace:
        async with self._lock:
            workspace = self._workspaces.get(user_id)
            if workspace is None:
                workspace = GenerationWorkspace(user_id, self._load, self._save)
                self._workspaces[user_id] = workspace
        await workspace.start()
        return workspace

    def peek(self, user_id: UUID) -> Optional[GenerationWorkspace]:
        return self._workspaces.get(user_id)

    def discard(self, user_id: UUID) -> bool:
        workspace = self._workspaces.pop(user_id, None)
        if workspace is None:
            return False
        workspace.close()
        return True

    def close_all(self) -> None:
        for user_id in list(self._workspaces):
            self.discard(user_id)
        logger.info("Workspaces closed")

    def __len__(self) -> int:
        return len(self._workspaces)


workspace_registry = WorkspaceRegistry()
