"""Selection queue, debounced persistence and the level-3 auto-reset timer."""

import asyncio
from typing import Awaitable, Callable, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from facetstudio.core.config import settings
from facetstudio.core.logging import get_logger
from facetstudio.models.selection_queue import SelectionQueueRecord

logger = get_logger(__name__)

SaveCallback = Callable[[UUID, List[str]], Awaitable[None]]


class SelectionQueue:
    """Set of queued category ids with symmetric-difference toggling."""

    def __init__(self, ids: Iterable = ()):
        self._ids = {str(i) for i in ids}

    def toggle(self, category_id) -> bool:
        """Add if absent, remove if present. Returns True when now queued."""
        key = str(category_id)
        if key in self._ids:
            self._ids.discard(key)
            return False
        self._ids.add(key)
        return True

    def add_many(self, category_ids: Iterable) -> int:
        """Union ids into the queue, returning how many were new."""
        before = len(self._ids)
        self._ids.update(str(i) for i in category_ids)
        return len(self._ids) - before

    def clear(self) -> None:
        self._ids.clear()

    def replace(self, category_ids: Iterable) -> None:
        self._ids = {str(i) for i in category_ids}

    @property
    def ids(self) -> List[str]:
        return sorted(self._ids)

    @property
    def warn_on_exit(self) -> bool:
        """Closing the page with queued work should prompt the user."""
        return bool(self._ids)

    def __contains__(self, category_id) -> bool:
        return str(category_id) in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self):
        return iter(self.ids)


class QueuePersister:
    """Debounced writer for a user's queue.

    Every ``schedule`` resets the timer; only the last snapshot of a burst is
    written. Nothing is written until ``mark_loaded`` has been called, so an
    empty initial state can never clobber the stored queue.
    """

    def __init__(
        self,
        user_id: UUID,
        save: SaveCallback,
        delay_ms: int = settings.QUEUE_SAVE_DEBOUNCE_MS,
    ):
        self.user_id = user_id
        self._save = save
        self._delay = delay_ms / 1000.0
        self._loaded = False
        self._closed = False
        self._task: Optional[asyncio.Task] = None
        self.saves = 0
        self.failures = 0

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def mark_loaded(self) -> None:
        self._loaded = True

    def schedule(self, ids: List[str]) -> bool:
        """Queue a save of ``ids``. Returns False when the guard blocks it."""
        if not self._loaded or self._closed:
            return False
        self._cancel()
        self._task = asyncio.get_running_loop().create_task(self._run(list(ids)))
        return True

    async def _run(self, ids: List[str]) -> None:
        try:
            await asyncio.sleep(self._delay)
        except asyncio.CancelledError:
            return
        # A write that has started is allowed to finish
        await asyncio.shield(self._write(ids))

    async def _write(self, ids: List[str]) -> None:
        try:
            await self._save(self.user_id, ids)
        except Exception as e:
            self.failures += 1
            logger.error("Selection queue save failed", user_id=str(self.user_id), error=str(e))
            return
        self.saves += 1
        logger.debug("Selection queue saved", user_id=str(self.user_id), count=len(ids))

    async def flush(self) -> None:
        """Wait for a scheduled save to finish."""
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    def _cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def close(self) -> None:
        """Cancel any pending write; later schedules are ignored."""
        self._closed = True
        self._cancel()


class AutoResetTimer:
    """Clears level selections after a period of inactivity."""

    def __init__(
        self,
        on_reset: Callable[[], None],
        delay_seconds: float = settings.AUTO_RESET_SECONDS,
    ):
        self._on_reset = on_reset
        self._delay = delay_seconds
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        self._on_reset()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


async def load_queue(db: AsyncSession, user_id: UUID) -> List[str]:
    """Stored queue for a user, empty when none was saved."""
    record = await db.get(SelectionQueueRecord, user_id)
    if not record:
        return []
    return [str(i) for i in (record.category_ids or [])]


async def save_queue(db: AsyncSession, user_id: UUID, ids: List[str]) -> None:
    """Upsert the full queue array keyed by user id."""
    record = await db.get(SelectionQueueRecord, user_id)
    if record:
        record.category_ids = list(ids)
    else:
        db.add(SelectionQueueRecord(user_id=user_id, category_ids=list(ids)))
    await db.commit()
