"""Tests for the selection queue, its debounced persistence and the reset timer."""

import asyncio
import uuid

from facetstudio.services.selection_queue import (
    AutoResetTimer,
    QueuePersister,
    SelectionQueue,
    load_queue,
    save_queue,
)


class Recorder:
    def __init__(self):
        self.calls = []

    async def __call__(self, user_id, ids):
        self.calls.append(list(ids))


class TestSelectionQueue:
    def test_double_toggle_restores_original(self):
        queue = SelectionQueue(["a", "b"])
        assert queue.toggle("c") is True
        assert queue.toggle("c") is False
        assert queue.ids == ["a", "b"]

    def test_toggle_removes_present_id(self):
        queue = SelectionQueue(["a"])
        queue.toggle("a")
        assert len(queue) == 0
        assert "a" not in queue

    def test_add_many_is_a_union(self):
        queue = SelectionQueue(["a"])
        assert queue.add_many(["a", "b", "c"]) == 2
        assert queue.ids == ["a", "b", "c"]

    def test_ids_are_normalized_to_strings(self):
        cid = uuid.uuid4()
        queue = SelectionQueue()
        queue.toggle(cid)
        assert str(cid) in queue
        assert cid in queue

    def test_warn_on_exit_only_when_non_empty(self):
        queue = SelectionQueue()
        assert not queue.warn_on_exit
        queue.toggle("x")
        assert queue.warn_on_exit
        queue.clear()
        assert not queue.warn_on_exit


class TestQueuePersister:
    async def test_nothing_saved_before_loaded(self):
        save = Recorder()
        persister = QueuePersister(uuid.uuid4(), save, delay_ms=10)
        assert persister.schedule(["a"]) is False
        await asyncio.sleep(0.05)
        assert save.calls == []

    async def test_burst_saves_only_last_snapshot(self):
        save = Recorder()
        persister = QueuePersister(uuid.uuid4(), save, delay_ms=30)
        persister.mark_loaded()
        persister.schedule(["a"])
        persister.schedule(["a", "b"])
        persister.schedule(["a", "b", "c"])
        await persister.flush()
        assert save.calls == [["a", "b", "c"]]
        assert persister.saves == 1

    async def test_separate_bursts_save_separately(self):
        save = Recorder()
        persister = QueuePersister(uuid.uuid4(), save, delay_ms=10)
        persister.mark_loaded()
        persister.schedule(["a"])
        await persister.flush()
        persister.schedule([])
        await persister.flush()
        assert save.calls == [["a"], []]

    async def test_close_cancels_pending_save(self):
        save = Recorder()
        persister = QueuePersister(uuid.uuid4(), save, delay_ms=20)
        persister.mark_loaded()
        persister.schedule(["a"])
        assert persister.pending
        persister.close()
        await asyncio.sleep(0.05)
        assert save.calls == []
        assert persister.schedule(["b"]) is False

    async def test_failed_save_is_logged_not_raised(self):
        save = Recorder()
        attempts = []

        async def flaky(user_id, ids):
            attempts.append(list(ids))
            if len(attempts) == 1:
                raise RuntimeError("db down")
            await save(user_id, ids)

        persister = QueuePersister(uuid.uuid4(), flaky, delay_ms=10)
        persister.mark_loaded()
        persister.schedule(["a"])
        await persister.flush()
        assert persister.failures == 1
        assert persister.saves == 0

        persister.schedule(["a", "b"])
        await persister.flush()
        assert save.calls == [["a", "b"]]
        assert persister.saves == 1


class TestAutoResetTimer:
    async def test_fires_after_delay(self):
        fired = []
        timer = AutoResetTimer(lambda: fired.append(True), delay_seconds=0.02)
        timer.start()
        assert timer.armed
        await asyncio.sleep(0.06)
        assert fired == [True]
        assert not timer.armed

    async def test_restart_postpones_reset(self):
        fired = []
        timer = AutoResetTimer(lambda: fired.append(True), delay_seconds=0.05)
        timer.start()
        await asyncio.sleep(0.03)
        timer.start()
        await asyncio.sleep(0.03)
        assert fired == []
        await asyncio.sleep(0.05)
        assert fired == [True]

    async def test_cancel_prevents_reset(self):
        fired = []
        timer = AutoResetTimer(lambda: fired.append(True), delay_seconds=0.02)
        timer.start()
        timer.cancel()
        await asyncio.sleep(0.05)
        assert fired == []


class TestQueueStorage:
    async def test_missing_queue_loads_empty(self, session):
        assert await load_queue(session, uuid.uuid4()) == []

    async def test_save_then_load_and_overwrite(self, session):
        user_id = uuid.uuid4()
        await save_queue(session, user_id, ["x", "y"])
        assert await load_queue(session, user_id) == ["x", "y"]
        await save_queue(session, user_id, [])
        assert await load_queue(session, user_id) == []
