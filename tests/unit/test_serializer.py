"""
Unit tests for the mutation serializer.
"""

import asyncio
from datetime import date
from unittest.mock import AsyncMock, patch

import pytest

from db.memory_store import MemoryEventStore
from engine.serializer import MutationSerializer
from models.event import Event, EventSnapshot
from utils.exceptions import StoreUnavailable, VersionConflict


class SlowStore(MemoryEventStore):
    """Memory store whose load yields to the loop and records overlap."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.active = 0
        self.max_active = 0

    async def load(self):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        await asyncio.sleep(0.01)
        return await super().load()

    async def commit(self, events, version=None):
        await asyncio.sleep(0.01)
        await super().commit(events, version)
        self.active -= 1


@pytest.mark.asyncio
async def test_result_is_sorted_by_date(make_event):
    store = MemoryEventStore()
    serializer = MutationSerializer(store)

    late = make_event("2025-08-01", "late")
    early = make_event("2025-06-01", "early")
    result = await serializer.with_exclusive_access(lambda events: events + [late, early])

    assert [event.message for event in result] == ["early", "late"]
    stored = (await store.load()).events
    assert [event.message for event in stored] == ["early", "late"]


@pytest.mark.asyncio
async def test_async_mutator(make_event):
    serializer = MutationSerializer(MemoryEventStore())

    async def mutate(events):
        await asyncio.sleep(0)
        return events + [make_event("2025-06-10")]

    result = await serializer.with_exclusive_access(mutate)
    assert len(result) == 1


@pytest.mark.asyncio
async def test_cycles_never_overlap(make_event):
    store = SlowStore()
    serializer = MutationSerializer(store)

    await asyncio.gather(
        *[
            serializer.with_exclusive_access(
                lambda events, i=i: events + [make_event("2025-06-10", f"event {i}")]
            )
            for i in range(10)
        ]
    )

    assert store.max_active == 1
    assert len((await store.load()).events) == 10


@pytest.mark.asyncio
async def test_unchanged_set_is_not_committed(make_event):
    store = MemoryEventStore([make_event("2025-06-10")])
    serializer = MutationSerializer(store)

    await serializer.with_exclusive_access(lambda events: events)

    assert store.commit_count == 0


@pytest.mark.asyncio
async def test_mutator_error_releases_lock_and_skips_commit(make_event):
    store = MemoryEventStore([make_event("2025-06-10")])
    serializer = MutationSerializer(store)

    def explode(events):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await serializer.with_exclusive_access(explode)

    assert not serializer.locked
    assert store.commit_count == 0


@pytest.mark.asyncio
async def test_store_error_releases_lock():
    store = AsyncMock()
    store.name = "mock"
    store.load.side_effect = StoreUnavailable("down")
    serializer = MutationSerializer(store)

    with pytest.raises(StoreUnavailable):
        await serializer.with_exclusive_access(lambda events: events)

    assert not serializer.locked


@pytest.mark.asyncio
async def test_conflict_retried_once_with_fresh_load(make_event):
    """A stale commit reloads and reapplies the mutator on the new document."""
    store = MemoryEventStore([make_event("2025-06-10", "original")])
    serializer = MutationSerializer(store)
    seen = []

    def mutate(events):
        seen.append([event.message for event in events])
        if len(seen) == 1:
            # Someone else writes between our load and commit
            store.replace_document('[{"id": "x1", "date": "2025-06-11", "message": "external"}]')
        return events + [make_event("2025-06-12", "ours")]

    result = await serializer.with_exclusive_access(mutate)

    assert seen == [["original"], ["external"]]
    assert [event.message for event in result] == ["external", "ours"]


@pytest.mark.asyncio
async def test_second_conflict_propagates():
    store = AsyncMock()
    store.name = "mock"
    store.load.return_value = EventSnapshot(events=[], version="1")
    store.commit.side_effect = VersionConflict("stale")
    serializer = MutationSerializer(store)

    with pytest.raises(VersionConflict):
        await serializer.with_exclusive_access(
            lambda events: events + [Event(date=date(2025, 6, 10), message="x")]
        )

    assert store.commit.await_count == 2
    assert not serializer.locked


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_abandon_cycle(make_event):
    """The cycle finishes and releases the lock after its caller gave up."""
    store = SlowStore()
    serializer = MutationSerializer(store)

    caller = asyncio.ensure_future(
        serializer.with_exclusive_access(lambda events: events + [make_event("2025-06-10")])
    )
    await asyncio.sleep(0.005)
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    # The next cycle waits for the first one, then sees its commit
    result = await serializer.with_exclusive_access(lambda events: events)
    assert len(result) == 1
    assert not serializer.locked


@pytest.mark.asyncio
async def test_failure_after_caller_cancelled_is_logged(make_event):
    release = asyncio.Event()

    class FailingStore(MemoryEventStore):
        async def commit(self, events, version=None):
            await release.wait()
            raise StoreUnavailable("down")

    serializer = MutationSerializer(FailingStore())
    caller = asyncio.ensure_future(
        serializer.with_exclusive_access(lambda events: events + [make_event("2025-06-10")])
    )
    await asyncio.sleep(0.005)
    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    with patch("engine.serializer.logger") as mock_logger:
        release.set()
        while serializer.locked:
            await asyncio.sleep(0)
        for _ in range(3):
            await asyncio.sleep(0)

    mock_logger.error.assert_called_once()
    assert "caller was cancelled" in mock_logger.error.call_args[0][0]


@pytest.mark.asyncio
async def test_mutator_gets_copies(make_event):
    store = MemoryEventStore([make_event("2025-06-10")])
    serializer = MutationSerializer(store)

    def mutate(events):
        events[0].notified_7 = True
        raise RuntimeError("abort after touching")

    with pytest.raises(RuntimeError):
        await serializer.with_exclusive_access(mutate)

    assert (await serializer.read())[0].notified_7 is False
