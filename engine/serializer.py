"""
Mutation serializer.

All writes to the event document go through ``with_exclusive_access`` so
that at most one load-mutate-commit cycle is in flight per process. The
backends have no transaction primitive in common, so this lock is what
prevents lost updates between concurrent commands and the daily tick.
"""

import asyncio
import inspect
from typing import Awaitable, Callable, List, Optional, Union

from db.base import EventStore
from models.event import Event
from utils.exceptions import VersionConflict
from utils.logging_config import setup_logging

logger = setup_logging(
    name=__name__, log_level="INFO", log_file="engine.log", log_dir="logs"
)

Mutator = Callable[[List[Event]], Union[List[Event], Awaitable[List[Event]]]]


def sort_events(events: List[Event]) -> List[Event]:
    """Order events by date, then id, for storage and display."""
    return sorted(events, key=lambda event: event.sort_key())


def _log_orphaned_cycle(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error(
            f"Mutation cycle failed after its caller was cancelled: {error}",
            exc_info=error,
        )


class MutationSerializer:
    """Process-wide mutual exclusion over an EventStore."""

    def __init__(
        self,
        store: EventStore,
        lock: Optional[asyncio.Lock] = None,
        conflict_retries: int = 1,
    ):
        self.store = store
        self._lock = lock or asyncio.Lock()
        self.conflict_retries = conflict_retries

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    async def read(self) -> List[Event]:
        """Load the current events without taking the lock."""
        snapshot = await self.store.load()
        return sort_events(snapshot.events)

    async def with_exclusive_access(self, mutator: Mutator) -> List[Event]:
        """
        Run one load-mutate-commit cycle under the lock.

        The cycle runs in its own task, so a caller that is cancelled while
        waiting does not interrupt a cycle already holding the lock.

        Args:
            mutator: Receives the loaded events and returns the new set.
                May be a coroutine function.

        Returns:
            The committed event set, sorted by date

        Raises:
            StoreError: Propagated from load/commit (lock already released)
            Exception: Anything raised by the mutator (nothing is committed)
        """
        task = asyncio.ensure_future(self._run_cycle(mutator))
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            task.add_done_callback(_log_orphaned_cycle)
            raise

    async def _run_cycle(self, mutator: Mutator) -> List[Event]:
        async with self._lock:
            attempt = 0
            while True:
                snapshot = await self.store.load()
                loaded = sort_events(snapshot.events)

                result = mutator([event.model_copy(deep=True) for event in loaded])
                if inspect.isawaitable(result):
                    result = await result
                updated = sort_events(result)

                if updated == loaded:
                    logger.debug("Event set unchanged, skipping commit")
                    return updated

                try:
                    await self.store.commit(updated, snapshot.version)
                except VersionConflict:
                    if attempt >= self.conflict_retries:
                        raise
                    attempt += 1
                    logger.warning(
                        f"Version conflict on {self.store.name} store, "
                        f"reloading (retry {attempt}/{self.conflict_retries})"
                    )
                    continue

                return updated
