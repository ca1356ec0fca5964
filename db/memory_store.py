"""In-process event store with revision-based conflict detection."""

from typing import List, Optional

from db.base import EventStore, dump_document, parse_document
from models.event import Event, EventSnapshot
from utils.exceptions import VersionConflict


class MemoryEventStore(EventStore):
    """
    Keep the event document in memory.

    The document is held in its serialized form so every load returns fresh
    copies, exactly like a remote backend would. The revision counter acts as
    the version token.
    """

    name = "memory"

    def __init__(self, initial: Optional[List[Event]] = None):
        self._document: Optional[str] = None
        self._revision = 0
        self.commit_count = 0
        if initial is not None:
            self._document = dump_document(initial)
            self._revision = 1

    async def load(self) -> EventSnapshot:
        if self._document is None:
            return EventSnapshot(events=[], version=None)
        return EventSnapshot(
            events=parse_document(self._document), version=str(self._revision)
        )

    async def commit(self, events: List[Event], version: Optional[str] = None) -> None:
        current = str(self._revision) if self._document is not None else None
        if version != current:
            raise VersionConflict(
                f"Stale version {version!r}, document is at {current!r}"
            )
        self._document = dump_document(events)
        self._revision += 1
        self.commit_count += 1

    def replace_document(self, raw: str) -> None:
        """Overwrite the stored document as an outside writer would."""
        self._document = raw
        self._revision += 1
