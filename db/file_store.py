"""Local JSON file event store."""

import asyncio
import os
from pathlib import Path
from typing import List, Optional, Union

from db.base import EventStore, dump_document, parse_document
from models.event import Event, EventSnapshot
from utils.exceptions import StoreUnavailable
from utils.logging_config import setup_logging

logger = setup_logging(
    name=__name__, log_level="INFO", log_file="store.log", log_dir="logs"
)


class JsonFileEventStore(EventStore):
    """
    Persist events in a JSON file on local disk.

    Writes go to a sibling temp file which is then renamed over the target,
    so readers see either the old or the new document, never a torn one.
    The file has no version token; the serializer lock is the only guard.
    """

    name = "file"

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    async def load(self) -> EventSnapshot:
        raw = await asyncio.to_thread(self._read)
        if raw is None:
            logger.debug(f"Event file {self.path} does not exist yet")
            return EventSnapshot(events=[], version=None)
        return EventSnapshot(events=parse_document(raw), version=None)

    async def commit(self, events: List[Event], version: Optional[str] = None) -> None:
        document = dump_document(events)
        await asyncio.to_thread(self._write, document)
        logger.debug(f"Wrote {len(events)} events to {self.path}")

    def _read(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StoreUnavailable(f"Cannot read event file {self.path}: {e}") from e

    def _write(self, document: str) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as handle:
                handle.write(document)
                handle.flush()
                os.fsync(handle.fileno())
            tmp_path.replace(self.path)
        except OSError as e:
            raise StoreUnavailable(f"Cannot write event file {self.path}: {e}") from e
