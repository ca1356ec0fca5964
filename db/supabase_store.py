"""
Supabase event store.

The whole event document lives in a single row of a documents table:

    CREATE TABLE reminder_documents (
        key TEXT PRIMARY KEY,
        payload JSONB NOT NULL,
        revision INTEGER NOT NULL
    );

Writes are conditional on the revision read by the matching load, which makes
each commit an atomic compare-and-swap on the row.
"""

from typing import List, Optional

from supabase import Client as SupabaseClientType
from supabase import PostgrestAPIError, create_client

from db.base import EventStore, parse_document
from models.event import Event, EventSnapshot
from utils.constants import DEFAULT_DOCUMENT_KEY
from utils.exceptions import StoreUnavailable, VersionConflict
from utils.logging_config import setup_logging

logger = setup_logging(
    name=__name__, log_level="INFO", log_file="store.log", log_dir="logs"
)

_UNIQUE_VIOLATION = "23505"


class SupabaseEventStore(EventStore):
    """Event store backed by one row of a Supabase table."""

    name = "supabase"

    def __init__(
        self,
        url: str,
        key: str,
        table: str = "reminder_documents",
        document_key: str = DEFAULT_DOCUMENT_KEY,
        client: Optional[SupabaseClientType] = None,
    ):
        self.client: SupabaseClientType = client or create_client(url, key)
        self.table = table
        self.document_key = document_key

    async def load(self) -> EventSnapshot:
        try:
            response = (
                self.client.table(self.table)
                .select("*")
                .eq("key", self.document_key)
                .execute()
            )
        except Exception as e:
            raise StoreUnavailable(f"Failed to load events from Supabase: {e}") from e

        if not response.data:
            return EventSnapshot(events=[], version=None)

        row = response.data[0]
        return EventSnapshot(
            events=parse_document(row.get("payload")),
            version=str(row.get("revision")),
        )

    async def commit(self, events: List[Event], version: Optional[str] = None) -> None:
        payload = [event.model_dump(mode="json") for event in events]

        if version is None:
            await self._insert(payload)
        else:
            await self._update(payload, int(version))

        logger.info(f"Committed {len(events)} events to Supabase table {self.table}")

    async def _insert(self, payload: list) -> None:
        try:
            self.client.table(self.table).insert(
                {"key": self.document_key, "payload": payload, "revision": 1}
            ).execute()
        except PostgrestAPIError as e:
            if e.code == _UNIQUE_VIOLATION:
                raise VersionConflict(
                    f"Document {self.document_key!r} was created concurrently"
                ) from e
            raise StoreUnavailable(f"Failed to create event document: {e}") from e
        except Exception as e:
            raise StoreUnavailable(f"Failed to create event document: {e}") from e

    async def _update(self, payload: list, revision: int) -> None:
        try:
            response = (
                self.client.table(self.table)
                .update({"payload": payload, "revision": revision + 1})
                .eq("key", self.document_key)
                .eq("revision", revision)
                .execute()
            )
        except Exception as e:
            raise StoreUnavailable(f"Failed to update event document: {e}") from e

        if not response.data:
            raise VersionConflict(
                f"Document {self.document_key!r} is no longer at revision {revision}"
            )
