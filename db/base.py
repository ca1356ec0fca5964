"""
Event store contract and the shared JSON document codec.

Every backend persists the same document: a JSON array of event objects.
Backends differ only in where the document lives and whether they can
detect a concurrent overwrite (version token).
"""

import json
import uuid
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from models.event import Event, EventSnapshot
from utils.exceptions import CorruptDocument


class EventStore(ABC):
    """
    Load/commit adapter over a single persisted event document.

    Stores are stateless with respect to locking: callers serialize
    load-mutate-commit cycles through engine.serializer.MutationSerializer.
    """

    name = "abstract"

    @abstractmethod
    async def load(self) -> EventSnapshot:
        """
        Fetch the current persisted event set.

        Returns:
            Snapshot with events and the backend's version token
            (empty snapshot when the document does not exist yet)

        Raises:
            StoreUnavailable: If the backend cannot be reached
            CorruptDocument: If the payload is not a well-formed event list
        """

    @abstractmethod
    async def commit(self, events: List[Event], version: Optional[str] = None) -> None:
        """
        Durably replace the persisted event set.

        Args:
            events: Complete new event set
            version: Token from the load this commit is based on

        Raises:
            StoreUnavailable: If the backend cannot be reached
            VersionConflict: If the document changed since ``version`` was read
        """

    async def close(self) -> None:
        """Release backend resources (HTTP sessions etc.)."""


def parse_document(raw: Union[str, bytes, List[Any]]) -> List[Event]:
    """
    Decode a persisted event document.

    Accepts the raw JSON text or an already-decoded list. Documents written
    before events carried IDs get one assigned here, derived from the
    event's position and content so repeated loads agree on it.

    Raises:
        CorruptDocument: If the payload is not a JSON array of valid events
    """
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CorruptDocument(f"Event document is not valid JSON: {e}") from e
    else:
        data = raw

    if not isinstance(data, list):
        raise CorruptDocument(
            f"Event document must be a JSON array, got {type(data).__name__}"
        )

    events = []
    seen_ids = set()
    for position, item in enumerate(data):
        if not isinstance(item, dict):
            raise CorruptDocument(f"Event #{position} is not an object")

        item = dict(item)
        if not item.get("id"):
            item["id"] = backfill_event_id(position, item)

        try:
            event = Event.model_validate(item)
        except PydanticValidationError as e:
            raise CorruptDocument(f"Event #{position} is invalid: {e}") from e

        if event.id in seen_ids:
            raise CorruptDocument(f"Duplicate event id in document: {event.id}")
        seen_ids.add(event.id)
        events.append(event)

    return events


def backfill_event_id(position: int, item: dict) -> str:
    """Stable ID for an event stored without one."""
    seed = f"{position}:{item.get('date')}:{item.get('message')}"
    return uuid.uuid5(uuid.NAMESPACE_OID, seed).hex


def dump_document(events: List[Event]) -> str:
    """Encode events as the persisted JSON document."""
    payload = [event.model_dump(mode="json") for event in events]
    return json.dumps(payload, ensure_ascii=False, indent=2)
