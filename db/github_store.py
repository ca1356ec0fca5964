"""
GitHub-hosted event store.

The event document is a JSON file in a GitHub repository, read and written
through the contents API. The blob SHA returned on read is sent back on write,
so GitHub rejects a commit based on an outdated copy.
"""

import asyncio
import base64
import binascii
from typing import Any, Dict, List, Optional

import httpx

from db.base import EventStore, dump_document, parse_document
from models.event import Event, EventSnapshot
from utils.constants import GITHUB_COMMIT_MESSAGE, STORE_REQUEST_TIMEOUT
from utils.exceptions import CorruptDocument, StoreUnavailable, VersionConflict
from utils.logging_config import setup_logging

logger = setup_logging(
    name=__name__, log_level="INFO", log_file="store.log", log_dir="logs"
)

_GITHUB_API = "https://api.github.com"

# Retry configuration for transient failures
_MAX_RETRIES = 3
_RETRY_DELAY = 1.0  # seconds
_RETRY_BACKOFF = 2.0  # exponential backoff multiplier


class GitHubEventStore(EventStore):
    """Event store backed by a file in a GitHub repository."""

    name = "github"

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        path: str = "data/events.json",
        branch: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        retry_delay: float = _RETRY_DELAY,
    ):
        self.owner = owner
        self.repo = repo
        self.path = path.lstrip("/")
        self.branch = branch
        self.retry_delay = retry_delay
        self.client = client or httpx.AsyncClient(
            base_url=_GITHUB_API, timeout=STORE_REQUEST_TIMEOUT
        )
        self._headers = {
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github+json",
        }

    @property
    def contents_url(self) -> str:
        return f"/repos/{self.owner}/{self.repo}/contents/{self.path}"

    async def close(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()

    async def load(self) -> EventSnapshot:
        params = {"ref": self.branch} if self.branch else None
        response = await self._request("GET", params=params)

        if response.status_code == 404:
            logger.info(
                f"{self.owner}/{self.repo}:{self.path} not found, starting empty"
            )
            return EventSnapshot(events=[], version=None)
        self._raise_for_status(response, "read")

        body = response.json()
        if not isinstance(body, dict) or "content" not in body:
            raise CorruptDocument(f"{self.path} is not a file in {self.owner}/{self.repo}")

        try:
            raw = base64.b64decode(body["content"])
        except (binascii.Error, ValueError) as e:
            raise CorruptDocument(f"{self.path} content is not valid base64") from e

        return EventSnapshot(events=parse_document(raw), version=body.get("sha"))

    async def commit(self, events: List[Event], version: Optional[str] = None) -> None:
        document = dump_document(events)
        payload: Dict[str, Any] = {
            "message": GITHUB_COMMIT_MESSAGE,
            "content": base64.b64encode(document.encode("utf-8")).decode("ascii"),
        }
        if version:
            payload["sha"] = version
        if self.branch:
            payload["branch"] = self.branch

        response = await self._request("PUT", json=payload)

        if response.status_code in (409, 422):
            raise VersionConflict(
                f"{self.path} changed on GitHub since it was read (sha={version})"
            )
        self._raise_for_status(response, "write")
        logger.info(f"Committed {len(events)} events to {self.owner}/{self.repo}")

    async def _request(self, method: str, **kwargs) -> httpx.Response:
        """Send a request, retrying network errors and 5xx responses."""
        delay = self.retry_delay

        for attempt in range(_MAX_RETRIES):
            try:
                response = await self.client.request(
                    method, self.contents_url, headers=self._headers, **kwargs
                )
            except httpx.HTTPError as e:
                if attempt < _MAX_RETRIES - 1:
                    logger.warning(
                        f"GitHub {method} failed (attempt {attempt + 1}/{_MAX_RETRIES}): {e}"
                    )
                    await asyncio.sleep(delay)
                    delay *= _RETRY_BACKOFF
                    continue
                raise StoreUnavailable(f"GitHub {method} failed: {e}") from e

            if response.status_code >= 500 and attempt < _MAX_RETRIES - 1:
                logger.warning(
                    f"GitHub {method} returned {response.status_code} "
                    f"(attempt {attempt + 1}/{_MAX_RETRIES})"
                )
                await asyncio.sleep(delay)
                delay *= _RETRY_BACKOFF
                continue

            return response

        # Unreachable: the last attempt always returns or raises
        raise StoreUnavailable(f"GitHub {method} failed")

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        raise StoreUnavailable(
            f"GitHub refused to {action} {self.path}: "
            f"HTTP {response.status_code} {response.text[:200]}"
        )
