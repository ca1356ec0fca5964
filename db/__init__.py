"""Event store backends."""

from .base import EventStore, dump_document, parse_document
from .file_store import JsonFileEventStore
from .memory_store import MemoryEventStore


def get_event_store(settings) -> EventStore:
    """
    Build the event store named by ``settings.store_backend``.

    Remote backends are imported lazily so a file-backed deployment does not
    need their client libraries configured.
    """
    backend = settings.store_backend

    if backend == "memory":
        return MemoryEventStore()
    if backend == "file":
        return JsonFileEventStore(settings.events_file)
    if backend == "github":
        from .github_store import GitHubEventStore

        return GitHubEventStore(
            token=settings.github_token,
            owner=settings.github_owner,
            repo=settings.github_repo,
            path=settings.github_path,
            branch=settings.github_branch,
        )
    if backend == "supabase":
        from .supabase_store import SupabaseEventStore

        return SupabaseEventStore(
            url=settings.supabase_url,
            key=settings.supabase_key,
            table=settings.supabase_table,
            document_key=settings.supabase_document_key,
        )

    raise ValueError(f"Unknown store backend: {backend}")


__all__ = [
    "EventStore",
    "JsonFileEventStore",
    "MemoryEventStore",
    "dump_document",
    "get_event_store",
    "parse_document",
]
