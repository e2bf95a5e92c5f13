"""
Document store implementations and the optimistic-update helpers built on them.
"""

from __future__ import annotations

from tubeheads_backend.config import Settings
from tubeheads_backend.db.memory import InMemoryDocumentStore
from tubeheads_backend.db.store import DocumentStore, increment, transact


def create_store(settings: Settings) -> DocumentStore:
    if settings.store_backend == "memory":
        return InMemoryDocumentStore(timeout_seconds=settings.store_timeout_seconds)

    from tubeheads_backend.db.supabase import SupabaseDocumentStore

    return SupabaseDocumentStore.from_settings(settings)


__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "create_store",
    "increment",
    "transact",
]
