from __future__ import annotations

import logging
import random
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from typing import Any

from tubeheads_backend.errors import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

Document = dict[str, Any]

# Collections used by the service core.
SHOWS = "shows"
REVIEWS = "reviews"
REVIEW_KEYS = "review_keys"
WATCHLIST_ENTRIES = "watchlist_entries"
WATCHED_SHOWS = "watched_shows"
SHOW_LISTS = "show_lists"
LIST_LIKES = "list_likes"

DEFAULT_MAX_ATTEMPTS = 3


class DocumentStore(ABC):
    """
    Collection/document addressed store.

    Every stored document carries its `id` and an integer `version`. Writers that
    need read-modify-write semantics go through `transact`, which relies on
    `compare_and_set` to detect concurrent writers.
    """

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Document | None: ...

    @abstractmethod
    def insert(self, collection: str, fields: Mapping[str, Any], *, doc_id: str | None = None) -> Document:
        """Create a document. Raises ConflictError if `doc_id` already exists."""

    @abstractmethod
    def upsert(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> Document:
        """Partial merge into an existing document, or create it."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> bool:
        """Returns True when a document was removed."""

    @abstractmethod
    def query(
        self,
        collection: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]: ...

    @abstractmethod
    def compare_and_set(
        self,
        collection: str,
        doc_id: str,
        expected_version: int,
        fields: Mapping[str, Any],
    ) -> Document | None:
        """
        Write `fields` only if the stored version still equals `expected_version`.

        Returns the updated document, or None when the document changed (or vanished)
        since it was read.
        """


def _backoff(attempt: int, base_delay: float) -> float:
    delay = base_delay * (2**attempt)
    return delay + random.uniform(0.0, delay * 0.25)


def transact(
    store: DocumentStore,
    collection: str,
    doc_id: str,
    mutate: Callable[[Document], Mapping[str, Any]],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = 0.05,
) -> Document:
    """
    Optimistic read-modify-write of one document.

    `mutate` receives a copy of the current document and returns the fields to
    write (empty means nothing to change); it may raise to abort. Raises
    NotFoundError when the document does not exist and ConflictError when every
    attempt lost a race.
    """

    attempts = max(1, int(max_attempts))
    for attempt in range(attempts):
        current = store.get(collection, doc_id)
        if current is None:
            raise NotFoundError(f"{collection} document {doc_id} not found")
        fields = mutate(dict(current))
        if not fields:
            return current
        updated = store.compare_and_set(collection, doc_id, int(current.get("version") or 0), fields)
        if updated is not None:
            return updated
        if attempt < attempts - 1:
            logger.warning(
                f"Concurrent write on {collection}/{doc_id}; retrying (attempt {attempt + 2}/{attempts})"
            )
            time.sleep(_backoff(attempt, base_delay))

    raise ConflictError(f"Gave up updating {collection}/{doc_id} after {attempts} conflicting attempts")


def increment(
    store: DocumentStore,
    collection: str,
    doc_id: str,
    field: str,
    delta: int,
    *,
    floor: int | None = 0,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> Document:
    """Atomically add `delta` to an integer field, clamped at `floor`."""

    def apply(doc: Document) -> dict[str, Any]:
        value = int(doc.get(field) or 0) + int(delta)
        if floor is not None:
            value = max(floor, value)
        return {field: value}

    return transact(store, collection, doc_id, apply, max_attempts=max_attempts)
