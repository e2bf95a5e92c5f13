from __future__ import annotations

import copy
import threading
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any
from uuid import uuid4

from tubeheads_backend.db.store import Document, DocumentStore
from tubeheads_backend.errors import ConflictError, UpstreamTimeoutError


class InMemoryDocumentStore(DocumentStore):
    """
    Process-local store for development and tests.

    Documents are deep-copied on the way in and out so callers never share state
    with the store. Every operation must acquire the store lock within
    `timeout_seconds`.
    """

    def __init__(self, *, timeout_seconds: float = 10.0) -> None:
        self._collections: dict[str, dict[str, Document]] = {}
        self._lock = threading.Lock()
        self.timeout_seconds = timeout_seconds

    @contextmanager
    def _locked(self, operation: str) -> Iterator[None]:
        if not self._lock.acquire(timeout=self.timeout_seconds):
            raise UpstreamTimeoutError(f"In-memory store timed out during {operation} after {self.timeout_seconds}s")
        try:
            yield
        finally:
            self._lock.release()

    def _table(self, collection: str) -> dict[str, Document]:
        return self._collections.setdefault(collection, {})

    def get(self, collection: str, doc_id: str) -> Document | None:
        with self._locked(f"get {collection}"):
            doc = self._table(collection).get(str(doc_id))
            return copy.deepcopy(doc) if doc is not None else None

    def insert(self, collection: str, fields: Mapping[str, Any], *, doc_id: str | None = None) -> Document:
        doc_id = str(doc_id) if doc_id else str(uuid4())
        with self._locked(f"insert {collection}"):
            table = self._table(collection)
            if doc_id in table:
                raise ConflictError(f"{collection} document {doc_id} already exists")
            doc = {**copy.deepcopy(dict(fields)), "id": doc_id, "version": 1}
            table[doc_id] = doc
            return copy.deepcopy(doc)

    def upsert(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> Document:
        doc_id = str(doc_id)
        with self._locked(f"upsert {collection}"):
            table = self._table(collection)
            existing = table.get(doc_id) or {"version": 0}
            doc = {**existing, **copy.deepcopy(dict(fields)), "id": doc_id, "version": int(existing["version"]) + 1}
            table[doc_id] = doc
            return copy.deepcopy(doc)

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._locked(f"delete {collection}"):
            return self._table(collection).pop(str(doc_id), None) is not None

    def query(
        self,
        collection: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        with self._locked(f"query {collection}"):
            rows = [
                doc
                for doc in self._table(collection).values()
                if all(doc.get(key) == value for key, value in (filters or {}).items())
            ]
            if order_by:
                # Missing values sort last in both directions.
                present = [doc for doc in rows if doc.get(order_by) is not None]
                missing = [doc for doc in rows if doc.get(order_by) is None]
                present.sort(key=lambda doc: doc[order_by], reverse=descending)
                rows = present + missing
            if limit is not None:
                rows = rows[: max(0, int(limit))]
            return copy.deepcopy(rows)

    def compare_and_set(
        self,
        collection: str,
        doc_id: str,
        expected_version: int,
        fields: Mapping[str, Any],
    ) -> Document | None:
        doc_id = str(doc_id)
        with self._locked(f"compare_and_set {collection}"):
            table = self._table(collection)
            current = table.get(doc_id)
            if current is None or int(current.get("version") or 0) != int(expected_version):
                return None
            doc = {**current, **copy.deepcopy(dict(fields)), "id": doc_id, "version": int(expected_version) + 1}
            table[doc_id] = doc
            return copy.deepcopy(doc)
