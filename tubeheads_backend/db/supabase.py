from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any
from uuid import uuid4

import httpx
from supabase import Client, ClientOptions, create_client

from tubeheads_backend.config import Settings
from tubeheads_backend.db.store import (
    LIST_LIKES,
    REVIEW_KEYS,
    REVIEWS,
    SHOW_LISTS,
    SHOWS,
    WATCHED_SHOWS,
    WATCHLIST_ENTRIES,
    Document,
    DocumentStore,
)
from tubeheads_backend.errors import ConflictError, StoreError, UpstreamTimeoutError

ALL_COLLECTIONS = (SHOWS, REVIEWS, REVIEW_KEYS, WATCHLIST_ENTRIES, WATCHED_SHOWS, SHOW_LISTS, LIST_LIKES)


def create_supabase_admin_client(
    *,
    url: str,
    service_role_key: str,
    schema: str = "social",
    timeout_seconds: float = 10.0,
) -> Client:
    """
    Create a Supabase client using the service role key (bypasses RLS).

    The PostgREST timeout bounds every store call made through this client.
    """

    options = ClientOptions(schema=schema, postgrest_client_timeout=timeout_seconds)
    return create_client(url, service_role_key, options=options)


def _is_unique_violation(message: str) -> bool:
    msg = (message or "").casefold()
    return "23505" in msg or "duplicate key" in msg


def _is_missing_relation(message: str) -> bool:
    msg = (message or "").casefold()
    return (
        "42p01" in msg  # undefined_table
        or "pgrst205" in msg  # postgrest: relation not found in schema cache
        or ("relation" in msg and "does not exist" in msg)
        or ("could not find" in msg and "relation" in msg)
    )


class SupabaseDocumentStore(DocumentStore):
    """
    Document store over PostgREST tables, one table per collection.

    Rows are plain columns (json fields as jsonb). `compare_and_set` is a filtered
    update on `id` and `version`, so an empty result means another writer won.
    `upsert` merges the given columns only and does not advance `version`; it is
    used for collections that are never compare-and-set.
    """

    def __init__(self, db: Client, *, schema: str = "social", timeout_seconds: float = 10.0) -> None:
        self._db = db
        self.schema = schema
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> SupabaseDocumentStore:
        url, key = settings.require_supabase()
        client = create_supabase_admin_client(
            url=url,
            service_role_key=key,
            schema=settings.db_schema,
            timeout_seconds=settings.store_timeout_seconds,
        )
        return cls(client, schema=settings.db_schema, timeout_seconds=settings.store_timeout_seconds)

    def _table(self, collection: str):
        return self._db.schema(self.schema).table(collection)

    def _execute(self, builder: Any, context: str) -> list[Document]:
        try:
            response = builder.execute()
        except httpx.TimeoutException as exc:
            raise UpstreamTimeoutError(
                f"Supabase timed out during {context} after {self.timeout_seconds}s"
            ) from exc
        except Exception as exc:
            if _is_unique_violation(str(exc)):
                raise ConflictError(f"Duplicate key during {context}") from exc
            raise StoreError(f"Supabase error during {context}: {exc}") from exc

        error = getattr(response, "error", None)
        if error:
            raise StoreError(f"Supabase error during {context}: {error}")
        data = response.data or []
        return data if isinstance(data, list) else [data]

    def get(self, collection: str, doc_id: str) -> Document | None:
        rows = self._execute(
            self._table(collection).select("*").eq("id", str(doc_id)).limit(1),
            f"reading {collection}",
        )
        return rows[0] if rows else None

    def insert(self, collection: str, fields: Mapping[str, Any], *, doc_id: str | None = None) -> Document:
        payload = {**dict(fields), "id": str(doc_id) if doc_id else str(uuid4()), "version": 1}
        rows = self._execute(self._table(collection).insert(payload), f"inserting {collection}")
        if not rows:
            raise StoreError(f"Supabase insert returned no data for {collection}.")
        return rows[0]

    def upsert(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> Document:
        payload = {**dict(fields), "id": str(doc_id)}
        rows = self._execute(
            self._table(collection).upsert(payload, on_conflict="id"),
            f"upserting {collection}",
        )
        if not rows:
            raise StoreError(f"Supabase upsert returned no data for {collection}.")
        return rows[0]

    def delete(self, collection: str, doc_id: str) -> bool:
        rows = self._execute(self._table(collection).delete().eq("id", str(doc_id)), f"deleting {collection}")
        return bool(rows)

    def query(
        self,
        collection: str,
        *,
        filters: Mapping[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        builder = self._table(collection).select("*")
        for key, value in (filters or {}).items():
            builder = builder.eq(key, value)
        if order_by:
            builder = builder.order(order_by, desc=descending)
        if limit is not None:
            builder = builder.limit(max(0, int(limit)))
        return self._execute(builder, f"querying {collection}")

    def compare_and_set(
        self,
        collection: str,
        doc_id: str,
        expected_version: int,
        fields: Mapping[str, Any],
    ) -> Document | None:
        payload = {**dict(fields), "version": int(expected_version) + 1}
        payload.pop("id", None)
        rows = self._execute(
            self._table(collection).update(payload).eq("id", str(doc_id)).eq("version", int(expected_version)),
            f"conditionally updating {collection}",
        )
        return rows[0] if rows else None

    def assert_tables_exist(self, collections: Iterable[str] = ALL_COLLECTIONS) -> None:
        """
        Fail fast with a clear error if a table is missing in Supabase.

        This avoids confusing downstream failures when running maintenance jobs.
        """

        for collection in collections:
            try:
                self._execute(self._table(collection).select("id").limit(1), f"{self.schema}.{collection} preflight")
            except StoreError as exc:
                if _is_missing_relation(str(exc)):
                    raise StoreError(
                        f"Database table `{self.schema}.{collection}` is missing. "
                        "Run `supabase db push` to apply migrations "
                        "(see `supabase/migrations/0001_tubeheads_social.sql`)."
                    ) from exc
                raise
