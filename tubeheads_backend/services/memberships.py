"""
Per-user watchlist and watched-set.

Entries are keyed by `user_id:show_id`, so presence is binary and every
operation is idempotent. Adding or marking a show the catalog does not know
requires its metadata.
"""

from __future__ import annotations

from tubeheads_backend.db.store import WATCHED_SHOWS, WATCHLIST_ENTRIES, DocumentStore
from tubeheads_backend.errors import ConflictError, ValidationError
from tubeheads_backend.models import ShowMetadata, WatchedShow, WatchlistEntry, decode_document, decode_documents
from tubeheads_backend.services.base import (
    Clock,
    iso_timestamp,
    membership_key,
    require_id,
    utc_now,
    validate_personal_rating,
)
from tubeheads_backend.services.catalog import ShowCatalog


class Watchlist:
    def __init__(self, store: DocumentStore, *, catalog: ShowCatalog | None = None, clock: Clock = utc_now) -> None:
        self.store = store
        self.catalog = catalog or ShowCatalog(store, clock=clock)
        self.clock = clock

    def add(self, user_id: str, show_id: str, *, metadata: ShowMetadata | None = None) -> WatchlistEntry:
        """Add a show; a repeat call keeps the original `added_at`."""

        user_id = require_id(user_id, "user_id")
        show_id = require_id(show_id, "show_id")
        show_id = self.catalog.resolve(show_id, metadata).id

        key = membership_key(user_id, show_id)
        existing = self.store.get(WATCHLIST_ENTRIES, key)
        if existing is None:
            fields = {"user_id": user_id, "show_id": show_id, "added_at": iso_timestamp(self.clock)}
            try:
                existing = self.store.insert(WATCHLIST_ENTRIES, fields, doc_id=key)
            except ConflictError:
                existing = self.store.get(WATCHLIST_ENTRIES, key) or {**fields, "id": key}
        return decode_document(WatchlistEntry, WATCHLIST_ENTRIES, existing)

    def remove(self, user_id: str, show_id: str) -> None:
        key = membership_key(require_id(user_id, "user_id"), require_id(show_id, "show_id"))
        self.store.delete(WATCHLIST_ENTRIES, key)

    def contains(self, user_id: str, show_id: str) -> bool:
        key = membership_key(require_id(user_id, "user_id"), require_id(show_id, "show_id"))
        return self.store.get(WATCHLIST_ENTRIES, key) is not None

    def entries(self, user_id: str) -> list[WatchlistEntry]:
        rows = self.store.query(
            WATCHLIST_ENTRIES,
            filters={"user_id": require_id(user_id, "user_id")},
            order_by="added_at",
            descending=True,
        )
        return decode_documents(WatchlistEntry, WATCHLIST_ENTRIES, rows)


class WatchedSet:
    def __init__(self, store: DocumentStore, *, catalog: ShowCatalog | None = None, clock: Clock = utc_now) -> None:
        self.store = store
        self.catalog = catalog or ShowCatalog(store, clock=clock)
        self.clock = clock

    def mark(
        self,
        user_id: str,
        show_id: str,
        rating: int | None = None,
        *,
        clear_rating: bool = False,
        metadata: ShowMetadata | None = None,
    ) -> WatchedShow:
        """
        Record a show as watched now.

        An omitted `rating` keeps the previous personal rating unless `clear_rating`
        is set.
        """

        if rating is not None and clear_rating:
            raise ValidationError("pass either rating or clear_rating, not both")
        if rating is not None:
            rating = validate_personal_rating(rating)
        user_id = require_id(user_id, "user_id")
        show_id = require_id(show_id, "show_id")
        show_id = self.catalog.resolve(show_id, metadata).id

        fields: dict[str, object] = {
            "user_id": user_id,
            "show_id": show_id,
            "watched_at": iso_timestamp(self.clock),
        }
        if rating is not None or clear_rating:
            fields["rating"] = rating
        doc = self.store.upsert(WATCHED_SHOWS, membership_key(user_id, show_id), fields)
        return decode_document(WatchedShow, WATCHED_SHOWS, doc)

    def unmark(self, user_id: str, show_id: str) -> None:
        key = membership_key(require_id(user_id, "user_id"), require_id(show_id, "show_id"))
        self.store.delete(WATCHED_SHOWS, key)

    def get(self, user_id: str, show_id: str) -> WatchedShow | None:
        key = membership_key(require_id(user_id, "user_id"), require_id(show_id, "show_id"))
        doc = self.store.get(WATCHED_SHOWS, key)
        return decode_document(WatchedShow, WATCHED_SHOWS, doc) if doc is not None else None

    def entries(self, user_id: str) -> list[WatchedShow]:
        rows = self.store.query(
            WATCHED_SHOWS,
            filters={"user_id": require_id(user_id, "user_id")},
            order_by="watched_at",
            descending=True,
        )
        return decode_documents(WatchedShow, WATCHED_SHOWS, rows)
