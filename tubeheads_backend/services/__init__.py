"""
Service core: show catalog, rating ledger, membership sets and review store.

Every service takes its store (and any other collaborator) as a constructor
argument; `CoreServices.create` wires one shared set together.
"""

from __future__ import annotations

from dataclasses import dataclass

from tubeheads_backend.db.store import DEFAULT_MAX_ATTEMPTS, DocumentStore
from tubeheads_backend.services.base import Clock, utc_now
from tubeheads_backend.services.catalog import MetadataSource, ShowCatalog, TmdbMetadataSource, show_id_for_tmdb_id
from tubeheads_backend.services.memberships import WatchedSet, Watchlist
from tubeheads_backend.services.ratings import RatingLedger
from tubeheads_backend.services.reviews import ReviewStore
from tubeheads_backend.services.show_lists import ShowLists


@dataclass(frozen=True)
class CoreServices:
    catalog: ShowCatalog
    ratings: RatingLedger
    watchlist: Watchlist
    watched: WatchedSet
    lists: ShowLists
    reviews: ReviewStore

    @classmethod
    def create(
        cls,
        store: DocumentStore,
        *,
        metadata_source: MetadataSource | None = None,
        clock: Clock = utc_now,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> CoreServices:
        catalog = ShowCatalog(store, metadata_source=metadata_source, clock=clock)
        ratings = RatingLedger(store, catalog=catalog, max_attempts=max_attempts)
        return cls(
            catalog=catalog,
            ratings=ratings,
            watchlist=Watchlist(store, catalog=catalog, clock=clock),
            watched=WatchedSet(store, catalog=catalog, clock=clock),
            lists=ShowLists(store, catalog=catalog, clock=clock, max_attempts=max_attempts),
            reviews=ReviewStore(store, ledger=ratings, clock=clock, max_attempts=max_attempts),
        )


__all__ = [
    "CoreServices",
    "RatingLedger",
    "ReviewStore",
    "ShowCatalog",
    "ShowLists",
    "TmdbMetadataSource",
    "WatchedSet",
    "Watchlist",
    "show_id_for_tmdb_id",
]
