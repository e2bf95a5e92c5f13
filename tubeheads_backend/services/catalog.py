from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from uuid import UUID, uuid5

import requests

from tubeheads_backend.db.store import SHOWS, DocumentStore
from tubeheads_backend.errors import ConflictError, NotFoundError, ValidationError
from tubeheads_backend.integrations.tmdb.client import (
    DEFAULT_TIMEOUT_SECONDS,
    fetch_tv_details,
    parse_show_metadata,
)
from tubeheads_backend.models import Show, ShowMetadata, decode_document
from tubeheads_backend.services.base import Clock, iso_timestamp, require_id, utc_now

logger = logging.getLogger(__name__)

SHOW_ID_NAMESPACE = UUID("6f1c2a4e-8d0b-4f5e-9a3c-2b7d1e0f4c58")

MetadataSource = Callable[[int], ShowMetadata]


def show_id_for_tmdb_id(tmdb_id: int) -> str:
    """Deterministic store id for a TMDb show, so concurrent first references converge."""

    return str(uuid5(SHOW_ID_NAMESPACE, f"tmdb:{int(tmdb_id)}"))


class TmdbMetadataSource:
    """Looks up show metadata on TMDb; callable as a `MetadataSource`."""

    def __init__(
        self,
        *,
        api_key: str | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def __call__(self, tmdb_id: int) -> ShowMetadata:
        payload = fetch_tv_details(
            tmdb_id,
            api_key=self.api_key,
            session=self.session,
            timeout_seconds=self.timeout_seconds,
        )
        return parse_show_metadata(payload)


class ShowCatalog:
    """
    Show records owned by the core.

    Shows are created lazily the first time they are referenced and never deleted.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        metadata_source: MetadataSource | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.metadata_source = metadata_source
        self.clock = clock

    def find_show(self, show_id: str) -> Show | None:
        doc = self.store.get(SHOWS, require_id(show_id, "show_id"))
        return decode_document(Show, SHOWS, doc) if doc is not None else None

    def get_show(self, show_id: str) -> Show:
        show = self.find_show(show_id)
        if show is None:
            raise NotFoundError(f"Show {show_id} not found")
        return show

    def get_show_by_tmdb_id(self, tmdb_id: int) -> Show | None:
        show = self.find_show(show_id_for_tmdb_id(tmdb_id))
        if show is not None:
            return show
        rows = self.store.query(SHOWS, filters={"tmdb_id": int(tmdb_id)}, limit=1)
        return decode_document(Show, SHOWS, rows[0]) if rows else None

    def ensure_show(self, metadata: ShowMetadata, *, show_id: str | None = None) -> Show:
        """Return the show for `metadata`, creating it if this is the first reference."""

        doc_id = show_id or show_id_for_tmdb_id(metadata.tmdb_id)
        existing = self.find_show(doc_id)
        if existing is not None:
            return existing

        fields = {
            **metadata.to_fields(),
            "ratings": {},
            "average_rating": 0.0,
            "review_count": 0,
            "created_at": iso_timestamp(self.clock),
        }
        try:
            doc = self.store.insert(SHOWS, fields, doc_id=doc_id)
        except ConflictError:
            # Another caller created it between our read and insert.
            return self.get_show(doc_id)
        logger.info(f"Created show {doc_id} for TMDb id {metadata.tmdb_id}")
        return decode_document(Show, SHOWS, doc)

    def ensure_show_for_tmdb_id(self, tmdb_id: int) -> Show:
        if isinstance(tmdb_id, bool) or not isinstance(tmdb_id, int) or tmdb_id <= 0:
            raise ValidationError(f"tmdb_id must be a positive integer, got {tmdb_id!r}")
        existing = self.get_show_by_tmdb_id(tmdb_id)
        if existing is not None:
            return existing
        if self.metadata_source is None:
            raise NotFoundError(f"Show with TMDb id {tmdb_id} not found and no metadata source is configured")
        return self.ensure_show(self.metadata_source(tmdb_id))

    def resolve(self, show_id: str, metadata: ShowMetadata | None = None) -> Show:
        """
        Look up `show_id`, creating it from `metadata` when it does not exist yet.

        Raises NotFoundError when the show is unknown and no metadata was supplied.
        """

        show = self.find_show(show_id)
        if show is not None:
            return show
        if metadata is None:
            raise NotFoundError(f"Show {show_id} not found")
        return self.ensure_show(metadata, show_id=show_id)

    def popular_shows(self, limit: int = 20) -> list[Show]:
        rows = self.store.query(SHOWS, order_by="average_rating", descending=True, limit=max(1, int(limit)))
        return [decode_document(Show, SHOWS, row) for row in rows]

    def get_shows(self, show_ids: Iterable[str]) -> list[Show]:
        """Shows in the given order; ids that do not resolve are skipped."""

        shows: list[Show] = []
        for show_id in show_ids:
            show = self.find_show(show_id)
            if show is None:
                logger.warning(f"Skipping unknown show {show_id}")
                continue
            shows.append(show)
        return shows
