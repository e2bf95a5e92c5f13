"""
Per-show star ratings and the derived average.

Every write recomputes `average_rating` from the full `ratings` map inside one
compare-and-set on the show document, so concurrent raters never lose updates.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from tubeheads_backend.db.store import DEFAULT_MAX_ATTEMPTS, SHOWS, DocumentStore, transact
from tubeheads_backend.errors import NotFoundError
from tubeheads_backend.models import RatingSummary, Show, ShowMetadata, decode_document
from tubeheads_backend.services.base import require_id, validate_rating
from tubeheads_backend.services.catalog import ShowCatalog


def summarize(ratings: Mapping[str, float]) -> RatingSummary:
    if not ratings:
        return RatingSummary(average=0.0, count=0)
    values = [float(v) for v in ratings.values()]
    return RatingSummary(average=sum(values) / len(values), count=len(values))


def aggregate_patch(
    doc: Mapping[str, Any],
    *,
    set_ratings: Mapping[str, float] | None = None,
    remove_users: Iterable[str] = (),
    review_count_delta: int = 0,
) -> dict[str, Any]:
    """New aggregate fields for a show document after applying the given changes."""

    ratings = {str(k): float(v) for k, v in dict(doc.get("ratings") or {}).items()}
    for user_id in remove_users:
        ratings.pop(user_id, None)
    ratings.update(set_ratings or {})

    patch: dict[str, Any] = {
        "ratings": ratings,
        "average_rating": summarize(ratings).average,
    }
    if review_count_delta:
        patch["review_count"] = max(0, int(doc.get("review_count") or 0) + int(review_count_delta))
    return patch


class RatingLedger:
    def __init__(
        self,
        store: DocumentStore,
        *,
        catalog: ShowCatalog | None = None,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self.store = store
        self.catalog = catalog or ShowCatalog(store)
        self.max_attempts = max_attempts

    def rate(
        self,
        show_id: str,
        user_id: str,
        rating: float,
        *,
        metadata: ShowMetadata | None = None,
    ) -> RatingSummary:
        """
        Record `user_id`'s rating for a show, replacing any earlier one.

        The show is created from `metadata` on first reference.
        """

        rating = validate_rating(rating)
        user_id = require_id(user_id, "user_id")
        show = self.catalog.resolve(require_id(show_id, "show_id"), metadata)
        updated = self.apply(show.id, set_ratings={user_id: rating})
        return summarize(updated.ratings)

    def remove_rating(self, show_id: str, user_id: str) -> RatingSummary:
        updated = self.apply(require_id(show_id, "show_id"), remove_users=[require_id(user_id, "user_id")])
        return summarize(updated.ratings)

    def get_average(self, show_id: str) -> RatingSummary:
        return summarize(self.catalog.get_show(show_id).ratings)

    def apply(
        self,
        show_id: str,
        *,
        set_ratings: Mapping[str, float] | None = None,
        remove_users: Iterable[str] = (),
        review_count_delta: int = 0,
    ) -> Show:
        """Apply rating and review-count changes to one show in a single conditional write."""

        remove_users = list(remove_users)

        def mutate(doc: dict[str, Any]) -> dict[str, Any]:
            return aggregate_patch(
                doc,
                set_ratings=set_ratings,
                remove_users=remove_users,
                review_count_delta=review_count_delta,
            )

        try:
            doc = transact(self.store, SHOWS, show_id, mutate, max_attempts=self.max_attempts)
        except NotFoundError as exc:
            raise NotFoundError(f"Show {show_id} not found") from exc
        return decode_document(Show, SHOWS, doc)
