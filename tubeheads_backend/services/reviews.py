"""
Text reviews, one per user per show, each paired with that user's rating.

A review and its rating move together: creating a review sets the rating and
bumps `review_count` in one show write; deleting it removes both. The review
document and the show aggregate are separate documents, so a failed aggregate
write is compensated (on create and edit) or reported for `reconcile_show`
(on delete).
A `review_keys` document per (show, user) claims the pair so two concurrent
submissions cannot both succeed.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from tubeheads_backend.db.store import DEFAULT_MAX_ATTEMPTS, REVIEW_KEYS, REVIEWS, SHOWS, DocumentStore, transact
from tubeheads_backend.errors import CatalogError, ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from tubeheads_backend.models import LikeState, Review, Show, ShowMetadata, decode_document, decode_documents
from tubeheads_backend.services.base import Clock, iso_timestamp, membership_key, require_id, utc_now, validate_rating
from tubeheads_backend.services.ratings import RatingLedger, aggregate_patch

logger = logging.getLogger(__name__)

CLAIM_GRACE_SECONDS = 300.0


def _validate_content(content: object) -> str:
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Review content must not be empty")
    return content


class ReviewStore:
    def __init__(
        self,
        store: DocumentStore,
        *,
        ledger: RatingLedger | None = None,
        clock: Clock = utc_now,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        claim_grace_seconds: float = CLAIM_GRACE_SECONDS,
    ) -> None:
        self.store = store
        self.ledger = ledger or RatingLedger(store, max_attempts=max_attempts)
        self.clock = clock
        self.max_attempts = max_attempts
        self.claim_grace_seconds = claim_grace_seconds

    def add(
        self,
        user_id: str,
        show_id: str,
        content: str,
        rating: float,
        *,
        metadata: ShowMetadata | None = None,
    ) -> Review:
        content = _validate_content(content)
        rating = validate_rating(rating)
        user_id = require_id(user_id, "user_id")
        show = self.ledger.catalog.resolve(require_id(show_id, "show_id"), metadata)

        review_id = str(uuid4())
        key = membership_key(show.id, user_id)
        self._claim(key, show.id, user_id, review_id)

        now = iso_timestamp(self.clock)
        fields = {
            "show_id": show.id,
            "user_id": user_id,
            "content": content,
            "rating": rating,
            "created_at": now,
            "edited_at": None,
            "liked_by": [],
            "like_count": 0,
        }
        try:
            doc = self.store.insert(REVIEWS, fields, doc_id=review_id)
        except CatalogError:
            self.store.delete(REVIEW_KEYS, key)
            raise

        try:
            self.ledger.apply(show.id, set_ratings={user_id: rating}, review_count_delta=1)
        except CatalogError:
            logger.warning(f"Rolling back review {review_id}: show {show.id} aggregate update failed")
            self.store.delete(REVIEWS, review_id)
            self.store.delete(REVIEW_KEYS, key)
            raise

        logger.info(f"User {user_id} reviewed show {show.id} (review {review_id})")
        return decode_document(Review, REVIEWS, doc)

    def _claim(self, key: str, show_id: str, user_id: str, review_id: str) -> None:
        claim = {
            "show_id": show_id,
            "user_id": user_id,
            "review_id": review_id,
            "claimed_at": iso_timestamp(self.clock),
        }
        try:
            self.store.insert(REVIEW_KEYS, claim, doc_id=key)
            return
        except ConflictError:
            existing = self.store.get(REVIEW_KEYS, key)

        if existing is None:
            # Released between our insert and read.
            try:
                self.store.insert(REVIEW_KEYS, claim, doc_id=key)
                return
            except ConflictError:
                pass
        elif self._is_stale(existing):
            logger.warning(f"Taking over stale review claim {key}")
            version = int(existing.get("version") or 0)
            if self.store.compare_and_set(REVIEW_KEYS, key, version, claim) is not None:
                return

        raise ConflictError(f"User {user_id} has already reviewed show {show_id}; edit the existing review instead")

    def _is_stale(self, claim: dict[str, Any]) -> bool:
        """
        A claim is stale when its review is gone and it is older than the grace period.

        A fresh claim without a review belongs to an `add` that is still running.
        """

        if self.store.get(REVIEWS, str(claim.get("review_id"))) is not None:
            return False
        try:
            claimed_at = datetime.fromisoformat(str(claim.get("claimed_at")))
        except ValueError:
            return True
        if claimed_at.tzinfo is None:
            claimed_at = claimed_at.replace(tzinfo=UTC)
        return self.clock() - claimed_at >= timedelta(seconds=self.claim_grace_seconds)

    def get(self, review_id: str) -> Review:
        review_id = require_id(review_id, "review_id")
        doc = self.store.get(REVIEWS, review_id)
        if doc is None:
            raise NotFoundError(f"Review {review_id} not found")
        return decode_document(Review, REVIEWS, doc)

    def _get_authored(self, review_id: str, user_id: str | None) -> Review:
        review = self.get(review_id)
        if user_id is not None and user_id != review.user_id:
            raise PermissionDeniedError(f"User {user_id} is not the author of review {review.id}")
        return review

    def edit(self, review_id: str, content: str, rating: float, *, user_id: str | None = None) -> Review:
        content = _validate_content(content)
        rating = validate_rating(rating)
        review = self._get_authored(review_id, user_id)

        edited_at = iso_timestamp(self.clock)
        previous: dict[str, Any] = {}

        def rewrite(doc: dict[str, Any]) -> dict[str, Any]:
            previous.clear()
            previous.update({field: doc.get(field) for field in ("content", "rating", "edited_at")})
            return {"content": content, "rating": rating, "edited_at": edited_at}

        try:
            doc = transact(self.store, REVIEWS, review.id, rewrite, max_attempts=self.max_attempts)
        except NotFoundError as exc:
            raise NotFoundError(f"Review {review.id} not found") from exc

        try:
            self.ledger.rate(review.show_id, review.user_id, rating)
        except CatalogError:
            logger.warning(f"Restoring review {review.id}: show {review.show_id} rating update failed")
            self._restore(review.id, previous)
            raise
        return decode_document(Review, REVIEWS, doc)

    def _restore(self, review_id: str, fields: dict[str, Any]) -> None:
        try:
            transact(self.store, REVIEWS, review_id, lambda _doc: dict(fields), max_attempts=self.max_attempts)
        except CatalogError as exc:
            logger.error(
                f"Review {review_id} was edited but its rating did not reach the show and the edit could not "
                f"be undone ({exc}); run reconcile_show to repair"
            )

    def delete(self, review_id: str, *, user_id: str | None = None) -> None:
        review = self._get_authored(review_id, user_id)
        if not self.store.delete(REVIEWS, review.id):
            raise NotFoundError(f"Review {review.id} not found")

        key = membership_key(review.show_id, review.user_id)
        claim = self.store.get(REVIEW_KEYS, key)
        if claim is not None and claim.get("review_id") == review.id:
            self.store.delete(REVIEW_KEYS, key)

        try:
            self.ledger.apply(review.show_id, remove_users=[review.user_id], review_count_delta=-1)
        except CatalogError:
            logger.error(
                f"Review {review.id} deleted but show {review.show_id} aggregate was not updated; "
                "run reconcile_show to repair"
            )
            raise

    def like(self, review_id: str, user_id: str) -> LikeState:
        """Toggle `user_id`'s like and return the resulting state."""

        review_id = require_id(review_id, "review_id")
        user_id = require_id(user_id, "user_id")

        def toggle(doc: dict[str, Any]) -> dict[str, Any]:
            liked_by = [str(u) for u in doc.get("liked_by") or []]
            if user_id in liked_by:
                liked_by = [u for u in liked_by if u != user_id]
            else:
                liked_by.append(user_id)
            return {"liked_by": liked_by, "like_count": len(liked_by)}

        try:
            doc = transact(self.store, REVIEWS, review_id, toggle, max_attempts=self.max_attempts)
        except NotFoundError as exc:
            raise NotFoundError(f"Review {review_id} not found") from exc
        review = decode_document(Review, REVIEWS, doc)
        return LikeState(like_count=review.like_count, liked_by_caller=user_id in review.liked_by)

    def for_show(self, show_id: str) -> list[Review]:
        rows = self.store.query(
            REVIEWS,
            filters={"show_id": require_id(show_id, "show_id")},
            order_by="created_at",
            descending=True,
        )
        return decode_documents(Review, REVIEWS, rows)

    def by_user(self, user_id: str) -> list[Review]:
        rows = self.store.query(
            REVIEWS,
            filters={"user_id": require_id(user_id, "user_id")},
            order_by="created_at",
            descending=True,
        )
        return decode_documents(Review, REVIEWS, rows)

    def reconcile_show(self, show_id: str) -> Show:
        """
        Repair a show aggregate from its live reviews.

        `review_count` is recounted and every review's rating is re-applied.
        Ratings submitted without a review are kept as they are.
        """

        show = self.ledger.catalog.get_show(show_id)
        reviews = self.for_show(show.id)
        review_ratings = {review.user_id: review.rating for review in reviews}

        def repair(doc: dict[str, Any]) -> dict[str, Any]:
            patch = aggregate_patch(doc, set_ratings=review_ratings)
            patch["review_count"] = len(reviews)
            return patch

        doc = transact(self.store, SHOWS, show.id, repair, max_attempts=self.max_attempts)
        repaired = decode_document(Show, SHOWS, doc)
        if repaired.review_count != show.review_count or repaired.ratings != show.ratings:
            logger.info(
                f"Reconciled show {show.id}: review_count {show.review_count} -> {repaired.review_count}, "
                f"ratings {len(show.ratings)} -> {len(repaired.ratings)}"
            )
        return repaired
