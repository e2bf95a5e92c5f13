"""
Show endpoints: records, aggregate ratings and per-show reviews.
"""
from __future__ import annotations

from fastapi import APIRouter, Query
from pydantic import BaseModel

from api.auth import CurrentUser
from api.deps import Services
from tubeheads_backend.models import RatingSummary, Review, Show, ShowMetadata

router = APIRouter(prefix="/shows", tags=["shows"])


# --- Pydantic models ---


class RatingSubmission(BaseModel):
    """
    Rating payload.
    Note: the rater is server-derived from the auth token, not from client.
    `metadata` lets the client create the show on first reference.
    """

    rating: float
    metadata: ShowMetadata | None = None


class ReviewSubmission(BaseModel):
    content: str
    rating: float
    metadata: ShowMetadata | None = None


# --- Endpoints ---


@router.get("/popular", response_model=list[Show])
def list_popular_shows(services: Services, limit: int = Query(default=20, ge=1, le=100)) -> list[Show]:
    """Shows with the highest average user rating."""
    return services.catalog.popular_shows(limit)


@router.post("/tmdb/{tmdb_id}", response_model=Show)
def ensure_show_for_tmdb_id(services: Services, tmdb_id: int) -> Show:
    """Get the show for a TMDb id, importing its metadata on first use."""
    return services.catalog.ensure_show_for_tmdb_id(tmdb_id)


@router.get("/{show_id}", response_model=Show)
def get_show(services: Services, show_id: str) -> Show:
    return services.catalog.get_show(show_id)


@router.get("/{show_id}/rating", response_model=RatingSummary)
def get_show_rating(services: Services, show_id: str) -> RatingSummary:
    return services.ratings.get_average(show_id)


@router.put("/{show_id}/rating", response_model=RatingSummary)
def rate_show(services: Services, show_id: str, submission: RatingSubmission, user: CurrentUser) -> RatingSummary:
    """
    Set the caller's rating for a show.
    Requires authentication.
    """
    return services.ratings.rate(show_id, user["id"], submission.rating, metadata=submission.metadata)


@router.delete("/{show_id}/rating", response_model=RatingSummary)
def remove_show_rating(services: Services, show_id: str, user: CurrentUser) -> RatingSummary:
    return services.ratings.remove_rating(show_id, user["id"])


@router.get("/{show_id}/reviews", response_model=list[Review])
def list_show_reviews(services: Services, show_id: str) -> list[Review]:
    """Reviews for a show, newest first. Public endpoint."""
    return services.reviews.for_show(show_id)


@router.post("/{show_id}/reviews", response_model=Review, status_code=201)
def create_review(services: Services, show_id: str, submission: ReviewSubmission, user: CurrentUser) -> Review:
    """
    Review a show. One review per user per show; edit it with PUT /reviews/{id}.
    Requires authentication.
    """
    return services.reviews.add(
        user["id"],
        show_id,
        submission.content,
        submission.rating,
        metadata=submission.metadata,
    )
