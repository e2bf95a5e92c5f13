"""
Review endpoints (edit, delete, like toggle, per-user listing).

Reviews are created under /shows/{show_id}/reviews. All reads are public;
writes require authentication and only the author may edit or delete.
"""
from __future__ import annotations

from fastapi import APIRouter, Response
from pydantic import BaseModel

from api.auth import CurrentUser
from api.deps import Services
from tubeheads_backend.models import LikeState, Review

router = APIRouter(tags=["reviews"])


class ReviewEdit(BaseModel):
    content: str
    rating: float


@router.get("/reviews/{review_id}", response_model=Review)
def get_review(services: Services, review_id: str) -> Review:
    return services.reviews.get(review_id)


@router.put("/reviews/{review_id}", response_model=Review)
def edit_review(services: Services, review_id: str, edit: ReviewEdit, user: CurrentUser) -> Review:
    return services.reviews.edit(review_id, edit.content, edit.rating, user_id=user["id"])


@router.delete("/reviews/{review_id}", status_code=204)
def delete_review(services: Services, review_id: str, user: CurrentUser) -> Response:
    """Delete a review together with its rating."""
    services.reviews.delete(review_id, user_id=user["id"])
    return Response(status_code=204)


@router.post("/reviews/{review_id}/like", response_model=LikeState)
def toggle_review_like(services: Services, review_id: str, user: CurrentUser) -> LikeState:
    """
    Toggle the caller's like (add if missing, remove if present).
    Returns the authoritative like state after the toggle.
    """
    return services.reviews.like(review_id, user["id"])


@router.get("/users/{user_id}/reviews", response_model=list[Review])
def list_user_reviews(services: Services, user_id: str) -> list[Review]:
    return services.reviews.by_user(user_id)
