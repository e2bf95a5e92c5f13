"""
Watchlist and watched-show endpoints for the authenticated user.
"""
from __future__ import annotations

from fastapi import APIRouter, Response
from pydantic import BaseModel

from api.auth import CurrentUser
from api.deps import Services
from tubeheads_backend.models import ShowMetadata, WatchedShow, WatchlistEntry

router = APIRouter(tags=["watchlist"])


class WatchlistAdd(BaseModel):
    metadata: ShowMetadata | None = None


class WatchedMark(BaseModel):
    rating: int | None = None
    clear_rating: bool = False
    metadata: ShowMetadata | None = None


class WatchlistMembership(BaseModel):
    show_id: str
    in_watchlist: bool


# --- Watchlist ---


@router.get("/me/watchlist", response_model=list[WatchlistEntry])
def get_watchlist(services: Services, user: CurrentUser) -> list[WatchlistEntry]:
    return services.watchlist.entries(user["id"])


@router.get("/me/watchlist/{show_id}", response_model=WatchlistMembership)
def get_watchlist_membership(services: Services, show_id: str, user: CurrentUser) -> WatchlistMembership:
    return WatchlistMembership(show_id=show_id, in_watchlist=services.watchlist.contains(user["id"], show_id))


@router.put("/me/watchlist/{show_id}", response_model=WatchlistEntry)
def add_to_watchlist(
    services: Services,
    show_id: str,
    user: CurrentUser,
    body: WatchlistAdd | None = None,
) -> WatchlistEntry:
    metadata = body.metadata if body else None
    return services.watchlist.add(user["id"], show_id, metadata=metadata)


@router.delete("/me/watchlist/{show_id}", status_code=204)
def remove_from_watchlist(services: Services, show_id: str, user: CurrentUser) -> Response:
    services.watchlist.remove(user["id"], show_id)
    return Response(status_code=204)


# --- Watched shows ---


@router.get("/me/watched", response_model=list[WatchedShow])
def get_watched_shows(services: Services, user: CurrentUser) -> list[WatchedShow]:
    return services.watched.entries(user["id"])


@router.get("/users/{user_id}/watched", response_model=list[WatchedShow])
def get_user_watched_shows(services: Services, user_id: str) -> list[WatchedShow]:
    """Watched shows for a profile page. Public endpoint."""
    return services.watched.entries(user_id)


@router.put("/me/watched/{show_id}", response_model=WatchedShow)
def mark_watched(
    services: Services,
    show_id: str,
    user: CurrentUser,
    body: WatchedMark | None = None,
) -> WatchedShow:
    """
    Mark a show as watched now, optionally with a personal 1-5 rating.
    Omitting the rating keeps the previous one unless clear_rating is set.
    """
    body = body or WatchedMark()
    return services.watched.mark(
        user["id"],
        show_id,
        body.rating,
        clear_rating=body.clear_rating,
        metadata=body.metadata,
    )


@router.delete("/me/watched/{show_id}", status_code=204)
def unmark_watched(services: Services, show_id: str, user: CurrentUser) -> Response:
    services.watched.unmark(user["id"], show_id)
    return Response(status_code=204)
