"""
Discovery endpoints backed by TMDb (trending, search, regional popular).

These are read-through to the metadata API; nothing is written to the store.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from api.deps import AppSettings
from tubeheads_backend.integrations.tmdb.client import (
    fetch_regional_shows,
    fetch_trending_tv,
    search_tv,
)

router = APIRouter(prefix="/discover", tags=["discover"])


class RegionalShowOut(BaseModel):
    show: dict[str, Any]
    providers: list[dict[str, Any]]


def _require_tmdb_key(settings: AppSettings) -> str:
    if not settings.tmdb_api_key:
        raise HTTPException(status_code=503, detail="TMDB_API_KEY is not configured")
    return settings.tmdb_api_key


@router.get("/trending", response_model=list[dict[str, Any]])
def trending_shows(
    settings: AppSettings,
    time_window: str = Query(default="week", pattern="^(day|week)$"),
) -> list[dict[str, Any]]:
    """Trending TV shows for the day or week."""
    return fetch_trending_tv(
        time_window,
        api_key=_require_tmdb_key(settings),
        timeout_seconds=settings.tmdb_timeout_seconds,
    )


@router.get("/search", response_model=list[dict[str, Any]])
def search_shows(settings: AppSettings, q: str = Query(default="")) -> list[dict[str, Any]]:
    """Search TV shows by title. An empty query returns no results."""
    if not q.strip():
        return []
    return search_tv(q, api_key=_require_tmdb_key(settings), timeout_seconds=settings.tmdb_timeout_seconds)


@router.get("/regional", response_model=list[RegionalShowOut])
def regional_shows(
    settings: AppSettings,
    region: str = Query(default="US", min_length=2, max_length=2),
) -> list[RegionalShowOut]:
    """Popular shows in a region with the providers that stream, rent or sell them there."""
    shows = fetch_regional_shows(
        region,
        api_key=_require_tmdb_key(settings),
        timeout_seconds=settings.tmdb_timeout_seconds,
    )
    return [RegionalShowOut(show=item.show, providers=item.providers) for item in shows]
