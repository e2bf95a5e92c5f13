"""
TMDb integration clients.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tubeheads_backend.integrations.tmdb.client import (
        RegionalShow,
        TmdbClientError,
        fetch_regional_shows,
        fetch_trending_tv,
        fetch_tv_details,
        parse_show_metadata,
        search_tv,
    )

__all__ = [
    "RegionalShow",
    "TmdbClientError",
    "fetch_regional_shows",
    "fetch_trending_tv",
    "fetch_tv_details",
    "parse_show_metadata",
    "search_tv",
]


def __getattr__(name: str):
    if name in __all__:
        from tubeheads_backend.integrations.tmdb import client

        return getattr(client, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
