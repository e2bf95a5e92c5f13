from __future__ import annotations

import logging
import os
import random
import time
from dataclasses import dataclass, field
from typing import Any, Mapping

import requests

from tubeheads_backend.errors import UpstreamTimeoutError
from tubeheads_backend.models.shows import ShowMetadata

logger = logging.getLogger(__name__)

TMDB_API_BASE_URL = "https://api.themoviedb.org/3"
TIME_WINDOWS = ("day", "week")
PROVIDER_KINDS = ("flatrate", "rent", "buy")
DEFAULT_TIMEOUT_SECONDS = 20.0


class TmdbClientError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None, body_snippet: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body_snippet = body_snippet


def _require_api_key(api_key: str | None) -> str:
    resolved = (api_key or os.getenv("TMDB_API_KEY") or "").strip()
    if not resolved:
        raise RuntimeError("TMDB_API_KEY is not set.")
    return resolved


def _sleep_before_retry(attempt: int, retry_after: str | None = None) -> None:
    delay = 1.0 * (2**attempt)
    retry_after = (retry_after or "").strip()
    if retry_after.isdigit():
        delay = max(delay, float(retry_after))
    jitter = random.uniform(0.0, delay * 0.25)
    time.sleep(delay + jitter)


def _request_json(
    session: requests.Session,
    url: str,
    *,
    params: Mapping[str, Any] | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> dict[str, Any]:
    headers = {"accept": "application/json"}
    max_attempts = 3

    last_response: requests.Response | None = None
    for attempt in range(max_attempts):
        try:
            resp = session.get(url, params=params, headers=headers, timeout=timeout_seconds)
        except requests.Timeout as exc:
            raise UpstreamTimeoutError(f"TMDb request timed out after {timeout_seconds}s") from exc
        except requests.RequestException as exc:
            if attempt < max_attempts - 1:
                _sleep_before_retry(attempt)
                continue
            raise TmdbClientError(f"TMDb request failed: {exc}") from exc

        last_response = resp
        if resp.status_code == 200:
            break

        retryable = resp.status_code == 429 or 500 <= resp.status_code < 600
        if retryable and attempt < max_attempts - 1:
            logger.warning(f"TMDb returned HTTP {resp.status_code} for {url}; retrying")
            _sleep_before_retry(attempt, resp.headers.get("Retry-After"))
            continue

        raise TmdbClientError(
            f"TMDb request failed with HTTP {resp.status_code}.",
            status_code=resp.status_code,
            body_snippet=(resp.text or "")[:400],
        )

    if last_response is None:
        raise TmdbClientError("TMDb request failed (no response).")
    resp = last_response

    try:
        payload = resp.json()
    except ValueError as exc:
        raise TmdbClientError(
            "TMDb returned non-JSON response.",
            status_code=resp.status_code,
            body_snippet=(resp.text or "")[:400],
        ) from exc

    if not isinstance(payload, dict):
        raise TmdbClientError("TMDb returned unexpected JSON shape (not an object).")
    return payload


def _results(payload: Mapping[str, Any]) -> list[dict[str, Any]]:
    results = payload.get("results")
    if not isinstance(results, list):
        return []
    return [item for item in results if isinstance(item, dict)]


def parse_show_metadata(payload: Mapping[str, Any]) -> ShowMetadata:
    """Build ShowMetadata from a TMDb TV payload (details or a list result)."""

    tmdb_id = payload.get("id")
    name = payload.get("name")
    if not isinstance(tmdb_id, int) or not isinstance(name, str) or not name.strip():
        raise TmdbClientError(f"TMDb TV payload is missing id/name: {dict(payload)!r}"[:400])

    def optional_str(key: str) -> str | None:
        value = payload.get(key)
        return value if isinstance(value, str) and value else None

    return ShowMetadata(
        tmdb_id=tmdb_id,
        name=name.strip(),
        overview=optional_str("overview"),
        poster_path=optional_str("poster_path"),
        backdrop_path=optional_str("backdrop_path"),
        first_air_date=optional_str("first_air_date"),
    )


def fetch_tv_details(
    tv_id: int,
    *,
    language: str = "en-US",
    api_key: str | None = None,
    session: requests.Session | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    cache: dict[tuple[int, str], dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """
    Fetch a TV series details payload from TMDb (`/3/tv/{id}`).

    Callers may pass a per-run `cache` dict to avoid refetching.
    """

    tv_id_int = int(tv_id)
    cache_key = (tv_id_int, str(language or "en-US"))
    if cache is not None and cache_key in cache:
        return cache[cache_key]

    api_key = _require_api_key(api_key)
    session = session or requests.Session()
    url = f"{TMDB_API_BASE_URL}/tv/{tv_id_int}"
    payload = _request_json(
        session,
        url,
        params={"api_key": api_key, "language": language},
        timeout_seconds=timeout_seconds,
    )
    if cache is not None:
        cache[cache_key] = payload
    return payload


def fetch_trending_tv(
    time_window: str = "week",
    *,
    api_key: str | None = None,
    session: requests.Session | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> list[dict[str, Any]]:
    if time_window not in TIME_WINDOWS:
        raise ValueError(f"time_window must be one of {', '.join(TIME_WINDOWS)}, got {time_window!r}")

    api_key = _require_api_key(api_key)
    session = session or requests.Session()
    url = f"{TMDB_API_BASE_URL}/trending/tv/{time_window}"
    return _results(_request_json(session, url, params={"api_key": api_key}, timeout_seconds=timeout_seconds))


def search_tv(
    query: str,
    *,
    api_key: str | None = None,
    session: requests.Session | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> list[dict[str, Any]]:
    query = (query or "").strip()
    if not query:
        return []

    api_key = _require_api_key(api_key)
    session = session or requests.Session()
    url = f"{TMDB_API_BASE_URL}/search/tv"
    return _results(
        _request_json(session, url, params={"api_key": api_key, "query": query}, timeout_seconds=timeout_seconds)
    )


def fetch_popular_tv(
    region: str,
    *,
    api_key: str | None = None,
    session: requests.Session | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> list[dict[str, Any]]:
    """Popular English-language shows for a region via `/discover/tv`."""

    api_key = _require_api_key(api_key)
    session = session or requests.Session()
    url = f"{TMDB_API_BASE_URL}/discover/tv"
    params = {
        "api_key": api_key,
        "sort_by": "popularity.desc",
        "region": normalize_region(region),
        "with_original_language": "en",
        "include_adult": "false",
        "vote_count.gte": 100,
    }
    return _results(_request_json(session, url, params=params, timeout_seconds=timeout_seconds))


def fetch_tv_watch_providers(
    tv_id: int,
    *,
    api_key: str | None = None,
    session: requests.Session | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> dict[str, Any]:
    api_key = _require_api_key(api_key)
    session = session or requests.Session()
    url = f"{TMDB_API_BASE_URL}/tv/{int(tv_id)}/watch/providers"
    return _request_json(session, url, params={"api_key": api_key}, timeout_seconds=timeout_seconds)


def normalize_region(region: str | None) -> str:
    value = (region or "").strip().upper()
    if len(value) != 2 or not value.isalpha():
        return "US"
    return value


def providers_for_region(payload: Mapping[str, Any], region: str) -> list[dict[str, Any]]:
    """
    Pick the providers offered in `region`: streaming first, then rental, then purchase.
    """

    results = payload.get("results")
    if not isinstance(results, Mapping):
        return []
    country = results.get(normalize_region(region))
    if not isinstance(country, Mapping):
        return []
    for kind in PROVIDER_KINDS:
        providers = country.get(kind)
        if isinstance(providers, list) and providers:
            return [p for p in providers if isinstance(p, dict)]
    return []


@dataclass(frozen=True)
class RegionalShow:
    show: dict[str, Any]
    providers: list[dict[str, Any]] = field(default_factory=list)


def fetch_regional_shows(
    region: str,
    *,
    scan_limit: int = 15,
    result_limit: int = 10,
    api_key: str | None = None,
    session: requests.Session | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
) -> list[RegionalShow]:
    """
    Popular shows in a region paired with where to watch them.

    Shows without providers are only returned when none of the scanned shows has one.
    """

    session = session or requests.Session()
    shows = fetch_popular_tv(region, api_key=api_key, session=session, timeout_seconds=timeout_seconds)

    with_providers: list[RegionalShow] = []
    without_providers: list[RegionalShow] = []
    for show in shows[: max(0, scan_limit)]:
        try:
            payload = fetch_tv_watch_providers(
                show["id"], api_key=api_key, session=session, timeout_seconds=timeout_seconds
            )
        except TmdbClientError as exc:
            logger.warning(f"Skipping watch providers for TMDb show {show.get('id')}: {exc}")
            without_providers.append(RegionalShow(show=show))
            continue

        providers = providers_for_region(payload, region)
        if not providers:
            without_providers.append(RegionalShow(show=show))
            continue
        with_providers.append(RegionalShow(show=show, providers=providers))
        if len(with_providers) >= result_limit:
            break

    if with_providers:
        return with_providers
    return without_providers[:result_limit]
