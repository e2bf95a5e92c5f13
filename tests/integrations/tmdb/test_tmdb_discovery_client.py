from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from tubeheads_backend.errors import UpstreamTimeoutError
from tubeheads_backend.integrations.tmdb import client as tmdb


def _response(status_code: int = 200, payload=None, headers=None):  # noqa: ANN001, ANN202
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload if payload is not None else {}
    resp.headers = headers or {}
    resp.text = ""
    return resp


@pytest.fixture(autouse=True)
def _no_sleep(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(tmdb, "_sleep_before_retry", lambda *args, **kwargs: None)


def test_fetch_trending_tv_uses_time_window() -> None:
    session = MagicMock()
    session.get.return_value = _response(payload={"results": [{"id": 1, "name": "A"}, "junk"]})

    results = tmdb.fetch_trending_tv("day", api_key="k", session=session)

    assert results == [{"id": 1, "name": "A"}]
    url = session.get.call_args.args[0]
    assert url.endswith("/trending/tv/day")
    assert session.get.call_args.kwargs["params"] == {"api_key": "k"}


def test_fetch_trending_tv_rejects_unknown_window() -> None:
    with pytest.raises(ValueError):
        tmdb.fetch_trending_tv("month", api_key="k", session=MagicMock())


def test_search_tv_skips_empty_query() -> None:
    session = MagicMock()
    assert tmdb.search_tv("   ", api_key="k", session=session) == []
    session.get.assert_not_called()


def test_search_tv_sends_query() -> None:
    session = MagicMock()
    session.get.return_value = _response(payload={"results": [{"id": 7, "name": "Lost"}]})

    assert tmdb.search_tv(" lost ", api_key="k", session=session) == [{"id": 7, "name": "Lost"}]
    assert session.get.call_args.kwargs["params"]["query"] == "lost"


def test_request_retries_on_server_error() -> None:
    session = MagicMock()
    session.get.side_effect = [_response(503), _response(payload={"results": []})]

    assert tmdb.search_tv("lost", api_key="k", session=session) == []
    assert session.get.call_count == 2


def test_request_raises_client_error_after_retries() -> None:
    session = MagicMock()
    session.get.return_value = _response(500)

    with pytest.raises(tmdb.TmdbClientError) as excinfo:
        tmdb.search_tv("lost", api_key="k", session=session)
    assert excinfo.value.status_code == 500
    assert session.get.call_count == 3


def test_request_does_not_retry_client_errors() -> None:
    session = MagicMock()
    session.get.return_value = _response(404)

    with pytest.raises(tmdb.TmdbClientError):
        tmdb.fetch_tv_details(1, api_key="k", session=session)
    assert session.get.call_count == 1


def test_request_timeout_maps_to_upstream_timeout() -> None:
    session = MagicMock()
    session.get.side_effect = requests.Timeout("slow")

    with pytest.raises(UpstreamTimeoutError):
        tmdb.search_tv("lost", api_key="k", session=session, timeout_seconds=1.5)
    assert session.get.call_args.kwargs["timeout"] == 1.5


def test_fetch_tv_details_uses_cache() -> None:
    session = MagicMock()
    session.get.return_value = _response(payload={"id": 1396, "name": "Breaking Bad"})
    cache: dict = {}

    tmdb.fetch_tv_details(1396, api_key="k", session=session, cache=cache)
    tmdb.fetch_tv_details(1396, api_key="k", session=session, cache=cache)
    assert session.get.call_count == 1


def test_parse_show_metadata() -> None:
    metadata = tmdb.parse_show_metadata(
        {"id": 1396, "name": " Breaking Bad ", "overview": "", "poster_path": "/p.jpg", "first_air_date": "2008-01-20"}
    )
    assert metadata.tmdb_id == 1396
    assert metadata.name == "Breaking Bad"
    assert metadata.overview is None
    assert metadata.poster_path == "/p.jpg"

    with pytest.raises(tmdb.TmdbClientError):
        tmdb.parse_show_metadata({"id": 1})


@pytest.mark.parametrize("region,expected", [("gb", "GB"), (None, "US"), ("USA", "US"), ("1A", "US")])
def test_normalize_region(region, expected) -> None:  # noqa: ANN001
    assert tmdb.normalize_region(region) == expected


def test_providers_for_region_prefers_streaming() -> None:
    payload = {
        "results": {
            "US": {"rent": [{"provider_name": "Apple TV"}], "flatrate": [{"provider_name": "Netflix"}]},
            "GB": {"buy": [{"provider_name": "Amazon"}]},
        }
    }
    assert tmdb.providers_for_region(payload, "us") == [{"provider_name": "Netflix"}]
    assert tmdb.providers_for_region(payload, "GB") == [{"provider_name": "Amazon"}]
    assert tmdb.providers_for_region(payload, "FR") == []


def test_fetch_regional_shows_pairs_shows_with_providers(monkeypatch: pytest.MonkeyPatch) -> None:
    shows = [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}, {"id": 3, "name": "C"}]
    providers = {
        1: {"results": {}},
        2: {"results": {"US": {"flatrate": [{"provider_name": "Netflix"}]}}},
    }

    def fake_providers(tv_id, **kwargs):  # noqa: ANN001, ANN003, ANN202
        if tv_id == 3:
            raise tmdb.TmdbClientError("boom", status_code=500)
        return providers[tv_id]

    monkeypatch.setattr(tmdb, "fetch_popular_tv", lambda region, **kwargs: shows)
    monkeypatch.setattr(tmdb, "fetch_tv_watch_providers", fake_providers)

    results = tmdb.fetch_regional_shows("us", api_key="k", session=MagicMock())
    assert [(r.show["id"], r.providers) for r in results] == [(2, [{"provider_name": "Netflix"}])]


def test_fetch_regional_shows_falls_back_to_shows_without_providers(monkeypatch: pytest.MonkeyPatch) -> None:
    shows = [{"id": n, "name": str(n)} for n in range(5)]
    monkeypatch.setattr(tmdb, "fetch_popular_tv", lambda region, **kwargs: shows)
    monkeypatch.setattr(tmdb, "fetch_tv_watch_providers", lambda tv_id, **kwargs: {"results": {}})

    results = tmdb.fetch_regional_shows("US", result_limit=3, api_key="k", session=MagicMock())
    assert [r.show["id"] for r in results] == [0, 1, 2]
    assert all(r.providers == [] for r in results)


def test_fetch_popular_tv_params() -> None:
    session = MagicMock()
    session.get.return_value = _response(payload={"results": []})

    tmdb.fetch_popular_tv("gb", api_key="k", session=session)
    params = session.get.call_args.kwargs["params"]
    assert params["region"] == "GB"
    assert params["sort_by"] == "popularity.desc"
    assert params["with_original_language"] == "en"
