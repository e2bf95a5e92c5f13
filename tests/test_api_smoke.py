"""
Smoke tests for the TubeHeads API.

These run against the in-memory document store, so no live database is needed.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from api import auth, deps
from api.main import app
from api.routers import discover
from tubeheads_backend.config import Settings
from tubeheads_backend.db.memory import InMemoryDocumentStore
from tubeheads_backend.integrations.tmdb.client import RegionalShow, TmdbClientError

MOCK_USER = {"id": "user-1", "email": "viewer@example.com", "role": "authenticated"}
OTHER_USER = {"id": "user-2", "email": "other@example.com", "role": "authenticated"}

METADATA = {
    "tmdb_id": 1396,
    "name": "Breaking Bad",
    "poster_path": "/poster.jpg",
    "first_air_date": "2008-01-20",
}


@pytest.fixture
def current_user():
    """Mutable holder for the user the auth dependency returns."""
    return {"user": MOCK_USER}


@pytest.fixture
def client(current_user):
    """Create a test client backed by a fresh in-memory store."""
    store = InMemoryDocumentStore()
    app.dependency_overrides[deps.get_settings] = lambda: Settings(store_backend="memory", tmdb_api_key="test-key")
    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[auth.get_current_user] = lambda: current_user["user"]
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealthEndpoints:
    """Test health check endpoints."""

    def test_root_returns_ok(self, client: TestClient):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "tubeheads-backend"

    def test_health_returns_healthy(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestShowsEndpoints:
    def test_get_show_returns_404_when_not_found(self, client: TestClient):
        response = client.get("/api/v1/shows/missing")
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_popular_shows_empty(self, client: TestClient):
        response = client.get("/api/v1/shows/popular")
        assert response.status_code == 200
        assert response.json() == []

    def test_rate_show_creates_it_and_returns_summary(self, client: TestClient):
        response = client.put("/api/v1/shows/show-1/rating", json={"rating": 4.5, "metadata": METADATA})
        assert response.status_code == 200
        assert response.json() == {"average": 4.5, "count": 1}

        show = client.get("/api/v1/shows/show-1").json()
        assert show["name"] == "Breaking Bad"
        assert show["ratings"] == {"user-1": 4.5}
        assert show["poster_url"] == "https://image.tmdb.org/t/p/w500/poster.jpg"
        assert show["release_year"] == "2008"

    def test_rate_show_rejects_out_of_range(self, client: TestClient):
        response = client.put("/api/v1/shows/show-1/rating", json={"rating": 9, "metadata": METADATA})
        assert response.status_code == 400
        assert response.json()["code"] == "validation_error"

    def test_rate_show_requires_auth(self, client: TestClient, current_user):
        current_user["user"] = None
        response = client.put("/api/v1/shows/show-1/rating", json={"rating": 4, "metadata": METADATA})
        assert response.status_code == 401


class TestReviewsEndpoints:
    def _create_review(self, client: TestClient, rating: float = 4.0) -> dict:
        response = client.post(
            "/api/v1/shows/show-1/reviews",
            json={"content": "Great show", "rating": rating, "metadata": METADATA},
        )
        assert response.status_code == 201
        return response.json()

    def test_create_review_and_list(self, client: TestClient):
        review = self._create_review(client)
        assert review["user_id"] == "user-1"
        assert review["like_count"] == 0

        reviews = client.get("/api/v1/shows/show-1/reviews").json()
        assert [r["id"] for r in reviews] == [review["id"]]
        assert client.get("/api/v1/shows/show-1").json()["review_count"] == 1

    def test_duplicate_review_returns_409(self, client: TestClient):
        self._create_review(client)
        response = client.post("/api/v1/shows/show-1/reviews", json={"content": "Again", "rating": 2})
        assert response.status_code == 409
        assert response.json()["code"] == "conflict"

    def test_edit_by_other_user_returns_403(self, client: TestClient, current_user):
        review = self._create_review(client)
        current_user["user"] = OTHER_USER
        response = client.put(f"/api/v1/reviews/{review['id']}", json={"content": "Mine now", "rating": 1})
        assert response.status_code == 403

    def test_like_toggle(self, client: TestClient):
        review = self._create_review(client)
        first = client.post(f"/api/v1/reviews/{review['id']}/like").json()
        second = client.post(f"/api/v1/reviews/{review['id']}/like").json()
        assert first == {"like_count": 1, "liked_by_caller": True}
        assert second == {"like_count": 0, "liked_by_caller": False}

    def test_delete_review(self, client: TestClient):
        review = self._create_review(client)
        response = client.delete(f"/api/v1/reviews/{review['id']}")
        assert response.status_code == 204
        assert client.get(f"/api/v1/reviews/{review['id']}").status_code == 404
        assert client.get("/api/v1/shows/show-1/rating").json() == {"average": 0.0, "count": 0}


class TestWatchlistEndpoints:
    def test_watchlist_round_trip(self, client: TestClient):
        assert client.put("/api/v1/me/watchlist/show-1", json={"metadata": METADATA}).status_code == 200
        assert client.put("/api/v1/me/watchlist/show-1").status_code == 200
        assert [e["show_id"] for e in client.get("/api/v1/me/watchlist").json()] == ["show-1"]
        assert client.get("/api/v1/me/watchlist/show-1").json()["in_watchlist"] is True

        assert client.delete("/api/v1/me/watchlist/show-1").status_code == 204
        assert client.get("/api/v1/me/watchlist/show-1").json()["in_watchlist"] is False

    def test_mark_watched_with_rating(self, client: TestClient):
        response = client.put("/api/v1/me/watched/show-1", json={"rating": 4, "metadata": METADATA})
        assert response.status_code == 200
        assert response.json()["rating"] == 4

        response = client.put("/api/v1/me/watched/show-1")
        assert response.json()["rating"] == 4

        public = client.get("/api/v1/users/user-1/watched").json()
        assert [w["show_id"] for w in public] == ["show-1"]

    def test_unknown_show_without_metadata_returns_404(self, client: TestClient):
        assert client.put("/api/v1/me/watchlist/missing").status_code == 404
        assert client.put("/api/v1/me/watched/missing", json={"rating": 3}).status_code == 404


class TestListsEndpoints:
    def test_create_and_add_show(self, client: TestClient):
        created = client.post("/api/v1/lists", json={"name": "Favorites"})
        assert created.status_code == 201
        list_id = created.json()["id"]

        client.put(f"/api/v1/lists/{list_id}/shows/show-1", json={"metadata": METADATA})
        updated = client.put(f"/api/v1/lists/{list_id}/shows/show-1")
        assert updated.json()["show_ids"] == ["show-1"]

        shows = client.get(f"/api/v1/lists/{list_id}/shows").json()
        assert [s["name"] for s in shows] == ["Breaking Bad"]

    def test_private_list_is_hidden_from_others(self, client: TestClient, current_user):
        list_id = client.post("/api/v1/lists", json={"name": "Secret", "is_private": True}).json()["id"]

        current_user["user"] = OTHER_USER
        assert client.get(f"/api/v1/lists/{list_id}").status_code == 403
        assert client.get("/api/v1/users/user-1/lists").json() == []

        current_user["user"] = MOCK_USER
        assert [sl["id"] for sl in client.get("/api/v1/users/user-1/lists").json()] == [list_id]

    def test_list_like_state(self, client: TestClient, current_user):
        list_id = client.post("/api/v1/lists", json={"name": "Favorites"}).json()["id"]
        current_user["user"] = OTHER_USER

        assert client.post(f"/api/v1/lists/{list_id}/like").json() == {"list_id": list_id, "liked": True}
        assert [sl["id"] for sl in client.get("/api/v1/me/liked-lists").json()] == [list_id]
        assert client.get(f"/api/v1/lists/{list_id}").json()["like_count"] == 1
        assert client.delete(f"/api/v1/lists/{list_id}/like").json()["liked"] is False
        assert client.get(f"/api/v1/lists/{list_id}").json()["like_count"] == 0

    def test_non_owner_cannot_delete(self, client: TestClient, current_user):
        list_id = client.post("/api/v1/lists", json={"name": "Favorites"}).json()["id"]
        current_user["user"] = OTHER_USER
        assert client.delete(f"/api/v1/lists/{list_id}").status_code == 403


class TestDiscoverEndpoints:
    def test_trending(self, client: TestClient, monkeypatch: pytest.MonkeyPatch):
        calls = {}

        def fake_trending(time_window, **kwargs):
            calls["time_window"] = time_window
            calls["api_key"] = kwargs["api_key"]
            return [{"id": 1, "name": "A"}]

        monkeypatch.setattr(discover, "fetch_trending_tv", fake_trending)
        response = client.get("/api/v1/discover/trending", params={"time_window": "day"})
        assert response.status_code == 200
        assert response.json() == [{"id": 1, "name": "A"}]
        assert calls == {"time_window": "day", "api_key": "test-key"}

    def test_trending_rejects_unknown_window(self, client: TestClient):
        response = client.get("/api/v1/discover/trending", params={"time_window": "month"})
        assert response.status_code == 422

    def test_search_empty_query(self, client: TestClient):
        response = client.get("/api/v1/discover/search")
        assert response.status_code == 200
        assert response.json() == []

    def test_regional(self, client: TestClient, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(
            discover,
            "fetch_regional_shows",
            lambda region, **kwargs: [RegionalShow(show={"id": 2}, providers=[{"provider_name": "Netflix"}])],
        )
        response = client.get("/api/v1/discover/regional", params={"region": "GB"})
        assert response.status_code == 200
        assert response.json() == [{"show": {"id": 2}, "providers": [{"provider_name": "Netflix"}]}]

    def test_tmdb_failure_maps_to_502(self, client: TestClient, monkeypatch: pytest.MonkeyPatch):
        def failing_search(query, **kwargs):
            raise TmdbClientError("TMDb request failed with HTTP 500.", status_code=500)

        monkeypatch.setattr(discover, "search_tv", failing_search)
        response = client.get("/api/v1/discover/search", params={"q": "lost"})
        assert response.status_code == 502
        assert response.json()["code"] == "upstream_error"
