from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from tubeheads_backend.db.memory import InMemoryDocumentStore
from tubeheads_backend.models import ShowMetadata
from tubeheads_backend.services import CoreServices


class TickingClock:
    """Returns a strictly increasing time on every call so ordering is deterministic."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=UTC)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(timeout_seconds=1.0)


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def services(store: InMemoryDocumentStore, clock: TickingClock) -> CoreServices:
    return CoreServices.create(store, clock=clock)


@pytest.fixture
def breaking_bad() -> ShowMetadata:
    return ShowMetadata(
        tmdb_id=1396,
        name="Breaking Bad",
        overview="A chemistry instructor turns to crime.",
        poster_path="/ggFHVNu6YYI5L9pCfOacjizRGt.jpg",
        backdrop_path="/tsRy63Mu5cu8etL1X7ZLyf7UP1M.jpg",
        first_air_date="2008-01-20",
    )


@pytest.fixture
def seed_shows(services: CoreServices):
    """Put placeholder shows into the catalog under the given ids."""

    def seed(*show_ids: str) -> None:
        for n, show_id in enumerate(show_ids):
            services.catalog.ensure_show(ShowMetadata(tmdb_id=1000 + n, name=f"Show {show_id}"), show_id=show_id)

    return seed
