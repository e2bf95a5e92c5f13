from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

TMDB_IMAGE_BASE_URL = "https://image.tmdb.org/t/p"

Rating = Annotated[float, Field(ge=0.0, le=5.0)]


def tmdb_image_url(path: str | None, size: str) -> str | None:
    if not path:
        return None
    return f"{TMDB_IMAGE_BASE_URL}/{size}{path}"


class ShowMetadata(BaseModel):
    """Read-only show metadata as supplied by TMDb."""

    model_config = ConfigDict(frozen=True)

    tmdb_id: int
    name: str
    overview: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    first_air_date: str | None = None

    def to_fields(self) -> dict[str, Any]:
        return self.model_dump()


class Show(BaseModel):
    """
    Canonical show record (maps to `shows`).

    `ratings` maps user id to that user's latest star rating; `average_rating`
    is always the mean of its values (0.0 when empty).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    tmdb_id: int
    name: str
    overview: str | None = None
    poster_path: str | None = None
    backdrop_path: str | None = None
    first_air_date: str | None = None
    ratings: dict[str, Rating]
    average_rating: float
    review_count: int = Field(ge=0)
    version: int

    @computed_field
    @property
    def poster_url(self) -> str | None:
        return tmdb_image_url(self.poster_path, "w500")

    @computed_field
    @property
    def backdrop_url(self) -> str | None:
        return tmdb_image_url(self.backdrop_path, "w1280")

    @computed_field
    @property
    def release_year(self) -> str:
        if not self.first_air_date or len(self.first_air_date) < 4:
            return "TBA"
        return self.first_air_date[:4]


class RatingSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    average: float
    count: int
