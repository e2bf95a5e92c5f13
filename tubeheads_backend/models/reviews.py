from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, computed_field

from tubeheads_backend.models.shows import Rating


class Review(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    show_id: str
    user_id: str
    content: str
    rating: Rating
    created_at: datetime
    edited_at: datetime | None = None
    liked_by: list[str]
    version: int

    @computed_field
    @property
    def like_count(self) -> int:
        return len(self.liked_by)


class LikeState(BaseModel):
    """Authoritative like state after a toggle."""

    model_config = ConfigDict(frozen=True)

    like_count: int
    liked_by_caller: bool
