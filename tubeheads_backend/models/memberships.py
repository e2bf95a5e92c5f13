from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

PersonalRating = Annotated[int, Field(ge=1, le=5)]


class WatchlistEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    show_id: str
    added_at: datetime


class WatchedShow(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    show_id: str
    watched_at: datetime
    rating: PersonalRating | None = None


class ShowList(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    name: str = Field(min_length=1)
    description: str
    is_private: bool
    created_at: datetime
    show_ids: list[str]
    like_count: int = 0
    version: int


class ListLike(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    list_id: str
    liked_at: datetime
