"""
User show-list endpoints, including list likes.

Private lists are only visible to their owner. Only the owner may mutate a list.
"""
from __future__ import annotations

from fastapi import APIRouter, Response
from pydantic import BaseModel

from api.auth import CurrentUser, OptionalUser
from api.deps import Services
from tubeheads_backend.errors import PermissionDeniedError
from tubeheads_backend.models import Show, ShowList, ShowMetadata

router = APIRouter(tags=["lists"])


class ListCreate(BaseModel):
    """
    List creation payload.
    Note: the owner is server-derived from the auth token, not from client.
    """

    name: str
    description: str = ""
    is_private: bool = False


class ListPrivacyUpdate(BaseModel):
    is_private: bool


class ListShowAdd(BaseModel):
    metadata: ShowMetadata | None = None


class ListLikeState(BaseModel):
    list_id: str
    liked: bool


def _viewer_id(user: dict | None) -> str | None:
    return user["id"] if user else None


def _visible_list(services, list_id: str, user: dict | None) -> ShowList:
    show_list = services.lists.get(list_id)
    if show_list.is_private and _viewer_id(user) != show_list.user_id:
        raise PermissionDeniedError(f"List {list_id} is private")
    return show_list


@router.post("/lists", response_model=ShowList, status_code=201)
def create_list(services: Services, payload: ListCreate, user: CurrentUser) -> ShowList:
    return services.lists.create(user["id"], payload.name, payload.description, payload.is_private)


@router.get("/lists/{list_id}", response_model=ShowList)
def get_list(services: Services, list_id: str, user: OptionalUser) -> ShowList:
    return _visible_list(services, list_id, user)


@router.patch("/lists/{list_id}", response_model=ShowList)
def update_list_privacy(
    services: Services,
    list_id: str,
    payload: ListPrivacyUpdate,
    user: CurrentUser,
) -> ShowList:
    return services.lists.set_privacy(list_id, payload.is_private, user_id=user["id"])


@router.delete("/lists/{list_id}", status_code=204)
def delete_list(services: Services, list_id: str, user: CurrentUser) -> Response:
    services.lists.delete(list_id, user_id=user["id"])
    return Response(status_code=204)


@router.put("/lists/{list_id}/shows/{show_id}", response_model=ShowList)
def add_show_to_list(
    services: Services,
    list_id: str,
    show_id: str,
    user: CurrentUser,
    body: ListShowAdd | None = None,
) -> ShowList:
    metadata = body.metadata if body else None
    return services.lists.add_show(list_id, show_id, user_id=user["id"], metadata=metadata)


@router.delete("/lists/{list_id}/shows/{show_id}", response_model=ShowList)
def remove_show_from_list(services: Services, list_id: str, show_id: str, user: CurrentUser) -> ShowList:
    return services.lists.remove_show(list_id, show_id, user_id=user["id"])


@router.get("/lists/{list_id}/shows", response_model=list[Show])
def list_shows_in_list(services: Services, list_id: str, user: OptionalUser) -> list[Show]:
    show_list = _visible_list(services, list_id, user)
    return services.catalog.get_shows(show_list.show_ids)


@router.post("/lists/{list_id}/like", response_model=ListLikeState)
def like_list(services: Services, list_id: str, user: CurrentUser) -> ListLikeState:
    return ListLikeState(list_id=list_id, liked=services.lists.like(user["id"], list_id))


@router.delete("/lists/{list_id}/like", response_model=ListLikeState)
def unlike_list(services: Services, list_id: str, user: CurrentUser) -> ListLikeState:
    return ListLikeState(list_id=list_id, liked=services.lists.unlike(user["id"], list_id))


@router.get("/lists/{list_id}/like", response_model=ListLikeState)
def get_list_like(services: Services, list_id: str, user: CurrentUser) -> ListLikeState:
    return ListLikeState(list_id=list_id, liked=services.lists.is_liked(user["id"], list_id))


@router.get("/users/{user_id}/lists", response_model=list[ShowList])
def list_user_lists(services: Services, user_id: str, user: OptionalUser) -> list[ShowList]:
    """A user's lists, newest first. Private lists are included only for their owner."""
    return services.lists.lists_for_user(user_id, include_private=_viewer_id(user) == user_id)


@router.get("/me/liked-lists", response_model=list[ShowList])
def list_liked_lists(services: Services, user: CurrentUser) -> list[ShowList]:
    return services.lists.liked_lists(user["id"])
