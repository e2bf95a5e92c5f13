from __future__ import annotations

import logging
from typing import Any

from tubeheads_backend.db.store import (
    DEFAULT_MAX_ATTEMPTS,
    LIST_LIKES,
    SHOW_LISTS,
    DocumentStore,
    increment,
    transact,
)
from tubeheads_backend.errors import CatalogError, ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from tubeheads_backend.models import Show, ShowList, ShowMetadata, decode_document, decode_documents
from tubeheads_backend.services.base import Clock, iso_timestamp, membership_key, require_id, utc_now
from tubeheads_backend.services.catalog import ShowCatalog

logger = logging.getLogger(__name__)


def _check_owner(owner_id: str, acting_user_id: str | None, list_id: str) -> None:
    if acting_user_id is not None and acting_user_id != owner_id:
        raise PermissionDeniedError(f"User {acting_user_id} does not own list {list_id}")


class ShowLists:
    """
    User-created show lists and list likes.

    Mutations take the acting `user_id`; when given it must be the list owner.
    Passing None skips the check for callers that already authorized the request.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        catalog: ShowCatalog | None = None,
        clock: Clock = utc_now,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ) -> None:
        self.store = store
        self.catalog = catalog or ShowCatalog(store, clock=clock)
        self.clock = clock
        self.max_attempts = max_attempts

    def create(self, user_id: str, name: str, description: str = "", is_private: bool = False) -> ShowList:
        name = (name or "").strip()
        if not name:
            raise ValidationError("List name must not be empty")
        fields = {
            "user_id": require_id(user_id, "user_id"),
            "name": name,
            "description": description or "",
            "is_private": bool(is_private),
            "created_at": iso_timestamp(self.clock),
            "show_ids": [],
            "like_count": 0,
        }
        doc = self.store.insert(SHOW_LISTS, fields)
        logger.info(f"Created list {doc['id']} for user {fields['user_id']}")
        return decode_document(ShowList, SHOW_LISTS, doc)

    def get(self, list_id: str) -> ShowList:
        list_id = require_id(list_id, "list_id")
        doc = self.store.get(SHOW_LISTS, list_id)
        if doc is None:
            raise NotFoundError(f"List {list_id} not found")
        return decode_document(ShowList, SHOW_LISTS, doc)

    def _update(self, list_id: str, acting_user_id: str | None, change) -> ShowList:
        list_id = require_id(list_id, "list_id")

        def mutate(doc: dict[str, Any]) -> dict[str, Any]:
            _check_owner(str(doc.get("user_id")), acting_user_id, list_id)
            return change(doc)

        try:
            doc = transact(self.store, SHOW_LISTS, list_id, mutate, max_attempts=self.max_attempts)
        except NotFoundError as exc:
            raise NotFoundError(f"List {list_id} not found") from exc
        return decode_document(ShowList, SHOW_LISTS, doc)

    def add_show(
        self,
        list_id: str,
        show_id: str,
        *,
        user_id: str | None = None,
        metadata: ShowMetadata | None = None,
    ) -> ShowList:
        """Append a show unless it is already in the list."""

        show_id = self.catalog.resolve(require_id(show_id, "show_id"), metadata).id

        def change(doc: dict[str, Any]) -> dict[str, Any]:
            show_ids = list(doc.get("show_ids") or [])
            if show_id in show_ids:
                return {}
            return {"show_ids": [*show_ids, show_id]}

        return self._update(list_id, user_id, change)

    def remove_show(self, list_id: str, show_id: str, *, user_id: str | None = None) -> ShowList:
        show_id = require_id(show_id, "show_id")

        def change(doc: dict[str, Any]) -> dict[str, Any]:
            show_ids = list(doc.get("show_ids") or [])
            if show_id not in show_ids:
                return {}
            return {"show_ids": [s for s in show_ids if s != show_id]}

        return self._update(list_id, user_id, change)

    def set_privacy(self, list_id: str, is_private: bool, *, user_id: str | None = None) -> ShowList:
        def change(doc: dict[str, Any]) -> dict[str, Any]:
            if bool(doc.get("is_private")) == bool(is_private):
                return {}
            return {"is_private": bool(is_private)}

        return self._update(list_id, user_id, change)

    def delete(self, list_id: str, *, user_id: str | None = None) -> None:
        show_list = self.get(list_id)
        _check_owner(show_list.user_id, user_id, show_list.id)
        if not self.store.delete(SHOW_LISTS, show_list.id):
            raise NotFoundError(f"List {show_list.id} not found")
        for like in self.store.query(LIST_LIKES, filters={"list_id": show_list.id}):
            self.store.delete(LIST_LIKES, like["id"])

    def lists_for_user(self, user_id: str, include_private: bool = False) -> list[ShowList]:
        rows = self.store.query(
            SHOW_LISTS,
            filters={"user_id": require_id(user_id, "user_id")},
            order_by="created_at",
            descending=True,
        )
        lists = decode_documents(ShowList, SHOW_LISTS, rows)
        if include_private:
            return lists
        return [show_list for show_list in lists if not show_list.is_private]

    def shows_in_list(self, list_id: str, *, viewer_id: str | None = None) -> list[Show]:
        show_list = self.get(list_id)
        if show_list.is_private:
            _check_owner(show_list.user_id, viewer_id, show_list.id)
        return self.catalog.get_shows(show_list.show_ids)

    # --- Likes ---

    def like(self, user_id: str, list_id: str) -> bool:
        """Like a list. Repeat likes are no-ops and do not move `like_count`."""

        user_id = require_id(user_id, "user_id")
        show_list = self.get(list_id)
        if show_list.is_private:
            _check_owner(show_list.user_id, user_id, show_list.id)
        fields = {"user_id": user_id, "list_id": show_list.id, "liked_at": iso_timestamp(self.clock)}
        key = membership_key(user_id, show_list.id)
        try:
            self.store.insert(LIST_LIKES, fields, doc_id=key)
        except ConflictError:
            return True  # already liked
        try:
            self._bump_like_count(show_list.id, 1)
        except CatalogError:
            self.store.delete(LIST_LIKES, key)
            raise
        return True

    def unlike(self, user_id: str, list_id: str) -> bool:
        list_id = require_id(list_id, "list_id")
        key = membership_key(require_id(user_id, "user_id"), list_id)
        if self.store.delete(LIST_LIKES, key):
            try:
                self._bump_like_count(list_id, -1)
            except CatalogError:
                logger.error(f"Like {key} removed but list {list_id} like_count was not decremented")
                raise
        return False

    def _bump_like_count(self, list_id: str, delta: int) -> None:
        try:
            increment(self.store, SHOW_LISTS, list_id, "like_count", delta, max_attempts=self.max_attempts)
        except NotFoundError:
            logger.info(f"List {list_id} is gone; like_count not updated")

    def is_liked(self, user_id: str, list_id: str) -> bool:
        key = membership_key(require_id(user_id, "user_id"), require_id(list_id, "list_id"))
        return self.store.get(LIST_LIKES, key) is not None

    def liked_lists(self, user_id: str) -> list[ShowList]:
        """Lists the user liked, most recent first. Deleted and hidden lists are omitted."""

        user_id = require_id(user_id, "user_id")
        likes = self.store.query(LIST_LIKES, filters={"user_id": user_id}, order_by="liked_at", descending=True)
        lists: list[ShowList] = []
        for like in likes:
            doc = self.store.get(SHOW_LISTS, str(like.get("list_id")))
            if doc is None:
                logger.warning(f"Skipping liked list {like.get('list_id')}: list no longer exists")
                continue
            show_list = decode_document(ShowList, SHOW_LISTS, doc)
            if show_list.is_private and show_list.user_id != user_id:
                continue
            lists.append(show_list)
        return lists
