"""Helpers for creating and reading user documents."""
from __future__ import annotations

from typing import Any

from commonplace.core.errors import NotFoundError, ValidationError
from commonplace.db.time import utcnow_iso
from commonplace.services.identity import resolve_id
from commonplace.store import POSTS, USERS, DocumentStore

__all__ = [
    "create_user",
    "get_user",
    "get_bookmarks",
]


def create_user(
    store: DocumentStore,
    name: str,
    avatar_url: str | None = None,
    bio: str | None = None,
) -> dict[str, Any]:
    """Persist a new user with empty membership and bookmark sets."""
    name = (name or "").strip()
    if not name:
        raise ValidationError.for_field("name", "Name is required.")
    document: dict[str, Any] = {
        "name": name,
        "communityIds": [],
        "bookmarkedPostIds": [],
        "reputation": 0,
        "joinedDate": utcnow_iso(),
    }
    if avatar_url:
        document["avatarUrl"] = avatar_url
    if bio:
        document["bio"] = bio
    return store.insert_one(USERS, document)


def get_user(store: DocumentStore, raw_user_id: Any) -> dict[str, Any]:
    """Return a single user by id."""
    user = store.find_one(USERS, resolve_id(raw_user_id, "userId"))
    if user is None:
        raise NotFoundError("User not found.")
    return user


def get_bookmarks(store: DocumentStore, raw_user_id: Any) -> list[dict[str, Any]]:
    """Return the user's bookmarked posts that still exist, in bookmark order."""
    user = get_user(store, raw_user_id)
    return store.find_many(POSTS, user.get("bookmarkedPostIds", []))
