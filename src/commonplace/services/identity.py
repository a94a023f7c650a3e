"""Identity resolution and role checks.

Every mutating operation resolves its raw identifiers here before touching the
store, so malformed ids fail fast with a :class:`ValidationError` that is
distinct from the :class:`NotFoundError` raised when a well-formed id has no
document behind it.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping

from commonplace.core.errors import AuthorizationError, NotFoundError, ValidationError
from commonplace.store import COMMUNITIES, EVENTS, POSTS, USERS, DocumentStore, is_valid_id

ActorId = str


class Role(str, Enum):
    """Capabilities an actor can hold relative to a document."""

    CREATOR = "creator"
    ADMIN = "admin"  # admin or creator
    MEMBER = "member"
    SELF = "self"


def resolve_id(raw_id: Any, field: str = "id") -> str:
    """Return ``raw_id`` as an identifier or raise a field-level ValidationError."""
    if not is_valid_id(raw_id):
        raise ValidationError.for_field(field, f"Valid {field} is required.")
    return str(raw_id)


def resolve_actor(raw_id: Any) -> ActorId:
    """Validate the caller-supplied actor id."""
    return resolve_id(raw_id, "actorId")


def _owner_of(document: Mapping[str, Any]) -> str | None:
    for key in ("authorId", "userId"):
        if key in document:
            return document[key]
    return document.get("id")


def authorize(actor: ActorId, role: Role, document: Mapping[str, Any]) -> bool:
    """Return True when ``actor`` holds ``role`` on ``document``.

    Communities answer CREATOR, ADMIN and MEMBER from their id sets; SELF
    holds for the author of a post or comment, the recipient of a
    notification, and a user's own document.
    """
    if role is Role.CREATOR:
        return document.get("creatorId") == actor
    if role is Role.ADMIN:
        return document.get("creatorId") == actor or actor in document.get("adminIds", [])
    if role is Role.MEMBER:
        return actor in document.get("memberIds", []) or document.get("creatorId") == actor
    return _owner_of(document) == actor


def require(actor: ActorId, role: Role, document: Mapping[str, Any], message: str) -> None:
    """Raise AuthorizationError unless ``actor`` holds ``role`` on ``document``."""
    if not authorize(actor, role, document):
        raise AuthorizationError(message)


class IdentityResolver:
    """Loads the documents an operation acts on, failing with typed errors."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def _get(self, collection: str, raw_id: Any, field: str, label: str) -> dict[str, Any]:
        doc_id = resolve_id(raw_id, field)
        document = self.store.find_one(collection, doc_id)
        if document is None:
            raise NotFoundError(f"{label} not found.")
        return document

    def actor(self, raw_id: Any) -> dict[str, Any]:
        """Return the acting user's document."""
        return self._get(USERS, resolve_actor(raw_id), "actorId", "User")

    def user(self, raw_id: Any, field: str = "userId") -> dict[str, Any]:
        """Return a user document."""
        return self._get(USERS, raw_id, field, "User")

    def community(self, raw_id: Any) -> dict[str, Any]:
        """Return a community document."""
        return self._get(COMMUNITIES, raw_id, "communityId", "Community")

    def post(self, raw_id: Any) -> dict[str, Any]:
        """Return a post document."""
        return self._get(POSTS, raw_id, "postId", "Post")

    def event(self, raw_id: Any) -> dict[str, Any]:
        """Return an event document."""
        return self._get(EVENTS, raw_id, "eventId", "Event")
