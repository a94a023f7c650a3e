"""Document store primitives used by every engine component."""

from .document_store import (
    DocumentStore,
    StoreContentionError,
    StoreUnavailableError,
    UpdateResult,
)
from .ids import is_valid_id, new_id

# Collection names
USERS = "users"
COMMUNITIES = "communities"
POSTS = "posts"
COMMENTS = "comments"
NOTIFICATIONS = "notifications"
EVENTS = "events"
RECONCILIATION = "reconciliation"

__all__ = [
    "DocumentStore",
    "StoreContentionError",
    "StoreUnavailableError",
    "UpdateResult",
    "is_valid_id",
    "new_id",
    "USERS",
    "COMMUNITIES",
    "POSTS",
    "COMMENTS",
    "NOTIFICATIONS",
    "EVENTS",
    "RECONCILIATION",
]
