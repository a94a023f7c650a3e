"""Notification emission and recipient-side management."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from commonplace.core.errors import EngineError, NotFoundError
from commonplace.db.time import utcnow_iso
from commonplace.services.identity import ActorId, resolve_id
from commonplace.store import NOTIFICATIONS, DocumentStore

logger = logging.getLogger(__name__)

# Notification type tags
NEW_COMMENT = "new_comment"
JOIN_REQUEST = "community_join_request"
JOIN_APPROVED = "community_join_approved"
JOIN_DENIED = "community_join_denied"
OWNERSHIP_TRANSFER = "community_ownership_transfer"


def actor_snapshot(user: dict[str, Any] | None) -> dict[str, Any] | None:
    """Capture who caused a notification at emission time."""
    if user is None:
        return None
    return {
        "id": user["id"],
        "name": user.get("name", ""),
        "avatarUrl": user.get("avatarUrl"),
    }


@dataclass(frozen=True)
class NotificationEvent:
    """Everything needed to address one notification."""

    type: str
    recipient_id: str
    title: str
    message: str
    actor: dict[str, Any] | None = None
    link: str | None = None
    related_entity_id: str | None = None


class NotificationService:
    """Inserts notifications as side effects and serves recipients."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def emit(self, event: NotificationEvent) -> dict[str, Any] | None:
        """Insert one unread notification.

        Best-effort: the transition that triggered it has already committed, so
        a failed insert is logged and None is returned instead of raising.
        """
        document: dict[str, Any] = {
            "userId": event.recipient_id,
            "type": event.type,
            "title": event.title,
            "message": event.message,
            "isRead": False,
            "createdAt": utcnow_iso(),
        }
        if event.link is not None:
            document["link"] = event.link
        if event.related_entity_id is not None:
            document["relatedEntityId"] = event.related_entity_id
        if event.actor is not None:
            document["actor"] = event.actor
        try:
            return self.store.insert_one(NOTIFICATIONS, document)
        except EngineError as exc:
            logger.warning(
                "Failed to emit %s notification for user %s: %s",
                event.type,
                event.recipient_id,
                exc.message,
            )
            return None

    def list_for_user(self, user_id: ActorId) -> list[dict[str, Any]]:
        """Return the user's notifications, newest first."""
        return self.store.find(NOTIFICATIONS, {"userId": user_id}, sort=[("createdAt", -1)])

    def mark_read(
        self, user_id: ActorId, raw_notification_id: Any, is_read: bool = True
    ) -> dict[str, Any]:
        """Set ``isRead`` on one of the user's notifications and return it."""
        notification_id = resolve_id(raw_notification_id, "notificationId")
        result = self.store.update_one(
            NOTIFICATIONS,
            notification_id,
            {"$set": {"isRead": is_read}},
            match={"userId": user_id},
        )
        if result.document is None:
            raise NotFoundError("Notification not found or user unauthorized.")
        return result.document

    def mark_all_read(self, user_id: ActorId) -> int:
        """Mark every unread notification of the user as read."""
        result = self.store.update_many(
            NOTIFICATIONS,
            {"userId": user_id, "isRead": False},
            {"$set": {"isRead": True}},
        )
        return result.modified_count

    def delete(self, user_id: ActorId, raw_notification_id: Any) -> None:
        """Delete one of the user's notifications."""
        notification_id = resolve_id(raw_notification_id, "notificationId")
        deleted = self.store.delete_one(NOTIFICATIONS, notification_id, match={"userId": user_id})
        if deleted == 0:
            raise NotFoundError("Notification not found or user unauthorized.")

    def delete_all(self, user_id: ActorId) -> int:
        """Delete every notification addressed to the user."""
        return self.store.delete_many(NOTIFICATIONS, {"userId": user_id})
