"""Notification-related Pydantic schemas."""

from .common import CamelModel


class NotificationActor(CamelModel):
    """Who caused the notification, as they were at emission time."""

    id: str
    name: str = ""
    avatar_url: str | None = None


class NotificationResponse(CamelModel):
    id: str
    user_id: str
    type: str
    title: str
    message: str
    link: str | None = None
    related_entity_id: str | None = None
    actor: NotificationActor | None = None
    is_read: bool
    created_at: str


class NotificationUpdate(CamelModel):
    """Mark a single notification read or unread."""

    is_read: bool = True


class NotificationBulkAction(CamelModel):
    """Bulk action over all of the caller's notifications."""

    mark_all_read: bool = True
