"""Notification endpoints for the Commonplace API."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status

from commonplace.schemas.common import CountResponse
from commonplace.schemas.notification import (
    NotificationBulkAction,
    NotificationResponse,
    NotificationUpdate,
)
from commonplace.services.notifications import NotificationService

from ..dependencies import ActorDep, StoreDep

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
def list_notifications(actor: ActorDep, store: StoreDep) -> list[dict[str, Any]]:
    """List the caller's notifications, newest first."""
    return NotificationService(store).list_for_user(actor)


@router.post("", response_model=CountResponse)
def bulk_update(payload: NotificationBulkAction, actor: ActorDep, store: StoreDep) -> dict[str, int]:
    """Mark all of the caller's notifications read."""
    if not payload.mark_all_read:
        return {"count": 0}
    return {"count": NotificationService(store).mark_all_read(actor)}


@router.delete("", response_model=CountResponse)
def delete_all(actor: ActorDep, store: StoreDep) -> dict[str, int]:
    """Delete all of the caller's notifications."""
    return {"count": NotificationService(store).delete_all(actor)}


@router.patch("/{notification_id}", response_model=NotificationResponse)
def mark_read(
    notification_id: str,
    payload: NotificationUpdate,
    actor: ActorDep,
    store: StoreDep,
) -> dict[str, Any]:
    return NotificationService(store).mark_read(actor, notification_id, payload.is_read)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_notification(notification_id: str, actor: ActorDep, store: StoreDep) -> None:
    NotificationService(store).delete(actor, notification_id)
