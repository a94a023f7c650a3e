# mypy: ignore-errors
"""Tests for notification emission and recipient operations."""

from unittest.mock import patch

import pytest

from commonplace.core.errors import NotFoundError, UnavailableError
from commonplace.services.notifications import NotificationEvent, NotificationService, actor_snapshot
from commonplace.store import NOTIFICATIONS


def _emit(service, recipient, title="Hello"):
    return service.emit(
        NotificationEvent(type="new_comment", recipient_id=recipient["id"], title=title, message="m")
    )


def test_emit_inserts_unread_notification(store, test_user, other_user) -> None:
    service = NotificationService(store)
    note = service.emit(
        NotificationEvent(
            type="community_join_approved",
            recipient_id=test_user["id"],
            title="Approved",
            message="Welcome",
            actor=actor_snapshot(other_user),
            link="/communities/x",
        )
    )
    assert note["isRead"] is False
    assert note["actor"] == {"id": other_user["id"], "name": "Other User", "avatarUrl": None}
    assert "relatedEntityId" not in note
    assert service.list_for_user(test_user["id"]) == [note]


def test_emit_failure_is_swallowed_and_logged(store, test_user, caplog) -> None:
    """A failed insert never propagates to the triggering operation."""
    service = NotificationService(store)
    with patch.object(store, "insert_one", side_effect=UnavailableError("down")):
        assert _emit(service, test_user) is None
    assert "Failed to emit new_comment notification" in caplog.text


def test_recipient_operations(store, test_user, other_user) -> None:
    service = NotificationService(store)
    first = _emit(service, test_user, "one")
    _emit(service, test_user, "two")
    theirs = _emit(service, other_user, "theirs")

    assert service.mark_read(test_user["id"], first["id"])["isRead"] is True
    assert service.mark_read(test_user["id"], first["id"], is_read=False)["isRead"] is False
    assert service.mark_all_read(test_user["id"]) == 2
    assert service.mark_all_read(test_user["id"]) == 0
    assert store.find_one(NOTIFICATIONS, theirs["id"])["isRead"] is False

    service.delete(test_user["id"], first["id"])
    assert len(service.list_for_user(test_user["id"])) == 1
    assert service.delete_all(test_user["id"]) == 1
    assert service.list_for_user(other_user["id"]) == [theirs]


def test_other_users_notifications_are_not_found(store, test_user, other_user) -> None:
    service = NotificationService(store)
    theirs = _emit(service, other_user)
    with pytest.raises(NotFoundError):
        service.mark_read(test_user["id"], theirs["id"])
    with pytest.raises(NotFoundError):
        service.delete(test_user["id"], theirs["id"])
    assert store.find_one(NOTIFICATIONS, theirs["id"]) is not None
