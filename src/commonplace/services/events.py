"""Community events and their attendee lists."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from commonplace.core.errors import ValidationError
from commonplace.db.time import utcnow_iso
from commonplace.services.identity import IdentityResolver, Role, require, resolve_actor, resolve_id
from commonplace.services.posts import normalize_timestamp, parse_tags
from commonplace.store import EVENTS, USERS, DocumentStore

logger = logging.getLogger(__name__)

TITLE_LENGTH = (3, 100)
DESCRIPTION_LENGTH = (10, 2000)


def _check_length(field: str, value: str, bounds: tuple[int, int]) -> str:
    text = (value or "").strip()
    low, high = bounds
    if not low <= len(text) <= high:
        raise ValidationError.for_field(field, f"{field} must be {low} to {high} characters.")
    return text


class EventService:
    """Creates events and reads them back."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self.identity = IdentityResolver(store)

    def create_event(
        self,
        actor_id: Any,
        title: str,
        description: str,
        start_time: Any,
        end_time: Any,
        *,
        location: str | None = None,
        category: str | None = None,
        tags: Iterable[str] | str | None = None,
        max_attendees: int | None = None,
        community_id: Any = None,
    ) -> dict[str, Any]:
        """Create an event organized by the actor.

        Raises:
            ValidationError: On out-of-range text, an end before the start or
                a non-positive ``max_attendees``.
            AuthorizationError: If the actor is not a member of ``community_id``.
        """
        actor_id = resolve_actor(actor_id)
        if community_id is not None:
            community_id = resolve_id(community_id, "communityId")
        title = _check_length("title", title, TITLE_LENGTH)
        description = _check_length("description", description, DESCRIPTION_LENGTH)
        start = normalize_timestamp(start_time, "startTime")
        end = normalize_timestamp(end_time, "endTime")
        if datetime.fromisoformat(end) <= datetime.fromisoformat(start):
            raise ValidationError.for_field("endTime", "End time must be after the start time.")
        if max_attendees is not None and (isinstance(max_attendees, bool) or max_attendees < 1):
            raise ValidationError.for_field("maxAttendees", "maxAttendees must be a positive integer.")

        organizer = self.identity.actor(actor_id)
        community = None
        if community_id is not None:
            community = self.identity.community(community_id)
            require(
                organizer["id"],
                Role.MEMBER,
                community,
                "You must be a member of the community to host events in it.",
            )

        now = utcnow_iso()
        document: dict[str, Any] = {
            "organizerId": organizer["id"],
            "title": title,
            "description": description,
            "startTime": start,
            "endTime": end,
            "tags": parse_tags(tags),
            "rsvpIds": [],
            "rsvpCount": 0,
            "createdAt": now,
            "updatedAt": now,
        }
        if location:
            document["location"] = location.strip()
        if category:
            document["category"] = category
        if max_attendees is not None:
            document["maxAttendees"] = max_attendees
        if community is not None:
            document["communityId"] = community["id"]

        event = self.store.insert_one(EVENTS, document)
        logger.info("Event %s created by %s", event["id"], organizer["id"])
        return event

    def get_event(self, event_id: Any) -> dict[str, Any]:
        return self.identity.event(event_id)

    def list_attendees(self, event_id: Any) -> list[dict[str, Any]]:
        event = self.identity.event(event_id)
        return self.store.find_many(USERS, event.get("rsvpIds", []))
