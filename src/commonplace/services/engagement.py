"""Likes, bookmarks, poll votes and event RSVPs.

Every counter moves only inside the same atomic update that changes the set it
summarizes, and that update carries a match condition on the set. Two
concurrent likes from one user therefore cannot both land: the second one no
longer matches ``{"likedBy": {"$ne": user}}`` and becomes a no-op.
"""

from __future__ import annotations

import logging
from typing import Any

from commonplace.core.errors import ConflictError, NotFoundError, ValidationError
from commonplace.services.identity import IdentityResolver, resolve_actor, resolve_id
from commonplace.store import EVENTS, POSTS, USERS, DocumentStore

logger = logging.getLogger(__name__)


class EngagementService:
    """Per-user engagement with posts."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store
        self.identity = IdentityResolver(store)

    def _load(self, actor_id: Any, post_id: Any) -> tuple[dict[str, Any], dict[str, Any]]:
        actor_id = resolve_actor(actor_id)
        post_id = resolve_id(post_id, "postId")
        return self.identity.actor(actor_id), self.identity.post(post_id)

    def _current_post(self, post_id: str) -> dict[str, Any]:
        post = self.store.find_one(POSTS, post_id)
        if post is None:
            raise NotFoundError("Post not found.")
        return post

    def like(self, actor_id: Any, post_id: Any) -> dict[str, Any]:
        """Add the actor to ``likedBy``; liking twice changes nothing."""
        user, post = self._load(actor_id, post_id)
        if user["id"] in post.get("likedBy", []):
            return post

        result = self.store.update_one(
            POSTS,
            post["id"],
            {"$addToSet": {"likedBy": user["id"]}, "$inc": {"likeCount": 1}},
            match={"likedBy": {"$ne": user["id"]}},
        )
        if result.document is None:
            return self._current_post(post["id"])
        return result.document

    def unlike(self, actor_id: Any, post_id: Any) -> dict[str, Any]:
        """Remove the actor from ``likedBy``; unliking twice changes nothing."""
        user, post = self._load(actor_id, post_id)
        if user["id"] not in post.get("likedBy", []):
            return post

        result = self.store.update_one(
            POSTS,
            post["id"],
            {"$pull": {"likedBy": user["id"]}, "$inc": {"likeCount": -1}},
            match={"likedBy": user["id"]},
        )
        if result.document is None:
            return self._current_post(post["id"])
        return result.document

    def bookmark(self, actor_id: Any, post_id: Any) -> list[str]:
        """Bookmark an existing post and return the actor's bookmark ids."""
        user, post = self._load(actor_id, post_id)
        result = self.store.update_one(
            USERS, user["id"], {"$addToSet": {"bookmarkedPostIds": post["id"]}}
        )
        if result.document is None:
            raise NotFoundError("User not found.")
        return list(result.document.get("bookmarkedPostIds", []))

    def unbookmark(self, actor_id: Any, post_id: Any) -> list[str]:
        """Drop a bookmark; the post itself may already be gone."""
        target = resolve_id(post_id, "postId")
        user = self.identity.actor(actor_id)
        result = self.store.update_one(USERS, user["id"], {"$pull": {"bookmarkedPostIds": target}})
        if result.document is None:
            raise NotFoundError("User not found.")
        return list(result.document.get("bookmarkedPostIds", []))

    def vote(self, actor_id: Any, post_id: Any, option_id: Any) -> dict[str, Any]:
        """Cast the actor's single vote in a poll.

        Raises:
            ValidationError: If the post is not a poll or ``option_id`` is blank.
            NotFoundError: If the poll has no such option.
            ConflictError: If the actor already voted for any option.
        """
        user, post = self._load(actor_id, post_id)
        options = post.get("pollOptions") or []
        if post.get("postType") != "poll" or not options:
            raise ValidationError("This post is not a poll.")
        if not isinstance(option_id, str) or not option_id.strip():
            raise ValidationError.for_field("optionId", "Valid optionId is required.")

        if any(user["id"] in option.get("votedBy", []) for option in options):
            raise ConflictError("You have already voted in this poll.")
        if not any(option.get("id") == option_id for option in options):
            raise NotFoundError("Poll option not found.")

        result = self.store.update_one(
            POSTS,
            post["id"],
            {
                "$inc": {"pollOptions.$.votes": 1, "totalVotes": 1},
                "$addToSet": {"pollOptions.$.votedBy": user["id"]},
            },
            match={"pollOptions.id": option_id, "pollOptions.votedBy": {"$ne": user["id"]}},
        )
        if result.document is None:
            self._current_post(post["id"])
            # The only way the guard fails on an existing post is a vote that landed first.
            raise ConflictError("You have already voted in this poll.")
        logger.debug("User %s voted %s on post %s", user["id"], option_id, post["id"])
        return result.document

    def rsvp(self, actor_id: Any, event_id: Any) -> dict[str, Any]:
        """Add the actor to the event's attendees.

        Attending twice changes nothing. The capacity check is part of the
        update's match condition, so racing requests cannot overfill the event.

        Raises:
            ConflictError: If the event already has ``maxAttendees`` attendees.
        """
        actor_id = resolve_actor(actor_id)
        event_id = resolve_id(event_id, "eventId")
        user = self.identity.actor(actor_id)
        event = self.identity.event(event_id)
        if user["id"] in event.get("rsvpIds", []):
            return event
        capacity = event.get("maxAttendees")
        if capacity and event.get("rsvpCount", 0) >= capacity:
            raise ConflictError("Event is full. Cannot RSVP.")

        guard: dict[str, Any] = {"rsvpIds": {"$ne": user["id"]}}
        if capacity:
            guard["rsvpCount"] = {"$lt": capacity}
        result = self.store.update_one(
            EVENTS,
            event["id"],
            {"$addToSet": {"rsvpIds": user["id"]}, "$inc": {"rsvpCount": 1}},
            match=guard,
        )
        if result.document is not None:
            return result.document

        current = self.identity.event(event["id"])
        if user["id"] in current.get("rsvpIds", []):
            return current
        raise ConflictError("Event is full. Cannot RSVP.")

    def cancel_rsvp(self, actor_id: Any, event_id: Any) -> dict[str, Any]:
        """Remove the actor from the event's attendees; not attending is a no-op."""
        actor_id = resolve_actor(actor_id)
        event_id = resolve_id(event_id, "eventId")
        user = self.identity.actor(actor_id)
        event = self.identity.event(event_id)
        if user["id"] not in event.get("rsvpIds", []):
            return event

        result = self.store.update_one(
            EVENTS,
            event["id"],
            {"$pull": {"rsvpIds": user["id"]}, "$inc": {"rsvpCount": -1}},
            match={"rsvpIds": user["id"]},
        )
        if result.document is None:
            return self.identity.event(event["id"])
        return result.document
