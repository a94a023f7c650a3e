"""Ordered deletion of a parent and everything that points at it.

Dependents always go first and the parent last, so an interrupted cascade
leaves the parent in place and the deletion can simply be repeated.
"""

from __future__ import annotations

import logging
from typing import Any

from commonplace.core.errors import NotFoundError
from commonplace.services.comments import CommentService
from commonplace.services.identity import IdentityResolver, Role, require, resolve_actor, resolve_id
from commonplace.store import COMMUNITIES, EVENTS, POSTS, USERS, DocumentStore

logger = logging.getLogger(__name__)


class CascadeService:
    """Deletes communities and posts together with their dependents."""

    def __init__(self, store: DocumentStore, comments: CommentService | None = None) -> None:
        self.store = store
        self.identity = IdentityResolver(store)
        self.comments = comments or CommentService(store)

    def _remove_post(self, post_id: str) -> bool:
        self.comments.delete_comments(post_id)
        self.store.update_many(
            USERS,
            {"bookmarkedPostIds": post_id},
            {"$pull": {"bookmarkedPostIds": post_id}},
        )
        return self.store.delete_one(POSTS, post_id) == 1

    def delete_post(self, actor_id: Any, post_id: Any) -> None:
        """Delete an author's post, its comments and every bookmark of it."""
        actor_id = resolve_actor(actor_id)
        post_id = resolve_id(post_id, "postId")
        author = self.identity.actor(actor_id)
        post = self.identity.post(post_id)
        require(author["id"], Role.SELF, post, "Only the post author can delete it.")
        if not self._remove_post(post["id"]):
            raise NotFoundError("Post not found.")
        logger.info("Post %s deleted by %s", post["id"], author["id"])

    def delete_community(self, actor_id: Any, community_id: Any) -> dict[str, int]:
        """Delete a community with its posts and events, and unlink its members.

        Returns:
            Counts of removed posts and events and of unlinked users.
        """
        actor_id = resolve_actor(actor_id)
        community_id = resolve_id(community_id, "communityId")
        creator = self.identity.actor(actor_id)
        community = self.identity.community(community_id)
        require(creator["id"], Role.CREATOR, community, "Only the community creator can delete it.")
        cid = community["id"]

        posts_deleted = 0
        for post in self.store.find(POSTS, {"communityId": cid}):
            if self._remove_post(post["id"]):
                posts_deleted += 1
        events_deleted = self.store.delete_many(EVENTS, {"communityId": cid})
        unlinked = self.store.update_many(
            USERS,
            {"communityIds": cid},
            {"$pull": {"communityIds": cid}},
        ).modified_count

        if not self.store.delete_one(COMMUNITIES, cid):
            raise NotFoundError("Community not found.")
        logger.info(
            "Community %s deleted by %s (%d posts, %d events, %d members unlinked)",
            cid,
            creator["id"],
            posts_deleted,
            events_deleted,
            unlinked,
        )
        return {
            "postsDeleted": posts_deleted,
            "eventsDeleted": events_deleted,
            "usersUnlinked": unlinked,
        }
