"""Comments and their linkage to the parent post.

A comment document is the source of truth. The post's ``commentIds`` and
``commentCount`` are a denormalized index that is written after the insert, so
listing always queries by ``postId`` instead of trusting the index.
"""

from __future__ import annotations

import logging
from typing import Any

from commonplace.core.errors import NotFoundError, ValidationError
from commonplace.core.settings import settings
from commonplace.db.time import utcnow_iso
from commonplace.services.consistency import ConsistencyService
from commonplace.services.identity import IdentityResolver, Role, require, resolve_actor, resolve_id
from commonplace.services.notifications import (
    NEW_COMMENT,
    NotificationEvent,
    NotificationService,
    actor_snapshot,
)
from commonplace.store import COMMENTS, POSTS, DocumentStore

logger = logging.getLogger(__name__)


class CommentService:
    """Adds, lists and removes comments on posts."""

    def __init__(
        self,
        store: DocumentStore,
        notifications: NotificationService | None = None,
        consistency: ConsistencyService | None = None,
    ) -> None:
        self.store = store
        self.identity = IdentityResolver(store)
        self.notifications = notifications or NotificationService(store)
        self.consistency = consistency or ConsistencyService(store)

    def add_comment(
        self,
        actor_id: Any,
        post_id: Any,
        content: str,
        parent_id: Any = None,
    ) -> dict[str, Any]:
        """Insert a comment and link it into the post.

        Args:
            actor_id: Commenting user.
            post_id: Post being commented on.
            content: Comment text, 1 to ``COMMENT_MAX_LENGTH`` characters.
            parent_id: Optional comment on the same post being replied to.

        Returns:
            The stored comment.
        """
        text = (content or "").strip()
        if not text:
            raise ValidationError.for_field("content", "Comment content cannot be empty.")
        if len(text) > settings.comment_max_length:
            raise ValidationError.for_field(
                "content",
                f"Comment cannot exceed {settings.comment_max_length} characters.",
            )

        actor_id = resolve_actor(actor_id)
        post_id = resolve_id(post_id, "postId")
        if parent_id is not None:
            parent_id = resolve_id(parent_id, "parentId")
        author = self.identity.actor(actor_id)
        post = self.identity.post(post_id)

        document: dict[str, Any] = {
            "postId": post["id"],
            "authorId": author["id"],
            "content": text,
            "createdAt": utcnow_iso(),
        }
        if parent_id is not None:
            parent = self.store.find_one(COMMENTS, parent_id)
            if parent is None or parent.get("postId") != post["id"]:
                raise NotFoundError("Parent comment not found.")
            document["parentId"] = parent["id"]

        comment = self.store.insert_one(COMMENTS, document)
        self.consistency.secondary_update(
            POSTS,
            post["id"],
            {"$push": {"commentIds": comment["id"]}, "$inc": {"commentCount": 1}},
            reason="add_comment",
            match={"commentIds": {"$ne": comment["id"]}},
        )

        if post.get("authorId") and post["authorId"] != author["id"]:
            self.notifications.emit(
                NotificationEvent(
                    type=NEW_COMMENT,
                    recipient_id=post["authorId"],
                    title="New comment on your post",
                    message=f"{author.get('name', 'Someone')} commented on your post.",
                    actor=actor_snapshot(author),
                    link=f"/posts/{post['id']}",
                    related_entity_id=comment["id"],
                )
            )
        return comment

    def list_comments(self, post_id: Any) -> list[dict[str, Any]]:
        """Return the post's comments oldest first."""
        post = self.identity.post(post_id)
        return self.store.find(COMMENTS, {"postId": post["id"]}, sort=[("createdAt", 1)])

    def delete_comment(self, actor_id: Any, comment_id: Any) -> None:
        """Delete one of the actor's comments and unlink it from its post."""
        comment_id = resolve_id(comment_id, "commentId")
        author = self.identity.actor(actor_id)
        comment = self.store.find_one(COMMENTS, comment_id)
        if comment is None:
            raise NotFoundError("Comment not found.")
        require(author["id"], Role.SELF, comment, "Only the comment author can delete it.")

        if not self.store.delete_one(COMMENTS, comment["id"]):
            raise NotFoundError("Comment not found.")
        # Guarded so a comment that was never linked does not lower the count.
        self.store.update_one(
            POSTS,
            comment["postId"],
            {"$pull": {"commentIds": comment["id"]}, "$inc": {"commentCount": -1}},
            match={"commentIds": comment["id"]},
        )

    def delete_comments(self, post_id: str) -> int:
        """Remove every comment of a post that is itself being deleted."""
        deleted = self.store.delete_many(COMMENTS, {"postId": post_id})
        logger.debug("Deleted %d comments of post %s", deleted, post_id)
        return deleted
