"""Post creation and the draft / scheduled / published lifecycle."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from commonplace.core.errors import ConflictError, ModerationRejection, UnavailableError, ValidationError
from commonplace.core.settings import settings
from commonplace.db.time import utcnow, utcnow_iso
from commonplace.services.identity import IdentityResolver, Role, require, resolve_actor, resolve_id
from commonplace.services.moderation import ModerationClient, get_moderation_client
from commonplace.store import POSTS, DocumentStore, new_id

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 150
POLL_MIN_OPTIONS = 2


class PostStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    PUBLISHED = "published"


# Published is terminal.
POST_TRANSITIONS: dict[PostStatus, frozenset[PostStatus]] = {
    PostStatus.DRAFT: frozenset({PostStatus.PUBLISHED, PostStatus.SCHEDULED}),
    PostStatus.SCHEDULED: frozenset({PostStatus.PUBLISHED, PostStatus.DRAFT}),
    PostStatus.PUBLISHED: frozenset(),
}


def next_post_status(current: PostStatus, target: PostStatus) -> PostStatus | None:
    """Return ``target`` if reachable from ``current``, None if already there.

    Raises:
        ConflictError: If the transition is not allowed.
    """
    if current is target:
        return None
    if target not in POST_TRANSITIONS[current]:
        raise ConflictError(f"Cannot move a {current.value} post to {target.value}.")
    return target


def normalize_timestamp(value: Any, field: str = "scheduledAt") -> str:
    """Return ``value`` as a UTC ISO-8601 string comparable with stored timestamps."""
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str) and value.strip():
        try:
            moment = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationError.for_field(field, f"{field} must be an ISO-8601 datetime.") from exc
    else:
        raise ValidationError.for_field(field, f"{field} must be an ISO-8601 datetime.")
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC).isoformat()


def parse_tags(tags: Iterable[str] | str | None) -> list[str]:
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    return list(dict.fromkeys(tag.strip() for tag in tags if tag and tag.strip()))


def _poll_options(raw_options: Iterable[str]) -> list[dict[str, Any]]:
    texts = [str(text).strip() for text in raw_options]
    if any(not text for text in texts):
        raise ValidationError.for_field("pollOptions", "Poll options cannot be empty.")
    if len(texts) < POLL_MIN_OPTIONS:
        raise ValidationError.for_field("pollOptions", "A poll needs at least two options.")
    if len(texts) > settings.poll_max_options:
        raise ValidationError.for_field(
            "pollOptions", f"A poll can have at most {settings.poll_max_options} options."
        )
    if len(set(texts)) != len(texts):
        raise ValidationError.for_field("pollOptions", "Poll options must be distinct.")
    return [{"id": new_id(), "text": text, "votes": 0, "votedBy": []} for text in texts]


class PostService:
    """Creates posts and moves them through their lifecycle."""

    def __init__(self, store: DocumentStore, moderation: ModerationClient | None = None) -> None:
        self.store = store
        self.identity = IdentityResolver(store)
        self.moderation = moderation or get_moderation_client()

    def _moderate(self, text: str) -> None:
        verdict = self.moderation.moderate(text)
        if verdict.is_flagged:
            logger.info("Content rejected by moderation: %s", verdict.reason)
            raise ModerationRejection(verdict.reason or "inappropriate content")

    def create_post(
        self,
        actor_id: Any,
        content: str,
        *,
        title: str | None = None,
        community_id: Any = None,
        poll_options: Iterable[str] | None = None,
        is_draft: bool = False,
        scheduled_at: Any = None,
        category: str | None = None,
        tags: Iterable[str] | str | None = None,
    ) -> dict[str, Any]:
        """Create a post after passing it through moderation.

        Args:
            actor_id: Author.
            content: Post body.
            title: Optional title.
            community_id: Community to post into; the author must belong to it.
            poll_options: Option texts; turns the post into a poll.
            is_draft: Store as a draft regardless of ``scheduled_at``.
            scheduled_at: Publication time for a scheduled post.
            category: Category; suggested by the categorizer when missing.
            tags: Tags as a list or comma separated string.

        Returns:
            The stored post.

        Raises:
            ModerationRejection: If moderation flags the content.
            UnavailableError: If the moderation service cannot be reached.
        """
        text = (content or "").strip()
        if not text:
            raise ValidationError.for_field("content", "Content is required.")
        if len(text) > settings.post_max_length:
            raise ValidationError.for_field(
                "content", f"Content can't exceed {settings.post_max_length} characters."
            )
        if title is not None and len(title) > TITLE_MAX_LENGTH:
            raise ValidationError.for_field(
                "title", f"Title can't exceed {TITLE_MAX_LENGTH} characters."
            )

        actor_id = resolve_actor(actor_id)
        if community_id is not None:
            community_id = resolve_id(community_id, "communityId")
        author = self.identity.actor(actor_id)
        community = None
        if community_id is not None:
            community = self.identity.community(community_id)
            require(
                author["id"],
                Role.MEMBER,
                community,
                "You must be a member of the community to post in it.",
            )
        options = _poll_options(poll_options) if poll_options is not None else None
        schedule = normalize_timestamp(scheduled_at) if scheduled_at is not None else None

        self._moderate(text)

        final_category = category or None
        final_tags = parse_tags(tags)
        if not final_category or not final_tags:
            try:
                suggestion = self.moderation.categorize(text)
            except UnavailableError:
                logger.warning("Categorization failed, keeping the author's category and tags")
            else:
                final_category = final_category or suggestion.category
                final_tags = final_tags or parse_tags(suggestion.tags)

        if is_draft:
            status = PostStatus.DRAFT
        elif schedule is not None:
            status = PostStatus.SCHEDULED
        else:
            status = PostStatus.PUBLISHED

        now = utcnow_iso()
        document: dict[str, Any] = {
            "authorId": author["id"],
            "content": text,
            "likedBy": [],
            "likeCount": 0,
            "commentIds": [],
            "commentCount": 0,
            "postType": "poll" if options else "standard",
            "totalVotes": 0,
            "status": status.value,
            "tags": final_tags,
            "createdAt": now,
            "updatedAt": now,
        }
        if title:
            document["title"] = title.strip()
        if community is not None:
            document["communityId"] = community["id"]
        if options:
            document["pollOptions"] = options
        if schedule is not None:
            document["scheduledAt"] = schedule
        if final_category:
            document["category"] = final_category

        post = self.store.insert_one(POSTS, document)
        logger.info("Post %s created by %s as %s", post["id"], author["id"], status.value)
        return post

    def get_post(self, post_id: Any) -> dict[str, Any]:
        return self.identity.post(post_id)

    def change_status(
        self,
        actor_id: Any,
        post_id: Any,
        target: PostStatus | str,
        scheduled_at: Any = None,
    ) -> dict[str, Any]:
        """Move the author's post to ``target``.

        Publishing re-runs moderation and clears ``scheduledAt``; scheduling
        requires ``scheduled_at``.
        """
        actor_id = resolve_actor(actor_id)
        post_id = resolve_id(post_id, "postId")
        author = self.identity.actor(actor_id)
        post = self.identity.post(post_id)
        require(author["id"], Role.SELF, post, "Only the post author can update this post.")

        try:
            wanted = PostStatus(target)
        except ValueError as exc:
            raise ValidationError.for_field("status", "Invalid status update action.") from exc
        current = PostStatus(post.get("status", PostStatus.PUBLISHED.value))
        if next_post_status(current, wanted) is None:
            return post

        changes: dict[str, Any] = {"status": wanted.value, "updatedAt": utcnow_iso()}
        update: dict[str, dict[str, Any]] = {"$set": changes}
        if wanted is PostStatus.SCHEDULED:
            if scheduled_at is None:
                raise ValidationError.for_field("scheduledAt", "scheduledAt is required to schedule a post.")
            changes["scheduledAt"] = normalize_timestamp(scheduled_at)
        else:
            update["$unset"] = {"scheduledAt": ""}
        if wanted is PostStatus.PUBLISHED:
            self._moderate(post.get("content", ""))

        result = self.store.update_one(POSTS, post["id"], update, match={"status": current.value})
        if result.document is None:
            raise ConflictError("Post status changed concurrently; reload and retry.")
        logger.info("Post %s moved from %s to %s", post["id"], current.value, wanted.value)
        return result.document

    def publish_due(self, now: datetime | None = None) -> list[str]:
        """Publish every scheduled post whose time has come.

        Returns:
            Ids of the posts this call published.
        """
        cutoff = normalize_timestamp(now or utcnow(), "now")
        published: list[str] = []
        for post in self.store.find(
            POSTS,
            {"status": PostStatus.SCHEDULED.value, "scheduledAt": {"$lte": cutoff}},
        ):
            result = self.store.update_one(
                POSTS,
                post["id"],
                {
                    "$set": {"status": PostStatus.PUBLISHED.value, "updatedAt": utcnow_iso()},
                    "$unset": {"scheduledAt": ""},
                },
                match={"status": PostStatus.SCHEDULED.value, "scheduledAt": post["scheduledAt"]},
            )
            if result.modified_count:
                published.append(post["id"])
        if published:
            logger.info("Published %d scheduled posts", len(published))
        return published
