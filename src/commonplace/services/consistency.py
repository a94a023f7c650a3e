"""Secondary-write retries and reconciliation of denormalized state.

Without multi-document transactions, a logical fact such as "user U belongs
to community C" lives in two documents that are written one after the other.
The first (primary) write decides the outcome of the operation. The second
(secondary) write goes through :meth:`ConsistencyService.secondary_update`,
which retries with exponential backoff; when it still fails a
:class:`ConsistencyWarning` is logged, nothing is rolled back, and a
``reconciliation`` entry is queued.

:meth:`ConsistencyService.reconcile` replays queued entries and then sweeps the
collections for drift:

* community ``memberIds`` versus each user's ``communityIds`` (the community
  side is authoritative),
* ``likeCount``, ``commentCount``, ``totalVotes``, per-option ``votes`` and
  ``rsvpCount`` versus the sets they summarize,
* comments whose id never made it into the parent's ``commentIds``.
"""

from __future__ import annotations

import logging
import time
import warnings
from collections.abc import Callable, Mapping
from typing import Any

from commonplace.core.errors import ConsistencyWarning, EngineError
from commonplace.core.settings import settings
from commonplace.db.time import utcnow_iso
from commonplace.store import (
    COMMENTS,
    COMMUNITIES,
    EVENTS,
    POSTS,
    RECONCILIATION,
    USERS,
    DocumentStore,
)

logger = logging.getLogger(__name__)


class ConsistencyService:
    """Applies secondary denormalized writes and repairs drift."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        max_attempts: int | None = None,
        backoff_seconds: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.max_attempts = max(1, max_attempts or settings.secondary_write_max_attempts)
        self.backoff_seconds = (
            settings.secondary_write_backoff_seconds if backoff_seconds is None else backoff_seconds
        )
        self._sleep = sleep

    def secondary_update(
        self,
        collection: str,
        doc_id: str,
        update: Mapping[str, Mapping[str, Any]],
        *,
        reason: str,
        match: Mapping[str, Any] | None = None,
    ) -> bool:
        """Apply the second half of a two-document fact.

        ``match`` guards writes that are not idempotent on their own (a
        ``$push`` paired with an ``$inc``). A guard miss on an existing
        document means the write already landed, through an earlier attempt
        whose response was lost or through a reconciliation sweep, and counts
        as success.

        Returns True when the write landed. Never raises for store failures:
        the primary write already committed and reports success.
        """
        last_error = "document not found"
        for attempt in range(self.max_attempts):
            try:
                result = self.store.update_one(collection, doc_id, update, match=match)
                if result.matched_count or self._guard_satisfied(collection, doc_id, match):
                    return True
            except EngineError as exc:
                last_error = exc.message
                if attempt + 1 < self.max_attempts:
                    self._sleep(self.backoff_seconds * (2**attempt))
                continue
            # A missing document will not appear by retrying.
            break

        self._warn(collection, doc_id, update, match, reason, last_error)
        return False

    def _guard_satisfied(self, collection: str, doc_id: str, match: Mapping[str, Any] | None) -> bool:
        return match is not None and self.store.find_one(collection, doc_id) is not None

    def _warn(
        self,
        collection: str,
        doc_id: str,
        update: Mapping[str, Mapping[str, Any]],
        match: Mapping[str, Any] | None,
        reason: str,
        error: str,
    ) -> None:
        message = f"{reason}: secondary write to {collection}/{doc_id} failed ({error})"
        logger.warning(message)
        warnings.warn(message, ConsistencyWarning, stacklevel=3)
        entry: dict[str, Any] = {
            "kind": "secondary_write",
            "collection": collection,
            "documentId": doc_id,
            "update": dict(update),
            "reason": reason,
            "error": error,
            "resolved": False,
            "createdAt": utcnow_iso(),
        }
        if match is not None:
            entry["match"] = dict(match)
        try:
            self.store.insert_one(RECONCILIATION, entry)
        except EngineError as exc:
            logger.error("Could not queue reconciliation for %s/%s: %s", collection, doc_id, exc.message)

    def pending(self) -> list[dict[str, Any]]:
        """Return queued reconciliation entries not yet resolved."""
        return self.store.find(RECONCILIATION, {"resolved": False}, sort=[("createdAt", 1)])

    # Reconciliation sweep

    def reconcile(self) -> dict[str, Any]:
        """Replay queued writes and repair drift across collections.

        Returns ``{"replayed": N, "corrected": M, "corrections": [...]}``.
        """
        corrections: list[dict[str, Any]] = []
        replayed = self._replay_pending()
        corrections.extend(self._sweep_membership())
        corrections.extend(self._sweep_post_counters())
        corrections.extend(self._sweep_event_counters())
        corrections.extend(self._sweep_orphan_comments())

        if corrections:
            logger.warning(
                "Reconciliation: replayed %d queued writes, corrected %d records",
                replayed,
                len(corrections),
            )
        else:
            logger.info("Reconciliation: replayed %d queued writes, no drift found", replayed)
        return {"replayed": replayed, "corrected": len(corrections), "corrections": corrections}

    def _replay_pending(self) -> int:
        replayed = 0
        for entry in self.pending():
            match = entry.get("match")
            result = self.store.update_one(
                entry["collection"], entry["documentId"], entry["update"], match=match
            )
            if result.matched_count:
                resolution = "applied"
            elif self._guard_satisfied(entry["collection"], entry["documentId"], match):
                resolution = "already_applied"
            else:
                resolution = "target_missing"
            self.store.update_one(
                RECONCILIATION,
                entry["id"],
                {"$set": {"resolved": True, "resolution": resolution, "resolvedAt": utcnow_iso()}},
            )
            if result.matched_count:
                replayed += 1
        return replayed

    def _sweep_membership(self) -> list[dict[str, Any]]:
        corrections: list[dict[str, Any]] = []
        communities = {c["id"]: c for c in self.store.find(COMMUNITIES)}
        users = {u["id"]: u for u in self.store.find(USERS)}

        for community_id, community in communities.items():
            for member_id in community.get("memberIds", []):
                user = users.get(member_id)
                if user is None or community_id in user.get("communityIds", []):
                    continue
                # Re-check against the live community before linking.
                live = self.store.find_one(COMMUNITIES, community_id)
                if live is None or member_id not in live.get("memberIds", []):
                    continue
                result = self.store.update_one(
                    USERS, member_id, {"$addToSet": {"communityIds": community_id}}
                )
                if result.modified_count:
                    corrections.append(
                        {"kind": "membership_link", "userId": member_id, "communityId": community_id}
                    )

        for user_id, user in users.items():
            for community_id in user.get("communityIds", []):
                community = communities.get(community_id)
                if community is not None and user_id in community.get("memberIds", []):
                    continue
                # Re-check against the live community before unlinking.
                live = self.store.find_one(COMMUNITIES, community_id)
                if live is not None and user_id in live.get("memberIds", []):
                    continue
                result = self.store.update_one(
                    USERS, user_id, {"$pull": {"communityIds": community_id}}
                )
                if result.modified_count:
                    corrections.append(
                        {"kind": "membership_unlink", "userId": user_id, "communityId": community_id}
                    )
        return corrections

    def _sweep_post_counters(self) -> list[dict[str, Any]]:
        corrections: list[dict[str, Any]] = []
        for post in self.store.find(POSTS):
            fixes: dict[str, Any] = {}
            guard: dict[str, Any] = {}

            liked = len(post.get("likedBy", []))
            if post.get("likeCount", 0) != liked:
                fixes["likeCount"] = liked
                guard["likeCount"] = post.get("likeCount", 0)

            listed = len(post.get("commentIds", []))
            if post.get("commentCount", 0) != listed:
                fixes["commentCount"] = listed
                guard["commentCount"] = post.get("commentCount", 0)

            options = post.get("pollOptions")
            if options:
                repaired = [dict(option, votes=len(option.get("votedBy", []))) for option in options]
                total = sum(option["votes"] for option in repaired)
                if repaired != options or post.get("totalVotes", 0) != total:
                    fixes["pollOptions"] = repaired
                    fixes["totalVotes"] = total
                    guard["totalVotes"] = post.get("totalVotes", 0)

            if not fixes:
                continue
            # The guard makes a concurrent like/vote win over the repair.
            result = self.store.update_one(POSTS, post["id"], {"$set": fixes}, match=guard)
            if result.modified_count:
                corrections.append({"kind": "post_counters", "postId": post["id"], "fixed": fixes})
        return corrections

    def _sweep_event_counters(self) -> list[dict[str, Any]]:
        corrections: list[dict[str, Any]] = []
        for event in self.store.find(EVENTS):
            attending = len(event.get("rsvpIds", []))
            stale = event.get("rsvpCount", 0)
            if stale == attending:
                continue
            result = self.store.update_one(
                EVENTS,
                event["id"],
                {"$set": {"rsvpCount": attending}},
                match={"rsvpCount": stale},
            )
            if result.modified_count:
                corrections.append(
                    {"kind": "event_counters", "eventId": event["id"], "fixed": {"rsvpCount": attending}}
                )
        return corrections

    def _sweep_orphan_comments(self) -> list[dict[str, Any]]:
        corrections: list[dict[str, Any]] = []
        posts = {p["id"]: p for p in self.store.find(POSTS)}
        for comment in self.store.find(COMMENTS, sort=[("createdAt", 1)]):
            post = posts.get(comment.get("postId"))
            if post is None or comment["id"] in post.get("commentIds", []):
                continue
            result = self.store.update_one(
                POSTS,
                post["id"],
                {"$push": {"commentIds": comment["id"]}, "$inc": {"commentCount": 1}},
                match={"commentIds": {"$ne": comment["id"]}},
            )
            if result.modified_count:
                corrections.append(
                    {"kind": "comment_link", "postId": post["id"], "commentId": comment["id"]}
                )
        return corrections
