"""Community membership state machine.

A user stands in exactly one :class:`MembershipState` towards a community.
The state is derived once from the community document by
:func:`membership_state` and every transition goes through
:func:`next_state`; the service methods below only translate the chosen
transition into guarded single-document writes.

The community document is the primary record. The mirrored
``user.communityIds`` entry is written second through the consistency helper,
so a failure there never undoes a membership change.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping

from commonplace.core.errors import ConflictError, NotFoundError, ValidationError
from commonplace.db.time import utcnow_iso
from commonplace.services.cascade import CascadeService
from commonplace.services.consistency import ConsistencyService
from commonplace.services.identity import ActorId, IdentityResolver, Role, require, resolve_actor, resolve_id
from commonplace.services.notifications import (
    JOIN_APPROVED,
    JOIN_DENIED,
    JOIN_REQUEST,
    OWNERSHIP_TRANSFER,
    NotificationEvent,
    NotificationService,
    actor_snapshot,
)
from commonplace.store import COMMUNITIES, USERS, DocumentStore

logger = logging.getLogger(__name__)

PRIVACY_LEVELS = ("public", "private")
EDITABLE_FIELDS = ("name", "description", "privacy", "coverImageUrl")


class MembershipState(str, Enum):
    """Where a user stands towards one community."""

    NONE = "none"
    PENDING = "pending"
    MEMBER = "member"
    ADMIN = "admin"
    CREATOR = "creator"


class MembershipAction(str, Enum):
    JOIN = "join"
    APPROVE = "approve"
    DENY = "deny"
    LEAVE = "leave"
    RECEIVE_OWNERSHIP = "receive_ownership"


def membership_state(community: Mapping[str, Any], user_id: ActorId) -> MembershipState:
    """Derive the user's state from the community's id sets."""
    if community.get("creatorId") == user_id:
        return MembershipState.CREATOR
    if user_id in community.get("adminIds", []):
        return MembershipState.ADMIN
    if user_id in community.get("memberIds", []):
        return MembershipState.MEMBER
    if user_id in community.get("pendingMemberIds", []):
        return MembershipState.PENDING
    return MembershipState.NONE


def next_state(
    state: MembershipState,
    action: MembershipAction,
    privacy: str = "public",
) -> MembershipState | None:
    """Return the state ``action`` leads to from ``state``.

    Returns:
        The target state, or None when the action is an idempotent no-op.

    Raises:
        ConflictError: If the action is not allowed from ``state``.
    """
    if action is MembershipAction.JOIN:
        if state is MembershipState.NONE:
            return MembershipState.PENDING if privacy == "private" else MembershipState.MEMBER
        return None

    if action is MembershipAction.APPROVE:
        return MembershipState.MEMBER if state is MembershipState.PENDING else None

    if action is MembershipAction.DENY:
        return MembershipState.NONE if state is MembershipState.PENDING else None

    if action is MembershipAction.LEAVE:
        if state is MembershipState.CREATOR:
            raise ConflictError(
                "Community creator cannot leave. Transfer ownership or delete the community."
            )
        return None if state is MembershipState.NONE else MembershipState.NONE

    if action is MembershipAction.RECEIVE_OWNERSHIP:
        if state is MembershipState.CREATOR:
            raise ConflictError("User is already the community creator.")
        if state in (MembershipState.MEMBER, MembershipState.ADMIN):
            return MembershipState.CREATOR
        raise ConflictError("New owner must be a member of the community.")

    raise ValueError(f"Unknown membership action: {action!r}")


def _community_link(community: Mapping[str, Any]) -> str:
    return f"/communities/{community['id']}"


class MembershipService:
    """Joins, approvals, departures and ownership changes."""

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

    def _reload(self, community_id: str) -> dict[str, Any]:
        community = self.store.find_one(COMMUNITIES, community_id)
        if community is None:
            raise NotFoundError("Community not found.")
        return community

    def _link_user(self, user_id: str, community_id: str, reason: str) -> None:
        self.consistency.secondary_update(
            USERS, user_id, {"$addToSet": {"communityIds": community_id}}, reason=reason
        )

    def _unlink_user(self, user_id: str, community_id: str, reason: str) -> None:
        self.consistency.secondary_update(
            USERS, user_id, {"$pull": {"communityIds": community_id}}, reason=reason
        )

    def create_community(
        self,
        actor_id: Any,
        name: str,
        description: str = "",
        privacy: str = "public",
        cover_image_url: str | None = None,
    ) -> dict[str, Any]:
        """Create a community owned, administered and joined by the actor."""
        creator = self.identity.actor(actor_id)
        name = (name or "").strip()
        if not name:
            raise ValidationError.for_field("name", "Community name is required.")
        if privacy not in PRIVACY_LEVELS:
            raise ValidationError.for_field("privacy", "Privacy must be 'public' or 'private'.")

        now = utcnow_iso()
        document: dict[str, Any] = {
            "name": name,
            "description": (description or "").strip(),
            "privacy": privacy,
            "creatorId": creator["id"],
            "adminIds": [creator["id"]],
            "memberIds": [creator["id"]],
            "pendingMemberIds": [],
            "createdAt": now,
            "updatedAt": now,
        }
        if cover_image_url:
            document["coverImageUrl"] = cover_image_url
        community = self.store.insert_one(COMMUNITIES, document)
        logger.info("Community %s created by %s", community["id"], creator["id"])

        self._link_user(creator["id"], community["id"], "create_community")
        return community

    def get_community(self, community_id: Any) -> dict[str, Any]:
        return self.identity.community(community_id)

    def join(self, actor_id: Any, community_id: Any) -> dict[str, Any]:
        """Join a public community or request to join a private one.

        Already being a member, admin, creator or pending is a no-op success.
        """
        actor_id = resolve_actor(actor_id)
        community_id = resolve_id(community_id, "communityId")
        user = self.identity.actor(actor_id)
        community = self.identity.community(community_id)
        user_id = user["id"]
        target = next_state(
            membership_state(community, user_id),
            MembershipAction.JOIN,
            community.get("privacy", "public"),
        )
        if target is None:
            return community

        if target is MembershipState.PENDING:
            result = self.store.update_one(
                COMMUNITIES,
                community["id"],
                {"$addToSet": {"pendingMemberIds": user_id}},
                match={"memberIds": {"$ne": user_id}},
            )
            if result.document is None:
                return self._reload(community["id"])
            if result.modified_count:
                self.notifications.emit(
                    NotificationEvent(
                        type=JOIN_REQUEST,
                        recipient_id=community["creatorId"],
                        title="New join request",
                        message=f"{user.get('name', 'Someone')} asked to join {community['name']}.",
                        actor=actor_snapshot(user),
                        link=f"{_community_link(community)}/requests",
                        related_entity_id=community["id"],
                    )
                )
            return result.document

        result = self.store.update_one(
            COMMUNITIES,
            community["id"],
            {"$addToSet": {"memberIds": user_id}},
            match={"memberIds": {"$ne": user_id}},
        )
        if result.document is None:
            # A concurrent join won the race; the mirror is its job.
            return self._reload(community["id"])
        self._link_user(user_id, community["id"], "join")
        return result.document

    def approve(self, actor_id: Any, community_id: Any, user_id: Any) -> dict[str, Any]:
        """Move a pending user into the member set."""
        actor_id = resolve_actor(actor_id)
        community_id = resolve_id(community_id, "communityId")
        user_id = resolve_id(user_id, "userId")
        admin = self.identity.actor(actor_id)
        community = self.identity.community(community_id)
        require(admin["id"], Role.ADMIN, community, "Only community admins can manage join requests.")
        applicant = self.identity.user(user_id)
        applicant_id = applicant["id"]

        target = next_state(membership_state(community, applicant_id), MembershipAction.APPROVE)
        if target is None:
            return community

        result = self.store.update_one(
            COMMUNITIES,
            community["id"],
            {
                "$pull": {"pendingMemberIds": applicant_id},
                "$addToSet": {"memberIds": applicant_id},
            },
            match={"pendingMemberIds": applicant_id},
        )
        if result.document is None:
            return self._reload(community["id"])

        self._link_user(applicant_id, community["id"], "approve")
        self.notifications.emit(
            NotificationEvent(
                type=JOIN_APPROVED,
                recipient_id=applicant_id,
                title="Join request approved",
                message=f"You are now a member of {community['name']}.",
                actor=actor_snapshot(admin),
                link=_community_link(community),
                related_entity_id=community["id"],
            )
        )
        return result.document

    def deny(self, actor_id: Any, community_id: Any, user_id: Any) -> dict[str, Any]:
        """Drop a pending join request."""
        actor_id = resolve_actor(actor_id)
        community_id = resolve_id(community_id, "communityId")
        user_id = resolve_id(user_id, "userId")
        admin = self.identity.actor(actor_id)
        community = self.identity.community(community_id)
        require(admin["id"], Role.ADMIN, community, "Only community admins can manage join requests.")
        applicant = self.identity.user(user_id)
        applicant_id = applicant["id"]

        target = next_state(membership_state(community, applicant_id), MembershipAction.DENY)
        if target is None:
            return community

        result = self.store.update_one(
            COMMUNITIES,
            community["id"],
            {"$pull": {"pendingMemberIds": applicant_id}},
            match={"pendingMemberIds": applicant_id},
        )
        if result.document is None:
            return self._reload(community["id"])

        self.notifications.emit(
            NotificationEvent(
                type=JOIN_DENIED,
                recipient_id=applicant_id,
                title="Join request declined",
                message=f"Your request to join {community['name']} was declined.",
                actor=actor_snapshot(admin),
                link=_community_link(community),
                related_entity_id=community["id"],
            )
        )
        return result.document

    def leave(self, actor_id: Any, community_id: Any) -> dict[str, Any]:
        """Leave a community, or withdraw a pending request.

        The creator cannot leave; not belonging at all is a no-op success.
        """
        actor_id = resolve_actor(actor_id)
        community_id = resolve_id(community_id, "communityId")
        user = self.identity.actor(actor_id)
        community = self.identity.community(community_id)
        user_id = user["id"]
        state = membership_state(community, user_id)
        target = next_state(state, MembershipAction.LEAVE)
        if target is None:
            return community

        result = self.store.update_one(
            COMMUNITIES,
            community["id"],
            {
                "$pull": {
                    "memberIds": user_id,
                    "adminIds": user_id,
                    "pendingMemberIds": user_id,
                }
            },
            match={"creatorId": {"$ne": user_id}},
        )
        if result.document is None:
            # Either gone, or ownership was handed to this user meanwhile.
            current = self._reload(community["id"])
            next_state(membership_state(current, user_id), MembershipAction.LEAVE)
            return current

        if state is not MembershipState.PENDING:
            self._unlink_user(user_id, community["id"], "leave")
        return result.document

    def transfer_ownership(self, actor_id: Any, community_id: Any, new_owner_id: Any) -> dict[str, Any]:
        """Hand the creator role to an existing member.

        The former creator stays an admin and a member.
        """
        actor_id = resolve_actor(actor_id)
        community_id = resolve_id(community_id, "communityId")
        new_owner_id = resolve_id(new_owner_id, "newOwnerId")
        creator = self.identity.actor(actor_id)
        community = self.identity.community(community_id)
        require(
            creator["id"],
            Role.CREATOR,
            community,
            "Only the community creator can transfer ownership.",
        )
        new_owner = self.identity.user(new_owner_id, "newOwnerId")
        next_state(membership_state(community, new_owner["id"]), MembershipAction.RECEIVE_OWNERSHIP)

        result = self.store.update_one(
            COMMUNITIES,
            community["id"],
            {
                "$set": {"creatorId": new_owner["id"], "updatedAt": utcnow_iso()},
                "$addToSet": {"adminIds": {"$each": [new_owner["id"], creator["id"]]}},
            },
            match={"creatorId": creator["id"], "memberIds": new_owner["id"]},
        )
        if result.document is None:
            current = self._reload(community["id"])
            require(
                creator["id"],
                Role.CREATOR,
                current,
                "Only the community creator can transfer ownership.",
            )
            raise ConflictError("New owner must be a member of the community.")
        logger.info(
            "Community %s ownership moved from %s to %s",
            community["id"],
            creator["id"],
            new_owner["id"],
        )

        link = _community_link(community)
        self.notifications.emit(
            NotificationEvent(
                type=OWNERSHIP_TRANSFER,
                recipient_id=new_owner["id"],
                title="You now own a community",
                message=f"{creator.get('name', 'The creator')} transferred ownership of {community['name']} to you.",
                actor=actor_snapshot(creator),
                link=link,
                related_entity_id=community["id"],
            )
        )
        self.notifications.emit(
            NotificationEvent(
                type=OWNERSHIP_TRANSFER,
                recipient_id=creator["id"],
                title="Ownership transferred",
                message=f"You transferred ownership of {community['name']} to {new_owner.get('name', 'a member')}.",
                actor=actor_snapshot(creator),
                link=link,
                related_entity_id=community["id"],
            )
        )
        return result.document

    def update_community(self, actor_id: Any, community_id: Any, fields: Mapping[str, Any]) -> dict[str, Any]:
        """Creator-only edit of the descriptive fields."""
        actor_id = resolve_actor(actor_id)
        community_id = resolve_id(community_id, "communityId")
        creator = self.identity.actor(actor_id)
        community = self.identity.community(community_id)
        require(creator["id"], Role.CREATOR, community, "Only the community creator can update it.")

        changes = {key: value for key, value in fields.items() if key in EDITABLE_FIELDS and value is not None}
        if "name" in changes:
            changes["name"] = str(changes["name"]).strip()
            if not changes["name"]:
                raise ValidationError.for_field("name", "Community name cannot be empty.")
        if "privacy" in changes and changes["privacy"] not in PRIVACY_LEVELS:
            raise ValidationError.for_field("privacy", "Privacy must be 'public' or 'private'.")
        if not changes:
            return community

        changes["updatedAt"] = utcnow_iso()
        result = self.store.update_one(
            COMMUNITIES,
            community["id"],
            {"$set": changes},
            match={"creatorId": creator["id"]},
        )
        if result.document is None:
            current = self._reload(community["id"])
            require(creator["id"], Role.CREATOR, current, "Only the community creator can update it.")
            return current
        return result.document

    def delete_community(self, actor_id: Any, community_id: Any) -> dict[str, int]:
        """Creator-only removal of the community and all of its dependents."""
        return CascadeService(self.store).delete_community(actor_id, community_id)

    def list_members(self, community_id: Any) -> list[dict[str, Any]]:
        community = self.identity.community(community_id)
        return self.store.find_many(USERS, community.get("memberIds", []))

    def list_join_requests(self, actor_id: Any, community_id: Any) -> list[dict[str, Any]]:
        """Return the users waiting for approval; admins only."""
        actor_id = resolve_actor(actor_id)
        community_id = resolve_id(community_id, "communityId")
        admin = self.identity.actor(actor_id)
        community = self.identity.community(community_id)
        require(admin["id"], Role.ADMIN, community, "Only community admins can view join requests.")
        return self.store.find_many(USERS, community.get("pendingMemberIds", []))
