"""Community and membership endpoints for the Commonplace API."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status

from commonplace.schemas.community import (
    CommunityCreate,
    CommunityDeleted,
    CommunityResponse,
    CommunityUpdate,
    JoinRequestDecision,
    OwnershipTransfer,
)
from commonplace.schemas.user import UserResponse
from commonplace.services.membership import MembershipService

from ..dependencies import ActorDep, StoreDep

router = APIRouter(prefix="/communities", tags=["communities"])


@router.post("", response_model=CommunityResponse, status_code=status.HTTP_201_CREATED)
def create_community(payload: CommunityCreate, actor: ActorDep, store: StoreDep) -> dict[str, Any]:
    """Create a new community owned by the caller."""
    return MembershipService(store).create_community(
        actor,
        payload.name,
        payload.description,
        payload.privacy,
        payload.cover_image_url,
    )


@router.get("/{community_id}", response_model=CommunityResponse)
def get_community(community_id: str, store: StoreDep) -> dict[str, Any]:
    """Get a specific community by ID."""
    return MembershipService(store).get_community(community_id)


@router.put("/{community_id}", response_model=CommunityResponse)
def update_community(
    community_id: str,
    payload: CommunityUpdate,
    actor: ActorDep,
    store: StoreDep,
) -> dict[str, Any]:
    """Edit a community's descriptive fields (creator only)."""
    fields = payload.model_dump(by_alias=True, exclude_unset=True)
    return MembershipService(store).update_community(actor, community_id, fields)


@router.delete("/{community_id}", response_model=CommunityDeleted)
def delete_community(community_id: str, actor: ActorDep, store: StoreDep) -> dict[str, int]:
    """Delete a community with its posts and events (creator only)."""
    return MembershipService(store).delete_community(actor, community_id)


@router.get("/{community_id}/members", response_model=list[UserResponse])
def list_members(community_id: str, store: StoreDep) -> list[dict[str, Any]]:
    """List the members of a community."""
    return MembershipService(store).list_members(community_id)


@router.post("/{community_id}/members", response_model=CommunityResponse)
def join_community(community_id: str, actor: ActorDep, store: StoreDep) -> dict[str, Any]:
    """Join a public community or request to join a private one."""
    return MembershipService(store).join(actor, community_id)


@router.delete("/{community_id}/members", response_model=CommunityResponse)
def leave_community(community_id: str, actor: ActorDep, store: StoreDep) -> dict[str, Any]:
    """Leave a community or withdraw a pending join request."""
    return MembershipService(store).leave(actor, community_id)


@router.get("/{community_id}/requests", response_model=list[UserResponse])
def list_join_requests(community_id: str, actor: ActorDep, store: StoreDep) -> list[dict[str, Any]]:
    """List pending join requests (admins only)."""
    return MembershipService(store).list_join_requests(actor, community_id)


@router.post("/{community_id}/requests", response_model=CommunityResponse)
def decide_join_request(
    community_id: str,
    payload: JoinRequestDecision,
    actor: ActorDep,
    store: StoreDep,
) -> dict[str, Any]:
    """Approve or deny a pending join request (admins only)."""
    service = MembershipService(store)
    if payload.action == "approve":
        return service.approve(actor, community_id, payload.user_id)
    return service.deny(actor, community_id, payload.user_id)


@router.post("/{community_id}/transfer-ownership", response_model=CommunityResponse)
def transfer_ownership(
    community_id: str,
    payload: OwnershipTransfer,
    actor: ActorDep,
    store: StoreDep,
) -> dict[str, Any]:
    """Hand the creator role to another member (creator only)."""
    return MembershipService(store).transfer_ownership(actor, community_id, payload.new_owner_id)
