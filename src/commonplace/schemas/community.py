"""Community-related Pydantic schemas."""

from typing import Literal

from pydantic import Field

from .common import CamelModel

Privacy = Literal["public", "private"]


class CommunityCreate(CamelModel):
    """Schema for creating a new community."""

    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=1000)
    privacy: Privacy = "public"
    cover_image_url: str | None = None


class CommunityUpdate(CamelModel):
    """Creator-editable community fields; omitted fields stay unchanged."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)
    privacy: Privacy | None = None
    cover_image_url: str | None = None


class CommunityResponse(CamelModel):
    """Schema for community information returned by the API."""

    id: str
    name: str
    description: str = ""
    privacy: Privacy
    creator_id: str
    admin_ids: list[str]
    member_ids: list[str]
    pending_member_ids: list[str] = []
    cover_image_url: str | None = None
    created_at: str
    updated_at: str


class JoinRequestDecision(CamelModel):
    """Approve or deny one pending join request."""

    user_id: str
    action: Literal["approve", "deny"]


class OwnershipTransfer(CamelModel):
    new_owner_id: str


class CommunityDeleted(CamelModel):
    """What a community deletion removed."""

    posts_deleted: int
    events_deleted: int
    users_unlinked: int
