"""Post-related Pydantic schemas."""

from typing import Literal

from pydantic import Field

from .common import CamelModel


class PostCreate(CamelModel):
    """Schema for creating a new post."""

    content: str = Field(..., min_length=1, description="Post body")
    title: str | None = Field(None, max_length=150)
    community_id: str | None = Field(None, description="Community to post into")
    poll_options: list[str] | None = Field(None, description="Option texts for a poll")
    is_draft: bool = False
    scheduled_at: str | None = Field(None, description="ISO-8601 publication time")
    category: str | None = None
    tags: list[str] | str | None = Field(None, description="List or comma separated string")


class PostStatusUpdate(CamelModel):
    """Move a post through its lifecycle."""

    status: Literal["draft", "scheduled", "published"]
    scheduled_at: str | None = None


class VoteCreate(CamelModel):
    """Schema for casting a poll vote."""

    option_id: str = Field(..., min_length=1)


class PollOptionResponse(CamelModel):
    id: str
    text: str
    votes: int
    voted_by: list[str]


class PostResponse(CamelModel):
    """Schema for post information returned by the API."""

    id: str
    author_id: str
    title: str | None = None
    content: str
    liked_by: list[str]
    like_count: int
    comment_ids: list[str]
    comment_count: int
    community_id: str | None = None
    post_type: Literal["standard", "poll"] = "standard"
    poll_options: list[PollOptionResponse] | None = None
    total_votes: int = 0
    status: Literal["draft", "scheduled", "published"]
    scheduled_at: str | None = None
    category: str | None = None
    tags: list[str] = []
    created_at: str
    updated_at: str
