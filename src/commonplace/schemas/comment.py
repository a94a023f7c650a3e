"""Comment-related Pydantic schemas."""

from pydantic import Field

from .common import CamelModel


class CommentCreate(CamelModel):
    """Schema for commenting on a post."""

    content: str = Field(..., min_length=1)
    parent_id: str | None = Field(None, description="Comment being replied to")


class CommentResponse(CamelModel):
    id: str
    post_id: str
    author_id: str
    content: str
    created_at: str
    parent_id: str | None = None
