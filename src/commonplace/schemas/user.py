"""User-related Pydantic schemas."""

from pydantic import Field

from .common import CamelModel


class UserCreate(CamelModel):
    """Schema for registering a user document."""

    name: str = Field(..., min_length=1, max_length=100)
    avatar_url: str | None = None
    bio: str | None = Field(None, max_length=500)


class UserResponse(CamelModel):
    """Schema for user information returned by the API."""

    id: str
    name: str
    avatar_url: str | None = None
    bio: str | None = None
    community_ids: list[str] = []
    bookmarked_post_ids: list[str] = []
    reputation: int = 0
    joined_date: str


class BookmarksResponse(CamelModel):
    """The acting user's bookmark set after a bookmark change."""

    bookmarked_post_ids: list[str]
