"""Event-related Pydantic schemas."""

from pydantic import Field

from .common import CamelModel


class EventCreate(CamelModel):
    """Schema for creating a new event."""

    title: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=10, max_length=2000)
    start_time: str = Field(..., description="ISO-8601 start")
    end_time: str = Field(..., description="ISO-8601 end, after the start")
    location: str | None = None
    category: str | None = None
    tags: list[str] | str | None = Field(None, description="List or comma separated string")
    max_attendees: int | None = Field(None, ge=1)
    community_id: str | None = None


class EventResponse(CamelModel):
    """Schema for event information returned by the API."""

    id: str
    organizer_id: str
    title: str
    description: str
    start_time: str
    end_time: str
    location: str | None = None
    category: str | None = None
    tags: list[str] = []
    max_attendees: int | None = None
    community_id: str | None = None
    rsvp_ids: list[str]
    rsvp_count: int
    created_at: str
    updated_at: str
