"""Event and RSVP endpoints for the Commonplace API."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status

from commonplace.schemas.event import EventCreate, EventResponse
from commonplace.schemas.user import UserResponse
from commonplace.services.engagement import EngagementService
from commonplace.services.events import EventService

from ..dependencies import ActorDep, StoreDep

router = APIRouter(prefix="/events", tags=["events"])


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def create_event(payload: EventCreate, actor: ActorDep, store: StoreDep) -> dict[str, Any]:
    """Create an event organized by the caller."""
    return EventService(store).create_event(
        actor,
        payload.title,
        payload.description,
        payload.start_time,
        payload.end_time,
        location=payload.location,
        category=payload.category,
        tags=payload.tags,
        max_attendees=payload.max_attendees,
        community_id=payload.community_id,
    )


@router.get("/{event_id}", response_model=EventResponse)
def get_event(event_id: str, store: StoreDep) -> dict[str, Any]:
    return EventService(store).get_event(event_id)


@router.get("/{event_id}/rsvp", response_model=list[UserResponse])
def list_attendees(event_id: str, store: StoreDep) -> list[dict[str, Any]]:
    return EventService(store).list_attendees(event_id)


@router.post("/{event_id}/rsvp", response_model=EventResponse)
def rsvp(event_id: str, actor: ActorDep, store: StoreDep) -> dict[str, Any]:
    """Attend an event; a full event answers 409."""
    return EngagementService(store).rsvp(actor, event_id)


@router.delete("/{event_id}/rsvp", response_model=EventResponse)
def cancel_rsvp(event_id: str, actor: ActorDep, store: StoreDep) -> dict[str, Any]:
    return EngagementService(store).cancel_rsvp(actor, event_id)
