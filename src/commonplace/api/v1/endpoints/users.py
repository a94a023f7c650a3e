"""User endpoints for the Commonplace API."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status

from commonplace.schemas.post import PostResponse
from commonplace.schemas.user import UserCreate, UserResponse
from commonplace.services import users as user_service

from ..dependencies import StoreDep

router = APIRouter(prefix="/users", tags=["users"])


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(payload: UserCreate, store: StoreDep) -> dict[str, Any]:
    """Register a user document."""
    return user_service.create_user(store, payload.name, payload.avatar_url, payload.bio)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: str, store: StoreDep) -> dict[str, Any]:
    """Get a specific user by ID."""
    return user_service.get_user(store, user_id)


@router.get("/{user_id}/bookmarks", response_model=list[PostResponse])
def get_bookmarks(user_id: str, store: StoreDep) -> list[dict[str, Any]]:
    """List the posts a user has bookmarked."""
    return user_service.get_bookmarks(store, user_id)
