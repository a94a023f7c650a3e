"""Post, engagement and comment endpoints for the Commonplace API."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, status

from commonplace.schemas.comment import CommentCreate, CommentResponse
from commonplace.schemas.post import PostCreate, PostResponse, PostStatusUpdate, VoteCreate
from commonplace.schemas.user import BookmarksResponse
from commonplace.services.cascade import CascadeService
from commonplace.services.comments import CommentService
from commonplace.services.engagement import EngagementService
from commonplace.services.posts import PostService

from ..dependencies import ActorDep, StoreDep

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
def create_post(payload: PostCreate, actor: ActorDep, store: StoreDep) -> dict[str, Any]:
    """Create a post, a poll, a draft or a scheduled post."""
    return PostService(store).create_post(
        actor,
        payload.content,
        title=payload.title,
        community_id=payload.community_id,
        poll_options=payload.poll_options,
        is_draft=payload.is_draft,
        scheduled_at=payload.scheduled_at,
        category=payload.category,
        tags=payload.tags,
    )


@router.get("/{post_id}", response_model=PostResponse)
def get_post(post_id: str, store: StoreDep) -> dict[str, Any]:
    """Get a specific post by ID."""
    return PostService(store).get_post(post_id)


@router.put("/{post_id}", response_model=PostResponse)
def update_post_status(
    post_id: str,
    payload: PostStatusUpdate,
    actor: ActorDep,
    store: StoreDep,
) -> dict[str, Any]:
    """Move a post through draft, scheduled and published (author only)."""
    return PostService(store).change_status(actor, post_id, payload.status, payload.scheduled_at)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post(post_id: str, actor: ActorDep, store: StoreDep) -> None:
    """Delete a post with its comments and bookmarks (author only)."""
    CascadeService(store).delete_post(actor, post_id)


@router.post("/{post_id}/like", response_model=PostResponse)
def like_post(post_id: str, actor: ActorDep, store: StoreDep) -> dict[str, Any]:
    return EngagementService(store).like(actor, post_id)


@router.delete("/{post_id}/like", response_model=PostResponse)
def unlike_post(post_id: str, actor: ActorDep, store: StoreDep) -> dict[str, Any]:
    return EngagementService(store).unlike(actor, post_id)


@router.post("/{post_id}/bookmark", response_model=BookmarksResponse)
def bookmark_post(post_id: str, actor: ActorDep, store: StoreDep) -> dict[str, list[str]]:
    ids = EngagementService(store).bookmark(actor, post_id)
    return {"bookmarkedPostIds": ids}


@router.post("/{post_id}/unbookmark", response_model=BookmarksResponse)
def unbookmark_post(post_id: str, actor: ActorDep, store: StoreDep) -> dict[str, list[str]]:
    ids = EngagementService(store).unbookmark(actor, post_id)
    return {"bookmarkedPostIds": ids}


@router.post("/{post_id}/vote", response_model=PostResponse)
def vote(post_id: str, payload: VoteCreate, actor: ActorDep, store: StoreDep) -> dict[str, Any]:
    """Cast the caller's single vote in a poll."""
    return EngagementService(store).vote(actor, post_id, payload.option_id)


@router.get("/{post_id}/comments", response_model=list[CommentResponse])
def list_comments(post_id: str, store: StoreDep) -> list[dict[str, Any]]:
    """List a post's comments, oldest first."""
    return CommentService(store).list_comments(post_id)


@router.post(
    "/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_comment(
    post_id: str,
    payload: CommentCreate,
    actor: ActorDep,
    store: StoreDep,
) -> dict[str, Any]:
    """Comment on a post, optionally replying to another comment."""
    return CommentService(store).add_comment(actor, post_id, payload.content, payload.parent_id)
