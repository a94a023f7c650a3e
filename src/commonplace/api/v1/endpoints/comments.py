"""Comment endpoints that are not nested under a post."""

from __future__ import annotations

from fastapi import APIRouter, status

from commonplace.services.comments import CommentService

from ..dependencies import ActorDep, StoreDep

router = APIRouter(prefix="/comments", tags=["comments"])


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(comment_id: str, actor: ActorDep, store: StoreDep) -> None:
    """Delete one of the caller's comments."""
    CommentService(store).delete_comment(actor, comment_id)
