"""
Pydantic schemas for API request/response models.

Field names are snake_case in Python and camelCase on the wire, matching the
stored documents.
"""

from .comment import CommentCreate, CommentResponse
from .common import CountResponse, ErrorResponse, HealthResponse, ReconcileResponse
from .community import (
    CommunityCreate,
    CommunityDeleted,
    CommunityResponse,
    CommunityUpdate,
    JoinRequestDecision,
    OwnershipTransfer,
)
from .event import EventCreate, EventResponse
from .notification import NotificationBulkAction, NotificationResponse, NotificationUpdate
from .post import PostCreate, PostResponse, PostStatusUpdate, VoteCreate
from .user import BookmarksResponse, UserCreate, UserResponse

__all__ = [
    "CommentCreate", "CommentResponse",
    "CountResponse", "ErrorResponse", "HealthResponse", "ReconcileResponse",
    "CommunityCreate", "CommunityDeleted", "CommunityResponse", "CommunityUpdate",
    "JoinRequestDecision", "OwnershipTransfer",
    "EventCreate", "EventResponse",
    "NotificationBulkAction", "NotificationResponse", "NotificationUpdate",
    "PostCreate", "PostResponse", "PostStatusUpdate", "VoteCreate",
    "BookmarksResponse", "UserCreate", "UserResponse",
]
