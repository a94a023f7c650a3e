"""Business logic services for the Commonplace engine."""

from .cascade import CascadeService
from .comments import CommentService
from .consistency import ConsistencyService
from .engagement import EngagementService
from .membership import MembershipService, MembershipState
from .notifications import NotificationService
from .posts import PostService, PostStatus

__all__ = [
    "CascadeService",
    "CommentService",
    "ConsistencyService",
    "EngagementService",
    "MembershipService",
    "MembershipState",
    "NotificationService",
    "PostService",
    "PostStatus",
]
