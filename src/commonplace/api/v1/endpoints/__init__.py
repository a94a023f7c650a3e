"""API endpoint modules for version 1."""

from .comments import router as comments_router
from .communities import router as communities_router
from .events import router as events_router
from .notifications import router as notifications_router
from .posts import router as posts_router
from .system import router as system_router
from .users import router as users_router

__all__ = [
    "comments_router",
    "communities_router",
    "events_router",
    "notifications_router",
    "posts_router",
    "system_router",
    "users_router",
]
