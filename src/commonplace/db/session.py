"""Database engine configuration."""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase

from commonplace.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import commonplace.models  # noqa: E402,F401


def _connect_args(url: str) -> dict[str, Any]:
    # Request handlers run in a threadpool; sqlite connections must cross threads.
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.effective_database_url,
    pool_pre_ping=True,
    echo=settings.sql_debug,
    connect_args=_connect_args(settings.effective_database_url),
)


def create_tables() -> None:
    """Create all database tables."""
    Base.metadata.create_all(bind=engine)
