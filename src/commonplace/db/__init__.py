"""Database configuration and utilities."""

from .session import Base, create_tables, engine

__all__ = ["Base", "create_tables", "engine"]
