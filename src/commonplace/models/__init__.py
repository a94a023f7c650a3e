"""SQLAlchemy models for the Commonplace application."""

from .document import Document

__all__ = ["Document"]
