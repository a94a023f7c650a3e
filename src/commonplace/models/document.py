"""SQLAlchemy model backing the schemaless document collections."""

from typing import Any

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from commonplace.db.session import Base


class Document(Base):
    """One JSON document inside a named collection.

    Every write bumps ``version``; single-document updates are applied as a
    compare-and-swap on it, which is what makes them atomic per document.
    """

    __tablename__ = "document"

    collection: Mapped[str] = mapped_column(String(64), primary_key=True)
    # ObjectId-shaped: 8 hex chars of creation seconds, 16 random hex chars.
    id: Mapped[str] = mapped_column(String(24), primary_key=True)
    body: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
