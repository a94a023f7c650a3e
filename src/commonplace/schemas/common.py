"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model speaking camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CountResponse(CamelModel):
    """Number of documents an operation affected."""

    count: int


class ErrorResponse(BaseModel):
    """Body returned for every engine error."""

    detail: str
    errors: dict[str, list[str]] | None = None


class ReconcileResponse(CamelModel):
    """Outcome of a reconciliation sweep."""

    replayed: int
    corrected: int
    corrections: list[dict[str, Any]]


class HealthResponse(CamelModel):
    """Service liveness and queue depth."""

    status: str
    version: str
    pending_reconciliation: int
