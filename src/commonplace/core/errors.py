"""Error taxonomy shared by the store, the services, and the API layer.

Every error raised on purpose by the engine derives from :class:`EngineError`
and carries the HTTP-style status class the API layer answers with. Errors
other than :class:`ConsistencyWarning` are raised before any mutation, so the
caller can correct the request and retry without leaving partial state.
"""

from __future__ import annotations

from typing import Any


class EngineError(Exception):
    """Base exception for all engine errors.

    Attributes:
        message: Human-readable description of the failure.
        status_code: HTTP status the API layer reports.
        errors: Optional field-level details (field name -> messages).
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        errors: dict[str, list[str]] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.errors = errors or {}

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body used by the API exception handler."""
        body: dict[str, Any] = {"detail": self.message}
        if self.errors:
            body["errors"] = self.errors
        return body


class ValidationError(EngineError):
    """Malformed identifier or payload, rejected before any store access."""

    status_code = 400

    @classmethod
    def for_field(cls, field: str, message: str) -> ValidationError:
        """Build an error that points at a single offending field."""
        return cls(message, errors={field: [message]})


class NotFoundError(EngineError):
    """The target entity does not exist."""

    status_code = 404


class AuthorizationError(EngineError):
    """The actor lacks the role the operation requires."""

    status_code = 403


class ConflictError(EngineError):
    """The transition is invalid from the entity's current state."""

    status_code = 409


class ModerationRejection(EngineError):
    """Content was flagged by the moderation collaborator."""

    status_code = 400

    def __init__(self, reason: str) -> None:
        super().__init__(
            f"Content flagged by moderation: {reason}. Please revise.",
            errors={"content": [reason]},
        )
        self.reason = reason

    def to_dict(self) -> dict[str, Any]:
        body = super().to_dict()
        body["isFlagged"] = True
        body["reason"] = self.reason
        return body


class UnavailableError(EngineError):
    """A required backend (store or collaborator) cannot be reached."""

    status_code = 503


class ConsistencyWarning(UserWarning):
    """A secondary denormalized write failed after the primary one committed.

    Never raised to callers: it is logged and queued for reconciliation while
    the operation still reports success.
    """
