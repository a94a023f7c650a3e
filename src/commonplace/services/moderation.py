"""Content moderation and categorization collaborator.

The engine treats both as black boxes returning a label. When
``MODERATION_SERVICE_URL`` is configured the calls go over HTTP; otherwise a
pass-through client approves everything and suggests nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from commonplace.core.errors import UnavailableError
from commonplace.core.settings import settings

logger = logging.getLogger(__name__)

SENSITIVITY_LEVELS = ("low", "medium", "high")


@dataclass(frozen=True)
class ModerationVerdict:
    """Result of a moderation check."""

    is_flagged: bool
    reason: str = ""


@dataclass(frozen=True)
class Categorization:
    """Suggested category and tags for a piece of content."""

    category: str | None = None
    tags: list[str] = field(default_factory=list)


class ModerationClient(Protocol):
    def moderate(self, text: str) -> ModerationVerdict: ...

    def categorize(self, text: str) -> Categorization: ...


class PassThroughModerationClient:
    """Approves all content and never categorizes."""

    def moderate(self, text: str) -> ModerationVerdict:
        return ModerationVerdict(is_flagged=False)

    def categorize(self, text: str) -> Categorization:
        return Categorization()


class HttpModerationClient:
    """Talks to a remote moderation service.

    ``POST {base}/moderate`` takes ``{"content", "sensitivityLevel"}`` and
    answers ``{"isFlagged", "reason"}``; ``POST {base}/categorize`` takes
    ``{"content"}`` and answers ``{"category", "tags"}``.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float | None = None,
        sensitivity: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.sensitivity = sensitivity or settings.moderation_sensitivity
        if self.sensitivity not in SENSITIVITY_LEVELS:
            raise ValueError(f"Unknown moderation sensitivity: {self.sensitivity!r}")
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=httpx.Timeout(timeout_seconds or settings.moderation_timeout_seconds),
            transport=transport,
        )

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            response = self._client.post(path, json=payload)
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Moderation service request to %s failed: %s", path, exc)
            raise UnavailableError("Moderation service is unavailable") from exc
        if not isinstance(body, dict):
            raise UnavailableError("Moderation service returned an unexpected response")
        return body

    def moderate(self, text: str) -> ModerationVerdict:
        body = self._post("/moderate", {"content": text, "sensitivityLevel": self.sensitivity})
        return ModerationVerdict(
            is_flagged=bool(body.get("isFlagged")),
            reason=str(body.get("reason") or ""),
        )

    def categorize(self, text: str) -> Categorization:
        body = self._post("/categorize", {"content": text})
        tags = body.get("tags") or []
        return Categorization(
            category=body.get("category") or None,
            tags=[str(tag).strip() for tag in tags if str(tag).strip()],
        )

    def close(self) -> None:
        self._client.close()


_client: ModerationClient | None = None


def get_moderation_client() -> ModerationClient:
    """Return the process-wide moderation client."""
    global _client
    if _client is None:
        if settings.moderation_enabled:
            _client = HttpModerationClient(settings.moderation_service_url or "")
        else:
            _client = PassThroughModerationClient()
    return _client
