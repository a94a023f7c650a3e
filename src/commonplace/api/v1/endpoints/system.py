"""System endpoints: health and consistency maintenance."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from commonplace.core.settings import settings
from commonplace.schemas.common import CountResponse, HealthResponse, ReconcileResponse
from commonplace.services.consistency import ConsistencyService
from commonplace.services.posts import PostService

from ..dependencies import OperatorDep, StoreDep

router = APIRouter(prefix="/system", tags=["system"])


@router.get("/health", response_model=HealthResponse)
def health(store: StoreDep) -> dict[str, Any]:
    """Report liveness and how many secondary writes await reconciliation."""
    return {
        "status": "ok",
        "version": settings.app_version,
        "pendingReconciliation": len(ConsistencyService(store).pending()),
    }


@router.post("/reconcile", response_model=ReconcileResponse)
def reconcile(_operator: OperatorDep, store: StoreDep) -> dict[str, Any]:
    """Replay queued secondary writes and repair denormalization drift (operators only)."""
    return ConsistencyService(store).reconcile()


@router.post("/publish-due", response_model=CountResponse)
def publish_due(_operator: OperatorDep, store: StoreDep) -> dict[str, int]:
    """Publish scheduled posts whose time has come (operators only)."""
    return {"count": len(PostService(store).publish_due())}
