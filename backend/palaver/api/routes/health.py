"""Health & Readiness Probes — liveness and readiness endpoints.

Invariants:
    - GET /api/health/ always returns 200 if process is up (liveness)
    - GET /api/health/ready returns 503 if the store is not loaded or storage is not writable
"""

import logging
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from palaver.services import message_store as store_module

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {"status": "healthy", "service": "palaver-api", "version": "1.0.0"}


@router.get("/ready")
async def readiness_check():
    """Readiness probe: store loaded and data directory writable."""
    store = store_module.message_store
    if store is None:
        return _not_ready("store_not_loaded")
    if not await store.health_check():
        return _not_ready("storage_unavailable")
    return {
        "status": "ready",
        "checks": {"store": "loaded", "storage": "writable"},
        "mode": store.mode.value,
    }


def _not_ready(reason: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not_ready", "reason": reason},
    )
