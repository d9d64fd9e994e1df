"""Health, readiness and metrics endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from kvshare.api.dependencies import get_store
from kvshare.core.errors import KVShareError
from kvshare.core.telemetry import get_metrics
from kvshare.services.base_store import BaseRecordStore

router = APIRouter(tags=["health"])

# Never a valid UUID v4, so it cannot collide with a stored record
READINESS_PROBE_KEY = "__readiness_probe__"


@router.get("/health")
async def health() -> dict:
    """Liveness: minimal check, <10ms."""
    return {"status": "ok"}


@router.get("/readiness", response_model=None)
async def readiness(store: Annotated[BaseRecordStore, Depends(get_store)]):
    """Readiness: verify the record store answers a lookup."""
    try:
        await store.get(READINESS_PROBE_KEY)
    except KVShareError as e:
        return JSONResponse(
            status_code=503,
            content={"status": "unready", "backend": store.name, "error": e.message},
        )
    return {"status": "ready", "backend": store.name}


@router.get("/metrics")
async def metrics() -> dict:
    """Simple JSON metrics endpoint for operational visibility."""
    return get_metrics()
