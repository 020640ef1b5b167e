"""Health and readiness endpoints."""

from fastapi import APIRouter, Depends, HTTPException

from ..bootstrap import Runtime
from ..dependencies import get_runtime

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    """Liveness probe — always returns ok if process is running."""
    return {"status": "ok"}


@router.get("/ready")
def ready(runtime: Runtime = Depends(get_runtime)):
    """Readiness probe — registry populated, plus ingestion loop state."""
    if not runtime.registry.is_populated:
        raise HTTPException(status_code=503, detail="not ready")

    ingestion = runtime.ingestion.health_check() if runtime.ingestion is not None else None
    return {
        "status": "ready",
        "metrics": [m.value for m in runtime.registry.metrics()],
        "devices": len(runtime.device_ids),
        "ingestion": ingestion,
    }
