"""FastAPI dependencies: the runtime lives on ``app.state``, never in a module global."""

from __future__ import annotations

from fastapi import Depends, HTTPException, Request

from .bootstrap import Runtime
from .queries.sensor_data import SensorQueryEngine


def get_runtime(request: Request) -> Runtime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return runtime


def get_query_engine(runtime: Runtime = Depends(get_runtime)) -> SensorQueryEngine:
    return runtime.query_engine
