"""Endpoints de lectura de sensores."""

from __future__ import annotations

from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..errors import QueryBackendError, QueryNotFound
from ..dependencies import get_query_engine
from ..queries.sensor_data import SensorQueryEngine
from ..schemas import GetSensorRequest, GetSensorResponse, SensorDataPoint

router = APIRouter(tags=["sensors"])

# Tope de ventana: diez años.
MAX_WINDOW_HOURS = 24 * 365 * 10


def _run_query(
    engine: SensorQueryEngine,
    device_id: str,
    metrics: Optional[List[str]],
    window: Optional[timedelta] = None,
) -> GetSensorResponse:
    try:
        result = engine.query(device_id, metrics, window)
    except QueryNotFound as e:
        raise HTTPException(status_code=404, detail=f"Unknown metric: {e.metric}")
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except QueryBackendError:
        # No exponer detalles del backend al cliente; ya se logueó en la query.
        raise HTTPException(status_code=500, detail="Internal error")

    return GetSensorResponse(
        data={
            metric.value: [SensorDataPoint.from_record(r) for r in records]
            for metric, records in result.items()
        }
    )


# Ruta heredada: GET con cuerpo JSON {device_id, topic?}.
@router.get("/get", response_model=GetSensorResponse)
def get_sensor(body: GetSensorRequest, engine: SensorQueryEngine = Depends(get_query_engine)):
    metrics = [body.topic] if body.topic is not None else None
    return _run_query(engine, body.device_id, metrics)


@router.get("/sensors/{device_id}/data", response_model=GetSensorResponse)
def get_sensor_data(
    device_id: str,
    topic: Optional[List[str]] = Query(default=None),
    window_hours: Optional[float] = Query(default=None, gt=0, le=MAX_WINDOW_HOURS),
    engine: SensorQueryEngine = Depends(get_query_engine),
):
    """Lecturas recientes de un dispositivo; ``topic`` se puede repetir."""
    window = None
    if window_hours is not None:
        try:
            window = timedelta(hours=window_hours)
        except (ValueError, OverflowError):
            raise HTTPException(status_code=422, detail=f"Invalid window_hours: {window_hours}")
    return _run_query(engine, device_id, topic, window)
