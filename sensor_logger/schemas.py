from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .core.domain.sensor_record import SensorRecord


class GetSensorRequest(BaseModel):
    device_id: str = Field(..., min_length=1)
    # Omitido = todas las métricas configuradas.
    topic: Optional[str] = None


class SensorMetadata(BaseModel):
    device_id: str


class SensorDataPoint(BaseModel):
    metadata: SensorMetadata
    timestamp: datetime
    data: float

    @classmethod
    def from_record(cls, record: SensorRecord) -> "SensorDataPoint":
        return cls(
            metadata=SensorMetadata(device_id=record.device_id),
            timestamp=record.timestamp,
            data=record.value,
        )


class GetSensorResponse(BaseModel):
    data: Dict[str, List[SensorDataPoint]] = Field(default_factory=dict)
