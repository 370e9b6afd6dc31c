"""Metric ingest schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class MetricIngestRequest(BaseModel):
    """One reading pushed by a machine or gateway."""

    machine_id: uuid.UUID
    metric_name: str = Field(..., min_length=1, max_length=100)
    value: float
    unit: str | None = Field(default=None, max_length=50)
    quality: str = Field(default="good", max_length=20)
    timestamp: datetime | None = None


class MetricIngestResponse(BaseModel):
    status: str = "ok"
    alerts_created: int = 0


class MetricResponse(BaseModel):
    """Single stored reading."""

    model_config = ConfigDict(from_attributes=True)

    time: datetime
    machine_id: uuid.UUID
    metric_name: str
    value: float
    unit: str | None
    quality: str
