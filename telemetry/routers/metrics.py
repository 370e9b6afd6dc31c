"""Metrics router: sample ingestion and recent readings."""

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from telemetry.database import get_db
from telemetry.schemas.metric import (
    MetricIngestRequest,
    MetricIngestResponse,
    MetricResponse,
)
from telemetry.services.alert_engine import AlertEngine, get_alert_engine
from telemetry.services.metrics import get_recent_samples, record_sample

router = APIRouter(prefix="/api/v1/metrics", tags=["metrics"])


@router.post("/ingest", response_model=MetricIngestResponse)
async def ingest(
    payload: MetricIngestRequest,
    db: AsyncSession = Depends(get_db),
    engine: AlertEngine = Depends(get_alert_engine),
) -> MetricIngestResponse:
    """Store a reading, then evaluate it against the alert rules.

    Alert evaluation never fails the request.
    """
    await record_sample(
        db,
        machine_id=payload.machine_id,
        metric_name=payload.metric_name,
        value=payload.value,
        unit=payload.unit,
        quality=payload.quality,
        timestamp=payload.timestamp,
    )
    created = await engine.check_metric(
        payload.machine_id, payload.metric_name, payload.value
    )
    return MetricIngestResponse(alerts_created=len(created))


@router.get("", response_model=list[MetricResponse])
async def list_metrics(
    machine_id: uuid.UUID | None = None,
    limit: int = Query(default=100, ge=1, le=1000),
    db: AsyncSession = Depends(get_db),
) -> list[MetricResponse]:
    """Most recent readings, optionally for one machine."""
    samples = await get_recent_samples(db, machine_id=machine_id, limit=limit)
    return [MetricResponse.model_validate(sample) for sample in samples]
