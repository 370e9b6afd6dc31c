"""Metric sample storage used by the ingest endpoint."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import desc, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from telemetry.models.metric import MetricSample


async def record_sample(
    db: AsyncSession,
    machine_id: uuid.UUID,
    metric_name: str,
    value: float,
    unit: str | None = None,
    quality: str = "good",
    timestamp: datetime | None = None,
) -> MetricSample:
    """Store one reading and commit it.

    Readings without a timestamp are stamped with the receive time;
    naive timestamps are taken as UTC. A redelivered reading (same
    time, machine and metric) is ignored.
    """
    if timestamp is None:
        timestamp = datetime.now(UTC)
    elif timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)

    sample = MetricSample(
        time=timestamp,
        machine_id=machine_id,
        metric_name=metric_name,
        value=value,
        unit=unit,
        quality=quality or "good",
    )
    await db.execute(
        insert(MetricSample)
        .values(
            time=sample.time,
            machine_id=sample.machine_id,
            metric_name=sample.metric_name,
            value=sample.value,
            unit=sample.unit,
            quality=sample.quality,
        )
        .on_conflict_do_nothing(index_elements=["time", "machine_id", "metric_name"])
    )
    await db.commit()
    return sample


async def get_recent_samples(
    db: AsyncSession,
    machine_id: uuid.UUID | None = None,
    limit: int = 100,
) -> list[MetricSample]:
    """Newest readings first, optionally for one machine."""
    stmt = select(MetricSample).order_by(desc(MetricSample.time)).limit(limit)
    if machine_id is not None:
        stmt = stmt.where(MetricSample.machine_id == machine_id)
    result = await db.execute(stmt)
    return list(result.scalars().all())
