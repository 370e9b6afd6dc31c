"""Metric sample model.

Time-series readings written by the ingestion boundary. The alert
engine only reads the latest sample per (machine, metric).
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from telemetry.models.base import Base


class MetricSample(Base):
    """A single reading of one metric on one machine."""

    __tablename__ = "metrics"

    __table_args__ = (
        Index("ix_metrics_machine_name_time", "machine_id", "metric_name", "time"),
        Index("ix_metrics_name_time", "metric_name", "time"),
    )

    # One reading per (time, machine, metric); the hypertable partitions on time
    time: Mapped[datetime] = mapped_column(DateTime(timezone=True), primary_key=True)

    machine_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)

    metric_name: Mapped[str] = mapped_column(String(100), primary_key=True)

    value: Mapped[float] = mapped_column(Float, nullable=False)

    unit: Mapped[str | None] = mapped_column(String(50), nullable=True)

    quality: Mapped[str] = mapped_column(
        String(20), nullable=False, default="good", server_default="good"
    )

    def __repr__(self) -> str:
        return (
            f"<MetricSample(machine={self.machine_id}, {self.metric_name}="
            f"{self.value}, time={self.time})>"
        )
