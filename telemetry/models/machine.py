"""Machine registry model.

Machines are registered ahead of time for inventory and dashboards.
Ingestion does not require a registered machine.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from telemetry.models.base import Base, TimestampMixin

DEFAULT_MACHINE_STATUS = "active"


class Machine(Base, TimestampMixin):
    """A monitored piece of equipment."""

    __tablename__ = "machines"

    __table_args__ = (Index("ix_machines_status", "status"),)

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    type: Mapped[str | None] = mapped_column(String(100), nullable=True)

    location: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # "metadata" is reserved on declarative classes
    details: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSONB, nullable=True
    )

    status: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=DEFAULT_MACHINE_STATUS,
        server_default=DEFAULT_MACHINE_STATUS,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Machine(name={self.name!r}, type={self.type}, status={self.status})>"
