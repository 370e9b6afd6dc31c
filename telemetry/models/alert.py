"""Alert model.

One row per rule violation on a machine. An alert stays open until it
is acknowledged by an operator or by the auto-resolve sweep.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from telemetry.models.base import Base, TimestampMixin

# acknowledged_by value written by the auto-resolve sweep
SYSTEM_ACKNOWLEDGER = "system"


class AlertSeverity(str, enum.Enum):
    """Known severity tags.

    Rules may carry other tags; those are stored verbatim.
    """

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class Alert(Base, TimestampMixin):
    """A record of a rule violation for one machine."""

    __tablename__ = "alerts"

    __table_args__ = (
        Index("ix_alerts_acknowledged_created", "acknowledged", "created_at"),
        # At most one open alert per (machine, rule)
        Index(
            "uq_alerts_open_machine_rule",
            "machine_id",
            "rule_id",
            unique=True,
            postgresql_where=text("acknowledged = false"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    machine_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)

    # Nullable so ad hoc, rule-less alerts can be recorded
    rule_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), nullable=True)

    severity: Mapped[str] = mapped_column(String(20), nullable=False)

    message: Mapped[str] = mapped_column(Text, nullable=False)

    acknowledged: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="false",
    )

    acknowledged_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    acknowledged_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Alert(machine={self.machine_id}, rule={self.rule_id}, "
            f"severity={self.severity}, acknowledged={self.acknowledged})>"
        )
