"""Alert rule model.

Threshold definitions that link a metric name to a comparison
operator, a threshold value and a severity.
"""

import enum
import uuid

from sqlalchemy import Boolean, Float, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from telemetry.models.base import Base, TimestampMixin


class ConditionType(str, enum.Enum):
    """Kind of condition a rule evaluates."""

    THRESHOLD = "threshold"


class ComparisonOperator(str, enum.Enum):
    """Comparison operators supported by threshold conditions."""

    GT = ">"
    LT = "<"
    GTE = ">="
    LTE = "<="


class AlertRule(Base, TimestampMixin):
    """A persisted alerting rule.

    Rules are owned by the rule repository; the alert engine only
    reads enabled rules into its in-memory snapshot.
    """

    __tablename__ = "alert_rules"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    metric_name: Mapped[str] = mapped_column(String(100), nullable=False)

    condition_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default=ConditionType.THRESHOLD.value,
    )

    threshold_value: Mapped[float | None] = mapped_column(Float, nullable=True)

    # Stored as free text; unknown operators never fire
    operator: Mapped[str | None] = mapped_column(String(10), nullable=True)

    severity: Mapped[str] = mapped_column(String(20), nullable=False)

    enabled: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default="true",
    )

    def __repr__(self) -> str:
        return (
            f"<AlertRule(name={self.name!r}, metric={self.metric_name}, "
            f"{self.operator} {self.threshold_value}, severity={self.severity})>"
        )
