# Database Models
from telemetry.models.alert import SYSTEM_ACKNOWLEDGER, Alert, AlertSeverity
from telemetry.models.alert_rule import AlertRule, ComparisonOperator, ConditionType
from telemetry.models.base import Base, TimestampMixin
from telemetry.models.machine import Machine
from telemetry.models.metric import MetricSample

__all__ = [
    "Alert",
    "AlertRule",
    "AlertSeverity",
    "Base",
    "ComparisonOperator",
    "ConditionType",
    "Machine",
    "MetricSample",
    "SYSTEM_ACKNOWLEDGER",
    "TimestampMixin",
]
