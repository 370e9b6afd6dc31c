# Business Logic Services
from telemetry.services.alert_engine import (
    AlertEngine,
    build_alert_engine,
    get_alert_engine,
    set_alert_engine,
)
from telemetry.services.alert_lifecycle import AlertLifecycleManager
from telemetry.services.auto_resolve import AutoResolver, SweepResult
from telemetry.services.evaluator import MetricEvaluator
from telemetry.services.rule_cache import RuleCache, RuleSnapshot
from telemetry.services.rule_repository import RuleDefinition
from telemetry.services.scheduler import get_scheduler, start_scheduler, stop_scheduler

__all__ = [
    "AlertEngine",
    "AlertLifecycleManager",
    "AutoResolver",
    "MetricEvaluator",
    "RuleCache",
    "RuleDefinition",
    "RuleSnapshot",
    "SweepResult",
    "build_alert_engine",
    "get_alert_engine",
    "get_scheduler",
    "set_alert_engine",
    "start_scheduler",
    "stop_scheduler",
]
