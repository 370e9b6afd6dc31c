"""Alert engine wiring.

Builds the rule cache, evaluator, lifecycle manager and auto-resolver
around a rule repository, an alert store and a notification dispatcher.
The application owns one engine for its lifetime.
"""

import uuid

from telemetry.config import settings
from telemetry.database import get_session_maker
from telemetry.logging_config import get_logger
from telemetry.models.alert import Alert
from telemetry.services.alert_lifecycle import AlertLifecycleManager
from telemetry.services.alert_store import AlertStore, SqlAlertStore
from telemetry.services.auto_resolve import AutoResolver
from telemetry.services.evaluator import MetricEvaluator
from telemetry.services.notifier import NotificationDispatcher, build_dispatcher
from telemetry.services.rule_cache import RuleCache, RuleSnapshot
from telemetry.services.rule_repository import RuleRepository, SqlRuleRepository

logger = get_logger(__name__)


class AlertEngine:
    """Rule evaluation and alert lifecycle for ingested telemetry."""

    def __init__(
        self,
        rule_repository: RuleRepository,
        alert_store: AlertStore,
        notifications: NotificationDispatcher | None = None,
    ):
        self.alert_store = alert_store
        self.notifications = notifications or NotificationDispatcher()
        self.rules = RuleCache(rule_repository)
        self.lifecycle = AlertLifecycleManager(alert_store, self.notifications)
        self.evaluator = MetricEvaluator(self.rules, self.lifecycle)
        self.auto_resolver = AutoResolver(self.rules, alert_store, self.lifecycle)

    async def start(self) -> None:
        """Load the initial rule snapshot."""
        await self.rules.load()

    async def check_metric(
        self, machine_id: uuid.UUID, metric_name: str, value: float
    ) -> list[Alert]:
        return await self.evaluator.check_metric(machine_id, metric_name, value)

    async def reload_rules(self) -> RuleSnapshot:
        return await self.rules.load()

    async def shutdown(self) -> None:
        """Let an in-flight sweep and pending notifications finish."""
        await self.auto_resolver.stop()
        await self.notifications.drain()
        logger.info("Alert engine stopped")


_alert_engine: AlertEngine | None = None


def build_alert_engine() -> AlertEngine:
    """Engine backed by the configured database and notification sink."""
    session_maker = get_session_maker()
    return AlertEngine(
        rule_repository=SqlRuleRepository(session_maker),
        alert_store=SqlAlertStore(session_maker),
        notifications=build_dispatcher(
            settings.slack_webhook,
            timeout=settings.notification_timeout_seconds,
        ),
    )


def get_alert_engine() -> AlertEngine:
    """Return the process-wide engine, creating it on first use.

    Also serves as the FastAPI dependency for routers.
    """
    global _alert_engine
    if _alert_engine is None:
        _alert_engine = build_alert_engine()
    return _alert_engine


def set_alert_engine(engine: AlertEngine | None) -> None:
    global _alert_engine
    _alert_engine = engine
