"""Metric evaluation: match one incoming sample against the rule snapshot."""

import uuid

from telemetry.logging_config import get_logger
from telemetry.models.alert import Alert
from telemetry.services.alert_lifecycle import AlertLifecycleManager
from telemetry.services.rule_cache import RuleCache

logger = get_logger(__name__)


class MetricEvaluator:
    """Entry point for the ingestion boundary.

    Safe to call from many concurrent tasks; each call reads one rule
    snapshot and never mutates shared state.
    """

    def __init__(self, rules: RuleCache, lifecycle: AlertLifecycleManager):
        self.rules = rules
        self.lifecycle = lifecycle

    async def check_metric(
        self,
        machine_id: uuid.UUID,
        metric_name: str,
        value: float,
    ) -> list[Alert]:
        """Evaluate a sample against every enabled rule for its metric.

        Rules are independent: a warning and a critical rule on the same
        metric can both fire and each opens its own alert. Never raises;
        evaluation problems must not fail ingestion.

        Returns:
            Alerts newly opened by this sample.
        """
        created: list[Alert] = []
        try:
            snapshot = self.rules.snapshot()
            for rule in snapshot.rules_for(metric_name):
                if not rule.fires(value):
                    continue
                alert = await self.lifecycle.create(machine_id, rule, value)
                if alert is not None:
                    created.append(alert)
        except Exception:
            logger.exception(
                "Metric evaluation failed",
                machine_id=str(machine_id),
                metric_name=metric_name,
            )
        return created
