"""Alert lifecycle: creating alerts when rules fire and closing them when
the triggering condition clears.

Dedup key is (machine_id, rule_id): at most one open alert per pair.
The pre-insert lookup avoids needless writes for repeat triggers; the
store's uniqueness constraint on open alerts is the final word when two
triggers race past the lookup.
"""

import uuid
from datetime import UTC, datetime

from telemetry.logging_config import get_logger
from telemetry.models.alert import SYSTEM_ACKNOWLEDGER, Alert
from telemetry.services.alert_store import AlertStore
from telemetry.services.notifier import NotificationDispatcher
from telemetry.services.rule_repository import RuleDefinition

logger = get_logger(__name__)


def format_alert_message(rule: RuleDefinition, value: float) -> str:
    """``<rule name or metric> - value: 71.30 (threshold: 70.00)``."""
    label = rule.name or rule.metric_name
    threshold = rule.threshold_value
    threshold_text = f"{threshold:.2f}" if threshold is not None else "n/a"
    return f"{label} - value: {value:.2f} (threshold: {threshold_text})"


class AlertLifecycleManager:
    """Creates and auto-resolves rule-backed alerts."""

    def __init__(
        self,
        store: AlertStore,
        notifications: NotificationDispatcher | None = None,
    ):
        self.store = store
        self.notifications = notifications or NotificationDispatcher()

    async def create(
        self,
        machine_id: uuid.UUID,
        rule: RuleDefinition,
        value: float,
    ) -> Alert | None:
        """Open an alert for a fired rule unless one is already open.

        Returns:
            The new Alert, or None if deduplicated or persistence failed.
        """
        try:
            existing = await self.store.find_open_alert(machine_id, rule.id)
            if existing is not None:
                logger.debug(
                    "Open alert already exists; not creating another",
                    alert_id=str(existing.id),
                    machine_id=str(machine_id),
                    rule_id=str(rule.id),
                )
                return None

            alert = Alert(
                id=uuid.uuid4(),
                machine_id=machine_id,
                rule_id=rule.id,
                severity=rule.severity,
                message=format_alert_message(rule, value),
                acknowledged=False,
                created_at=datetime.now(UTC),
            )
            alert_id = await self.store.insert_alert(alert)
        except Exception as e:
            logger.error(
                "Failed to create alert",
                machine_id=str(machine_id),
                rule_id=str(rule.id),
                error=str(e),
            )
            return None

        if alert_id is None:
            logger.debug(
                "Concurrent trigger already opened this alert",
                machine_id=str(machine_id),
                rule_id=str(rule.id),
            )
            return None

        alert.id = alert_id
        logger.info(
            "Alert raised",
            alert_id=str(alert.id),
            severity=rule.severity,
            rule=rule.name,
            machine_id=str(machine_id),
            alert_message=alert.message,
        )

        self.notifications.dispatch(rule.severity, alert.message)
        return alert

    async def resolve(
        self,
        alert: Alert,
        rule: RuleDefinition | None,
        current_value: float | None,
    ) -> bool:
        """Close an alert whose condition no longer holds.

        An unknown current value counts as "cleared". A missing rule does
        not: the alert is left for an operator to close. The auto-resolve
        sweep never passes an unknown value; it skips alerts that have no
        reading yet, so those stay open.

        Returns:
            True if this call acknowledged the alert.
        """
        if alert.acknowledged:
            return False

        if rule is None:
            logger.debug(
                "Rule for open alert is no longer active; leaving alert open",
                alert_id=str(alert.id),
                rule_id=str(alert.rule_id),
            )
            return False

        if current_value is not None and rule.fires(current_value):
            return False

        now = datetime.now(UTC)
        try:
            changed = await self.store.acknowledge(alert.id, SYSTEM_ACKNOWLEDGER, now)
        except Exception as e:
            logger.error(
                "Failed to auto-resolve alert",
                alert_id=str(alert.id),
                error=str(e),
            )
            return False

        if not changed:
            # Someone else closed it first
            return False

        alert.acknowledged = True
        alert.acknowledged_by = SYSTEM_ACKNOWLEDGER
        alert.acknowledged_at = now
        logger.info(
            "Auto-resolved alert",
            alert_id=str(alert.id),
            machine_id=str(alert.machine_id),
            current_value=(
                round(current_value, 2) if current_value is not None else None
            ),
            threshold=rule.threshold_value,
        )
        return True
