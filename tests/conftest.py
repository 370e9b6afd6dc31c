"""Pytest configuration and shared fixtures.

The engine talks to its collaborators through small protocols, so the
tests run it against in-memory fakes instead of a database.
"""

import os
import uuid
from datetime import datetime

import pytest

# Set testing mode BEFORE importing settings so the engine uses NullPool
os.environ["TESTING"] = "true"

from telemetry.config import settings

settings.testing = True

from telemetry.models.alert import Alert
from telemetry.services.alert_engine import AlertEngine
from telemetry.services.alert_store import OpenAlert
from telemetry.services.notifier import NotificationDispatcher
from telemetry.services.rule_repository import RuleDefinition


class FakeRuleRepository:
    """Rule repository holding rules in a list."""

    def __init__(self, rules: list[RuleDefinition] | None = None):
        self.rules = list(rules or [])
        self.fail = False
        self.calls = 0

    async def list_enabled_rules(self) -> list[RuleDefinition]:
        self.calls += 1
        if self.fail:
            raise ConnectionError("rule repository unreachable")
        return [rule for rule in self.rules if rule.enabled]

    def disable(self, rule_id: uuid.UUID) -> None:
        self.rules = [rule for rule in self.rules if rule.id != rule_id]


class FakeAlertStore:
    """Alert store with the same one-open-alert-per-(machine, rule) constraint
    as the alerts table."""

    def __init__(self):
        self.alerts: dict[uuid.UUID, Alert] = {}
        self.latest: dict[tuple[uuid.UUID, str], float] = {}
        self.rule_metrics: dict[uuid.UUID, str] = {}
        self.acknowledge_calls: list[tuple[uuid.UUID, str, datetime]] = []
        self.fail_inserts = False
        self.fail_acknowledge = False

    def register_rule(self, rule: RuleDefinition) -> None:
        self.rule_metrics[rule.id] = rule.metric_name

    def set_latest(self, machine_id: uuid.UUID, metric_name: str, value: float) -> None:
        self.latest[(machine_id, metric_name)] = value

    def open_alerts(self, machine_id=None, rule_id=None) -> list[Alert]:
        return [
            alert
            for alert in self.alerts.values()
            if not alert.acknowledged
            and (machine_id is None or alert.machine_id == machine_id)
            and (rule_id is None or alert.rule_id == rule_id)
        ]

    async def find_open_alert(self, machine_id, rule_id):
        matches = self.open_alerts(machine_id, rule_id)
        return matches[0] if matches else None

    async def insert_alert(self, alert: Alert):
        if self.fail_inserts:
            raise ConnectionError("alert store unavailable")
        if self.open_alerts(alert.machine_id, alert.rule_id):
            return None
        self.alerts[alert.id] = alert
        return alert.id

    async def list_open_alerts_with_latest_sample(self) -> list[OpenAlert]:
        items = []
        for alert in self.open_alerts():
            metric_name = self.rule_metrics.get(alert.rule_id)
            if metric_name is None:
                continue
            items.append(
                OpenAlert(
                    alert=alert,
                    metric_name=metric_name,
                    latest_value=self.latest.get((alert.machine_id, metric_name)),
                )
            )
        return items

    async def acknowledge(self, alert_id, by, at) -> bool:
        self.acknowledge_calls.append((alert_id, by, at))
        if self.fail_acknowledge:
            raise ConnectionError("alert store unavailable")
        alert = self.alerts.get(alert_id)
        if alert is None or alert.acknowledged:
            return False
        alert.acknowledged = True
        alert.acknowledged_by = by
        alert.acknowledged_at = at
        return True


class RecordingSink:
    """Notification sink that remembers what it was asked to send."""

    def __init__(self, fail: bool = False):
        self.sent: list[tuple[str, str]] = []
        self.fail = fail

    async def notify(self, severity: str, message: str) -> None:
        if self.fail:
            raise RuntimeError("webhook down")
        self.sent.append((severity, message))


def temperature_rule(
    threshold: float = 70.0,
    operator: str = ">",
    severity: str = "warning",
    name: str = "Motor Temperature High",
) -> RuleDefinition:
    return RuleDefinition.threshold(
        "temperature", operator, threshold, severity=severity, name=name
    )


@pytest.fixture
def machine_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def alert_store() -> FakeAlertStore:
    return FakeAlertStore()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_engine(alert_store, sink):
    """Build an engine over the given rules; call ``await engine.start()``."""

    def _make(rules: list[RuleDefinition], notifications: bool = True) -> AlertEngine:
        for rule in rules:
            alert_store.register_rule(rule)
        engine = AlertEngine(
            rule_repository=FakeRuleRepository(rules),
            alert_store=alert_store,
            notifications=NotificationDispatcher(sink if notifications else None),
        )
        return engine

    return _make
