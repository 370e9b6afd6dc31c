"""Rule repository: read access to persisted alert rules."""

import uuid
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from telemetry.models.alert_rule import AlertRule, ConditionType
from telemetry.services.conditions import Condition, ThresholdCondition, build_condition


@dataclass(frozen=True)
class RuleDefinition:
    """Immutable in-memory copy of an enabled rule.

    Alerts capture the name and severity from this copy at creation
    time, so later edits to the stored rule never rewrite old alerts.
    """

    id: uuid.UUID
    name: str
    metric_name: str
    severity: str
    condition: Condition
    enabled: bool = True

    @classmethod
    def from_model(cls, rule: AlertRule) -> "RuleDefinition":
        return cls(
            id=rule.id,
            name=rule.name,
            metric_name=rule.metric_name,
            severity=rule.severity,
            condition=build_condition(
                rule.condition_type, rule.operator, rule.threshold_value
            ),
            enabled=rule.enabled,
        )

    @classmethod
    def threshold(
        cls,
        metric_name: str,
        operator: str,
        threshold_value: float,
        severity: str = "warning",
        name: str = "",
        rule_id: uuid.UUID | None = None,
    ) -> "RuleDefinition":
        """Build a threshold rule without going through the database."""
        return cls(
            id=rule_id or uuid.uuid4(),
            name=name,
            metric_name=metric_name,
            severity=severity,
            condition=ThresholdCondition(operator=operator, threshold=threshold_value),
        )

    @property
    def condition_type(self) -> str:
        return self.condition.kind

    @property
    def threshold_value(self) -> float | None:
        return getattr(self.condition, "threshold", None)

    @property
    def operator(self) -> str | None:
        return getattr(self.condition, "operator", None)

    def fires(self, value: float) -> bool:
        return self.condition.matches(value)


class RuleRepository(Protocol):
    """Source of enabled rules for the rule cache."""

    async def list_enabled_rules(self) -> list[RuleDefinition]: ...


async def list_enabled_rules(db: AsyncSession) -> list[AlertRule]:
    """Fetch all enabled rules, oldest first."""
    result = await db.execute(
        select(AlertRule)
        .where(AlertRule.enabled.is_(True))
        .order_by(AlertRule.created_at, AlertRule.name)
    )
    return list(result.scalars().all())


async def list_rules(db: AsyncSession) -> list[AlertRule]:
    """Fetch every rule, enabled or not."""
    result = await db.execute(
        select(AlertRule).order_by(AlertRule.metric_name, AlertRule.name)
    )
    return list(result.scalars().all())


async def create_rule(
    db: AsyncSession,
    *,
    name: str,
    metric_name: str,
    threshold_value: float,
    operator: str,
    severity: str,
    condition_type: str = ConditionType.THRESHOLD.value,
    enabled: bool = True,
) -> AlertRule:
    """Add a new rule to the session. The caller commits."""
    rule = AlertRule(
        name=name,
        metric_name=metric_name,
        condition_type=condition_type,
        threshold_value=threshold_value,
        operator=operator,
        severity=severity,
        enabled=enabled,
    )
    db.add(rule)
    return rule


class SqlRuleRepository:
    """Rule repository backed by the alert_rules table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def list_enabled_rules(self) -> list[RuleDefinition]:
        async with self._session_maker() as db:
            rules = await list_enabled_rules(db)
        return [RuleDefinition.from_model(rule) for rule in rules]
