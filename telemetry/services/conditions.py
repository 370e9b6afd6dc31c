"""Rule conditions.

A rule's condition is a tagged variant selected by its condition_type.
Only static thresholds exist today; new kinds plug in by adding a class
with a ``matches`` method and a branch in ``build_condition``.
"""

import operator as op
from collections.abc import Callable
from dataclasses import dataclass

from telemetry.logging_config import get_logger
from telemetry.models.alert_rule import ComparisonOperator, ConditionType

logger = get_logger(__name__)

COMPARATORS: dict[str, Callable[[float, float], bool]] = {
    ComparisonOperator.GT.value: op.gt,
    ComparisonOperator.LT.value: op.lt,
    ComparisonOperator.GTE.value: op.ge,
    ComparisonOperator.LTE.value: op.le,
}


def compare(value: float, operator: str | None, threshold: float) -> bool:
    """Apply a comparison operator. Unknown operators never match."""
    comparator = COMPARATORS.get(operator or "")
    if comparator is None:
        return False
    return comparator(value, threshold)


@dataclass(frozen=True)
class ThresholdCondition:
    """``value <operator> threshold``."""

    operator: str | None
    threshold: float | None

    kind = ConditionType.THRESHOLD.value

    def matches(self, value: float) -> bool:
        if self.threshold is None:
            return False
        return compare(value, self.operator, self.threshold)

    def describe(self) -> str:
        if self.threshold is None:
            return f"{self.operator} <no threshold>"
        return f"{self.operator} {self.threshold:.2f}"


@dataclass(frozen=True)
class UnsupportedCondition:
    """Placeholder for condition types this engine does not understand."""

    kind: str

    def matches(self, value: float) -> bool:
        return False

    def describe(self) -> str:
        return f"unsupported condition {self.kind!r}"


Condition = ThresholdCondition | UnsupportedCondition


def build_condition(
    condition_type: str | None,
    operator: str | None,
    threshold_value: float | None,
) -> Condition:
    """Build the condition variant for a rule's stored fields."""
    kind = condition_type or ConditionType.THRESHOLD.value
    if kind == ConditionType.THRESHOLD.value:
        if operator not in COMPARATORS or threshold_value is None:
            logger.warning(
                "Threshold rule is incomplete; it will never fire",
                operator=operator,
                threshold_value=threshold_value,
            )
        return ThresholdCondition(
            operator=operator,
            threshold=None if threshold_value is None else float(threshold_value),
        )
    logger.warning("Unsupported rule condition type", condition_type=kind)
    return UnsupportedCondition(kind=kind)
