"""Alert rule schemas."""

import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from telemetry.models.alert_rule import ComparisonOperator


class RuleCreate(BaseModel):
    """Request body for creating a threshold rule."""

    name: str = Field(..., min_length=1, max_length=255)
    metric_name: str = Field(..., min_length=1, max_length=100)
    condition_type: Literal["threshold"] = "threshold"
    threshold_value: float
    operator: ComparisonOperator
    severity: str = Field(default="warning", min_length=1, max_length=20)
    enabled: bool = True


class RuleResponse(BaseModel):
    """Single rule response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    metric_name: str
    condition_type: str
    threshold_value: float | None
    operator: str | None
    severity: str
    enabled: bool


class RuleReloadResponse(BaseModel):
    """Result of reloading the in-memory rule snapshot."""

    rule_count: int
    generation: int
