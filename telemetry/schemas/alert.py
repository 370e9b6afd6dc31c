"""Alert schemas for the alerts API."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class AlertResponse(BaseModel):
    """Single alert response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    machine_id: uuid.UUID
    rule_id: uuid.UUID | None
    severity: str
    message: str
    acknowledged: bool
    acknowledged_by: str | None
    acknowledged_at: datetime | None
    created_at: datetime


class AlertListResponse(BaseModel):
    """Response for listing alerts."""

    alerts: list[AlertResponse]
    count: int


class AlertAcknowledgeRequest(BaseModel):
    """Operator acknowledgement."""

    acknowledged_by: str = Field(..., min_length=1, max_length=255)
