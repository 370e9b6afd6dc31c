"""Machine registry schemas."""

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MachineCreate(BaseModel):
    """Request body for registering a machine."""

    name: str = Field(..., min_length=1, max_length=255)
    type: str | None = Field(default=None, max_length=100)
    location: str | None = Field(default=None, max_length=255)
    metadata: dict[str, Any] | None = None


class MachineResponse(BaseModel):
    """Single machine response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    type: str | None
    location: str | None
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="details")
    status: str
    created_at: datetime
