"""Alerts router: listing and operator acknowledgement."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from telemetry.database import get_db
from telemetry.schemas.alert import (
    AlertAcknowledgeRequest,
    AlertListResponse,
    AlertResponse,
)
from telemetry.services.alert_store import acknowledge_alert, get_recent_alerts

router = APIRouter(prefix="/api/v1/alerts", tags=["alerts"])


@router.get("", response_model=AlertListResponse)
async def list_alerts(
    limit: int = Query(default=100, ge=1, le=1000),
    open_only: bool = False,
    db: AsyncSession = Depends(get_db),
) -> AlertListResponse:
    """Most recent alerts, newest first."""
    alerts = await get_recent_alerts(db, limit=limit, open_only=open_only)
    return AlertListResponse(
        alerts=[AlertResponse.model_validate(alert) for alert in alerts],
        count=len(alerts),
    )


@router.patch("/{alert_id}/acknowledge", response_model=AlertResponse)
async def acknowledge(
    alert_id: uuid.UUID,
    payload: AlertAcknowledgeRequest,
    db: AsyncSession = Depends(get_db),
) -> AlertResponse:
    """Acknowledge an alert on behalf of an operator.

    Alerts that are already acknowledged are returned unchanged.
    """
    alert = await acknowledge_alert(db, alert_id, payload.acknowledged_by)

    if alert is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Alert not found",
        )

    return AlertResponse.model_validate(alert)
