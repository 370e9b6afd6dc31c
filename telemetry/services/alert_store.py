"""Alert persistence.

Module-level query helpers take an ``AsyncSession`` and are shared by
the API routers. ``SqlAlertStore`` wraps them behind the ``AlertStore``
protocol used by the engine, opening one session per call so no
transaction spans more than a single store operation.
"""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import and_, desc, select, text, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from telemetry.models.alert import Alert
from telemetry.models.alert_rule import AlertRule
from telemetry.models.metric import MetricSample

# Must match the predicate of uq_alerts_open_machine_rule
OPEN_ALERT_PREDICATE = "acknowledged = false"


@dataclass
class OpenAlert:
    """An unacknowledged alert with the newest reading for its metric."""

    alert: Alert
    metric_name: str
    latest_value: float | None


class AlertStore(Protocol):
    """Persistence operations the alert engine depends on."""

    async def find_open_alert(
        self, machine_id: uuid.UUID, rule_id: uuid.UUID
    ) -> Alert | None: ...

    async def insert_alert(self, alert: Alert) -> uuid.UUID | None: ...

    async def list_open_alerts_with_latest_sample(self) -> list[OpenAlert]: ...

    async def acknowledge(
        self, alert_id: uuid.UUID, by: str, at: datetime
    ) -> bool: ...


async def find_open_alert(
    db: AsyncSession,
    machine_id: uuid.UUID,
    rule_id: uuid.UUID,
) -> Alert | None:
    """Return the open alert for a (machine, rule) pair, if any."""
    result = await db.execute(
        select(Alert)
        .where(
            and_(
                Alert.machine_id == machine_id,
                Alert.rule_id == rule_id,
                Alert.acknowledged.is_(False),
            )
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def insert_open_alert(db: AsyncSession, alert: Alert) -> uuid.UUID | None:
    """Insert an open alert unless one is already open for its (machine, rule).

    The partial unique index decides: a conflicting insert is skipped and
    None is returned, which callers treat as "deduplicated".
    """
    stmt = (
        insert(Alert)
        .values(
            id=alert.id or uuid.uuid4(),
            machine_id=alert.machine_id,
            rule_id=alert.rule_id,
            severity=alert.severity,
            message=alert.message,
            acknowledged=False,
            created_at=alert.created_at or datetime.now(UTC),
        )
        .on_conflict_do_nothing(
            index_elements=["machine_id", "rule_id"],
            index_where=text(OPEN_ALERT_PREDICATE),
        )
        .returning(Alert.id)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_open_alerts_with_latest_sample(db: AsyncSession) -> list[OpenAlert]:
    """Fetch every open alert joined with its rule's metric and latest reading.

    Alerts whose rule row no longer exists are not returned; they stay
    open until an operator acknowledges them.
    """
    latest_value = (
        select(MetricSample.value)
        .where(
            MetricSample.machine_id == Alert.machine_id,
            MetricSample.metric_name == AlertRule.metric_name,
        )
        .order_by(desc(MetricSample.time))
        .limit(1)
        .scalar_subquery()
    )

    result = await db.execute(
        select(Alert, AlertRule.metric_name, latest_value.label("latest_value"))
        .join(AlertRule, Alert.rule_id == AlertRule.id)
        .where(Alert.acknowledged.is_(False))
        .order_by(Alert.created_at)
    )
    return [
        OpenAlert(alert=alert, metric_name=metric_name, latest_value=value)
        for alert, metric_name, value in result.all()
    ]


async def mark_acknowledged(
    db: AsyncSession,
    alert_id: uuid.UUID,
    by: str,
    at: datetime,
) -> bool:
    """Acknowledge an open alert. Already-acknowledged alerts are untouched.

    Returns:
        True if this call transitioned the alert from open to acknowledged.
    """
    result = await db.execute(
        update(Alert)
        .where(and_(Alert.id == alert_id, Alert.acknowledged.is_(False)))
        .values(acknowledged=True, acknowledged_by=by, acknowledged_at=at)
    )
    return result.rowcount > 0


async def get_alert(db: AsyncSession, alert_id: uuid.UUID) -> Alert | None:
    result = await db.execute(select(Alert).where(Alert.id == alert_id))
    return result.scalar_one_or_none()


async def get_recent_alerts(
    db: AsyncSession,
    limit: int = 100,
    open_only: bool = False,
) -> list[Alert]:
    """Most recent alerts, newest first."""
    stmt = select(Alert).order_by(desc(Alert.created_at)).limit(limit)
    if open_only:
        stmt = stmt.where(Alert.acknowledged.is_(False))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def acknowledge_alert(
    db: AsyncSession,
    alert_id: uuid.UUID,
    acknowledged_by: str,
) -> Alert | None:
    """Operator acknowledgement.

    Acknowledging an alert that is already closed leaves its original
    acknowledger and timestamp in place.

    Returns:
        The alert after the update, or None if it does not exist.
    """
    await mark_acknowledged(db, alert_id, acknowledged_by, datetime.now(UTC))
    await db.commit()
    return await get_alert(db, alert_id)


class SqlAlertStore:
    """AlertStore backed by the alerts and metrics tables."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def find_open_alert(
        self, machine_id: uuid.UUID, rule_id: uuid.UUID
    ) -> Alert | None:
        async with self._session_maker() as db:
            return await find_open_alert(db, machine_id, rule_id)

    async def insert_alert(self, alert: Alert) -> uuid.UUID | None:
        async with self._session_maker() as db:
            alert_id = await insert_open_alert(db, alert)
            await db.commit()
        return alert_id

    async def list_open_alerts_with_latest_sample(self) -> list[OpenAlert]:
        async with self._session_maker() as db:
            return await list_open_alerts_with_latest_sample(db)

    async def acknowledge(self, alert_id: uuid.UUID, by: str, at: datetime) -> bool:
        async with self._session_maker() as db:
            changed = await mark_acknowledged(db, alert_id, by, at)
            await db.commit()
        return changed
