"""Machine registry queries."""

from typing import Any

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from telemetry.models.machine import Machine


async def list_machines(db: AsyncSession) -> list[Machine]:
    """All registered machines, newest first."""
    result = await db.execute(select(Machine).order_by(desc(Machine.created_at)))
    return list(result.scalars().all())


async def create_machine(
    db: AsyncSession,
    *,
    name: str,
    type: str | None = None,
    location: str | None = None,
    details: dict[str, Any] | None = None,
) -> Machine:
    """Register a machine and commit."""
    machine = Machine(name=name, type=type, location=location, details=details)
    db.add(machine)
    await db.commit()
    await db.refresh(machine)
    return machine
