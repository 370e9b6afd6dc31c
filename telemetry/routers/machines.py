"""Machines router: the machine registry."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from telemetry.database import get_db
from telemetry.logging_config import get_logger
from telemetry.schemas.machine import MachineCreate, MachineResponse
from telemetry.services.machines import create_machine, list_machines

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/machines", tags=["machines"])


@router.get("", response_model=list[MachineResponse])
async def get_machines(db: AsyncSession = Depends(get_db)) -> list[MachineResponse]:
    machines = await list_machines(db)
    return [MachineResponse.model_validate(machine) for machine in machines]


@router.post("", response_model=MachineResponse, status_code=status.HTTP_201_CREATED)
async def register_machine(
    payload: MachineCreate,
    db: AsyncSession = Depends(get_db),
) -> MachineResponse:
    """Register a machine. Its status starts as "active"."""
    machine = await create_machine(
        db,
        name=payload.name,
        type=payload.type,
        location=payload.location,
        details=payload.metadata,
    )
    logger.info("Machine registered", machine_id=str(machine.id), name=machine.name)
    return MachineResponse.model_validate(machine)
