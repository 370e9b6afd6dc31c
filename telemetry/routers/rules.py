"""Rules router: list and create alert rules, reload the rule cache."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from telemetry.database import get_db
from telemetry.logging_config import get_logger
from telemetry.schemas.rule import RuleCreate, RuleReloadResponse, RuleResponse
from telemetry.services.alert_engine import AlertEngine, get_alert_engine
from telemetry.services.rule_repository import create_rule, list_rules

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/rules", tags=["rules"])


@router.get("", response_model=list[RuleResponse])
async def get_rules(db: AsyncSession = Depends(get_db)) -> list[RuleResponse]:
    """All rules, enabled or not."""
    rules = await list_rules(db)
    return [RuleResponse.model_validate(rule) for rule in rules]


@router.post("", response_model=RuleResponse, status_code=status.HTTP_201_CREATED)
async def add_rule(
    payload: RuleCreate,
    db: AsyncSession = Depends(get_db),
    engine: AlertEngine = Depends(get_alert_engine),
) -> RuleResponse:
    """Create a threshold rule and make it live immediately."""
    rule = await create_rule(db, **payload.model_dump(mode="json"))
    await db.commit()
    await db.refresh(rule)

    logger.info(
        "Alert rule created",
        rule_id=str(rule.id),
        metric_name=rule.metric_name,
        operator=rule.operator,
        threshold_value=rule.threshold_value,
    )

    await engine.reload_rules()
    return RuleResponse.model_validate(rule)


@router.post("/reload", response_model=RuleReloadResponse)
async def reload_rules(
    engine: AlertEngine = Depends(get_alert_engine),
) -> RuleReloadResponse:
    """Reload the in-memory rule snapshot from the database now."""
    snapshot = await engine.reload_rules()
    return RuleReloadResponse(rule_count=len(snapshot), generation=snapshot.generation)
