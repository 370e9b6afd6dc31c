"""In-memory rule snapshot shared by evaluators and the auto-resolve sweep.

Readers grab the current snapshot reference and work from it for the
whole evaluation. The loader builds a complete new snapshot and swaps
the reference in one assignment, so no reader ever sees a partially
updated rule list. Reloads are serialized by a writer lock.
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime

from telemetry.logging_config import get_logger
from telemetry.services.rule_repository import RuleDefinition, RuleRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class RuleSnapshot:
    """One generation of the enabled rule set."""

    rules: tuple[RuleDefinition, ...] = ()
    generation: int = 0
    loaded_at: datetime | None = None
    _by_id: dict[uuid.UUID, RuleDefinition] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_id", {rule.id: rule for rule in self.rules})

    def __len__(self) -> int:
        return len(self.rules)

    def rules_for(self, metric_name: str) -> tuple[RuleDefinition, ...]:
        """Rules watching a metric, in snapshot order."""
        return tuple(rule for rule in self.rules if rule.metric_name == metric_name)

    def by_id(self) -> dict[uuid.UUID, RuleDefinition]:
        """Rule-id lookup (a copy; callers may not mutate the snapshot)."""
        return dict(self._by_id)


class RuleCache:
    """Holds the current rule snapshot and reloads it from a repository."""

    def __init__(self, repository: RuleRepository):
        self._repository = repository
        self._snapshot = RuleSnapshot()
        self._write_lock = asyncio.Lock()

    def snapshot(self) -> RuleSnapshot:
        return self._snapshot

    def get_rules_for(self, metric_name: str) -> tuple[RuleDefinition, ...]:
        return self._snapshot.rules_for(metric_name)

    async def load(self) -> RuleSnapshot:
        """Replace the snapshot with the repository's enabled rules.

        On failure the previous snapshot stays in place (empty if no load
        has ever succeeded) and the error is logged, never raised.
        """
        async with self._write_lock:
            previous = self._snapshot
            try:
                rules = await self._repository.list_enabled_rules()
            except Exception as e:
                logger.error(
                    "Failed to load alert rules; keeping previous snapshot",
                    error=str(e),
                    generation=previous.generation,
                    rule_count=len(previous),
                )
                return previous

            snapshot = RuleSnapshot(
                rules=tuple(rule for rule in rules if rule.enabled),
                generation=previous.generation + 1,
                loaded_at=datetime.now(UTC),
            )
            self._snapshot = snapshot

        logger.info(
            "Loaded alert rules",
            rule_count=len(snapshot),
            generation=snapshot.generation,
        )
        return snapshot
