"""Auto-resolve sweep.

Each sweep re-checks every open alert against the latest reading for
its metric and acknowledges (as "system") the ones whose condition has
cleared. Sweeps never overlap: a sweep requested while another is still
running is skipped. Individual resolutions are independent, so a sweep
interrupted by shutdown is simply finished by the next one.
"""

import asyncio
from dataclasses import dataclass

from telemetry.logging_config import get_logger
from telemetry.services.alert_lifecycle import AlertLifecycleManager
from telemetry.services.alert_store import AlertStore
from telemetry.services.rule_cache import RuleCache

logger = get_logger(__name__)


@dataclass
class SweepResult:
    """Outcome of one sweep."""

    checked: int = 0
    resolved: int = 0
    no_sample: int = 0
    skipped: bool = False
    interrupted: bool = False


class AutoResolver:
    """Runs reconciliation sweeps over open alerts."""

    def __init__(
        self,
        rules: RuleCache,
        store: AlertStore,
        lifecycle: AlertLifecycleManager,
    ):
        self.rules = rules
        self.store = store
        self.lifecycle = lifecycle
        self._sweep_lock = asyncio.Lock()
        self._stopping = False

    @property
    def sweeping(self) -> bool:
        return self._sweep_lock.locked()

    @property
    def stopping(self) -> bool:
        return self._stopping

    async def sweep(self) -> SweepResult:
        """Run one pass unless a pass is already running or we are stopping."""
        if self._stopping:
            return SweepResult(skipped=True)
        if self._sweep_lock.locked():
            logger.warning("Previous auto-resolve sweep still running; skipping")
            return SweepResult(skipped=True)

        async with self._sweep_lock:
            return await self._run_sweep()

    async def _run_sweep(self) -> SweepResult:
        result = SweepResult()
        rules_by_id = self.rules.snapshot().by_id()

        try:
            open_alerts = await self.store.list_open_alerts_with_latest_sample()
        except Exception as e:
            logger.error("Failed to fetch open alerts for auto-resolve", error=str(e))
            return result

        for item in open_alerts:
            if self._stopping:
                result.interrupted = True
                break

            result.checked += 1
            if item.latest_value is None:
                # No reading yet for this machine/metric; nothing to judge by
                result.no_sample += 1
                continue

            rule = rules_by_id.get(item.alert.rule_id)
            if await self.lifecycle.resolve(item.alert, rule, item.latest_value):
                result.resolved += 1

        logger.info(
            "Auto-resolve sweep completed",
            checked=result.checked,
            resolved=result.resolved,
            no_sample=result.no_sample,
            interrupted=result.interrupted,
        )
        return result

    async def stop(self) -> None:
        """Stop accepting sweeps and wait for an in-flight sweep to finish
        its current store call."""
        self._stopping = True
        async with self._sweep_lock:
            pass
        logger.info("Auto-resolve stopped")
