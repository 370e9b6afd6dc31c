"""Best-effort alert notifications.

Alerts are advisory outside the alert table: a notification that cannot
be delivered is logged and dropped, never retried and never allowed to
affect the alert record or the ingest path.
"""

import asyncio
from typing import Protocol

import httpx

from telemetry.logging_config import get_logger
from telemetry.models.alert import AlertSeverity

logger = get_logger(__name__)

SEVERITY_EMOJI: dict[str, str] = {
    AlertSeverity.INFO.value: "\u2139\ufe0f",  # ℹ️
    AlertSeverity.WARNING.value: "\u26a0\ufe0f",  # ⚠️
    AlertSeverity.CRITICAL.value: "\U0001f6a8",  # 🚨
}


class NotificationError(Exception):
    """Raised when a notification sink rejects a message."""


class NotificationSink(Protocol):
    async def notify(self, severity: str, message: str) -> None: ...


def format_notification(severity: str, message: str) -> str:
    """Render an alert as a one-line chat message."""
    emoji = SEVERITY_EMOJI.get(severity.lower(), "\U0001f514")  # 🔔
    return f"{emoji} *[{severity.upper()}]* {message}"


class SlackNotifier:
    """Posts alerts to a Slack incoming webhook."""

    def __init__(
        self,
        webhook_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.webhook_url = webhook_url
        self.timeout = timeout
        self._transport = transport

    async def notify(self, severity: str, message: str) -> None:
        """Send one alert message.

        Raises:
            NotificationError: If the webhook is unreachable or rejects it.
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self.webhook_url,
                    json={"text": format_notification(severity, message)},
                )
        except httpx.HTTPError as e:
            raise NotificationError(f"Slack webhook unreachable: {e}") from e

        if response.status_code >= 400:
            raise NotificationError(
                f"Slack webhook rejected message: {response.status_code} {response.text}"
            )


class NotificationDispatcher:
    """Fire-and-forget hand-off to an optional notification sink.

    With no sink configured, dispatch is a silent no-op.
    """

    def __init__(self, sink: NotificationSink | None = None):
        self.sink = sink
        self._pending: set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return self.sink is not None

    def dispatch(self, severity: str, message: str) -> asyncio.Task | None:
        """Schedule delivery in the background and return immediately."""
        if self.sink is None:
            return None

        task = asyncio.create_task(self._deliver(severity, message))
        # Hold a reference until done so the task is not garbage collected
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _deliver(self, severity: str, message: str) -> None:
        try:
            await self.sink.notify(severity, message)
        except Exception as e:
            logger.warning(
                "Alert notification failed",
                severity=severity,
                error=str(e),
            )

    async def drain(self) -> None:
        """Wait for in-flight deliveries (used on shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)


def build_dispatcher(slack_webhook: str, timeout: float = 10.0) -> NotificationDispatcher:
    """Dispatcher for the configured sink; empty webhook disables delivery."""
    if not slack_webhook:
        logger.info("No notification sink configured; alert notifications disabled")
        return NotificationDispatcher()
    return NotificationDispatcher(SlackNotifier(slack_webhook, timeout=timeout))
