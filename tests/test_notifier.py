"""Tests for alert notification delivery."""

import asyncio
import json

import httpx
import pytest

from conftest import RecordingSink
from telemetry.services.notifier import (
    SEVERITY_EMOJI,
    NotificationDispatcher,
    NotificationError,
    SlackNotifier,
    build_dispatcher,
    format_notification,
)

WEBHOOK = "https://hooks.slack.test/services/T000/B000/XXXX"


# ---------------------------------------------------------------------------
# Message formatting (pure function)
# ---------------------------------------------------------------------------
class TestFormatNotification:
    def test_critical(self):
        text = format_notification("critical", "Motor Temperature High - value: 91.00")
        assert text.startswith(SEVERITY_EMOJI["critical"])
        assert "*[CRITICAL]*" in text
        assert text.endswith("Motor Temperature High - value: 91.00")

    def test_severity_is_case_insensitive(self):
        assert format_notification("WARNING", "x").startswith(SEVERITY_EMOJI["warning"])

    def test_unknown_severity_gets_default_marker(self):
        text = format_notification("page-oncall", "x")
        assert "*[PAGE-ONCALL]*" in text
        assert not any(text.startswith(e) for e in SEVERITY_EMOJI.values())


# ---------------------------------------------------------------------------
# Slack webhook sink
# ---------------------------------------------------------------------------
class TestSlackNotifier:
    @pytest.mark.asyncio
    async def test_posts_text_payload(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, text="ok")

        notifier = SlackNotifier(WEBHOOK, transport=httpx.MockTransport(handler))
        await notifier.notify("warning", "Motor Temperature High")

        assert len(requests) == 1
        assert requests[0].method == "POST"
        assert str(requests[0].url) == WEBHOOK
        body = json.loads(requests[0].content)
        assert body == {"text": format_notification("warning", "Motor Temperature High")}

    @pytest.mark.asyncio
    async def test_rejected_message_raises(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(404, text="no_service")
        )
        notifier = SlackNotifier(WEBHOOK, transport=transport)

        with pytest.raises(NotificationError, match="404"):
            await notifier.notify("critical", "x")

    @pytest.mark.asyncio
    async def test_unreachable_webhook_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        notifier = SlackNotifier(WEBHOOK, transport=httpx.MockTransport(handler))

        with pytest.raises(NotificationError, match="unreachable"):
            await notifier.notify("critical", "x")


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------
class TestNotificationDispatcher:
    @pytest.mark.asyncio
    async def test_delivers_in_background(self):
        sink = RecordingSink()
        dispatcher = NotificationDispatcher(sink)

        task = dispatcher.dispatch("warning", "hello")
        assert isinstance(task, asyncio.Task)
        await dispatcher.drain()

        assert sink.sent == [("warning", "hello")]

    @pytest.mark.asyncio
    async def test_dispatch_does_not_wait_for_sink(self):
        release = asyncio.Event()

        class SlowSink:
            def __init__(self):
                self.sent = []

            async def notify(self, severity, message):
                await release.wait()
                self.sent.append(message)

        sink = SlowSink()
        dispatcher = NotificationDispatcher(sink)

        dispatcher.dispatch("critical", "slow")
        assert sink.sent == []

        release.set()
        await dispatcher.drain()
        assert sink.sent == ["slow"]

    @pytest.mark.asyncio
    async def test_sink_failure_is_swallowed(self):
        dispatcher = NotificationDispatcher(RecordingSink(fail=True))

        task = dispatcher.dispatch("critical", "x")
        await dispatcher.drain()

        assert task.done()
        assert task.exception() is None

    @pytest.mark.asyncio
    async def test_without_sink_is_noop(self):
        dispatcher = NotificationDispatcher()

        assert dispatcher.enabled is False
        assert dispatcher.dispatch("critical", "x") is None
        await dispatcher.drain()

    @pytest.mark.asyncio
    async def test_completed_tasks_are_released(self):
        dispatcher = NotificationDispatcher(RecordingSink())

        dispatcher.dispatch("info", "a")
        dispatcher.dispatch("info", "b")
        await dispatcher.drain()
        await asyncio.sleep(0)

        assert dispatcher._pending == set()


class TestBuildDispatcher:
    def test_empty_webhook_disables_notifications(self):
        assert build_dispatcher("").enabled is False

    def test_webhook_configures_slack(self):
        dispatcher = build_dispatcher(WEBHOOK, timeout=3.0)

        assert dispatcher.enabled is True
        assert isinstance(dispatcher.sink, SlackNotifier)
        assert dispatcher.sink.webhook_url == WEBHOOK
        assert dispatcher.sink.timeout == 3.0
