"""Tests for the HTTP API.

Database sessions are mocks; the alert engine runs over in-memory fakes.
"""

import uuid
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from conftest import temperature_rule
from telemetry.database import get_db
from telemetry.main import app
from telemetry.middleware import CORRELATION_ID_HEADER
from telemetry.models.alert import Alert
from telemetry.models.machine import Machine
from telemetry.services.alert_engine import get_alert_engine


@pytest.fixture
def db():
    session = MagicMock()
    session.commit = AsyncMock()
    session.refresh = AsyncMock(
        side_effect=lambda obj: setattr(obj, "id", obj.id or uuid.uuid4())
    )
    session.execute = AsyncMock()
    return session


@pytest.fixture
async def engine(make_engine):
    engine = make_engine([temperature_rule(70)])
    await engine.start()
    return engine


@pytest.fixture
async def client(db, engine):
    """Async test client with the database and engine overridden."""

    async def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_alert_engine] = lambda: engine
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


def _alert(**overrides) -> Alert:
    fields = {
        "id": uuid.uuid4(),
        "machine_id": uuid.uuid4(),
        "rule_id": uuid.uuid4(),
        "severity": "warning",
        "message": "Motor Temperature High - value: 71.30 (threshold: 70.00)",
        "acknowledged": False,
        "acknowledged_by": None,
        "acknowledged_at": None,
        "created_at": datetime.now(UTC),
    }
    fields.update(overrides)
    return Alert(**fields)


class TestIngest:
    @pytest.mark.asyncio
    async def test_triggering_sample_opens_alert(self, client, db, alert_store):
        machine_id = uuid.uuid4()

        response = await client.post(
            "/api/v1/metrics/ingest",
            json={
                "machine_id": str(machine_id),
                "metric_name": "temperature",
                "value": 71.3,
                "unit": "C",
            },
        )

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "alerts_created": 1}
        db.execute.assert_awaited_once()
        db.commit.assert_awaited_once()
        assert len(alert_store.open_alerts(machine_id)) == 1

    @pytest.mark.asyncio
    async def test_repeat_sample_is_deduplicated(self, client, alert_store):
        body = {
            "machine_id": str(uuid.uuid4()),
            "metric_name": "temperature",
            "value": 75.0,
        }

        first = await client.post("/api/v1/metrics/ingest", json=body)
        second = await client.post("/api/v1/metrics/ingest", json=body)

        assert first.json()["alerts_created"] == 1
        assert second.json()["alerts_created"] == 0
        assert len(alert_store.open_alerts()) == 1

    @pytest.mark.asyncio
    async def test_normal_sample(self, client, alert_store):
        response = await client.post(
            "/api/v1/metrics/ingest",
            json={
                "machine_id": str(uuid.uuid4()),
                "metric_name": "temperature",
                "value": 40.0,
            },
        )

        assert response.json()["alerts_created"] == 0
        assert alert_store.alerts == {}

    @pytest.mark.asyncio
    async def test_invalid_payload_rejected(self, client, db):
        response = await client.post(
            "/api/v1/metrics/ingest",
            json={"machine_id": "not-a-uuid", "metric_name": "temperature"},
        )

        assert response.status_code == 422
        db.execute.assert_not_called()
        db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_correlation_id_echoed(self, client):
        response = await client.post(
            "/api/v1/metrics/ingest",
            json={
                "machine_id": str(uuid.uuid4()),
                "metric_name": "temperature",
                "value": 1.0,
            },
            headers={CORRELATION_ID_HEADER: "req-42"},
        )

        assert response.headers[CORRELATION_ID_HEADER] == "req-42"


class TestAlertsApi:
    @pytest.mark.asyncio
    async def test_list_alerts(self, client):
        alerts = [_alert(), _alert(acknowledged=True, acknowledged_by="system")]
        with patch(
            "telemetry.routers.alerts.get_recent_alerts",
            new_callable=AsyncMock,
            return_value=alerts,
        ) as mock_get:
            response = await client.get("/api/v1/alerts?limit=10&open_only=true")

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert data["alerts"][1]["acknowledged_by"] == "system"
        assert mock_get.await_args.kwargs == {"limit": 10, "open_only": True}

    @pytest.mark.asyncio
    async def test_acknowledge(self, client):
        alert = _alert(
            acknowledged=True,
            acknowledged_by="operator-1",
            acknowledged_at=datetime.now(UTC),
        )
        with patch(
            "telemetry.routers.alerts.acknowledge_alert",
            new_callable=AsyncMock,
            return_value=alert,
        ) as mock_ack:
            response = await client.patch(
                f"/api/v1/alerts/{alert.id}/acknowledge",
                json={"acknowledged_by": "operator-1"},
            )

        assert response.status_code == 200
        assert response.json()["acknowledged"] is True
        assert response.json()["acknowledged_by"] == "operator-1"
        assert mock_ack.await_args.args[1:] == (alert.id, "operator-1")

    @pytest.mark.asyncio
    async def test_acknowledge_not_found(self, client):
        with patch(
            "telemetry.routers.alerts.acknowledge_alert",
            new_callable=AsyncMock,
            return_value=None,
        ):
            response = await client.patch(
                f"/api/v1/alerts/{uuid.uuid4()}/acknowledge",
                json={"acknowledged_by": "operator-1"},
            )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_acknowledge_requires_name(self, client):
        response = await client.patch(
            f"/api/v1/alerts/{uuid.uuid4()}/acknowledge",
            json={"acknowledged_by": ""},
        )

        assert response.status_code == 422


class TestRulesApi:
    @pytest.mark.asyncio
    async def test_create_rule_reloads_cache(self, client, db, engine):
        generation = engine.rules.snapshot().generation

        response = await client.post(
            "/api/v1/rules",
            json={
                "name": "Spindle Vibration High",
                "metric_name": "vibration",
                "threshold_value": 5.5,
                "operator": ">=",
                "severity": "critical",
            },
        )

        assert response.status_code == 201
        data = response.json()
        assert data["metric_name"] == "vibration"
        assert data["operator"] == ">="
        assert data["condition_type"] == "threshold"
        db.add.assert_called_once()
        db.commit.assert_awaited_once()
        assert engine.rules.snapshot().generation == generation + 1

    @pytest.mark.asyncio
    async def test_create_rule_rejects_unknown_operator(self, client, db):
        response = await client.post(
            "/api/v1/rules",
            json={
                "name": "Bad",
                "metric_name": "vibration",
                "threshold_value": 5.5,
                "operator": "==",
            },
        )

        assert response.status_code == 422
        db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_reload(self, client, engine):
        response = await client.post("/api/v1/rules/reload")

        assert response.status_code == 200
        assert response.json() == {"rule_count": 1, "generation": 2}


class TestHealth:
    @pytest.mark.asyncio
    async def test_healthy(self, client):
        with patch(
            "telemetry.routers.health.check_database_connection",
            new_callable=AsyncMock,
            return_value=True,
        ):
            response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["rules_loaded"] == 1
        assert data["rules_generation"] == 1
        assert data["notifications_enabled"] is True
        assert data["auto_resolve"] == "idle"

    @pytest.mark.asyncio
    async def test_degraded(self, client):
        with patch(
            "telemetry.routers.health.check_database_connection",
            new_callable=AsyncMock,
            return_value=False,
        ):
            response = await client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "degraded"

    @pytest.mark.asyncio
    async def test_liveness(self, client):
        response = await client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    @pytest.mark.asyncio
    async def test_auto_resolve_stopped_after_shutdown(self, client, engine):
        await engine.auto_resolver.stop()
        with patch(
            "telemetry.routers.health.check_database_connection",
            new_callable=AsyncMock,
            return_value=True,
        ):
            response = await client.get("/health")

        assert response.json()["auto_resolve"] == "stopped"


class TestReadiness:
    @pytest.mark.asyncio
    async def test_ready(self, client):
        with (
            patch(
                "telemetry.routers.health.check_database_connection",
                new_callable=AsyncMock,
                return_value=True,
            ),
            patch(
                "telemetry.routers.health.check_migrations_current",
                new_callable=AsyncMock,
                return_value=True,
            ),
        ):
            response = await client.get("/health/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ready", "database": "connected"}

    @pytest.mark.asyncio
    async def test_database_down(self, client):
        with patch(
            "telemetry.routers.health.check_database_connection",
            new_callable=AsyncMock,
            return_value=False,
        ):
            response = await client.get("/health/ready")

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"

    @pytest.mark.asyncio
    async def test_schema_behind(self, client):
        with (
            patch(
                "telemetry.routers.health.check_database_connection",
                new_callable=AsyncMock,
                return_value=True,
            ),
            patch(
                "telemetry.routers.health.check_migrations_current",
                new_callable=AsyncMock,
                return_value=False,
            ),
        ):
            response = await client.get("/health/ready")

        assert response.status_code == 503
        assert response.json() == {
            "status": "not_ready",
            "database": "migrations_pending",
        }


def _machine(**overrides) -> Machine:
    fields = {
        "id": uuid.uuid4(),
        "name": "Pump 7",
        "type": "centrifugal_pump",
        "location": "Hall B",
        "details": {"rated_kw": 55},
        "status": "active",
        "created_at": datetime.now(UTC),
    }
    fields.update(overrides)
    return Machine(**fields)


class TestMachinesApi:
    @pytest.mark.asyncio
    async def test_list_machines(self, client):
        machines = [_machine(), _machine(name="Compressor 2", details=None)]
        with patch(
            "telemetry.routers.machines.list_machines",
            new_callable=AsyncMock,
            return_value=machines,
        ):
            response = await client.get("/api/v1/machines")

        assert response.status_code == 200
        data = response.json()
        assert [m["name"] for m in data] == ["Pump 7", "Compressor 2"]
        assert data[0]["metadata"] == {"rated_kw": 55}
        assert data[1]["metadata"] is None

    @pytest.mark.asyncio
    async def test_register_machine(self, client):
        machine = _machine()
        with patch(
            "telemetry.routers.machines.create_machine",
            new_callable=AsyncMock,
            return_value=machine,
        ) as mock_create:
            response = await client.post(
                "/api/v1/machines",
                json={
                    "name": "Pump 7",
                    "type": "centrifugal_pump",
                    "location": "Hall B",
                    "metadata": {"rated_kw": 55},
                },
            )

        assert response.status_code == 201
        data = response.json()
        assert data["id"] == str(machine.id)
        assert data["status"] == "active"
        assert data["metadata"] == {"rated_kw": 55}
        assert mock_create.await_args.kwargs == {
            "name": "Pump 7",
            "type": "centrifugal_pump",
            "location": "Hall B",
            "details": {"rated_kw": 55},
        }

    @pytest.mark.asyncio
    async def test_register_persists(self, client, db):
        def fill_defaults(obj):
            obj.id = uuid.uuid4()
            obj.status = obj.status or "active"
            obj.created_at = datetime.now(UTC)

        db.refresh.side_effect = fill_defaults

        response = await client.post("/api/v1/machines", json={"name": "Lathe 3"})

        assert response.status_code == 201
        assert response.json()["status"] == "active"
        added = db.add.call_args.args[0]
        assert isinstance(added, Machine)
        assert added.name == "Lathe 3"
        db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_name_required(self, client, db):
        response = await client.post("/api/v1/machines", json={"name": ""})

        assert response.status_code == 422
        db.add.assert_not_called()
