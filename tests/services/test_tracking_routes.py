# tests/services/test_tracking_routes.py
"""
Тесты HTTP слоя сервиса трекинга (src/services/tracking/app.py, routes.py).

Lifespan не запускается: TestClient создаётся без контекстного менеджера,
сервисы подменяются через dependency_overrides.
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from src.core.tracking.exceptions import (
    OperatorNotAuthenticatedError,
    TrackingValidationError,
    VehicleNotAssignedError,
    VehicleNotFoundError,
)
from src.services.tracking.app import app
from src.services.tracking.dependencies import (
    get_operator_id,
    get_proximity_index,
    get_tracking_service,
)
from src.shared.models.tracking_dto import (
    CurrentLocationDTO,
    NearbyVehicleDTO,
    OnlineStatusResponse,
    PositionReportDTO,
    VehicleLocationDTO,
)

NOW = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)
HEADERS = {"X-Operator-Id": "1001"}


def make_snapshot(**overrides) -> VehicleLocationDTO:
    data = {
        "id": uuid4(),
        "plate_number": "AA1234BB",
        "capacity": 40,
        "operator_id": 1001,
        "current_location": CurrentLocationDTO(
            latitude=50.45, longitude=30.52, speed=20.0, heading=90.0, last_updated=NOW,
        ),
        "is_online": True,
        "last_seen": NOW,
    }
    data.update(overrides)
    return VehicleLocationDTO(**data)


@pytest.fixture
def service() -> MagicMock:
    service = MagicMock()
    service.report_position = AsyncMock()
    service.set_online_status = AsyncMock()
    service.get_location = AsyncMock()
    service.list_locations = AsyncMock(return_value=[])
    service.get_history = AsyncMock(return_value=[])
    service.get_stats = MagicMock(return_value={"total_reports": 3})
    return service


@pytest.fixture
def index() -> MagicMock:
    index = MagicMock()
    index.find_nearby = AsyncMock(return_value=[])
    index.get_stats = MagicMock(return_value={"nearby_queries": 2})
    return index


@pytest.fixture
def client(service: MagicMock, index: MagicMock):
    app.dependency_overrides[get_tracking_service] = lambda: service
    app.dependency_overrides[get_proximity_index] = lambda: index
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestReportEndpoint:
    """POST /api/v1/locations/report."""

    def test_report_success(self, client: TestClient, service: MagicMock) -> None:
        snapshot = make_snapshot()
        service.report_position.return_value = snapshot

        response = client.post(
            "/api/v1/locations/report",
            json={"latitude": 50.45, "longitude": 30.52, "speed": 20, "heading": 90},
            headers=HEADERS,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Location updated successfully"
        assert body["vehicle"]["id"] == str(snapshot.id)
        assert body["vehicle"]["is_online"] is True
        kwargs = service.report_position.await_args.kwargs
        assert kwargs["operator_id"] == 1001
        assert kwargs["accuracy"] == 0.0
        assert kwargs["vehicle_id"] is None

    def test_missing_operator_header(self, client: TestClient, service: MagicMock) -> None:
        response = client.post("/api/v1/locations/report", json={"latitude": 1, "longitude": 2})

        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"
        service.report_position.assert_not_awaited()

    @pytest.mark.parametrize(
        "payload",
        [
            {"latitude": 91, "longitude": 30},
            {"latitude": 50, "longitude": -181},
            {"longitude": 30},
            {"latitude": 50, "longitude": 30, "heading": 360},
            {"latitude": 50, "longitude": 30, "speed": -1},
        ],
    )
    def test_invalid_body_is_400(self, client: TestClient, service: MagicMock, payload) -> None:
        response = client.post("/api/v1/locations/report", json=payload, headers=HEADERS)

        assert response.status_code == 400
        body = response.json()
        assert body["error_code"] == "VALIDATION_ERROR"
        assert body["details"]["errors"]
        service.report_position.assert_not_awaited()

    def test_not_assigned_is_404(self, client: TestClient, service: MagicMock) -> None:
        service.report_position.side_effect = VehicleNotAssignedError()

        response = client.post(
            "/api/v1/locations/report",
            json={"latitude": 50.45, "longitude": 30.52, "vehicle_id": str(uuid4())},
            headers=HEADERS,
        )

        assert response.status_code == 404
        assert response.json() == {
            "error_code": "VEHICLE_NOT_ASSIGNED",
            "message": "Bus not found or not assigned to you",
            "details": None,
        }


class TestStatusEndpoint:
    """POST /api/v1/locations/status."""

    def test_go_offline(self, client: TestClient, service: MagicMock) -> None:
        vehicle_id = uuid4()
        service.set_online_status.return_value = OnlineStatusResponse(
            message="Driver status updated to offline", vehicle_id=vehicle_id, is_online=False,
        )

        response = client.post("/api/v1/locations/status", json={"is_online": False}, headers=HEADERS)

        assert response.status_code == 200
        assert response.json() == {
            "message": "Driver status updated to offline",
            "vehicle_id": str(vehicle_id),
            "is_online": False,
        }
        service.set_online_status.assert_awaited_once_with(
            operator_id=1001, is_online=False, vehicle_id=None,
        )

    def test_missing_flag(self, client: TestClient) -> None:
        response = client.post("/api/v1/locations/status", json={}, headers=HEADERS)

        assert response.status_code == 400


class TestReadEndpoints:
    """GET /api/v1/locations/*."""

    def test_get_location(self, client: TestClient, service: MagicMock) -> None:
        snapshot = make_snapshot(is_online=False)
        service.get_location.return_value = snapshot

        response = client.get(f"/api/v1/locations/{snapshot.id}")

        assert response.status_code == 200
        assert response.json()["vehicle"]["is_online"] is False
        assert service.get_location.await_args.args[0] == snapshot.id

    def test_get_location_not_found(self, client: TestClient, service: MagicMock) -> None:
        vehicle_id = uuid4()
        service.get_location.side_effect = VehicleNotFoundError(vehicle_id)

        response = client.get(f"/api/v1/locations/{vehicle_id}")

        assert response.status_code == 404
        body = response.json()
        assert body["error_code"] == "VEHICLE_NOT_FOUND"
        assert body["message"] == "Bus not found"
        assert body["details"] == {"vehicle_id": str(vehicle_id)}

    def test_get_location_bad_uuid(self, client: TestClient, service: MagicMock) -> None:
        response = client.get("/api/v1/locations/not-a-uuid")

        assert response.status_code == 400
        service.get_location.assert_not_awaited()

    def test_list_locations_filters(self, client: TestClient, service: MagicMock, route_id) -> None:
        service.list_locations.return_value = [make_snapshot(route_id=route_id)]

        response = client.get(
            "/api/v1/locations", params={"route_id": str(route_id), "is_online": "true"},
        )

        assert response.status_code == 200
        assert len(response.json()["vehicles"]) == 1
        service.list_locations.assert_awaited_once_with(route_id=route_id, is_online=True)

    def test_nearby(self, client: TestClient, index: MagicMock) -> None:
        nearby = NearbyVehicleDTO(**make_snapshot().model_dump(), distance_km=1.23)
        index.find_nearby.return_value = [nearby]

        response = client.get(
            "/api/v1/locations/nearby", params={"latitude": 50.45, "longitude": 30.52},
        )

        assert response.status_code == 200
        assert response.json()["vehicles"][0]["distance_km"] == 1.23
        index.find_nearby.assert_awaited_once_with(50.45, 30.52, None)

    def test_nearby_validation_error(self, client: TestClient, index: MagicMock) -> None:
        index.find_nearby.side_effect = TrackingValidationError("Latitude and longitude are required")

        response = client.get("/api/v1/locations/nearby")

        assert response.status_code == 400
        assert response.json()["message"] == "Latitude and longitude are required"

    def test_nearby_non_numeric_query(self, client: TestClient, index: MagicMock) -> None:
        response = client.get(
            "/api/v1/locations/nearby", params={"latitude": "north", "longitude": 30.52},
        )

        assert response.status_code == 400
        index.find_nearby.assert_not_awaited()

    def test_history(self, client: TestClient, service: MagicMock) -> None:
        vehicle_id = uuid4()
        service.get_history.return_value = [
            PositionReportDTO(id=2, vehicle_id=vehicle_id, latitude=50.0, longitude=30.0, reported_at=NOW),
        ]

        response = client.get(f"/api/v1/locations/{vehicle_id}/history", params={"hours": 2})

        assert response.status_code == 200
        assert response.json()["history"][0]["id"] == 2
        service.get_history.assert_awaited_once_with(vehicle_id, 2.0)


class TestServiceEndpoints:
    """/health и /stats."""

    @pytest.mark.parametrize(
        ("postgres", "redis", "rabbitmq", "expected"),
        [
            (True, True, True, "healthy"),
            (True, False, True, "degraded"),
            (True, True, False, "degraded"),
            (False, True, True, "unhealthy"),
        ],
    )
    def test_health(self, client: TestClient, postgres, redis, rabbitmq, expected) -> None:
        db = MagicMock(health_check=AsyncMock(return_value=postgres))
        redis_client = MagicMock(health_check=AsyncMock(return_value=redis))
        event_bus = MagicMock(health_check=AsyncMock(return_value=rabbitmq))

        with patch("src.services.tracking.app.get_db", return_value=db), \
             patch("src.services.tracking.app.get_redis", return_value=redis_client), \
             patch("src.services.tracking.app.get_event_bus", return_value=event_bus):
            response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["service"] == "tracking_service"
        assert body["status"] == expected
        assert body["dependencies"]["postgres"] == ("healthy" if postgres else "unhealthy")
        assert body["uptime_seconds"] >= 0

    def test_stats(self, client: TestClient, service: MagicMock, index: MagicMock) -> None:
        with patch("src.services.tracking.app.get_tracking_service", return_value=service), \
             patch("src.services.tracking.app.get_proximity_index", return_value=index), \
             patch("src.services.tracking.app.get_worker_runner", return_value=None):
            response = client.get("/stats")

        assert response.status_code == 200
        assert response.json() == {"total_reports": 3, "nearby_queries": 2, "workers": {}}


class TestOperatorHeader:
    """Разбор заголовка X-Operator-Id."""

    @pytest.mark.asyncio
    async def test_valid(self) -> None:
        assert await get_operator_id("42") == 42

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [None, "", "abc", "0", "-5", "1.5"])
    async def test_invalid(self, value) -> None:
        with pytest.raises(OperatorNotAuthenticatedError):
            await get_operator_id(value)
