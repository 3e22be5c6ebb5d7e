# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import json
import os
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("REDIS_PASSWORD", "")


# Фиксированное "сейчас" для тестов со временем
NOW = datetime(2026, 3, 2, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "_comment_system": "Тестовая конфигурация",
        "PROJECT_NAME": "bus_tracker_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "LOG_LEVEL": "DEBUG",
        "ENVIRONMENT": "test",
        "LOG_TO_FILE": False,
        "LOG_FILE_PATH": "logs/test.log",
        "LOG_FORMAT": "colored",
        "TRACKING_SERVICE_PORT": 9090,
        "DB_HOST": "localhost",
        "DB_PORT": 5432,
        "DB_NAME": "bus_tracker_test",
        "DB_USER": "postgres",
        "DB_PASSWORD": "test_password",
        "DB_MIN_POOL_SIZE": 2,
        "DB_MAX_POOL_SIZE": 5,
        "DB_RETRY_ATTEMPTS": 5,
        "DB_RETRY_DELAY": 0.5,
        "REDIS_HOST": "localhost",
        "REDIS_PORT": 6379,
        "REDIS_DB": 1,
        "REDIS_NAMESPACE": "bus_test",
        "RABBITMQ_EXCHANGE": "bus.test",
        "STALE_THRESHOLD_SECONDS": 120,
        "LIVENESS_SWEEP_INTERVAL": 30,
        "RETENTION_HOURS": 12,
        "RETENTION_SWEEP_INTERVAL": 600,
        "DEFAULT_NEARBY_RADIUS_KM": 3.0,
        "RUN_WORKERS_IN_API": False,
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Создаёт временный файл конфигурации."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config, ensure_ascii=False, indent=2))
    return config_file


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

@pytest.fixture
def mock_conn() -> AsyncMock:
    """Мок соединения asyncpg внутри транзакции."""
    conn = AsyncMock()
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetchval = AsyncMock(return_value=1)
    conn.execute = AsyncMock(return_value="INSERT 0 1")
    return conn


@pytest.fixture
def mock_db(mock_conn: AsyncMock) -> MagicMock:
    """Мок менеджера базы данных."""
    db = MagicMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="DELETE 0")
    db.fetchval = AsyncMock(return_value=None)
    db.health_check = AsyncMock(return_value=True)
    db.transaction_rollbacks = 0

    @asynccontextmanager
    async def transaction():
        try:
            yield mock_conn
        except Exception:
            db.transaction_rollbacks += 1
            raise

    db.transaction = transaction
    return db


@pytest.fixture
def mock_redis() -> AsyncMock:
    """Мок клиента Redis."""
    redis = AsyncMock()
    redis.publish_json = AsyncMock(return_value=1)
    redis.acquire_lock = AsyncMock(return_value="lock-token")
    redis.release_lock = AsyncMock(return_value=True)
    redis.health_check = AsyncMock(return_value=True)
    return redis


@pytest.fixture
def mock_event_bus() -> AsyncMock:
    """Мок шины событий."""
    event_bus = AsyncMock()
    event_bus.publish = AsyncMock(return_value=True)
    event_bus.health_check = AsyncMock(return_value=True)
    event_bus.is_connected = True
    return event_bus


# =============================================================================
# ФИКСТУРЫ ДАННЫХ
# =============================================================================

@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Часы, всегда возвращающие NOW."""
    return lambda: NOW


@pytest.fixture
def route_id() -> UUID:
    return UUID("11111111-1111-1111-1111-111111111111")


@pytest.fixture
def make_vehicle(route_id: UUID) -> Callable[..., dict[str, Any]]:
    """Фабрика строк таблицы tracking_schema.vehicles."""

    def _make(**overrides: Any) -> dict[str, Any]:
        row = {
            "id": uuid4(),
            "plate_number": "AA1234BB",
            "capacity": 40,
            "route_id": route_id,
            "operator_id": 1001,
            "latitude": 50.4501,
            "longitude": 30.5234,
            "speed": 0.0,
            "heading": 0.0,
            "last_reported_at": NOW - timedelta(seconds=30),
            "is_online": True,
            "is_active": True,
        }
        row.update(overrides)
        return row

    return _make


@pytest.fixture
def sample_vehicle(make_vehicle: Callable[..., dict[str, Any]]) -> dict[str, Any]:
    """Пример автобуса водителя 1001."""
    return make_vehicle()


# =============================================================================
# IN-MEMORY ХРАНИЛИЩА
# =============================================================================

class FakeClock:
    """Часы, которые двигаются только вручную."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class InMemoryVehicleRepository:
    """Повторяет поведение VehicleRepository на словаре."""

    def __init__(self, vehicles: list[dict[str, Any]] | None = None) -> None:
        self.rows: dict[UUID, dict[str, Any]] = {v["id"]: dict(v) for v in vehicles or []}

    async def get_vehicle(self, vehicle_id: UUID) -> dict[str, Any] | None:
        row = self.rows.get(vehicle_id)
        return dict(row) if row else None

    async def get_vehicle_by_operator(self, operator_id: int) -> dict[str, Any] | None:
        for row in self.rows.values():
            if row["operator_id"] == operator_id and row["is_active"]:
                return dict(row)
        return None

    async def list_vehicles(self, route_id: UUID | None = None) -> list[dict[str, Any]]:
        return [
            dict(row) for row in self.rows.values()
            if row["is_active"] and (route_id is None or row["route_id"] == route_id)
        ]

    async def update_position(
        self, conn: Any, vehicle_id: UUID, latitude: float, longitude: float,
        speed: float, heading: float, reported_at: datetime,
    ) -> dict[str, Any] | None:
        row = self.rows.get(vehicle_id)
        if row is None or not row["is_active"]:
            return None
        was_online = row["is_online"]
        row.update(
            latitude=latitude,
            longitude=longitude,
            speed=speed,
            heading=heading,
            last_reported_at=reported_at,
            is_online=True,
        )
        return {**row, "was_online": was_online}

    async def set_online(self, vehicle_id: UUID, is_online: bool) -> dict[str, Any] | None:
        row = self.rows.get(vehicle_id)
        if row is None or not row["is_active"]:
            return None
        row["is_online"] = is_online
        return dict(row)

    async def find_in_box(
        self, min_lat: float, max_lat: float, min_lon: float, max_lon: float, fresh_since: datetime,
    ) -> list[dict[str, Any]]:
        return [
            dict(row) for row in self.rows.values()
            if row["is_active"]
            and row["latitude"] is not None
            and min_lat <= row["latitude"] <= max_lat
            and min_lon <= row["longitude"] <= max_lon
            and row["last_reported_at"] is not None
            and row["last_reported_at"] >= fresh_since
        ]

    async def mark_stale_offline(self, cutoff: datetime) -> list[dict[str, Any]]:
        demoted = []
        for row in self.rows.values():
            if row["is_online"] and (row["last_reported_at"] is None or row["last_reported_at"] < cutoff):
                row["is_online"] = False
                demoted.append({"id": row["id"], "last_reported_at": row["last_reported_at"]})
        return demoted


class InMemoryHistoryRepository:
    """Повторяет поведение PositionHistoryRepository на списке."""

    def __init__(self) -> None:
        self.rows: list[dict[str, Any]] = []
        self._next_id = 1

    async def append(
        self, conn: Any, vehicle_id: UUID, latitude: float, longitude: float,
        speed: float, heading: float, accuracy: float, reported_at: datetime,
    ) -> int:
        report_id = self._next_id
        self._next_id += 1
        self.rows.append({
            "id": report_id,
            "vehicle_id": vehicle_id,
            "latitude": latitude,
            "longitude": longitude,
            "speed": speed,
            "heading": heading,
            "accuracy": accuracy,
            "reported_at": reported_at,
        })
        return report_id

    async def get_trail(self, vehicle_id: UUID, since: datetime) -> list[dict[str, Any]]:
        rows = [r for r in self.rows if r["vehicle_id"] == vehicle_id and r["reported_at"] >= since]
        return sorted(rows, key=lambda r: (r["reported_at"], r["id"]), reverse=True)

    async def delete_older_than(self, cutoff: datetime) -> int:
        before = len(self.rows)
        self.rows = [r for r in self.rows if r["reported_at"] >= cutoff]
        return before - len(self.rows)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def vehicle_store(sample_vehicle: dict[str, Any]) -> InMemoryVehicleRepository:
    """Хранилище с одним автобусом водителя 1001."""
    return InMemoryVehicleRepository([sample_vehicle])


@pytest.fixture
def history_store() -> InMemoryHistoryRepository:
    return InMemoryHistoryRepository()


@pytest.fixture
def vehicle_repo_cls() -> type[InMemoryVehicleRepository]:
    """Класс in-memory репозитория автобусов для своих наборов данных."""
    return InMemoryVehicleRepository
