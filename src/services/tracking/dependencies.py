# src/services/tracking/dependencies.py
"""
Dependency Injection для сервиса трекинга.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Annotated

from fastapi import Header

from src.core.tracking.exceptions import OperatorNotAuthenticatedError
from src.services.tracking.fleet import DatabaseFleetDirectory
from src.services.tracking.proximity import ProximityIndex
from src.services.tracking.repository import PositionHistoryRepository, VehicleRepository
from src.services.tracking.service import LocationTrackingService

if TYPE_CHECKING:
    from src.infra.database import DatabaseManager
    from src.infra.event_bus import EventBus
    from src.infra.redis_client import RedisClient
    from src.worker.runner import WorkerRunner


# Синглтоны
_tracking_service: "LocationTrackingService | None" = None
_proximity_index: "ProximityIndex | None" = None
_worker_runner: "WorkerRunner | None" = None


def init_dependencies(
    db: "DatabaseManager",
    redis: "RedisClient | None" = None,
    event_bus: "EventBus | None" = None,
) -> None:
    """Инициализировать зависимости при старте приложения."""
    global _tracking_service, _proximity_index
    from src.config import settings

    tracking = settings.tracking
    stale_threshold = timedelta(seconds=tracking.STALE_THRESHOLD_SECONDS)
    vehicles = VehicleRepository(db)

    _tracking_service = LocationTrackingService(
        db=db,
        vehicles=vehicles,
        history=PositionHistoryRepository(db),
        fleet=DatabaseFleetDirectory(vehicles),
        redis=redis,
        event_bus=event_bus,
        stale_threshold=stale_threshold,
        default_history_hours=tracking.DEFAULT_HISTORY_HOURS,
    )
    _proximity_index = ProximityIndex(
        vehicles=vehicles,
        stale_threshold=stale_threshold,
        default_radius_km=tracking.DEFAULT_NEARBY_RADIUS_KM,
        km_per_degree=tracking.KM_PER_DEGREE,
        earth_radius_km=tracking.EARTH_RADIUS_KM,
    )


def set_worker_runner(runner: "WorkerRunner | None") -> None:
    global _worker_runner
    _worker_runner = runner


def get_tracking_service() -> LocationTrackingService:
    """Получить сервис трекинга."""
    if _tracking_service is None:
        raise RuntimeError("LocationTrackingService не инициализирован. Вызовите init_dependencies()")
    return _tracking_service


def get_proximity_index() -> ProximityIndex:
    """Получить индекс поиска рядом."""
    if _proximity_index is None:
        raise RuntimeError("ProximityIndex не инициализирован. Вызовите init_dependencies()")
    return _proximity_index


def get_worker_runner() -> "WorkerRunner | None":
    """Планировщик фоновых задач, если он запущен в этом процессе."""
    return _worker_runner


async def get_operator_id(
    x_operator_id: Annotated[str | None, Header(alias="X-Operator-Id")] = None,
) -> int:
    """
    ID водителя из заголовка X-Operator-Id.

    Заголовок ставит шлюз после аутентификации; здесь только разбор.
    """
    if not x_operator_id:
        raise OperatorNotAuthenticatedError("X-Operator-Id header is required")
    try:
        operator_id = int(x_operator_id)
    except ValueError:
        raise OperatorNotAuthenticatedError("X-Operator-Id must be an integer")
    if operator_id <= 0:
        raise OperatorNotAuthenticatedError("X-Operator-Id must be positive")
    return operator_id


def cleanup_dependencies() -> None:
    """Очистить ссылки при остановке приложения."""
    global _tracking_service, _proximity_index, _worker_runner
    _tracking_service = None
    _proximity_index = None
    _worker_runner = None
