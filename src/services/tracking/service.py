# src/services/tracking/service.py
"""
Бизнес-логика трекинга автобусов.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable
from uuid import UUID

from src.common.constants import StatusChangeReason
from src.common.logger import log_error, log_info
from src.core.tracking.exceptions import (
    TrackingValidationError,
    VehicleNotAssignedError,
    VehicleNotFoundError,
)
from src.core.tracking.geo import validate_coordinates, validate_motion
from src.core.tracking.liveness import is_effectively_online
from src.services.tracking.utils import to_position_report, to_vehicle_snapshot, utcnow
from src.shared.events.tracking_events import (
    VehicleLocationUpdated,
    VehicleWentOffline,
    VehicleWentOnline,
)
from src.shared.models.tracking_dto import (
    OnlineStatusResponse,
    PositionReportDTO,
    VehicleLocationDTO,
)

if TYPE_CHECKING:
    from src.infra.database import DatabaseManager
    from src.infra.event_bus import EventBus
    from src.infra.redis_client import RedisClient
    from src.services.tracking.fleet import FleetDirectory
    from src.services.tracking.repository import PositionHistoryRepository, VehicleRepository


class LocationTrackingService:
    """
    Сервис трекинга автобусов.

    Ответственности:
    - Приём геопозиций от водителей (позиция + история в одной транзакции)
    - Ручное переключение online/offline водителем
    - Чтение текущих позиций с эффективным статусом online
    - История перемещений за последние N часов
    - Публикация обновлений в Redis Pub/Sub и событий в RabbitMQ
    """

    LOCATION_CHANNEL_PREFIX = "location:vehicle:"

    def __init__(
        self,
        db: "DatabaseManager",
        vehicles: "VehicleRepository",
        history: "PositionHistoryRepository",
        fleet: "FleetDirectory",
        redis: "RedisClient | None" = None,
        event_bus: "EventBus | None" = None,
        stale_threshold: timedelta = timedelta(seconds=300),
        default_history_hours: float = 1.0,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._db = db
        self._vehicles = vehicles
        self._history = history
        self._fleet = fleet
        self._redis = redis
        self._event_bus = event_bus
        self._stale_threshold = stale_threshold
        self._default_history_hours = default_history_hours
        self._clock = clock

        # Статистика
        self._total_reports = 0
        self._rejected_reports = 0
        self._reports_per_vehicle: dict[UUID, int] = {}

    # =========================================================================
    # ЗАКРЕПЛЕНИЯ
    # =========================================================================

    async def _resolve_assigned_vehicle(self, operator_id: int, vehicle_id: UUID | None) -> UUID:
        """
        Автобус, которым водитель имеет право управлять.

        Raises:
            VehicleNotAssignedError: за водителем нет автобуса или указан чужой
        """
        if vehicle_id is not None:
            if await self._fleet.operator_of(vehicle_id) != operator_id:
                raise VehicleNotAssignedError()
            return vehicle_id

        assigned = await self._fleet.vehicle_of_operator(operator_id)
        if assigned is None:
            raise VehicleNotAssignedError()
        return assigned

    # =========================================================================
    # ПРИЁМ ГЕОПОЗИЦИИ
    # =========================================================================

    async def report_position(
        self,
        operator_id: int,
        latitude: float,
        longitude: float,
        speed: float = 0.0,
        heading: float = 0.0,
        accuracy: float = 0.0,
        vehicle_id: UUID | None = None,
    ) -> VehicleLocationDTO:
        """
        Принять геопозицию от водителя.

        1. Валидация (до любых обращений к БД)
        2. Проверка закрепления автобуса за водителем
        3. Транзакция: текущая позиция + запись в историю
        4. Публикация в Pub/Sub и RabbitMQ (ошибки не пробрасываются)

        Returns:
            Обновлённый снимок автобуса

        Raises:
            TrackingValidationError: значения вне допустимых диапазонов
            VehicleNotAssignedError: автобус не закреплён за водителем
        """
        try:
            validate_coordinates(latitude, longitude)
            validate_motion(speed, heading, accuracy)
        except TrackingValidationError:
            self._rejected_reports += 1
            raise

        target_id = await self._resolve_assigned_vehicle(operator_id, vehicle_id)
        now = self._clock()

        async with self._db.transaction() as conn:
            vehicle = await self._vehicles.update_position(
                conn,
                target_id,
                latitude=latitude,
                longitude=longitude,
                speed=speed,
                heading=heading,
                reported_at=now,
            )
            if vehicle is None:
                # Автобус деактивирован между проверкой и записью
                raise VehicleNotAssignedError()
            await self._history.append(
                conn,
                target_id,
                latitude=latitude,
                longitude=longitude,
                speed=speed,
                heading=heading,
                accuracy=accuracy,
                reported_at=now,
            )

        self._total_reports += 1
        self._reports_per_vehicle[target_id] = self._reports_per_vehicle.get(target_id, 0) + 1

        await self._publish_location(vehicle, now)
        if not vehicle.get("was_online", True):
            await log_info(f"Автобус {target_id} вышел на линию")
            await self._publish_event(
                VehicleWentOnline(vehicle_id=target_id, reason=StatusChangeReason.REPORT.value)
            )

        return to_vehicle_snapshot(vehicle, is_online=True)

    async def _publish_location(self, vehicle: dict[str, Any], now: datetime) -> None:
        """Pub/Sub для живых карт и событие vehicle.location_updated."""
        vehicle_id = vehicle["id"]
        if self._redis is not None:
            try:
                await self._redis.publish_json(
                    f"{self.LOCATION_CHANNEL_PREFIX}{vehicle_id}",
                    {
                        "vehicle_id": str(vehicle_id),
                        "route_id": str(vehicle["route_id"]) if vehicle.get("route_id") else None,
                        "latitude": vehicle["latitude"],
                        "longitude": vehicle["longitude"],
                        "speed": vehicle["speed"],
                        "heading": vehicle["heading"],
                        "timestamp": now.isoformat(),
                    },
                )
            except Exception as e:
                await log_error(f"Не удалось опубликовать позицию автобуса {vehicle_id} в Redis: {e}")

        await self._publish_event(
            VehicleLocationUpdated(
                vehicle_id=vehicle_id,
                route_id=vehicle.get("route_id"),
                latitude=vehicle["latitude"],
                longitude=vehicle["longitude"],
                speed=vehicle["speed"],
                heading=vehicle["heading"],
                reported_at=now,
            )
        )

    async def _publish_event(self, event: Any) -> None:
        if self._event_bus is None:
            return
        try:
            await self._event_bus.publish(event)
        except Exception as e:
            await log_error(f"Не удалось опубликовать событие {event.event_type}: {e}")

    # =========================================================================
    # СТАТУС ONLINE/OFFLINE
    # =========================================================================

    async def set_online_status(
        self,
        operator_id: int,
        is_online: bool,
        vehicle_id: UUID | None = None,
    ) -> OnlineStatusResponse:
        """
        Водитель вручную выходит на линию или уходит с неё.

        last_reported_at не меняется: включённый вручную флаг без свежей
        геопозиции не делает автобус online для пассажиров.

        Raises:
            VehicleNotAssignedError: автобус не закреплён за водителем
        """
        target_id = await self._resolve_assigned_vehicle(operator_id, vehicle_id)

        vehicle = await self._vehicles.set_online(target_id, is_online)
        if vehicle is None:
            raise VehicleNotAssignedError()

        reason = StatusChangeReason.OPERATOR.value
        if is_online:
            event = VehicleWentOnline(vehicle_id=target_id, reason=reason)
        else:
            event = VehicleWentOffline(
                vehicle_id=target_id,
                reason=reason,
                last_reported_at=vehicle.get("last_reported_at"),
            )
        await self._publish_event(event)

        status = "online" if is_online else "offline"
        await log_info(f"Водитель {operator_id} перевёл автобус {target_id} в {status}")

        return OnlineStatusResponse(
            message=f"Driver status updated to {status}",
            vehicle_id=target_id,
            is_online=is_online,
        )

    # =========================================================================
    # ЧТЕНИЕ
    # =========================================================================

    def _effective_online(self, vehicle: dict[str, Any], now: datetime) -> bool:
        return is_effectively_online(
            bool(vehicle.get("is_online")),
            vehicle.get("last_reported_at"),
            now,
            self._stale_threshold,
        )

    async def get_location(self, vehicle_id: UUID) -> VehicleLocationDTO:
        """
        Текущая позиция автобуса.

        Raises:
            VehicleNotFoundError: автобус не найден
        """
        vehicle = await self._vehicles.get_vehicle(vehicle_id)
        if vehicle is None:
            raise VehicleNotFoundError(vehicle_id)
        return to_vehicle_snapshot(vehicle, self._effective_online(vehicle, self._clock()))

    async def list_locations(
        self,
        route_id: UUID | None = None,
        is_online: bool | None = None,
    ) -> list[VehicleLocationDTO]:
        """
        Позиции всех активных автобусов.

        Статус online пересчитывается до фильтрации, поэтому автобус
        без свежей позиции не попадёт в выборку is_online=true, даже если
        фоновая проверка ещё не успела его отключить.
        """
        now = self._clock()
        snapshots = [
            to_vehicle_snapshot(vehicle, self._effective_online(vehicle, now))
            for vehicle in await self._vehicles.list_vehicles(route_id)
        ]
        if is_online is not None:
            snapshots = [s for s in snapshots if s.is_online == is_online]
        return snapshots

    async def get_history(
        self,
        vehicle_id: UUID,
        hours: float | None = None,
    ) -> list[PositionReportDTO]:
        """
        История геопозиций за последние hours часов, самые свежие первыми.

        Raises:
            TrackingValidationError: hours <= 0
        """
        if hours is None:
            hours = self._default_history_hours
        if not isinstance(hours, (int, float)) or not math.isfinite(hours) or hours <= 0:
            raise TrackingValidationError("Hours must be a positive number", details={"hours": hours})
        now = self._clock()
        try:
            since = now - timedelta(hours=hours)
        except OverflowError:
            # Окно длиннее календаря: вся история
            since = datetime.min.replace(tzinfo=now.tzinfo)
        rows = await self._history.get_trail(vehicle_id, since)
        return [to_position_report(row) for row in rows]

    # =========================================================================
    # СТАТИСТИКА
    # =========================================================================

    def get_stats(self) -> dict[str, int]:
        """Счётчики приёма геопозиций."""
        return {
            "total_reports": self._total_reports,
            "rejected_reports": self._rejected_reports,
            "reporting_vehicles": len(self._reports_per_vehicle),
        }
