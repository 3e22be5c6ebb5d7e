# src/services/tracking/proximity.py
"""
Поиск автобусов рядом с точкой.

Две фазы:
1. Грубый фильтр в БД: прямоугольник ±radius/111 градусов и свежая позиция
2. Точное расстояние по Haversine, отсев за радиусом, сортировка
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Callable

from src.common.constants import LivenessState
from src.common.logger import log_debug
from src.core.tracking.exceptions import TrackingValidationError
from src.core.tracking.geo import (
    EARTH_RADIUS_KM,
    KM_PER_DEGREE,
    bounding_box,
    haversine_km,
    validate_coordinates,
)
from src.core.tracking.liveness import liveness_state
from src.services.tracking.repository import VehicleRepository
from src.services.tracking.utils import to_nearby_vehicle, utcnow
from src.shared.models.tracking_dto import NearbyVehicleDTO


class ProximityIndex:
    """
    Поиск ближайших автобусов.

    Устаревшие автобусы (нет геопозиции дольше stale_threshold) исключаются
    из выдачи полностью, даже если их координаты внутри радиуса. Статус
    is_online в выдаче тот же, что у get_location: флаг И строго свежая позиция.
    """

    def __init__(
        self,
        vehicles: VehicleRepository,
        stale_threshold: timedelta = timedelta(seconds=300),
        default_radius_km: float = 5.0,
        km_per_degree: float = KM_PER_DEGREE,
        earth_radius_km: float = EARTH_RADIUS_KM,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._vehicles = vehicles
        self._stale_threshold = stale_threshold
        self._default_radius_km = default_radius_km
        self._km_per_degree = km_per_degree
        self._earth_radius_km = earth_radius_km
        self._clock = clock

        self._total_queries = 0

    def _resolve_radius(self, radius_km: float | None) -> float:
        if radius_km is None:
            return self._default_radius_km
        if not isinstance(radius_km, (int, float)) or not math.isfinite(radius_km) or radius_km <= 0:
            raise TrackingValidationError(
                "Radius must be a positive number",
                details={"radius_km": radius_km},
            )
        return float(radius_km)

    async def find_nearby(
        self,
        latitude: float | None,
        longitude: float | None,
        radius_km: float | None = None,
    ) -> list[NearbyVehicleDTO]:
        """
        Автобусы в радиусе radius_km от точки, ближайшие первыми.

        Raises:
            TrackingValidationError: нет координат, они вне диапазона или радиус <= 0
        """
        validate_coordinates(latitude, longitude)
        radius = self._resolve_radius(radius_km)

        box = bounding_box(latitude, longitude, radius, km_per_degree=self._km_per_degree)
        now = self._clock()
        fresh_since = now - self._stale_threshold

        candidates = await self._vehicles.find_in_box(
            min_lat=box.min_lat,
            max_lat=box.max_lat,
            min_lon=box.min_lon,
            max_lon=box.max_lon,
            fresh_since=fresh_since,
        )
        self._total_queries += 1

        ranked: list[tuple[float, dict]] = []
        for vehicle in candidates:
            if vehicle.get("latitude") is None or vehicle.get("longitude") is None:
                continue
            distance = haversine_km(
                latitude,
                longitude,
                vehicle["latitude"],
                vehicle["longitude"],
                radius_km=self._earth_radius_km,
            )
            if distance <= radius:
                ranked.append((distance, vehicle))

        ranked.sort(key=lambda item: item[0])

        await log_debug(
            f"Поиск рядом ({latitude}, {longitude}, r={radius} км): "
            f"кандидатов {len(candidates)}, в радиусе {len(ranked)}"
        )

        return [
            to_nearby_vehicle(vehicle, round(distance, 2), self._state(vehicle, now) is LivenessState.ONLINE)
            for distance, vehicle in ranked
        ]

    def _state(self, vehicle: dict, now: datetime) -> LivenessState:
        # Граница порога: кандидат с last_reported_at == fresh_since уже offline
        return liveness_state(
            bool(vehicle.get("is_online")),
            vehicle.get("last_reported_at"),
            now,
            self._stale_threshold,
        )

    def get_stats(self) -> dict[str, int]:
        return {"nearby_queries": self._total_queries}
