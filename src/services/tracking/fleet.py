# src/services/tracking/fleet.py
"""
Справочник закреплений автобусов (водитель, маршрут).

Закреплениями владеет внешний сервис управления парком; трекинг только
читает их через этот узкий интерфейс.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from src.services.tracking.repository import VehicleRepository


class FleetDirectory(Protocol):
    """Интерфейс чтения закреплений."""

    async def vehicle_of_operator(self, operator_id: int) -> UUID | None: ...

    async def operator_of(self, vehicle_id: UUID) -> int | None: ...

    async def route_of(self, vehicle_id: UUID) -> UUID | None: ...


class DatabaseFleetDirectory:
    """Закрепления из колонок operator_id/route_id таблицы автобусов."""

    def __init__(self, vehicles: VehicleRepository):
        self._vehicles = vehicles

    async def vehicle_of_operator(self, operator_id: int) -> UUID | None:
        """Активный автобус водителя."""
        vehicle = await self._vehicles.get_vehicle_by_operator(operator_id)
        return vehicle["id"] if vehicle else None

    async def operator_of(self, vehicle_id: UUID) -> int | None:
        """Водитель активного автобуса."""
        vehicle = await self._vehicles.get_vehicle(vehicle_id)
        if vehicle is None or not vehicle["is_active"]:
            return None
        return vehicle["operator_id"]

    async def route_of(self, vehicle_id: UUID) -> UUID | None:
        vehicle = await self._vehicles.get_vehicle(vehicle_id)
        if vehicle is None or not vehicle["is_active"]:
            return None
        return vehicle["route_id"]
