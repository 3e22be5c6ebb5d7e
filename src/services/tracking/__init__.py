# src/services/tracking/__init__.py
"""
Сервис трекинга автобусов.

Приём геопозиций от водителей, текущие позиции и статус online,
поиск автобусов рядом с пассажиром, история перемещений.
"""

from src.services.tracking.fleet import DatabaseFleetDirectory, FleetDirectory
from src.services.tracking.proximity import ProximityIndex
from src.services.tracking.repository import PositionHistoryRepository, VehicleRepository
from src.services.tracking.service import LocationTrackingService

__all__ = [
    "DatabaseFleetDirectory",
    "FleetDirectory",
    "LocationTrackingService",
    "PositionHistoryRepository",
    "ProximityIndex",
    "VehicleRepository",
]
