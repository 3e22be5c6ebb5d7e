# src/core/__init__.py
"""
Доменный слой (Core Domain).
Чистая логика трекинга, независимая от инфраструктуры.
"""

from src.core.tracking import (
    TrackingError,
    TrackingValidationError,
    VehicleNotAssignedError,
    VehicleNotFoundError,
    bounding_box,
    haversine_km,
    is_effectively_online,
)

__all__ = [
    "TrackingError",
    "TrackingValidationError",
    "VehicleNotAssignedError",
    "VehicleNotFoundError",
    "bounding_box",
    "haversine_km",
    "is_effectively_online",
]
