# src/core/tracking/__init__.py
"""
Доменная логика трекинга автобусов: геометрия, liveness, ошибки.
"""

from src.core.tracking.exceptions import (
    OperatorNotAuthenticatedError,
    TrackingError,
    TrackingValidationError,
    VehicleNotAssignedError,
    VehicleNotFoundError,
)
from src.core.tracking.geo import (
    BoundingBox,
    bounding_box,
    haversine_km,
    validate_coordinates,
    validate_motion,
)
from src.core.tracking.liveness import is_effectively_online, liveness_state

__all__ = [
    "OperatorNotAuthenticatedError",
    "TrackingError",
    "TrackingValidationError",
    "VehicleNotAssignedError",
    "VehicleNotFoundError",
    "BoundingBox",
    "bounding_box",
    "haversine_km",
    "validate_coordinates",
    "validate_motion",
    "is_effectively_online",
    "liveness_state",
]
