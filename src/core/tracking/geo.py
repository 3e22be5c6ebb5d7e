# src/core/tracking/geo.py
"""
Геометрия для поиска автобусов рядом.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from src.core.tracking.exceptions import TrackingValidationError

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = 111.0  # примерно км в одном градусе широты


@dataclass(frozen=True)
class BoundingBox:
    """Прямоугольник в градусах для грубого фильтра."""
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float


def haversine_km(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float,
    radius_km: float = EARTH_RADIUS_KM,
) -> float:
    """
    Вычисляет расстояние между двумя точками (в км) по формуле Haversine.
    """
    dlat = math.radians(lat2 - lat1)
    dlon = math.radians(lon2 - lon1)

    a = (math.sin(dlat / 2) ** 2 +
         math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) *
         math.sin(dlon / 2) ** 2)

    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return radius_km * c


def bounding_box(
    latitude: float,
    longitude: float,
    radius_km: float,
    km_per_degree: float = KM_PER_DEGREE,
) -> BoundingBox:
    """
    Прямоугольник ±radius_km/111 градусов вокруг точки.

    Дельта одна для широты и долготы, как у грубого фильтра в исходной
    системе; кандидаты потом отсеиваются точным расстоянием.
    """
    delta = radius_km / km_per_degree
    return BoundingBox(
        min_lat=latitude - delta,
        max_lat=latitude + delta,
        min_lon=longitude - delta,
        max_lon=longitude + delta,
    )


def _is_finite_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def validate_coordinates(latitude: float | None, longitude: float | None) -> None:
    """
    Проверяет пару координат.

    Raises:
        TrackingValidationError: координата отсутствует, не число или вне диапазона
    """
    if latitude is None or longitude is None:
        raise TrackingValidationError("Latitude and longitude are required")
    if not _is_finite_number(latitude) or not -90 <= latitude <= 90:
        raise TrackingValidationError(
            "Latitude must be between -90 and 90",
            details={"latitude": latitude},
        )
    if not _is_finite_number(longitude) or not -180 <= longitude <= 180:
        raise TrackingValidationError(
            "Longitude must be between -180 and 180",
            details={"longitude": longitude},
        )


def validate_motion(speed: float, heading: float, accuracy: float) -> None:
    """
    Проверяет скорость, курс и точность из отчёта водителя.

    Raises:
        TrackingValidationError: значение отрицательное, не число или курс вне [0, 360)
    """
    if not _is_finite_number(speed) or speed < 0:
        raise TrackingValidationError("Speed must be non-negative", details={"speed": speed})
    if not _is_finite_number(heading) or not 0 <= heading < 360:
        raise TrackingValidationError(
            "Heading must be in range [0, 360)",
            details={"heading": heading},
        )
    if not _is_finite_number(accuracy) or accuracy < 0:
        raise TrackingValidationError("Accuracy must be non-negative", details={"accuracy": accuracy})
