# tests/core/test_tracking_geo.py
"""
Тесты геометрии поиска рядом (src/core/tracking/geo.py).
"""

from __future__ import annotations

import math

import pytest

from src.core.tracking.exceptions import TrackingValidationError
from src.core.tracking.geo import (
    bounding_box,
    haversine_km,
    validate_coordinates,
    validate_motion,
)


class TestHaversine:
    """Тесты расстояния по Haversine."""

    def test_same_point_is_zero(self) -> None:
        """Расстояние от точки до самой себя равно нулю."""
        assert haversine_km(50.45, 30.52, 50.45, 30.52) == 0.0

    def test_one_degree_of_latitude(self) -> None:
        """Один градус широты примерно 111.19 км при R = 6371."""
        assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.19, abs=0.01)

    def test_symmetric(self) -> None:
        """Расстояние не зависит от порядка точек."""
        a = haversine_km(50.4501, 30.5234, 49.8397, 24.0297)
        b = haversine_km(49.8397, 24.0297, 50.4501, 30.5234)
        assert a == pytest.approx(b)

    def test_kyiv_lviv(self) -> None:
        """Киев - Львов около 468 км."""
        assert haversine_km(50.4501, 30.5234, 49.8397, 24.0297) == pytest.approx(468, abs=3)

    def test_custom_radius(self) -> None:
        """Радиус Земли масштабирует результат линейно."""
        base = haversine_km(0.0, 0.0, 0.0, 1.0)
        doubled = haversine_km(0.0, 0.0, 0.0, 1.0, radius_km=6371.0 * 2)
        assert doubled == pytest.approx(base * 2)


class TestBoundingBox:
    """Тесты грубого прямоугольника."""

    def test_delta_is_radius_over_111(self) -> None:
        """Дельта = radius / 111 по обеим осям."""
        box = bounding_box(50.0, 30.0, 5.0)
        delta = 5.0 / 111
        assert box.min_lat == pytest.approx(50.0 - delta)
        assert box.max_lat == pytest.approx(50.0 + delta)
        assert box.min_lon == pytest.approx(30.0 - delta)
        assert box.max_lon == pytest.approx(30.0 + delta)

    def test_custom_km_per_degree(self) -> None:
        box = bounding_box(0.0, 0.0, 10.0, km_per_degree=100.0)
        assert box.max_lat == pytest.approx(0.1)


class TestValidateCoordinates:
    """Тесты проверки координат."""

    @pytest.mark.parametrize("lat,lon", [(0, 0), (-90, -180), (90, 180), (50.45, 30.52)])
    def test_valid(self, lat: float, lon: float) -> None:
        """Граничные и обычные значения проходят."""
        validate_coordinates(lat, lon)

    @pytest.mark.parametrize("lat,lon", [(91, 0), (-90.01, 0), (0, 180.5), (0, -181)])
    def test_out_of_range(self, lat: float, lon: float) -> None:
        """Значения вне диапазона отклоняются."""
        with pytest.raises(TrackingValidationError):
            validate_coordinates(lat, lon)

    @pytest.mark.parametrize("lat,lon", [(None, 30.0), (50.0, None), (None, None)])
    def test_missing(self, lat, lon) -> None:
        """Отсутствующая координата - ошибка валидации."""
        with pytest.raises(TrackingValidationError, match="required"):
            validate_coordinates(lat, lon)

    def test_nan_rejected(self) -> None:
        with pytest.raises(TrackingValidationError):
            validate_coordinates(math.nan, 30.0)

    def test_error_is_400(self) -> None:
        """Ошибка валидации несёт статус 400."""
        with pytest.raises(TrackingValidationError) as exc_info:
            validate_coordinates(91, 0)
        assert exc_info.value.status_code == 400
        assert exc_info.value.details == {"latitude": 91}


class TestValidateMotion:
    """Тесты проверки скорости, курса и точности."""

    def test_defaults_valid(self) -> None:
        validate_motion(0, 0, 0)

    def test_heading_upper_bound_exclusive(self) -> None:
        """Курс 360 недопустим, 359.9 допустим."""
        validate_motion(10, 359.9, 5)
        with pytest.raises(TrackingValidationError):
            validate_motion(10, 360, 5)

    @pytest.mark.parametrize("speed,heading,accuracy", [
        (-1, 0, 0),
        (0, -0.1, 0),
        (0, 0, -5),
        (math.inf, 0, 0),
    ])
    def test_invalid(self, speed: float, heading: float, accuracy: float) -> None:
        with pytest.raises(TrackingValidationError):
            validate_motion(speed, heading, accuracy)
