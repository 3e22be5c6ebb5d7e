# src/services/tracking/utils.py
"""
Преобразование строк БД в DTO.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from src.shared.models.tracking_dto import (
    CurrentLocationDTO,
    NearbyVehicleDTO,
    PositionReportDTO,
    VehicleLocationDTO,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _current_location(row: dict[str, Any]) -> CurrentLocationDTO:
    return CurrentLocationDTO(
        latitude=row.get("latitude"),
        longitude=row.get("longitude"),
        speed=row.get("speed") or 0.0,
        heading=row.get("heading") or 0.0,
        last_updated=row.get("last_reported_at"),
    )


def to_vehicle_snapshot(row: dict[str, Any], is_online: bool) -> VehicleLocationDTO:
    """Снимок автобуса с уже вычисленным эффективным статусом."""
    return VehicleLocationDTO(
        id=row["id"],
        plate_number=row["plate_number"],
        capacity=row.get("capacity"),
        route_id=row.get("route_id"),
        operator_id=row.get("operator_id"),
        current_location=_current_location(row),
        is_online=is_online,
        last_seen=row.get("last_reported_at"),
    )


def to_nearby_vehicle(row: dict[str, Any], distance_km: float, is_online: bool) -> NearbyVehicleDTO:
    return NearbyVehicleDTO(
        **to_vehicle_snapshot(row, is_online).model_dump(),
        distance_km=distance_km,
    )


def to_position_report(row: dict[str, Any]) -> PositionReportDTO:
    return PositionReportDTO(**row)
