# src/shared/models/tracking_dto.py
"""
DTO сервиса трекинга: запросы водителя и ответы для карт пассажиров.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


# === ЗАПРОСЫ ===

class ReportPositionRequest(BaseModel):
    """Геопозиция от водителя."""
    vehicle_id: UUID | None = Field(
        default=None,
        description="ID автобуса; если передан, должен совпадать с назначенным водителю",
    )
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    speed: float = Field(default=0.0, ge=0)      # км/ч
    heading: float = Field(default=0.0, ge=0, lt=360)
    accuracy: float = Field(default=0.0, ge=0)   # метры


class SetOnlineStatusRequest(BaseModel):
    """Ручное переключение online/offline водителем."""
    vehicle_id: UUID | None = None
    is_online: bool


# === ОТВЕТЫ ===

class CurrentLocationDTO(BaseModel):
    """Текущая позиция автобуса (null-координаты: позиция ещё не приходила)."""
    latitude: float | None = None
    longitude: float | None = None
    speed: float = 0.0
    heading: float = 0.0
    last_updated: datetime | None = None


class VehicleLocationDTO(BaseModel):
    """Снимок автобуса для карт и списков."""
    id: UUID
    plate_number: str
    capacity: int | None = None
    route_id: UUID | None = None
    operator_id: int | None = None
    current_location: CurrentLocationDTO
    is_online: bool
    last_seen: datetime | None = None

    class Config:
        from_attributes = True


class NearbyVehicleDTO(VehicleLocationDTO):
    """Автобус рядом с пассажиром."""
    distance_km: float


class PositionReportDTO(BaseModel):
    """Запись истории геопозиций."""
    id: int
    vehicle_id: UUID
    latitude: float
    longitude: float
    speed: float = 0.0
    heading: float = 0.0
    accuracy: float = 0.0
    reported_at: datetime

    class Config:
        from_attributes = True


class ReportPositionResponse(BaseModel):
    """Ответ на приём геопозиции."""
    message: str = "Location updated successfully"
    vehicle: VehicleLocationDTO


class OnlineStatusResponse(BaseModel):
    """Ответ на переключение статуса."""
    message: str
    vehicle_id: UUID
    is_online: bool


class VehicleResponse(BaseModel):
    vehicle: VehicleLocationDTO


class VehicleListResponse(BaseModel):
    vehicles: list[VehicleLocationDTO]


class NearbyVehiclesResponse(BaseModel):
    vehicles: list[NearbyVehicleDTO]


class HistoryResponse(BaseModel):
    history: list[PositionReportDTO]
