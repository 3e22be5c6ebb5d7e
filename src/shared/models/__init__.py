# src/shared/models/__init__.py
"""
DTO и Pydantic-модели API сервиса трекинга.
"""

from src.shared.models.common import ErrorResponse, HealthStatus
from src.shared.models.tracking_dto import (
    CurrentLocationDTO,
    HistoryResponse,
    NearbyVehicleDTO,
    NearbyVehiclesResponse,
    OnlineStatusResponse,
    PositionReportDTO,
    ReportPositionRequest,
    ReportPositionResponse,
    SetOnlineStatusRequest,
    VehicleListResponse,
    VehicleLocationDTO,
    VehicleResponse,
)

__all__ = [
    "ErrorResponse",
    "HealthStatus",
    "CurrentLocationDTO",
    "HistoryResponse",
    "NearbyVehicleDTO",
    "NearbyVehiclesResponse",
    "OnlineStatusResponse",
    "PositionReportDTO",
    "ReportPositionRequest",
    "ReportPositionResponse",
    "SetOnlineStatusRequest",
    "VehicleListResponse",
    "VehicleLocationDTO",
    "VehicleResponse",
]
