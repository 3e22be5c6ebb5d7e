# src/services/tracking/routes.py
"""
HTTP endpoints сервиса трекинга.

- POST /api/v1/locations/report - геопозиция от водителя
- GET  /api/v1/locations/nearby - автобусы рядом с точкой
- GET  /api/v1/locations - позиции всех автобусов
- GET  /api/v1/locations/{vehicle_id} - позиция автобуса
- GET  /api/v1/locations/{vehicle_id}/history - история перемещений
- POST /api/v1/locations/status - водитель выходит на линию / уходит
"""

from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from src.services.tracking.dependencies import (
    get_operator_id,
    get_proximity_index,
    get_tracking_service,
)
from src.services.tracking.proximity import ProximityIndex
from src.services.tracking.service import LocationTrackingService
from src.shared.models.common import ErrorResponse
from src.shared.models.tracking_dto import (
    HistoryResponse,
    NearbyVehiclesResponse,
    OnlineStatusResponse,
    ReportPositionRequest,
    ReportPositionResponse,
    SetOnlineStatusRequest,
    VehicleListResponse,
    VehicleResponse,
)

router = APIRouter(prefix="/locations", tags=["Locations"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Некорректные параметры"},
    404: {"model": ErrorResponse, "description": "Автобус не найден"},
}


@router.post(
    "/report",
    response_model=ReportPositionResponse,
    responses={**ERROR_RESPONSES, 401: {"model": ErrorResponse}},
    summary="Отправить геопозицию",
)
async def report_location(
    request: ReportPositionRequest,
    operator_id: Annotated[int, Depends(get_operator_id)],
    service: Annotated[LocationTrackingService, Depends(get_tracking_service)],
) -> ReportPositionResponse:
    """Обновить позицию автобуса, закреплённого за водителем."""
    vehicle = await service.report_position(
        operator_id=operator_id,
        latitude=request.latitude,
        longitude=request.longitude,
        speed=request.speed,
        heading=request.heading,
        accuracy=request.accuracy,
        vehicle_id=request.vehicle_id,
    )
    return ReportPositionResponse(vehicle=vehicle)


@router.get(
    "/nearby",
    response_model=NearbyVehiclesResponse,
    responses={400: ERROR_RESPONSES[400]},
    summary="Автобусы рядом",
)
async def get_nearby(
    index: Annotated[ProximityIndex, Depends(get_proximity_index)],
    latitude: float | None = Query(default=None),
    longitude: float | None = Query(default=None),
    radius_km: float | None = Query(default=None, description="Радиус поиска, км (по умолчанию 5)"),
) -> NearbyVehiclesResponse:
    """Автобусы со свежей позицией в радиусе radius_km, ближайшие первыми."""
    vehicles = await index.find_nearby(latitude, longitude, radius_km)
    return NearbyVehiclesResponse(vehicles=vehicles)


@router.get("", response_model=VehicleListResponse, summary="Позиции всех автобусов")
async def list_locations(
    service: Annotated[LocationTrackingService, Depends(get_tracking_service)],
    route_id: UUID | None = None,
    is_online: bool | None = None,
) -> VehicleListResponse:
    vehicles = await service.list_locations(route_id=route_id, is_online=is_online)
    return VehicleListResponse(vehicles=vehicles)


@router.post(
    "/status",
    response_model=OnlineStatusResponse,
    responses={404: ERROR_RESPONSES[404], 401: {"model": ErrorResponse}},
    summary="Выйти на линию / уйти с линии",
)
async def set_online_status(
    request: SetOnlineStatusRequest,
    operator_id: Annotated[int, Depends(get_operator_id)],
    service: Annotated[LocationTrackingService, Depends(get_tracking_service)],
) -> OnlineStatusResponse:
    return await service.set_online_status(
        operator_id=operator_id,
        is_online=request.is_online,
        vehicle_id=request.vehicle_id,
    )


@router.get(
    "/{vehicle_id}",
    response_model=VehicleResponse,
    responses={404: ERROR_RESPONSES[404]},
    summary="Позиция автобуса",
)
async def get_location(
    vehicle_id: UUID,
    service: Annotated[LocationTrackingService, Depends(get_tracking_service)],
) -> VehicleResponse:
    vehicle = await service.get_location(vehicle_id)
    return VehicleResponse(vehicle=vehicle)


@router.get(
    "/{vehicle_id}/history",
    response_model=HistoryResponse,
    responses={400: ERROR_RESPONSES[400]},
    summary="История перемещений",
)
async def get_history(
    vehicle_id: UUID,
    service: Annotated[LocationTrackingService, Depends(get_tracking_service)],
    hours: float | None = Query(default=None, description="Окно в часах (по умолчанию 1)"),
) -> HistoryResponse:
    """Геопозиции за последние hours часов, самые свежие первыми."""
    history = await service.get_history(vehicle_id, hours)
    return HistoryResponse(history=history)
