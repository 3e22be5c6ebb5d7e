# src/core/tracking/exceptions.py
"""
Исключения сервиса трекинга.
Каждое несёт HTTP-статус и машинный код ошибки для ErrorResponse.
"""

from __future__ import annotations

from typing import Any


class TrackingError(Exception):
    """Базовая ошибка трекинга."""

    status_code: int = 500
    error_code: str = "TRACKING_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class TrackingValidationError(TrackingError):
    """Некорректные координаты или параметры запроса."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class VehicleNotFoundError(TrackingError):
    """Автобус не найден."""

    status_code = 404
    error_code = "VEHICLE_NOT_FOUND"

    def __init__(self, vehicle_id: Any) -> None:
        super().__init__("Bus not found", details={"vehicle_id": str(vehicle_id)})


class VehicleNotAssignedError(TrackingError):
    """
    За водителем не закреплён автобус (или закреплён другой).

    Отдаётся как 404, а не 403: ответ не должен подтверждать,
    что чужой автобус существует.
    """

    status_code = 404
    error_code = "VEHICLE_NOT_ASSIGNED"

    def __init__(self) -> None:
        super().__init__("Bus not found or not assigned to you")


class OperatorNotAuthenticatedError(TrackingError):
    """Нет или некорректен идентификатор водителя от шлюза."""

    status_code = 401
    error_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Operator identity is missing or invalid") -> None:
        super().__init__(message)
