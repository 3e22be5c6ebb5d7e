# src/shared/events/tracking_events.py
"""
События домена трекинга автобусов.

Потребители (уведомления пассажиров, аналитика) живут вне этого сервиса.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from src.shared.events.base import DomainEvent


class VehicleLocationUpdated(DomainEvent):
    """Событие: принята новая геопозиция автобуса."""

    event_type: Literal["vehicle.location_updated"] = "vehicle.location_updated"

    vehicle_id: UUID
    route_id: UUID | None = None
    latitude: float
    longitude: float
    speed: float = 0.0
    heading: float = 0.0
    reported_at: datetime


class VehicleWentOnline(DomainEvent):
    """Событие: автобус перешёл в online."""

    event_type: Literal["vehicle.online"] = "vehicle.online"

    vehicle_id: UUID
    reason: str  # report, operator


class VehicleWentOffline(DomainEvent):
    """Событие: автобус перешёл в offline."""

    event_type: Literal["vehicle.offline"] = "vehicle.offline"

    vehicle_id: UUID
    reason: str  # stale, operator
    last_reported_at: datetime | None = None
