# src/shared/events/__init__.py
"""
Схемы событий для RabbitMQ.

Все события идемпотентны и содержат event_id для дедупликации.
"""

from src.shared.events.base import DomainEvent, EventMetadata
from src.shared.events.tracking_events import (
    VehicleLocationUpdated,
    VehicleWentOnline,
    VehicleWentOffline,
)

__all__ = [
    "DomainEvent",
    "EventMetadata",
    "VehicleLocationUpdated",
    "VehicleWentOnline",
    "VehicleWentOffline",
]
