# src/worker/liveness.py
"""
Фоновая проверка устаревших автобусов.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional

from src.common.constants import StatusChangeReason, TypeMsg
from src.common.logger import log_info
from src.infra.event_bus import EventBus
from src.infra.redis_client import RedisClient
from src.services.tracking.repository import VehicleRepository
from src.services.tracking.utils import utcnow
from src.shared.events.tracking_events import VehicleWentOffline
from src.worker.base import PeriodicWorker


class LivenessMonitor(PeriodicWorker):
    """
    Переводит в offline автобусы, от которых давно не было геопозиции.

    Одним UPDATE по предикату (is_online AND last_reported_at < now - threshold),
    затем событие vehicle.offline на каждый отключённый автобус.
    """

    name = "liveness_monitor"

    def __init__(
        self,
        vehicles: VehicleRepository,
        event_bus: Optional[EventBus] = None,
        redis: Optional[RedisClient] = None,
        stale_threshold: timedelta = timedelta(seconds=300),
        interval: int = 60,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(interval=interval, redis=redis)
        self.vehicles = vehicles
        self.event_bus = event_bus
        self.stale_threshold = stale_threshold
        self._clock = clock

    async def run_once(self) -> int:
        """Возвращает количество переведённых в offline автобусов."""
        cutoff = self._clock() - self.stale_threshold
        demoted = await self.vehicles.mark_stale_offline(cutoff)

        if self.event_bus is not None:
            for vehicle in demoted:
                await self.event_bus.publish(
                    VehicleWentOffline(
                        vehicle_id=vehicle["id"],
                        reason=StatusChangeReason.STALE.value,
                        last_reported_at=vehicle.get("last_reported_at"),
                    )
                )

        if demoted:
            await log_info(
                f"Переведено в offline автобусов без свежей геопозиции: {len(demoted)}",
                type_msg=TypeMsg.INFO,
            )
        return len(demoted)
