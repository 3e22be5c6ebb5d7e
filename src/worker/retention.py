# src/worker/retention.py
"""
Очистка истории геопозиций старше горизонта хранения.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional

from src.common.constants import TypeMsg
from src.common.logger import log_info
from src.infra.redis_client import RedisClient
from src.services.tracking.repository import PositionHistoryRepository
from src.services.tracking.utils import utcnow
from src.worker.base import PeriodicWorker


class RetentionSweeper(PeriodicWorker):
    """Удаляет записи истории старше retention (DELETE по предикату)."""

    name = "retention_sweeper"

    def __init__(
        self,
        history: PositionHistoryRepository,
        redis: Optional[RedisClient] = None,
        retention: timedelta = timedelta(hours=24),
        interval: int = 3600,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        super().__init__(interval=interval, redis=redis)
        self.history = history
        self.retention = retention
        self._clock = clock

    async def run_once(self) -> int:
        deleted = await self.history.delete_older_than(self._clock() - self.retention)
        await log_info(
            f"Удалено старых записей истории геопозиций: {deleted}",
            type_msg=TypeMsg.INFO if deleted else TypeMsg.DEBUG,
        )
        return deleted
