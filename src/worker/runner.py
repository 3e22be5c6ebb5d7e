# src/worker/runner.py
"""
Запускалка периодических задач трекинга.
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Any, Dict, List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from src.worker.base import PeriodicWorker
from src.worker.liveness import LivenessMonitor
from src.worker.retention import RetentionSweeper
from src.infra.database import init_db, close_db, get_db
from src.infra.redis_client import init_redis, close_redis, get_redis
from src.infra.event_bus import init_event_bus, close_event_bus, get_event_bus
from src.services.tracking.repository import PositionHistoryRepository, VehicleRepository
from src.common.logger import log_info, log_error
from src.common.constants import TypeMsg
from src.config import settings


class WorkerRunner:
    """
    Планировщик периодических задач на APScheduler.

    Каждая задача - отдельный job с IntervalTrigger (jitter разносит
    запуски инстансов), max_instances=1 и coalesce=True.
    """

    def __init__(self, workers: List[PeriodicWorker], jitter: int = 0) -> None:
        self.workers = workers
        self.jitter = jitter
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    async def start(self) -> None:
        """Создаёт планировщик и регистрирует задачи."""
        if self.is_running:
            return

        self._scheduler = AsyncIOScheduler(
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 30,
            }
        )
        for worker in self.workers:
            self._scheduler.add_job(
                worker.tick,
                trigger=IntervalTrigger(seconds=worker.interval, jitter=self.jitter or None),
                id=worker.name,
                name=worker.name,
                replace_existing=True,
            )
            await log_info(
                f"Задача {worker.name} запланирована каждые {worker.interval} с",
                type_msg=TypeMsg.DEBUG,
            )

        self._scheduler.start()
        await log_info(f"Запущено {len(self.workers)} фоновых задач", type_msg=TypeMsg.INFO)

    async def stop(self) -> None:
        """Останавливает планировщик, не дожидаясь текущих запусков."""
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            await log_info("Фоновые задачи остановлены", type_msg=TypeMsg.INFO)
        self._scheduler = None

    def get_stats(self) -> Dict[str, Any]:
        return {worker.name: worker.get_stats() for worker in self.workers}


def build_workers() -> List[PeriodicWorker]:
    """Создаёт задачи трекинга по настройкам."""
    db = get_db()
    redis = get_redis()
    tracking = settings.tracking

    return [
        LivenessMonitor(
            vehicles=VehicleRepository(db),
            event_bus=get_event_bus(),
            redis=redis,
            stale_threshold=timedelta(seconds=tracking.STALE_THRESHOLD_SECONDS),
            interval=tracking.LIVENESS_SWEEP_INTERVAL,
        ),
        RetentionSweeper(
            history=PositionHistoryRepository(db),
            redis=redis,
            retention=timedelta(hours=tracking.RETENTION_HOURS),
            interval=tracking.RETENTION_SWEEP_INTERVAL,
        ),
    ]


async def run_workers(init_infra: bool = True) -> None:
    """
    Запускает фоновые задачи трекинга отдельно от API.

    Args:
        init_infra: Если True, инициализирует инфраструктуру (БД, Redis, RabbitMQ).
                    При запуске через main.py в режиме all передаётся False,
                    так как инфраструктура уже инициализирована.
    """
    await log_info("Запуск фоновых задач трекинга...", type_msg=TypeMsg.INFO)

    if init_infra:
        await log_info("Инициализация инфраструктуры для воркеров...", type_msg=TypeMsg.DEBUG)
        await init_db()
        await init_redis()
        await init_event_bus()

    runner = WorkerRunner(build_workers(), jitter=settings.tracking.SWEEP_JITTER_SECONDS)

    try:
        await runner.start()

        # Ждём завершения (Ctrl+C)
        while True:
            await asyncio.sleep(1)

    except asyncio.CancelledError:
        await log_info("Получен сигнал остановки", type_msg=TypeMsg.INFO)
    except Exception as e:
        await log_error(f"Критическая ошибка: {e}", exc_info=True)
    finally:
        await runner.stop()

        if init_infra:
            await close_event_bus()
            await close_redis()
            await close_db()

        await log_info("Воркеры остановлены", type_msg=TypeMsg.INFO)


def main() -> None:
    """Точка входа."""
    try:
        asyncio.run(run_workers())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
