# src/worker/base.py
"""
Базовый класс для периодических фоновых задач.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from src.infra.redis_client import RedisClient
from src.common.logger import log_info, log_error, log_warning
from src.common.constants import TypeMsg


class PeriodicWorker(ABC):
    """
    Базовый класс для периодических задач (проверка liveness, очистка истории).

    tick() оборачивает run_once():
    - пропускает запуск, если предыдущий ещё выполняется в этом процессе
    - пропускает запуск, если блокировку lock:worker:{name} держит другой инстанс
    - ловит и логирует любые исключения, следующий тик повторит попытку
    """

    def __init__(self, interval: int, redis: Optional[RedisClient] = None) -> None:
        """
        Args:
            interval: Интервал запуска в секундах (он же TTL блокировки)
            redis: Redis клиент для межпроцессной блокировки (None - без блокировки)
        """
        self.interval = interval
        self.redis = redis
        self._in_progress = False

        # Статистика
        self._runs = 0
        self._failures = 0
        self._skipped = 0
        self._last_run_at: datetime | None = None
        self._last_duration_ms: float | None = None
        self._last_result: Any = None
        self._last_error: str | None = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Имя задачи."""
        pass

    @abstractmethod
    async def run_once(self) -> Any:
        """Один проход задачи."""
        pass

    @property
    def lock_name(self) -> str:
        return f"worker:{self.name}"

    @property
    def is_running(self) -> bool:
        """Выполняется ли сейчас тик."""
        return self._in_progress

    async def _acquire_lock(self) -> tuple[bool, str | None]:
        """
        Пытается захватить межпроцессную блокировку.

        Returns:
            (можно ли запускаться, токен блокировки)
        """
        if self.redis is None:
            return True, None
        try:
            token = await self.redis.acquire_lock(self.lock_name, ttl=self.interval)
        except Exception as e:
            await log_warning(f"Блокировка {self.lock_name} недоступна, запуск без неё: {e}")
            return True, None
        return token is not None, token

    async def _release_lock(self, token: str | None) -> None:
        if self.redis is None or token is None:
            return
        try:
            await self.redis.release_lock(self.lock_name, token)
        except Exception as e:
            await log_warning(f"Не удалось снять блокировку {self.lock_name}: {e}")

    async def tick(self) -> bool:
        """
        Выполняет один запуск задачи с защитой от наложений.

        Returns:
            True если run_once() был вызван
        """
        if self._in_progress:
            self._skipped += 1
            await log_warning(f"Задача {self.name}: предыдущий запуск ещё выполняется, пропуск")
            return False

        self._in_progress = True
        token: str | None = None
        try:
            allowed, token = await self._acquire_lock()
            if not allowed:
                self._skipped += 1
                await log_info(
                    f"Задача {self.name} выполняется другим инстансом, пропуск",
                    type_msg=TypeMsg.DEBUG,
                )
                return False

            started = time.monotonic()
            self._last_run_at = datetime.now(timezone.utc)
            try:
                self._last_result = await self.run_once()
                self._last_error = None
            except Exception as e:
                self._failures += 1
                self._last_error = str(e)
                await log_error(f"Ошибка в задаче {self.name}: {e}", exc_info=True)
            finally:
                self._runs += 1
                self._last_duration_ms = round((time.monotonic() - started) * 1000, 2)
            return True
        finally:
            await self._release_lock(token)
            self._in_progress = False

    def get_stats(self) -> Dict[str, Any]:
        """Статистика запусков."""
        return {
            "interval": self.interval,
            "runs": self._runs,
            "failures": self._failures,
            "skipped": self._skipped,
            "last_run_at": self._last_run_at.isoformat() if self._last_run_at else None,
            "last_duration_ms": self._last_duration_ms,
            "last_result": self._last_result,
            "last_error": self._last_error,
        }
