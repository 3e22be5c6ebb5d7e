# src/infra/redis_client.py
"""
Клиент Redis.
Pub/Sub для живых карт и распределённые блокировки фоновых задач.
"""

from __future__ import annotations

import json
from typing import Any
from uuid import uuid4

import redis.asyncio as redis

from src.common.logger import log_error, log_info
from src.common.constants import TypeMsg


# Удаляет ключ, только если он всё ещё принадлежит владельцу токена
_RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class RedisClient:
    """
    Асинхронный клиент Redis.
    Поддерживает:
    - Базовые get/set/delete с namespace
    - Публикацию JSON в Pub/Sub каналы
    - Блокировки SET NX EX с токеном владельца
    """

    _instance: RedisClient | None = None
    _client: redis.Redis | None = None

    def __new__(cls) -> RedisClient:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        """Инициализация (вызывается только один раз благодаря Singleton)."""
        if hasattr(self, "_initialized"):
            return
        self._initialized = True
        self._client = None
        self._namespace = "bus"

    @property
    def client(self) -> redis.Redis:
        """Возвращает клиент Redis."""
        if self._client is None:
            raise RuntimeError("Redis клиент не инициализирован. Вызовите connect() сначала.")
        return self._client

    @property
    def is_connected(self) -> bool:
        """Создан ли клиент."""
        return self._client is not None

    def _make_key(self, key: str) -> str:
        """Добавляет namespace к ключу."""
        return f"{self._namespace}:{key}"

    async def connect(
        self,
        url: str | None = None,
        max_connections: int = 50,
        namespace: str | None = None,
    ) -> None:
        """
        Подключается к Redis.

        Args:
            url: URL Redis (если None, берётся из конфига)
            max_connections: Максимальное количество соединений
            namespace: Префикс ключей
        """
        if self._client is not None:
            return

        if url is None:
            from src.config import settings
            url = settings.redis.url
            max_connections = settings.redis.REDIS_MAX_CONNECTIONS
            namespace = settings.redis.REDIS_NAMESPACE

        if namespace:
            self._namespace = namespace

        await log_info("Подключение к Redis...", type_msg=TypeMsg.INFO)

        self._client = redis.from_url(
            url,
            max_connections=max_connections,
            decode_responses=True,
        )

        await self._client.ping()

        await log_info("Подключение к Redis установлено", type_msg=TypeMsg.INFO)

    async def disconnect(self) -> None:
        """Закрывает соединение с Redis."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            await log_info("Соединение с Redis закрыто", type_msg=TypeMsg.INFO)

    # =========================================================================
    # PUB/SUB
    # =========================================================================

    async def publish_json(self, channel: str, data: dict[str, Any]) -> int:
        """
        Публикует JSON в канал.

        Каналы не получают namespace: их слушает внешний WebSocket-шлюз
        по паттерну (например, location:vehicle:*).

        Returns:
            Количество подписчиков, получивших сообщение
        """
        return await self.client.publish(
            channel,
            json.dumps(data, ensure_ascii=False, default=str),
        )

    # =========================================================================
    # БЛОКИРОВКИ
    # =========================================================================

    async def acquire_lock(self, name: str, ttl: int) -> str | None:
        """
        Захватывает блокировку.

        Args:
            name: Имя блокировки
            ttl: Время жизни в секундах (блокировка снимется сама при падении владельца)

        Returns:
            Токен владельца или None, если блокировка занята
        """
        token = uuid4().hex
        acquired = await self.client.set(self._make_key(f"lock:{name}"), token, nx=True, ex=ttl)
        return token if acquired else None

    async def release_lock(self, name: str, token: str) -> bool:
        """Снимает блокировку, если она всё ещё принадлежит владельцу токена."""
        result = await self.client.eval(_RELEASE_LOCK_SCRIPT, 1, self._make_key(f"lock:{name}"), token)
        return bool(result)

    # =========================================================================
    # HEALTH CHECK
    # =========================================================================

    async def health_check(self) -> bool:
        """
        Проверяет здоровье подключения к Redis.

        Returns:
            True если подключение работает
        """
        try:
            return await self.client.ping()
        except Exception as e:
            await log_error(f"Health check Redis failed: {e}")
            return False


def get_redis() -> RedisClient:
    """Возвращает глобальный экземпляр RedisClient."""
    return RedisClient()


async def init_redis() -> None:
    """
    Инициализирует подключение к Redis.
    Использует настройки из конфигурации.
    """
    from src.config import settings

    redis_client = get_redis()
    await redis_client.connect(
        url=settings.redis.url,
        max_connections=settings.redis.REDIS_MAX_CONNECTIONS,
        namespace=settings.redis.REDIS_NAMESPACE,
    )
    await log_info(
        f"Redis подключён: {settings.redis.REDIS_HOST}:{settings.redis.REDIS_PORT}/{settings.redis.REDIS_DB}",
        type_msg=TypeMsg.INFO,
    )


async def close_redis() -> None:
    """Закрывает подключение к Redis."""
    redis_client = get_redis()
    await redis_client.disconnect()
