#!/usr/bin/env python3
# main.py
"""
Главная точка входа сервиса трекинга автобусов.
Запускает HTTP API, фоновые задачи или всё вместе в зависимости от аргументов.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from src.config import settings
from src.common.logger import setup_logging, log_info, log_error
from src.common.constants import TypeMsg


VALID_MODES = ("api", "workers", "all")

# Глобальный флаг для graceful shutdown
_shutdown_event: asyncio.Event | None = None
_running_tasks: list[asyncio.Task] = []


def setup_signal_handlers() -> None:
    """Настраивает обработчики сигналов для graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        """Обработчик сигналов SIGINT и SIGTERM."""
        if _shutdown_event and not _shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            _shutdown_event.set()
            for task in _running_tasks:
                if not task.done():
                    task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def run_api() -> None:
    """
    Запускает HTTP API сервиса трекинга.
    Инфраструктуру и фоновые задачи поднимает lifespan приложения.
    """
    import uvicorn

    await log_info(
        f"Запуск Tracking Service на порту {settings.deployment.TRACKING_SERVICE_PORT}...",
        type_msg=TypeMsg.INFO,
    )

    config = uvicorn.Config(
        "src.services.tracking.app:app",
        host=settings.deployment.TRACKING_SERVICE_HOST,
        port=settings.deployment.TRACKING_SERVICE_PORT,
        log_level="debug" if settings.system.DEBUG else "info",
    )

    server = uvicorn.Server(config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        await log_info("Tracking Service: graceful shutdown", type_msg=TypeMsg.DEBUG)
        await server.shutdown()


async def run_background_workers() -> None:
    """Запускает только фоновые задачи (проверка liveness, очистка истории)."""
    from src.worker.runner import run_workers

    await run_workers(init_infra=True)


async def main(mode: str | None = None) -> None:
    """
    Главная функция запуска.

    Args:
        mode: Режим запуска (api, workers, all).
              Если None, берётся из COMPONENT_MODE.
    """
    global _running_tasks

    setup_logging()
    setup_signal_handlers()

    if mode is None:
        mode = settings.system.COMPONENT_MODE
        if mode not in VALID_MODES:
            await log_error(f"Неизвестный COMPONENT_MODE '{mode}', используется 'api'")
            mode = "api"

    await log_info(
        f"Bus Tracker v{settings.system.VERSION}: запуск в режиме '{mode}'",
        type_msg=TypeMsg.INFO,
    )

    try:
        if mode == "api":
            _running_tasks = [asyncio.create_task(run_api())]
        elif mode == "workers":
            _running_tasks = [asyncio.create_task(run_background_workers())]
        elif mode == "all":
            # Фоновые задачи стартуют в lifespan API
            settings.tracking.RUN_WORKERS_IN_API = True
            _running_tasks = [asyncio.create_task(run_api())]
        else:
            await log_error(f"Неизвестный режим: {mode}")
            return

        await asyncio.gather(*_running_tasks, return_exceptions=True)

    except asyncio.CancelledError:
        await log_info("Задача отменена, выполняется graceful shutdown", type_msg=TypeMsg.INFO)
    except Exception as e:
        await log_error(f"Критическая ошибка: {e}", exc_info=True)
        raise
    finally:
        if _running_tasks:
            for task in _running_tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*_running_tasks, return_exceptions=True)
            _running_tasks.clear()
        await log_info("Приложение остановлено", type_msg=TypeMsg.INFO)


def print_usage() -> None:
    """Выводит справку по использованию."""
    print("""
Bus Tracker — сервис трекинга автобусов

Использование:
    python main.py [mode]

Режимы:
    api        — HTTP API (:8090); фоновые задачи внутри, если RUN_WORKERS_IN_API=true
    workers    — только фоновые задачи (проверка liveness, очистка истории)
    all        — HTTP API и фоновые задачи в одном процессе

Примеры:
    python main.py              # Режим из COMPONENT_MODE
    python main.py api
    python main.py workers
    """)


if __name__ == "__main__":
    mode = None

    if len(sys.argv) > 1:
        arg = sys.argv[1].lower()
        if arg in ("--help", "-h"):
            print_usage()
            sys.exit(0)
        elif arg in VALID_MODES:
            mode = arg
        else:
            print(f"Ошибка: неизвестный режим '{arg}'")
            print_usage()
            sys.exit(1)

    try:
        asyncio.run(main(mode))
    except KeyboardInterrupt:
        pass
