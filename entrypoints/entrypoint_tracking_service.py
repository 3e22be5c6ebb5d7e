#!/usr/bin/env python3
"""
Entrypoint для Tracking Service.

Запуск:
    python entrypoint_tracking_service.py

Порт по умолчанию: 8090
"""

import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))

import uvicorn

from src.config import settings


def main() -> None:
    """Запустить Tracking Service."""
    uvicorn.run(
        "src.services.tracking.app:app",
        host=settings.deployment.TRACKING_SERVICE_HOST,
        port=settings.deployment.TRACKING_SERVICE_PORT,
        reload=settings.system.DEBUG,
        log_level=settings.system.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
