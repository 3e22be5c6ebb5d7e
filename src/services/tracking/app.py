# src/services/tracking/app.py
"""
FastAPI приложение сервиса трекинга автобусов.

Endpoints:
- /api/v1/locations/* - приём геопозиций, позиции, поиск рядом, история
- /health - состояние зависимостей
- /stats - счётчики приёма и статистика фоновых задач
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.common.logger import log_info, log_warning, setup_logging
from src.common.constants import TypeMsg
from src.core.tracking.exceptions import TrackingError
from src.infra.database import close_db, get_db, init_db
from src.infra.event_bus import close_event_bus, get_event_bus, init_event_bus
from src.infra.redis_client import close_redis, get_redis, init_redis
from src.services.tracking.dependencies import (
    cleanup_dependencies,
    get_proximity_index,
    get_tracking_service,
    get_worker_runner,
    init_dependencies,
    set_worker_runner,
)
from src.services.tracking.routes import router
from src.shared.models.common import ErrorResponse, HealthStatus
from src.config import settings

SERVICE_NAME = "tracking_service"

_started_at = time.monotonic()


# === LIFESPAN ===

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Жизненный цикл приложения."""
    global _started_at
    setup_logging()

    await init_db()
    await init_redis()
    await init_event_bus()

    init_dependencies(db=get_db(), redis=get_redis(), event_bus=get_event_bus())

    runner = None
    if settings.tracking.RUN_WORKERS_IN_API:
        from src.worker.runner import WorkerRunner, build_workers

        runner = WorkerRunner(build_workers(), jitter=settings.tracking.SWEEP_JITTER_SECONDS)
        await runner.start()
        set_worker_runner(runner)

    _started_at = time.monotonic()
    await log_info(f"{SERVICE_NAME} запущен", type_msg=TypeMsg.INFO)

    yield

    if runner is not None:
        await runner.stop()
    cleanup_dependencies()

    await close_event_bus()
    await close_redis()
    await close_db()
    await log_info(f"{SERVICE_NAME} остановлен", type_msg=TypeMsg.INFO)


# === APP ===

app = FastAPI(
    title="Bus Tracking Service",
    description="Приём геопозиций автобусов, статус online и поиск автобусов рядом.",
    version=settings.system.VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(router, prefix="/api/v1")


# === ERROR HANDLERS ===

@app.exception_handler(TrackingError)
async def tracking_error_handler(request: Request, exc: TrackingError) -> JSONResponse:
    if exc.status_code >= 500:
        await log_warning(f"Ошибка трекинга {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error_code=exc.error_code,
            message=exc.message,
            details=exc.details,
        ).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Ошибки валидации запроса отдаём как 400, а не 422."""
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error_code="VALIDATION_ERROR",
            message="Invalid request parameters",
            details={"errors": errors},
        ).model_dump(),
    )


# === HEALTH CHECK ===

@app.get("/health", response_model=HealthStatus, tags=["Health"])
async def health_check() -> HealthStatus:
    """Проверка здоровья сервиса и его зависимостей."""
    checks = {
        "postgres": await get_db().health_check(),
        "redis": await get_redis().health_check(),
        "rabbitmq": await get_event_bus().health_check(),
    }
    dependencies = {name: "healthy" if ok else "unhealthy" for name, ok in checks.items()}

    if not checks["postgres"]:
        status = "unhealthy"
    elif not all(checks.values()):
        # Без Redis/RabbitMQ приём геопозиций работает, не работает только рассылка
        status = "degraded"
    else:
        status = "healthy"

    return HealthStatus(
        service=SERVICE_NAME,
        status=status,
        version=settings.system.VERSION,
        uptime_seconds=round(time.monotonic() - _started_at, 1),
        dependencies=dependencies,
    )


# === STATS ===

@app.get("/stats", tags=["Stats"])
async def get_stats() -> dict[str, Any]:
    """Статистика приёма геопозиций и фоновых задач."""
    runner = get_worker_runner()
    return {
        **get_tracking_service().get_stats(),
        **get_proximity_index().get_stats(),
        "workers": runner.get_stats() if runner is not None else {},
    }


# === STARTUP ===

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.deployment.TRACKING_SERVICE_HOST,
        port=settings.deployment.TRACKING_SERVICE_PORT,
    )
