# src/worker/__init__.py
"""
Периодические фоновые задачи: проверка liveness и очистка истории.
"""

from src.worker.base import PeriodicWorker
from src.worker.liveness import LivenessMonitor
from src.worker.retention import RetentionSweeper

__all__ = ["PeriodicWorker", "LivenessMonitor", "RetentionSweeper"]
