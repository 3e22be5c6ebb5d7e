# src/core/tracking/liveness.py
"""
Вычисление эффективного статуса online.

Сохранённый флаг is_online носит рекомендательный характер: водитель может
включить его вручную, а фоновая проверка опаздывает на интервал. Публичный
статус = флаг И свежая геопозиция.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from src.common.constants import LivenessState


def is_effectively_online(
    stored_flag: bool,
    last_reported_at: datetime | None,
    now: datetime,
    threshold: timedelta,
) -> bool:
    """Онлайн ли автобус для пассажиров в момент now."""
    if not stored_flag or last_reported_at is None:
        return False
    return now - last_reported_at < threshold


def liveness_state(
    stored_flag: bool,
    last_reported_at: datetime | None,
    now: datetime,
    threshold: timedelta,
) -> LivenessState:
    if is_effectively_online(stored_flag, last_reported_at, now, threshold):
        return LivenessState.ONLINE
    return LivenessState.OFFLINE
