# src/services/tracking/repository.py
"""
Репозитории PostgreSQL: текущие позиции автобусов и история геопозиций.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from asyncpg import Connection

from src.infra.database import DatabaseManager, affected_rows

VEHICLE_COLUMNS = (
    "id, plate_number, capacity, route_id, operator_id, latitude, longitude, "
    "speed, heading, last_reported_at, is_online, is_active"
)

REPORT_COLUMNS = "id, vehicle_id, latitude, longitude, speed, heading, accuracy, reported_at"


class VehicleRepository:
    """Текущие позиции и флаг online (таблица tracking_schema.vehicles)."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    async def get_vehicle(self, vehicle_id: UUID) -> dict[str, Any] | None:
        row = await self.db.fetchrow(
            f"SELECT {VEHICLE_COLUMNS} FROM tracking_schema.vehicles WHERE id = $1",
            vehicle_id,
        )
        return dict(row) if row else None

    async def get_vehicle_by_operator(self, operator_id: int) -> dict[str, Any] | None:
        """Активный автобус, закреплённый за водителем."""
        row = await self.db.fetchrow(
            f"""
            SELECT {VEHICLE_COLUMNS} FROM tracking_schema.vehicles
            WHERE operator_id = $1 AND is_active
            ORDER BY updated_at DESC
            LIMIT 1
            """,
            operator_id,
        )
        return dict(row) if row else None

    async def list_vehicles(self, route_id: UUID | None = None) -> list[dict[str, Any]]:
        """Все активные автобусы, опционально только маршрута route_id."""
        if route_id is None:
            rows = await self.db.fetch(
                f"SELECT {VEHICLE_COLUMNS} FROM tracking_schema.vehicles "
                "WHERE is_active ORDER BY plate_number"
            )
        else:
            rows = await self.db.fetch(
                f"SELECT {VEHICLE_COLUMNS} FROM tracking_schema.vehicles "
                "WHERE is_active AND route_id = $1 ORDER BY plate_number",
                route_id,
            )
        return [dict(row) for row in rows]

    async def update_position(
        self,
        conn: Connection,
        vehicle_id: UUID,
        latitude: float,
        longitude: float,
        speed: float,
        heading: float,
        reported_at: datetime,
    ) -> dict[str, Any] | None:
        """
        Перезаписывает текущую позицию и ставит is_online = true.

        Выполняется в транзакции вызывающего кода. Возвращает обновлённую
        строку и was_online: флаг до обновления (self-join видит старые значения).
        """
        row = await conn.fetchrow(
            """
            UPDATE tracking_schema.vehicles AS v
            SET latitude = $2,
                longitude = $3,
                speed = $4,
                heading = $5,
                last_reported_at = $6,
                is_online = TRUE,
                updated_at = NOW()
            FROM tracking_schema.vehicles AS prev
            WHERE v.id = $1 AND prev.id = v.id AND v.is_active
            RETURNING v.id, v.plate_number, v.capacity, v.route_id, v.operator_id,
                      v.latitude, v.longitude, v.speed, v.heading,
                      v.last_reported_at, v.is_online, v.is_active,
                      prev.is_online AS was_online
            """,
            vehicle_id,
            latitude,
            longitude,
            speed,
            heading,
            reported_at,
        )
        return dict(row) if row else None

    async def set_online(self, vehicle_id: UUID, is_online: bool) -> dict[str, Any] | None:
        """Ручное переключение статуса. last_reported_at не трогаем."""
        row = await self.db.fetchrow(
            f"""
            UPDATE tracking_schema.vehicles
            SET is_online = $2, updated_at = NOW()
            WHERE id = $1 AND is_active
            RETURNING {VEHICLE_COLUMNS}
            """,
            vehicle_id,
            is_online,
        )
        return dict(row) if row else None

    async def find_in_box(
        self,
        min_lat: float,
        max_lat: float,
        min_lon: float,
        max_lon: float,
        fresh_since: datetime,
    ) -> list[dict[str, Any]]:
        """
        Грубый фильтр: активные автобусы внутри прямоугольника со свежей позицией.
        Автобусы без координат не проходят сравнение с NULL.
        """
        rows = await self.db.fetch(
            f"""
            SELECT {VEHICLE_COLUMNS} FROM tracking_schema.vehicles
            WHERE is_active
              AND latitude BETWEEN $1 AND $2
              AND longitude BETWEEN $3 AND $4
              AND last_reported_at >= $5
            """,
            min_lat,
            max_lat,
            min_lon,
            max_lon,
            fresh_since,
        )
        return [dict(row) for row in rows]

    async def mark_stale_offline(self, cutoff: datetime) -> list[dict[str, Any]]:
        """
        Переводит в offline все online-автобусы без геопозиции с cutoff.

        Returns:
            Список {id, last_reported_at} переведённых автобусов
        """
        rows = await self.db.fetch(
            """
            UPDATE tracking_schema.vehicles
            SET is_online = FALSE, updated_at = NOW()
            WHERE is_online AND (last_reported_at IS NULL OR last_reported_at < $1)
            RETURNING id, last_reported_at
            """,
            cutoff,
        )
        return [dict(row) for row in rows]


class PositionHistoryRepository:
    """История геопозиций (таблица tracking_schema.position_reports)."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    async def append(
        self,
        conn: Connection,
        vehicle_id: UUID,
        latitude: float,
        longitude: float,
        speed: float,
        heading: float,
        accuracy: float,
        reported_at: datetime,
    ) -> int:
        """Добавляет запись в транзакции вызывающего кода. Возвращает id записи."""
        return await conn.fetchval(
            """
            INSERT INTO tracking_schema.position_reports
                (vehicle_id, latitude, longitude, speed, heading, accuracy, reported_at)
            VALUES ($1, $2, $3, $4, $5, $6, $7)
            RETURNING id
            """,
            vehicle_id,
            latitude,
            longitude,
            speed,
            heading,
            accuracy,
            reported_at,
        )

    async def get_trail(self, vehicle_id: UUID, since: datetime) -> list[dict[str, Any]]:
        """Записи автобуса начиная с since, самые свежие первыми."""
        rows = await self.db.fetch(
            f"""
            SELECT {REPORT_COLUMNS} FROM tracking_schema.position_reports
            WHERE vehicle_id = $1 AND reported_at >= $2
            ORDER BY reported_at DESC, id DESC
            """,
            vehicle_id,
            since,
        )
        return [dict(row) for row in rows]

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Удаляет записи старше cutoff. Возвращает количество удалённых."""
        status = await self.db.execute(
            "DELETE FROM tracking_schema.position_reports WHERE reported_at < $1",
            cutoff,
        )
        return affected_rows(status)
