# tests/config/test_loader.py
"""
Тесты для модуля загрузки конфигурации.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from src.config.loader import (
    DatabaseSettings,
    LoggingSettings,
    RabbitMQSettings,
    RedisSettings,
    Settings,
    TrackingSettings,
    get_config_path,
    get_project_root,
    load_config_json,
)


class TestPaths:

    def test_root_contains_src_and_config(self) -> None:
        root = get_project_root()

        assert isinstance(root, Path)
        assert (root / "src").exists()
        assert (root / "config" / "config.json").exists()

    def test_config_path_default(self) -> None:
        with patch.dict("os.environ", {}, clear=False) as env:
            env.pop("BUS_TRACKER_CONFIG", None)
            assert get_config_path() == get_project_root() / "config" / "config.json"

    def test_config_path_from_env(self, temp_config_file: Path) -> None:
        with patch.dict("os.environ", {"BUS_TRACKER_CONFIG": str(temp_config_file)}):
            assert get_config_path() == temp_config_file
            assert load_config_json()["PROJECT_NAME"] == "bus_tracker_test"

    def test_missing_config(self, tmp_path: Path) -> None:
        with patch.dict("os.environ", {"BUS_TRACKER_CONFIG": str(tmp_path / "nope.json")}):
            with pytest.raises(FileNotFoundError):
                load_config_json()

    def test_shipped_config_is_valid_json(self, config_path: Path) -> None:
        data = json.loads(config_path.read_text(encoding="utf-8"))

        assert data["STALE_THRESHOLD_SECONDS"] == 300
        assert data["DEFAULT_NEARBY_RADIUS_KM"] == 5.0


class TestSectionModels:

    def test_logging_format_validated(self) -> None:
        with pytest.raises(ValidationError):
            LoggingSettings(LOG_FORMAT="xml")

    def test_database_dsn(self) -> None:
        db = DatabaseSettings(DB_USER="u", DB_PASSWORD="p", DB_HOST="h", DB_PORT=1, DB_NAME="d")

        assert db.dsn == "postgresql://u:p@h:1/d"

    def test_database_password_from_env(self) -> None:
        with patch.dict("os.environ", {"DB_PASSWORD": "from_env"}):
            assert DatabaseSettings(DB_PASSWORD="").DB_PASSWORD == "from_env"

    def test_redis_url(self) -> None:
        assert RedisSettings(REDIS_PASSWORD="x", REDIS_DB=2).url == "redis://:x@localhost:6379/2"

    def test_rabbitmq_url(self) -> None:
        with patch.dict("os.environ", {"RABBITMQ_PASSWORD": ""}):
            settings = RabbitMQSettings(RABBITMQ_USER="u", RABBITMQ_PASSWORD="p")

        assert settings.url == "amqp://u:p@localhost:5672/"


class TestTrackingSettings:

    def test_defaults(self) -> None:
        tracking = TrackingSettings()

        assert tracking.STALE_THRESHOLD_SECONDS == 300
        assert tracking.LIVENESS_SWEEP_INTERVAL == 60
        assert tracking.RETENTION_HOURS == 24
        assert tracking.DEFAULT_NEARBY_RADIUS_KM == 5.0
        assert tracking.KM_PER_DEGREE == 111.0
        assert tracking.EARTH_RADIUS_KM == 6371.0

    @pytest.mark.parametrize("field", ["STALE_THRESHOLD_SECONDS", "LIVENESS_SWEEP_INTERVAL", "RETENTION_HOURS"])
    def test_positive_values(self, field: str) -> None:
        with pytest.raises(ValidationError):
            TrackingSettings(**{field: 0})

    @pytest.mark.parametrize("field", ["DEFAULT_NEARBY_RADIUS_KM", "DEFAULT_HISTORY_HOURS"])
    def test_positive_defaults(self, field: str) -> None:
        with pytest.raises(ValidationError):
            TrackingSettings(**{field: 0})

    def test_large_defaults_allowed(self) -> None:
        """Верхних пределов нет: радиус и окно истории не урезаются."""
        tracking = TrackingSettings(DEFAULT_NEARBY_RADIUS_KM=500.0, DEFAULT_HISTORY_HOURS=72.0)

        assert tracking.DEFAULT_NEARBY_RADIUS_KM == 500.0
        assert tracking.DEFAULT_HISTORY_HOURS == 72.0


class TestSettingsFromConfigJson:

    def test_from_dict(self, mock_config: dict[str, Any]) -> None:
        settings = Settings.from_config_json(mock_config)

        assert settings.system.PROJECT_NAME == "bus_tracker_test"
        assert settings.deployment.TRACKING_SERVICE_PORT == 9090
        assert settings.redis.REDIS_NAMESPACE == "bus_test"
        assert settings.rabbitmq.RABBITMQ_EXCHANGE == "bus.test"
        assert settings.tracking.STALE_THRESHOLD_SECONDS == 120
        assert settings.tracking.DEFAULT_NEARBY_RADIUS_KM == 3.0
        assert settings.database.DB_RETRY_ATTEMPTS == 5
        assert settings.database.DB_RETRY_DELAY == 0.5
        assert settings.tracking.RUN_WORKERS_IN_API is False

    def test_comments_ignored_and_defaults_filled(self) -> None:
        settings = Settings.from_config_json({"_comment_x": "ignored"})

        assert settings.tracking.RETENTION_SWEEP_INTERVAL == 3600
        assert settings.tracking.DEFAULT_HISTORY_HOURS == 1.0
        assert settings.database.DB_RETRY_ATTEMPTS == 3

    def test_env_overrides(self, mock_config: dict[str, Any]) -> None:
        env = {"DB_HOST": "db.internal", "REDIS_PORT": "6380", "TRACKING_SERVICE_PORT": "8000"}
        with patch.dict("os.environ", env):
            settings = Settings.from_config_json(mock_config)

        assert settings.database.DB_HOST == "db.internal"
        assert settings.redis.REDIS_PORT == 6380
        assert settings.deployment.TRACKING_SERVICE_PORT == 8000

    def test_invalid_tracking_config(self, mock_config: dict[str, Any]) -> None:
        mock_config["STALE_THRESHOLD_SECONDS"] = -1

        with pytest.raises(ValidationError):
            Settings.from_config_json(mock_config)
