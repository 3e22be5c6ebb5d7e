# src/common/constants.py
"""
Общие константы и перечисления.
"""

from enum import Enum


class TypeMsg(str, Enum):
    """Типы сообщений для логирования."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class LivenessState(str, Enum):
    """Состояние автобуса для пассажиров."""
    ONLINE = "online"
    OFFLINE = "offline"


class StatusChangeReason(str, Enum):
    """Причина смены статуса online/offline."""
    REPORT = "report"      # пришла новая геопозиция
    STALE = "stale"        # давно не было геопозиции
    OPERATOR = "operator"  # водитель переключил статус сам
