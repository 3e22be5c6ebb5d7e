# src/services/__init__.py
"""
Сервисы приложения.

Сервисы:
- tracking: приём геопозиций, статус online, поиск рядом, история (FastAPI)

Фоновые задачи трекинга живут в src/worker и могут работать
как внутри процесса API, так и отдельно (main.py workers).
"""

__all__: list[str] = []
