# src/shared/__init__.py
"""
Общий код сервиса трекинга.

Модули:
- events: схемы событий RabbitMQ
- models: DTO и Pydantic-модели API
"""

__all__: list[str] = []
