from __future__ import annotations


class ConfigLoaderError(ValueError):
    """Ошибка чтения или валидации конфигурации."""
