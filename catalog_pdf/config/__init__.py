"""Пакет конфигураций (модели и загрузчик)."""

from .errors import ConfigLoaderError
from .models import (
    AppConfig,
    CatalogConfig,
    NetworkConfig,
    RetryPolicy,
    ScheduleConfig,
    ServerConfig,
    ShopConfig,
    StateConfig,
)

__all__ = [
    "AppConfig",
    "CatalogConfig",
    "ConfigLoaderError",
    "NetworkConfig",
    "RetryPolicy",
    "ScheduleConfig",
    "ServerConfig",
    "ShopConfig",
    "StateConfig",
]
