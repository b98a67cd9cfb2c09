"""Пути по умолчанию для локального запуска и для контейнера."""

from __future__ import annotations

import os
from pathlib import Path
from typing import NamedTuple

LOCAL_ENV = "local"
DOCKER_ENV = "docker"


class PathDefaults(NamedTuple):
    local: str
    docker: str


RUNTIME_PATH_DEFAULTS: dict[str, PathDefaults] = {
    "CATALOG_PUBLIC_DIR": PathDefaults("public", "/app/public"),
    "CATALOG_SCRATCH_DIR": PathDefaults("scratch", "/tmp/catalog-pdf"),
    "CATALOG_COVER_IMAGE": PathDefaults("assets/cover.jpg", "/app/assets/cover.jpg"),
    "STATE_LAST_UPDATE_PATH": PathDefaults(
        "state/lastUpdate.json", "/var/app/state/lastUpdate.json"
    ),
}


def get_run_env() -> str:
    value = (os.getenv("APP_RUN_ENV") or "").strip().lower()
    if value in {LOCAL_ENV, DOCKER_ENV}:
        return value
    if Path("/.dockerenv").exists() or os.getenv("DOCKER_CONTAINER"):
        return DOCKER_ENV
    return LOCAL_ENV


def default_path(env_name: str) -> Path:
    defaults = RUNTIME_PATH_DEFAULTS[env_name]
    return Path(defaults.docker if get_run_env() == DOCKER_ENV else defaults.local)


def resolve_path(env_name: str) -> Path:
    """Явно заданная переменная важнее значения по умолчанию для окружения."""
    value = (os.getenv(env_name) or "").strip()
    return Path(value) if value else default_path(env_name)


def resolve_optional_path(env_name: str) -> Path | None:
    """
    Путь к необязательному файлу (например, обложке каталога).

    Явно заданный путь возвращается без проверок: его отсутствие заметит уже
    сборщик каталога и нарисует текстовую обложку. Путь по умолчанию
    возвращается только если файл действительно существует.
    """
    value = (os.getenv(env_name) or "").strip()
    if value:
        return Path(value)
    candidate = default_path(env_name)
    return candidate if candidate.exists() else None
