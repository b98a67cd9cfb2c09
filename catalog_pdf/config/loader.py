from __future__ import annotations

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from catalog_pdf.config.env_loader import load_app_config_from_env
from catalog_pdf.config.errors import ConfigLoaderError
from catalog_pdf.config.models import AppConfig
from catalog_pdf.logger import get_logger

logger = get_logger(__name__)


def load_app_config(path: Path | None = None) -> AppConfig:
    """Загружает конфигурацию из файла (YAML/JSON) или из окружения."""
    load_dotenv()
    if path is None:
        env_path = (os.getenv("APP_CONFIG_PATH") or "").strip()
        path = Path(env_path) if env_path else None
    if path:
        return _load_app_config_from_file(path)
    logger.info("Конфигурация читается из переменных окружения")
    return load_app_config_from_env()


def _load_app_config_from_file(path: Path) -> AppConfig:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigLoaderError(f"Файл {path} не найден") from exc
    except yaml.YAMLError as exc:
        raise ConfigLoaderError(f"Не удалось разобрать {path}: {exc}") from exc
    try:
        return AppConfig.model_validate(data or {})
    except ValidationError as exc:
        raise ConfigLoaderError(f"Некорректная конфигурация: {exc}") from exc
