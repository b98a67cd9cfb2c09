from __future__ import annotations

import os
from typing import Iterable

from pydantic import ValidationError

from catalog_pdf.config.errors import ConfigLoaderError
from catalog_pdf.config.models import (
    AppConfig,
    CatalogConfig,
    NetworkConfig,
    RetryPolicy,
    ScheduleConfig,
    ServerConfig,
    ShopConfig,
    StateConfig,
)
from catalog_pdf.config.runtime_paths import resolve_optional_path, resolve_path


def load_app_config_from_env() -> AppConfig:
    """Строит конфигурацию приложения на основе переменных окружения."""
    try:
        return _build_from_env()
    except ValidationError as exc:
        raise ConfigLoaderError(f"Некорректная конфигурация окружения: {exc}") from exc


def _build_from_env() -> AppConfig:
    shop = ShopConfig(
        shop_name=_require("SHOPIFY_SHOP_NAME"),
        access_token=_require("SHOPIFY_ACCESS_TOKEN"),
        api_version=os.getenv("SHOPIFY_API_VERSION", "2024-01"),
        collection_id=os.getenv("SHOPIFY_COLLECTION_ID") or None,
        page_size=_int("SHOPIFY_PAGE_SIZE", default=250),
    )

    network = NetworkConfig(
        request_timeout_sec=_float("NETWORK_REQUEST_TIMEOUT_SEC", default=30.0),
        image_timeout_sec=_float("NETWORK_IMAGE_TIMEOUT_SEC", default=15.0),
        proxy=os.getenv("NETWORK_PROXY") or None,
        user_agent=os.getenv("NETWORK_USER_AGENT", "catalog-pdf/0.1"),
        retry=RetryPolicy(
            max_attempts=_int("NETWORK_RETRY_MAX_ATTEMPTS", default=3),
            backoff_sec=_float_list(
                "NETWORK_RETRY_BACKOFF_SEC",
                default=[2.0, 5.0, 10.0],
            ),
        ),
    )

    catalog = CatalogConfig(
        public_dir=resolve_path("CATALOG_PUBLIC_DIR"),
        scratch_dir=resolve_path("CATALOG_SCRATCH_DIR"),
        output_name=os.getenv("CATALOG_OUTPUT_NAME", "productos_shopify.pdf"),
        download_name=os.getenv("CATALOG_DOWNLOAD_NAME", "catalogo.pdf"),
        cover_image=resolve_optional_path("CATALOG_COVER_IMAGE"),
        cover_title=os.getenv("CATALOG_COVER_TITLE", "Product Catalog"),
        skip_if_unchanged=_bool("CATALOG_SKIP_IF_UNCHANGED", default=False) or False,
    )

    state = StateConfig(
        last_update_path=resolve_path("STATE_LAST_UPDATE_PATH"),
    )

    server = ServerConfig(
        host=os.getenv("HOST", "0.0.0.0"),
        port=_int("PORT", default=3090),
        cors_origins=_list("CORS_ALLOWED_ORIGINS", default=["http://localhost:3000"]),
    )

    schedule_enabled = _bool("SCHEDULE_ENABLED", default=True)
    run_on_startup = _bool("SCHEDULE_RUN_ON_STARTUP", default=True)
    schedule = ScheduleConfig(
        enabled=True if schedule_enabled is None else schedule_enabled,
        cron=os.getenv("SCHEDULE_CRON", "0 */6 * * *"),
        run_on_startup=True if run_on_startup is None else run_on_startup,
    )

    return AppConfig(
        shop=shop,
        network=network,
        catalog=catalog,
        state=state,
        server=server,
        schedule=schedule,
    )


def _require(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigLoaderError(f"Переменная окружения {name} не задана")
    return value


def _int(name: str, default: int | None = None) -> int | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ConfigLoaderError(f"Ожидается целое число в {name}") from exc


def _float(name: str, default: float | None = None) -> float | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigLoaderError(f"Ожидается число (float) в {name}") from exc


def _list(name: str, default: Iterable[str] | None = None) -> list[str]:
    value = os.getenv(name)
    if value is None:
        return list(default) if default is not None else []
    tokens = [
        token.strip()
        for token in value.replace("\n", ",").split(",")
        if token.strip()
    ]
    return tokens


def _float_list(name: str, default: Iterable[float] | None = None) -> list[float]:
    value = os.getenv(name)
    if value is None:
        return list(default) if default is not None else []
    tokens = [
        token.strip()
        for token in value.replace("\n", ",").split(",")
        if token.strip()
    ]
    try:
        return [float(token) for token in tokens]
    except ValueError as exc:
        raise ConfigLoaderError(f"Элементы {name} должны быть числами") from exc


def _bool(name: str, default: bool | None = None) -> bool | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}
