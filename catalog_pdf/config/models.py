from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, PositiveInt, field_validator


def _default_retry_backoff() -> list[float]:
    return [2.0, 5.0, 10.0]


def _default_cors_origins() -> list[str]:
    return ["http://localhost:3000"]


class RetryPolicy(BaseModel):
    """Настройки повторов запросов к Shopify."""

    max_attempts: PositiveInt = Field(default=3, le=10)
    backoff_sec: list[float] = Field(default_factory=_default_retry_backoff)


class ShopConfig(BaseModel):
    """Доступ к Admin API магазина."""

    shop_name: str
    access_token: str
    api_version: str = "2024-01"
    collection_id: str | None = None
    page_size: PositiveInt = Field(default=250, le=250)

    @field_validator("shop_name")
    @classmethod
    def _strip_domain(cls, value: str) -> str:
        value = value.strip()
        if not value:
            msg = "Нужно указать имя магазина"
            raise ValueError(msg)
        # допускаем как "my-shop", так и "my-shop.myshopify.com"
        return value.removesuffix(".myshopify.com")

    @property
    def base_url(self) -> str:
        return f"https://{self.shop_name}.myshopify.com/admin/api/{self.api_version}"


class NetworkConfig(BaseModel):
    """Глобальные сетевые настройки."""

    request_timeout_sec: float = Field(default=30, gt=0)
    image_timeout_sec: float = Field(default=15, gt=0)
    proxy: str | None = None
    user_agent: str = "catalog-pdf/0.1"
    retry: RetryPolicy = Field(default_factory=RetryPolicy)


class CatalogConfig(BaseModel):
    """Куда и как собирается PDF-каталог."""

    public_dir: Path = Field(default=Path("public"))
    scratch_dir: Path = Field(default=Path("scratch"))
    output_name: str = "productos_shopify.pdf"
    download_name: str = "catalogo.pdf"
    cover_image: Path | None = None
    cover_title: str = "Product Catalog"
    skip_if_unchanged: bool = False

    @property
    def output_path(self) -> Path:
        return self.public_dir / self.output_name


class StateConfig(BaseModel):
    """Файл с отметкой о последней успешной генерации."""

    last_update_path: Path = Field(default=Path("state/lastUpdate.json"))


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: PositiveInt = Field(default=3090, le=65535)
    cors_origins: list[str] = Field(default_factory=_default_cors_origins)


class ScheduleConfig(BaseModel):
    enabled: bool = True
    cron: str = "0 */6 * * *"
    run_on_startup: bool = True

    @field_validator("cron")
    @classmethod
    def _ensure_cron_fields(cls, value: str) -> str:
        if len(value.split()) != 5:
            msg = "cron-выражение должно состоять из пяти полей"
            raise ValueError(msg)
        return value


class AppConfig(BaseModel):
    shop: ShopConfig
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    state: StateConfig = Field(default_factory=StateConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    schedule: ScheduleConfig = Field(default_factory=ScheduleConfig)
