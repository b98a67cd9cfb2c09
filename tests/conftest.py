from __future__ import annotations

import io
import threading
from pathlib import Path
from typing import Callable

import httpx
import pytest
from PIL import Image

from catalog_pdf.config.models import (
    AppConfig,
    CatalogConfig,
    NetworkConfig,
    RetryPolicy,
    ShopConfig,
    StateConfig,
)
from catalog_pdf.shopify.models import Product, Variant

SHOP_HOST = "demo-shop.myshopify.com"
CDN_HOST = "cdn.example.com"


def image_bytes(fmt: str = "JPEG", size: tuple[int, int] = (40, 20)) -> bytes:
    buffer = io.BytesIO()
    mode = "RGBA" if fmt == "PNG" else "RGB"
    Image.new(mode, size, (200, 30, 30)).save(buffer, fmt)
    return buffer.getvalue()


def make_product(
    index: int,
    *,
    price: str | None = "19.99",
    image_url: str | None = "default",
    title: str | None = None,
) -> Product:
    if image_url == "default":
        image_url = f"https://{CDN_HOST}/products/{index}.jpg"
    variants = (Variant(price=price, inventory_quantity=3),) if price is not None else ()
    return Product(
        id=str(1000 + index),
        title=title if title is not None else f"Product {index}",
        variants=variants,
        image_url=image_url,
    )


class FakeSource:
    """Источник товаров без сети; может блокироваться до release()."""

    def __init__(self, products: list[Product], *, block: bool = False, error: Exception | None = None):
        self.products = products
        self.error = error
        self.calls: list[str | None] = []
        self.entered = threading.Event()
        self._release = threading.Event()
        if not block:
            self._release.set()

    def list_products(self, collection_id: str | None = None) -> list[Product]:
        self.calls.append(collection_id)
        self.entered.set()
        self._release.wait(timeout=10)
        if self.error is not None:
            raise self.error
        return list(self.products)

    def release(self) -> None:
        self._release.set()


def cdn_handler(
    *,
    failing: set[str] | None = None,
    fmt: str = "JPEG",
) -> Callable[[httpx.Request], httpx.Response]:
    failing = failing or set()

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path in failing:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, content=image_bytes(fmt))

    return handler


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        shop=ShopConfig(shop_name="demo-shop", access_token="shpat_test", page_size=2),
        network=NetworkConfig(retry=RetryPolicy(max_attempts=3, backoff_sec=[0.0])),
        catalog=CatalogConfig(
            public_dir=tmp_path / "public",
            scratch_dir=tmp_path / "scratch",
        ),
        state=StateConfig(last_update_path=tmp_path / "state" / "lastUpdate.json"),
    )
