from __future__ import annotations

from typing import Any, Protocol

import httpx
from tenacity import (
    RetryError,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_chain,
    wait_fixed,
)

from catalog_pdf.config.models import RetryPolicy, ShopConfig
from catalog_pdf.logger import get_logger
from catalog_pdf.monitoring import build_error_event
from catalog_pdf.network.http_client_factory import HttpClientFactory
from catalog_pdf.shopify.models import Product

logger = get_logger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class ProductSourceError(RuntimeError):
    """Не удалось получить полный список товаров."""


class ProductSource(Protocol):
    def list_products(self, collection_id: str | None = None) -> list[Product]:
        ...


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS
    return isinstance(exc, httpx.TransportError)


class ShopifyProductSource:
    """Читает товары через REST Admin API с курсорной пагинацией (page_info)."""

    def __init__(
        self,
        shop: ShopConfig,
        retry: RetryPolicy,
        client_factory: HttpClientFactory,
    ) -> None:
        self.shop = shop
        self.retry = retry
        self._client_factory = client_factory

    def list_products(self, collection_id: str | None = None) -> list[Product]:
        collection_id = collection_id or self.shop.collection_id
        params: dict[str, Any] | None = {"limit": self.shop.page_size}
        if collection_id:
            params["collection_id"] = collection_id
        url: str | None = f"{self.shop.base_url}/products.json"
        products: list[Product] = []
        page_num = 0
        logger.info(
            "Запрашиваем товары магазина",
            extra={"shop": self.shop.shop_name, "collection_id": collection_id},
        )
        while url:
            page_num += 1
            response = self._get_page(url, params)
            batch = response.json().get("products", [])
            products.extend(Product.from_api(item) for item in batch)
            logger.debug("Страница %s: получено %s товаров", page_num, len(batch))
            # в ссылке next уже есть page_info и limit, остальные параметры Shopify запрещает
            url = response.links.get("next", {}).get("url")
            params = None
        logger.info("Получено товаров: %s", len(products))
        return products

    def _get_page(self, url: str, params: dict[str, Any] | None) -> httpx.Response:
        client = self._client_factory.get("shopify")
        headers = {"X-Shopify-Access-Token": self.shop.access_token}
        backoff = self.retry.backoff_sec or [0.0]
        retrying = Retrying(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_chain(*(wait_fixed(delay) for delay in backoff)),
            retry=retry_if_exception(_is_retryable),
            reraise=False,
        )
        try:
            for attempt in retrying:
                with attempt:
                    response = client.get(url, params=params, headers=headers)
                    response.raise_for_status()
        except RetryError as exc:
            last = exc.last_attempt.exception()
            raise self._source_error(url, last) from last
        except httpx.HTTPError as exc:
            raise self._source_error(url, exc) from exc
        return response

    def _source_error(self, url: str, exc: BaseException | None) -> ProductSourceError:
        event = build_error_event(
            error_type="product_listing_failed",
            error_source="catalog_pdf.shopify.client",
            url=url,
            fatal=True,
            metadata={"max_attempts": self.retry.max_attempts},
        )
        logger.error(
            "Не удалось получить товары магазина",
            extra={"error": str(exc), "error_event": event},
        )
        return ProductSourceError(f"Error al obtener productos de Shopify: {exc}")
