from __future__ import annotations

import httpx
import pytest

from catalog_pdf.config.models import AppConfig
from catalog_pdf.network.http_client_factory import HttpClientFactory
from catalog_pdf.shopify.client import ProductSourceError, ShopifyProductSource
from catalog_pdf.shopify.models import Product

from conftest import SHOP_HOST

PRODUCTS_PATH = "/admin/api/2024-01/products.json"


def _product_payload(product_id: int, **extra) -> dict:
    payload = {
        "id": product_id,
        "title": f"Product {product_id}",
        "handle": f"product-{product_id}",
        "image": {"src": f"https://cdn.example.com/{product_id}.jpg"},
        "variants": [{"price": "10.00", "inventory_quantity": 1}],
    }
    payload.update(extra)
    return payload


def _source(app_config: AppConfig, handler) -> ShopifyProductSource:
    factory = HttpClientFactory(app_config.network, transport=httpx.MockTransport(handler))
    return ShopifyProductSource(app_config.shop, app_config.network.retry, factory)


def test_list_products_follows_link_header(app_config: AppConfig):
    requests: list[httpx.Request] = []
    next_url = f"https://{SHOP_HOST}{PRODUCTS_PATH}?limit=2&page_info=abc"

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if "page_info" not in request.url.params:
            return httpx.Response(
                200,
                json={"products": [_product_payload(1), _product_payload(2)]},
                headers={"Link": f'<{next_url}>; rel="next"'},
            )
        return httpx.Response(200, json={"products": [_product_payload(3)]})

    products = _source(app_config, handler).list_products("777")

    assert [product.id for product in products] == ["1", "2", "3"]
    assert requests[0].url.host == SHOP_HOST
    assert requests[0].url.path == PRODUCTS_PATH
    assert requests[0].url.params["limit"] == "2"
    assert requests[0].url.params["collection_id"] == "777"
    assert requests[0].headers["X-Shopify-Access-Token"] == "shpat_test"
    assert str(requests[1].url) == next_url
    assert "collection_id" not in requests[1].url.params


def test_list_products_without_collection(app_config: AppConfig):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"products": []})

    assert _source(app_config, handler).list_products() == []
    assert "collection_id" not in seen[0].url.params


def test_transient_errors_are_retried(app_config: AppConfig):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            return httpx.Response(503)
        if calls["count"] == 2:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, json={"products": [_product_payload(5)]})

    products = _source(app_config, handler).list_products()

    assert calls["count"] == 3
    assert [product.id for product in products] == ["5"]


def test_retries_are_bounded(app_config: AppConfig):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(429)

    with pytest.raises(ProductSourceError):
        _source(app_config, handler).list_products()
    assert calls["count"] == app_config.network.retry.max_attempts


def test_auth_failure_is_not_retried(app_config: AppConfig):
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(401, json={"errors": "Invalid API key"})

    with pytest.raises(ProductSourceError, match="Error al obtener productos de Shopify"):
        _source(app_config, handler).list_products()
    assert calls["count"] == 1


def test_product_from_api_handles_missing_fields():
    product = Product.from_api(
        {
            "id": 9,
            "title": None,
            "image": None,
            "images": [{"src": "https://cdn.example.com/fallback.png"}],
            "variants": [
                {"price": "", "inventory_quantity": 0, "inventory_policy": "deny"},
                {"price": "3.50", "inventory_quantity": 0, "inventory_policy": "continue"},
            ],
        }
    )

    assert product.id == "9"
    assert product.title == ""
    assert product.image_url == "https://cdn.example.com/fallback.png"
    assert product.price == "N/A"
    assert product.out_of_stock is False


def test_product_out_of_stock_when_all_variants_sold_out():
    product = Product.from_api(
        _product_payload(4, variants=[{"price": "1.00", "inventory_quantity": 0}])
    )
    assert product.out_of_stock is True
    assert product.to_dict()["isOutOfStock"] is True
    assert product.to_dict()["price"] == "1.00"
