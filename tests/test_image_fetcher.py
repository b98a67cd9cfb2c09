from __future__ import annotations

from pathlib import Path

import httpx

from catalog_pdf.config.models import NetworkConfig
from catalog_pdf.media.image_fetcher import ImageFetcher, ImageFormat, image_filename
from catalog_pdf.network.http_client_factory import HttpClientFactory

from conftest import cdn_handler, image_bytes


def _fetcher(tmp_path: Path, handler) -> ImageFetcher:
    factory = HttpClientFactory(NetworkConfig(), transport=httpx.MockTransport(handler))
    return ImageFetcher(factory, tmp_path / "images")


def test_image_filename_uses_product_id_and_url_extension():
    assert image_filename("https://cdn.example.com/a/shot.png?v=3", "123") == "product_123.png"
    assert image_filename("https://cdn.example.com/a/shot", "123") == "product_123.jpg"
    assert image_filename("https://cdn.example.com/x.jpeg", "gid://shopify/Product/9") == (
        "product_gid-shopify-product-9.jpeg"
    )


def test_image_format_is_decided_from_extension():
    assert ImageFormat.from_path("a.JPG") is ImageFormat.JPEG
    assert ImageFormat.from_path("a.jpeg") is ImageFormat.JPEG
    assert ImageFormat.from_path("a.png") is ImageFormat.PNG
    assert ImageFormat.from_path("a.webp") is ImageFormat.UNSUPPORTED


def test_fetch_streams_image_to_disk(tmp_path: Path):
    fetcher = _fetcher(tmp_path, cdn_handler())
    image = fetcher.fetch("https://cdn.example.com/p/1.jpg", "1")

    assert image is not None
    assert image.path == tmp_path / "images" / "product_1.jpg"
    assert image.path.read_bytes() == image_bytes("JPEG")
    assert image.format is ImageFormat.JPEG
    image.discard()
    assert not image.path.exists()


def test_fetch_without_url_returns_none(tmp_path: Path):
    fetcher = _fetcher(tmp_path, cdn_handler())
    assert fetcher.fetch(None, "1") is None
    assert fetcher.fetch("", "1") is None


def test_fetch_failures_return_none_and_leave_no_file(tmp_path: Path):
    def not_found(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    fetcher = _fetcher(tmp_path, not_found)
    assert fetcher.fetch("https://cdn.example.com/p/1.jpg", "1") is None

    fetcher = _fetcher(tmp_path, cdn_handler(failing={"/p/2.jpg"}))
    assert fetcher.fetch("https://cdn.example.com/p/2.jpg", "2") is None
    assert fetcher.fetch("http://[::1/broken.jpg", "3") is None
    assert list((tmp_path / "images").glob("*")) == []
