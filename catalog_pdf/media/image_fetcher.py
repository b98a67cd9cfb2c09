from __future__ import annotations

import enum
import hashlib
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse

import httpx
from unidecode import unidecode

from catalog_pdf.logger import get_logger
from catalog_pdf.monitoring import build_error_event
from catalog_pdf.network.http_client_factory import HttpClientFactory

logger = get_logger(__name__)

DEFAULT_EXTENSION = ".jpg"
CHUNK_SIZE = 64 * 1024


class ImageFormat(enum.Enum):
    JPEG = "jpeg"
    PNG = "png"
    UNSUPPORTED = "unsupported"

    @classmethod
    def from_path(cls, path: str | Path) -> "ImageFormat":
        suffix = Path(path).suffix.lower()
        if suffix in {".jpg", ".jpeg"}:
            return cls.JPEG
        if suffix == ".png":
            return cls.PNG
        return cls.UNSUPPORTED


@dataclass(frozen=True, slots=True)
class FetchedImage:
    """Скачанная картинка товара. Файл удаляет тот, кто её встроил."""

    path: Path
    format: ImageFormat
    url: str

    def discard(self) -> None:
        self.path.unlink(missing_ok=True)


class ImageFetcher:
    """Потоково скачивает картинки товаров во временный каталог."""

    def __init__(self, client_factory: HttpClientFactory, image_dir: Path):
        self.image_dir = image_dir
        self._client_factory = client_factory

    def fetch(
        self,
        url: str | None,
        product_id: str,
        directory: Path | None = None,
    ) -> FetchedImage | None:
        if not url:
            return None
        target_dir = directory or self.image_dir
        try:
            path = target_dir / image_filename(url, product_id)
        except ValueError as exc:
            self._report(url, product_id, exc)
            return None
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            client = self._client_factory.get("images")
            with client.stream("GET", url) as response:
                response.raise_for_status()
                with path.open("wb") as handle:
                    for chunk in response.iter_bytes(CHUNK_SIZE):
                        handle.write(chunk)
        except (httpx.HTTPError, httpx.InvalidURL, OSError) as exc:
            path.unlink(missing_ok=True)
            self._report(url, product_id, exc)
            return None
        logger.debug("Скачано изображение товара", extra={"path": str(path)})
        return FetchedImage(path=path, format=ImageFormat.from_path(path), url=url)

    def _report(self, url: str, product_id: str, exc: BaseException) -> None:
        event = build_error_event(
            error_type="image_fetch_failed",
            error_source="catalog_pdf.media.image_fetcher",
            url=url,
            product_id=product_id,
            metadata={"exception": type(exc).__name__},
        )
        logger.warning(
            "Не удалось скачать изображение",
            extra={"url": url, "error": str(exc), "error_event": event},
        )


def image_filename(url: str, product_id: str) -> str:
    """Имя файла зависит только от товара и расширения в URL."""
    extension = _guess_extension(url)
    slug = _slugify(product_id) or hashlib.md5(
        product_id.encode(), usedforsecurity=False
    ).hexdigest()
    return f"product_{slug}{extension}"


def _guess_extension(url: str) -> str:
    parsed = urlparse(url)
    ext = os.path.splitext(parsed.path)[1].lower()
    if not ext or len(ext) > 6:
        return DEFAULT_EXTENSION
    return ext


def _slugify(value: str) -> str:
    ascii_value = unidecode(value)
    clean = "".join(ch if ch.isalnum() or ch in {"-", "_"} else "-" for ch in ascii_value.lower())
    clean = "-".join(filter(None, clean.split("-")))
    return clean[:80]
