from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Sequence

from PIL import Image
from reportlab.lib import colors
from reportlab.pdfgen import canvas

from catalog_pdf.logger import get_logger
from catalog_pdf.media.image_fetcher import FetchedImage, ImageFetcher, ImageFormat
from catalog_pdf.monitoring import build_error_event
from catalog_pdf.render.geometry import (
    FOOTER_Y,
    LINE_HEIGHT,
    PAGE_HEIGHT,
    PAGE_WIDTH,
    PRODUCTS_PER_PAGE,
    TEXT_FONT,
    TEXT_FONT_SIZE,
    TEXT_WIDTH,
    TITLE_FONT,
    TITLE_FONT_SIZE,
    LayoutBox,
    PageSlot,
    centered_in,
    fit_within,
    layout_product,
)
from catalog_pdf.render.text_layout import font_metric, normalize_text, wrap_text
from catalog_pdf.shopify.models import Product

logger = get_logger(__name__)

PLACEHOLDER_LABEL = "No image"
COVER_FONT_SIZE = 24

_PIL_FORMATS = {ImageFormat.JPEG: "JPEG", ImageFormat.PNG: "PNG"}


@dataclass(frozen=True, slots=True)
class PageArtifact:
    """Готовый одностраничный PDF; position задаёт место в итоговом каталоге."""

    position: int
    path: Path
    kind: Literal["cover", "page"] = "page"

    def release(self) -> None:
        self.path.unlink(missing_ok=True)


def footer_text(page_index: int, total_pages: int) -> str:
    return f"Page {page_index + 1} of {total_pages}"


def price_text(product: Product) -> str:
    return f"Price: ${normalize_text(product.price)}"


class PageComposer:
    """Рисует одну страницу каталога как самостоятельный PDF-документ.

    Каждая страница пишется в отдельный файл и закрывается до начала
    следующей, поэтому в памяти одновременно живёт только одна страница
    и не больше одной картинки.
    """

    def __init__(
        self,
        fetcher: ImageFetcher,
        *,
        cover_image: Path | None = None,
        cover_title: str = "Product Catalog",
    ) -> None:
        self.fetcher = fetcher
        self.cover_image = cover_image
        self.cover_title = cover_title
        self._measure_title = font_metric(TITLE_FONT)

    def compose(
        self,
        products: Sequence[Product],
        page_index: int,
        total_pages: int,
        directory: Path,
    ) -> PageArtifact:
        if len(products) > PRODUCTS_PER_PAGE:
            raise ValueError(
                f"на странице помещается {PRODUCTS_PER_PAGE} товаров, передано {len(products)}"
            )
        path = directory / f"page_{page_index:04d}.pdf"
        pdf = _new_canvas(path)
        self._draw_line(
            pdf,
            TEXT_FONT,
            TEXT_FONT_SIZE,
            PAGE_WIDTH / 2,
            FOOTER_Y,
            footer_text(page_index, total_pages),
            centered=True,
        )
        for index, product in enumerate(products):
            self._draw_product(pdf, PageSlot.for_index(index), product, page_index, directory)
        pdf.showPage()
        pdf.save()
        logger.debug("Страница %s/%s сохранена", page_index + 1, total_pages)
        return PageArtifact(position=page_index + 1, path=path, kind="page")

    def compose_cover(self, directory: Path) -> PageArtifact:
        """Обложка: заданная картинка на весь лист или текстовый заголовок."""
        path = directory / "cover.pdf"
        pdf = _new_canvas(path)
        if not self._draw_cover_image(pdf):
            self._draw_line(
                pdf,
                TITLE_FONT,
                COVER_FONT_SIZE,
                PAGE_WIDTH / 2,
                PAGE_HEIGHT / 2,
                normalize_text(self.cover_title),
                centered=True,
            )
        pdf.showPage()
        pdf.save()
        return PageArtifact(position=0, path=path, kind="cover")

    def _draw_product(
        self,
        pdf: canvas.Canvas,
        slot: PageSlot,
        product: Product,
        page_index: int,
        directory: Path,
    ) -> None:
        title_lines = wrap_text(
            normalize_text(product.title),
            TEXT_WIDTH,
            self._measure_title,
            TITLE_FONT_SIZE,
        )
        layout = layout_product(slot, len(title_lines))

        image = self._fetch(product, page_index, directory)
        if not self._draw_image(pdf, layout.image, image, product, page_index):
            self._draw_placeholder(pdf, layout.image)

        for line_index, line in enumerate(title_lines):
            self._draw_line(
                pdf,
                TITLE_FONT,
                TITLE_FONT_SIZE,
                layout.title.x,
                layout.title.y_top - line_index * LINE_HEIGHT,
                line,
            )
        self._draw_line(
            pdf,
            TEXT_FONT,
            TEXT_FONT_SIZE,
            layout.price.x,
            layout.price.y_top,
            price_text(product),
        )

    def _fetch(self, product: Product, page_index: int, directory: Path) -> FetchedImage | None:
        if not product.image_url:
            return None
        try:
            return self.fetcher.fetch(product.image_url, product.id, directory)
        except Exception as exc:  # noqa: BLE001 - картинка не должна ронять страницу
            logger.warning(
                "Ошибка загрузки изображения, рисуем заглушку",
                extra={
                    "error": str(exc),
                    "error_event": build_error_event(
                        error_type="image_fetch_failed",
                        error_source="catalog_pdf.render.page_composer",
                        url=product.image_url,
                        product_id=product.id,
                        page_index=page_index,
                    ),
                },
            )
            return None

    def _draw_image(
        self,
        pdf: canvas.Canvas,
        box: LayoutBox,
        image: FetchedImage | None,
        product: Product,
        page_index: int,
    ) -> bool:
        if image is None:
            return False
        try:
            size = _decode_size(image.path, image.format)
            if size is None:
                logger.info(
                    "Формат изображения не поддерживается, рисуем заглушку",
                    extra={"product_id": product.id, "url": image.url},
                )
                return False
            width, height = fit_within(*size, box=box.width)
            x, y = centered_in(box, width, height)
            pdf.drawImage(
                str(image.path),
                x,
                y,
                width=width,
                height=height,
                mask="auto" if image.format is ImageFormat.PNG else None,
            )
            return True
        except Exception as exc:  # noqa: BLE001 - битая картинка равносильна отсутствующей
            logger.warning(
                "Не удалось встроить изображение, рисуем заглушку",
                extra={
                    "error": str(exc),
                    "error_event": build_error_event(
                        error_type="image_decode_failed",
                        error_source="catalog_pdf.render.page_composer",
                        url=image.url,
                        product_id=product.id,
                        page_index=page_index,
                    ),
                },
            )
            return False
        finally:
            image.discard()

    def _draw_placeholder(self, pdf: canvas.Canvas, box: LayoutBox) -> None:
        pdf.setStrokeColor(colors.black)
        pdf.setLineWidth(1)
        pdf.rect(box.x, box.y_bottom, box.width, box.height, stroke=1, fill=0)
        self._draw_line(
            pdf,
            TEXT_FONT,
            TEXT_FONT_SIZE,
            box.x + box.width / 2,
            box.y_top - box.height / 2,
            PLACEHOLDER_LABEL,
            centered=True,
        )

    def _draw_cover_image(self, pdf: canvas.Canvas) -> bool:
        if self.cover_image is None or not self.cover_image.exists():
            return False
        image_format = ImageFormat.from_path(self.cover_image)
        try:
            if _decode_size(self.cover_image, image_format) is None:
                logger.warning(
                    "Обложка в неподдерживаемом формате",
                    extra={"path": str(self.cover_image)},
                )
                return False
            # обложка заранее подогнана под A4, пропорции не сохраняем
            pdf.drawImage(str(self.cover_image), 0, 0, width=PAGE_WIDTH, height=PAGE_HEIGHT)
            return True
        except Exception as exc:  # noqa: BLE001 - вместо обложки будет заголовок
            logger.warning(
                "Не удалось загрузить обложку",
                extra={"path": str(self.cover_image), "error": str(exc)},
            )
            return False

    def _draw_line(
        self,
        pdf: canvas.Canvas,
        font: str,
        size: float,
        x: float,
        y: float,
        text: str,
        *,
        centered: bool = False,
    ) -> None:
        try:
            pdf.setFillColor(colors.black)
            pdf.setFont(font, size)
            if centered:
                pdf.drawCentredString(x, y, text)
            else:
                pdf.drawString(x, y, text)
        except Exception as exc:  # noqa: BLE001 - кривая строка не должна ронять страницу
            logger.warning(
                "Не удалось нарисовать строку",
                extra={"text": text, "error": str(exc)},
            )


def _new_canvas(path: Path) -> canvas.Canvas:
    return canvas.Canvas(str(path), pagesize=(PAGE_WIDTH, PAGE_HEIGHT))


def _decode_size(path: Path, image_format: ImageFormat) -> tuple[int, int] | None:
    """Полностью декодирует файл, чтобы битые данные не всплыли при сохранении PDF."""
    expected = _PIL_FORMATS.get(image_format)
    if expected is None:
        return None
    with Image.open(path) as img:
        if img.format != expected:
            raise ValueError(f"ожидался {expected}, в файле {img.format}")
        img.load()
        return img.size
