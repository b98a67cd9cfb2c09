"""Геометрия страницы каталога: A4, две колонки по четыре товара."""

from __future__ import annotations

import math
from dataclasses import dataclass

PAGE_WIDTH = 595.28
PAGE_HEIGHT = 841.89
MARGIN = 50.0
IMAGE_SIZE = 100.0
COLUMNS = 2
ROWS = 4
PRODUCTS_PER_PAGE = COLUMNS * ROWS
COL_WIDTH = (PAGE_WIDTH - MARGIN * 2) / COLUMNS
ROW_HEIGHT = 180.0
HEADER_OFFSET = 80.0

TITLE_FONT = "Helvetica-Bold"
TITLE_FONT_SIZE = 9
TEXT_FONT = "Helvetica"
TEXT_FONT_SIZE = 8
LINE_HEIGHT = 12.0
TITLE_TOP_OFFSET = 15.0
TEXT_GAP = 10.0
PRICE_GAP = 10.0
TEXT_WIDTH = COL_WIDTH - IMAGE_SIZE - 15
FOOTER_Y = 30.0


@dataclass(frozen=True, slots=True)
class PageSlot:
    column: int
    row: int

    @classmethod
    def for_index(cls, index: int) -> "PageSlot":
        if not 0 <= index < PRODUCTS_PER_PAGE:
            raise ValueError(f"index {index} вне страницы из {PRODUCTS_PER_PAGE} мест")
        return cls(column=index % COLUMNS, row=index // COLUMNS)

    @property
    def origin(self) -> tuple[float, float]:
        """Левый верхний угол блока товара."""
        x = MARGIN + self.column * COL_WIDTH
        y = PAGE_HEIGHT - MARGIN - HEADER_OFFSET - self.row * ROW_HEIGHT
        return x, y


@dataclass(frozen=True, slots=True)
class LayoutBox:
    """Прямоугольник в координатах страницы (начало в левом нижнем углу)."""

    x: float
    y_top: float
    width: float
    height: float

    @property
    def y_bottom(self) -> float:
        return self.y_top - self.height


@dataclass(frozen=True, slots=True)
class ProductLayout:
    image: LayoutBox
    title: LayoutBox
    price: LayoutBox


def layout_product(slot: PageSlot, title_lines: int) -> ProductLayout:
    """Раскладка блока товара; цена сдвигается вниз вместе с высотой названия."""
    x, y = slot.origin
    lines = max(title_lines, 1)
    text_x = x + IMAGE_SIZE + TEXT_GAP
    title_y = y - TITLE_TOP_OFFSET
    title_height = lines * LINE_HEIGHT
    price_y = title_y - title_height - PRICE_GAP
    return ProductLayout(
        image=LayoutBox(x=x, y_top=y, width=IMAGE_SIZE, height=IMAGE_SIZE),
        title=LayoutBox(x=text_x, y_top=title_y, width=TEXT_WIDTH, height=title_height),
        price=LayoutBox(x=text_x, y_top=price_y, width=TEXT_WIDTH, height=LINE_HEIGHT),
    )


def fit_within(width: float, height: float, box: float = IMAGE_SIZE) -> tuple[float, float]:
    """Масштаб с сохранением пропорций так, чтобы картинка поместилась в квадрат box."""
    if width <= 0 or height <= 0:
        raise ValueError("размеры изображения должны быть положительными")
    scale = min(box / width, box / height)
    return width * scale, height * scale


def centered_in(box: LayoutBox, width: float, height: float) -> tuple[float, float]:
    """Левый нижний угол картинки width x height, отцентрированной в box."""
    x = box.x + (box.width - width) / 2
    y = box.y_top - height - (box.height - height) / 2
    return x, y


def total_pages(product_count: int) -> int:
    return math.ceil(product_count / PRODUCTS_PER_PAGE)


def page_slice(items: list, page_index: int) -> list:
    start = page_index * PRODUCTS_PER_PAGE
    return items[start : start + PRODUCTS_PER_PAGE]
