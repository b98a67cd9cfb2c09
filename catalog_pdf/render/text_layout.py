from __future__ import annotations

import re
import unicodedata
from typing import Callable

from reportlab.pdfbase import pdfmetrics

from catalog_pdf.logger import get_logger

logger = get_logger(__name__)

Measure = Callable[[str, float], float]

# \w в режиме ASCII: буквы, цифры и подчёркивание
_DISALLOWED = re.compile(r"""[^\w\s.,;:!?()/\-"']""", re.ASCII)


def normalize_text(text: str | None) -> str:
    """Приводит текст к ASCII-подмножеству, которое умеют встроенные шрифты PDF.

    Акценты раскладываются (NFD) и отбрасываются, прочие не-ASCII символы
    удаляются, затем остаются только буквы, цифры, пробелы и базовая пунктуация.
    Повторное применение результат не меняет.
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    ascii_only = stripped.encode("ascii", "ignore").decode("ascii")
    return _DISALLOWED.sub("", ascii_only)


def font_metric(font_name: str) -> Measure:
    """Функция измерения ширины строки для стандартного шрифта reportlab."""

    def measure(text: str, font_size: float) -> float:
        return pdfmetrics.stringWidth(text, font_name, font_size)

    return measure


def wrap_text(
    text: str | None,
    max_width: float,
    measure: Measure,
    font_size: float,
) -> list[str]:
    """Жадный перенос по словам без переноса внутри слова.

    Всегда возвращает хотя бы одну строку: расчёт высоты блока названия
    рассчитывает на ненулевое число строк.
    """
    words = (text or "").split()
    if not words:
        return [""]
    lines: list[str] = []
    current = words[0]
    for word in words[1:]:
        candidate = f"{current} {word}"
        try:
            fits = measure(candidate, font_size) < max_width
        except Exception as exc:  # noqa: BLE001 - метрика шрифта может упасть на любом символе
            logger.warning(
                "Не удалось измерить текст, слово остаётся в строке",
                extra={"text": candidate, "error": str(exc)},
            )
            fits = True
        if fits:
            current = candidate
        else:
            lines.append(current)
            current = word
    lines.append(current)
    return lines
