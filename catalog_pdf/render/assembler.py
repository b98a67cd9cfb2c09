from __future__ import annotations

import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Literal, Sequence

from pypdf import PdfWriter

from catalog_pdf.logger import get_logger
from catalog_pdf.render.geometry import page_slice, total_pages
from catalog_pdf.render.page_composer import PageArtifact, PageComposer
from catalog_pdf.shopify.models import Product

logger = get_logger(__name__)

ProgressCallback = Callable[[int, str], None]

PAGES_PROGRESS_START = 20
PAGES_PROGRESS_END = 90


@dataclass(frozen=True, slots=True)
class AssemblyResult:
    status: Literal["success", "no_products"]
    output_path: Path | None = None
    page_count: int = 0
    product_count: int = 0


class CatalogAssembler:
    """Собирает каталог: обложка, страницы по одной, слияние, публикация."""

    def __init__(self, composer: PageComposer, output_path: Path, scratch_dir: Path):
        self.composer = composer
        self.output_path = output_path
        self.scratch_dir = scratch_dir

    def assemble(
        self,
        products: Sequence[Product],
        on_progress: ProgressCallback | None = None,
    ) -> AssemblyResult:
        if not products:
            logger.warning("Товары не найдены, каталог не пересобирается")
            return AssemblyResult(status="no_products")

        progress = on_progress or _ignore_progress
        pages = total_pages(len(products))
        logger.info("Генерируем PDF: %s страниц, %s товаров", pages, len(products))
        progress(PAGES_PROGRESS_START, "Iniciando generación de PDF")

        self.scratch_dir.mkdir(parents=True, exist_ok=True)
        run_dir = Path(tempfile.mkdtemp(prefix="run-", dir=self.scratch_dir))
        try:
            artifacts = [self.composer.compose_cover(run_dir)]
            product_list = list(products)
            for page_index in range(pages):
                percent = PAGES_PROGRESS_START + (
                    page_index * (PAGES_PROGRESS_END - PAGES_PROGRESS_START) // pages
                )
                progress(percent, f"Procesando página {page_index + 1}/{pages}")
                artifacts.append(
                    self.composer.compose(
                        page_slice(product_list, page_index),
                        page_index,
                        pages,
                        run_dir,
                    )
                )
            progress(PAGES_PROGRESS_END, "Combinando páginas y finalizando PDF")
            page_count = merge_artifacts(artifacts, self.output_path)
        finally:
            shutil.rmtree(run_dir, ignore_errors=True)

        logger.info("PDF опубликован", extra={"path": str(self.output_path), "pages": page_count})
        return AssemblyResult(
            status="success",
            output_path=self.output_path,
            page_count=page_count,
            product_count=len(products),
        )


def merge_artifacts(artifacts: Sequence[PageArtifact], output_path: Path) -> int:
    """Сливает артефакты в порядке списка и атомарно подменяет итоговый файл.

    Каждый артефакт читается один раз и сразу удаляется.
    """
    writer = PdfWriter()
    for artifact in artifacts:
        writer.append(str(artifact.path))
        artifact.release()
    page_count = len(writer.pages)
    publish(writer, output_path)
    return page_count


def publish(writer: PdfWriter, output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{output_path.name}.", suffix=".tmp", dir=output_path.parent
    )
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            writer.write(handle)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_path, output_path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    finally:
        writer.close()


def _ignore_progress(percent: int, text: str) -> None:
    return None
