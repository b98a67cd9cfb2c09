from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Literal

from catalog_pdf.logger import get_logger
from catalog_pdf.monitoring import build_error_event
from catalog_pdf.render.assembler import CatalogAssembler
from catalog_pdf.shopify.client import ProductSource
from catalog_pdf.state.storage import LastUpdateRecord, LastUpdateStore

logger = get_logger(__name__)

STATUS_STARTING = "Iniciando"
STATUS_FETCHING = "Obteniendo productos"
STATUS_DONE = "Completado"
STATUS_UNCHANGED = "Sin cambios"
STATUS_ERROR = "Error"
NO_PRODUCTS_MESSAGE = "No se encontraron productos"

OutcomeStatus = Literal["success", "in_progress", "no_products", "unchanged", "error"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class GenerationStatus:
    """Неизменяемый снимок состояния генерации."""

    is_generating: bool = False
    progress: int = 0
    status: str = ""
    error: str | None = None
    last_generated: datetime | None = None
    total_products: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "isGenerating": self.is_generating,
            "progress": self.progress,
            "status": self.status,
            "error": self.error,
            "lastGenerated": self.last_generated.isoformat() if self.last_generated else None,
            "totalProducts": self.total_products,
        }


@dataclass(frozen=True, slots=True)
class TriggerResult:
    accepted: bool
    status: GenerationStatus


@dataclass(frozen=True, slots=True)
class GenerationOutcome:
    status: OutcomeStatus
    message: str = ""
    pdf_path: Path | None = None
    product_count: int = 0


class GenerationCoordinator:
    """Единственный владелец состояния генерации.

    Одновременно может идти только одна генерация: запуск во время работающей
    отклоняется сразу, без очереди. Состояние меняется только через
    ``_transition`` под блокировкой, наружу отдаются неизменяемые снимки.
    """

    def __init__(
        self,
        source: ProductSource,
        assembler: CatalogAssembler,
        store: LastUpdateStore,
        *,
        collection_id: str | None = None,
        skip_if_unchanged: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.source = source
        self.assembler = assembler
        self.store = store
        self.collection_id = collection_id
        self.skip_if_unchanged = skip_if_unchanged
        self._clock = clock
        self._lock = threading.Lock()
        self._status = GenerationStatus()
        self._thread: threading.Thread | None = None

    def status(self) -> GenerationStatus:
        with self._lock:
            return self._status

    def trigger(self) -> TriggerResult:
        """Запускает генерацию в фоне или сообщает, что она уже идёт."""
        accepted, snapshot = self._try_start()
        if accepted:
            thread = threading.Thread(
                target=self._run_cycle,
                name="catalog-generation",
                daemon=True,
            )
            self._thread = thread
            thread.start()
        return TriggerResult(accepted=accepted, status=snapshot)

    def generate(self) -> GenerationOutcome:
        """Синхронная генерация; используется планировщиком и CLI."""
        accepted, snapshot = self._try_start()
        if not accepted:
            logger.info("Генерация уже идёт, запрос проигнорирован")
            return GenerationOutcome(
                status="in_progress",
                message="Ya hay una generación de PDF en curso",
                product_count=snapshot.total_products,
            )
        return self._run_cycle()

    def wait(self, timeout: float | None = None) -> None:
        """Дожидается фоновой генерации, запущенной через trigger()."""
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def _try_start(self) -> tuple[bool, GenerationStatus]:
        with self._lock:
            if self._status.is_generating:
                return False, self._status
            self._status = GenerationStatus(
                is_generating=True,
                progress=0,
                status=STATUS_STARTING,
                last_generated=self._status.last_generated,
            )
            return True, self._status

    def _transition(self, **changes: Any) -> None:
        with self._lock:
            progress = changes.get("progress")
            if progress is not None:
                changes["progress"] = max(self._status.progress, min(int(progress), 100))
            self._status = replace(self._status, **changes)

    def _report_progress(self, percent: int, text: str) -> None:
        self._transition(progress=percent, status=text)

    def _run_cycle(self) -> GenerationOutcome:
        logger.info("Запуск генерации каталога")
        try:
            return self._execute()
        except Exception as exc:
            event = build_error_event(
                error_type="generation_failed",
                error_source="catalog_pdf.workflow.coordinator",
                fatal=True,
                metadata={"exception": type(exc).__name__},
            )
            logger.exception("Генерация каталога завершилась ошибкой", extra={"error_event": event})
            self._transition(is_generating=False, error=str(exc), status=STATUS_ERROR)
            return GenerationOutcome(status="error", message=str(exc))

    def _execute(self) -> GenerationOutcome:
        self._transition(progress=10, status=STATUS_FETCHING)
        products = self.source.list_products(self.collection_id)
        self._transition(total_products=len(products))
        last_update = self.store.load()

        if not products:
            logger.warning("Товары не найдены")
            self._transition(is_generating=False, error=NO_PRODUCTS_MESSAGE, status=STATUS_ERROR)
            return GenerationOutcome(status="no_products", message=NO_PRODUCTS_MESSAGE)

        if self._unchanged(len(products), last_update):
            logger.info("Количество товаров не изменилось (%s), PDF не пересобирается", len(products))
            self._transition(is_generating=False, progress=100, status=STATUS_UNCHANGED, error=None)
            return GenerationOutcome(
                status="unchanged",
                pdf_path=self.assembler.output_path,
                product_count=len(products),
            )

        result = self.assembler.assemble(products, on_progress=self._report_progress)
        finished_at = self._clock()
        self._record_update(finished_at, len(products))
        self._transition(
            is_generating=False,
            progress=100,
            status=STATUS_DONE,
            error=None,
            last_generated=finished_at,
        )
        logger.info("Каталог собран: %s", result.output_path)
        return GenerationOutcome(
            status="success",
            pdf_path=result.output_path,
            product_count=len(products),
        )

    def _record_update(self, finished_at: datetime, product_count: int) -> None:
        """Каталог уже опубликован, поэтому сбой записи отметки только логируется."""
        try:
            self.store.save(
                LastUpdateRecord(last_update_time=finished_at, product_count=product_count)
            )
        except OSError as exc:
            logger.error(
                "Каталог опубликован, но отметку о последнем обновлении записать не удалось",
                extra={
                    "error": str(exc),
                    "error_event": build_error_event(
                        error_type="last_update_write_failed",
                        error_source="catalog_pdf.workflow.coordinator",
                        metadata={"path": str(self.store.path)},
                    ),
                },
            )

    def _unchanged(self, product_count: int, last_update: LastUpdateRecord) -> bool:
        return (
            self.skip_if_unchanged
            and last_update.product_count == product_count
            and self.assembler.output_path.exists()
        )
