"""HTTP-интерфейс: запуск генерации, статус и выдача готового PDF."""

from __future__ import annotations

import math
from contextlib import asynccontextmanager
from typing import Literal

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse

from catalog_pdf import __version__
from catalog_pdf.logger import get_logger
from catalog_pdf.runtime.context import RuntimeContext
from catalog_pdf.shopify.client import ProductSourceError
from catalog_pdf.shopify.models import Product
from catalog_pdf.workflow.scheduler import create_scheduler

logger = get_logger(__name__)

router = APIRouter()

CATALOG_MISSING_MESSAGE = "El catálogo aún no está disponible. Por favor intente más tarde."
SHUTDOWN_WAIT_SEC = 120.0

SortField = Literal["title", "id", "handle", "created_at", "updated_at"]


def get_context(request: Request) -> RuntimeContext:
    return request.app.state.context


@router.get("/health")
def health() -> dict:
    return {"status": "ok", "version": __version__}


@router.post("/generate")
def generate(context: RuntimeContext = Depends(get_context)) -> JSONResponse:
    result = context.coordinator.trigger()
    snapshot = result.status.to_dict()
    if not result.accepted:
        return JSONResponse(
            status_code=409,
            content={
                "status": "in_progress",
                "message": "Ya hay una generación de PDF en curso",
                "progress": result.status.progress,
                "generation": snapshot,
            },
        )
    logger.info("Генерация запущена по HTTP-запросу")
    return JSONResponse(
        status_code=202,
        content={
            "status": "accepted",
            "message": "Generación de PDF iniciada",
            "generation": snapshot,
        },
    )


@router.get("/status")
def status(context: RuntimeContext = Depends(get_context)) -> dict:
    return context.coordinator.status().to_dict()


@router.get("/")
@router.get("/catalog")
def catalog(context: RuntimeContext = Depends(get_context)):
    path = context.catalog_path
    if not path.is_file():
        return PlainTextResponse(CATALOG_MISSING_MESSAGE, status_code=404)
    return FileResponse(
        path,
        media_type="application/pdf",
        filename=context.config.catalog.download_name,
        content_disposition_type="inline",
    )


@router.get("/collection-products/{collection_id}")
def collection_products(
    collection_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=250),
    sort_field: SortField = Query("title"),
    sort_order: Literal["asc", "desc"] = Query("asc"),
    context: RuntimeContext = Depends(get_context),
):
    try:
        products = context.source.list_products(collection_id)
    except ProductSourceError:
        logger.exception("Не удалось получить товары коллекции %s", collection_id)
        return JSONResponse(status_code=500, content={"error": "Error al procesar la solicitud"})

    ordered = sort_products(products, sort_field, sort_order)
    start = (page - 1) * limit
    return {
        "products": [product.to_dict() for product in ordered[start : start + limit]],
        "pagination": {
            "total": len(ordered),
            "page": page,
            "limit": limit,
            "totalPages": math.ceil(len(ordered) / limit),
        },
    }


def sort_value(product: Product, sort_field: str) -> tuple[int, int, str]:
    """Ключ сортировки: числовые id Shopify сравниваются как числа."""
    value = getattr(product, sort_field) or ""
    if sort_field == "id" and value.isdigit():
        return (0, int(value), "")
    return (1, 0, value)


def sort_products(products: list[Product], sort_field: str, sort_order: str) -> list[Product]:
    """Сначала товары в наличии, внутри групп по выбранному полю."""
    ordered = sorted(
        products,
        key=lambda product: sort_value(product, sort_field),
        reverse=sort_order == "desc",
    )
    # sorted стабилен, порядок по полю внутри групп сохраняется
    return sorted(ordered, key=lambda product: product.out_of_stock)


def create_app(context: RuntimeContext, *, with_scheduler: bool = True) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        scheduler = None
        if with_scheduler:
            scheduler = create_scheduler(context.coordinator, context.config.schedule)
            scheduler.start()
        logger.info("Сервер каталога запущен")
        try:
            yield
        finally:
            if scheduler is not None and scheduler.running:
                scheduler.shutdown(wait=False)
            # клиенты httpx закрываем только после фоновой генерации
            context.coordinator.wait(timeout=SHUTDOWN_WAIT_SEC)
            if context.coordinator.status().is_generating:
                logger.warning(
                    "Генерация не завершилась за %s с, сетевые клиенты закрываются принудительно",
                    SHUTDOWN_WAIT_SEC,
                )
            context.close()

    app = FastAPI(title="Catalog PDF", version=__version__, lifespan=lifespan)
    app.state.context = context
    app.add_middleware(
        CORSMiddleware,
        allow_origins=context.config.server.cors_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app
