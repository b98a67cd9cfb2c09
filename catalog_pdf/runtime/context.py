from __future__ import annotations

from dataclasses import dataclass

import httpx

from catalog_pdf.config.models import AppConfig
from catalog_pdf.media.image_fetcher import ImageFetcher
from catalog_pdf.network.http_client_factory import HttpClientFactory
from catalog_pdf.render.assembler import CatalogAssembler
from catalog_pdf.render.page_composer import PageComposer
from catalog_pdf.shopify.client import ShopifyProductSource
from catalog_pdf.state.storage import LastUpdateStore
from catalog_pdf.workflow.coordinator import GenerationCoordinator


@dataclass(slots=True)
class RuntimeContext:
    """Собранные зависимости процесса: один координатор на всё приложение."""

    config: AppConfig
    client_factory: HttpClientFactory
    source: ShopifyProductSource
    store: LastUpdateStore
    coordinator: GenerationCoordinator

    @property
    def catalog_path(self):
        return self.config.catalog.output_path

    def close(self) -> None:
        self.client_factory.close()


def build_context(
    config: AppConfig,
    *,
    transport: httpx.BaseTransport | None = None,
) -> RuntimeContext:
    catalog = config.catalog
    client_factory = HttpClientFactory(config.network, transport=transport)
    source = ShopifyProductSource(config.shop, config.network.retry, client_factory)
    fetcher = ImageFetcher(client_factory, catalog.scratch_dir)
    composer = PageComposer(
        fetcher,
        cover_image=catalog.cover_image,
        cover_title=catalog.cover_title,
    )
    assembler = CatalogAssembler(composer, catalog.output_path, catalog.scratch_dir)
    store = LastUpdateStore(config.state.last_update_path)
    coordinator = GenerationCoordinator(
        source,
        assembler,
        store,
        collection_id=config.shop.collection_id,
        skip_if_unchanged=catalog.skip_if_unchanged,
    )
    return RuntimeContext(
        config=config,
        client_factory=client_factory,
        source=source,
        store=store,
        coordinator=coordinator,
    )
