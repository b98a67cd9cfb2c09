from __future__ import annotations

import dataclasses
import threading
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest

from catalog_pdf.config.models import NetworkConfig
from catalog_pdf.media.image_fetcher import ImageFetcher
from catalog_pdf.network.http_client_factory import HttpClientFactory
from catalog_pdf.render.assembler import CatalogAssembler
from catalog_pdf.render.page_composer import PageComposer
from catalog_pdf.shopify.client import ProductSourceError
from catalog_pdf.state.storage import LastUpdateRecord, LastUpdateStore
from catalog_pdf.workflow.coordinator import (
    NO_PRODUCTS_MESSAGE,
    GenerationCoordinator,
    GenerationStatus,
)

from conftest import FakeSource, cdn_handler, make_product

FIXED_NOW = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


class RecordingCoordinator(GenerationCoordinator):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.history: list[GenerationStatus] = []

    def _transition(self, **changes):
        super()._transition(**changes)
        self.history.append(self.status())


def _coordinator(tmp_path: Path, source: FakeSource, **kwargs) -> RecordingCoordinator:
    factory = HttpClientFactory(NetworkConfig(), transport=httpx.MockTransport(cdn_handler()))
    assembler = CatalogAssembler(
        PageComposer(ImageFetcher(factory, tmp_path / "scratch" / "images")),
        tmp_path / "public" / "catalog.pdf",
        tmp_path / "scratch",
    )
    store = LastUpdateStore(tmp_path / "state" / "lastUpdate.json")
    return RecordingCoordinator(source, assembler, store, clock=lambda: FIXED_NOW, **kwargs)


def test_generate_publishes_catalog_and_records_update(tmp_path: Path):
    source = FakeSource([make_product(i) for i in range(10)])
    coordinator = _coordinator(tmp_path, source, collection_id="42")

    outcome = coordinator.generate()

    assert outcome.status == "success"
    assert outcome.product_count == 10
    assert outcome.pdf_path.exists()
    assert source.calls == ["42"]
    status = coordinator.status()
    assert status.is_generating is False
    assert status.progress == 100
    assert status.status == "Completado"
    assert status.error is None
    assert status.last_generated == FIXED_NOW
    assert status.total_products == 10
    assert coordinator.store.load() == LastUpdateRecord(last_update_time=FIXED_NOW, product_count=10)


def test_progress_never_goes_backwards(tmp_path: Path):
    coordinator = _coordinator(tmp_path, FakeSource([make_product(i) for i in range(20)]))

    coordinator.generate()

    progress = [snapshot.progress for snapshot in coordinator.history]
    assert progress == sorted(progress)
    assert progress[-1] == 100
    texts = [snapshot.status for snapshot in coordinator.history]
    assert texts[0] == "Obteniendo productos"
    assert "Procesando página 3/3" in texts
    assert texts[-1] == "Completado"


def test_transition_clamps_progress():
    coordinator = GenerationCoordinator(FakeSource([]), assembler=None, store=None)
    coordinator._transition(progress=50)
    coordinator._transition(progress=5)
    assert coordinator.status().progress == 50
    coordinator._transition(progress=250)
    assert coordinator.status().progress == 100


def test_second_trigger_is_rejected_while_running(tmp_path: Path):
    source = FakeSource([make_product(1)], block=True)
    coordinator = _coordinator(tmp_path, source)

    first = coordinator.trigger()
    assert first.accepted is True
    assert source.entered.wait(timeout=5)

    second = coordinator.trigger()
    assert second.accepted is False
    assert second.status.is_generating is True
    assert coordinator.generate().status == "in_progress"

    source.release()
    coordinator.wait(timeout=10)

    assert source.calls == [None]
    assert coordinator.status().is_generating is False
    assert coordinator.status().status == "Completado"


def test_zero_products_keeps_previous_catalog(tmp_path: Path):
    coordinator = _coordinator(tmp_path, FakeSource([]))
    output = coordinator.assembler.output_path
    output.parent.mkdir(parents=True)
    output.write_bytes(b"previous catalog")

    outcome = coordinator.generate()

    assert outcome.status == "no_products"
    assert output.read_bytes() == b"previous catalog"
    status = coordinator.status()
    assert status.is_generating is False
    assert status.status == "Error"
    assert status.error == NO_PRODUCTS_MESSAGE
    assert status.last_generated is None
    assert not coordinator.store.path.exists()


def test_source_failure_is_reported_and_next_run_allowed(tmp_path: Path):
    source = FakeSource([make_product(1)], error=ProductSourceError("Error al obtener productos de Shopify: 401"))
    coordinator = _coordinator(tmp_path, source)

    outcome = coordinator.generate()

    assert outcome.status == "error"
    status = coordinator.status()
    assert status.is_generating is False
    assert status.status == "Error"
    assert "401" in status.error

    source.error = None
    assert coordinator.generate().status == "success"
    assert coordinator.status().error is None


def test_unchanged_product_count_skips_rebuild(tmp_path: Path):
    coordinator = _coordinator(
        tmp_path, FakeSource([make_product(i) for i in range(3)]), skip_if_unchanged=True
    )
    coordinator.store.save(LastUpdateRecord(last_update_time=FIXED_NOW, product_count=3))
    output = coordinator.assembler.output_path
    output.parent.mkdir(parents=True)
    output.write_bytes(b"previous catalog")

    outcome = coordinator.generate()

    assert outcome.status == "unchanged"
    assert output.read_bytes() == b"previous catalog"
    assert coordinator.status().status == "Sin cambios"
    assert coordinator.status().progress == 100


def test_unchanged_count_rebuilds_when_skip_disabled(tmp_path: Path):
    coordinator = _coordinator(tmp_path, FakeSource([make_product(i) for i in range(3)]))
    coordinator.store.save(LastUpdateRecord(last_update_time=FIXED_NOW, product_count=3))
    output = coordinator.assembler.output_path
    output.parent.mkdir(parents=True)
    output.write_bytes(b"previous catalog")

    assert coordinator.generate().status == "success"
    assert output.read_bytes().startswith(b"%PDF")


def test_status_snapshots_are_immutable(tmp_path: Path):
    coordinator = _coordinator(tmp_path, FakeSource([make_product(1)]))
    before = coordinator.status()

    coordinator.generate()

    assert before == GenerationStatus()
    with pytest.raises(dataclasses.FrozenInstanceError):
        before.progress = 99
    assert coordinator.status().to_dict() == {
        "isGenerating": False,
        "progress": 100,
        "status": "Completado",
        "error": None,
        "lastGenerated": FIXED_NOW.isoformat(),
        "totalProducts": 1,
    }


class _BlockingComposer(PageComposer):
    """Останавливает сборку на обложке, когда товары уже посчитаны."""

    def __init__(self, fetcher):
        super().__init__(fetcher)
        self.entered = threading.Event()
        self.released = threading.Event()

    def compose_cover(self, directory):
        self.entered.set()
        self.released.wait(timeout=10)
        return super().compose_cover(directory)


def test_rejected_trigger_keeps_running_progress_and_count(tmp_path: Path):
    coordinator = _coordinator(tmp_path, FakeSource([make_product(i) for i in range(3)]))
    composer = _BlockingComposer(coordinator.assembler.composer.fetcher)
    coordinator.assembler.composer = composer

    assert coordinator.trigger().accepted is True
    assert composer.entered.wait(timeout=5)
    before = coordinator.status()
    assert before.total_products == 3
    assert before.progress == 20

    rejected = coordinator.trigger()
    outcome = coordinator.generate()

    after = coordinator.status()
    assert rejected.accepted is False
    assert outcome.status == "in_progress"
    assert outcome.product_count == 3
    assert after == before

    composer.released.set()
    coordinator.wait(timeout=10)
    assert coordinator.status().total_products == 3
    assert coordinator.status().status == "Completado"


def test_failed_update_record_does_not_fail_published_run(tmp_path: Path, monkeypatch):
    coordinator = _coordinator(tmp_path, FakeSource([make_product(1)]))

    def broken_save(record):
        raise PermissionError("read-only state volume")

    monkeypatch.setattr(coordinator.store, "save", broken_save)

    outcome = coordinator.generate()

    assert outcome.status == "success"
    assert coordinator.assembler.output_path.exists()
    status = coordinator.status()
    assert status.status == "Completado"
    assert status.error is None
    assert status.last_generated == FIXED_NOW
