"""
Shared fixtures for the kitchen print tests.

The fakes here stand in for the hardware side (headless renderer, printer
driver, print backend) so the pipeline can be exercised end to end without
Chromium or CUPS.
"""

import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest
from pypdf import PdfWriter

from core.exceptions import PrinterEnumerationError
from models.document import PrintReceipt
from modules.demo_orders import generate_initial_orders
from modules.settings_store import InMemorySettingsStore
from services.audit_store import AuditStore
from services.conversion_service import ConversionDispatchService
from services.order_store import OrderStore
from services.render_service import RenderService


FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def write_blank_pdf(path: Path, pages: int = 1) -> None:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=226, height=300)
    with open(path, "wb") as f:
        writer.write(f)


class FakeRenderer:
    """Writes a one-page PDF instead of launching a browser."""

    def __init__(self, write_file: bool = True, error: Exception = None):
        self.write_file = write_file
        self.error = error
        self.calls = []

    def render_pdf(self, html, output_path):
        self.calls.append((html, output_path))
        if self.error is not None:
            raise self.error
        if self.write_file:
            write_blank_pdf(output_path)


class FakeDriver:
    """Records print_file calls instead of talking to a spooler."""

    def __init__(self, printers=("Kitchen-1", "Kitchen-2"), error: Exception = None):
        self.printers = list(printers)
        self.error = error
        self.printed = []

    def list_printers(self):
        if isinstance(self.error, PrinterEnumerationError):
            raise self.error
        return list(self.printers)

    def print_file(self, path, printer_name):
        if self.error is not None:
            raise self.error
        self.printed.append((Path(path), printer_name))


class FakeBackend:
    """
    PrintBackend double for the orchestrator and the board app.

    With ``block=True`` print_document reports both stages and then waits
    for ``release`` so tests can observe a busy lane.
    """

    def __init__(self, printers=("Kitchen-1",), error: Exception = None, block: bool = False):
        self.printers = list(printers)
        self.error = error
        self.block = block
        self.started = threading.Event()
        self.release = threading.Event()
        self.documents = []
        self.list_error = None

    def list_printers(self):
        if self.list_error is not None:
            raise self.list_error
        return list(self.printers)

    def print_document(self, document, printer_name, on_stage=None):
        self.documents.append((document, printer_name))
        if on_stage:
            on_stage("converting")
            on_stage("dispatching")
        self.started.set()
        if self.block:
            self.release.wait(timeout=10)
        if self.error is not None:
            raise self.error
        return PrintReceipt(filename=f"print_2024-01-01_12-00-0{len(self.documents)}.pdf")


# Fixtures

@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def order_store():
    """Store seeded with the four demo orders (#001 pending .. #004 completed)."""
    return OrderStore(generate_initial_orders(FIXED_NOW))


@pytest.fixture
def render_service(order_store):
    return RenderService(order_store, tz=timezone.utc, clock=lambda: FIXED_NOW)


@pytest.fixture
def settings_store():
    return InMemorySettingsStore()


@pytest.fixture
def audit_store(tmp_path):
    return AuditStore(tmp_path / "prints")


@pytest.fixture
def fake_renderer():
    return FakeRenderer()


@pytest.fixture
def fake_driver():
    return FakeDriver()


@pytest.fixture
def conversion_service(fake_renderer, fake_driver, audit_store):
    return ConversionDispatchService(
        renderer=fake_renderer,
        driver=fake_driver,
        audit_store=audit_store,
        virtual_printer_keywords=("pdf", "xps", "onenote", "fax", "print to", "send to"),
    )


@pytest.fixture
def fake_backend():
    backend = FakeBackend()
    yield backend
    backend.release.set()


@pytest.fixture
def blocking_backend():
    backend = FakeBackend(block=True)
    yield backend
    backend.release.set()
