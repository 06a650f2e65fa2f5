"""
Unit tests for the ConversionDispatchService.

Uses a fake renderer that writes a real (blank) PDF, so page counting with
pypdf runs for real.
"""

import pytest

from core.exceptions import (
    ConversionError,
    ErrorKind,
    PrintValidationError,
    PrinterError,
    StageTimeoutError,
    UnsupportedVirtualPrinterError,
)
from services.conversion_service import ConversionDispatchService
from services.audit_store import FILENAME_PATTERN

from tests.conftest import FakeDriver, FakeRenderer


HTML = "<html><body>#001 - Ready</body></html>"


class TestPrintHtml:

    def test_convert_then_dispatch(self, conversion_service, fake_renderer, fake_driver, audit_store):
        stages = []
        receipt = conversion_service.print_html(HTML, "Kitchen-1", on_stage=stages.append)

        assert FILENAME_PATTERN.match(receipt.filename)
        assert receipt.message == "Printed successfully"
        assert stages == ["converting", "dispatching"]
        assert fake_renderer.calls[0][0] == HTML

        path = audit_store.resolve(receipt.filename)
        assert path is not None
        assert fake_driver.printed == [(path, "Kitchen-1")]

        events = audit_store.read_log()
        assert [e["event"] for e in events] == ["artifact", "dispatch"]
        assert events[0]["pageCount"] == 1
        assert events[1]["success"] is True

    def test_missing_html_rejected_before_conversion(self, conversion_service, fake_renderer):
        with pytest.raises(PrintValidationError) as exc_info:
            conversion_service.print_html("", "Kitchen-1")
        assert exc_info.value.message == "No HTML content provided"
        assert exc_info.value.kind is ErrorKind.VALIDATION_ERROR
        assert fake_renderer.calls == []

    def test_missing_printer_rejected_before_conversion(self, conversion_service, fake_renderer):
        with pytest.raises(PrintValidationError) as exc_info:
            conversion_service.print_html(HTML, "")
        assert exc_info.value.message == "No printer name provided"
        assert fake_renderer.calls == []

    def test_distinct_files_within_one_second(self, fake_renderer, fake_driver, audit_store, fixed_now):
        service = ConversionDispatchService(
            fake_renderer, fake_driver, audit_store, clock=lambda: fixed_now
        )
        first = service.print_html(HTML, "Kitchen-1")
        second = service.print_html(HTML, "Kitchen-1")

        assert first.filename == "print_2024-01-01_12-00-00.pdf"
        assert second.filename == "print_2024-01-01_12-00-00_1.pdf"
        assert len(audit_store.list_artifacts()) == 2


class TestVirtualPrinters:

    @pytest.mark.parametrize("printer_name", [
        "Microsoft Print to PDF",
        "Microsoft XPS Document Writer",
        "OneNote (Desktop)",
        "Fax",
    ])
    def test_virtual_printer_refused(self, conversion_service, fake_driver, audit_store, printer_name):
        with pytest.raises(UnsupportedVirtualPrinterError) as exc_info:
            conversion_service.print_html(HTML, printer_name)

        message = exc_info.value.message
        assert printer_name in message
        assert "virtual printer" in message
        assert "select a physical printer" in message
        assert fake_driver.printed == []

        # The artifact is still kept
        assert len(audit_store.list_artifacts()) == 1
        dispatch = audit_store.read_log()[-1]
        assert dispatch["event"] == "dispatch"
        assert dispatch["success"] is False

    def test_virtual_printer_is_a_printer_error(self, conversion_service):
        with pytest.raises(PrinterError):
            conversion_service.print_html(HTML, "Microsoft Print to PDF")


class TestFailures:

    def test_dispatch_failure_keeps_artifact(self, fake_renderer, audit_store):
        driver = FakeDriver(error=PrinterError("Printer offline", "Kitchen-1"))
        service = ConversionDispatchService(fake_renderer, driver, audit_store)

        with pytest.raises(PrinterError) as exc_info:
            service.print_html(HTML, "Kitchen-1")

        assert exc_info.value.message == "Printer offline"
        assert len(audit_store.list_artifacts()) == 1
        assert audit_store.read_log()[-1]["success"] is False

    def test_unexpected_driver_error_becomes_printer_error(self, fake_renderer, audit_store):
        driver = FakeDriver(error=OSError("device busy"))
        service = ConversionDispatchService(fake_renderer, driver, audit_store)

        with pytest.raises(PrinterError) as exc_info:
            service.print_html(HTML, "Kitchen-1")
        assert exc_info.value.kind is ErrorKind.PRINTER_ERROR

    def test_dispatch_timeout_propagates(self, fake_renderer, audit_store):
        driver = FakeDriver(error=StageTimeoutError("dispatch", 30))
        service = ConversionDispatchService(fake_renderer, driver, audit_store)

        with pytest.raises(StageTimeoutError):
            service.print_html(HTML, "Kitchen-1")

    def test_renderer_writing_nothing_is_conversion_error(self, fake_driver, audit_store):
        service = ConversionDispatchService(FakeRenderer(write_file=False), fake_driver, audit_store)

        with pytest.raises(ConversionError):
            service.print_html(HTML, "Kitchen-1")
        assert fake_driver.printed == []
        assert audit_store.list_artifacts() == []

    def test_renderer_crash_is_conversion_error(self, fake_driver, audit_store):
        renderer = FakeRenderer(error=RuntimeError("renderer crashed"))
        service = ConversionDispatchService(renderer, fake_driver, audit_store)

        with pytest.raises(ConversionError) as exc_info:
            service.print_html(HTML, "Kitchen-1")
        assert "renderer crashed" in exc_info.value.message
        assert audit_store._reserved == set()

    def test_unreadable_pdf_is_kept_and_logged(self, fake_driver, audit_store):
        class GarbageRenderer(FakeRenderer):
            def render_pdf(self, html, output_path):
                self.calls.append((html, output_path))
                output_path.write_bytes(b"not a pdf at all")

        service = ConversionDispatchService(GarbageRenderer(), fake_driver, audit_store)

        with pytest.raises(ConversionError):
            service.print_html(HTML, "Kitchen-1")

        filenames = audit_store.list_artifacts()
        assert len(filenames) == 1
        entry = audit_store.read_log()[-1]
        assert entry["event"] == "conversion_failed"
        assert entry["filename"] == filenames[0]
        assert entry["sizeBytes"] == len(b"not a pdf at all")
        assert entry["error"]
        assert audit_store._reserved == set()
        assert fake_driver.printed == []

    def test_reservation_released_after_success(self, conversion_service, audit_store):
        conversion_service.print_html(HTML, "Kitchen-1")
        assert audit_store._reserved == set()


class TestReprint:

    def test_reprint_does_not_convert_again(self, conversion_service, fake_renderer, fake_driver):
        receipt = conversion_service.print_html(HTML, "Kitchen-1")
        again = conversion_service.reprint(receipt.filename, "Kitchen-2")

        assert again.filename == receipt.filename
        assert len(fake_renderer.calls) == 1
        assert [name for _, name in fake_driver.printed] == ["Kitchen-1", "Kitchen-2"]

    def test_reprint_unknown_artifact(self, conversion_service):
        with pytest.raises(ConversionError):
            conversion_service.reprint("print_2024-01-01_12-00-00.pdf", "Kitchen-1")


def test_list_printers_delegates_to_driver(conversion_service):
    assert conversion_service.list_printers() == ["Kitchen-1", "Kitchen-2"]
