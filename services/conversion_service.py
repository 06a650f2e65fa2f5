"""
Conversion and dispatch service.

Turns a rendered ticket into a PDF artifact and sends it to a printer. This
is the service behind the print server's HTTP routes, and it can also back
the PrintOrchestrator directly when the board runs without a separate
print server.

Order of operations for one print:
    1. Validate the request (before any renderer is launched)
    2. Reserve a timestamped name in the AuditStore
    3. Render HTML -> PDF with a fresh renderer resource
    4. Check the PDF is paginated (pypdf) and record it in the audit log
       (a file that fails the check is kept and logged as a failed conversion)
    5. Dispatch to the printer (virtual printers are refused up front)

Because the artifact is recorded before step 5, a failed dispatch still
leaves the PDF of what would have been printed. Re-dispatching an existing
artifact to another printer never converts again.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from core.exceptions import (
    ConversionError,
    KitchenPrintError,
    PrintValidationError,
    PrinterError,
    UnsupportedVirtualPrinterError,
)
from models.document import Artifact, Document, PrintReceipt
from modules.pdf_renderer import RenderAndConvert, count_pdf_pages
from modules.printer_driver import PrinterDriver, is_virtual_printer
from services.audit_store import AuditStore
from logging_config import get_logger


logger = get_logger(__name__)

StageCallback = Callable[[str], None]


class ConversionDispatchService:
    """
    Converts documents to PDF artifacts and dispatches them to printers.

    Args:
        renderer: HTML -> PDF capability (one conversion per call)
        driver: Printer capability
        audit_store: Where artifacts are kept
        virtual_printer_keywords: Name fragments identifying software printers
    """

    def __init__(
        self,
        renderer: RenderAndConvert,
        driver: PrinterDriver,
        audit_store: AuditStore,
        virtual_printer_keywords: Sequence[str] = (),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._renderer = renderer
        self._driver = driver
        self._audit = audit_store
        self._virtual_keywords = tuple(virtual_printer_keywords)
        self._clock = clock

    @property
    def audit_store(self) -> AuditStore:
        return self._audit

    def list_printers(self) -> List[str]:
        """
        Raises:
            PrinterEnumerationError: If the print subsystem is unreachable
        """
        return self._driver.list_printers()

    def convert(self, document: Document) -> Artifact:
        """Convert a rendered document (see convert_html)."""
        return self.convert_html(document.html)

    def convert_html(self, html: str) -> Artifact:
        """
        Render HTML to a PDF artifact and record it.

        Raises:
            PrintValidationError: If ``html`` is empty
            ConversionError: If rendering fails or yields no pages
            StageTimeoutError: If rendering exceeds its time budget
        """
        if not html:
            raise PrintValidationError("No HTML content provided")

        filename, path, created_at = self._audit.allocate(self._clock() if self._clock else None)
        logger.info(f"Generating PDF at: {path}")

        try:
            try:
                self._renderer.render_pdf(html, path)
                page_count = count_pdf_pages(path)
            except KitchenPrintError as e:
                self._record_failure(filename, path, created_at, e.message)
                raise
            except Exception as e:
                self._record_failure(filename, path, created_at, str(e))
                raise ConversionError(f"PDF conversion failed: {e}") from e

            artifact = Artifact(
                filename=filename,
                path=path,
                created_at=created_at,
                size_bytes=path.stat().st_size,
                page_count=page_count,
            )
            return self._audit.record(artifact)
        finally:
            self._audit.release(filename)

    def _record_failure(self, filename: str, path: Path, created_at: datetime, message: str) -> None:
        # A file left by a failed conversion stays on disk and is logged
        if path.exists():
            self._audit.record_failed_conversion(filename, path, created_at, message)

    def dispatch(self, artifact: Artifact, printer_name: str) -> None:
        """
        Send an existing artifact to a printer.

        Raises:
            PrintValidationError: If ``printer_name`` is empty
            UnsupportedVirtualPrinterError: For software (PDF/XPS/...) printers
            PrinterError: If the printer rejects the job
            StageTimeoutError: If submission exceeds its time budget
        """
        if not printer_name:
            raise PrintValidationError("No printer name provided")

        if is_virtual_printer(printer_name, self._virtual_keywords):
            error = UnsupportedVirtualPrinterError(printer_name)
            self._audit.record_dispatch(artifact.filename, printer_name, False, error.message)
            logger.warning(f"Refusing virtual printer '{printer_name}' for {artifact.filename}")
            raise error

        logger.info(f"Sending {artifact.filename} to printer: {printer_name}")
        try:
            self._driver.print_file(Path(artifact.path), printer_name)
        except KitchenPrintError as e:
            self._audit.record_dispatch(artifact.filename, printer_name, False, e.message)
            raise
        except Exception as e:
            self._audit.record_dispatch(artifact.filename, printer_name, False, str(e))
            raise PrinterError(str(e), printer_name) from e

        self._audit.record_dispatch(artifact.filename, printer_name, True, "Printed successfully")
        logger.info(f"Sent to printer: {printer_name}")

    def print_html(
        self,
        html: str,
        printer_name: str,
        on_stage: Optional[StageCallback] = None
    ) -> PrintReceipt:
        """
        Convert then dispatch.

        Both inputs are validated before the renderer is launched.
        ``on_stage`` is called with "converting" and "dispatching".
        """
        if not html:
            raise PrintValidationError("No HTML content provided")
        if not printer_name:
            raise PrintValidationError("No printer name provided")

        if on_stage:
            on_stage("converting")
        artifact = self.convert_html(html)

        if on_stage:
            on_stage("dispatching")
        self.dispatch(artifact, printer_name)

        return PrintReceipt(filename=artifact.filename)

    def print_document(
        self,
        document: Document,
        printer_name: str,
        on_stage: Optional[StageCallback] = None
    ) -> PrintReceipt:
        """PrintBackend entry point used by PrintOrchestrator."""
        return self.print_html(document.html, printer_name, on_stage)

    def reprint(self, filename: str, printer_name: str) -> PrintReceipt:
        """
        Dispatch an already-stored artifact again (no conversion).

        Raises:
            ConversionError: If the artifact is not in the audit store
        """
        path = self._audit.resolve(filename)
        if path is None:
            raise ConversionError(f"Artifact {filename} not found")
        artifact = Artifact(
            filename=filename,
            path=path,
            created_at=datetime.fromtimestamp(path.stat().st_mtime).astimezone(),
            size_bytes=path.stat().st_size,
        )
        self.dispatch(artifact, printer_name)
        return PrintReceipt(filename=filename)
