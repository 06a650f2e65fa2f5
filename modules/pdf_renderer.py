"""
HTML -> PDF conversion capability.

ConversionDispatchService only depends on the RenderAndConvert protocol.
The production implementation drives a headless Chromium process, one
process with its own throwaway profile directory per conversion, so
concurrent conversions never share renderer state. Tests use a fake that
writes a canned PDF.

The resulting PDF is checked with pypdf: a file that does not parse or has
no pages is a failed conversion, not something to send to a printer.
"""

from __future__ import annotations

import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Protocol

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from core.exceptions import ConversionError, StageTimeoutError
from logging_config import get_logger


logger = get_logger(__name__)

CHROMIUM_CANDIDATES = (
    "chromium",
    "chromium-browser",
    "google-chrome",
    "google-chrome-stable",
    "chrome",
    "msedge",
)


class RenderAndConvert(Protocol):
    def render_pdf(self, html: str, output_path: Path) -> None:
        """
        Write ``html`` as a paginated PDF to ``output_path``.

        Raises:
            ConversionError: If rendering fails
            StageTimeoutError: If rendering exceeds its time budget
        """
        ...


def count_pdf_pages(path: Path) -> int:
    """
    Number of pages in a PDF.

    Raises:
        ConversionError: If the file is missing, unreadable or empty
    """
    if not path.exists() or path.stat().st_size == 0:
        raise ConversionError(f"Renderer produced no PDF at {path.name}")
    try:
        pages = len(PdfReader(str(path)).pages)
    except (PdfReadError, OSError, ValueError) as e:
        raise ConversionError(f"Renderer produced an unreadable PDF: {e}") from e
    if pages == 0:
        raise ConversionError("Renderer produced a PDF with no pages")
    return pages


class ChromiumPdfRenderer:
    """
    Headless Chromium renderer.

    Args:
        executable: Chromium/Chrome binary (searched on PATH when empty)
        timeout_seconds: Hard limit for one conversion
    """

    def __init__(self, executable: str = "", timeout_seconds: float = 60.0):
        self._executable = executable
        self._timeout = timeout_seconds

    def _find_executable(self) -> str:
        if self._executable:
            return self._executable
        for candidate in CHROMIUM_CANDIDATES:
            found = shutil.which(candidate)
            if found:
                return found
        raise ConversionError(
            "No headless Chromium found. Install Chromium or set CHROMIUM_EXECUTABLE."
        )

    def render_pdf(self, html: str, output_path: Path) -> None:
        executable = self._find_executable()

        with tempfile.TemporaryDirectory(prefix="kitchen-print-") as work_dir:
            work = Path(work_dir)
            source = work / "ticket.html"
            source.write_text(html, encoding="utf-8")

            command = [
                executable,
                "--headless=new",
                "--disable-gpu",
                "--no-sandbox",
                "--no-pdf-header-footer",
                f"--user-data-dir={work / 'profile'}",
                f"--print-to-pdf={output_path}",
                source.as_uri(),
            ]
            logger.debug(f"Launching renderer: {executable}")

            try:
                completed = subprocess.run(
                    command,
                    capture_output=True,
                    text=True,
                    timeout=self._timeout,
                )
            except subprocess.TimeoutExpired as e:
                raise StageTimeoutError("conversion", self._timeout) from e
            except OSError as e:
                raise ConversionError(f"Failed to launch renderer: {e}") from e

        if completed.returncode != 0:
            stderr = (completed.stderr or "").strip().splitlines()
            reason = stderr[-1] if stderr else f"exit code {completed.returncode}"
            raise ConversionError(f"Renderer failed: {reason}")

        logger.debug(f"Renderer wrote {output_path.name}")

