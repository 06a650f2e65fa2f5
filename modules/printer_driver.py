"""
Physical printer capability.

ConversionDispatchService talks to printers only through the PrinterDriver
protocol. The production driver uses the CUPS command line tools
(``lpstat`` to enumerate, ``lp`` to submit), which exist on Linux and macOS
print hosts. Each call is a short-lived subprocess with a timeout, so a
wedged spooler surfaces as StageTimeoutError instead of hanging the lane.
"""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Protocol, Sequence

from core.exceptions import PrinterEnumerationError, PrinterError, StageTimeoutError
from logging_config import get_logger


logger = get_logger(__name__)


class PrinterDriver(Protocol):
    def list_printers(self) -> List[str]:
        """
        Raises:
            PrinterEnumerationError: If the print subsystem is unreachable
        """
        ...

    def print_file(self, path: Path, printer_name: str) -> None:
        """
        Raises:
            PrinterError: If the printer rejects the job
            StageTimeoutError: If submission exceeds its time budget
        """
        ...


def is_virtual_printer(printer_name: str, keywords: Sequence[str]) -> bool:
    """True if the printer name contains any virtual-printer keyword."""
    name = (printer_name or "").lower()
    return any(keyword.lower() in name for keyword in keywords if keyword)


class CupsPrinterDriver:
    """
    CUPS driver built on ``lpstat -e`` and ``lp -d``.

    Args:
        list_timeout_seconds: Limit for enumerating printers
        dispatch_timeout_seconds: Limit for submitting one job
    """

    def __init__(self, list_timeout_seconds: float = 10.0, dispatch_timeout_seconds: float = 30.0):
        self._list_timeout = list_timeout_seconds
        self._dispatch_timeout = dispatch_timeout_seconds

    def list_printers(self) -> List[str]:
        try:
            completed = subprocess.run(
                ["lpstat", "-e"],
                capture_output=True,
                text=True,
                timeout=self._list_timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise PrinterEnumerationError("Timed out listing printers") from e
        except OSError as e:
            raise PrinterEnumerationError(f"Print subsystem unavailable: {e}") from e

        if completed.returncode != 0:
            # lpstat exits non-zero when no destinations exist
            if "no destinations" in (completed.stderr or "").lower():
                return []
            raise PrinterEnumerationError(
                (completed.stderr or "").strip() or "Unable to list printers"
            )

        return [line.strip() for line in completed.stdout.splitlines() if line.strip()]

    def print_file(self, path: Path, printer_name: str) -> None:
        command = ["lp", "-d", printer_name, "-t", path.name, str(path)]
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self._dispatch_timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise StageTimeoutError("dispatch", self._dispatch_timeout) from e
        except OSError as e:
            raise PrinterError(f"Print subsystem unavailable: {e}", printer_name) from e

        if completed.returncode != 0:
            reason = (completed.stderr or "").strip() or f"lp exited with {completed.returncode}"
            raise PrinterError(reason, printer_name)

        logger.debug(f"lp accepted {path.name} for {printer_name}: {completed.stdout.strip()}")
