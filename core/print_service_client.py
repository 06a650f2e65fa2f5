"""
HTTP client for the print service.

The board app uses this client to reach the print server (``print_server.py``)
that owns the renderer and the printers. It exposes the same two calls as
the in-process ConversionDispatchService, so PrintOrchestrator and
PrinterRegistry work with either:

    client.list_printers()                      -> ["Kitchen-TM-T20", ...]
    client.print_document(document, "Kitchen")  -> PrintReceipt

Errors come back as the same exception types the service raised: the
server sends the ErrorKind in the ``X-Print-Error-Kind`` header and the
client rebuilds the exception from it.

Timeouts:
    Every call uses an explicit (connect, read) timeout. The read timeout of
    a print is the conversion plus dispatch budget, so a hung printer on the
    far side surfaces here as StageTimeoutError.
"""

from __future__ import annotations

from typing import Callable, List, Optional

import requests

from .exceptions import (
    ErrorKind,
    PrinterEnumerationError,
    PrinterError,
    StageTimeoutError,
    error_from_kind,
)
from models.document import Document, PrintReceipt
from logging_config import get_logger


logger = get_logger(__name__)

ERROR_KIND_HEADER = "X-Print-Error-Kind"
CONNECT_TIMEOUT_SECONDS = 5.0


class PrintServiceClient:
    """
    Client for the print service HTTP API.

    Args:
        base_url: e.g. "http://localhost:3001"
        print_timeout_seconds: Read timeout for POST /print
        list_timeout_seconds: Read timeout for GET /printers
        session: Optional requests.Session (tests inject a mock)
    """

    def __init__(
        self,
        base_url: str,
        print_timeout_seconds: float = 90.0,
        list_timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        if not base_url:
            raise ValueError("base_url is required")
        self._base_url = base_url.rstrip("/")
        self._print_timeout = print_timeout_seconds
        self._list_timeout = list_timeout_seconds
        self._session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return self._base_url

    def list_printers(self) -> List[str]:
        """
        GET /printers

        Raises:
            PrinterEnumerationError: If the service is unreachable or fails
        """
        url = f"{self._base_url}/printers"
        try:
            response = self._session.get(url, timeout=(CONNECT_TIMEOUT_SECONDS, self._list_timeout))
        except requests.RequestException as e:
            logger.error(f"Print service request failed: GET {url} - {e}")
            raise PrinterEnumerationError(f"Print service unreachable: {e}") from e

        payload = _json_or_empty(response)
        if response.status_code != 200:
            raise PrinterEnumerationError(payload.get("error") or f"HTTP {response.status_code}")

        printers = payload.get("printers", [])
        return [str(name) for name in printers]

    def print_document(
        self,
        document: Document,
        printer_name: str,
        on_stage: Optional[Callable[[str], None]] = None
    ) -> PrintReceipt:
        """
        POST /print

        Raises:
            PipelineError subclasses (ConversionError, PrinterError,
            UnsupportedVirtualPrinterError, StageTimeoutError) and
            PrintValidationError, mirroring the service
        """
        url = f"{self._base_url}/print"
        if on_stage:
            # Conversion and dispatch happen on the far side of one call
            on_stage("converting")

        try:
            response = self._session.post(
                url,
                json={"html": document.html, "printerName": printer_name},
                timeout=(CONNECT_TIMEOUT_SECONDS, self._print_timeout),
            )
        except requests.Timeout as e:
            raise StageTimeoutError("conversion/dispatch", self._print_timeout) from e
        except requests.RequestException as e:
            logger.error(f"Print service request failed: POST {url} - {e}")
            raise PrinterError(f"Print service unreachable: {e}", printer_name) from e

        payload = _json_or_empty(response)
        if response.status_code == 200 and payload.get("success"):
            return PrintReceipt(
                filename=payload.get("filename", ""),
                message=payload.get("message", "Printed successfully"),
            )

        kind = response.headers.get(ERROR_KIND_HEADER)
        message = payload.get("error") or f"HTTP {response.status_code}"
        logger.warning(f"Print service rejected job: [{kind or ErrorKind.PRINTER_ERROR.value}] {message}")
        raise error_from_kind(kind, message, printer_name)


def _json_or_empty(response) -> dict:
    try:
        payload = response.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}
