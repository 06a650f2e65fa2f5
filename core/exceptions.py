"""
Custom exceptions for the kitchen print system.

Exception Hierarchy:
    KitchenPrintError (base)
    ├── InvalidTransitionError     - order status rule violated
    ├── InvalidScopeError          - print/snapshot scope names an unknown order
    ├── NoPrinterSelectedError     - print requested with no printer chosen
    ├── PrinterEnumerationError    - print subsystem unreachable
    ├── InvalidPrinterError        - selected name not in the printer list
    ├── PrintValidationError       - malformed print request (missing html/printer)
    └── PipelineError              - a print job stage failed
        ├── ConversionError        - HTML -> PDF conversion failed
        ├── PrinterError           - printer dispatch failed
        │   └── UnsupportedVirtualPrinterError - software printer, no silent printing
        └── StageTimeoutError      - a stage exceeded its time budget

Every exception carries an ErrorKind so failures can be reported (and sent
over HTTP) without string matching. A busy print lane is NOT an exception:
PrintOrchestrator.request() returns a rejected result instead.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorKind(Enum):
    """Classification of every failure the system reports."""

    INVALID_TRANSITION = "invalid_transition"
    NO_PRINTER_SELECTED = "no_printer_selected"
    BUSY = "busy"
    INVALID_SCOPE = "invalid_scope"
    PRINTER_ENUMERATION_ERROR = "printer_enumeration_error"
    INVALID_PRINTER = "invalid_printer"
    VALIDATION_ERROR = "validation_error"
    CONVERSION_ERROR = "conversion_error"
    PRINTER_ERROR = "printer_error"
    UNSUPPORTED_VIRTUAL_PRINTER = "unsupported_virtual_printer"
    STAGE_TIMEOUT = "stage_timeout"


class KitchenPrintError(Exception):
    """
    Base exception for all kitchen print errors.

    Attributes:
        message: Human-readable error message (safe to show an operator)
        details: Extra context for logs
        kind: ErrorKind classification
    """

    kind: ErrorKind = ErrorKind.PRINTER_ERROR

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# ORDER ERRORS
# =============================================================================

class InvalidTransitionError(KitchenPrintError):
    """
    Requested status is not exactly one step past the current status.

    Raised for skips, regressions and no-ops alike. The order is unchanged.
    """

    kind = ErrorKind.INVALID_TRANSITION

    def __init__(self, order_id: str, current: str, requested: str):
        message = f"Order {order_id} cannot move from '{current}' to '{requested}'"
        super().__init__(message, {
            "order_id": order_id,
            "current": current,
            "requested": requested,
        })
        self.order_id = order_id
        self.current = current
        self.requested = requested


class InvalidScopeError(KitchenPrintError):
    """Scope (or order lookup) names an order id that is not in the store."""

    kind = ErrorKind.INVALID_SCOPE

    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found", {"order_id": order_id})
        self.order_id = order_id


# =============================================================================
# PRINTER SELECTION ERRORS
# =============================================================================

class NoPrinterSelectedError(KitchenPrintError):
    """A print was requested but no printer is selected."""

    kind = ErrorKind.NO_PRINTER_SELECTED

    def __init__(self, message: str = "No printer selected. Choose a printer before printing."):
        super().__init__(message)


class PrinterEnumerationError(KitchenPrintError):
    """
    The print subsystem could not list printers.

    Callers degrade to "no printers available"; this is never fatal.
    """

    kind = ErrorKind.PRINTER_ENUMERATION_ERROR

    def __init__(self, message: str = "Unable to list printers"):
        super().__init__(message, {
            "resolution": "Check that the print service is running and reachable"
        })


class InvalidPrinterError(KitchenPrintError):
    """Selected printer name is not among the last-known printers."""

    kind = ErrorKind.INVALID_PRINTER

    def __init__(self, printer_name: str):
        super().__init__(f"Printer '{printer_name}' is not available", {
            "printer_name": printer_name,
        })
        self.printer_name = printer_name


class PrintValidationError(KitchenPrintError):
    """A print request is missing required content."""

    kind = ErrorKind.VALIDATION_ERROR


# =============================================================================
# PIPELINE ERRORS - terminal for the job, never for the process
# =============================================================================

class PipelineError(KitchenPrintError):
    """Base class for failures inside a print job."""


class ConversionError(PipelineError):
    """Rendering the document to a print-ready PDF failed."""

    kind = ErrorKind.CONVERSION_ERROR


class PrinterError(PipelineError):
    """Sending the artifact to the printer failed."""

    kind = ErrorKind.PRINTER_ERROR

    def __init__(
        self,
        message: str,
        printer_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        if printer_name:
            error_details["printer_name"] = printer_name
        super().__init__(message, error_details)
        self.printer_name = printer_name


class UnsupportedVirtualPrinterError(PrinterError):
    """
    The selected printer is a software printer (e.g. "Microsoft Print to PDF").

    Such printers open a save dialog instead of printing, so they cannot take
    unattended jobs. The message tells the operator what to do instead.
    """

    kind = ErrorKind.UNSUPPORTED_VIRTUAL_PRINTER

    def __init__(self, printer_name: str):
        super().__init__(
            guidance_for_virtual_printer(printer_name),
            printer_name,
            {"resolution": "Select a physical receipt printer"},
        )


class StageTimeoutError(PipelineError):
    """A pipeline stage did not finish within its time budget."""

    kind = ErrorKind.STAGE_TIMEOUT

    def __init__(self, stage: str, timeout_seconds: Optional[float] = None, message: Optional[str] = None):
        if message is None:
            message = f"Print {stage} timed out after {timeout_seconds or 0:.1f}s"
        super().__init__(message, {"stage": stage, "timeout_seconds": timeout_seconds})
        self.stage = stage
        self.timeout_seconds = timeout_seconds


def guidance_for_virtual_printer(printer_name: str) -> str:
    """Operator-facing text for the virtual printer case."""
    return (
        f"'{printer_name}' is a virtual printer and cannot print silently. "
        "Please select a physical printer. The PDF has been saved in the prints folder."
    )


_ERRORS_BY_KIND = {
    ErrorKind.CONVERSION_ERROR: ConversionError,
    ErrorKind.VALIDATION_ERROR: PrintValidationError,
}


def error_from_kind(kind_value: Optional[str], message: str, printer_name: str = "") -> KitchenPrintError:
    """
    Rebuild a pipeline exception from an ErrorKind value and message.

    Used by the print service client to turn an HTTP error response back
    into the same exception the service raised. Unknown kinds become a
    plain PrinterError.
    """
    try:
        kind = ErrorKind(kind_value) if kind_value else ErrorKind.PRINTER_ERROR
    except ValueError:
        kind = ErrorKind.PRINTER_ERROR

    if kind is ErrorKind.UNSUPPORTED_VIRTUAL_PRINTER:
        return UnsupportedVirtualPrinterError(printer_name)
    if kind is ErrorKind.PRINTER_ENUMERATION_ERROR:
        return PrinterEnumerationError(message)
    if kind is ErrorKind.STAGE_TIMEOUT:
        return StageTimeoutError("conversion/dispatch", message=message)
    error_cls = _ERRORS_BY_KIND.get(kind)
    if error_cls is not None:
        return error_cls(message)
    return PrinterError(message, printer_name or None)
