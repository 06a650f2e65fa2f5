"""
Core module for the kitchen print system.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy and ErrorKind classification
- print_service_client: HTTP client for the print service

Only the exceptions are re-exported here; models import them, and the
client imports models, so importing the client from this package would
create a cycle.
"""

from .exceptions import (
    ErrorKind,
    KitchenPrintError,
    InvalidTransitionError,
    InvalidScopeError,
    NoPrinterSelectedError,
    PrinterEnumerationError,
    InvalidPrinterError,
    PrintValidationError,
    PipelineError,
    ConversionError,
    PrinterError,
    UnsupportedVirtualPrinterError,
    StageTimeoutError,
)

__all__ = [
    "ErrorKind",
    "KitchenPrintError",
    "InvalidTransitionError",
    "InvalidScopeError",
    "NoPrinterSelectedError",
    "PrinterEnumerationError",
    "InvalidPrinterError",
    "PrintValidationError",
    "PipelineError",
    "ConversionError",
    "PrinterError",
    "UnsupportedVirtualPrinterError",
    "StageTimeoutError",
]
