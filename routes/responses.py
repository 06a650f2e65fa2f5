"""JSON response helpers shared by the blueprints."""

from typing import Any, Dict, Optional, Tuple

from core.exceptions import KitchenPrintError
from core.print_service_client import ERROR_KIND_HEADER


def error_response(
    error: KitchenPrintError,
    status_code: int,
    extra: Optional[Dict[str, Any]] = None
) -> Tuple[Dict[str, Any], int, Dict[str, str]]:
    """
    ``{"error": message}`` with the ErrorKind in a response header.

    The body stays a bare error message so HTTP clients that only read
    ``error`` keep working; the header lets our own client rebuild the
    exception type.
    """
    body: Dict[str, Any] = {"error": error.message}
    if extra:
        body.update(extra)
    return body, status_code, {ERROR_KIND_HEADER: error.kind.value}
