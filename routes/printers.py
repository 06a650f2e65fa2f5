"""
Printer selection routes (kitchen board API).

Handles:
- GET  /api/printers            - last-known printers and the selection
- POST /api/printers/refresh    - re-query the print subsystem
- PUT  /api/printers/selected   - choose the default printer
"""

from flask import Blueprint, current_app, request

from core.exceptions import InvalidPrinterError, PrinterEnumerationError
from routes.responses import error_response
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

printers_bp = Blueprint("printers", __name__, url_prefix="/api/printers")


def _registry():
    return current_app.config["PRINTER_REGISTRY"]


@printers_bp.route("", methods=["GET"])
def get_printers():
    return _registry().selection().to_dict()


@printers_bp.route("/refresh", methods=["POST"])
def refresh_printers():
    """Unlike load-time refresh, an explicit refresh reports enumeration errors."""
    registry = _registry()
    try:
        registry.list()
    except PrinterEnumerationError as e:
        logger.warning(f"Printer refresh failed: {e.message}")
        return error_response(e, 503, registry.selection().to_dict())
    return registry.selection().to_dict()


@printers_bp.route("/selected", methods=["PUT"])
def select_printer():
    """Body: {"name": "<printer name>"}"""
    payload = request.get_json(silent=True) or {}
    name = (payload.get("name") or "").strip()
    if not name:
        return {"error": "No printer name provided"}, 400

    registry = _registry()
    try:
        registry.set_selected(name)
    except InvalidPrinterError as e:
        return error_response(e, 400)
    return registry.selection().to_dict()
