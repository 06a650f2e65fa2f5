"""
Print service routes.

Handles:
- GET  /                   - liveness text
- GET  /printers           - printers known to the print subsystem
- POST /print              - convert HTML to PDF and send it to a printer
- GET  /prints/<filename>  - download a stored artifact
- GET  /health             - health check

Every failure of /print answers 500 with ``{"error": message}``. For
virtual printers the message is the operator guidance text, not the driver
output.
"""

from flask import Blueprint, current_app, request, send_file

from core.exceptions import KitchenPrintError
from routes.responses import error_response
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

print_service_bp = Blueprint("print_service", __name__)


def _service():
    return current_app.config["CONVERSION_SERVICE"]


@print_service_bp.route("/", methods=["GET"])
def index():
    return "Print service is running"


@print_service_bp.route("/printers", methods=["GET"])
def printers():
    """List printer names."""
    try:
        names = _service().list_printers()
    except KitchenPrintError as e:
        logger.error(f"Printer enumeration failed: {e.message}")
        return error_response(e, 500)
    except Exception as e:
        logger.error(f"Printer enumeration failed: {e}", exc_info=True)
        return {"error": str(e)}, 500
    return {"printers": names}


@print_service_bp.route("/print", methods=["POST"])
def print_html():
    """
    Convert and print.

    Body: {"html": str, "printerName": str}
    """
    payload = request.get_json(silent=True) or {}
    html = payload.get("html")
    printer_name = payload.get("printerName")

    logger.info(f"[PRINT REQUEST] Printer: {printer_name}")
    logger.info(f"[PRINT REQUEST] HTML content length: {len(html) if html else 0}")

    try:
        receipt = _service().print_html(html, printer_name)
    except KitchenPrintError as e:
        logger.error(f"[PRINT ERROR] [{e.kind.value}] {e.message}")
        return error_response(e, 500)
    except Exception as e:
        logger.error(f"[PRINT ERROR] {e}", exc_info=True)
        return {"error": str(e)}, 500

    logger.info(f"[PRINT SUCCESS] Sent to printer: {printer_name}")
    return {"success": True, "message": receipt.message, "filename": receipt.filename}


@print_service_bp.route("/prints/<path:filename>", methods=["GET"])
def get_print(filename: str):
    """Stream a stored PDF."""
    path = _service().audit_store.resolve(filename)
    if path is None:
        return {"error": "Not found"}, 404
    return send_file(path, mimetype="application/pdf", download_name=filename)


@print_service_bp.route("/health", methods=["GET"])
def health():
    audit_store = _service().audit_store
    return {
        "status": "ok",
        "environment": current_app.config.get("ENVIRONMENT", "unknown"),
        "checks": {
            "prints_folder": str(audit_store.directory),
            "artifacts": len(audit_store.list_artifacts()),
        },
    }
