"""
Print service - Flask Application Entry Point.

The print service owns the hardware side of printing: it converts ticket
HTML to PDF with a headless renderer, keeps every PDF in the prints folder,
and sends it to a printer. The kitchen board reaches it over HTTP
(PRINT_SERVICE_URL) so the board never needs the renderer or printer
drivers installed.

ARCHITECTURE:
    Flask request thread (one per /print call)
    ├── Validation (before any renderer is launched)
    ├── Headless renderer process (own profile dir per conversion)
    ├── AuditStore (artifact recorded before dispatch)
    └── Printer driver subprocess (time-boxed)
"""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from flask import Flask

from logging_config import setup_logging, get_logger
from modules.pdf_renderer import ChromiumPdfRenderer, RenderAndConvert
from modules.printer_driver import CupsPrinterDriver, PrinterDriver
from services.audit_store import AuditStore
from services.conversion_service import ConversionDispatchService
from routes import register_print_service_blueprints


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def build_conversion_service(
    config: Mapping[str, Any],
    renderer: Optional[RenderAndConvert] = None,
    driver: Optional[PrinterDriver] = None,
) -> ConversionDispatchService:
    """
    Wire a ConversionDispatchService from configuration.

    Args:
        config: Flask config (or any mapping with the Config keys)
        renderer: Override the headless renderer (tests)
        driver: Override the printer driver (tests)
    """
    audit_store = AuditStore(config["PRINTS_FOLDER"])
    renderer = renderer or ChromiumPdfRenderer(
        executable=config.get("CHROMIUM_EXECUTABLE", ""),
        timeout_seconds=config["CONVERT_TIMEOUT_SECONDS"],
    )
    driver = driver or CupsPrinterDriver(
        list_timeout_seconds=config["PRINTER_LIST_TIMEOUT_SECONDS"],
        dispatch_timeout_seconds=config["DISPATCH_TIMEOUT_SECONDS"],
    )
    return ConversionDispatchService(
        renderer=renderer,
        driver=driver,
        audit_store=audit_store,
        virtual_printer_keywords=config.get("VIRTUAL_PRINTER_KEYWORDS", ()),
    )


def create_print_service_app(
    config_object: str = "config.Config",
    overrides: Optional[Mapping[str, Any]] = None,
    renderer: Optional[RenderAndConvert] = None,
    driver: Optional[PrinterDriver] = None,
) -> Flask:
    """
    Application factory for the print service.

    Args:
        config_object: Import path of the config class
        overrides: Config values applied after the config class (tests)
        renderer: Headless renderer override (tests)
        driver: Printer driver override (tests)
    """
    load_dotenv(override=True)

    app = Flask(__name__)
    app.config.from_object(config_object)
    if overrides:
        app.config.update(overrides)

    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    root_logger = setup_logging(
        "print_service",
        log_level=log_level,
        enable_file_logging=app.config.get("ENVIRONMENT") == "production",
    )
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    service = build_conversion_service(app.config, renderer, driver)
    app.config["CONVERSION_SERVICE"] = service
    logger.info(f"Prints folder: {service.audit_store.directory}")

    register_print_service_blueprints(app)

    @app.errorhandler(404)
    def handle_not_found(e):
        return {"error": "Not found"}, 404

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return {"error": "Internal server error"}, 500

    logger.info("Print service initialized")
    return app


if __name__ == "__main__":
    app = create_print_service_app()
    port = app.config.get("PRINT_SERVICE_PORT", 3001)
    logger.info(f"Print service running on port {port}")
    app.run(port=port, debug=os.environ.get("FLASK_DEBUG", "1") == "1", use_reloader=False)
