"""
Kitchen board - Flask Application Entry Point.

This is a slim app factory that:
1. Seeds the order store
2. Connects to the print backend (print service over HTTP, or in-process)
3. Loads the printer registry and restores the saved default printer
4. Creates the print orchestrator and subscribes it to READY transitions
5. Registers route blueprints and JSON error handlers

ARCHITECTURE:
    Main Thread
    ├── Store / registry initialization
    ├── Flask request handling
    └── Cleanup on shutdown (waits for the in-flight print job)

    Print Job Thread (at most one at a time)
    └── render -> convert -> dispatch, each stage time-boxed

The print lane is the only shared mutable state between request threads and
the job thread, and it is guarded by the orchestrator's own lock.
"""

from __future__ import annotations

import atexit
import logging
import os
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from flask import Flask

from logging_config import setup_logging, get_logger
from core.print_service_client import PrintServiceClient
from modules.demo_orders import generate_initial_orders
from modules.settings_store import JsonFileSettingsStore, SettingsStore
from services.order_store import OrderStore
from services.printer_registry import PrinterRegistry
from services.render_service import RenderService
from services.print_orchestrator import PrintBackend, PrintOrchestrator
from routes import register_blueprints
from print_server import build_conversion_service


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _build_print_backend(config: Mapping[str, Any]) -> PrintBackend:
    """
    Pick the print backend.

    With PRINT_SERVICE_URL set the board talks to the print service over
    HTTP; otherwise conversion and dispatch run inside this process.
    """
    print_timeout = config["CONVERT_TIMEOUT_SECONDS"] + config["DISPATCH_TIMEOUT_SECONDS"]
    url = config.get("PRINT_SERVICE_URL")
    if url:
        logger.info(f"Using print service at {url}")
        return PrintServiceClient(
            url,
            print_timeout_seconds=print_timeout,
            list_timeout_seconds=config["PRINTER_LIST_TIMEOUT_SECONDS"],
        )
    logger.info("Using in-process conversion and dispatch")
    return build_conversion_service(config)


def create_app(
    config_object: str = "config.Config",
    overrides: Optional[Mapping[str, Any]] = None,
    print_backend: Optional[PrintBackend] = None,
    settings_store: Optional[SettingsStore] = None,
) -> Flask:
    """
    Application factory - creates and configures the kitchen board app.

    Args:
        config_object: Import path of the config class
        overrides: Config values applied after the config class
        print_backend: Object providing list_printers() and print_document();
            built from config when omitted
        settings_store: Persistence for the selected printer; a JSON file
            at SETTINGS_FILE when omitted

    Returns:
        Configured Flask application
    """
    load_dotenv(override=True)

    app = Flask(__name__)
    app.config.from_object(config_object)
    if overrides:
        app.config.update(overrides)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        "board",
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting kitchen board in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    seed = generate_initial_orders() if app.config.get("SEED_DEMO_ORDERS") else []
    order_store = OrderStore(seed)
    logger.info(f"Order store ready with {len(seed)} orders")

    backend = print_backend or _build_print_backend(app.config)

    settings = settings_store or JsonFileSettingsStore(app.config["SETTINGS_FILE"])
    printer_registry = PrinterRegistry(source=backend, settings=settings)
    selected = printer_registry.load()
    logger.info(f"Default printer: {selected or 'none'}")

    render_service = RenderService(order_store)

    orchestrator = PrintOrchestrator(
        store=order_store,
        render_service=render_service,
        backend=backend,
        selected_printer=printer_registry.get_selected,
        render_timeout_seconds=app.config["RENDER_TIMEOUT_SECONDS"],
        print_timeout_seconds=(
            app.config["CONVERT_TIMEOUT_SECONDS"] + app.config["DISPATCH_TIMEOUT_SECONDS"]
        ),
    )
    orchestrator.attach(order_store)

    # Store in app config for access by routes
    app.config["ORDER_STORE"] = order_store
    app.config["PRINTER_REGISTRY"] = printer_registry
    app.config["RENDER_SERVICE"] = render_service
    app.config["PRINT_ORCHESTRATOR"] = orchestrator

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")
        orchestrator.shutdown()
        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(404)
    def handle_not_found(e):
        return {"error": "Not found"}, 404

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return {"error": "An unexpected error occurred. Please try again."}, 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    # Reloader would start a second orchestrator in the child process
    app.run(debug=debug_mode, use_reloader=False)
