"""
Configuration for the kitchen print system.

Both Flask processes read their settings from this module. Values come from
the environment (a ``.env`` file is honoured) so the same build can point at
a local print service during development and a shared one on the pass.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env before the Config class body reads os.environ
load_dotenv(override=True)

BASE_DIR = Path(__file__).resolve().parent


def _env_list(name: str, default: str) -> tuple:
    raw = os.environ.get(name, default)
    return tuple(part.strip() for part in raw.split(",") if part.strip())


class Config:
    """Default configuration shared by the board app and the print service."""

    # Flask settings
    SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    ENVIRONMENT = os.environ.get("FLASK_ENV", "development")
    DEBUG = os.environ.get("FLASK_DEBUG", "1") == "1"
    TESTING = False

    # Kitchen board
    SEED_DEMO_ORDERS = os.environ.get("SEED_DEMO_ORDERS", "1") == "1"
    SETTINGS_FILE = os.environ.get(
        "SETTINGS_FILE", str(BASE_DIR / "instance" / "settings.json")
    )

    # Where the board app finds the print service. Empty means the board
    # drives an in-process ConversionDispatchService instead of HTTP.
    PRINT_SERVICE_URL = os.environ.get("PRINT_SERVICE_URL", "http://localhost:3001")

    # Print service
    PRINT_SERVICE_PORT = int(os.environ.get("PRINT_SERVICE_PORT", "3001"))
    PRINTS_FOLDER = os.environ.get("PRINTS_FOLDER", str(BASE_DIR / "prints"))
    CHROMIUM_EXECUTABLE = os.environ.get("CHROMIUM_EXECUTABLE", "")

    # Printer names containing any of these (case-insensitive) are treated as
    # software printers that cannot take unattended jobs.
    VIRTUAL_PRINTER_KEYWORDS = _env_list(
        "VIRTUAL_PRINTER_KEYWORDS",
        "pdf,xps,onenote,fax,print to,send to"
    )

    # ==========================================================================
    # Pipeline stage timeouts (seconds)
    # ==========================================================================
    # Each stage of a print job is bounded so a hung renderer or printer
    # cannot hold the print lane forever. The board app waits for
    # CONVERT + DISPATCH on its HTTP call to the print service.
    # ==========================================================================
    RENDER_TIMEOUT_SECONDS = float(os.environ.get("RENDER_TIMEOUT_SECONDS", "10"))
    CONVERT_TIMEOUT_SECONDS = float(os.environ.get("CONVERT_TIMEOUT_SECONDS", "60"))
    DISPATCH_TIMEOUT_SECONDS = float(os.environ.get("DISPATCH_TIMEOUT_SECONDS", "30"))
    PRINTER_LIST_TIMEOUT_SECONDS = float(
        os.environ.get("PRINTER_LIST_TIMEOUT_SECONDS", "10")
    )


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False


class TestingConfig(Config):
    """Testing configuration."""
    DEBUG = False
    TESTING = True
    SEED_DEMO_ORDERS = True
    PRINT_SERVICE_URL = ""
