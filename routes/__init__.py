"""
Flask route blueprints.

Kitchen board app:
- orders: order listing, status advance, manual print triggers
- printers: printer list and default printer selection
- api: print lane status polling and health check

Print service app:
- print_service: /printers, /print, /prints/<filename>
"""

from .orders import orders_bp
from .printers import printers_bp
from .api import api_bp
from .print_service import print_service_bp

__all__ = [
    "orders_bp",
    "printers_bp",
    "api_bp",
    "print_service_bp",
]


def register_blueprints(app):
    """
    Register the kitchen board blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(orders_bp)
    app.register_blueprint(printers_bp)
    app.register_blueprint(api_bp)


def register_print_service_blueprints(app):
    """Register the print service blueprint with the Flask app."""
    app.register_blueprint(print_service_bp)
