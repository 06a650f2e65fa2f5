"""Helper modules for the kitchen print system."""

__all__ = [
    "demo_orders",
    "pdf_renderer",
    "printer_driver",
    "settings_store",
]
