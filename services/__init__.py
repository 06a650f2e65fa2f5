"""
Services layer for the kitchen print system.

This module contains the business logic services:
- OrderStore: orders and their status state machine
- PrinterRegistry: available printers and the persisted selection
- RenderService: order snapshot -> ticket HTML Document
- PrintOrchestrator: single-flight print lane and job pipeline
- ConversionDispatchService: HTML -> PDF artifact -> printer
- AuditStore: append-only record of printed artifacts

Thread Model:
    Flask request threads
    ├── OrderStore.advance (synchronous, lock-guarded)
    └── PrintOrchestrator.request (returns immediately)
    Print job thread (at most one at a time)
    └── render -> convert -> dispatch, each stage time-boxed
"""

from .order_store import OrderStore, OrderReadyEvent
from .printer_registry import PrinterRegistry, PrinterSelection
from .render_service import RenderService
from .print_orchestrator import PrintOrchestrator, LaneState
from .conversion_service import ConversionDispatchService
from .audit_store import AuditStore

__all__ = [
    "OrderStore",
    "OrderReadyEvent",
    "PrinterRegistry",
    "PrinterSelection",
    "RenderService",
    "PrintOrchestrator",
    "LaneState",
    "ConversionDispatchService",
    "AuditStore",
]
