"""
Data models for the kitchen print system.

This module contains immutable dataclasses for:
- Order / OrderItem / OrderStatus: kitchen tickets and their status machine
- PrintScope / PrintJob / PrintOutcome: one pass of the print pipeline
- Document / Artifact / PrintReceipt: rendered and converted output

All dataclasses are frozen so they can be handed between the request
threads and print job threads without copying.
"""

from .order import Order, OrderItem, OrderStatus
from .print_job import (
    JobStage,
    PrintJob,
    PrintOutcome,
    PrintRequestResult,
    PrintScope,
    ScopeKind,
)
from .document import Artifact, Document, PrintReceipt

__all__ = [
    # Order models
    "Order",
    "OrderItem",
    "OrderStatus",
    # Print job models
    "JobStage",
    "PrintJob",
    "PrintOutcome",
    "PrintRequestResult",
    "PrintScope",
    "ScopeKind",
    # Output models
    "Artifact",
    "Document",
    "PrintReceipt",
]
