"""
Document and artifact models.

A Document is the rendered, print-ready HTML snapshot of one order or of the
whole board. An Artifact is the PDF the print service produced from it and
kept in the prints folder for audit.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Any

from .print_job import PrintScope


@dataclass(frozen=True)
class Document:
    """Rendered ticket HTML plus the facts it was rendered from."""

    title: str
    html: str
    printed_at: datetime
    scope: PrintScope
    order_count: int


@dataclass(frozen=True)
class Artifact:
    """A converted PDF recorded in the audit store."""

    filename: str
    """print_<YYYY-MM-DD>_<HH-MM-SS>.pdf"""

    path: Path
    created_at: datetime
    size_bytes: int = 0
    page_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "path": str(self.path),
            "createdAt": self.created_at.isoformat(),
            "sizeBytes": self.size_bytes,
            "pageCount": self.page_count,
        }


@dataclass(frozen=True)
class PrintReceipt:
    """Successful convert + dispatch, as reported by the print service."""

    filename: str
    message: str = "Printed successfully"
