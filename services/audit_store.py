"""
Append-only audit store for printed artifacts.

Every PDF the print service produces is kept in the prints folder under a
timestamped name and never deleted or overwritten. Alongside the PDFs,
``audit.jsonl`` gets one line per artifact and one per dispatch attempt, so
the folder answers both "what was printed" and "where did it go".

Filenames:
    print_<YYYY-MM-DD>_<HH-MM-SS>.pdf   (UTC, second granularity)
    print_<YYYY-MM-DD>_<HH-MM-SS>_<n>.pdf when that second is already taken
"""

from __future__ import annotations

import json
import re
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from models.document import Artifact
from logging_config import get_logger


logger = get_logger(__name__)

AUDIT_LOG_NAME = "audit.jsonl"
FILENAME_PATTERN = re.compile(r"^print_\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2}(?:_\d+)?\.pdf$")


def artifact_filename(created_at: datetime, sequence: int = 0) -> str:
    stamp = created_at.astimezone(timezone.utc).strftime("%Y-%m-%d_%H-%M-%S")
    suffix = f"_{sequence}" if sequence else ""
    return f"print_{stamp}{suffix}.pdf"


class AuditStore:
    """
    Artifact directory plus its append-only log.

    Thread Safety:
        allocate() reserves a name under a lock so two conversions in the
        same second never share a file.
    """

    def __init__(self, directory: str | Path):
        self._dir = Path(directory)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._reserved: set = set()

    @property
    def directory(self) -> Path:
        return self._dir

    @property
    def log_path(self) -> Path:
        return self._dir / AUDIT_LOG_NAME

    def allocate(self, now: Optional[datetime] = None) -> tuple[str, Path, datetime]:
        """
        Reserve an unused artifact name for a conversion starting ``now``.

        Returns:
            (filename, path, created_at)
        """
        created_at = now or datetime.now(timezone.utc)
        with self._lock:
            sequence = 0
            while True:
                filename = artifact_filename(created_at, sequence)
                path = self._dir / filename
                if filename not in self._reserved and not path.exists():
                    self._reserved.add(filename)
                    return filename, path, created_at
                sequence += 1

    def record(self, artifact: Artifact) -> Artifact:
        """Append an artifact entry to the audit log."""
        self._append({"event": "artifact", **artifact.to_dict()})
        with self._lock:
            self._reserved.discard(artifact.filename)
        logger.info(f"Artifact recorded: {artifact.filename} ({artifact.page_count} pages)")
        return artifact

    def record_failed_conversion(self, filename: str, path: Path, created_at: datetime, message: str) -> None:
        """Append an entry for a file whose conversion failed after it was written."""
        self._append({
            "event": "conversion_failed",
            "filename": filename,
            "path": str(path),
            "createdAt": created_at.isoformat(),
            "sizeBytes": path.stat().st_size,
            "error": message,
        })
        logger.warning(f"Conversion failed, file kept: {filename} ({message})")

    def release(self, filename: str) -> None:
        """Give back a reserved name once its conversion has finished."""
        with self._lock:
            self._reserved.discard(filename)

    def record_dispatch(self, filename: str, printer_name: str, success: bool, message: str = "") -> None:
        """Append a dispatch attempt (successful or not) to the audit log."""
        self._append({
            "event": "dispatch",
            "filename": filename,
            "printerName": printer_name,
            "success": success,
            "message": message,
            "at": datetime.now(timezone.utc).isoformat(),
        })

    def resolve(self, filename: str) -> Optional[Path]:
        """
        Path of a stored artifact, or None.

        Only names matching the artifact pattern are looked up, so request
        paths like ``../settings.json`` never leave the prints folder.
        """
        if not FILENAME_PATTERN.match(filename or ""):
            return None
        path = self._dir / filename
        return path if path.is_file() else None

    def list_artifacts(self) -> List[str]:
        return sorted(p.name for p in self._dir.iterdir() if FILENAME_PATTERN.match(p.name))

    def read_log(self) -> List[Dict[str, Any]]:
        if not self.log_path.exists():
            return []
        entries = []
        with open(self.log_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    entries.append(json.loads(line))
        return entries

    def _append(self, entry: Dict[str, Any]) -> None:
        with self._lock:
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry) + "\n")
