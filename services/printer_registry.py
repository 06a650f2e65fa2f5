"""
Printer registry: available printers and the operator's default.

The list of printers comes from the print subsystem (the print service over
HTTP, or the in-process ConversionDispatchService). The selected printer is
persisted in a SettingsStore under a single key and revalidated against the
live list every time it is loaded: a saved printer that has disappeared is
replaced by the first available printer, or cleared.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Protocol

from core.exceptions import InvalidPrinterError, PrinterEnumerationError
from modules.settings_store import SettingsStore
from logging_config import get_logger


logger = get_logger(__name__)

SELECTED_PRINTER_KEY = "selectedPrinter"


class PrinterSource(Protocol):
    def list_printers(self) -> List[str]:
        """
        Raises:
            PrinterEnumerationError: If the subsystem is unreachable
        """
        ...


@dataclass(frozen=True)
class PrinterSelection:
    selected: Optional[str]
    available: FrozenSet[str]

    def to_dict(self) -> dict:
        return {"selected": self.selected, "available": sorted(self.available)}


class PrinterRegistry:
    """
    Enumerates printers and owns the persisted printer selection.

    Thread Safety:
        The last-known printer list and the selection are guarded by one
        lock; the job thread reads the selection while request threads may
        be changing it.
    """

    def __init__(self, source: PrinterSource, settings: SettingsStore):
        self._source = source
        self._settings = settings
        self._lock = threading.Lock()
        self._available: FrozenSet[str] = frozenset()
        self._ordered: List[str] = []
        self._selected: Optional[str] = None
        self._pending_restore = False

    def list(self) -> FrozenSet[str]:
        """
        Query the print subsystem and remember the result.

        If the selection could not be restored earlier because the subsystem
        was unreachable, it is restored now from the saved setting.

        Raises:
            PrinterEnumerationError: If the subsystem is unreachable
        """
        try:
            names = self._source.list_printers()
        except PrinterEnumerationError:
            raise
        except Exception as e:
            raise PrinterEnumerationError(f"Unable to list printers: {e}") from e

        ordered = [n for n in dict.fromkeys(names) if n]
        with self._lock:
            self._ordered = ordered
            self._available = frozenset(ordered)
            restore = self._pending_restore
        logger.info(f"Found {len(ordered)} printers")

        if restore:
            self._restore_selection()
        return frozenset(ordered)

    def refresh(self) -> FrozenSet[str]:
        """list(), degrading to "no printers available" on failure."""
        try:
            return self.list()
        except PrinterEnumerationError as e:
            logger.warning(f"Printer enumeration failed, assuming none available: {e.message}")
            with self._lock:
                self._ordered = []
                self._available = frozenset()
            return frozenset()

    def load(self) -> Optional[str]:
        """
        Refresh the printer list and restore the saved selection.

        The saved name is kept only if it is still available; otherwise the
        first available printer is selected (and saved), or none. When the
        subsystem cannot be reached the saved name is left untouched and
        nothing is selected until a later list() succeeds.
        """
        with self._lock:
            self._pending_restore = True
        try:
            self.list()
        except PrinterEnumerationError as e:
            logger.warning(f"Printer enumeration failed, selection restore deferred: {e.message}")
            with self._lock:
                self._ordered = []
                self._available = frozenset()
                self._selected = None
            return None
        return self.get_selected()

    def _restore_selection(self) -> Optional[str]:
        saved = self._settings.get(SELECTED_PRINTER_KEY)

        with self._lock:
            if saved and saved in self._available:
                selected = saved
            elif self._ordered:
                selected = self._ordered[0]
            else:
                selected = None
            self._selected = selected
            self._pending_restore = False

        if selected != saved:
            if saved:
                logger.warning(f"Saved printer '{saved}' is no longer available")
            self._settings.set(SELECTED_PRINTER_KEY, selected)

        logger.info(f"Selected printer: {selected or 'none'}")
        return selected

    def get_selected(self) -> Optional[str]:
        with self._lock:
            return self._selected

    def set_selected(self, name: str) -> str:
        """
        Select and persist a printer.

        Raises:
            InvalidPrinterError: If ``name`` is not in the last-known list
        """
        with self._lock:
            if name not in self._available:
                raise InvalidPrinterError(name)
            self._selected = name
        self._settings.set(SELECTED_PRINTER_KEY, name)
        logger.info(f"Printer selected: {name}")
        return name

    def selection(self) -> PrinterSelection:
        with self._lock:
            return PrinterSelection(self._selected, self._available)
