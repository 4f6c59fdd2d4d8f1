"""
PrinterRegistry service for the Print Dispatch Engine

Holds the printer fleet with live health and consumable levels, plus the
dispatcher-owned occupancy marker. Discovery results are merged through a
single refresh contract.
"""

import threading
from datetime import datetime
from typing import Dict, List, Optional, Iterable, Any

from ..models.printer import PrinterDevice, PrinterHealth, Consumables
from ..utils.logger import get_logger, set_log_context
from ..core.exceptions import PrinterNotFoundError, PrinterOccupiedError, ValidationError


class PrinterRegistry:
    """
    Manages the printer fleet.

    Provides capabilities for:
    - Printer registration and deregistration
    - Health and consumable updates
    - Occupancy marks (written only by the dispatcher and completion monitor)
    - Merging discovery results
    """

    def __init__(self, printers: Optional[Iterable[PrinterDevice]] = None):
        self._printers: Dict[str, PrinterDevice] = {}
        self._lock = threading.RLock()

        self.logger = get_logger(__name__)
        set_log_context(self.logger, component="printer_registry")

        for printer in printers or []:
            self.register_printer(printer)

    def register_printer(self, printer: PrinterDevice) -> PrinterDevice:
        """
        Add a printer to the fleet, or replace a known printer's description.

        Occupancy of an already-registered printer is preserved.
        """
        with self._lock:
            existing = self._printers.get(printer.printer_id)
            stored = printer.copy()
            if existing:
                stored.current_job_id = existing.current_job_id
                self.logger.warning("Printer already registered, updating", extra={
                    "printer_id": printer.printer_id
                })
            self._printers[printer.printer_id] = stored

        self.logger.info("Printer registered", extra={
            "printer_id": printer.printer_id,
            "printer_name": printer.name,
            "health": printer.health.value,
            "priority": printer.priority
        })
        return stored.copy()

    def deregister_printer(self, printer_id: str) -> PrinterDevice:
        """
        Remove a printer from the fleet.

        Raises:
            PrinterNotFoundError: Unknown printer
            PrinterOccupiedError: The printer is running a job
        """
        with self._lock:
            printer = self._get(printer_id)
            if printer.current_job_id is not None:
                raise PrinterOccupiedError(printer_id, printer.current_job_id)
            del self._printers[printer_id]

        self.logger.info("Printer deregistered", extra={"printer_id": printer_id})
        return printer

    def get_printer(self, printer_id: str) -> PrinterDevice:
        with self._lock:
            return self._get(printer_id).copy()

    def has_printer(self, printer_id: str) -> bool:
        with self._lock:
            return printer_id in self._printers

    def list_printers(self) -> List[PrinterDevice]:
        """Snapshot of the fleet in declared (registration) order."""
        with self._lock:
            return [p.copy() for p in self._printers.values()]

    def set_occupancy(self, printer_id: str, job_id: Optional[str]) -> PrinterDevice:
        """
        Mark a printer as running a job, or clear the mark with ``None``.

        Raises:
            PrinterNotFoundError: Unknown printer
            PrinterOccupiedError: The printer already runs a different job
        """
        with self._lock:
            printer = self._get(printer_id)
            if job_id is not None and printer.current_job_id not in (None, job_id):
                raise PrinterOccupiedError(printer_id, printer.current_job_id, job_id)
            previous = printer.current_job_id
            printer.current_job_id = job_id
            snapshot = printer.copy()

        self.logger.debug("Printer occupancy changed", extra={
            "printer_id": printer_id,
            "previous_job_id": previous,
            "job_id": job_id
        })
        return snapshot

    def set_health(self, printer_id: str, health: PrinterHealth) -> PrinterDevice:
        """Update a printer's health."""
        with self._lock:
            printer = self._get(printer_id)
            previous = printer.health
            printer.health = health
            printer.last_seen_at = datetime.utcnow()
            snapshot = printer.copy()

        if previous != health:
            self.logger.info("Printer health changed", extra={
                "printer_id": printer_id,
                "from_health": previous.value,
                "to_health": health.value
            })
        return snapshot

    def update_consumables(
        self,
        printer_id: str,
        paper_level: Optional[float] = None,
        ink_level: Optional[float] = None
    ) -> PrinterDevice:
        """
        Update consumable levels; omitted levels keep their current value.

        Raises:
            PrinterNotFoundError: Unknown printer
            ValidationError: Level outside [0, 100]
        """
        with self._lock:
            printer = self._get(printer_id)
            printer.consumables = Consumables(
                paper_level=printer.consumables.paper_level if paper_level is None else paper_level,
                ink_level=printer.consumables.ink_level if ink_level is None else ink_level
            )
            printer.last_seen_at = datetime.utcnow()
            snapshot = printer.copy()

        self.logger.debug("Printer consumables updated", extra={
            "printer_id": printer_id,
            **snapshot.consumables.to_dict()
        })
        return snapshot

    def refresh(self, discovered: Iterable[PrinterDevice], add_only: bool = False) -> Dict[str, Any]:
        """
        Merge a discovery result into the fleet.

        New printers are added. Known printers take the discovered name,
        connection type, health, consumables, priority and location; their
        occupancy is kept. Known printers missing from the result go offline.

        Args:
            discovered: Printers reported by a discovery source
            add_only: Only add unknown printers; known ones, present or
                missing, keep their current state

        Returns:
            Summary with added, updated and missing printer ids
        """
        added: List[str] = []
        updated: List[str] = []

        with self._lock:
            seen = set()
            for device in discovered:
                seen.add(device.printer_id)
                existing = self._printers.get(device.printer_id)
                if existing is None:
                    self._printers[device.printer_id] = device.copy()
                    self._printers[device.printer_id].current_job_id = None
                    added.append(device.printer_id)
                    continue
                if add_only:
                    continue

                existing.name = device.name
                existing.connection_type = device.connection_type
                existing.health = device.health
                existing.consumables = device.consumables
                existing.priority = device.priority
                existing.location = device.location
                existing.last_seen_at = datetime.utcnow()
                updated.append(device.printer_id)

            missing = [] if add_only else [pid for pid in self._printers if pid not in seen]
            for printer_id in missing:
                self._printers[printer_id].health = PrinterHealth.OFFLINE

        summary = {"added": added, "updated": updated, "missing": missing}
        self.logger.info("Printer registry refreshed", extra={
            "added": len(added),
            "updated": len(updated),
            "missing": len(missing)
        })
        return summary

    def count_by_health(self) -> Dict[PrinterHealth, int]:
        with self._lock:
            counts = {health: 0 for health in PrinterHealth}
            for printer in self._printers.values():
                counts[printer.health] += 1
            return counts

    def _get(self, printer_id: str) -> PrinterDevice:
        printer = self._printers.get(printer_id)
        if printer is None:
            raise PrinterNotFoundError(printer_id)
        return printer

    def __len__(self) -> int:
        with self._lock:
            return len(self._printers)
