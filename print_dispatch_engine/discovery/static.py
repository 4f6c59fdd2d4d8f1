"""
Static printer discovery backed by configuration entries.
"""

from typing import Iterable, List

from .base import PrinterDiscovery
from ..models.printer import PrinterDevice


class StaticPrinterDiscovery(PrinterDiscovery):
    """Reports a fixed fleet, e.g. the ``printers`` section of a config file."""

    reports_live_state = False

    def __init__(self, printers: Iterable[PrinterDevice]):
        super().__init__()
        self._printers = [p.copy() for p in printers]

    def replace(self, printers: Iterable[PrinterDevice]) -> None:
        """Swap the reported fleet; the next discover() returns it."""
        self._printers = [p.copy() for p in printers]

    async def discover(self) -> List[PrinterDevice]:
        return [p.copy() for p in self._printers]
