"""
Base printer discovery interface.

Discovery mechanisms (network scans, USB enumeration, the OS spooler) differ;
they all produce device descriptions that PrinterRegistry.refresh merges.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..models.printer import PrinterDevice


class PrinterDiscovery(ABC):
    """Abstract base class for printer discovery sources."""

    # False for sources that replay a fixed description instead of scanning devices
    reports_live_state = True

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}

    @abstractmethod
    async def discover(self) -> List[PrinterDevice]:
        """
        Scan for printers.

        Returns:
            Every printer currently visible, with fresh health and consumables
        """

    @property
    def discovery_name(self) -> str:
        return self.__class__.__name__.replace("PrinterDiscovery", "").lower() or "base"
