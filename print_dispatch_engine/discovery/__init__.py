"""
Printer discovery for the Print Dispatch Engine
"""

from .base import PrinterDiscovery
from .static import StaticPrinterDiscovery

__all__ = ["PrinterDiscovery", "StaticPrinterDiscovery"]
