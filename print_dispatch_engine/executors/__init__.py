"""
Print executors for the Print Dispatch Engine

Executors carry out assigned prints and report completion or failure.
"""

from .base import BasePrintExecutor
from .manual import ManualPrintExecutor
from .simulated import SimulatedPrintExecutor

__all__ = [
    "BasePrintExecutor",
    "ManualPrintExecutor",
    "SimulatedPrintExecutor"
]
