"""
Eligibility filter for the Print Dispatch Engine

Selects the printers that can take a new job right now, in the order the
dispatcher should use them.
"""

from typing import Iterable, List

from ..models.printer import PrinterDevice, DEFAULT_CONSUMABLE_THRESHOLD


def select_eligible(
    printers: Iterable[PrinterDevice],
    threshold: float = DEFAULT_CONSUMABLE_THRESHOLD
) -> List[PrinterDevice]:
    """
    Filter a registry snapshot down to printers usable for a new job.

    A printer qualifies when it is online, unoccupied, and both paper and
    ink strictly exceed ``threshold``. The result is ordered by ascending
    priority; equal priorities keep registry order (``sorted`` is stable).

    Args:
        printers: Registry snapshot in declared order
        threshold: Minimum consumable percentage (exclusive)

    Returns:
        Eligible printers, most preferred first
    """
    eligible = [p for p in printers if p.is_eligible(threshold)]
    return sorted(eligible, key=lambda p: p.priority)


def is_low_on_consumables(printer: PrinterDevice, threshold: float = DEFAULT_CONSUMABLE_THRESHOLD) -> bool:
    """True when paper or ink is at or below the threshold."""
    return not printer.consumables.above(threshold)
