"""Shared fixtures for the print dispatch engine tests."""

import logging
from datetime import datetime, timedelta

import pytest

from print_dispatch_engine.core.exceptions import error_registry
from print_dispatch_engine.models.dispatch import DispatchState
from print_dispatch_engine.models.job import PrintFile
from print_dispatch_engine.models.printer import PrinterDevice, PrinterHealth, Consumables
from print_dispatch_engine.services.job_store import JobStore
from print_dispatch_engine.services.printer_registry import PrinterRegistry


def make_printer(printer_id, priority=1, paper=80.0, ink=80.0, health=PrinterHealth.ONLINE, **kwargs):
    """Build a printer with sensible defaults."""
    return PrinterDevice(
        printer_id=printer_id,
        name=kwargs.pop("name", printer_id.upper()),
        health=health,
        consumables=Consumables(paper_level=paper, ink_level=ink),
        priority=priority,
        **kwargs
    )


def submit_jobs(store, *job_ids):
    """Submit jobs one second apart so their FIFO order is explicit."""
    base = datetime(2024, 5, 1, 9, 0, 0)
    return [
        store.submit_job(
            f"owner-{job_id}",
            files=[PrintFile(f"{job_id}.pdf", "1 MB")],
            job_id=job_id,
            timestamp=base + timedelta(seconds=index)
        )
        for index, job_id in enumerate(job_ids)
    ]


@pytest.fixture(autouse=True)
def reset_error_registry():
    error_registry.reset()
    yield
    error_registry.reset()


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers the CLI attaches so they never outlive a test's streams."""
    yield
    logger = logging.getLogger("print_dispatch_engine")
    for handler in list(logger.handlers):
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def job_store():
    return JobStore()


@pytest.fixture
def printer_registry():
    return PrinterRegistry()


@pytest.fixture
def dispatch_state():
    return DispatchState(max_concurrent_jobs=3)


@pytest.fixture
def scenario_fleet(printer_registry):
    """P1 and P2 eligible, P3 out of paper."""
    printer_registry.register_printer(make_printer("P1", priority=1, paper=85, ink=92))
    printer_registry.register_printer(make_printer("P2", priority=2, paper=60, ink=45))
    printer_registry.register_printer(make_printer("P3", priority=3, paper=5, ink=78))
    return printer_registry
