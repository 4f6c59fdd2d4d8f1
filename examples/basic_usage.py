"""
Basic usage example for the Print Dispatch Engine

This example demonstrates how to embed the dispatch engine in an
application: register printers, submit jobs and let the engine dispatch.
"""

import asyncio

from print_dispatch_engine import (
    DispatchEngine,
    DispatchConfig,
    DispatchMode,
    PrinterDevice,
    Consumables,
    PrintFile,
    SimulatedPrintExecutor,
    quick_start
)


async def basic_example():
    """Manual mode: one dispatch-all sweep over simulated printers."""
    print("Starting Print Dispatch Engine example")

    engine = DispatchEngine(
        config=DispatchConfig(max_concurrent_jobs=2, mode=DispatchMode.MANUAL),
        executor=SimulatedPrintExecutor({"base_seconds": 0.2, "seconds_per_file": 0.3})
    )
    engine.register_printer(PrinterDevice(
        printer_id="front-desk",
        name="Front Desk Laser",
        consumables=Consumables(paper_level=85, ink_level=70),
        priority=1
    ))
    engine.register_printer(PrinterDevice(
        printer_id="library",
        name="Library Inkjet",
        consumables=Consumables(paper_level=40, ink_level=55),
        priority=2
    ))

    for owner, file_name in [("Budi", "thesis.pdf"), ("Siti", "slides.pdf"), ("Andi", "invoice.pdf")]:
        job = engine.submit_job(owner, files=[PrintFile(file_name, "1 MB")])
        print(f"Job submitted: {job.job_id} ({owner})")

    async with engine:
        result = await engine.dispatch_now_all(timeout=30)

    for assignment in result.assignments:
        print(f"{assignment.job_id} -> {assignment.printer_id}")
    print(f"Processed: {engine.get_report().processed_count}")


async def auto_mode_example():
    """Auto mode from a fleet configuration file."""
    print("\nAuto mode example")

    engine = quick_start("examples/fleet.yaml")
    async with engine:
        await asyncio.sleep(8)
        report = engine.get_report()

    print(f"Completed: {report.completed_jobs}, waiting: {report.waiting_jobs}")
    for notice in engine.get_notices():
        print(f"[{notice.level.value}] {notice.message}")


if __name__ == "__main__":
    asyncio.run(basic_example())
    asyncio.run(auto_mode_example())
