"""Integration tests for the DispatchEngine facade."""

import asyncio
import random

import pytest
import pytest_asyncio

from print_dispatch_engine import quick_start
from print_dispatch_engine.core.config import DispatchConfig, FleetConfig
from print_dispatch_engine.core.engine import DispatchEngine
from print_dispatch_engine.core.exceptions import (
    ConfigurationError,
    DispatchError,
    InvalidTransitionError,
)
from print_dispatch_engine.discovery.base import PrinterDiscovery
from print_dispatch_engine.discovery.static import StaticPrinterDiscovery
from print_dispatch_engine.executors.manual import ManualPrintExecutor
from print_dispatch_engine.executors.simulated import SimulatedPrintExecutor
from print_dispatch_engine.models.dispatch import Assignment, DispatchMode, LoopState, NoDispatchReason
from print_dispatch_engine.models.job import JobStatus
from print_dispatch_engine.models.printer import PrinterHealth
from print_dispatch_engine.services.eligibility import select_eligible
from print_dispatch_engine.services.printer_registry import PrinterRegistry

from .conftest import make_printer, submit_jobs


def _fleet(**dispatch):
    settings = {"mode": "manual", "tick_interval_seconds": 0.01}
    settings.update(dispatch)
    return FleetConfig(
        dispatch=DispatchConfig(**settings),
        simulation={"base_seconds": 0.01, "seconds_per_file": 0.0},
        printers=[
            {"printer_id": "P1", "priority": 1, "paper_level": 85, "ink_level": 92},
            {"printer_id": "P2", "priority": 2, "paper_level": 60, "ink_level": 45},
            {"printer_id": "P3", "priority": 3, "paper_level": 5, "ink_level": 78},
        ],
        jobs=[
            {"job_id": "J1", "owner_name": "Budi", "files": [{"name": "a.pdf", "size": "1 MB"}]},
            {"job_id": "J2", "owner_name": "Siti"},
            {"job_id": "J3", "owner_name": "Andi"},
        ]
    )


@pytest_asyncio.fixture
async def engine():
    """Started manual-mode engine driven by a manual executor."""
    engine = DispatchEngine.from_config(_fleet(), executor=ManualPrintExecutor())
    await engine.start()
    yield engine
    await engine.stop()


async def _wait_for(predicate, timeout=3.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


class TestEngineSetup:
    """Tests for building and starting the engine."""

    def test_from_config_seeds_fleet_and_jobs(self):
        engine = DispatchEngine.from_config(_fleet())

        assert [p.printer_id for p in engine.printer_registry.list_printers()] == ["P1", "P2", "P3"]
        assert [j.job_id for j in engine.list_jobs()] == ["J1", "J2", "J3"]
        assert isinstance(engine.executor, SimulatedPrintExecutor)
        assert engine.executor.base_seconds == 0.01
        assert engine.executor.is_bound

    def test_default_engine(self):
        engine = DispatchEngine()

        assert engine.state.max_concurrent_jobs == 3
        assert isinstance(engine.executor, ManualPrintExecutor)
        assert not engine.is_running()

    def test_quick_start_without_config(self):
        engine = quick_start()

        assert len(engine.printer_registry) == 0
        assert engine.state.mode == DispatchMode.AUTO

    @pytest.mark.asyncio
    async def test_start_in_manual_mode_leaves_loop_stopped(self, engine):
        assert engine.is_running()
        assert not engine.scheduler.is_running
        assert engine.get_report().loop_state == LoopState.STOPPED.value

    @pytest.mark.asyncio
    async def test_operations_require_start(self):
        engine = DispatchEngine.from_config(_fleet())

        with pytest.raises(DispatchError):
            await engine.dispatch_now_all()
        with pytest.raises(DispatchError):
            await engine.dispatch_once()


class TestOperatorControls:
    """Tests for operator controls."""

    @pytest.mark.asyncio
    async def test_mode_switch(self, engine):
        """Test that auto starts the timer and manual stops it."""
        assert await engine.set_mode("auto") == DispatchMode.AUTO
        assert engine.scheduler.is_running
        await _wait_for(lambda: engine.job_store.count_by_status()[JobStatus.PRINTING] == 2)

        await engine.set_mode(DispatchMode.MANUAL)
        assert not engine.scheduler.is_running
        assert engine.state.mode == DispatchMode.MANUAL
        assert engine.job_store.count_by_status()[JobStatus.PRINTING] == 2

    @pytest.mark.asyncio
    async def test_unknown_mode_rejected(self, engine):
        with pytest.raises(ConfigurationError):
            await engine.set_mode("turbo")

    @pytest.mark.asyncio
    async def test_dispatch_once(self, engine):
        result = await engine.dispatch_once()

        assert result.assignments == [Assignment("J1", "P1"), Assignment("J2", "P2")]
        assert engine.executor.submitted == {"J1": "P1", "J2": "P2"}

    @pytest.mark.asyncio
    async def test_plan_previews_without_applying(self, engine):
        plan = engine.plan()

        assert plan.assignments == [Assignment("J1", "P1"), Assignment("J2", "P2")]
        assert engine.job_store.count_by_status()[JobStatus.WAITING] == 3

    @pytest.mark.asyncio
    async def test_concurrency_limit_validation(self, engine):
        with pytest.raises(ConfigurationError):
            engine.set_concurrency_limit(0)
        with pytest.raises(ConfigurationError):
            engine.set_concurrency_limit(2.5)

        assert engine.state.max_concurrent_jobs == 3

    @pytest.mark.asyncio
    async def test_lowering_limit_does_not_preempt(self, engine):
        """Test that running prints survive a lower ceiling."""
        await engine.dispatch_once()
        engine.set_concurrency_limit(1)

        assert engine.job_store.count_by_status()[JobStatus.PRINTING] == 2
        engine.set_printer_health("P3", PrinterHealth.ONLINE)
        engine.update_consumables("P3", paper_level=90)
        result = await engine.dispatch_once()
        assert result.reason == NoDispatchReason.CONCURRENCY_LIMIT

        engine.executor.complete("J1")
        engine.executor.complete("J2")
        result = await engine.dispatch_once()
        assert result.assignments == [Assignment("J3", "P1")]

    @pytest.mark.asyncio
    async def test_consumable_threshold(self, engine):
        engine.set_consumable_threshold(4)
        result = await engine.dispatch_once()

        assert [a.printer_id for a in result.assignments] == ["P1", "P2", "P3"]
        with pytest.raises(ConfigurationError):
            engine.set_consumable_threshold(150)

    @pytest.mark.asyncio
    async def test_reset_processed_count(self, engine):
        await engine.dispatch_once()
        engine.executor.complete("J1")
        engine.executor.complete("J2")

        assert engine.reset_processed_count() == 2
        assert engine.state.processed_count == 0
        assert engine.job_store.count_by_status()[JobStatus.COMPLETED] == 2

    @pytest.mark.asyncio
    async def test_pause_job(self, engine):
        """Test that pausing requeues the job and frees the printer at once."""
        await engine.dispatch_once()

        assert await engine.pause_job("J1") is True

        assert engine.get_job("J1").status == JobStatus.WAITING
        assert engine.printer_registry.get_printer("P1").current_job_id is None
        assert engine.printer_registry.get_printer("P1").health == PrinterHealth.ONLINE
        assert engine.executor.cancelled == ["J1"]
        assert await engine.pause_job("J1") is False

    @pytest.mark.asyncio
    async def test_complete_job_override(self, engine):
        await engine.dispatch_once()

        assert engine.complete_job("J2") is True
        assert engine.state.processed_count == 1
        assert engine.complete_job("J2") is False

    @pytest.mark.asyncio
    async def test_failure_callback_and_printer_reset(self, engine):
        await engine.dispatch_once()
        engine.executor.fail("J1", "paper jam")

        assert engine.printer_registry.get_printer("P1").health == PrinterHealth.ERROR
        assert [n.kind for n in engine.get_notices()] == ["printer_error", "job_failed"]

        engine.set_printer_health("P1", "online")
        result = await engine.dispatch_once()
        assert result.assignments == [Assignment("J1", "P1")]


class TestJobsAndPrinters:
    """Tests for job and printer management through the engine."""

    @pytest.mark.asyncio
    async def test_remove_job(self, engine):
        await engine.dispatch_once()

        with pytest.raises(InvalidTransitionError):
            engine.remove_job("J1")
        engine.remove_job("J3")
        assert [j.job_id for j in engine.list_jobs()] == ["J1", "J2"]

    @pytest.mark.asyncio
    async def test_refresh_printers(self, engine):
        engine.discovery.replace([
            make_printer("P1", priority=1),
            make_printer("P4", priority=0),
        ])

        summary = await engine.refresh_printers()

        assert summary == {"added": ["P4"], "updated": ["P1"], "missing": ["P2", "P3"]}
        result = await engine.dispatch_once()
        assert result.assignments == [Assignment("J1", "P4"), Assignment("J2", "P1")]

    @pytest.mark.asyncio
    async def test_refresh_without_discovery(self):
        engine = DispatchEngine()

        with pytest.raises(DispatchError):
            await engine.refresh_printers()

    @pytest.mark.asyncio
    async def test_restart_keeps_printer_error(self, engine):
        """Test that restarting does not replay configured health over a failure."""
        await engine.dispatch_once()
        engine.executor.fail("J1", "paper jam")
        assert engine.printer_registry.get_printer("P1").health == PrinterHealth.ERROR

        await engine.stop()
        await engine.start()

        assert engine.printer_registry.get_printer("P1").health == PrinterHealth.ERROR
        result = await engine.dispatch_once()
        assert Assignment("J1", "P1") not in result.assignments

    @pytest.mark.asyncio
    async def test_start_keeps_printers_registered_before_start(self):
        engine = DispatchEngine.from_config(_fleet(), executor=ManualPrintExecutor())
        engine.register_printer(make_printer("P9", priority=0))

        async with engine:
            assert engine.printer_registry.get_printer("P9").health == PrinterHealth.ONLINE
            result = await engine.dispatch_once()

        assert result.assignments[0] == Assignment("J1", "P9")

    @pytest.mark.asyncio
    async def test_start_applies_live_discovery(self):
        """Test that a live discovery source updates known printers on start."""

        class ScannedFleet(PrinterDiscovery):
            async def discover(self):
                return [make_printer("P1", health=PrinterHealth.OFFLINE), make_printer("P2")]

        engine = DispatchEngine(
            printer_registry=PrinterRegistry([make_printer("P1"), make_printer("P3")]),
            discovery=ScannedFleet()
        )

        async with engine:
            health = {p.printer_id: p.health for p in engine.printer_registry.list_printers()}

        assert health == {
            "P1": PrinterHealth.OFFLINE,
            "P3": PrinterHealth.OFFLINE,
            "P2": PrinterHealth.ONLINE,
        }

    @pytest.mark.asyncio
    async def test_snapshot_is_consistent(self, engine):
        await engine.dispatch_once()
        snapshot = engine.snapshot()

        printing = {j["job_id"]: j["printer_id"] for j in snapshot["jobs"] if j["status"] == "printing"}
        occupied = {p["current_job_id"]: p["printer_id"] for p in snapshot["printers"] if p["current_job_id"]}
        assert printing == occupied
        assert snapshot["state"]["max_concurrent_jobs"] == 3

    @pytest.mark.asyncio
    async def test_submit_and_register(self, engine):
        engine.register_printer(make_printer("P5", priority=0))
        job = engine.submit_job("Dewi", notes="A3")

        result = await engine.dispatch_once()

        assert result.assignments[0] == Assignment("J1", "P5")
        assert engine.get_job(job.job_id).status == JobStatus.WAITING

    @pytest.mark.asyncio
    async def test_deregister_printer(self, engine):
        engine.deregister_printer("P3")

        assert not engine.printer_registry.has_printer("P3")


class TestSimulatedRuns:
    """End-to-end runs with the simulated executor."""

    @pytest.mark.asyncio
    async def test_dispatch_now_all(self):
        engine = DispatchEngine.from_config(_fleet(max_concurrent_jobs=1))
        async with engine:
            result = await engine.dispatch_now_all(timeout=5)
            report = engine.get_report()

        assert [a.job_id for a in result.assignments] == ["J1", "J2", "J3"]
        assert result.still_waiting == []
        await _wait_for(lambda: engine.state.processed_count >= 2)
        assert report.printing_jobs <= 1

    @pytest.mark.asyncio
    async def test_failed_printer_is_routed_around(self):
        """Test that a failing printer is put in error and its job printed elsewhere."""
        engine = DispatchEngine.from_config(_fleet())
        engine.executor.fail_printer("P1", "paper jam")

        async with engine:
            result = await engine.dispatch_now_all(timeout=5)
            await _wait_for(lambda: engine.state.processed_count == 3)

        assert result.still_waiting == []
        assert engine.printer_registry.get_printer("P1").health == PrinterHealth.ERROR
        assert engine.get_job("J1").attempts == 2
        assert engine.get_job("J1").printer_id == "P2"
        assert any(n.kind == "printer_error" for n in engine.get_notices())

    @pytest.mark.asyncio
    async def test_auto_mode_processes_everything(self):
        engine = DispatchEngine.from_config(_fleet(mode="auto"))

        async with engine:
            assert engine.scheduler.is_running
            await _wait_for(lambda: engine.state.processed_count == 3)

        report = engine.get_report()
        assert report.completed_jobs == 3
        assert report.waiting_jobs == 0
        assert report.loop_state == LoopState.STOPPED.value


def _assert_consistent(engine):
    snapshot = engine.snapshot()
    printing = {j["job_id"]: j["printer_id"] for j in snapshot["jobs"] if j["status"] == "printing"}
    occupied = {p["current_job_id"]: p["printer_id"] for p in snapshot["printers"] if p["current_job_id"]}
    completed = [j for j in snapshot["jobs"] if j["status"] == "completed"]

    assert printing == occupied
    assert len(printing) <= snapshot["state"]["max_concurrent_jobs"]
    assert snapshot["state"]["processed_count"] == len(completed)


class TestRandomOperationSequences:
    """Tests that mixed operator, executor and fleet events keep the stores in step."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", range(12))
    async def test_jobs_and_printers_stay_paired(self, seed):
        rng = random.Random(seed)
        engine = DispatchEngine.from_config(_fleet(max_concurrent_jobs=2), executor=ManualPrintExecutor())
        printer_ids = ["P1", "P2", "P3"]

        async with engine:
            for step in range(150):
                printing = [j.job_id for j in engine.list_jobs(JobStatus.PRINTING)]
                action = rng.choice(["dispatch", "dispatch", "complete", "fail", "pause",
                                     "mark_done", "consumables", "health", "submit"])

                if action == "dispatch":
                    waiting = [j.job_id for j in engine.list_jobs(JobStatus.WAITING)]
                    eligible = select_eligible(
                        engine.printer_registry.list_printers(), engine.config.consumable_threshold
                    )
                    budget = max(0, engine.state.max_concurrent_jobs - len(printing))
                    expected = [
                        Assignment(job_id, printer.printer_id)
                        for job_id, printer in zip(waiting, eligible[:budget])
                    ]

                    result = await engine.dispatch_once()

                    assert result.assignments == expected
                elif action == "complete" and printing:
                    engine.executor.complete(rng.choice(printing))
                elif action == "fail" and printing:
                    engine.executor.fail(rng.choice(printing), "paper jam")
                elif action == "pause" and printing:
                    assert await engine.pause_job(rng.choice(printing)) is True
                elif action == "mark_done" and printing:
                    assert engine.complete_job(rng.choice(printing)) is True
                elif action == "consumables":
                    engine.update_consumables(
                        rng.choice(printer_ids),
                        paper_level=rng.choice([0, 5, 10, 11, 50, 100]),
                        ink_level=rng.choice([0, 10, 11, 80])
                    )
                elif action == "health":
                    printer_id = rng.choice(printer_ids)
                    engine.set_printer_health(printer_id, rng.choice(["online", "online", "offline"]))
                elif action == "submit":
                    engine.submit_job(owner_name=f"walk-{step}")

                _assert_consistent(engine)
