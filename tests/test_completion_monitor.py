"""Tests for completion and failure handling."""

import asyncio

import pytest

from print_dispatch_engine.models.dispatch import Assignment, NoticeLevel
from print_dispatch_engine.models.job import JobStatus
from print_dispatch_engine.models.printer import PrinterHealth
from print_dispatch_engine.services.completion_monitor import CompletionMonitor
from print_dispatch_engine.services.dispatcher import Dispatcher

from .conftest import submit_jobs


@pytest.fixture
def notices():
    return []


@pytest.fixture
def monitor(job_store, scenario_fleet, dispatch_state, notices):
    return CompletionMonitor(job_store, scenario_fleet, dispatch_state, notice_sink=notices.append)


@pytest.fixture
def dispatcher(job_store, scenario_fleet, dispatch_state, monitor):
    return Dispatcher(
        job_store,
        scenario_fleet,
        dispatch_state,
        assignment_lock=monitor.assignment_lock,
        completion_monitor=monitor
    )


class TestCompletion:
    """Tests for the completion path."""

    def test_scenario_c(self, dispatcher, monitor, job_store, scenario_fleet, dispatch_state):
        """Test that a completed job frees its printer for the next waiting job."""
        dispatch_state.max_concurrent_jobs = 1
        submit_jobs(job_store, "J1", "J2")
        dispatcher.run_once()

        assert monitor.on_job_completed("J1") is True

        job = job_store.get_job("J1")
        assert job.status == JobStatus.COMPLETED
        assert job.completed_at is not None
        assert scenario_fleet.get_printer("P1").current_job_id is None
        assert dispatch_state.processed_count == 1
        assert monitor.in_flight() == []

        result = dispatcher.run_once()
        assert result.assignments == [Assignment("J2", "P1")]

    def test_duplicate_completion_ignored(self, dispatcher, monitor, job_store, dispatch_state):
        submit_jobs(job_store, "J1")
        dispatcher.run_once()
        monitor.on_job_completed("J1")

        assert monitor.on_job_completed("J1") is False
        assert dispatch_state.processed_count == 1

    def test_unknown_job_ignored(self, monitor, dispatch_state):
        assert monitor.on_job_completed("ghost") is False
        assert monitor.on_job_failed("ghost", "jam") is False
        assert monitor.release_job("ghost") is None
        assert dispatch_state.processed_count == 0

    def test_waiting_job_signal_ignored(self, monitor, job_store, scenario_fleet):
        submit_jobs(job_store, "J1")

        assert monitor.on_job_completed("J1") is False
        assert job_store.get_job("J1").status == JobStatus.WAITING

    def test_operator_complete_counts(self, dispatcher, monitor, job_store, dispatch_state):
        submit_jobs(job_store, "J1")
        dispatcher.run_once()

        assert monitor.complete_job("J1") is True
        assert dispatch_state.processed_count == 1


class TestFailure:
    """Tests for the failure path."""

    def test_scenario_d(self, dispatcher, monitor, job_store, scenario_fleet, notices):
        """Test requeue at the original position and the printer put in error."""
        submit_jobs(job_store, "J1", "J2", "J3")
        dispatcher.run_once()

        assert monitor.on_job_failed("J1", "jam") is True

        job = job_store.get_job("J1")
        assert job.status == JobStatus.WAITING
        assert job.failure_reason == "jam"
        assert [j.job_id for j in job_store.list_jobs(JobStatus.WAITING)] == ["J1", "J3"]

        printer = scenario_fleet.get_printer("P1")
        assert printer.health == PrinterHealth.ERROR
        assert printer.current_job_id is None

        result = dispatcher.run_once()
        assert result.is_noop

        assert [n.kind for n in notices] == ["job_failed", "printer_error"]
        assert notices[1].level == NoticeLevel.ERROR
        assert notices[1].printer_id == "P1"

    def test_failed_printer_back_after_reset(self, dispatcher, monitor, job_store, scenario_fleet):
        submit_jobs(job_store, "J1", "J2", "J3")
        dispatcher.run_once()
        monitor.on_job_failed("J1", "jam")

        scenario_fleet.set_health("P1", PrinterHealth.ONLINE)
        result = dispatcher.run_once()

        assert result.assignments == [Assignment("J1", "P1")]
        assert job_store.get_job("J1").attempts == 2

    def test_failure_does_not_count_as_processed(self, dispatcher, monitor, job_store, dispatch_state):
        submit_jobs(job_store, "J1")
        dispatcher.run_once()
        monitor.on_job_failed("J1", "jam")

        assert dispatch_state.processed_count == 0

    def test_failure_after_completion_ignored(self, dispatcher, monitor, job_store, scenario_fleet):
        submit_jobs(job_store, "J1")
        dispatcher.run_once()
        monitor.on_job_completed("J1")

        assert monitor.on_job_failed("J1", "late jam") is False
        assert job_store.get_job("J1").status == JobStatus.COMPLETED
        assert scenario_fleet.get_printer("P1").health == PrinterHealth.ONLINE


class TestRelease:
    """Tests for the operator pause override."""

    def test_release_frees_printer_keeps_health(self, dispatcher, monitor, job_store, scenario_fleet, notices):
        submit_jobs(job_store, "J1")
        dispatcher.run_once()

        assert monitor.release_job("J1") == "P1"

        assert job_store.get_job("J1").status == JobStatus.WAITING
        printer = scenario_fleet.get_printer("P1")
        assert printer.current_job_id is None
        assert printer.health == PrinterHealth.ONLINE
        assert notices == []

    def test_release_of_waiting_job(self, monitor, job_store):
        submit_jobs(job_store, "J1")

        assert monitor.release_job("J1") is None


class TestSignals:
    """Tests for waking waiters on signals."""

    @pytest.mark.asyncio
    async def test_wait_for_signal_wakes_on_completion(self, dispatcher, monitor, job_store):
        submit_jobs(job_store, "J1")
        dispatcher.run_once()
        since = monitor.signal_count

        waiter = asyncio.create_task(monitor.wait_for_signal(since, timeout=5))
        await asyncio.sleep(0)
        monitor.on_job_completed("J1")

        assert await waiter is True
        assert monitor.signal_count == since + 1

    @pytest.mark.asyncio
    async def test_wait_for_signal_times_out(self, monitor):
        assert await monitor.wait_for_signal(monitor.signal_count, timeout=0.01) is False

    @pytest.mark.asyncio
    async def test_past_signal_returns_immediately(self, dispatcher, monitor, job_store):
        submit_jobs(job_store, "J1")
        dispatcher.run_once()
        since = monitor.signal_count
        monitor.on_job_failed("J1", "jam")

        assert await monitor.wait_for_signal(since, timeout=0.01) is True

    def test_ignored_signal_does_not_notify(self, monitor):
        before = monitor.signal_count
        monitor.on_job_completed("ghost")

        assert monitor.signal_count == before
