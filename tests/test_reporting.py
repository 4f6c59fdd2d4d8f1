"""Tests for reporting, notices and Prometheus metrics."""

import pytest

from print_dispatch_engine.core.config import DispatchConfig
from print_dispatch_engine.core.engine import DispatchEngine
from print_dispatch_engine.core.exceptions import ConfigurationError
from print_dispatch_engine.models.dispatch import LoopState, Notice, NoticeLevel
from print_dispatch_engine.models.printer import PrinterHealth
from print_dispatch_engine.services.reporting import DispatchMetrics, ReportingService

from .conftest import make_printer, submit_jobs


@pytest.fixture
def engine():
    engine = DispatchEngine(config=DispatchConfig(mode="manual"))
    engine.register_printer(make_printer("P1", priority=1, paper=85, ink=92))
    engine.register_printer(make_printer("P2", priority=2, paper=60, ink=45))
    engine.register_printer(make_printer("P3", priority=3, paper=5, ink=78))
    engine.register_printer(make_printer("P4", priority=4, health=PrinterHealth.OFFLINE, ink=2))
    submit_jobs(engine.job_store, "J1", "J2", "J3")
    return engine


class TestReport:
    """Tests for the dispatch report."""

    def test_initial_report(self, engine):
        report = engine.get_report()

        assert report.waiting_jobs == 3
        assert report.printing_jobs == 0
        assert report.online_printers == 3
        assert report.eligible_printers == 2
        assert report.total_printers == 4
        assert report.mode == "manual"
        assert report.loop_state == LoopState.STOPPED.value

    def test_report_after_dispatch_and_completion(self, engine):
        engine.dispatcher.run_once()
        engine.on_job_completed("J1")

        data = engine.get_report().to_dict()

        assert data["waiting_jobs"] == 1
        assert data["printing_jobs"] == 1
        assert data["completed_jobs"] == 1
        assert data["processed_count"] == 1
        assert data["eligible_printers"] == 1
        assert "generated_at" in data


class TestNotices:
    """Tests for operator notices."""

    def test_consumable_warnings_for_online_printers_only(self, engine):
        warnings = engine.reporting.consumable_warnings()

        assert [w.printer_id for w in warnings] == ["P3"]
        assert warnings[0].kind == "low_consumables"
        assert "paper 5%" in warnings[0].message

    def test_warnings_follow_threshold(self, engine):
        engine.set_consumable_threshold(50)

        assert [w.printer_id for w in engine.reporting.consumable_warnings()] == ["P2", "P3"]

    def test_notice_history_is_bounded(self, engine):
        reporting = ReportingService(
            engine.job_store,
            engine.printer_registry,
            engine.state,
            threshold_provider=lambda: 10,
            loop_state_provider=lambda: LoopState.STOPPED,
            notice_history=2
        )
        for i in range(3):
            reporting.record_notice(Notice(level=NoticeLevel.INFO, kind="test", message=f"n{i}"))

        assert [n.message for n in reporting.get_notices()] == ["n2", "n1"]
        assert [n.message for n in reporting.get_notices(limit=1)] == ["n2"]
        reporting.clear_notices()
        assert reporting.get_notices() == []

    def test_error_statistics(self, engine):
        with pytest.raises(ConfigurationError):
            engine.set_concurrency_limit(0)

        stats = engine.reporting.get_error_statistics()
        assert stats["error_counts"] == {"ConfigurationError": 1}
        assert stats["most_common_error"] == "ConfigurationError"


class TestMetrics:
    """Tests for Prometheus metrics."""

    def test_counters_follow_dispatch(self, engine):
        engine.dispatcher.run_once()
        engine.on_job_completed("J1")
        engine.on_job_failed("J2", "jam")

        registry = engine.metrics.registry
        assert registry.get_sample_value("print_dispatch_assignments_total") == 2.0
        assert registry.get_sample_value("print_dispatch_completions_total") == 1.0
        assert registry.get_sample_value("print_dispatch_failures_total") == 1.0

    def test_export_refreshes_gauges(self, engine):
        engine.dispatcher.run_once()

        text = engine.export_metrics().decode("utf-8")

        assert 'print_dispatch_jobs{status="printing"} 2.0' in text
        assert 'print_dispatch_jobs{status="waiting"} 1.0' in text
        assert "print_dispatch_online_printers 3.0" in text
        assert "print_dispatch_skipped_ticks_total" in text

    def test_engines_do_not_share_registries(self):
        first = DispatchMetrics()
        second = DispatchMetrics()
        first.record_assignment()

        assert first.registry.get_sample_value("print_dispatch_assignments_total") == 1.0
        assert second.registry.get_sample_value("print_dispatch_assignments_total") == 0.0
