"""Unit tests for scheduled tasks job coordination.

Tests the scheduling logic, error handling, and task integration without
executing the actual scheduled work.
"""

from unittest.mock import MagicMock, patch

import pytest
import schedule

from infrastructure.configuration import DispatchSettings, Settings
from infrastructure.configuration.infrastructure import HealthSettings
from jobs.scheduled_tasks import (
    channel_healthchecks,
    drain_dispatch_queue,
    init,
    run_continuously,
    safe_run,
    scheduler_heartbeat,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def service():
    service = MagicMock()
    service.settings = Settings(
        health=HealthSettings(check_interval_seconds=15),
        dispatch=DispatchSettings(queue_interval_seconds=3),
    )
    return service


class TestSafeRun:
    """Tests for the safe_run error handling wrapper."""

    @patch("jobs.scheduled_tasks.logger")
    def test_executes_job_successfully(self, mock_logger) -> None:
        job = MagicMock()
        job.__name__ = "test_job"

        safe_run(job)("arg1", kwarg1="value1")

        job.assert_called_once_with("arg1", kwarg1="value1")
        mock_logger.error.assert_not_called()

    @patch("jobs.scheduled_tasks.logger")
    def test_catches_exception(self, mock_logger) -> None:
        def failing_job():
            raise ValueError("Test error")

        safe_run(failing_job)()

        mock_logger.error.assert_called_once_with(
            "scheduled_job_failed", job="failing_job", error="Test error"
        )


class TestInit:
    def test_registers_jobs_on_given_scheduler(self, service) -> None:
        scheduler = schedule.Scheduler()

        init(service, scheduler)

        intervals = sorted(
            (job.interval, job.unit) for job in scheduler.get_jobs()
        )
        assert intervals == [(3, "seconds"), (5, "minutes"), (15, "seconds")]

    def test_does_not_touch_default_scheduler(self, service) -> None:
        before = len(schedule.get_jobs())

        init(service, schedule.Scheduler())

        assert len(schedule.get_jobs()) == before


class TestChannelHealthchecks:
    @patch("jobs.scheduled_tasks.logger")
    def test_logs_unhealthy_channels(self, mock_logger, service) -> None:
        service.health.probe_all.return_value = {
            "status": "degraded",
            "channels": {
                "sms": {"state": "open", "last_probe_ok": False},
                "push": {"state": "closed", "last_probe_ok": True},
                "chat": {"state": "closed", "last_probe_ok": False},
            },
            "advisor": None,
        }

        channel_healthchecks(service)

        unhealthy = [c.kwargs["channel_kind"] for c in mock_logger.error.call_args_list]
        assert unhealthy == ["sms", "chat"]
        mock_logger.debug.assert_called_once_with("channel_healthy", channel_kind="push")


class TestDrainDispatchQueue:
    def test_drains_one_cycle_when_queue_has_items(self, service) -> None:
        service.dispatcher.queue.size.return_value = 4

        drain_dispatch_queue(service)

        service.dispatcher.queue.drain_cycle.assert_called_once()

    def test_skips_empty_queue(self, service) -> None:
        service.dispatcher.queue.size.return_value = 0

        drain_dispatch_queue(service)

        service.dispatcher.queue.drain_cycle.assert_not_called()


@patch("jobs.scheduled_tasks.logger")
def test_scheduler_heartbeat(mock_logger) -> None:
    scheduler_heartbeat()

    assert mock_logger.info.call_args.args[0] == "scheduler_heartbeat"


def test_run_continuously_runs_pending_jobs() -> None:
    scheduler = schedule.Scheduler()

    with patch.object(scheduler, "run_pending") as run_pending:
        stop = run_continuously(interval=0.01, scheduler=scheduler)
        try:
            for _ in range(100):
                if run_pending.called:
                    break
                stop.wait(0.01)
        finally:
            stop.set()

    assert run_pending.called
