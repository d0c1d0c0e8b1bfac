"""Tests for the fixed-delay reconciliation scheduler."""

import threading
from unittest.mock import Mock

from pvc_reaper.models import CycleSummary
from pvc_reaper.scheduler import ReconciliationScheduler, SchedulerState
from pvc_reaper.stall_tracker import StallTracker


def test_tick_passes_tracker_and_returns_to_idle():
    reaper = Mock()
    tracker = StallTracker()
    scheduler = ReconciliationScheduler(reaper, interval_seconds=1, tracker=tracker)

    result = scheduler.tick()

    reaper.run_cycle.assert_called_once_with(tracker)
    assert result is reaper.run_cycle.return_value
    assert scheduler.state is SchedulerState.IDLE
    assert scheduler.cycle_count == 1


def test_tick_while_cycle_running_is_noop():
    reaper = Mock()
    scheduler = ReconciliationScheduler(reaper, interval_seconds=1)
    scheduler.state = SchedulerState.CYCLE_RUNNING

    assert scheduler.tick() is None
    reaper.run_cycle.assert_not_called()


def test_cycle_exception_does_not_escape():
    reaper = Mock()
    reaper.run_cycle.side_effect = [RuntimeError("boom"), None]
    scheduler = ReconciliationScheduler(reaper, interval_seconds=1)

    assert scheduler.tick() is None
    assert scheduler.state is SchedulerState.IDLE

    scheduler.tick()
    assert reaper.run_cycle.call_count == 2


def test_stop_during_cycle_lets_it_finish():
    started = threading.Event()
    release = threading.Event()
    finished = []

    def slow_cycle(tracker):
        started.set()
        release.wait(5)
        finished.append(True)
        return Mock(spec=CycleSummary)

    reaper = Mock()
    reaper.run_cycle.side_effect = slow_cycle
    scheduler = ReconciliationScheduler(reaper, interval_seconds=3600)

    worker = threading.Thread(target=scheduler.run_forever)
    worker.start()
    assert started.wait(5)

    scheduler.stop()
    assert worker.is_alive()
    release.set()
    worker.join(5)

    assert not worker.is_alive()
    assert finished == [True]
    assert reaper.run_cycle.call_count == 1


def test_run_forever_waits_interval_between_cycles():
    reaper = Mock()
    scheduler = ReconciliationScheduler(reaper, interval_seconds=0.01)

    def stop_after_three(tracker):
        if reaper.run_cycle.call_count >= 3:
            scheduler.stop()

    reaper.run_cycle.side_effect = stop_after_three

    scheduler.run_forever()

    assert reaper.run_cycle.call_count == 3
    assert scheduler.stopped


def test_stopped_scheduler_runs_no_cycles():
    reaper = Mock()
    scheduler = ReconciliationScheduler(reaper, interval_seconds=1)
    scheduler.stop()

    scheduler.run_forever()

    reaper.run_cycle.assert_not_called()
