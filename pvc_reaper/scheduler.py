"""
Fixed-delay scheduler driving reconciliation cycles
"""

import logging
from enum import Enum
from threading import Event, Lock
from typing import Optional

from pvc_reaper.models import CycleSummary
from pvc_reaper.stall_tracker import StallTracker

logger = logging.getLogger(__name__)


class SchedulerState(Enum):
    IDLE = "idle"
    CYCLE_RUNNING = "cycle_running"


class ReconciliationScheduler:
    """Runs at most one cycle at a time and waits a full interval between them.

    stop() only prevents new ticks; a cycle already running is allowed to
    finish so no delete is interrupted halfway through.
    """

    def __init__(self, reaper, interval_seconds: int, tracker: Optional[StallTracker] = None):
        self.reaper = reaper
        self.interval_seconds = interval_seconds
        self.tracker = tracker if tracker is not None else StallTracker()
        self.state = SchedulerState.IDLE
        self.cycle_count = 0
        self.lock = Lock()
        self._stop_event = Event()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        if not self._stop_event.is_set():
            logger.info("Shutdown requested, no new cycles will be started")
        self._stop_event.set()

    def tick(self) -> Optional[CycleSummary]:
        """Run one cycle unless one is already in progress"""
        with self.lock:
            if self.state is SchedulerState.CYCLE_RUNNING:
                logger.info("Previous cycle still in progress, skipping...")
                return None
            self.state = SchedulerState.CYCLE_RUNNING
            self.cycle_count += 1
            cycle_number = self.cycle_count

        try:
            logger.info(f"Starting reconciliation cycle #{cycle_number}")
            return self.reaper.run_cycle(self.tracker)
        except Exception as e:
            logger.exception(f"Error during reconciliation cycle #{cycle_number}: {e}")
            return None
        finally:
            with self.lock:
                self.state = SchedulerState.IDLE

    def run_once(self) -> Optional[CycleSummary]:
        return self.tick()

    def run_forever(self) -> None:
        logger.info(f"Starting main loop ({self.interval_seconds} second delay between cycles)")
        while not self._stop_event.is_set():
            self.tick()
            if self._stop_event.wait(self.interval_seconds):
                break
        logger.info(f"Scheduler stopped after {self.cycle_count} cycles")
