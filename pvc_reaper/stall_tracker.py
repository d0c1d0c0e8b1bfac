"""
Debounce state for pods stuck in Pending
"""

import logging
import time
from typing import Callable, Dict, Iterable, Optional

from pvc_reaper.models import PodRecord

logger = logging.getLogger(__name__)


class StallTracker:
    """Remembers when each stalled pod was first seen in the bad state.

    Entries are keyed by pod uid, so a pod recreated under the same name
    starts without history. An entry is dropped as soon as the pod is seen
    healthy again or disappears from the snapshot, which restarts the
    dwell clock on the next bad observation.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._first_seen: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._first_seen)

    def __contains__(self, pod: PodRecord) -> bool:
        return pod.uid in self._first_seen

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now

    def observe(self, pod: PodRecord, now: Optional[float] = None) -> None:
        """Record or clear the bad state of one pod"""
        if pod.is_stalled:
            if pod.uid not in self._first_seen:
                self._first_seen[pod.uid] = self._now(now)
                logger.debug(f"Tracking stalled pod {pod.key} (uid {pod.uid})")
        elif self._first_seen.pop(pod.uid, None) is not None:
            logger.debug(f"Pod {pod.key} recovered (phase {pod.phase}), dwell clock reset")

    def sync(self, pods: Iterable[PodRecord], now: Optional[float] = None) -> None:
        """Observe a full pod snapshot and prune pods that no longer exist"""
        now = self._now(now)
        present = set()
        for pod in pods:
            present.add(pod.uid)
            self.observe(pod, now)

        gone = [uid for uid in self._first_seen if uid not in present]
        for uid in gone:
            del self._first_seen[uid]
        if gone:
            logger.debug(f"Pruned {len(gone)} stall entries for pods that disappeared")

    def first_seen(self, pod: PodRecord) -> Optional[float]:
        return self._first_seen.get(pod.uid)

    def dwell_seconds(self, pod: PodRecord, now: Optional[float] = None) -> float:
        first_seen = self._first_seen.get(pod.uid)
        if first_seen is None:
            return 0.0
        return self._now(now) - first_seen

    def is_stale(self, pod: PodRecord, threshold_seconds: float, now: Optional[float] = None) -> bool:
        """True once the pod has been stalled for at least the threshold"""
        first_seen = self._first_seen.get(pod.uid)
        if first_seen is None:
            return False
        return self._now(now) - first_seen >= threshold_seconds

    def forget(self, pod: PodRecord) -> None:
        """Drop a pod after its PVCs have been acted upon"""
        self._first_seen.pop(pod.uid, None)
