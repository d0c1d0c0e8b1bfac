"""
One reconciliation cycle: snapshot, filter, detect, debounce, execute
"""

import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from pvc_reaper.config import Config
from pvc_reaper.detector import detect_orphan
from pvc_reaper.exceptions import SnapshotError
from pvc_reaper.executor import DeletionExecutor
from pvc_reaper.filters import filter_candidates
from pvc_reaper.logger import ReaperLogger
from pvc_reaper.models import CycleSummary, Decision, NodeSet, PodRecord, PvcRecord, Verdict
from pvc_reaper.notifications import NotificationManager
from pvc_reaper.stall_tracker import StallTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClusterSnapshot:
    """Everything a cycle reads from the API, taken once"""

    node_names: NodeSet
    pvcs: List[PvcRecord]
    pods: List[PodRecord]
    taken_at: float


class PvcReaper:
    def __init__(self, config: Config, gateway, notification_manager: Optional[NotificationManager] = None,
                 reaper_logger: Optional[ReaperLogger] = None, clock: Callable[[], float] = time.time):
        self.config = config
        self.gateway = gateway
        self.reaper_logger = reaper_logger or ReaperLogger()
        self.notification_manager = notification_manager or NotificationManager(
            pushgateway_url=config.pushgateway_url,
            job_name=config.prometheus_job_name,
            cluster_name=config.cluster_name,
            forbidden_warning_cycles=config.forbidden_warning_cycles,
        )
        self.executor = DeletionExecutor(gateway, self.reaper_logger)
        self.clock = clock

    def take_snapshot(self) -> ClusterSnapshot:
        """List nodes, PVCs and pods concurrently; any failure voids the snapshot"""
        calls = {
            "nodes": self.gateway.list_nodes,
            "pvcs": self.gateway.list_pvcs,
            "pods": self.gateway.list_pods,
        }
        with ThreadPoolExecutor(max_workers=len(calls), thread_name_prefix="snapshot") as pool:
            futures = {resource: pool.submit(call) for resource, call in calls.items()}

        results = {}
        for resource, future in futures.items():
            try:
                results[resource] = future.result()
            except Exception as e:
                raise SnapshotError(resource, e) from e

        return ClusterSnapshot(
            node_names=frozenset(results["nodes"]),
            pvcs=list(results["pvcs"]),
            pods=list(results["pods"]),
            taken_at=self.clock(),
        )

    def run_cycle(self, tracker: StallTracker) -> Optional[CycleSummary]:
        """Run one cycle; returns None when the snapshot could not be taken"""
        cycle_id = uuid.uuid4().hex[:12]
        cycle_timestamp = datetime.now(timezone.utc)
        start_time = time.monotonic()

        # Sampled once so the whole executor pass sees the same values
        dry_run = self.config.dry_run
        check_pods = self.config.check_unschedulable_pods

        self.reaper_logger.log_cycle_start(cycle_id, dry_run)

        try:
            snapshot = self.take_snapshot()
        except SnapshotError as e:
            self.reaper_logger.log_cycle_abandoned(cycle_id, e)
            self.notification_manager.publish_abandoned()
            return None

        self.reaper_logger.log_snapshot(
            cycle_id, len(snapshot.node_names), len(snapshot.pvcs), len(snapshot.pods)
        )

        candidates = filter_candidates(
            snapshot.pvcs, self.config.storage_classes, self.config.storage_provisioner
        )
        logger.info(f"Checking {len(candidates)} candidate PVCs out of {len(snapshot.pvcs)}")

        if check_pods:
            tracker.sync(snapshot.pods, snapshot.taken_at)

        decisions = self.decide(candidates, snapshot, tracker if check_pods else None)
        report = self.executor.execute(decisions, dry_run)

        if check_pods:
            self._forget_resolved_pods(decisions, report.results, snapshot.pods, tracker)

        summary = CycleSummary(
            cycle_id=cycle_id,
            cycle_timestamp=cycle_timestamp,
            candidates_considered=len(candidates),
            reaped=report.reaped,
            dry_run_flagged=report.dry_run_flagged,
            kept=report.kept,
            failed=report.failed,
            already_deleted=report.already_deleted,
            failure_reasons=report.failure_reasons,
            duration_seconds=time.monotonic() - start_time,
            dry_run=dry_run,
        )
        self.reaper_logger.log_cycle_end(summary)
        self.notification_manager.publish_cycle(summary, report.results, len(tracker))
        return summary

    def decide(self, candidates: List[PvcRecord], snapshot: ClusterSnapshot,
               tracker: Optional[StallTracker]) -> List[Decision]:
        """Verdict per candidate; with a tracker, orphans behind fresh stalls are held"""
        stalled_by_claim = self._index_stalled_pods(snapshot.pods) if tracker is not None else {}

        decisions = []
        for pvc in candidates:
            verdict = detect_orphan(pvc, snapshot.node_names)
            blocking = stalled_by_claim.get((pvc.namespace, pvc.name), [])

            if verdict.is_reap and blocking:
                verdict = self._debounce(pvc, verdict, blocking, tracker, snapshot.taken_at)

            decisions.append(Decision(
                pvc=pvc,
                verdict=verdict,
                blocking_pods=frozenset(pod.uid for pod in blocking),
            ))
        return decisions

    def _debounce(self, pvc: PvcRecord, verdict: Verdict, blocking: List[PodRecord],
                  tracker: StallTracker, now: float) -> Verdict:
        threshold = self.config.unschedulable_pod_threshold_secs
        for pod in blocking:
            if tracker.is_stale(pod, threshold, now):
                return Verdict.reap(f"{verdict.reason}; pod {pod.key} stalled past {threshold}s")

        pod = blocking[0]
        dwell = tracker.dwell_seconds(pod, now)
        logger.info(
            f"Holding orphaned PVC {pvc.key}: pod {pod.key} stalled for {dwell:.0f}s "
            f"(unschedulable={pod.unschedulable}), threshold {threshold}s"
        )
        return Verdict.keep(
            f"{verdict.reason}; pod {pod.key} stalled for {dwell:.0f}s of {threshold}s"
        )

    @staticmethod
    def _index_stalled_pods(pods: List[PodRecord]) -> Dict[Tuple[str, str], List[PodRecord]]:
        index: Dict[Tuple[str, str], List[PodRecord]] = {}
        for pod in pods:
            if not pod.is_stalled:
                continue
            for claim in sorted(pod.pvc_names):
                index.setdefault((pod.namespace, claim), []).append(pod)
        return index

    @staticmethod
    def _forget_resolved_pods(decisions, results, pods, tracker: StallTracker) -> None:
        """Drop stall entries of pods whose PVC is gone or going after this cycle"""
        resolved = {result.pvc.key for result in results if result.resolved}
        if not resolved:
            return

        pods_by_uid = {pod.uid: pod for pod in pods}
        for decision in decisions:
            if decision.pvc.key not in resolved:
                continue
            for uid in decision.blocking_pods:
                pod = pods_by_uid.get(uid)
                if pod is not None:
                    tracker.forget(pod)
