"""
Metrics publishing and persistent-failure warnings - Prometheus only
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional

import requests
from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest

from pvc_reaper.models import CycleSummary, DeleteOutcome, DeleteResult

logger = logging.getLogger(__name__)


class ReaperMetrics:
    """Prometheus metrics for the reconciliation loop, in their own registry"""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        self.cycles = Counter(
            'pvc_reaper_cycles', 'Completed reconciliation cycles', registry=self.registry
        )
        self.cycles_abandoned = Counter(
            'pvc_reaper_cycles_abandoned',
            'Cycles abandoned because the cluster snapshot could not be taken',
            registry=self.registry
        )
        self.pvcs_reaped = Counter(
            'pvc_reaper_pvcs_reaped', 'PVCs deleted', registry=self.registry
        )
        self.pvcs_dry_run = Counter(
            'pvc_reaper_pvcs_dry_run_flagged', 'PVCs that would have been deleted in dry-run',
            registry=self.registry
        )
        self.pvcs_already_deleted = Counter(
            'pvc_reaper_pvcs_already_deleted', 'Deletes that found the PVC already gone',
            registry=self.registry
        )
        self.pvcs_failed = Counter(
            'pvc_reaper_pvcs_failed', 'PVC deletions that failed', registry=self.registry
        )
        self.last_candidates = Gauge(
            'pvc_reaper_last_cycle_candidates', 'Candidate PVCs considered in the last cycle',
            registry=self.registry
        )
        self.last_duration = Gauge(
            'pvc_reaper_last_cycle_duration_seconds', 'Duration of the last cycle',
            registry=self.registry
        )
        self.last_success = Gauge(
            'pvc_reaper_last_success_timestamp_seconds', 'Unix time of the last completed cycle',
            registry=self.registry
        )
        self.stalled_pods = Gauge(
            'pvc_reaper_stalled_pods_tracked', 'Pods currently tracked as stalled',
            registry=self.registry
        )

    def record_cycle(self, summary: CycleSummary, stalled_pods: int = 0) -> None:
        self.cycles.inc()
        self.pvcs_reaped.inc(summary.reaped)
        self.pvcs_dry_run.inc(summary.dry_run_flagged)
        self.pvcs_already_deleted.inc(summary.already_deleted)
        self.pvcs_failed.inc(summary.failed)
        self.last_candidates.set(summary.candidates_considered)
        self.last_duration.set(summary.duration_seconds)
        self.last_success.set(summary.cycle_timestamp.timestamp())
        self.stalled_pods.set(stalled_pods)

    def record_abandoned(self) -> None:
        self.cycles_abandoned.inc()


class NotificationManager:
    def __init__(self, metrics: Optional[ReaperMetrics] = None, pushgateway_url: Optional[str] = None,
                 job_name: str = "pvc_reaper", cluster_name: str = "unknown",
                 forbidden_warning_cycles: int = 3):
        self.metrics = metrics or ReaperMetrics()
        self.pushgateway_url = pushgateway_url
        self.job_name = job_name
        self.cluster_name = cluster_name
        self.forbidden_warning_cycles = forbidden_warning_cycles
        self.forbidden_streaks: Dict[str, int] = {}
        self.sent_notifications: Dict[str, datetime] = {}
        self.notification_cooldown = timedelta(minutes=30)

    def publish_cycle(self, summary: CycleSummary, results: Iterable[DeleteResult],
                      stalled_pods: int = 0) -> None:
        """Record a completed cycle and surface persistent authorization failures"""
        self.metrics.record_cycle(summary, stalled_pods)
        self.track_forbidden(results)
        self.push_metrics()

    def publish_abandoned(self) -> None:
        self.metrics.record_abandoned()
        self.push_metrics()

    def track_forbidden(self, results: Iterable[DeleteResult]) -> None:
        """Count consecutive cycles in which each PVC was forbidden.

        A PVC attempted without a forbidden outcome ends its streak; PVCs
        not attempted this cycle are dropped as well.
        """
        streaks = {}
        for result in results:
            if result.outcome is DeleteOutcome.FORBIDDEN:
                streaks[result.pvc.key] = self.forbidden_streaks.get(result.pvc.key, 0) + 1
        self.forbidden_streaks = streaks

        for pvc_key, streak in streaks.items():
            if streak >= self.forbidden_warning_cycles:
                self.send_notification(
                    pvc_key,
                    f"Deletion forbidden for {streak} consecutive cycles; "
                    "check the RBAC permissions of the reaper service account",
                )

    def send_notification(self, pvc_key: str, details: str) -> bool:
        """Emit a warning about a PVC, at most once per cooldown window"""
        last_notification = self.sent_notifications.get(pvc_key)
        if last_notification and datetime.now() - last_notification < self.notification_cooldown:
            logger.debug(f"Notification for {pvc_key} is in cooldown")
            return False

        logger.warning(f"PERSISTENT PVC DELETE FAILURE - {pvc_key}: {details}")
        self.sent_notifications[pvc_key] = datetime.now()
        return True

    def push_metrics(self) -> bool:
        """Push the metrics registry to the Prometheus Pushgateway, if configured"""
        if not self.pushgateway_url:
            return False

        url = f"{self.pushgateway_url.rstrip('/')}/metrics/job/{self.job_name}/cluster/{self.cluster_name}"
        try:
            response = requests.put(
                url,
                data=generate_latest(self.metrics.registry),
                headers={'Content-Type': 'text/plain; version=0.0.4'},
                timeout=10
            )
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Failed to push to Pushgateway: {e}")
            return False

        logger.debug(f"Successfully pushed metrics to Pushgateway at {url}")
        return True
