"""
Deletion executor: applies one cycle's verdicts, one PVC at a time
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from pvc_reaper.logger import ReaperLogger
from pvc_reaper.models import Decision, DeleteOutcome, DeleteResult

logger = logging.getLogger(__name__)


@dataclass
class ExecutionReport:
    """Tally and per-resource results of one executor pass"""

    kept: int = 0
    reaped: int = 0
    dry_run_flagged: int = 0
    already_deleted: int = 0
    failed: int = 0
    failure_reasons: List[str] = field(default_factory=list)
    results: List[DeleteResult] = field(default_factory=list)


class DeletionExecutor:
    """Issues PVC deletes through the cluster gateway.

    A failing delete never stops the pass: every outcome, including an
    unexpected exception from the gateway, is recorded as a result and
    counted in the report.
    """

    def __init__(self, gateway, reaper_logger: Optional[ReaperLogger] = None):
        self.gateway = gateway
        self.reaper_logger = reaper_logger or ReaperLogger()

    def execute(self, decisions: Iterable[Decision], dry_run: bool) -> ExecutionReport:
        report = ExecutionReport()

        for decision in decisions:
            pvc, verdict = decision.pvc, decision.verdict
            self.reaper_logger.log_verdict(pvc, verdict)

            if not verdict.is_reap:
                report.kept += 1
                continue

            if pvc.is_terminating:
                logger.info(f"PVC {pvc.key} is already terminating, not deleting again")
                report.already_deleted += 1
                report.results.append(DeleteResult(
                    pvc=pvc, verdict=verdict, outcome=DeleteOutcome.TERMINATING
                ))
                continue

            if dry_run:
                self.reaper_logger.log_dry_run(pvc, verdict.reason)
                report.dry_run_flagged += 1
                report.results.append(DeleteResult(pvc=pvc, verdict=verdict, dry_run=True))
                continue

            result = self._delete(decision)
            report.results.append(result)

            if result.outcome is DeleteOutcome.SUCCESS:
                report.reaped += 1
                self.reaper_logger.log_pvc_reaped(pvc, verdict.reason)
            elif result.outcome is DeleteOutcome.NOT_FOUND:
                report.already_deleted += 1
            else:
                report.failed += 1
                report.failure_reasons.append(
                    f"{pvc.key}: {result.outcome.value}"
                    + (f" ({result.error})" if result.error else "")
                )
                self.reaper_logger.log_delete_failed(pvc, result.outcome.value, result.error)

        return report

    def _delete(self, decision: Decision) -> DeleteResult:
        pvc = decision.pvc
        try:
            outcome = self.gateway.delete_pvc(pvc.namespace, pvc.name, uid=pvc.uid)
        except Exception as e:
            logger.error(f"Unexpected error deleting PVC {pvc.key}: {e}")
            return DeleteResult(
                pvc=pvc,
                verdict=decision.verdict,
                outcome=DeleteOutcome.TRANSIENT_ERROR,
                error=str(e),
            )

        return DeleteResult(pvc=pvc, verdict=decision.verdict, outcome=outcome)
