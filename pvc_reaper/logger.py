"""
Logging configuration for PVC Reaper
"""

import logging
import sys
from typing import Any, Dict, Optional
import structlog
from colorama import init as colorama_init

from pvc_reaper import __version__
from pvc_reaper.models import CycleSummary, PvcRecord, Verdict

# Initialize colorama for cross-platform colored output
colorama_init()


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Setup structured logging for the application"""

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if log_format == "json"
            else structlog.dev.ConsoleRenderer(colors=True)
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Suppress verbose kubernetes client logs
    logging.getLogger("kubernetes").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance"""
    return structlog.get_logger(name)


class ReaperLogger:
    """Specialized logger for reconciliation events"""

    def __init__(self):
        self.logger = get_logger("pvc-reaper")

    def log_startup(self, config_dict: Dict[str, Any]) -> None:
        """Log application startup"""
        self.logger.info(
            "PVC Reaper starting up",
            version=__version__,
            config=config_dict
        )

    def log_cycle_start(self, cycle_id: str, dry_run: bool) -> None:
        self.logger.info(
            "Starting reconciliation cycle",
            cycle_id=cycle_id,
            dry_run=dry_run
        )

    def log_snapshot(self, cycle_id: str, nodes: int, pvcs: int, pods: int) -> None:
        self.logger.info(
            "Loaded cluster snapshot",
            cycle_id=cycle_id,
            nodes=nodes,
            pvcs=pvcs,
            pods=pods
        )

    def log_cycle_end(self, summary: CycleSummary) -> None:
        """Log the summary record of a completed cycle"""
        self.logger.info("Reconciliation cycle completed", **summary.to_dict())

    def log_cycle_abandoned(self, cycle_id: str, error: Exception) -> None:
        self.logger.error(
            "Reconciliation cycle abandoned, no verdicts computed",
            cycle_id=cycle_id,
            error=str(error),
            error_type=type(error).__name__
        )

    def log_verdict(self, pvc: PvcRecord, verdict: Verdict) -> None:
        self.logger.debug(
            "PVC verdict",
            namespace=pvc.namespace,
            pvc_name=pvc.name,
            action=verdict.action.value,
            reason=verdict.reason
        )

    def log_pvc_reaped(self, pvc: PvcRecord, reason: str) -> None:
        self.logger.info(
            "PVC deleted",
            namespace=pvc.namespace,
            pvc_name=pvc.name,
            selected_node=pvc.selected_node,
            reason=reason
        )

    def log_dry_run(self, pvc: PvcRecord, reason: str) -> None:
        self.logger.info(
            "[DRY RUN] Would delete PVC",
            namespace=pvc.namespace,
            pvc_name=pvc.name,
            selected_node=pvc.selected_node,
            reason=reason
        )

    def log_delete_failed(self, pvc: PvcRecord, outcome: str, error: Optional[str]) -> None:
        self.logger.warning(
            "PVC deletion failed, leaving it for the next cycle",
            namespace=pvc.namespace,
            pvc_name=pvc.name,
            outcome=outcome,
            error=error
        )
