#!/usr/bin/env python3
"""
PVC Reaper - Main Application
"""

import logging
import signal

from pvc_reaper.config import Config
from pvc_reaper.exceptions import ConfigError, ReaperError
from pvc_reaper.kubernetes_client import KubernetesClient
from pvc_reaper.logger import ReaperLogger, setup_logging
from pvc_reaper.reaper import PvcReaper
from pvc_reaper.scheduler import ReconciliationScheduler


def install_signal_handlers(scheduler: ReconciliationScheduler) -> None:
    """Let SIGTERM and SIGINT finish the running cycle, then exit"""
    def handle_signal(signum, frame):
        logging.getLogger('main').info(
            f"Received {signal.Signals(signum).name}, shutting down after the current cycle..."
        )
        scheduler.stop()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)


def main():
    """Main application entry point"""
    try:
        config = Config().validate()
    except ConfigError as e:
        setup_logging()
        logging.getLogger('main').error(f"Invalid configuration: {e}")
        return 1

    setup_logging(config.log_level, config.log_format)
    logger = logging.getLogger('main')
    reaper_logger = ReaperLogger()
    reaper_logger.log_startup(config.as_dict())

    if config.mock_mode:
        logger.info("🔧 Running in MOCK MODE - no actual Kubernetes operations")
    if config.dry_run:
        logger.info("Running in DRY RUN mode - PVCs will only be reported")

    try:
        gateway = KubernetesClient(
            use_mock=config.mock_mode,
            kube_config_path=config.kube_config_path,
            in_cluster=config.in_cluster,
            timeout_seconds=config.api_timeout_seconds,
        )
    except ReaperError as e:
        logger.error(f"Application failed to start: {e}")
        return 1

    reaper = PvcReaper(config, gateway, reaper_logger=reaper_logger)
    scheduler = ReconciliationScheduler(reaper, config.reap_interval_secs)
    logger.info("PVC Reaper initialized successfully")

    # Signals only stop new cycles, in both modes
    install_signal_handlers(scheduler)

    # Single execution and exit (for local testing and CronJob style runs)
    if config.run_once:
        logger.info("Running in run-once mode - single execution")
        scheduler.run_once()
        return 0

    scheduler.run_forever()
    return 0


if __name__ == "__main__":
    exit(main())
