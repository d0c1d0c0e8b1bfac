"""
Configuration management for PVC Reaper
"""

import os
from typing import List, Optional
from dataclasses import dataclass
from dotenv import load_dotenv

from pvc_reaper.exceptions import ConfigError

# Load environment variables
load_dotenv()

LOG_FORMATS = ("json", "console")


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {value!r}")


def _unique(values: List[str]) -> List[str]:
    """Drop empty and repeated entries, keeping first-seen order"""
    seen = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


@dataclass
class Config:
    """Configuration class for PVC Reaper"""

    # Kubernetes configuration
    kube_config_path: Optional[str] = None
    in_cluster: bool = True
    api_timeout_seconds: int = 30

    # PVC selection
    storage_classes: List[str] = None
    storage_provisioner: str = "local.csi.openebs.io"

    # Scheduling configuration
    reap_interval_secs: int = 60

    # Reaping behaviour
    dry_run: bool = False
    check_unschedulable_pods: bool = True
    unschedulable_pod_threshold_secs: int = 120

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"

    # Execution control
    mock_mode: bool = False
    run_once: bool = False

    # Metrics and notifications
    pushgateway_url: Optional[str] = None
    prometheus_job_name: str = "pvc_reaper"
    cluster_name: str = "unknown"
    forbidden_warning_cycles: int = 3

    def __post_init__(self):
        """Initialize default values after dataclass creation"""
        if self.storage_classes is None:
            self.storage_classes = ["openebs-lvm"]

        # Override with environment variables if present
        self.kube_config_path = os.getenv(
            "KUBE_CONFIG_PATH", os.getenv("KUBECONFIG", self.kube_config_path)
        )
        self.in_cluster = _env_bool("IN_CLUSTER", self.in_cluster)
        self.api_timeout_seconds = _env_int("API_TIMEOUT_SECONDS", self.api_timeout_seconds)
        self.storage_provisioner = os.getenv("STORAGE_PROVISIONER", self.storage_provisioner).strip()
        self.reap_interval_secs = _env_int("REAP_INTERVAL_SECS", self.reap_interval_secs)
        self.dry_run = _env_bool("DRY_RUN", self.dry_run)
        self.check_unschedulable_pods = _env_bool(
            "CHECK_UNSCHEDULABLE_PODS", self.check_unschedulable_pods
        )
        self.unschedulable_pod_threshold_secs = _env_int(
            "UNSCHEDULABLE_POD_THRESHOLD_SECS", self.unschedulable_pod_threshold_secs
        )
        self.log_level = os.getenv("LOG_LEVEL", self.log_level)
        self.log_format = os.getenv("LOG_FORMAT", self.log_format).lower()
        self.mock_mode = _env_bool("MOCK_MODE", self.mock_mode)
        self.run_once = _env_bool("RUN_ONCE", self.run_once)
        self.pushgateway_url = os.getenv("PROMETHEUS_PUSHGATEWAY_URL", self.pushgateway_url)
        self.prometheus_job_name = os.getenv("PROMETHEUS_JOB_NAME", self.prometheus_job_name)
        self.cluster_name = os.getenv("CLUSTER_NAME", self.cluster_name)
        self.forbidden_warning_cycles = _env_int(
            "FORBIDDEN_WARNING_CYCLES", self.forbidden_warning_cycles
        )

        # Parse storage classes from environment
        storage_classes_env = os.getenv("STORAGE_CLASS_NAMES")
        if storage_classes_env:
            self.storage_classes = [sc.strip() for sc in storage_classes_env.split(",")]
        self.storage_classes = _unique([sc.strip() for sc in self.storage_classes])

    def validate(self) -> "Config":
        """Reject values the reconciliation loop cannot run with"""
        if not self.storage_classes:
            raise ConfigError("At least one storage class name is required")
        if not self.storage_provisioner:
            raise ConfigError("Storage provisioner must not be empty")
        if self.reap_interval_secs < 1:
            raise ConfigError(
                f"Reap interval must be at least 1 second, got {self.reap_interval_secs}"
            )
        if self.unschedulable_pod_threshold_secs < 0:
            raise ConfigError(
                "Unschedulable pod threshold must not be negative, "
                f"got {self.unschedulable_pod_threshold_secs}"
            )
        if self.api_timeout_seconds < 1:
            raise ConfigError(
                f"API timeout must be at least 1 second, got {self.api_timeout_seconds}"
            )
        if self.forbidden_warning_cycles < 1:
            raise ConfigError(
                f"Forbidden warning cycles must be at least 1, got {self.forbidden_warning_cycles}"
            )
        if self.log_format not in LOG_FORMATS:
            raise ConfigError(
                f"Log format must be one of {', '.join(LOG_FORMATS)}, got {self.log_format!r}"
            )
        return self

    def as_dict(self) -> dict:
        """Loggable view of the configuration"""
        return {
            "storage_classes": list(self.storage_classes),
            "storage_provisioner": self.storage_provisioner,
            "reap_interval_secs": self.reap_interval_secs,
            "dry_run": self.dry_run,
            "check_unschedulable_pods": self.check_unschedulable_pods,
            "unschedulable_pod_threshold_secs": self.unschedulable_pod_threshold_secs,
            "api_timeout_seconds": self.api_timeout_seconds,
            "mock_mode": self.mock_mode,
            "run_once": self.run_once,
            "pushgateway_enabled": bool(self.pushgateway_url),
        }

