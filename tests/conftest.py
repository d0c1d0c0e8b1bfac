"""Pytest configuration and shared fixtures.

Record factories and an in-memory cluster gateway used across test modules.
"""

import os
import sys

import pytest

# Add the project root to Python path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from pvc_reaper.config import Config
from pvc_reaper.models import DeleteOutcome, PodRecord, PvcRecord

STORAGE_CLASS = "openebs-lvm"
PROVISIONER = "local.csi.openebs.io"

CONFIG_ENV_VARS = [
    "KUBE_CONFIG_PATH", "KUBECONFIG", "IN_CLUSTER", "API_TIMEOUT_SECONDS",
    "STORAGE_CLASS_NAMES", "STORAGE_PROVISIONER", "REAP_INTERVAL_SECS", "DRY_RUN",
    "CHECK_UNSCHEDULABLE_PODS", "UNSCHEDULABLE_POD_THRESHOLD_SECS", "LOG_LEVEL",
    "LOG_FORMAT", "MOCK_MODE", "RUN_ONCE", "PROMETHEUS_PUSHGATEWAY_URL",
    "PROMETHEUS_JOB_NAME", "CLUSTER_NAME", "FORBIDDEN_WARNING_CYCLES",
]


def make_pvc(name="data-1", namespace="ns", selected_node=None, storage_class=STORAGE_CLASS,
             provisioner=PROVISIONER, uid=None, deletion_timestamp=None):
    return PvcRecord(
        namespace=namespace,
        name=name,
        uid=uid or f"uid-{namespace}-{name}",
        storage_class=storage_class,
        provisioner=provisioner,
        selected_node=selected_node,
        deletion_timestamp=deletion_timestamp,
    )


def make_pod(name="p1", uid="u1", namespace="ns", phase="Pending", unschedulable=True, pvc_names=()):
    return PodRecord(
        namespace=namespace,
        name=name,
        uid=uid,
        phase=phase,
        unschedulable=unschedulable,
        pvc_names=frozenset(pvc_names),
    )


class FakeGateway:
    """In-memory stand-in for the Kubernetes gateway"""

    def __init__(self, nodes=(), pvcs=(), pods=()):
        self.nodes = set(nodes)
        self.pvcs = list(pvcs)
        self.pods = list(pods)
        self.delete_calls = []
        self.outcomes = {}
        self.list_errors = {}

    def _maybe_fail(self, resource):
        if resource in self.list_errors:
            raise self.list_errors[resource]

    def list_nodes(self):
        self._maybe_fail("nodes")
        return frozenset(self.nodes)

    def list_pvcs(self):
        self._maybe_fail("pvcs")
        return list(self.pvcs)

    def list_pods(self):
        self._maybe_fail("pods")
        return list(self.pods)

    def delete_pvc(self, namespace, name, uid=None):
        key = f"{namespace}/{name}"
        self.delete_calls.append(key)

        outcome = self.outcomes.get(key)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is not None:
            return outcome

        for pvc in self.pvcs:
            if pvc.key == key:
                self.pvcs.remove(pvc)
                return DeleteOutcome.SUCCESS
        return DeleteOutcome.NOT_FOUND


@pytest.fixture
def clean_env(monkeypatch):
    """Remove configuration variables so Config() only sees its arguments"""
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def config(clean_env) -> Config:
    return Config(
        storage_classes=[STORAGE_CLASS],
        storage_provisioner=PROVISIONER,
        reap_interval_secs=1,
        unschedulable_pod_threshold_secs=300,
    )


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway(nodes=["node-a", "node-b"])
