#!/usr/bin/env python3
"""
End-to-end run of the application in mock mode, for local development
"""

import os
import signal

import pytest

from pvc_reaper import main as main_module
from pvc_reaper.models import DeleteOutcome


@pytest.fixture(autouse=True)
def restore_signal_handlers():
    """main() installs process-wide handlers; put the originals back"""
    saved = {signum: signal.getsignal(signum) for signum in (signal.SIGINT, signal.SIGTERM)}
    yield
    for signum, handler in saved.items():
        signal.signal(signum, handler)


@pytest.fixture
def mock_env(clean_env):
    clean_env.setenv("MOCK_MODE", "true")
    clean_env.setenv("RUN_ONCE", "true")
    clean_env.setenv("LOG_FORMAT", "console")
    return clean_env


def test_run_once_in_mock_mode(mock_env):
    """A single mock cycle completes and exits cleanly"""
    assert main_module.main() == 0


def test_invalid_configuration_exits_with_error(mock_env):
    mock_env.setenv("REAP_INTERVAL_SECS", "0")
    assert main_module.main() == 1


def test_unloadable_kubeconfig_exits_with_error(clean_env, monkeypatch):
    """Without a reachable cluster configuration startup fails, it does not crash"""
    from kubernetes.config.config_exception import ConfigException

    clean_env.setenv("RUN_ONCE", "true")

    def no_configuration(self, kube_config_path, in_cluster):
        raise ConfigException("no config")

    monkeypatch.setattr(main_module.KubernetesClient, "_load_configuration", no_configuration)

    assert main_module.main() == 1


@pytest.mark.parametrize("signum", [signal.SIGINT, signal.SIGTERM])
def test_signal_during_delete_lets_run_once_cycle_finish(mock_env, monkeypatch, signum):
    """A shutdown signal mid-delete neither aborts the cycle nor loses its tally"""
    mock_env.setenv("UNSCHEDULABLE_POD_THRESHOLD_SECS", "0")
    summaries = []
    run_cycle = main_module.PvcReaper.run_cycle

    def recording_run_cycle(self, tracker):
        summary = run_cycle(self, tracker)
        summaries.append(summary)
        return summary

    def signalled_delete(self, namespace, name, uid=None):
        os.kill(os.getpid(), signum)
        return DeleteOutcome.SUCCESS

    monkeypatch.setattr(main_module.PvcReaper, "run_cycle", recording_run_cycle)
    monkeypatch.setattr(main_module.KubernetesClient, "delete_pvc", signalled_delete)

    assert main_module.main() == 0
    assert len(summaries) == 1
    assert summaries[0].reaped == 1
    assert summaries[0].failed == 0
