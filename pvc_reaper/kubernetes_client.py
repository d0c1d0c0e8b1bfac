import os
import logging
from typing import FrozenSet, List, Optional

import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException

from pvc_reaper.exceptions import ClusterConnectionError
from pvc_reaper.models import (
    PROVISIONER_ANNOTATION,
    PROVISIONER_ANNOTATION_GA,
    SELECTED_NODE_ANNOTATION,
    DeleteOutcome,
    PodRecord,
    PvcRecord,
)

logger = logging.getLogger(__name__)

FORBIDDEN_STATUSES = (401, 403)


def pvc_record_from(pvc) -> PvcRecord:
    """Convert a V1PersistentVolumeClaim into an immutable record"""
    metadata = pvc.metadata
    annotations = metadata.annotations or {}
    provisioner = annotations.get(PROVISIONER_ANNOTATION)
    if provisioner is None:
        provisioner = annotations.get(PROVISIONER_ANNOTATION_GA)

    return PvcRecord(
        namespace=metadata.namespace,
        name=metadata.name,
        uid=metadata.uid,
        storage_class=pvc.spec.storage_class_name if pvc.spec else None,
        provisioner=provisioner,
        selected_node=annotations.get(SELECTED_NODE_ANNOTATION),
        creation_timestamp=metadata.creation_timestamp,
        deletion_timestamp=metadata.deletion_timestamp,
    )


def _is_unschedulable(status) -> bool:
    for condition in (status.conditions or []) if status else []:
        if (condition.type == "PodScheduled" and condition.status == "False"
                and condition.reason == "Unschedulable"):
            return True
    return False


def pod_record_from(pod) -> PodRecord:
    """Convert a V1Pod into an immutable record with its claim names"""
    volumes = (pod.spec.volumes or []) if pod.spec else []
    claims = frozenset(
        volume.persistent_volume_claim.claim_name
        for volume in volumes
        if volume.persistent_volume_claim is not None
    )
    return PodRecord(
        namespace=pod.metadata.namespace,
        name=pod.metadata.name,
        uid=pod.metadata.uid,
        phase=pod.status.phase if pod.status else None,
        unschedulable=_is_unschedulable(pod.status),
        pvc_names=claims,
    )


def classify_api_error(error: Exception) -> DeleteOutcome:
    """Map a failed delete call onto the outcome taxonomy"""
    if isinstance(error, ApiException):
        if error.status == 404:
            return DeleteOutcome.NOT_FOUND
        if error.status in FORBIDDEN_STATUSES:
            return DeleteOutcome.FORBIDDEN
    # Timeouts, conflicts, throttling and server errors are retried next cycle
    return DeleteOutcome.TRANSIENT_ERROR


class KubernetesClient:
    def __init__(self, use_mock=False, kube_config_path=None, in_cluster=True, timeout_seconds=30):
        self.v1 = None
        self.timeout_seconds = timeout_seconds

        if use_mock:
            logger.info("Using mock mode - no real Kubernetes connection")
            return

        try:
            self._load_configuration(kube_config_path, in_cluster)
        except ConfigException as e:
            raise ClusterConnectionError(
                "Could not load Kubernetes configuration. "
                "Set KUBE_CONFIG_PATH, run inside a cluster, "
                f"or run with MOCK_MODE=true for testing: {e}"
            ) from e

        self.v1 = client.CoreV1Api()

        # Test the connection
        if self.test_connection():
            logger.info("✅ Kubernetes client initialized successfully")
        else:
            logger.warning("Kubernetes connection test failed, continuing; cycles will retry")

    def _load_configuration(self, kube_config_path, in_cluster):
        if kube_config_path and os.path.exists(kube_config_path):
            logger.info(f"Loading kubeconfig from: {kube_config_path}")
            config.load_kube_config(config_file=kube_config_path)
            return

        if in_cluster:
            try:
                config.load_incluster_config()
                logger.info("Loaded in-cluster Kubernetes configuration")
                return
            except ConfigException:
                logger.info("In-cluster configuration unavailable, trying kubeconfig")

        possible_paths = [
            os.path.expanduser("~/.kube/config"),
            "/etc/kubernetes/admin.conf",
            "/etc/rancher/k3s/k3s.yaml"
        ]
        for kube_path in possible_paths:
            if os.path.exists(kube_path):
                logger.info(f"Loading kubeconfig from: {kube_path}")
                config.load_kube_config(config_file=kube_path)
                return

        config.load_kube_config()

    @property
    def is_mock(self) -> bool:
        return self.v1 is None

    def list_nodes(self) -> FrozenSet[str]:
        """Names of all nodes currently registered in the cluster"""
        if self.is_mock:
            return frozenset(["mock-node-a", "mock-node-b"])

        nodes = self.v1.list_node(watch=False, _request_timeout=self.timeout_seconds)
        return frozenset(node.metadata.name for node in nodes.items)

    def list_pvcs(self) -> List[PvcRecord]:
        """List PVCs from all namespaces"""
        if self.is_mock:
            return self._generate_mock_pvcs()

        pvcs = self.v1.list_persistent_volume_claim_for_all_namespaces(
            watch=False, _request_timeout=self.timeout_seconds
        )
        return [pvc_record_from(pvc) for pvc in pvcs.items]

    def list_pods(self) -> List[PodRecord]:
        """List pods from all namespaces"""
        if self.is_mock:
            return self._generate_mock_pods()

        pods = self.v1.list_pod_for_all_namespaces(
            watch=False, _request_timeout=self.timeout_seconds
        )
        return [pod_record_from(pod) for pod in pods.items]

    def delete_pvc(self, namespace: str, name: str, uid: Optional[str] = None) -> DeleteOutcome:
        """Delete a PVC, reporting the outcome instead of raising"""
        if self.is_mock:
            logger.warning(f"Mock mode - would delete PVC {namespace}/{name}")
            return DeleteOutcome.SUCCESS

        body = client.V1DeleteOptions()
        if uid:
            body.preconditions = client.V1Preconditions(uid=uid)

        try:
            self.v1.delete_namespaced_persistent_volume_claim(
                name=name,
                namespace=namespace,
                body=body,
                _request_timeout=self.timeout_seconds
            )
        except (ApiException, urllib3.exceptions.HTTPError, OSError) as e:
            outcome = classify_api_error(e)
            if outcome is DeleteOutcome.NOT_FOUND:
                logger.info(f"PVC {namespace}/{name} already deleted")
            else:
                logger.error(f"Failed to delete PVC {namespace}/{name}: {e}")
            return outcome

        logger.info(f"✅ Successfully deleted PVC {namespace}/{name}")
        return DeleteOutcome.SUCCESS

    def test_connection(self):
        """Test Kubernetes connection"""
        if self.is_mock:
            return False
        try:
            self.v1.get_api_resources(_request_timeout=self.timeout_seconds)
            return True
        except Exception:
            return False

    def _generate_mock_pvcs(self):
        """Generate mock PVCs for testing"""
        bindings = [None, "mock-node-a", "mock-node-gone"]
        return [
            PvcRecord(
                namespace="default",
                name=f"mock-pvc-{i}",
                uid=f"mock-pvc-uid-{i}",
                storage_class="openebs-lvm",
                provisioner="local.csi.openebs.io",
                selected_node=node,
            )
            for i, node in enumerate(bindings)
        ]

    def _generate_mock_pods(self):
        """Generate mock pods for testing"""
        return [
            PodRecord(
                namespace="default",
                name="mock-pod-running",
                uid="mock-pod-uid-0",
                phase="Running",
                pvc_names=frozenset(["mock-pvc-1"]),
            ),
            PodRecord(
                namespace="default",
                name="mock-pod-pending",
                uid="mock-pod-uid-1",
                phase="Pending",
                unschedulable=True,
                pvc_names=frozenset(["mock-pvc-2"]),
            ),
        ]
