"""
Data model shared by the reconciliation components
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import FrozenSet, List, Optional

SELECTED_NODE_ANNOTATION = "volume.kubernetes.io/selected-node"
PROVISIONER_ANNOTATION = "volume.beta.kubernetes.io/storage-provisioner"
PROVISIONER_ANNOTATION_GA = "volume.kubernetes.io/storage-provisioner"

# Live node names for one cycle
NodeSet = FrozenSet[str]


@dataclass(frozen=True)
class PvcRecord:
    """Immutable snapshot of a PersistentVolumeClaim"""

    namespace: str
    name: str
    uid: Optional[str] = None
    storage_class: Optional[str] = None
    provisioner: Optional[str] = None
    selected_node: Optional[str] = None
    creation_timestamp: Optional[datetime] = None
    deletion_timestamp: Optional[datetime] = None

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @property
    def is_terminating(self) -> bool:
        """Deletion already requested, waiting on finalizers"""
        return self.deletion_timestamp is not None


@dataclass(frozen=True)
class PodRecord:
    """Immutable snapshot of a Pod and the claims it mounts"""

    namespace: str
    name: str
    uid: str
    phase: Optional[str] = None
    unschedulable: bool = False
    pvc_names: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @property
    def is_stalled(self) -> bool:
        """A pod is stalled while it is stuck in the Pending phase"""
        return self.phase == "Pending"

    def uses_pvc(self, pvc: PvcRecord) -> bool:
        return self.namespace == pvc.namespace and pvc.name in self.pvc_names


class Action(Enum):
    KEEP = "keep"
    REAP = "reap"


@dataclass(frozen=True)
class Verdict:
    action: Action
    reason: str

    @classmethod
    def keep(cls, reason: str) -> "Verdict":
        return cls(Action.KEEP, reason)

    @classmethod
    def reap(cls, reason: str) -> "Verdict":
        return cls(Action.REAP, reason)

    @property
    def is_reap(self) -> bool:
        return self.action is Action.REAP


class DeleteOutcome(Enum):
    """Result of a single delete call against the API server"""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    TRANSIENT_ERROR = "transient_error"
    TERMINATING = "terminating"

    @property
    def is_failure(self) -> bool:
        return self in (DeleteOutcome.FORBIDDEN, DeleteOutcome.TRANSIENT_ERROR)


@dataclass(frozen=True)
class Decision:
    """A candidate PVC paired with the verdict computed for it this cycle"""

    pvc: PvcRecord
    verdict: Verdict
    blocking_pods: FrozenSet[str] = field(default_factory=frozenset)


@dataclass
class DeleteResult:
    """Per-resource outcome recorded by the deletion executor"""

    pvc: PvcRecord
    verdict: Verdict
    outcome: Optional[DeleteOutcome] = None
    dry_run: bool = False
    error: Optional[str] = None

    @property
    def deleted(self) -> bool:
        return self.outcome is DeleteOutcome.SUCCESS

    @property
    def resolved(self) -> bool:
        """The PVC is gone or on its way out, whoever removed it"""
        return self.outcome in (
            DeleteOutcome.SUCCESS, DeleteOutcome.NOT_FOUND, DeleteOutcome.TERMINATING
        )

    @property
    def failed(self) -> bool:
        return self.outcome is not None and self.outcome.is_failure


@dataclass
class CycleSummary:
    """Structured record emitted at the end of every completed cycle"""

    cycle_id: str
    cycle_timestamp: datetime
    candidates_considered: int = 0
    reaped: int = 0
    dry_run_flagged: int = 0
    kept: int = 0
    failed: int = 0
    already_deleted: int = 0
    failure_reasons: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0
    dry_run: bool = False

    def to_dict(self) -> dict:
        return {
            "cycle_id": self.cycle_id,
            "cycle_timestamp": self.cycle_timestamp.isoformat(),
            "candidates_considered": self.candidates_considered,
            "reaped": self.reaped,
            "dry_run_flagged": self.dry_run_flagged,
            "kept": self.kept,
            "failed": self.failed,
            "already_deleted": self.already_deleted,
            "failure_reasons": list(self.failure_reasons),
            "duration_seconds": round(self.duration_seconds, 3),
            "dry_run": self.dry_run,
        }
