"""
Candidate selection for PVCs managed by this controller
"""

from typing import Iterable, List

from pvc_reaper.models import PvcRecord


def matches_storage_criteria(pvc: PvcRecord, storage_classes: Iterable[str], provisioner: str) -> bool:
    """Check storage class and provisioner annotation of a single PVC"""
    if pvc.storage_class is None or pvc.provisioner is None:
        return False
    return pvc.storage_class in storage_classes and pvc.provisioner == provisioner


def filter_candidates(pvcs: Iterable[PvcRecord], storage_classes: Iterable[str],
                      provisioner: str) -> List[PvcRecord]:
    """Return the PVCs eligible for inspection, in snapshot order"""
    allowed = frozenset(storage_classes)
    return [pvc for pvc in pvcs if matches_storage_criteria(pvc, allowed, provisioner)]
