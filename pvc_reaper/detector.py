"""
Orphan detection: does a PVC point at a node that is gone?
"""

from typing import AbstractSet

from pvc_reaper.models import PvcRecord, Verdict

NO_BINDING_REASON = "no node binding yet"
NODE_ALIVE_REASON = "node alive"


def detect_orphan(pvc: PvcRecord, node_names: AbstractSet[str]) -> Verdict:
    """Verdict for one candidate PVC against this cycle's live node names.

    Never touches the network; the only input is the selected-node
    annotation captured in the PVC snapshot.
    """
    if not pvc.selected_node:
        return Verdict.keep(NO_BINDING_REASON)

    if pvc.selected_node in node_names:
        return Verdict.keep(NODE_ALIVE_REASON)

    return Verdict.reap(f"references missing node {pvc.selected_node}")
