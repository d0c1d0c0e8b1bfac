"""Unit tests for candidate PVC selection."""

from conftest import PROVISIONER, STORAGE_CLASS, make_pvc
from pvc_reaper.filters import filter_candidates, matches_storage_criteria


def test_matches_storage_criteria():
    pvc = make_pvc(selected_node="node-1")
    assert matches_storage_criteria(pvc, [STORAGE_CLASS], PROVISIONER)


def test_matches_storage_criteria_multiple_classes():
    pvc = make_pvc(storage_class="local-storage")
    assert matches_storage_criteria(pvc, [STORAGE_CLASS, "local-storage"], PROVISIONER)


def test_rejects_other_storage_class():
    pvc = make_pvc(storage_class="gp3")
    assert not matches_storage_criteria(pvc, [STORAGE_CLASS], PROVISIONER)


def test_rejects_other_provisioner():
    pvc = make_pvc(provisioner="ebs.csi.aws.com")
    assert not matches_storage_criteria(pvc, [STORAGE_CLASS], PROVISIONER)


def test_missing_provisioner_annotation_is_not_managed():
    pvc = make_pvc(provisioner=None)
    assert not matches_storage_criteria(pvc, [STORAGE_CLASS], PROVISIONER)


def test_missing_storage_class_is_excluded():
    pvc = make_pvc(storage_class=None)
    assert not matches_storage_criteria(pvc, [STORAGE_CLASS], PROVISIONER)


def test_filter_candidates_keeps_snapshot_order():
    pvcs = [
        make_pvc("c"),
        make_pvc("skip", storage_class="gp3"),
        make_pvc("a"),
        make_pvc("unmanaged", provisioner=None),
        make_pvc("b"),
    ]

    candidates = filter_candidates(pvcs, [STORAGE_CLASS], PROVISIONER)

    assert [pvc.name for pvc in candidates] == ["c", "a", "b"]


def test_filter_candidates_empty_allow_list():
    assert filter_candidates([make_pvc()], [], PROVISIONER) == []
