# tests/unit/test_checklist.py
from __future__ import annotations

import copy

import pytest

from prodtrack.services import checklist as cm


def _shoulder_bundle(**kw):
    b = {"id": "b1", "operation": "Shoulder Join", "status": "pending"}
    b.update(kw)
    return b


def test_known_templates_and_generic_fallback():
    assert [s["id"] for s in cm.get_work_checklist("Shoulder Join")] == [
        "cut_check",
        "alignment",
        "seam_stitch",
        "overlock_finish",
        "quality_check",
    ]
    assert len(cm.get_work_checklist("Neck Join")) == 5
    assert len(cm.get_work_checklist("Bottom Fold")) == 4
    assert len(cm.get_work_checklist("Sleeve Fold")) == 4
    assert len(cm.get_work_checklist("Neck Band")) == 5

    generic = cm.get_work_checklist("Pocket Attach")
    assert [s["name"] for s in generic] == ["Preparation", "Main Work", "Quality Check"]
    assert cm.get_work_checklist(None) == generic


def test_initialize_is_idempotent_and_does_not_mutate():
    b = _shoulder_bundle()
    before = copy.deepcopy(b)

    once = cm.initialize_bundle_checklist(b)
    twice = cm.initialize_bundle_checklist(once)

    assert b == before
    assert once["checklist_initialized"] is True
    assert len(once["checklist"]) == 5
    assert all(it["completed"] is False and it["completed_by"] is None for it in once["checklist"])
    assert twice["checklist"] == once["checklist"]


def test_initialize_uses_current_operation_when_operation_missing():
    b = cm.initialize_bundle_checklist({"id": "w1", "current_operation": "Bottom Fold"})
    assert [it["id"] for it in b["checklist"]][0] == "measure_hem"


def test_empty_checklist_is_available_and_pending():
    b = {"id": "x", "status": "pending"}
    assert cm.should_show_in_available_work(b) is True
    assert cm.get_bundle_completion_percentage(b) == 0
    assert cm.get_bundle_status(b) == "pending"


def test_shoulder_join_progress_40_then_100():
    b = cm.initialize_bundle_checklist(_shoulder_bundle())

    b = cm.update_checklist_item(b, "cut_check", True, "op-1")
    b = cm.update_checklist_item(b, "alignment", True, "op-1")
    assert cm.get_bundle_completion_percentage(b) == 40
    assert b["status"] == "in-progress"
    assert cm.should_show_in_available_work(b) is True

    for item_id in ("seam_stitch", "overlock_finish", "quality_check"):
        b = cm.update_checklist_item(b, item_id, True, "op-1")
    assert cm.get_bundle_completion_percentage(b) == 100
    assert b["status"] == "completed"
    assert cm.should_show_in_available_work(b) is False
    assert cm.get_remaining_time(b) == 0


def test_uncomplete_clears_completion_stamps():
    b = cm.initialize_bundle_checklist(_shoulder_bundle())
    b = cm.update_checklist_item(b, "cut_check", True, "op-1")
    item = next(it for it in b["checklist"] if it["id"] == "cut_check")
    assert item["completed_by"] == "op-1" and item["completed_at"]

    b = cm.update_checklist_item(b, "cut_check", False, "op-1")
    item = next(it for it in b["checklist"] if it["id"] == "cut_check")
    assert item["completed"] is False
    assert item["completed_at"] is None and item["completed_by"] is None
    assert b["status"] == "pending"
    assert "last_updated" in b


@pytest.mark.parametrize(
    "done,total,expected",
    [(1, 3, 33), (2, 3, 67), (1, 8, 13), (5, 8, 63), (3, 8, 38)],
)
def test_percentage_rounds_half_up(done, total, expected):
    checklist = [{"id": str(i), "completed": i < done} for i in range(total)]
    assert cm.get_bundle_completion_percentage({"checklist": checklist}) == expected


def test_filter_available_work_respects_status_allow_list():
    bundles = [
        {"id": "a", "status": "pending", "operation": "Neck Join"},
        {"id": "b", "status": "ready"},
        {"id": "c", "status": "in-progress"},
        {"id": "d", "status": "assigned"},
        {"id": "e", "status": "completed"},
        {"id": "f", "status": None},
    ]
    out = cm.filter_available_work(bundles)
    assert [b["id"] for b in out] == ["a", "b", "c"]
    assert all(b["status"] in {"pending", "ready", "in-progress"} for b in out)
    assert all(b["checklist"] for b in out)


def test_filter_available_work_drops_fully_completed():
    full = cm.initialize_bundle_checklist({"id": "z", "status": "ready", "operation": "Bottom Fold"})
    for it in full["checklist"]:
        it["completed"] = True
    assert cm.filter_available_work([full]) == []


def test_remaining_and_completed_work():
    b = cm.initialize_bundle_checklist(_shoulder_bundle())
    b = cm.update_checklist_item(b, "cut_check", True)
    assert [it["id"] for it in cm.get_completed_work(b)] == ["cut_check"]
    assert len(cm.get_remaining_work(b)) == 4
    # 8 + 12 + 10 + 5
    assert cm.get_remaining_time(b) == 35
