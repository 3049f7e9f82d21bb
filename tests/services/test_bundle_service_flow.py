# tests/services/test_bundle_service_flow.py
from __future__ import annotations

import pytest
from prometheus_client import REGISTRY
from sqlalchemy import text

from prodtrack.services.bundle_service import (
    BundleService,
    filter_available_work_items,
    sort_bundles_by_priority,
)
from prodtrack.services.wip_service import WIPService
from tests.factories import at, make_bundle, make_wip


def _fallbacks() -> float:
    return REGISTRY.get_sample_value("available_bundles_fallback_total") or 0


def test_sort_by_priority_then_oldest_first():
    bundles = [
        {"id": "low", "priority": "low", "created_at": at(0)},
        {"id": "high-late", "priority": "high", "created_at": at(2)},
        {"id": "odd", "priority": "urgent", "created_at": at(0)},
        {"id": "med", "priority": "medium", "created_at": at(1)},
        {"id": "high-early", "priority": "HIGH", "created_at": at(1)},
    ]
    assert [b["id"] for b in sort_bundles_by_priority(bundles)] == [
        "high-early",
        "high-late",
        "odd",
        "med",
        "low",
    ]


def test_work_item_availability_rules():
    items = [
        {"id": "a", "status": "pending"},
        {"id": "b", "status": "pending", "assigned_operator": "op-1"},
        {"id": "c", "status": "self_assigned", "assigned_operator": "op-1"},
        {"id": "d", "status": "assigned", "assigned_operator": "op-1"},
        {"id": "e", "status": "operator_completed"},
        {"id": "f", "status": "in_progress"},
        {"id": "g", "status": "completed"},
        {"id": "h", "status": "ready"},
    ]
    assert [it["id"] for it in filter_available_work_items(items)] == ["a", "c", "h"]


async def test_available_bundles_come_from_wip_with_machine_filter(session):
    await make_wip(session, id="w1", current_operation="Hem Fold", lot_number="S-85")
    await make_bundle(session, id="b1", machine_type="overlock")
    svc = BundleService(session)
    fb0 = _fallbacks()

    res = await svc.get_available_bundles("flatlock")
    assert res.success
    assert len(res.data) == 1
    b = res.data[0]
    assert b["id"] == "w1-work-item"
    assert b["wip_entry_id"] == "w1"
    assert b["machine_type"] == "flatlock"
    assert b["article_number"] == b["article"] == "8085"
    assert b["quantity"] == b["pieces"] == 25
    assert b["lot_number"] == "S-85"

    # WIP has items, so the legacy overlock bundle is not mixed in
    assert (await svc.get_available_bundles("overlock")).data == []
    assert len((await svc.get_available_bundles("all")).data) == 1
    assert _fallbacks() == fb0


async def test_available_bundles_fall_back_to_bundle_table(session):
    await make_bundle(session, id="b1", machine_type="overlock", status="pending")
    await make_bundle(session, id="b2", machine_type="flatlock", status="ready")
    await make_bundle(session, id="b3", machine_type="overlock", status="waiting")
    await make_bundle(session, id="b4", machine_type="overlock", status="assigned")
    svc = BundleService(session)
    fb0 = _fallbacks()

    res = await svc.get_available_bundles()
    assert sorted(b["id"] for b in res.data) == ["b1", "b2", "b3"]

    res = await svc.get_available_bundles("overlock")
    assert sorted(b["id"] for b in res.data) == ["b1", "b3"]

    assert _fallbacks() == fb0 + 2


async def test_available_bundles_fall_back_when_wip_read_fails(session):
    await make_bundle(session, id="b1", machine_type="overlock", status="pending")
    await make_bundle(session, id="b2", machine_type="overlock", status="completed")
    await session.execute(text("DROP TABLE wip_entries"))
    await session.commit()
    svc = BundleService(session)
    fb0 = _fallbacks()

    wip = await WIPService(session).get_work_items_from_wip()
    assert wip.success is False and wip.error_type == "SCHEMA_ERROR"

    res = await svc.get_available_bundles()
    assert res.success
    assert [b["id"] for b in res.data] == ["b1"]
    assert _fallbacks() == fb0 + 1


async def test_operator_bundles_sorted_and_filtered(session):
    await make_bundle(session, id="b-low", priority="low", assigned_operator="op-1", created_at=at(0))
    await make_bundle(session, id="b-med", priority="medium", assigned_operator="op-1", created_at=at(1))
    await make_bundle(session, id="b-high2", priority="high", assigned_operator="op-1", created_at=at(2))
    await make_bundle(session, id="b-high1", priority="high", assigned_operator="op-1", created_at=at(1))
    await make_bundle(session, id="b-flat", priority="high", machine_type="flatlock",
                      assigned_operator="op-1", created_at=at(3))
    await make_bundle(session, id="b-other", priority="high", assigned_operator="op-2")
    svc = BundleService(session)

    res = await svc.get_operator_bundles("op-1", "overlock")
    assert [b["id"] for b in res.data] == ["b-high1", "b-high2", "b-med", "b-low"]

    res = await svc.get_operator_bundles("op-1", "all")
    assert [b["id"] for b in res.data][:3] == ["b-high1", "b-high2", "b-flat"]

    assert (await svc.get_operator_bundles("op-3")).data == []


async def test_assign_bundle_first_claim_wins(session):
    await make_bundle(session, id="b1")
    svc = BundleService(session)

    res = await svc.assign_to_operator("b1", "op-1", assigned_by="sup-1")
    assert res.success
    assert res.data["assigned_operator"] == "op-1"
    assert res.data["assigned_by"] == "sup-1"
    assert res.data["status"] == "assigned"
    assert res.data["assigned_at"] is not None

    res = await svc.assign_to_operator("b1", "op-2")
    assert res.success is False and res.error_type == "ALREADY_ASSIGNED"
    assert (await svc.get_bundle_by_id("b1")).data["assigned_operator"] == "op-1"

    assert (await svc.assign_to_operator("nope", "op-2")).error_type == "NOT_FOUND"


async def test_create_and_update_status(session):
    svc = BundleService(session)

    res = await svc.create_bundle({"bundle_number": "B100", "operation": "Neck Join", "status": "completed"})
    assert res.success
    bid = res.data["id"]
    assert res.data["status"] == "pending"
    assert res.data["priority"] == "medium"

    res = await svc.update_bundle_status(bid, "completed", completed_pieces=25)
    assert res.data["status"] == "completed"
    assert res.data["completed_pieces"] == 25
    assert res.data["completed_at"] is not None

    # the explicit status argument wins over a stray key in extra
    done0 = REGISTRY.get_sample_value("work_completions_total", {"kind": "bundle"}) or 0
    res = await svc.update_bundle_status(
        bid, "in-progress", extra={"status": "completed", "assigned_operator": "op-3"}
    )
    assert res.data["status"] == "in-progress"
    assert res.data["assigned_operator"] == "op-3"
    assert (REGISTRY.get_sample_value("work_completions_total", {"kind": "bundle"}) or 0) == done0

    assert (await svc.update_bundle_status("nope", "ready")).error_type == "NOT_FOUND"
    assert (await svc.get_bundle_by_id("nope")).error_type == "NOT_FOUND"
    assert len((await svc.get_all_bundles()).data) == 1


async def test_shoulder_join_checklist_progress(session):
    await make_bundle(session, id="b1", operation="Shoulder Join")
    svc = BundleService(session)

    await svc.update_checklist_item("b1", "cut_check", True, "op-1")
    res = await svc.update_checklist_item("b1", "alignment", True, "op-1")
    assert res.success
    assert res.data["completion_percentage"] == 40
    assert res.data["status"] == "in-progress"
    assert res.data["remaining_time"] == 27

    stored = (await svc.get_bundle_by_id("b1")).data
    assert stored["checklist_initialized"] is True
    assert stored["status"] == "in-progress"
    assert [it["completed"] for it in stored["checklist"]] == [True, True, False, False, False]
    assert stored["checklist"][0]["completed_by"] == "op-1"

    work = (await svc.get_available_work()).data
    assert [b["id"] for b in work] == ["b1"]
    assert work[0]["completion_percentage"] == 40

    for item_id in ("seam_stitch", "overlock_finish", "quality_check"):
        res = await svc.update_checklist_item("b1", item_id, True, "op-1")
    assert res.data["completion_percentage"] == 100
    assert res.data["status"] == "completed"

    stored = (await svc.get_bundle_by_id("b1")).data
    assert stored["status"] == "completed"
    assert stored["completed_at"] is not None
    assert (await svc.get_available_work()).data == []


async def test_checklist_unknown_targets(session):
    await make_bundle(session, id="b1", operation="Neck Join")
    svc = BundleService(session)

    assert (await svc.update_checklist_item("nope", "neck_prep", True)).error_type == "NOT_FOUND"
    assert (await svc.update_checklist_item("b1", "cut_check", True)).error_type == "NOT_FOUND"

    # the failed call did not persist a checklist
    stored = (await svc.get_bundle_by_id("b1")).data
    assert stored["checklist"] is None
    assert stored["checklist_initialized"] is False


async def test_available_work_pool(session):
    await make_bundle(session, id="b1", operation="Bottom Fold", machine_type="flatlock", created_at=at(0))
    await make_bundle(session, id="b2", operation="Neck Band", machine_type="singleNeedle", created_at=at(1))
    await make_bundle(session, id="b3", operation="Neck Join", status="assigned", created_at=at(2))
    svc = BundleService(session)

    work = (await svc.get_available_work()).data
    assert [b["id"] for b in work] == ["b1", "b2"]
    assert work[0]["remaining_time"] == 30
    assert work[1]["remaining_time"] == 50
    assert all(b["completion_percentage"] == 0 for b in work)

    work = (await svc.get_available_work("flatlock")).data
    assert [b["id"] for b in work] == ["b1"]
