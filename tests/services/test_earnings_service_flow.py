# tests/services/test_earnings_service_flow.py
from __future__ import annotations

import pytest

from prodtrack.services.earnings_service import EarningsService, calculate_damage_deduction
from tests.factories import at

RATES = [
    {"operation": "Shoulder Join", "machine_type": "overlock", "rate_per_piece": 2.5},
    {"operation": "Bottom Fold", "machine_type": "flatlock", "rate_per_piece": 2.75},
]


def _work(**kw):
    data = {
        "operator_id": "op-1",
        "operator_name": "Sita",
        "bundle_number": "B001",
        "article_number": "8085",
        "operation": "Shoulder Join",
        "machine_type": "overlock",
        "pieces": 100,
    }
    data.update(kw)
    return data


@pytest.mark.parametrize(
    "damage,expected",
    [
        ({"operator_fault": False, "damage_type": "fabric_damage", "severity": "major"}, 0),
        ({"operator_fault": True, "damage_type": "broken_stitch", "severity": "major", "pieces": 10, "total_pieces": 100}, 4),
        ({"operator_fault": True, "damage_type": "broken_stitch", "severity": "minor", "pieces": 10, "total_pieces": 100}, 1),
        ({"operator_fault": True, "damage_type": "missing_operation", "severity": "minor", "pieces": 100, "total_pieces": 100}, 75),
        ({"operator_fault": True, "damage_type": "unheard_of", "severity": "major", "pieces": 100, "total_pieces": 100}, 13),
        ({"operator_fault": True, "damage_type": "wrong_measurement", "severity": "major"}, 50),
    ],
)
def test_damage_deduction(damage, expected):
    assert calculate_damage_deduction(damage, 250.0) == expected


async def test_record_earnings(session):
    svc = EarningsService(session)

    res = await svc.record_earnings({**_work(), "rate_per_piece": 2.5})
    assert res.success
    e = res.data
    assert e["base_earnings"] == 250.0
    assert e["damage_deduction"] == 0
    assert e["earnings"] == 250.0
    assert e["status"] == "pending"
    assert e["completed_at"] is not None

    damage = {
        "has_damage": True,
        "damage_type": "broken_stitch",
        "severity": "major",
        "pieces": 10,
        "total_pieces": 100,
        "operator_fault": True,
        "reason": "loose seams",
    }
    res = await svc.record_earnings({**_work(), "rate_per_piece": 2.5, "damage_info": damage})
    assert res.data["damage_deduction"] == 4
    assert res.data["earnings"] == 246.0
    assert res.data["damage_reason"] == "loose seams"

    # reported but not the operator's fault
    res = await svc.record_earnings(
        {**_work(), "rate_per_piece": 2.5, "damage_info": {"has_damage": True, "operator_fault": False}}
    )
    assert res.data["damage_deduction"] == 0
    assert res.data["damage_reason"] == "Damage reported"


@pytest.mark.parametrize(
    "data",
    [
        {"pieces": 10, "rate_per_piece": 2.5},
        {"operator_id": "op-1", "pieces": 10},
        {"operator_id": "op-1", "pieces": "many", "rate_per_piece": 2.5},
        {"operator_id": "op-1", "pieces": -1, "rate_per_piece": 2.5},
    ],
)
async def test_record_earnings_rejects_bad_input(session, data):
    res = await EarningsService(session).record_earnings(data)
    assert res.success is False
    assert res.error_type == "VALIDATION_ERROR"


async def test_status_transitions(session):
    svc = EarningsService(session)
    eid = (await svc.record_earnings({**_work(), "rate_per_piece": 2.5})).data["id"]

    res = await svc.confirm_earnings(eid, "sup-1")
    assert res.data["status"] == "confirmed"
    assert res.data["confirmed_by"] == "sup-1" and res.data["confirmed_at"] is not None

    res = await svc.hold_earnings(eid, "quality dispute", "sup-2")
    assert res.data["status"] == "held"
    assert res.data["hold_reason"] == "quality dispute" and res.data["held_by"] == "sup-2"

    res = await svc.mark_as_paid(eid, {"method": "cash", "reference": "PAY-7"}, "admin-1")
    assert res.data["status"] == "paid"
    assert res.data["paid_by"] == "admin-1"
    assert res.data["payment_details"] == {"method": "cash", "reference": "PAY-7"}

    assert (await svc.confirm_earnings("nope", "sup-1")).error_type == "NOT_FOUND"
    assert (await svc.hold_earnings("nope", "x", "sup-1")).error_type == "NOT_FOUND"
    assert (await svc.mark_as_paid("nope", None, "admin-1")).error_type == "NOT_FOUND"


async def test_operator_summary_and_date_range(session):
    svc = EarningsService(session)
    first = (await svc.record_earnings({**_work(), "rate_per_piece": 2.5, "completed_at": at(0)})).data
    await svc.record_earnings({**_work(pieces=40), "rate_per_piece": 2.5, "completed_at": at(60)})
    await svc.record_earnings({**_work(operator_id="op-2", operator_name="Ram"), "rate_per_piece": 3.0,
                               "completed_at": at(30)})
    await svc.confirm_earnings(first["id"], "sup-1")

    s = (await svc.get_operator_earnings_summary("op-1")).data
    assert s["work_count"] == 2
    assert s["total_pieces"] == 140
    assert s["total_earnings"] == 350.0
    assert s["confirmed_earnings"] == 250.0
    assert s["pending_earnings"] == 100.0
    assert s["paid_earnings"] == 0 and s["held_earnings"] == 0
    assert [e["pieces"] for e in s["earnings"]] == [100, 40]

    s = (await svc.get_operator_earnings_summary("op-1", at(30), at(90))).data
    assert s["work_count"] == 1 and s["total_earnings"] == 100.0

    # half-open ranges are ignored
    s = (await svc.get_operator_earnings_summary("op-1", at(30), None)).data
    assert s["work_count"] == 2

    assert (await svc.get_operator_earnings_summary("nobody")).data["work_count"] == 0


async def test_all_operators_grouping(session):
    svc = EarningsService(session)
    await svc.record_earnings({**_work(), "rate_per_piece": 2.5, "completed_at": at(0)})
    await svc.record_earnings({**_work(operator_id="op-2", operator_name="Ram"), "rate_per_piece": 3.0,
                               "completed_at": at(10)})
    await svc.record_earnings({**_work(pieces=20), "rate_per_piece": 2.5, "completed_at": at(20)})

    rows = {r["operator_id"]: r for r in (await svc.get_all_operators_earnings()).data}
    assert set(rows) == {"op-1", "op-2"}
    assert rows["op-1"]["operator_name"] == "Sita"
    assert rows["op-1"]["work_count"] == 2 and rows["op-1"]["total_earnings"] == 300.0
    assert rows["op-2"]["total_earnings"] == 300.0

    rows = (await svc.get_all_operators_earnings(at(5), at(15))).data
    assert [r["operator_id"] for r in rows] == ["op-2"]


async def test_auto_record_uses_matching_rate(session):
    svc = EarningsService(session)

    res = await svc.auto_record_from_work_completion(_work(operation="Bottom Fold", machine_type="flatlock"), RATES)
    assert res.success
    assert res.data["rate_per_piece"] == 2.75
    assert res.data["earnings"] == 275.0

    res = await svc.auto_record_from_work_completion(_work(machine_type="flatlock"), RATES)
    assert res.success is False
    assert res.error_type == "VALIDATION_ERROR"
    assert res.error == "No rate configured for this operation"
