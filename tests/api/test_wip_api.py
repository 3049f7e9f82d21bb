# tests/api/test_wip_api.py
from __future__ import annotations

import pytest

from tests._problem import as_problem

pytestmark = pytest.mark.contract

ENTRY = {
    "article": "8085",
    "article_name": "Polo T-Shirt",
    "color": "Blue-1",
    "size": "M",
    "pieces": 25,
    "current_operation": "Hem Fold",
    "lot_number": "S-85",
}


async def _create(client, **kw):
    r = await client.post("/wip", json={**ENTRY, **kw})
    assert r.status_code == 201, r.text
    return r.json()


async def test_create_and_list_work_items(client):
    created = await _create(client)
    assert created["status"] == "pending"
    assert created["completed_pieces"] == 0

    r = await client.get("/wip/work-items")
    assert r.status_code == 200
    (item,) = r.json()
    assert item["id"] == f"{created['id']}-work-item"
    assert item["wip_entry_id"] == created["id"]
    assert item["machine_type"] == "flatlock"
    assert item["machine_type_detected"] is True
    assert item["article_name"] == "Polo T-Shirt"

    r = await client.get("/wip", params={"status": "pending"})
    assert [e["id"] for e in r.json()] == [created["id"]]


async def test_create_missing_fields_is_422(client):
    r = await client.post("/wip", json={"color": "Blue-1", "size": "M"})
    assert r.status_code == 422
    p = as_problem(r.json())
    assert p["error_code"] == "VALIDATION_ERROR"
    assert p["message"] == "Missing required fields: article, pieces"


async def test_available_and_summary(client):
    await _create(client)
    await _create(client, current_operation="Shoulder Join", pieces=15)

    r = await client.get("/wip/available", params={"machine_type": "flatlock"})
    assert [it["current_operation"] for it in r.json()] == ["Hem Fold"]
    r = await client.get("/wip/available", params={"machine_type": "all"})
    assert len(r.json()) == 2

    r = await client.get("/wip/summary")
    assert r.json() == {
        "total": 2,
        "total_pieces": 40,
        "completed_pieces": 0,
        "status_counts": {"pending": 2},
        "completion_rate": 0.0,
    }


async def test_assign_conflict_and_complete(client):
    created = await _create(client)
    wid = f"{created['id']}-work-item"

    r = await client.post(f"/wip/work-items/{wid}/assign", json={"operator_id": "op-1"})
    assert r.status_code == 200, r.text
    assert r.json()["assigned_operator"] == "op-1"

    r = await client.post(f"/wip/work-items/{wid}/assign", json={"operator_id": "op-2"})
    assert r.status_code == 409
    p = as_problem(r.json())
    assert p["error_code"] == "ALREADY_ASSIGNED"
    assert p["context"]["operator_id"] == "op-2"

    r = await client.post("/wip/work-items/nope-work-item/assign", json={"operator_id": "op-2"})
    assert r.status_code == 404
    assert as_problem(r.json())["error_code"] == "NOT_FOUND"

    r = await client.post(f"/wip/work-items/{wid}/complete", json={"completed_pieces": 25})
    assert r.status_code == 200
    assert r.json() == {"id": wid, "completed_pieces": 25, "status": "completed"}

    r = await client.post(f"/wip/work-items/{wid}/complete", json={"completed_pieces": -1})
    assert r.status_code == 422
    assert as_problem(r.json())["error_code"] == "request_validation_error"


async def test_patch_entry(client):
    created = await _create(client)

    r = await client.patch(f"/wip/{created['id']}", json={"priority": "high"})
    assert r.status_code == 200
    assert r.json()["priority"] == "high"

    r = await client.patch(f"/wip/{created['id']}", json={})
    assert r.status_code == 422
    assert as_problem(r.json())["error_code"] == "VALIDATION_ERROR"

    r = await client.patch("/wip/nope", json={"priority": "low"})
    assert r.status_code == 404


@pytest.mark.parametrize("field", ["pieces", "completed_pieces"])
async def test_patch_null_count_is_422_and_row_untouched(client, field):
    created = await _create(client)

    r = await client.patch(f"/wip/{created['id']}", json={field: None})
    assert r.status_code == 422, r.text
    p = as_problem(r.json())
    assert p["error_code"] == "request_validation_error"
    assert p["details"][0]["loc"][-1] == field

    r = await client.get("/wip", params={"status": "pending"})
    assert r.status_code == 200
    row = next(e for e in r.json() if e["id"] == created["id"])
    assert row["pieces"] == 25
    assert row["completed_pieces"] == 0


async def test_import_dry_run_then_commit(client):
    payload = {
        "csv": "Article,Color,XS,S,M\n8085,Blue-1,5,10,\n,Red-2,,4,6\n",
        "lot_number": "S-90",
        "current_operation": "Shoulder Join",
        "dry_run": True,
    }
    r = await client.post("/wip/import", json=payload)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["parsed"]["format"] == "horizontal_matrix"
    assert body["parsed"]["total_pieces"] == 25
    assert body["validation"]["is_valid"] is True
    assert body["stats"]["total_colors"] == 2
    assert body["stats"]["estimated_bundles"] == 1
    assert body["entries"] == []
    assert (await client.get("/wip/summary")).json()["total"] == 0

    r = await client.post("/wip/import", json={**payload, "dry_run": False})
    assert r.status_code == 200, r.text
    entries = r.json()["entries"]
    assert sorted((e["color"], e["size"], e["pieces"]) for e in entries) == [
        ("Blue-1", "S", 10),
        ("Blue-1", "XS", 5),
        ("Red-2", "M", 6),
        ("Red-2", "S", 4),
    ]
    assert all(e["lot_number"] == "S-90" and e["article"] == "8085" for e in entries)

    r = await client.get("/wip/available", params={"machine_type": "overlock"})
    assert len(r.json()) == 4


async def test_import_errors(client):
    r = await client.post("/wip/import", json={"rows": [["Name", "Qty"], ["x", "1"]], "article": "8085"})
    assert r.status_code == 422
    assert as_problem(r.json())["error_code"] == "IMPORT_ERROR"

    r = await client.post("/wip/import", json={"article": "8085"})
    assert r.status_code == 422
    assert as_problem(r.json())["error_code"] == "VALIDATION_ERROR"

    # parses, but every cell is empty
    r = await client.post("/wip/import", json={"rows": [["Color", "S"], ["Blue", "0"]], "article": "8085"})
    assert r.status_code == 422
    p = as_problem(r.json())
    assert p["error_code"] == "IMPORT_ERROR"
    assert "No color data found" in p["message"]
