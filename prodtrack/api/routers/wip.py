# prodtrack/api/routers/wip.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from prodtrack.api.problem import raise_422, unwrap
from prodtrack.config import flags
from prodtrack.db.session import get_session
from prodtrack.schemas.wip import (
    AssignIn,
    CompleteIn,
    WipEntryCreateIn,
    WipEntryOut,
    WipEntryUpdateIn,
    WipImportIn,
    WipImportOut,
    WipSummaryOut,
    WorkItemAssignOut,
    WorkItemCompleteOut,
    WorkItemOut,
)
from prodtrack.services.errors import WipImportError
from prodtrack.services.wip_import import generate_stats, parse_wip_data, rows_from_csv, validate_parsed
from prodtrack.services.wip_service import WIPService

router = APIRouter(prefix="/wip", tags=["wip"])


@router.get("/work-items", response_model=List[WorkItemOut])
async def list_work_items(session: AsyncSession = Depends(get_session)):
    return unwrap(await WIPService(session).get_work_items_from_wip())


@router.get("/available", response_model=List[WorkItemOut])
async def list_available_work_items(
    machine_type: Optional[str] = Query(None, description="'all' or empty = every machine"),
    session: AsyncSession = Depends(get_session),
):
    return unwrap(await WIPService(session).get_available_work_items(machine_type))


@router.get("/summary", response_model=WipSummaryOut)
async def wip_summary(session: AsyncSession = Depends(get_session)):
    return unwrap(await WIPService(session).get_wip_summary())


@router.get("", response_model=List[WipEntryOut])
async def list_wip_entries(
    status: str = Query(..., min_length=1),
    session: AsyncSession = Depends(get_session),
):
    return unwrap(await WIPService(session).get_wip_entries_by_status(status))


@router.post("", response_model=WipEntryOut, status_code=201)
async def create_wip_entry(payload: WipEntryCreateIn, session: AsyncSession = Depends(get_session)):
    data = payload.model_dump(exclude_none=True)
    return unwrap(await WIPService(session).create_wip_entry(data))


@router.patch("/{wip_id}", response_model=WipEntryOut)
async def update_wip_entry(
    wip_id: str,
    payload: WipEntryUpdateIn,
    session: AsyncSession = Depends(get_session),
):
    data = payload.model_dump(exclude_unset=True)
    if not data:
        raise_422("VALIDATION_ERROR", "no fields to update", context={"wip_id": wip_id})
    return unwrap(await WIPService(session).update_wip_entry(wip_id, data), context={"wip_id": wip_id})


@router.post("/work-items/{work_item_id}/assign", response_model=WorkItemAssignOut)
async def assign_work_item(
    work_item_id: str,
    payload: AssignIn,
    session: AsyncSession = Depends(get_session),
):
    res = await WIPService(session).assign_work_item_to_operator(work_item_id, payload.operator_id)
    return unwrap(res, context={"work_item_id": work_item_id, "operator_id": payload.operator_id})


@router.post("/work-items/{work_item_id}/complete", response_model=WorkItemCompleteOut)
async def complete_work_item(
    work_item_id: str,
    payload: CompleteIn,
    session: AsyncSession = Depends(get_session),
):
    res = await WIPService(session).complete_work_item(work_item_id, payload.completed_pieces)
    return unwrap(res, context={"work_item_id": work_item_id})


if flags.ENABLE_WIP_IMPORT:

    @router.post("/import", response_model=WipImportOut)
    async def import_wip(payload: WipImportIn, session: AsyncSession = Depends(get_session)):
        """
        Parse a cutting sheet and create one WIP entry per color/size cell.

        - rows: JSON rows, first row = headers
        - csv:  raw CSV text
        - dry_run: parse + validate only
        """
        if payload.rows:
            rows = payload.rows
        elif payload.csv:
            rows = rows_from_csv(payload.csv)
        else:
            raise_422("VALIDATION_ERROR", "either rows or csv is required")

        try:
            parsed = parse_wip_data(rows, payload.format)
        except WipImportError as e:
            raise_422(e.code, e.message, context={"format": payload.format})

        validation = validate_parsed(parsed)
        out = {
            "parsed": parsed.to_dict(),
            "validation": validation,
            "stats": generate_stats(parsed),
            "entries": [],
        }
        if payload.dry_run:
            return out
        if not validation["is_valid"]:
            raise_422("IMPORT_ERROR", "; ".join(validation["errors"]), context={"format": parsed.format})

        res = await WIPService(session).import_wip(
            parsed,
            lot_number=payload.lot_number,
            article=payload.article,
            article_name=payload.article_name,
            current_operation=payload.current_operation,
            priority=payload.priority,
        )
        out["entries"] = unwrap(res)
        return out
