# prodtrack/api/routers/bundles.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from prodtrack.api.problem import unwrap
from prodtrack.db.session import get_session
from prodtrack.schemas.bundle import (
    BundleCreateIn,
    BundleOut,
    BundleStatusIn,
    ChecklistUpdateIn,
)
from prodtrack.schemas.wip import AssignIn
from prodtrack.services.bundle_service import BundleService

router = APIRouter(prefix="/bundles", tags=["bundles"])

_MACHINE_Q = Query(None, description="'all' or empty = every machine")


@router.get("", response_model=List[BundleOut])
async def list_bundles(session: AsyncSession = Depends(get_session)):
    return unwrap(await BundleService(session).get_all_bundles())


@router.get("/available", response_model=List[BundleOut])
async def list_available_bundles(
    machine_type: Optional[str] = _MACHINE_Q,
    session: AsyncSession = Depends(get_session),
):
    return unwrap(await BundleService(session).get_available_bundles(machine_type))


@router.get("/available-work", response_model=List[BundleOut])
async def list_available_work(
    machine_type: Optional[str] = _MACHINE_Q,
    session: AsyncSession = Depends(get_session),
):
    return unwrap(await BundleService(session).get_available_work(machine_type))


@router.get("/operator/{operator_id}", response_model=List[BundleOut])
async def list_operator_bundles(
    operator_id: str,
    machine_type: Optional[str] = _MACHINE_Q,
    session: AsyncSession = Depends(get_session),
):
    return unwrap(await BundleService(session).get_operator_bundles(operator_id, machine_type))


@router.get("/{bundle_id}", response_model=BundleOut)
async def get_bundle(bundle_id: str, session: AsyncSession = Depends(get_session)):
    return unwrap(await BundleService(session).get_bundle_by_id(bundle_id), context={"bundle_id": bundle_id})


@router.post("", response_model=BundleOut, status_code=201)
async def create_bundle(payload: BundleCreateIn, session: AsyncSession = Depends(get_session)):
    return unwrap(await BundleService(session).create_bundle(payload.model_dump(exclude_none=True)))


@router.post("/{bundle_id}/assign", response_model=BundleOut)
async def assign_bundle(
    bundle_id: str,
    payload: AssignIn,
    session: AsyncSession = Depends(get_session),
):
    res = await BundleService(session).assign_to_operator(
        bundle_id, payload.operator_id, assigned_by=payload.assigned_by
    )
    return unwrap(res, context={"bundle_id": bundle_id, "operator_id": payload.operator_id})


@router.post("/{bundle_id}/status", response_model=BundleOut)
async def update_bundle_status(
    bundle_id: str,
    payload: BundleStatusIn,
    session: AsyncSession = Depends(get_session),
):
    res = await BundleService(session).update_bundle_status(
        bundle_id, payload.status, payload.completed_pieces, payload.extra
    )
    return unwrap(res, context={"bundle_id": bundle_id})


@router.post("/{bundle_id}/checklist/{item_id}", response_model=BundleOut)
async def update_checklist_item(
    bundle_id: str,
    item_id: str,
    payload: ChecklistUpdateIn,
    session: AsyncSession = Depends(get_session),
):
    res = await BundleService(session).update_checklist_item(
        bundle_id, item_id, payload.completed, payload.user_id
    )
    return unwrap(res, context={"bundle_id": bundle_id, "item_id": item_id})
