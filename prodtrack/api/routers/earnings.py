# prodtrack/api/routers/earnings.py
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from prodtrack.api.problem import raise_422, unwrap
from prodtrack.db.session import get_session
from prodtrack.schemas.common import to_utc
from prodtrack.schemas.earnings import (
    AutoRecordIn,
    ConfirmIn,
    EarningOut,
    EarningsRecordIn,
    EarningsSummaryOut,
    HoldIn,
    OperatorEarningsOut,
    PayIn,
)
from prodtrack.services.earnings_service import EarningsService

router = APIRouter(prefix="/earnings", tags=["earnings"])


def _check_range(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start is not None and end is not None and to_utc(start) > to_utc(end):
        raise_422("VALIDATION_ERROR", "start must not be after end", context={"start": str(start), "end": str(end)})


@router.post("", response_model=EarningOut, status_code=201)
async def record_earnings(payload: EarningsRecordIn, session: AsyncSession = Depends(get_session)):
    return unwrap(await EarningsService(session).record_earnings(payload.model_dump()))


@router.post("/auto", response_model=EarningOut, status_code=201)
async def auto_record_earnings(payload: AutoRecordIn, session: AsyncSession = Depends(get_session)):
    res = await EarningsService(session).auto_record_from_work_completion(
        payload.work.model_dump(),
        [r.model_dump() for r in payload.rates],
    )
    return unwrap(res, context={"operation": payload.work.operation, "machine_type": payload.work.machine_type})


@router.post("/{earnings_id}/confirm", response_model=EarningOut)
async def confirm_earnings(
    earnings_id: str,
    payload: ConfirmIn,
    session: AsyncSession = Depends(get_session),
):
    res = await EarningsService(session).confirm_earnings(earnings_id, payload.supervisor_id)
    return unwrap(res, context={"earnings_id": earnings_id})


@router.post("/{earnings_id}/hold", response_model=EarningOut)
async def hold_earnings(
    earnings_id: str,
    payload: HoldIn,
    session: AsyncSession = Depends(get_session),
):
    res = await EarningsService(session).hold_earnings(earnings_id, payload.reason, payload.supervisor_id)
    return unwrap(res, context={"earnings_id": earnings_id})


@router.post("/{earnings_id}/pay", response_model=EarningOut)
async def mark_earnings_paid(
    earnings_id: str,
    payload: PayIn,
    session: AsyncSession = Depends(get_session),
):
    res = await EarningsService(session).mark_as_paid(earnings_id, payload.payment_details, payload.admin_id)
    return unwrap(res, context={"earnings_id": earnings_id})


@router.get("/operator/{operator_id}", response_model=EarningsSummaryOut)
async def operator_earnings_summary(
    operator_id: str,
    start: Optional[datetime] = Query(None, description="completed_at >= start (needs end)"),
    end: Optional[datetime] = Query(None, description="completed_at <= end (needs start)"),
    session: AsyncSession = Depends(get_session),
):
    _check_range(start, end)
    return unwrap(await EarningsService(session).get_operator_earnings_summary(operator_id, start, end))


@router.get("/operators", response_model=List[OperatorEarningsOut])
async def all_operators_earnings(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    session: AsyncSession = Depends(get_session),
):
    _check_range(start, end)
    return unwrap(await EarningsService(session).get_all_operators_earnings(start, end))
