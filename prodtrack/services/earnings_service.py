# prodtrack/services/earnings_service.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from prodtrack.models.operator_earning import OperatorEarning
from prodtrack.services.checklist import round_half_up
from prodtrack.services.document_repo import DocumentRepo, Filter, where_equal
from prodtrack.services.errors import NotFoundError, ServiceError, ValidationError
from prodtrack.services.result import ServiceResult, fail_from

log = logging.getLogger("prodtrack.earnings")

UTC = timezone.utc

# damage_type -> (major, minor) share of base earnings
DAMAGE_RATES: Mapping[str, tuple] = {
    "broken_stitch": (0.15, 0.05),
    "wrong_measurement": (0.20, 0.10),
    "fabric_damage": (0.25, 0.10),
    "missing_operation": (0.30, 0.30),
}
DEFAULT_DAMAGE_RATE = 0.05


def calculate_damage_deduction(damage: Mapping[str, Any], base_earnings: float) -> int:
    """
    Deduction for damaged pieces, only when the operator is at fault.

    rate(type, severity) * base * affected_pieces / total_pieces, rounded.
    """
    if not damage.get("operator_fault"):
        return 0

    major, minor = DAMAGE_RATES.get(damage.get("damage_type") or "", (DEFAULT_DAMAGE_RATE, DEFAULT_DAMAGE_RATE))
    pct = major if damage.get("severity") == "major" else minor

    affected = damage.get("pieces") or 1
    total = damage.get("total_pieces") or 1
    return round_half_up(base_earnings * pct * (affected / total))


def earning_to_dict(e: OperatorEarning) -> Dict[str, Any]:
    return {c.key: getattr(e, c.key) for c in OperatorEarning.__table__.columns}


def _empty_totals() -> Dict[str, Any]:
    return {
        "total_earnings": 0.0,
        "pending_earnings": 0.0,
        "confirmed_earnings": 0.0,
        "paid_earnings": 0.0,
        "held_earnings": 0.0,
        "total_pieces": 0,
        "work_count": 0,
        "damage_deductions": 0.0,
        "earnings": [],
    }


def _accumulate(acc: Dict[str, Any], row: Dict[str, Any]) -> None:
    amount = row.get("earnings") or 0
    acc["total_earnings"] += amount
    acc["total_pieces"] += row.get("pieces") or 0
    acc["damage_deductions"] += row.get("damage_deduction") or 0
    acc["work_count"] += 1
    key = f"{row.get('status')}_earnings"
    if key in acc:
        acc[key] += amount
    acc["earnings"].append(row)


class EarningsService:
    """Piece-rate wage records: record -> confirm / hold -> paid."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo: DocumentRepo[OperatorEarning] = DocumentRepo(session, OperatorEarning)

    async def record_earnings(self, data: Mapping[str, Any]) -> ServiceResult:
        if not data.get("operator_id"):
            return ServiceResult.from_service_error(ValidationError("operator_id is required"))
        try:
            pieces = int(data.get("pieces") or 0)
            rate = float(data.get("rate_per_piece"))
        except (TypeError, ValueError):
            return ServiceResult.from_service_error(
                ValidationError("pieces and rate_per_piece must be numbers")
            )
        if pieces < 0 or rate < 0:
            return ServiceResult.from_service_error(
                ValidationError("pieces and rate_per_piece must not be negative")
            )

        base = pieces * rate
        deduction = 0
        reason = ""
        damage = data.get("damage_info") or {}
        if damage.get("has_damage"):
            deduction = calculate_damage_deduction(damage, base)
            reason = damage.get("reason") or "Damage reported"

        now = datetime.now(UTC)
        values = {
            "operator_id": data["operator_id"],
            "operator_name": data.get("operator_name"),
            "bundle_number": data.get("bundle_number"),
            "article_number": data.get("article_number"),
            "operation": data.get("operation"),
            "machine_type": data.get("machine_type"),
            "pieces": pieces,
            "rate_per_piece": rate,
            "base_earnings": base,
            "damage_deduction": deduction,
            "damage_reason": reason,
            "earnings": base - deduction,
            "status": "pending",
            "quality_notes": data.get("quality_notes") or "",
            "started_at": data.get("started_at") or now,
            "completed_at": data.get("completed_at") or now,
        }
        try:
            e = await self.repo.create(values)
            await self.session.commit()
        except SQLAlchemyError as exc:
            return await fail_from(self.session, exc, "record_earnings")

        log.info(
            "earnings recorded: id=%s operator=%s bundle=%s earnings=%s",
            e.id, e.operator_name or e.operator_id, e.bundle_number, e.earnings,
        )
        return ServiceResult.ok(earning_to_dict(e))

    async def _set_status(self, earnings_id: str, data: Dict[str, Any], operation: str) -> ServiceResult:
        try:
            if not await self.repo.update(earnings_id, data):
                raise NotFoundError(f"Earnings record {earnings_id} not found")
            await self.session.commit()
            e = await self.repo.get_by_id(earnings_id)
        except (ServiceError, SQLAlchemyError) as exc:
            return await fail_from(self.session, exc, operation)
        log.info("earnings %s -> %s", earnings_id, data["status"])
        return ServiceResult.ok(earning_to_dict(e) if e else None)

    async def confirm_earnings(self, earnings_id: str, supervisor_id: str) -> ServiceResult:
        return await self._set_status(
            earnings_id,
            {"status": "confirmed", "confirmed_at": datetime.now(UTC), "confirmed_by": supervisor_id},
            "confirm_earnings",
        )

    async def hold_earnings(self, earnings_id: str, reason: str, supervisor_id: str) -> ServiceResult:
        return await self._set_status(
            earnings_id,
            {
                "status": "held",
                "hold_reason": reason,
                "held_at": datetime.now(UTC),
                "held_by": supervisor_id,
            },
            "hold_earnings",
        )

    async def mark_as_paid(
        self, earnings_id: str, payment_details: Optional[Mapping[str, Any]], admin_id: str
    ) -> ServiceResult:
        return await self._set_status(
            earnings_id,
            {
                "status": "paid",
                "paid_at": datetime.now(UTC),
                "paid_by": admin_id,
                "payment_details": dict(payment_details or {}),
            },
            "mark_as_paid",
        )

    # ------------------------------------------------------------------
    # summaries
    # ------------------------------------------------------------------
    async def _rows(
        self,
        filters: List[Filter],
        start: Optional[datetime],
        end: Optional[datetime],
    ) -> List[Dict[str, Any]]:
        # range only applies when both ends are given
        if start is not None and end is not None:
            filters = filters + [Filter("completed_at", ">=", start), Filter("completed_at", "<=", end)]
        rows = await self.repo.get_all(filters=filters, order_by="completed_at")
        return [earning_to_dict(r) for r in rows]

    async def get_operator_earnings_summary(
        self,
        operator_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> ServiceResult:
        try:
            rows = await self._rows([where_equal("operator_id", operator_id)], start, end)
        except SQLAlchemyError as exc:
            return await fail_from(self.session, exc, "get_operator_earnings_summary")

        summary = _empty_totals()
        for row in rows:
            _accumulate(summary, row)
        return ServiceResult.ok(summary)

    async def get_all_operators_earnings(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> ServiceResult:
        try:
            rows = await self._rows([], start, end)
        except SQLAlchemyError as exc:
            return await fail_from(self.session, exc, "get_all_operators_earnings")

        per_operator: Dict[str, Dict[str, Any]] = {}
        for row in rows:
            op = row["operator_id"]
            if op not in per_operator:
                per_operator[op] = {
                    "operator_id": op,
                    "operator_name": row.get("operator_name"),
                    **_empty_totals(),
                }
            _accumulate(per_operator[op], row)
        return ServiceResult.ok(list(per_operator.values()))

    async def auto_record_from_work_completion(
        self,
        data: Mapping[str, Any],
        rates: Sequence[Mapping[str, Any]],
    ) -> ServiceResult:
        rate = next(
            (
                r for r in rates
                if r.get("operation") == data.get("operation")
                and r.get("machine_type") == data.get("machine_type")
            ),
            None,
        )
        if rate is None:
            log.warning(
                "no rate for operation=%s machine_type=%s",
                data.get("operation"), data.get("machine_type"),
            )
            return ServiceResult.from_service_error(
                ValidationError("No rate configured for this operation")
            )
        return await self.record_earnings({**data, "rate_per_piece": rate.get("rate_per_piece")})
