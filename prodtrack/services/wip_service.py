# prodtrack/services/wip_service.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from prodtrack.config.production import (
    DEFAULT_OPERATION,
    DEFAULT_PRIORITY,
    OPEN_BUNDLE_STATUSES,
    WORK_ITEM_ID_SUFFIX,
)
from prodtrack.core.config import get_settings
from prodtrack.models.wip_entry import WipEntry
from prodtrack.obs.metrics import work_assignments_total, work_completions_total
from prodtrack.services.document_repo import DocumentRepo, where_equal
from prodtrack.services.errors import (
    AlreadyAssignedError,
    NotFoundError,
    ServiceError,
    WipValidationError,
)
from prodtrack.services.machine_types import infer_machine_type
from prodtrack.services.result import ServiceResult, fail_from
from prodtrack.services.wip_import import ParsedWip

log = logging.getLogger("prodtrack.wip")

UTC = timezone.utc

REQUIRED_WIP_FIELDS = ("article", "size", "color", "pieces")


# =====================================================================
# pure helpers
# =====================================================================
def wip_entry_id_of(work_item_id: str) -> str:
    """'<wipEntryId>-work-item' -> '<wipEntryId>'"""
    if work_item_id.endswith(WORK_ITEM_ID_SUFFIX):
        return work_item_id[: -len(WORK_ITEM_ID_SUFFIX)]
    return work_item_id


def to_work_item(entry: WipEntry, *, default_machine_type: Optional[str] = None) -> Dict[str, Any]:
    """Project a WIP entry into the work-item shape offered to operators."""
    if entry.machine_type:
        machine_type, detected = entry.machine_type, True
    else:
        match = infer_machine_type(
            entry.current_operation,
            default_machine_type or get_settings().DEFAULT_MACHINE_TYPE,
        )
        machine_type, detected = match.machine_type, match.detected

    return {
        "id": f"{entry.id}{WORK_ITEM_ID_SUFFIX}",
        "wip_entry_id": entry.id,
        "article": entry.article,
        "article_name": entry.article_name or f"Article {entry.article}",
        "size": entry.size,
        "color": entry.color,
        "pieces": entry.pieces,
        "completed_pieces": entry.completed_pieces or 0,
        "status": entry.status or "pending",
        "machine_type": machine_type,
        "machine_type_detected": detected,
        "current_operation": entry.current_operation or DEFAULT_OPERATION,
        "priority": entry.priority or DEFAULT_PRIORITY,
        "deadline": entry.deadline,
        "assigned_operator": entry.assigned_operator,
        "assigned_at": entry.assigned_at,
        "lot_number": entry.lot_number,
        "roll_number": entry.roll_number,
        "created_at": entry.created_at,
        "updated_at": entry.updated_at,
    }


def validate_wip_data(data: Mapping[str, Any]) -> Optional[str]:
    """None when valid, otherwise the error message."""
    missing = [f for f in REQUIRED_WIP_FIELDS if not data.get(f)]
    if missing:
        return f"Missing required fields: {', '.join(missing)}"
    try:
        pieces = int(data["pieces"])
    except (TypeError, ValueError):
        return "Pieces must be a number"
    if pieces <= 0:
        return "Pieces must be greater than 0"
    return None


def calculate_wip_efficiency(entries: Sequence[Mapping[str, Any]]) -> Dict[str, Any]:
    if not entries:
        return {"efficiency": 0, "metrics": {}}

    total_pieces = sum(int(e.get("pieces") or 0) for e in entries)
    completed_pieces = sum(int(e.get("completed_pieces") or 0) for e in entries)
    in_progress = sum(1 for e in entries if e.get("status") == "in_progress")
    completed = sum(1 for e in entries if e.get("status") == "completed")

    efficiency = completed_pieces / total_pieces * 100 if total_pieces > 0 else 0
    return {
        "efficiency": round(efficiency, 2),
        "metrics": {
            "total_entries": len(entries),
            "total_pieces": total_pieces,
            "completed_pieces": completed_pieces,
            "in_progress": in_progress,
            "completed": completed,
            "pending": len(entries) - in_progress - completed,
        },
    }


def entry_to_dict(entry: WipEntry) -> Dict[str, Any]:
    return {c.key: getattr(entry, c.key) for c in WipEntry.__table__.columns}


# =====================================================================
# service
# =====================================================================
class WIPService:
    """
    WIP entries and the work items projected from them.

    Every public method returns a ServiceResult; writes are committed here
    and rolled back on failure.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo: DocumentRepo[WipEntry] = DocumentRepo(session, WipEntry)

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    async def _work_items(self) -> List[Dict[str, Any]]:
        entries = await self.repo.get_all(order_by="created_at", descending=True)
        default_mt = get_settings().DEFAULT_MACHINE_TYPE
        return [to_work_item(e, default_machine_type=default_mt) for e in entries]

    async def get_work_items_from_wip(self) -> ServiceResult:
        try:
            items = await self._work_items()
        except SQLAlchemyError as e:
            return await fail_from(self.session, e, "get_work_items_from_wip")
        log.info("converted %d WIP entries to work items", len(items))
        return ServiceResult.ok(items)

    async def get_wip_entries_by_status(self, status: str) -> ServiceResult:
        try:
            entries = await self.repo.get_all(
                filters=[where_equal("status", status)],
                order_by="created_at",
                descending=True,
            )
        except SQLAlchemyError as e:
            return await fail_from(self.session, e, "get_wip_entries_by_status")
        return ServiceResult.ok([entry_to_dict(e) for e in entries])

    async def get_available_work_items(self, machine_type: Optional[str] = None) -> ServiceResult:
        try:
            items = await self._work_items()
        except SQLAlchemyError as e:
            return await fail_from(self.session, e, "get_available_work_items")

        available = [
            it for it in items
            if it["status"] in OPEN_BUNDLE_STATUSES and not it["assigned_operator"]
        ]
        if machine_type and machine_type != "all":
            available = [it for it in available if it["machine_type"] == machine_type]
        return ServiceResult.ok(available)

    async def get_wip_summary(self) -> ServiceResult:
        try:
            entries = await self.repo.get_all()
        except SQLAlchemyError as e:
            return await fail_from(self.session, e, "get_wip_summary")

        status_counts: Dict[str, int] = {}
        total_pieces = 0
        completed_pieces = 0
        for e in entries:
            total_pieces += e.pieces or 0
            completed_pieces += e.completed_pieces or 0
            st = e.status or "pending"
            status_counts[st] = status_counts.get(st, 0) + 1

        rate = completed_pieces / total_pieces * 100 if total_pieces > 0 else 0
        return ServiceResult.ok(
            {
                "total": len(entries),
                "total_pieces": total_pieces,
                "completed_pieces": completed_pieces,
                "status_counts": status_counts,
                "completion_rate": rate,
            }
        )

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    async def create_wip_entry(self, data: Mapping[str, Any]) -> ServiceResult:
        err = validate_wip_data(data)
        if err:
            return ServiceResult.from_service_error(WipValidationError(err))

        values = dict(data)
        values["status"] = values.get("status") or "pending"
        values["completed_pieces"] = 0
        values["created_by"] = values.get("created_by") or "system"
        try:
            entry = await self.repo.create(values)
            await self.session.commit()
        except SQLAlchemyError as e:
            return await fail_from(self.session, e, "create_wip_entry")

        log.info("created WIP entry %s (%s %s/%s x%s)", entry.id, entry.article, entry.color, entry.size, entry.pieces)
        return ServiceResult.ok(entry_to_dict(entry))

    async def update_wip_entry(self, wip_id: str, data: Mapping[str, Any]) -> ServiceResult:
        try:
            if not await self.repo.update(wip_id, data):
                raise NotFoundError(f"WIP entry {wip_id} not found")
            await self.session.commit()
            entry = await self.repo.get_by_id(wip_id)
        except (ServiceError, SQLAlchemyError) as e:
            return await fail_from(self.session, e, "update_wip_entry")
        return ServiceResult.ok(entry_to_dict(entry) if entry else None)

    async def assign_work_item_to_operator(self, work_item_id: str, operator_id: str) -> ServiceResult:
        """
        Claim a work item for an operator.

        Conditional update: only succeeds while the entry is unassigned (or
        already held by the same operator). A competing claim gets
        ALREADY_ASSIGNED instead of overwriting the first one.
        """
        wip_id = wip_entry_id_of(work_item_id)
        now = datetime.now(UTC)
        try:
            n = await self.repo.update_where(
                wip_id,
                {"assigned_operator": operator_id, "assigned_at": now, "status": "assigned"},
                where=[
                    or_(
                        WipEntry.assigned_operator.is_(None),
                        WipEntry.assigned_operator == operator_id,
                    )
                ],
            )
            if n == 0:
                current = await self.repo.get_by_id(wip_id)
                if current is None:
                    raise NotFoundError(f"Work item {work_item_id} not found")
                raise AlreadyAssignedError(
                    f"Work item {work_item_id} is already assigned to {current.assigned_operator}"
                )
            await self.session.commit()
        except NotFoundError as e:
            work_assignments_total.labels("work_item", "not_found").inc()
            return await fail_from(self.session, e, "assign_work_item_to_operator")
        except AlreadyAssignedError as e:
            work_assignments_total.labels("work_item", "conflict").inc()
            return await fail_from(self.session, e, "assign_work_item_to_operator")
        except SQLAlchemyError as e:
            work_assignments_total.labels("work_item", "error").inc()
            return await fail_from(self.session, e, "assign_work_item_to_operator")

        work_assignments_total.labels("work_item", "ok").inc()
        log.info("work item %s assigned to %s", work_item_id, operator_id)
        return ServiceResult.ok(
            {"id": work_item_id, "wip_entry_id": wip_id, "assigned_operator": operator_id, "assigned_at": now}
        )

    async def complete_work_item(self, work_item_id: str, completed_pieces: int) -> ServiceResult:
        wip_id = wip_entry_id_of(work_item_id)
        try:
            ok = await self.repo.update(
                wip_id,
                {
                    "completed_pieces": completed_pieces,
                    "status": "completed",
                    "completed_at": datetime.now(UTC),
                },
            )
            if not ok:
                raise NotFoundError(f"Work item {work_item_id} not found")
            await self.session.commit()
        except (ServiceError, SQLAlchemyError) as e:
            return await fail_from(self.session, e, "complete_work_item")

        work_completions_total.labels("work_item").inc()
        log.info("work item %s completed (%s pcs)", work_item_id, completed_pieces)
        return ServiceResult.ok({"id": work_item_id, "completed_pieces": completed_pieces, "status": "completed"})

    async def import_wip(
        self,
        parsed: ParsedWip,
        *,
        lot_number: Optional[str] = None,
        article: Optional[str] = None,
        article_name: Optional[str] = None,
        current_operation: Optional[str] = None,
        priority: str = DEFAULT_PRIORITY,
        created_by: str = "import",
    ) -> ServiceResult:
        """One WIP entry per non-empty color/size cell of a parsed sheet."""
        article = article or parsed.metadata.get("article")
        lot_number = lot_number or parsed.metadata.get("lot")
        if not article:
            return ServiceResult.from_service_error(
                WipValidationError("Missing required fields: article")
            )

        created: List[Dict[str, Any]] = []
        try:
            for color in parsed.colors:
                for size, pieces in color.pieces.items():
                    if pieces <= 0:
                        continue
                    entry = await self.repo.create(
                        {
                            "article": article,
                            "article_name": article_name,
                            "color": color.name,
                            "size": size,
                            "pieces": pieces,
                            "completed_pieces": 0,
                            "status": "pending",
                            "current_operation": current_operation,
                            "priority": priority,
                            "lot_number": lot_number,
                            "created_by": created_by,
                        }
                    )
                    created.append(entry_to_dict(entry))
            await self.session.commit()
        except SQLAlchemyError as e:
            return await fail_from(self.session, e, "import_wip")

        log.info(
            "imported %d WIP entries (%s pcs) for article %s lot %s",
            len(created), sum(c["pieces"] for c in created), article, lot_number,
        )
        return ServiceResult.ok(created)
