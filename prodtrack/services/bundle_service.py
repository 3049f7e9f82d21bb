# prodtrack/services/bundle_service.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from prodtrack.config.production import (
    DEFAULT_PRIORITY,
    OPEN_BUNDLE_STATUSES,
    PRIORITY_RANK,
    SELF_ASSIGNED_STATUS,
    WORK_ITEM_EXCLUDED_STATUSES,
)
from prodtrack.core.config import get_settings
from prodtrack.models.bundle import Bundle
from prodtrack.obs.metrics import (
    available_fallback_total,
    work_assignments_total,
    work_completions_total,
)
from prodtrack.services import checklist as checklist_mgr
from prodtrack.services.document_repo import DocumentRepo, where_equal, where_in
from prodtrack.services.errors import AlreadyAssignedError, NotFoundError, ServiceError
from prodtrack.services.result import ServiceResult, fail_from
from prodtrack.services.wip_service import WIPService

log = logging.getLogger("prodtrack.bundles")

UTC = timezone.utc


# =====================================================================
# pure helpers
# =====================================================================
def bundle_to_dict(b: Bundle) -> Dict[str, Any]:
    return {c.key: getattr(b, c.key) for c in Bundle.__table__.columns}


def _machine_filter(machine_type: Optional[str]) -> Optional[str]:
    # "all" (the operator-screen default) means no filter
    if not machine_type or machine_type == "all":
        return None
    return machine_type


def _ts_key(v: Any) -> str:
    if isinstance(v, datetime):
        return v.isoformat()
    return str(v or "")


def sort_bundles_by_priority(bundles: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    """
    high > medium > low (unknown / missing ranks as medium),
    then oldest first within the same priority.
    """
    default_rank = PRIORITY_RANK[DEFAULT_PRIORITY]

    def rank(b: Mapping[str, Any]) -> int:
        return PRIORITY_RANK.get(str(b.get("priority") or "").lower(), default_rank)

    by_age = sorted(bundles, key=lambda b: _ts_key(b.get("created_at")))
    return sorted(by_age, key=rank, reverse=True)


def filter_available_work_items(work_items: Iterable[Mapping[str, Any]]) -> List[Mapping[str, Any]]:
    out = []
    for it in work_items:
        status = it.get("status")
        available = status not in WORK_ITEM_EXCLUDED_STATUSES and (
            not it.get("assigned_operator") or status == SELF_ASSIGNED_STATUS
        )
        if not available:
            log.debug(
                "filtering out work item %s: status=%s assigned_operator=%s",
                it.get("id"), status, it.get("assigned_operator"),
            )
            continue
        out.append(it)
    return out


def format_work_items_as_bundles(work_items: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    return [
        {
            "id": it["id"],
            "article": it.get("article"),
            "article_number": it.get("article"),
            "article_name": it.get("article_name"),
            "size": it.get("size"),
            "color": it.get("color"),
            "pieces": it.get("pieces"),
            "quantity": it.get("pieces"),
            "completed_pieces": it.get("completed_pieces") or 0,
            "status": it.get("status"),
            "machine_type": it.get("machine_type"),
            "current_operation": it.get("current_operation"),
            "priority": it.get("priority") or DEFAULT_PRIORITY,
            "deadline": it.get("deadline"),
            "assigned_operator": it.get("assigned_operator"),
            "assigned_at": it.get("assigned_at"),
            "lot_number": it.get("lot_number"),
            "roll_number": it.get("roll_number"),
            "wip_entry_id": it.get("wip_entry_id"),
            "created_at": it.get("created_at"),
        }
        for it in work_items
    ]


# =====================================================================
# service
# =====================================================================
class BundleService:
    """
    Bundles offered to operators.

    Listings prefer work items projected from WIP; the bundle table is the
    fallback source and the home of per-bundle checklists.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.repo: DocumentRepo[Bundle] = DocumentRepo(session, Bundle)

    # ------------------------------------------------------------------
    # listings
    # ------------------------------------------------------------------
    async def get_all_bundles(self) -> ServiceResult:
        try:
            rows = await self.repo.get_all(order_by="created_at", descending=True)
        except SQLAlchemyError as e:
            return await fail_from(self.session, e, "get_all_bundles")
        return ServiceResult.ok([bundle_to_dict(b) for b in rows])

    async def get_bundle_by_id(self, bundle_id: str) -> ServiceResult:
        try:
            b = await self.repo.get_by_id(bundle_id)
            if b is None:
                raise NotFoundError(f"Bundle {bundle_id} not found")
        except (ServiceError, SQLAlchemyError) as e:
            return await fail_from(self.session, e, "get_bundle_by_id")
        return ServiceResult.ok(bundle_to_dict(b))

    async def get_available_bundles(self, machine_type: Optional[str] = None) -> ServiceResult:
        mt = _machine_filter(machine_type)

        wip = await WIPService(self.session).get_work_items_from_wip()
        if wip.success and wip.data:
            items = filter_available_work_items(wip.data)
            if mt:
                before = len(items)
                items = [it for it in items if it.get("machine_type") == mt]
                log.info("machine filter: %d -> %d items (machine=%s)", before, len(items), mt)
            bundles = format_work_items_as_bundles(items)
            log.info("available bundles: %d from %d WIP work items", len(bundles), len(wip.data))
            return ServiceResult.ok(bundles)

        if not wip.success:
            log.warning("WIP read failed (%s); falling back to bundle table", wip.error)
        return await self._fallback_bundles(mt)

    async def _fallback_bundles(self, machine_type: Optional[str]) -> ServiceResult:
        log.warning("no WIP work items; serving available bundles from the bundle table")
        available_fallback_total.inc()

        filters = [where_in("status", sorted(OPEN_BUNDLE_STATUSES))]
        if machine_type:
            filters.append(where_equal("machine_type", machine_type))
        try:
            rows = await self.repo.get_all(filters=filters)
        except SQLAlchemyError as e:
            return await fail_from(self.session, e, "get_available_bundles(fallback)")
        return ServiceResult.ok([bundle_to_dict(b) for b in rows])

    async def get_operator_bundles(
        self, operator_id: str, machine_type: Optional[str] = None
    ) -> ServiceResult:
        limit = get_settings().OPERATOR_BUNDLE_LIMIT
        try:
            rows = await self.repo.get_all(
                filters=[where_equal("assigned_operator", operator_id)],
                order_by="created_at",
                descending=True,
                limit=limit,
            )
        except SQLAlchemyError as e:
            return await fail_from(self.session, e, "get_operator_bundles")

        bundles = [bundle_to_dict(b) for b in rows]
        mt = _machine_filter(machine_type)
        if mt:
            bundles = [b for b in bundles if b.get("machine_type") == mt]

        bundles = sort_bundles_by_priority(bundles)
        log.info("operator %s: %d bundles", operator_id, len(bundles))
        return ServiceResult.ok(bundles)

    async def get_available_work(self, machine_type: Optional[str] = None) -> ServiceResult:
        """Bundle-table rows that still have checklist work left."""
        filters = []
        mt = _machine_filter(machine_type)
        if mt:
            filters.append(where_equal("machine_type", mt))
        try:
            rows = await self.repo.get_all(filters=filters, order_by="created_at")
        except SQLAlchemyError as e:
            return await fail_from(self.session, e, "get_available_work")

        work = checklist_mgr.filter_available_work(bundle_to_dict(b) for b in rows)
        for b in work:
            b["completion_percentage"] = checklist_mgr.get_bundle_completion_percentage(b)
            b["remaining_time"] = checklist_mgr.get_remaining_time(b)
        return ServiceResult.ok(work)

    # ------------------------------------------------------------------
    # writes
    # ------------------------------------------------------------------
    async def create_bundle(self, data: Mapping[str, Any]) -> ServiceResult:
        values = dict(data)
        values["status"] = "pending"
        values["completed_pieces"] = 0
        values["priority"] = values.get("priority") or DEFAULT_PRIORITY
        try:
            b = await self.repo.create(values)
            await self.session.commit()
        except SQLAlchemyError as e:
            return await fail_from(self.session, e, "create_bundle")
        log.info("created bundle %s (%s)", b.id, b.bundle_number)
        return ServiceResult.ok(bundle_to_dict(b))

    async def update_bundle_status(
        self,
        bundle_id: str,
        status: str,
        completed_pieces: Optional[int] = None,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> ServiceResult:
        data: Dict[str, Any] = {**(extra or {}), "status": status}
        if completed_pieces is not None:
            data["completed_pieces"] = completed_pieces
        if status == "completed":
            data["completed_at"] = datetime.now(UTC)

        try:
            if not await self.repo.update(bundle_id, data):
                raise NotFoundError(f"Bundle {bundle_id} not found")
            await self.session.commit()
            b = await self.repo.get_by_id(bundle_id)
        except (ServiceError, SQLAlchemyError) as e:
            return await fail_from(self.session, e, "update_bundle_status")

        if status == "completed":
            work_completions_total.labels("bundle").inc()
        return ServiceResult.ok(bundle_to_dict(b) if b else None)

    async def assign_to_operator(
        self, bundle_id: str, operator_id: str, assigned_by: Optional[str] = None
    ) -> ServiceResult:
        """Conditional claim, same rules as WIPService.assign_work_item_to_operator."""
        now = datetime.now(UTC)
        try:
            n = await self.repo.update_where(
                bundle_id,
                {
                    "assigned_operator": operator_id,
                    "assigned_at": now,
                    "assigned_by": assigned_by,
                    "status": "assigned",
                },
                where=[or_(Bundle.assigned_operator.is_(None), Bundle.assigned_operator == operator_id)],
            )
            if n == 0:
                current = await self.repo.get_by_id(bundle_id)
                if current is None:
                    raise NotFoundError(f"Bundle {bundle_id} not found")
                raise AlreadyAssignedError(
                    f"Bundle {bundle_id} is already assigned to {current.assigned_operator}"
                )
            await self.session.commit()
            b = await self.repo.get_by_id(bundle_id)
        except NotFoundError as e:
            work_assignments_total.labels("bundle", "not_found").inc()
            return await fail_from(self.session, e, "assign_to_operator")
        except AlreadyAssignedError as e:
            work_assignments_total.labels("bundle", "conflict").inc()
            return await fail_from(self.session, e, "assign_to_operator")
        except SQLAlchemyError as e:
            work_assignments_total.labels("bundle", "error").inc()
            return await fail_from(self.session, e, "assign_to_operator")

        work_assignments_total.labels("bundle", "ok").inc()
        log.info("bundle %s assigned to %s (by %s)", bundle_id, operator_id, assigned_by)
        return ServiceResult.ok(bundle_to_dict(b) if b else None)

    async def update_checklist_item(
        self,
        bundle_id: str,
        item_id: str,
        completed: bool,
        user_id: str = "current_user",
    ) -> ServiceResult:
        """
        Tick / untick one checklist step and persist the derived status.

        The checklist is initialised from its template on first touch.
        """
        try:
            b = await self.repo.get_by_id(bundle_id)
            if b is None:
                raise NotFoundError(f"Bundle {bundle_id} not found")

            current = checklist_mgr.initialize_bundle_checklist(bundle_to_dict(b))
            if not any(it.get("id") == item_id for it in current["checklist"]):
                raise NotFoundError(f"Checklist item {item_id} not found on bundle {bundle_id}")

            updated = checklist_mgr.update_checklist_item(current, item_id, completed, user_id)
            data: Dict[str, Any] = {
                "checklist": updated["checklist"],
                "checklist_initialized": True,
                "status": updated["status"],
            }
            if updated["status"] == "completed":
                data["completed_at"] = datetime.now(UTC)
            await self.repo.update(bundle_id, data)
            await self.session.commit()
        except (ServiceError, SQLAlchemyError) as e:
            return await fail_from(self.session, e, "update_checklist_item")

        if updated["status"] == "completed" and b.status != "completed":
            work_completions_total.labels("bundle").inc()

        updated["completion_percentage"] = checklist_mgr.get_bundle_completion_percentage(updated)
        updated["remaining_time"] = checklist_mgr.get_remaining_time(updated)
        return ServiceResult.ok(updated)
