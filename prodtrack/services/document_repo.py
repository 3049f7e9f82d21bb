# prodtrack/services/document_repo.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Generic, List, Literal, Mapping, Optional, Sequence, Type, TypeVar
from uuid import uuid4

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from prodtrack.db.base import Base

UTC = timezone.utc

M = TypeVar("M", bound=Base)

FilterOp = Literal["==", "!=", "in", ">", ">=", "<", "<=", "is_null", "not_null"]


@dataclass(frozen=True)
class Filter:
    field: str
    op: FilterOp
    value: Any = None


def where_equal(field: str, value: Any) -> Filter:
    return Filter(field, "==", value)


def where_in(field: str, values: Sequence[Any]) -> Filter:
    return Filter(field, "in", list(values))


def where_null(field: str) -> Filter:
    return Filter(field, "is_null")


@dataclass(frozen=True)
class BatchOp:
    type: Literal["set", "update", "delete"]
    doc_id: Optional[str] = None
    data: Mapping[str, Any] = field(default_factory=dict)


def new_doc_id() -> str:
    return uuid4().hex


class DocumentRepo(Generic[M]):
    """
    Document-style CRUD over one model:

    - ids are opaque strings (uuid hex when the caller does not supply one)
    - create/update stamp created_at / updated_at
    - get_all takes simple field filters, one order column and a limit
    - update_where is the conditional write used for claim-style updates

    The repo never commits; the calling service owns the transaction.
    """

    def __init__(self, session: AsyncSession, model: Type[M]) -> None:
        self.session = session
        self.model = model

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _column(self, name: str):
        col = getattr(self.model, name, None)
        if col is None:
            raise ValueError(f"{self.model.__tablename__} has no field {name!r}")
        return col

    def _clause(self, f: Filter):
        col = self._column(f.field)
        if f.op == "==":
            return col == f.value
        if f.op == "!=":
            return col != f.value
        if f.op == "in":
            return col.in_(list(f.value or []))
        if f.op == ">":
            return col > f.value
        if f.op == ">=":
            return col >= f.value
        if f.op == "<":
            return col < f.value
        if f.op == "<=":
            return col <= f.value
        if f.op == "is_null":
            return col.is_(None)
        if f.op == "not_null":
            return col.is_not(None)
        raise ValueError(f"unsupported filter op: {f.op!r}")

    def _clean(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        cols = set(self.model.__table__.columns.keys())
        return {k: v for k, v in data.items() if k in cols}

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------
    async def create(self, data: Mapping[str, Any]) -> M:
        now = datetime.now(UTC)
        values = self._clean(data)
        values.setdefault("id", new_doc_id())
        values.setdefault("created_at", now)
        values.setdefault("updated_at", now)

        obj = self.model(**values)
        self.session.add(obj)
        await self.session.flush()
        await self.session.refresh(obj)
        return obj

    async def get_by_id(self, doc_id: str) -> Optional[M]:
        if not doc_id:
            return None
        stmt = (
            select(self.model)
            .where(self._column("id") == doc_id)
            .execution_options(populate_existing=True)
        )
        return (await self.session.execute(stmt)).scalars().first()

    async def get_all(
        self,
        *,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[M]:
        stmt = select(self.model)
        for f in filters:
            stmt = stmt.where(self._clause(f))

        if order_by:
            col = self._column(order_by)
            stmt = stmt.order_by(col.desc() if descending else col.asc())

        if limit is not None and int(limit) > 0:
            stmt = stmt.limit(int(limit))

        stmt = stmt.execution_options(populate_existing=True)
        return list((await self.session.execute(stmt)).scalars().all())

    async def update(self, doc_id: str, data: Mapping[str, Any]) -> bool:
        """Unconditional update; False when the document does not exist."""
        return await self.update_where(doc_id, data) > 0

    async def update_where(
        self,
        doc_id: str,
        data: Mapping[str, Any],
        *,
        where: Sequence[Any] = (),
    ) -> int:
        """
        UPDATE ... WHERE id = :id [AND extra conditions]; returns rowcount.

        `where` takes Filter objects or raw SQLAlchemy clauses.
        """
        values = self._clean(data)
        values.pop("id", None)
        values["updated_at"] = datetime.now(UTC)

        stmt = update(self.model).where(self._column("id") == doc_id)
        for cond in where:
            stmt = stmt.where(self._clause(cond) if isinstance(cond, Filter) else cond)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        res = await self.session.execute(stmt)
        return int(res.rowcount or 0)

    async def delete(self, doc_id: str) -> bool:
        stmt = delete(self.model).where(self._column("id") == doc_id)
        res = await self.session.execute(stmt.execution_options(synchronize_session="fetch"))
        return int(res.rowcount or 0) > 0

    async def batch_write(self, operations: Sequence[BatchOp]) -> int:
        """
        Apply set/update/delete operations inside the caller's transaction.
        Unknown operation types raise ValueError before anything is written.
        """
        for op in operations:
            if op.type not in ("set", "update", "delete"):
                raise ValueError(f"Unknown batch operation: {op.type}")
            if op.type in ("update", "delete") and not op.doc_id:
                raise ValueError(f"batch {op.type} requires doc_id")

        applied = 0
        for op in operations:
            if op.type == "set":
                data = dict(op.data)
                if op.doc_id:
                    data["id"] = op.doc_id
                    await self.delete(op.doc_id)
                await self.create(data)
                applied += 1
            elif op.type == "update":
                applied += await self.update_where(op.doc_id, op.data)  # type: ignore[arg-type]
            else:
                applied += int(await self.delete(op.doc_id))  # type: ignore[arg-type]
        return applied
