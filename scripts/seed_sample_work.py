# scripts/seed_sample_work.py
"""
Seed demo WIP entries and bundles.

    python -m scripts.seed_sample_work
    python -m scripts.seed_sample_work --create-tables --db sqlite+aiosqlite:///./demo.db
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any, Dict, List

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from prodtrack.core.config import get_settings
from prodtrack.db.base import Base, init_models
from prodtrack.db.session import create_engine_for
from prodtrack.services.bundle_service import BundleService
from prodtrack.services.wip_service import WIPService

SAMPLE_WIP: List[Dict[str, Any]] = [
    {"article": "8085", "article_name": "Polo T-Shirt", "color": "Blue-1", "size": "M", "pieces": 25,
     "current_operation": "Shoulder Join", "priority": "high", "lot_number": "S-85"},
    {"article": "8085", "article_name": "Polo T-Shirt", "color": "Red-2", "size": "L", "pieces": 28,
     "current_operation": "Hem Fold", "priority": "medium", "lot_number": "S-85"},
    {"article": "6635", "article_name": "3-Button Tops", "color": "Navy-2", "size": "S", "pieces": 20,
     "current_operation": "Collar Making", "priority": "medium", "lot_number": "S-86"},
    {"article": "2025", "article_name": "Round Neck Tee", "color": "White", "size": "XL", "pieces": 30,
     "current_operation": "Neck Band", "machine_type": "singleNeedle", "priority": "low", "lot_number": "S-87"},
]

SAMPLE_BUNDLES: List[Dict[str, Any]] = [
    {"bundle_number": "B001-85-BL-M", "article": "8085", "article_name": "Polo T-Shirt", "color": "Blue-1",
     "size": "M", "pieces": 25, "operation": "Shoulder Join", "machine_type": "overlock", "rate": 2.5,
     "priority": "high"},
    {"bundle_number": "B002-85-RD-L", "article": "8085", "article_name": "Polo T-Shirt", "color": "Red-2",
     "size": "L", "pieces": 28, "operation": "Bottom Fold", "machine_type": "flatlock", "rate": 2.75},
    {"bundle_number": "B003-35-NV-S", "article": "6635", "article_name": "3-Button Tops", "color": "Navy-2",
     "size": "S", "pieces": 20, "operation": "Neck Band", "machine_type": "singleNeedle", "rate": 3.0},
]


async def seed(session: AsyncSession) -> Dict[str, int]:
    wip = WIPService(session)
    bundles = BundleService(session)

    n_wip = 0
    for row in SAMPLE_WIP:
        res = await wip.create_wip_entry({**row, "created_by": "seed"})
        if not res.success:
            raise RuntimeError(f"WIP seed failed: {res.error}")
        n_wip += 1

    n_bundles = 0
    for row in SAMPLE_BUNDLES:
        res = await bundles.create_bundle(row)
        if not res.success:
            raise RuntimeError(f"bundle seed failed: {res.error}")
        n_bundles += 1

    return {"wip_entries": n_wip, "bundles": n_bundles}


async def _run(db_url: str, create_tables: bool) -> Dict[str, int]:
    init_models()
    engine = create_engine_for(db_url)
    try:
        if create_tables:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        async with maker() as session:
            return await seed(session)
    finally:
        await engine.dispose()


def main(argv: List[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Seed demo WIP entries and bundles")
    p.add_argument("--db", default=get_settings().DATABASE_URL, help="database URL (default: settings)")
    p.add_argument("--create-tables", action="store_true", help="create tables first (no alembic)")
    args = p.parse_args(argv)

    counts = asyncio.run(_run(args.db, args.create_tables))
    print(f"[seed_sample_work] db={args.db} wip_entries={counts['wip_entries']} bundles={counts['bundles']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
