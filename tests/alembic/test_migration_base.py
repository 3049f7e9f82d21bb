# tests/alembic/test_migration_base.py
from __future__ import annotations

from pathlib import Path

import pytest
import sqlalchemy as sa
from alembic import command
from alembic.config import Config

from prodtrack.db.base import Base, init_models

ROOT = Path(__file__).resolve().parents[2]


def _config() -> Config:
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "alembic"))
    return cfg


@pytest.fixture
def sqlite_url(tmp_path, monkeypatch) -> str:
    url = f"sqlite:///{tmp_path / 'migrate.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    return url


def test_alembic_ini_exists():
    assert (ROOT / "alembic.ini").exists()


def test_upgrade_head_matches_models(sqlite_url):
    command.upgrade(_config(), "head")

    engine = sa.create_engine(sqlite_url)
    try:
        insp = sa.inspect(engine)
        tables = set(insp.get_table_names())
        init_models()
        for name, table in Base.metadata.tables.items():
            assert name in tables
            cols = {c["name"] for c in insp.get_columns(name)}
            assert cols == set(table.columns.keys()), name
        assert {ix["name"] for ix in insp.get_indexes("bundles")} >= {
            "ix_bundles_status",
            "ix_bundles_assigned",
            "ix_bundles_machine_status",
        }
    finally:
        engine.dispose()


def test_downgrade_to_base_drops_everything(sqlite_url):
    cfg = _config()
    command.upgrade(cfg, "head")
    command.downgrade(cfg, "base")

    engine = sa.create_engine(sqlite_url)
    try:
        tables = set(sa.inspect(engine).get_table_names())
        assert not tables & {"wip_entries", "bundles", "operator_earnings"}
    finally:
        engine.dispose()
