# alembic/env.py
from __future__ import annotations

import os
from logging.config import fileConfig
from typing import Any

from alembic import context
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

from prodtrack.core.config import get_settings  # noqa: E402
from prodtrack.db.base import Base, init_models  # noqa: E402
from prodtrack.db.session import normalize_async_dsn  # noqa: E402


# ---------------------------------------------------------------------------
# URL: env DATABASE_URL > settings > alembic.ini; migrations run on the sync driver
# ---------------------------------------------------------------------------
def get_url() -> str:
    url = (
        os.getenv("DATABASE_URL")
        or get_settings().DATABASE_URL
        or config.get_main_option("sqlalchemy.url")
    )
    if not url:
        raise RuntimeError("Alembic cannot determine the database URL: set DATABASE_URL or sqlalchemy.url")

    url = normalize_async_dsn(url)
    # aiosqlite is async-only; the stdlib driver does the migration
    return url.replace("sqlite+aiosqlite://", "sqlite://", 1)


def include_object(obj: Any, name: str | None, type_: str, reflected: bool, compare_to: Any) -> bool:
    """Objects present in the database but not in the models never produce drops."""
    if reflected and compare_to is None:
        return False
    return True


def run_migrations_offline() -> None:
    init_models()
    context.configure(
        url=get_url(),
        target_metadata=Base.metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=False,
        include_object=include_object,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    init_models()
    url = get_url()
    engine = create_engine(url, poolclass=NullPool, future=True)

    with engine.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=Base.metadata,
            compare_type=True,
            compare_server_default=False,
            include_object=include_object,
            # sqlite cannot ALTER most things in place
            render_as_batch=url.startswith("sqlite"),
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
