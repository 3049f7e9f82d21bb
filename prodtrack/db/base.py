# prodtrack/db/base.py
from __future__ import annotations

import importlib
import logging
import pkgutil
from typing import Iterable, Iterator, List, Set

from sqlalchemy.orm import DeclarativeBase, configure_mappers

log = logging.getLogger("prodtrack.models")


class Base(DeclarativeBase):
    """Single ORM base for every prodtrack model."""

    pass


_INITIALIZED: bool = False


def _iter_model_modules(pkg_name: str = "prodtrack.models") -> Iterator[str]:
    """Discover prodtrack.models.* modules (skipping private ones)."""
    try:
        pkg = importlib.import_module(pkg_name)
    except ModuleNotFoundError:
        return iter([])

    paths = list(getattr(pkg, "__path__", []))
    if not paths:
        return iter([])

    for _, name, _ in pkgutil.walk_packages(paths, prefix=pkg_name + "."):
        short = name.rsplit(".", 1)[-1]
        if short.startswith("_"):
            continue
        yield name


def init_models(
    *,
    extra_modules: Iterable[str] | None = None,
    force: bool = False,
) -> None:
    """
    Import every model module so Base.metadata is complete, then
    configure_mappers() once. Safe to call repeatedly.
    """
    global _INITIALIZED
    if _INITIALIZED and not force:
        log.debug("init_models() called again; already initialized, skipping.")
        return

    loaded: List[str] = []
    seen: Set[str] = set()
    for mod in [*_iter_model_modules(), *(extra_modules or [])]:
        if mod in seen:
            continue
        seen.add(mod)
        importlib.import_module(mod)
        loaded.append(mod)

    configure_mappers()
    _INITIALIZED = True
    log.info("ORM models initialized & mappers configured (loaded %d modules)", len(loaded))
