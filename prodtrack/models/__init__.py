# prodtrack/models/__init__.py
"""
ORM model exports.
"""

from importlib import import_module


def _export(module_name: str, class_name: str) -> None:
    module = import_module(module_name)
    globals()[class_name] = getattr(module, class_name)


MODEL_SPECS = [
    ("prodtrack.models.wip_entry", "WipEntry"),
    ("prodtrack.models.bundle", "Bundle"),
    ("prodtrack.models.operator_earning", "OperatorEarning"),
]

for _module_name, _class_name in MODEL_SPECS:
    _export(_module_name, _class_name)

__all__ = [name for _, name in MODEL_SPECS]
