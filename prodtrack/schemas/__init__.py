# prodtrack/schemas/__init__.py
"""
Request / response models.

No aggregate exports; import from the concrete module:
    from prodtrack.schemas.wip import WorkItemOut
    from prodtrack.schemas.bundle import BundleOut
"""

__all__: list[str] = []
