# prodtrack/core/logging.py
import logging
import sys

import structlog

_PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _json_formatter() -> logging.Formatter:
    # stdlib records pass through foreign_pre_chain before rendering
    return structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(ensure_ascii=False),
        foreign_pre_chain=[
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", key="ts"),
            structlog.processors.format_exc_info,
        ],
    )


def setup_logging(level: str = "INFO", json: bool = False) -> None:
    """
    Single stdout handler on the root logger:
    - root level from settings
    - existing handlers removed so uvicorn reloads do not double-log
    - json=True renders one JSON object per line through structlog
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    if json:
        handler.setFormatter(_json_formatter())
    else:
        handler.setFormatter(logging.Formatter(_PLAIN_FORMAT))
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if level.upper() == "DEBUG" else logging.WARNING
    )
