from __future__ import annotations

import json
import logging

from app.laptrack.core.config import settings

# Module loggers live under app.laptrack; request and error loggers under laptrack.
LAPTRACK_LOGGERS = ("app.laptrack", "laptrack")


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    resolved = (level or settings.LOG_LEVEL).upper()
    for name in LAPTRACK_LOGGERS:
        logging.getLogger(name).setLevel(resolved)


def log_json(logger: logging.Logger, payload: dict) -> None:
    """Log one JSON line tagged with the service name."""
    record = {"service": settings.APP_NAME, **payload}
    logger.info(json.dumps(record, ensure_ascii=False, default=str))
