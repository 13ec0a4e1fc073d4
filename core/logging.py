"""
Logging configuration

Harvest errors are logged with ``extra={"error_context": exc.to_dict()}``;
the formatter appends the error type and the harvest coordinates (content
type, query, page, item id, url, status code) to such lines.
"""

import logging
import sys
from typing import Optional
from core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

CONTEXT_KEYS = ("content_type", "query", "page", "item_id", "url", "status_code")

QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "httpx", "httpcore")


class HarvestFormatter(logging.Formatter):
    """Formatter that renders the error context attached to a record"""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        error_context = getattr(record, "error_context", None)
        if not error_context:
            return message

        context = error_context.get("context") or {}
        parts = [f"{key}={context[key]}" for key in CONTEXT_KEYS if context.get(key) is not None]
        suffix = error_context.get("error_type", "HarvestException")
        if parts:
            suffix += " " + " ".join(parts)
        return f"{message} [{suffix}]"


def setup_logging(level: Optional[str] = None):
    """Configure application logging"""
    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(HarvestFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    logging.basicConfig(level=log_level, handlers=[handler], force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured at {level_name} level")
