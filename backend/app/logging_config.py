"""
Logging configuration

Structured (JSON) or plain-text logging for the API, driven by settings:
- LOG_LEVEL: root log level
- LOG_FORMAT: "json" or "text"
- LOG_FILE: optional path for a rotating file handler

Usage:
    from app.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("Manufacturing order created", extra={"mo_id": mo.id})
"""
import json
import logging
import logging.handlers
from datetime import datetime, timezone
from pathlib import Path

from app.core.config import settings

# Attributes present on every LogRecord; anything else came in through `extra=`
_RESERVED_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}

_configured = False


class JSONFormatter(logging.Formatter):
    """Render each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _build_formatter() -> logging.Formatter:
    if settings.LOG_FORMAT.lower() == "json":
        return JSONFormatter()
    return logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")


def setup_logging() -> None:
    """Configure the root logger once per process."""
    global _configured
    if _configured:
        return

    root = logging.getLogger()
    root.setLevel(settings.LOG_LEVEL.upper())
    formatter = _build_formatter()

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    root.addHandler(console)

    if settings.LOG_FILE:
        log_path = Path(settings.LOG_FILE)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # SQL echo is controlled by DEBUG, not by the root level
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.DEBUG else logging.WARNING
    )
    _configured = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
