"""
Structured Logging Configuration

Services log through ``logging.getLogger(__name__)`` and pass their context
as ``extra={...}``. The formatter below appends those fields to the message
so invariant violations and retry decisions stay auditable in plain logs.
"""
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Optional

# Attributes present on every LogRecord; anything else came in via ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "timestamp"}


class StructuredFormatter(logging.Formatter):
    """Formatter that renders ``extra`` context as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        record.timestamp = datetime.now(timezone.utc).isoformat()

        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }

        log_message = (
            f"[{record.timestamp}] "
            f"{record.levelname:8} "
            f"[{record.name}] "
            f"{record.getMessage()}"
        )
        if context:
            rendered = " ".join(f"{k}={v!r}" for k, v in sorted(context.items()))
            log_message += f" | {rendered}"

        if record.exc_info:
            log_message += f"\n{self.formatException(record.exc_info)}"

        return log_message


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Logging level name. Defaults to the LOG_LEVEL env var, then INFO.
        log_file: Optional file path for log output
    """
    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level_name, logging.INFO))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(StructuredFormatter())
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)
