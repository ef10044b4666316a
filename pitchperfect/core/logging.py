"""Structured logging for PitchPerfect.

Log lines are ``key=value`` pairs. Product events (survey answers, suggestion
picks, logins) go through ``track_event`` so they share one greppable
``event=`` field instead of a separate analytics client.
"""

import logging
import sys
from typing import Any

# Context fields rendered right after the message, in this order
CONTEXT_FIELDS = ("event", "session_id", "user_id")


def _render(value: Any) -> str:
    text = str(value)
    if " " in text or "=" in text or not text:
        return repr(text)
    return text


class StructuredFormatter(logging.Formatter):
    """Key=value structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        extra_data = dict(getattr(record, "extra_data", {}))
        for field in CONTEXT_FIELDS:
            if field in extra_data:
                log_data[field] = extra_data.pop(field)
        log_data.update(extra_data)

        parts = [f"{k}={_render(v)}" for k, v in log_data.items() if v is not None]
        if record.exc_info:
            parts.append(f"exc={_render(self.formatException(record.exc_info))}")
        return " ".join(parts)


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger writing structured lines to stdout, DEBUG in dev and INFO elsewhere
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)

        try:
            from pitchperfect.core.config import get_settings

            dev = get_settings().PITCH_ENV == "dev"
        except Exception:
            # Settings not loadable yet (missing env at import time)
            dev = False
        logger.setLevel(logging.DEBUG if dev else logging.INFO)

    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log with additional context fields.

    ``session_id`` and ``user_id`` are rendered first; other fields follow.
    """
    logger.log(level, msg, extra={"extra_data": kwargs})


def track_event(logger: logging.Logger, event: str, **properties: Any) -> None:
    """Record a product event as an INFO line carrying ``event=<name>``."""
    log_with_context(logger, logging.INFO, event, event=event, **properties)
