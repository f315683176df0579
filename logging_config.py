from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Dict, Iterable, Sequence

from settings import get_settings

CONTEXT_KEYS = (
    "upload_id",
    "record_kind",
    "sheet",
    "row_number",
    "record_key",
    "reason",
    "inserted_count",
    "error_count",
    "record_count",
)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# Third-party loggers that are too chatty at INFO.
_QUIET_LOGGERS = ("sqlalchemy.engine", "openpyxl", "httpx")

_configured = False


class ContextualFormatter(logging.Formatter):
    """Append ``extra=`` context to the message as ``key=value`` pairs."""

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        style: str = "%",
        extra_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt, style=style)
        self.context_keys: Sequence[str] = tuple(extra_keys or CONTEXT_KEYS)

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        pairs = [
            f"{key}={_render_value(value)}"
            for key in self.context_keys
            if (value := getattr(record, key, None)) is not None
        ]
        return f"{message} | {' '.join(pairs)}" if pairs else message


def _render_value(value: object) -> str:
    text = value.isoformat() if hasattr(value, "isoformat") else str(value)
    return repr(text) if " " in text else text


def build_logging_config(level: str | int) -> Dict[str, Any]:
    """dictConfig payload: one stderr handler, quiet third-party loggers."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "contextual": {
                "()": "logging_config.ContextualFormatter",
                "fmt": LOG_FORMAT,
                "datefmt": "%Y-%m-%dT%H:%M:%S",
                "extra_keys": list(CONTEXT_KEYS),
            }
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "contextual",
                "level": level,
            }
        },
        "loggers": {name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
        "root": {"level": level, "handlers": ["stderr"]},
    }


def configure_logging(level: str | int | None = None) -> None:
    """Install the contextual log format once per process."""
    global _configured
    if _configured:
        return
    dictConfig(build_logging_config(level if level is not None else get_settings().log_level))
    _configured = True
