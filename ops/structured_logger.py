from __future__ import annotations

import json
import logging
import os
import sys
import time
from typing import Any, Dict

from config.settings import settings
from utils.request_context import log_context

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per line, shaped for Cloud Logging."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "time_unix": time.time(),
            "service": os.getenv("K_SERVICE") or "",
            "revision": os.getenv("K_REVISION") or "",
            "environment": settings.ENVIRONMENT,
        }
        payload.update(log_context())
        # Structured fields travel as extra={"extra": {...}}.
        fields = getattr(record, "extra", None)
        if isinstance(fields, dict):
            payload.update(fields)
        if record.levelno >= logging.ERROR:
            payload["logging.googleapis.com/sourceLocation"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        # Firestore timestamps and enums fall back to str().
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> None:
    handler = logging.StreamHandler(sys.stdout)
    if (fmt or "").lower() == "text":
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))
    else:
        handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers[:] = [handler]

    # httpx logs full request URLs at INFO.
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
