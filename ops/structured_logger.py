from __future__ import annotations

import json
import logging
import sys
import time
from typing import Any, Dict, Optional

from utils.request_context import get_call_id

_SECRET_KEYS = {"authorization", "api_key", "apikey", "password"}


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "severity": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "time_unix": time.time(),
        }
        cid = get_call_id()
        if cid:
            payload["call_id"] = cid
        if hasattr(record, "extra") and isinstance(record.extra, dict):
            payload.update({k: ("***" if k.lower() in _SECRET_KEYS else v) for k, v in record.extra.items()})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: Optional[str] = None, stream=None) -> None:
    if level is None:
        from config.settings import settings

        level = settings.LOG_LEVEL
    root = logging.getLogger()
    root.setLevel(level.upper())
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter())

    # httpx logs full request urls at INFO; keep them out of the output.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    root.handlers[:] = [handler]
