from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

REQUEST_KEYS = ("request_id", "route", "timing_ms", "method", "status_code", "path", "client_ip")
PIPELINE_KEYS = ("utterance_id", "state", "items_count", "field")
EXTRA_KEYS = REQUEST_KEYS + PIPELINE_KEYS

# HTTP client libraries log every request at INFO; transcription and
# extraction already log their own timing.
QUIET_LOGGERS = ("httpx", "httpcore", "openai")


class JsonFormatter(logging.Formatter):
    """One JSON object per line, stamped with the record's creation time."""

    def __init__(self, extra_keys: Optional[Iterable[str]] = None) -> None:
        super().__init__()
        self.extra_keys = tuple(extra_keys) if extra_keys is not None else EXTRA_KEYS

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            {key: getattr(record, key) for key in self.extra_keys if getattr(record, key, None) is not None}
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _coerce_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    text = str(level or "").strip()
    if text.isdigit():
        return int(text)
    value = logging.getLevelName(text.upper()) if text else None
    return value if isinstance(value, int) else logging.INFO


def setup_logging(level: str | int = "INFO") -> None:
    resolved = _coerce_level(level)
    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
    root.setLevel(resolved)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(resolved if resolved <= logging.DEBUG else max(resolved, logging.WARNING))
