import hashlib
import json
import logging
import os
import time
from typing import Any

from opentelemetry import trace

from .config import settings

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
_logger = logging.getLogger(settings.service_name)

# Fields that may carry transcript or note text; only their hash/length is logged
SENSITIVE_FIELDS = frozenset({"text", "transcript", "content", "prompt", "redacted_text"})

def hash_preview(s: Any, n: int = 12) -> str:
    if not isinstance(s, str):
        s = str(s)
    return f"sha256={hashlib.sha256(s.encode('utf-8')).hexdigest()[:n]},len={len(s)}"

def _scrub(key: str, value: Any) -> Any:
    if key in SENSITIVE_FIELDS and value is not None and not str(value).startswith("sha256="):
        return hash_preview(value)
    return value

def jlog(event: str = "", severity: str = "INFO", **fields):
    span = trace.get_current_span()
    ctx = span.get_span_context() if span else None
    trace_id = f"{ctx.trace_id:032x}" if ctx and ctx.trace_id else None
    span_id = f"{ctx.span_id:016x}" if ctx and ctx.span_id else None

    record = {
        "event": event,
        "severity": severity,
        "service": settings.service_name,
        "env": settings.environment,
        "ts": time.time(),
        "trace_id": trace_id,
        "span_id": span_id,
    }
    record.update({k: _scrub(k, v) for k, v in fields.items()})
    _logger.log(getattr(logging, severity, logging.INFO), json.dumps(record, ensure_ascii=False, default=str))
