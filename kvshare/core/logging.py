"""Structured JSON logging with secret redaction and trace correlation."""

import json
import logging
import os
import re
import sys
from datetime import UTC, datetime
from typing import Any, Optional

from kvshare.core.telemetry import get_trace_context

# Patterns to redact from log output
SECRET_PATTERNS = (
    re.compile(r"(api_key|token|secret|password)\s*[:=]\s*['\"]?[^\s'\",]+['\"]?", re.I),
    re.compile(r"(Bearer)\s+[\w.-]+", re.I),
    re.compile(r"rediss?://[^@\s]*@", re.I),
)

SENSITIVE_KEYS = ("api_key", "token", "secret", "password", "authorization")


def _redact(message: str) -> str:
    def repl(m: re.Match[str]) -> str:
        if m.lastindex and m.lastindex >= 1:
            return f"{m.group(1)}=***REDACTED***"
        return "***REDACTED***"

    for pat in SECRET_PATTERNS:
        message = pat.sub(repl, message)
    return message


def _redact_dict(obj: Any) -> Any:
    if isinstance(obj, dict):
        redacted = {}
        for k, v in obj.items():
            key_lower = str(k).lower()
            if any(s in key_lower for s in SENSITIVE_KEYS):
                redacted[k] = "***REDACTED***"
            else:
                redacted[k] = _redact_dict(v)
        return redacted
    if isinstance(obj, list):
        return [_redact_dict(i) for i in obj]
    if isinstance(obj, str):
        return _redact(obj)
    return obj


def _now_iso() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def structured_log(
    level: str,
    message: str,
    *,
    key: Optional[str] = None,
    trace_id: Optional[str] = None,
    span_id: Optional[str] = None,
    operation: Optional[str] = None,
    duration_ms: Optional[int | float] = None,
    metadata: Optional[dict[str, Any]] = None,
    error: Optional[dict[str, Any]] = None,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Emit a structured log entry. Never pass record payloads here."""
    log = logging.getLogger(logger.name if logger else __name__)
    payload: dict[str, Any] = {
        "severity": level.upper(),
        "message": _redact(message),
        "timestamp": _now_iso(),
    }
    if key:
        payload["key"] = key
    if trace_id is None and span_id is None:
        ctx = get_trace_context()
        trace_id, span_id = ctx.get("trace_id"), ctx.get("span_id")
    if trace_id:
        payload["trace_id"] = trace_id
    if span_id:
        payload["span_id"] = span_id
    if operation:
        payload["operation"] = operation
    if duration_ms is not None:
        payload["duration_ms"] = round(duration_ms, 2)
    if metadata:
        payload["metadata"] = _redact_dict(metadata)
    if error:
        payload["error"] = _redact_dict(error)

    msg = json.dumps(payload) if _use_json() else _format_readable(payload)
    getattr(log, level.lower(), log.info)(msg)


def _use_json() -> bool:
    """Use JSON format unless LOG_FORMAT asks for readable output (local dev, tests)."""
    return os.getenv("LOG_FORMAT", "json").lower() == "json"


def _format_readable(payload: dict[str, Any]) -> str:
    parts = [f"[{payload.get('severity', 'INFO')}]", payload.get("message", "")]
    if payload.get("key"):
        parts.append(f"key={payload['key']}")
    if payload.get("operation"):
        parts.append(f"operation={payload['operation']}")
    if payload.get("duration_ms") is not None:
        parts.append(f"duration_ms={payload['duration_ms']}")
    if payload.get("error"):
        parts.append(f"error={payload['error']}")
    return " ".join(parts)


def configure_logging(log_level: str = "INFO") -> None:
    """Configure root logger with JSON or readable format."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        if _use_json():
            handler.setFormatter(JsonFormatter())
        else:
            handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)


class JsonFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if message.startswith("{"):
            # Already rendered by structured_log
            return message
        payload: dict[str, Any] = {
            "severity": record.levelname,
            "message": _redact(message),
            "logger": record.name,
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat().replace("+00:00", "Z"),
        }
        if getattr(record, "key", None):
            payload["key"] = record.key
        if getattr(record, "operation", None):
            payload["operation"] = record.operation
        if record.exc_info:
            payload["error"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else "",
                "message": _redact(str(record.exc_info[1])) if record.exc_info[1] else "",
                "stack_trace": self.formatException(record.exc_info) if record.exc_info[2] else "",
            }
        return json.dumps(payload)
