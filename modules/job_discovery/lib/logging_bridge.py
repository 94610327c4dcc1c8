from __future__ import annotations

import datetime as _dt
import json
import logging
import os
import socket
from typing import Any

# Structured activity/error records. When LOG_DIR is set, records are appended
# as JSON lines to <LOG_DIR>/<prefix>-YYYY-MM-DD.jsonl; otherwise they go to
# stdlib logging under "job_discovery.activity" / "job_discovery.error".

_REDACT_KEYS = {
    "password",
    "token",
    "apikey",
    "api_key",
    "secret",
    "authorization",
    "auth",
    "bearer",
    "cookie",
    "set-cookie",
}

_HOSTNAME = socket.gethostname()
_PID = os.getpid()

_activity_logger = logging.getLogger("job_discovery.activity")
_error_logger = logging.getLogger("job_discovery.error")


def _redact(value: Any) -> Any:
    """
    Deep-copy dict/list structures, replacing values whose keys look secret.
    """
    if isinstance(value, dict):
        out: dict[str, Any] = {}
        for k, v in value.items():
            lk = str(k).lower()
            if lk in _REDACT_KEYS or lk.endswith("_secret") or lk.endswith("_token"):
                out[k] = "***REDACTED***"
            else:
                out[k] = _redact(v)
        return out
    if isinstance(value, (list, tuple)):
        return [_redact(v) for v in value]
    return value


def _log_path(prefix: str) -> str | None:
    log_dir = os.getenv("LOG_DIR")
    if not log_dir:
        return None
    today = _dt.date.today().isoformat()
    return os.path.join(log_dir, f"{prefix}-{today}.jsonl")


def _append_jsonl(path: str, record: dict[str, Any]) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    payload = dict(record)
    payload["_meta"] = {"host": _HOSTNAME, "pid": _PID, "ts": _dt.datetime.now(_dt.timezone.utc).isoformat()}
    line = json.dumps(payload, ensure_ascii=False, separators=(",", ":"), default=str) + "\n"
    # O_APPEND keeps concurrent single-line writes from interleaving on POSIX.
    fd = os.open(path, os.O_CREAT | os.O_APPEND | os.O_WRONLY, 0o644)
    try:
        os.write(fd, line.encode("utf-8"))
    finally:
        os.close(fd)


def _emit(prefix: str, record: dict[str, Any], fallback: logging.Logger, level: int) -> None:
    payload = _redact(record)
    path = _log_path(os.getenv(f"{prefix.upper()}_LOG_PREFIX", prefix))
    if path:
        try:
            _append_jsonl(path, payload)
            return
        except (OSError, TypeError, ValueError):
            fallback.debug("JSONL log write failed; falling back to stdlib logging", exc_info=True)
    fallback.log(level, payload)


def activity(record: dict[str, Any]) -> None:
    """Write a structured activity record."""
    _emit("activity", record, _activity_logger, logging.INFO)


def error(record: dict[str, Any]) -> None:
    """Write a structured error record."""
    _emit("error", record, _error_logger, logging.ERROR)
