from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .utils import truthy

ENV_PREFIX = "JOB_DISCOVERY_"

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36"
)


# -----------------------------
# Exceptions
# -----------------------------
class ConfigError(ValueError):
    """Raised when provided kwargs/env cannot form a valid Settings."""


# -----------------------------
# Models
# -----------------------------
@dataclass(frozen=True)
class Settings:
    """
    Canonical configuration for a job discovery run.

    Network:
      timeout: per-request timeout in seconds (default 15)
      retries: retries on transient failures (default 1)
      backoff_factor: urllib3 backoff factor (default 0.5)
      user_agent: UA header sent with every request

    Aggregation:
      max_parallel: cap on simultaneous board requests (default 6)
      task_timeout: seconds a board task may take before it is abandoned (default 45)
      board_limit: scrape only the N best recommended boards (default: all)

    Batch:
      batch_limit: max companies per batch (default 50)
      batch_interval: seconds between companies (default 1.0)
      batch_jitter: extra random seconds added to the interval (default 0.0)
    """

    timeout: float = 15.0
    retries: int = 1
    backoff_factor: float = 0.5
    user_agent: str = DEFAULT_USER_AGENT

    max_parallel: int = 6
    task_timeout: float = 45.0
    board_limit: int | None = None

    batch_limit: int = 50
    batch_interval: float = 1.0
    batch_jitter: float = 0.0

    detect_only: bool = False

    # ------------- constructors -------------
    @classmethod
    def from_env_and_kwargs(cls, kwargs: Mapping[str, Any] | None = None) -> Settings:
        """
        Build Settings from kwargs with validation. Any field may also be set
        through the environment as JOB_DISCOVERY_<FIELD> (kwargs win).

            timeout: float = 15
            retries: int = 1
            max_parallel: int = 6
            task_timeout: float = 45
            board_limit: int | None
            batch_limit: int = 50
            batch_interval: float = 1.0
            batch_jitter: float = 0.0
            detect_only: bool = false
        """
        kw = dict(kwargs or {})

        def _pick(name: str, default: Any = None) -> Any:
            # Explicit zeros must survive so validation can reject them.
            val = kw.get(name)
            if val is None:
                val = os.getenv(ENV_PREFIX + name.upper())
            return default if val is None or val == "" else val

        try:
            board_limit_raw = _pick("board_limit")
            settings = cls(
                timeout=float(_pick("timeout", 15.0)),
                retries=int(_pick("retries", 1)),
                backoff_factor=float(_pick("backoff_factor", 0.5)),
                user_agent=str(_pick("user_agent", DEFAULT_USER_AGENT)),
                max_parallel=int(_pick("max_parallel", 6)),
                task_timeout=float(_pick("task_timeout", 45.0)),
                board_limit=int(board_limit_raw) if board_limit_raw is not None else None,
                batch_limit=int(_pick("batch_limit", 50)),
                batch_interval=float(_pick("batch_interval", 1.0)),
                batch_jitter=float(_pick("batch_jitter", 0.0)),
                detect_only=truthy(_pick("detect_only", False)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid job discovery setting: {e}") from e

        _validate_settings(settings)
        return settings


# -----------------------------
# Helpers
# -----------------------------
def _validate_settings(s: Settings) -> None:
    if s.timeout <= 0:
        raise ConfigError("'timeout' must be > 0.")
    if s.retries < 0:
        raise ConfigError("'retries' must be >= 0.")
    if s.max_parallel <= 0:
        raise ConfigError("'max_parallel' must be >= 1.")
    if s.task_timeout <= 0:
        raise ConfigError("'task_timeout' must be > 0.")
    if s.board_limit is not None and s.board_limit <= 0:
        raise ConfigError("'board_limit' must be >= 1 when provided.")
    if s.batch_limit <= 0:
        raise ConfigError("'batch_limit' must be >= 1.")
    if s.batch_interval < 0 or s.batch_jitter < 0:
        raise ConfigError("'batch_interval' and 'batch_jitter' cannot be negative.")
    if not s.user_agent.strip():
        raise ConfigError("'user_agent' cannot be empty.")
