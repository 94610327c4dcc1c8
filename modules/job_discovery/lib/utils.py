from __future__ import annotations

import html
import re
from collections.abc import Iterable
from typing import Any

_WS_RE = re.compile(r"\s+")


def truthy(v: Any) -> bool:
    """
    Normalize common truthy inputs from env/kwargs.
    Accepts bools or strings like: '1', 'true', 'yes', 'on'.
    """
    if isinstance(v, bool):
        return v
    if v is None:
        return False
    if isinstance(v, (int, float)):
        return v != 0
    s = str(v).strip().lower()
    return s in {"1", "true", "yes", "on", "y", "t"}


def clean_text(s: str | None) -> str:
    """Unescape entities and collapse runs of whitespace."""
    if not s:
        return ""
    return _WS_RE.sub(" ", html.unescape(str(s))).strip()


def norm_key(s: str | None) -> str:
    """Case-folded, trimmed, whitespace-collapsed form used for identity comparisons."""
    return _WS_RE.sub(" ", (s or "").strip()).casefold()


def uniq_preserve_order(items: Iterable[str]) -> list[str]:
    """Deduplicate (case-insensitively) while preserving first-seen order."""
    seen: set[str] = set()
    out: list[str] = []
    for it in items:
        if not it:
            continue
        key = it.strip().lower()
        if key in seen:
            continue
        seen.add(key)
        out.append(it.strip())
    return out
