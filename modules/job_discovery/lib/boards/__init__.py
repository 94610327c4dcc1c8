# job_discovery/boards/__init__.py
from __future__ import annotations

from .catalog import BoardRegistry, default_registry, recommend, relevance
from .feeds import FEEDS, collect_board

__all__ = [
    "FEEDS",
    "BoardRegistry",
    "collect_board",
    "default_registry",
    "recommend",
    "relevance",
]
