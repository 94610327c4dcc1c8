# job_discovery/extractors/__init__.py
from __future__ import annotations

# Importing the vendor modules registers them in the strategy map.
from . import generic, greenhouse, lever, smartrecruiters, workday
from .base import Extractor
from .registry import all_types, extract, get, register

__all__ = [
    "Extractor",
    "all_types",
    "extract",
    "generic",
    "get",
    "greenhouse",
    "lever",
    "register",
    "smartrecruiters",
    "workday",
]
