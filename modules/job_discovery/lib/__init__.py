# modules/job_discovery/lib/__init__.py
from __future__ import annotations

# Re-export commonly-used types for convenience
from .aggregator import Aggregator
from .ats import classify
from .batch import Pacing, load_targets, parse_csv_targets, parse_json_targets, scrape_batch, summarize_batch
from .boards import BoardRegistry, default_registry, recommend
from .company import CompanyScraper
from .config import ConfigError, Settings
from .errors import JobDiscoveryError, NetworkError, ParseError, PreconditionError
from .extractors import extract, register
from .http_client import FetchResult, HttpClient
from .models import (
    AggregationRequest,
    AggregationResult,
    ATSClassification,
    ATSType,
    BatchSummary,
    BoardDescriptor,
    CompanyScrapeResult,
    JobPosting,
    RawListing,
    RemotePolicy,
    ScrapeState,
    ScrapeTarget,
)
from .normalize import to_posting

__all__ = [
    "ATSClassification",
    "ATSType",
    "AggregationRequest",
    "AggregationResult",
    "Aggregator",
    "BatchSummary",
    "BoardDescriptor",
    "BoardRegistry",
    "CompanyScrapeResult",
    "CompanyScraper",
    "ConfigError",
    "FetchResult",
    "HttpClient",
    "JobDiscoveryError",
    "JobPosting",
    "NetworkError",
    "Pacing",
    "ParseError",
    "PreconditionError",
    "RawListing",
    "RemotePolicy",
    "ScrapeState",
    "ScrapeTarget",
    "Settings",
    "classify",
    "default_registry",
    "extract",
    "load_targets",
    "parse_csv_targets",
    "parse_json_targets",
    "recommend",
    "register",
    "scrape_batch",
    "summarize_batch",
    "to_posting",
]
