from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from .utils import norm_key


class ATSType(str, Enum):
    GREENHOUSE = "Greenhouse"
    LEVER = "Lever"
    WORKDAY = "Workday"
    SMARTRECRUITERS = "SmartRecruiters"
    CUSTOM = "Custom"
    UNKNOWN = "Unknown"


class RemotePolicy(str, Enum):
    FULLY_REMOTE = "FullyRemote"
    HYBRID = "Hybrid"
    ON_SITE = "OnSite"
    REMOTE_FRIENDLY = "RemoteFriendly"
    UNKNOWN = "Unknown"


class ScrapeState(str, Enum):
    """
    Per-scrape lifecycle:
        NotFetched -> Fetched -> Classified -> Extracted -> Done
    Failed is terminal and reachable from any non-terminal state.
    """

    NOT_FETCHED = "NotFetched"
    FETCHED = "Fetched"
    CLASSIFIED = "Classified"
    EXTRACTED = "Extracted"
    DONE = "Done"
    FAILED = "Failed"


@dataclass(frozen=True)
class ScrapeTarget:
    """One company to scrape (caller-owned; never persisted here)."""

    name: str
    careers_url: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "careers_url": self.careers_url}


@dataclass(frozen=True)
class ATSClassification:
    type: ATSType = ATSType.UNKNOWN
    identifier: str | None = None

    @classmethod
    def unknown(cls) -> ATSClassification:
        return cls(ATSType.UNKNOWN, None)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "identifier": self.identifier}


@dataclass(frozen=True)
class RawListing:
    """
    A listing as pulled off a page or feed, before normalization.
    Only title/url are required; everything else is free text the
    normalizer interprets.
    """

    title: str
    url: str
    location: str = ""
    description: str = ""
    salary_text: str = ""
    posted: Any = None  # ISO string, epoch number, "3 days ago", ...
    tags: tuple[str, ...] = ()
    company: str = ""
    salary_min: float | None = None
    salary_max: float | None = None
    remote_hint: RemotePolicy | None = None


@dataclass(frozen=True)
class JobPosting:
    """
    Canonical, immutable posting. (company, title, url) normalized is the
    identity used for deduplication.
    """

    title: str
    company: str
    url: str
    country: str = ""
    remote_policy: RemotePolicy = RemotePolicy.UNKNOWN
    required_skills: tuple[str, ...] = ()
    preferred_skills: tuple[str, ...] = ()
    salary_min: float | None = None
    salary_max: float | None = None
    posted_date: date | None = None
    source_platform: str = ""

    @property
    def identity_key(self) -> tuple[str, str, str]:
        return (norm_key(self.company), norm_key(self.title), norm_key(self.url))

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "company": self.company,
            "url": self.url,
            "country": self.country,
            "remote_policy": self.remote_policy.value,
            "required_skills": list(self.required_skills),
            "preferred_skills": list(self.preferred_skills),
            "salary_min": self.salary_min,
            "salary_max": self.salary_max,
            "posted_date": self.posted_date.isoformat() if self.posted_date else None,
            "source_platform": self.source_platform,
        }


@dataclass(frozen=True)
class ExtractionOutcome:
    """Extractor output: whatever listings survived plus non-fatal warnings."""

    listings: tuple[RawListing, ...] = ()
    warnings: tuple[str, ...] = ()


@dataclass
class CompanyScrapeResult:
    """
    Outcome of scraping one company. Always returned, never raised.
    success=False only for a recoverable fetch/extraction failure; finding
    zero postings is still a success.
    """

    target: ScrapeTarget
    classification: ATSClassification = field(default_factory=ATSClassification.unknown)
    success: bool = False
    postings: list[JobPosting] = field(default_factory=list)
    error: str | None = None
    warnings: list[str] = field(default_factory=list)
    state: ScrapeState = ScrapeState.NOT_FETCHED
    scraped_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def fail(self, error: str) -> CompanyScrapeResult:
        self.success = False
        self.error = error or "unknown error"
        self.state = ScrapeState.FAILED
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "target": self.target.to_dict(),
            "classification": self.classification.to_dict(),
            "success": self.success,
            "postings": [p.to_dict() for p in self.postings],
            "error": self.error,
            "warnings": list(self.warnings),
            "state": self.state.value,
            "scraped_at": self.scraped_at.isoformat(),
        }


@dataclass(frozen=True)
class AggregationRequest:
    stacks: frozenset[str] = frozenset()
    locations: frozenset[str] = frozenset()
    min_salary: float = 0

    @classmethod
    def build(cls, stacks=(), locations=(), min_salary: float = 0) -> AggregationRequest:
        return cls(
            stacks=frozenset(s.strip() for s in stacks if s and s.strip()),
            locations=frozenset(loc.strip() for loc in locations if loc and loc.strip()),
            min_salary=float(min_salary or 0),
        )


@dataclass
class AggregationResult:
    all_postings: list[JobPosting] = field(default_factory=list)
    postings_by_source: dict[str, int] = field(default_factory=dict)
    filtered_postings: list[JobPosting] = field(default_factory=list)
    failed_sources: dict[str, str] = field(default_factory=dict)
    boards_scraped: list[str] = field(default_factory=list)
    message: str | None = None
    cancelled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "all_postings": [p.to_dict() for p in self.all_postings],
            "postings_by_source": dict(self.postings_by_source),
            "filtered_postings": [p.to_dict() for p in self.filtered_postings],
            "failed_sources": dict(self.failed_sources),
            "boards_scraped": list(self.boards_scraped),
            "message": self.message,
            "cancelled": self.cancelled,
        }


@dataclass(frozen=True)
class BoardDescriptor:
    """
    Static metadata for one remote job board.
    - priority: 1..10, higher is better
    - regional_friendliness: region -> 1..10
    - stack_friendliness: stack keyword -> 1..10 (how many such roles the board carries)
    - feed_kind: key into the board feed parsers ("html" = generic heuristics)
    """

    name: str
    url: str
    priority: int
    regional_friendliness: Mapping[str, int] = field(default_factory=dict)
    tags: frozenset[str] = frozenset()
    description: str = ""
    feed_url: str | None = None
    feed_kind: str = "html"
    stack_friendliness: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 1 <= int(self.priority) <= 10:
            raise ValueError(f"Board {self.name!r}: priority must be within 1..10")
        for label, scores in (("region", self.regional_friendliness), ("stack", self.stack_friendliness)):
            for key, score in scores.items():
                if not 1 <= int(score) <= 10:
                    raise ValueError(f"Board {self.name!r}: friendliness for {label} {key!r} must be within 1..10")

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "url": self.url,
            "priority": self.priority,
            "regional_friendliness": dict(self.regional_friendliness),
            "stack_friendliness": dict(self.stack_friendliness),
            "tags": sorted(self.tags),
            "description": self.description,
        }


@dataclass
class BatchSummary:
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    postings: int = 0
    by_ats: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "postings": self.postings,
            "by_ats": dict(self.by_ats),
        }
