# job_discovery/boards/feeds.py
"""
Per-board listing collection.

Boards that publish a public JSON API or RSS feed get a dedicated parser
keyed by BoardDescriptor.feed_kind; everything else ("html") goes through the
generic careers-page heuristics. Collection raises NetworkError/ParseError so
the aggregator can record the board as failed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

import feedparser

from ..errors import NetworkError, ParseError
from ..extractors import registry
from ..extractors.base import html_to_text, parse_each
from ..http_client import HttpClient
from ..models import ATSClassification, ATSType, BoardDescriptor, ExtractionOutcome, RawListing, RemotePolicy
from ..utils import clean_text

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedFormat:
    """How to fetch (`json` or `text`) and parse one kind of board feed."""

    name: str
    fetch: str
    parse: Callable[[Any], ExtractionOutcome]


def _outcome(items: Any, parse: Callable[[Any], RawListing | None], label: str) -> ExtractionOutcome:
    listings, warnings = parse_each(items, parse, label=label)
    return ExtractionOutcome(listings=tuple(listings), warnings=tuple(warnings))


def _require_list(data: Any, key: str | None, label: str) -> list[Any]:
    items = data.get(key) if key and isinstance(data, dict) else data
    if not isinstance(items, list):
        raise ParseError(f"{label}: expected a list{f' under {key!r}' if key else ''}")
    return items


def _tags(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list):
        return ()
    return tuple(clean_text(str(t)) for t in value if t and clean_text(str(t)))


def _num(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if value > 0 else None
    try:
        v = float(str(value).replace(",", ""))
    except (TypeError, ValueError):
        return None
    return v if v > 0 else None


# =============================================================================
# JSON APIs
# =============================================================================
def parse_remoteok(data: Any) -> ExtractionOutcome:
    # The first element is a legal/metadata notice, not a job.
    items = [j for j in _require_list(data, None, "remoteok") if isinstance(j, dict) and j.get("position")]

    def _job(j: dict[str, Any]) -> RawListing | None:
        return RawListing(
            title=clean_text(j.get("position")),
            url=(j.get("url") or j.get("apply_url") or "").strip(),
            company=clean_text(j.get("company")),
            location=clean_text(j.get("location")) or "Worldwide",
            description=html_to_text(j.get("description")),
            tags=_tags(j.get("tags")),
            posted=j.get("epoch") or j.get("date"),
            salary_min=_num(j.get("salary_min")),
            salary_max=_num(j.get("salary_max")),
            remote_hint=RemotePolicy.FULLY_REMOTE,
        )

    return _outcome(items, _job, "remoteok")


def parse_remotive(data: Any) -> ExtractionOutcome:
    def _job(j: dict[str, Any]) -> RawListing | None:
        return RawListing(
            title=clean_text(j.get("title")),
            url=(j.get("url") or "").strip(),
            company=clean_text(j.get("company_name")),
            location=clean_text(j.get("candidate_required_location")),
            description=html_to_text(j.get("description")),
            salary_text=clean_text(j.get("salary")),
            tags=_tags(j.get("tags")),
            posted=j.get("publication_date"),
            remote_hint=RemotePolicy.FULLY_REMOTE,
        )

    return _outcome(_require_list(data, "jobs", "remotive"), _job, "remotive")


def parse_jobicy(data: Any) -> ExtractionOutcome:
    def _job(j: dict[str, Any]) -> RawListing | None:
        return RawListing(
            title=clean_text(j.get("jobTitle")),
            url=(j.get("url") or "").strip(),
            company=clean_text(j.get("companyName")),
            location=clean_text(j.get("jobGeo")),
            description=html_to_text(j.get("jobDescription") or j.get("jobExcerpt")),
            tags=_tags(j.get("jobIndustry")),
            posted=j.get("pubDate"),
            salary_min=_num(j.get("annualSalaryMin")),
            salary_max=_num(j.get("annualSalaryMax")),
            remote_hint=RemotePolicy.FULLY_REMOTE,
        )

    return _outcome(_require_list(data, "jobs", "jobicy"), _job, "jobicy")


def parse_himalayas(data: Any) -> ExtractionOutcome:
    def _job(j: dict[str, Any]) -> RawListing | None:
        restrictions = j.get("locationRestrictions") or []
        location = ", ".join(str(r) for r in restrictions if r) if isinstance(restrictions, list) else str(restrictions)
        return RawListing(
            title=clean_text(j.get("title")),
            url=(j.get("applicationLink") or j.get("guid") or "").strip(),
            company=clean_text(j.get("companyName")),
            location=location or "Worldwide",
            description=html_to_text(j.get("description") or j.get("excerpt")),
            tags=_tags(j.get("categories")),
            posted=j.get("pubDate"),
            salary_min=_num(j.get("minSalary")),
            salary_max=_num(j.get("maxSalary")),
            remote_hint=RemotePolicy.FULLY_REMOTE,
        )

    return _outcome(_require_list(data, "jobs", "himalayas"), _job, "himalayas")


def parse_arbeitnow(data: Any) -> ExtractionOutcome:
    def _job(j: dict[str, Any]) -> RawListing | None:
        remote = bool(j.get("remote"))
        return RawListing(
            title=clean_text(j.get("title")),
            url=(j.get("url") or "").strip(),
            company=clean_text(j.get("company_name")),
            location=clean_text(j.get("location")) + (" Remote" if remote else ""),
            description=html_to_text(j.get("description")),
            tags=_tags(j.get("tags")),
            posted=j.get("created_at"),
            remote_hint=RemotePolicy.FULLY_REMOTE if remote else None,
        )

    return _outcome(_require_list(data, "data", "arbeitnow"), _job, "arbeitnow")


def parse_workingnomads(data: Any) -> ExtractionOutcome:
    def _job(j: dict[str, Any]) -> RawListing | None:
        return RawListing(
            title=clean_text(j.get("title")),
            url=(j.get("url") or "").strip(),
            company=clean_text(j.get("company_name")),
            location=clean_text(j.get("location")),
            description=html_to_text(j.get("description")),
            tags=_tags(j.get("tags")),
            posted=j.get("pub_date"),
            remote_hint=RemotePolicy.FULLY_REMOTE,
        )

    return _outcome(_require_list(data, None, "workingnomads"), _job, "workingnomads")


# =============================================================================
# RSS
# =============================================================================
def parse_rss(text: Any) -> ExtractionOutcome:
    """
    Job-board RSS (We Work Remotely style). Titles are "Company: Role";
    the region sits in a non-standard <region> element.
    """
    feed = feedparser.parse(text or "")
    if feed.bozo and not feed.entries:
        raise ParseError(f"rss: unreadable feed ({feed.get('bozo_exception')!r})")

    def _entry(e: Any) -> RawListing | None:
        title = clean_text(e.get("title"))
        company = ""
        if ": " in title:
            company, title = (part.strip() for part in title.split(": ", 1))
        return RawListing(
            title=title,
            url=(e.get("link") or "").strip(),
            company=company,
            location=clean_text(e.get("region")) or "Worldwide",
            description=html_to_text(e.get("summary")),
            tags=tuple(clean_text(t.get("term")) for t in e.get("tags", []) if t.get("term")),
            posted=e.get("published"),
            remote_hint=RemotePolicy.FULLY_REMOTE,
        )

    return _outcome(feed.entries, _entry, "rss")


FEEDS: dict[str, FeedFormat] = {
    "remoteok": FeedFormat("remoteok", "json", parse_remoteok),
    "remotive": FeedFormat("remotive", "json", parse_remotive),
    "jobicy": FeedFormat("jobicy", "json", parse_jobicy),
    "himalayas": FeedFormat("himalayas", "json", parse_himalayas),
    "arbeitnow": FeedFormat("arbeitnow", "json", parse_arbeitnow),
    "workingnomads": FeedFormat("workingnomads", "json", parse_workingnomads),
    "rss": FeedFormat("rss", "text", parse_rss),
}


# =============================================================================
# COLLECTION
# =============================================================================
def collect_board(client: HttpClient, board: BoardDescriptor) -> ExtractionOutcome:
    """
    Fetch and parse one board. Raises NetworkError when the fetch fails and
    ParseError when a feed comes back in an unexpected shape.
    """
    url = board.feed_url or board.url
    fmt = FEEDS.get(board.feed_kind)

    if fmt is not None and fmt.fetch == "json":
        res = client.fetch_json(url)
        if not res.ok:
            raise NetworkError(f"{board.name}: {res.error}")
        return fmt.parse(res.data)

    res = client.fetch_text(url)
    if not res.ok:
        raise NetworkError(f"{board.name}: {res.error}")
    if fmt is not None:
        return fmt.parse(res.text)

    if board.feed_kind != "html":
        log.warning("Board %s has unknown feed kind %r; using page heuristics", board.name, board.feed_kind)
    host = urlsplit(res.url or url).hostname or ""
    return registry.extract(ATSClassification(ATSType.CUSTOM, host or None), res.text, res.url or url)
