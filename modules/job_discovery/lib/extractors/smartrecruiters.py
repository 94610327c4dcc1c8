# job_discovery/extractors/smartrecruiters.py
"""
SmartRecruiters.

Page:  https://jobs.smartrecruiters.com/<slug>   (li.opening-job cards)
Feed:  https://api.smartrecruiters.com/v1/companies/<slug>/postings
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urljoin

from ..http_client import HttpClient
from ..models import ATSClassification, ATSType, ExtractionOutcome, RawListing
from .base import Extractor, first_text, make_soup, parse_each
from .registry import register

log = logging.getLogger(__name__)

_JOBS_BASE = "https://jobs.smartrecruiters.com"
_API = "https://api.smartrecruiters.com/v1/companies/{slug}/postings"
_PAGE_LIMIT = 100


def extract_listings(html: str, classification: ATSClassification, page_url: str = "") -> ExtractionOutcome:
    soup = make_soup(html)

    def _card(li: Any) -> RawListing | None:
        a = li.select_one("a[href]")
        if a is None:
            return None
        title = first_text(a, "h4.job-title", ".job-title") or a.get_text(" ", strip=True)
        href = (a.get("href") or "").strip()
        if not title or not href:
            return None
        return RawListing(
            title=title,
            url=urljoin(page_url or _JOBS_BASE + "/", href),
            location=first_text(li, ".job-desc", "li.job-desc", ".location"),
        )

    listings, warnings = parse_each(soup.select("li.opening-job"), _card, label="smartrecruiters")
    return ExtractionOutcome(listings=tuple(listings), warnings=tuple(warnings))


def _location(loc: Any) -> str:
    if not isinstance(loc, dict):
        return str(loc or "")
    parts = [loc.get("city"), loc.get("region"), loc.get("country")]
    text = ", ".join(str(p) for p in parts if p)
    if loc.get("remote"):
        text = f"{text} Remote".strip()
    return text


def parse_feed(data: Any, slug: str) -> ExtractionOutcome:
    content = data.get("content") if isinstance(data, dict) else None
    if not isinstance(content, list):
        return ExtractionOutcome(warnings=("smartrecruiters feed: missing 'content' list",))

    def _job(j: dict[str, Any]) -> RawListing | None:
        title = (j.get("name") or "").strip()
        job_id = str(j.get("id") or "").strip()
        if not title or not job_id:
            return None
        dept = (j.get("department") or {}).get("label") or ""
        function = (j.get("function") or {}).get("label") or ""
        return RawListing(
            title=title,
            url=f"{_JOBS_BASE}/{slug}/{job_id}",
            location=_location(j.get("location")),
            posted=j.get("releasedDate"),
            description=" ".join(x for x in (dept, function) if x),
        )

    listings, warnings = parse_each(content, _job, label="smartrecruiters feed")
    return ExtractionOutcome(listings=tuple(listings), warnings=tuple(warnings))


def collect_feed(client: HttpClient, classification: ATSClassification) -> ExtractionOutcome | None:
    slug = classification.identifier
    if not slug:
        return None
    res = client.fetch_json(_API.format(slug=slug), params={"limit": _PAGE_LIMIT})
    if not res.ok:
        log.info("SmartRecruiters feed unavailable for %s: %s", slug, res.error)
        return None
    return parse_feed(res.data, slug)


EXTRACTOR = register(
    ATSType.SMARTRECRUITERS,
    Extractor(name="smartrecruiters", extract_listings=extract_listings, collect_feed=collect_feed),
)
