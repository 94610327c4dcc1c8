# job_discovery/extractors/greenhouse.py
"""
Greenhouse boards.

Page:  https://boards.greenhouse.io/<slug>  (classic: div.opening)
       https://job-boards.greenhouse.io/<slug>  (new: tr.job-post)
Feed:  https://boards-api.greenhouse.io/v1/boards/<slug>/jobs?content=true
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urljoin

from ..http_client import HttpClient
from ..models import ATSClassification, ATSType, ExtractionOutcome, RawListing
from .base import Extractor, first_text, html_to_text, make_soup, parse_each
from .registry import register

log = logging.getLogger(__name__)

_BOARD_BASE = "https://boards.greenhouse.io"
_API = "https://boards-api.greenhouse.io/v1/boards/{slug}/jobs"


def extract_listings(html: str, classification: ATSClassification, page_url: str = "") -> ExtractionOutcome:
    soup = make_soup(html)
    base = page_url or (f"{_BOARD_BASE}/{classification.identifier}/" if classification.identifier else _BOARD_BASE)

    def _classic(div: Any) -> RawListing | None:
        a = div.select_one("a[href]")
        title = a.get_text(" ", strip=True) if a else ""
        href = (a.get("href") or "").strip() if a else ""
        if not title or not href:
            return None
        return RawListing(
            title=title,
            url=urljoin(base, href),
            location=first_text(div, "span.location", ".location"),
        )

    def _job_post(row: Any) -> RawListing | None:
        a = row.select_one("a[href]")
        if a is None:
            return None
        title = first_text(a, "p.body--medium", ".job-title") or a.get_text(" ", strip=True)
        href = (a.get("href") or "").strip()
        if not title or not href:
            return None
        return RawListing(
            title=title,
            url=urljoin(base, href),
            location=first_text(a, "p.body--metadata", ".location"),
        )

    classic, w1 = parse_each(soup.select("div.opening"), _classic, label="greenhouse")
    modern, w2 = parse_each(soup.select("tr.job-post"), _job_post, label="greenhouse")
    return ExtractionOutcome(listings=tuple(classic + modern), warnings=tuple(w1 + w2))


def parse_feed(data: Any) -> ExtractionOutcome:
    jobs = data.get("jobs") if isinstance(data, dict) else None
    if not isinstance(jobs, list):
        return ExtractionOutcome(warnings=("greenhouse feed: missing 'jobs' list",))

    def _job(j: dict[str, Any]) -> RawListing | None:
        title = (j.get("title") or "").strip()
        url = (j.get("absolute_url") or "").strip()
        if not title or not url:
            return None
        loc = j.get("location") or {}
        return RawListing(
            title=title,
            url=url,
            location=(loc.get("name") or "") if isinstance(loc, dict) else str(loc),
            description=html_to_text(j.get("content")),
            posted=j.get("first_published") or j.get("updated_at"),
        )

    listings, warnings = parse_each(jobs, _job, label="greenhouse feed")
    return ExtractionOutcome(listings=tuple(listings), warnings=tuple(warnings))


def collect_feed(client: HttpClient, classification: ATSClassification) -> ExtractionOutcome | None:
    if not classification.identifier:
        return None
    res = client.fetch_json(_API.format(slug=classification.identifier), params={"content": "true"})
    if not res.ok:
        log.info("Greenhouse feed unavailable for %s: %s", classification.identifier, res.error)
        return None
    return parse_feed(res.data)


EXTRACTOR = register(
    ATSType.GREENHOUSE,
    Extractor(name="greenhouse", extract_listings=extract_listings, collect_feed=collect_feed),
)
