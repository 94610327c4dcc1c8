# job_discovery/extractors/lever.py
from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urljoin

from ..http_client import HttpClient
from ..models import ATSClassification, ATSType, ExtractionOutcome, RawListing
from .base import Extractor, first_text, html_to_text, make_soup, parse_each
from .registry import register

log = logging.getLogger(__name__)

_LEVER_BASE = "https://jobs.lever.co"
_API = "https://api.lever.co/v0/postings/{slug}"


def extract_listings(html: str, classification: ATSClassification, page_url: str = "") -> ExtractionOutcome:
    """
    Parse a Lever 'list' page:
      div.postings-group > div.posting > a.posting-title > h5[data-qa=posting-name]
    """
    soup = make_soup(html)

    def _posting(a: Any) -> RawListing | None:
        href = (a.get("href") or "").strip()
        url = urljoin(page_url or _LEVER_BASE, href) if href else ""

        title_el = a.select_one('h5[data-qa="posting-name"]') or a.select_one("h5")
        title = (title_el.get_text(strip=True) if title_el else "").strip()
        if not title or not url:
            return None

        location = first_text(a, "span.sort-by-location", "span.location", ".posting-categories .location")
        workplace = first_text(a, "span.workplaceTypes", "span.display-inline-block.workplaceTypes")
        commitment = first_text(a, "span.sort-by-commitment", "span.commitment")
        return RawListing(
            title=title,
            url=url,
            location=" ".join(x for x in (location, workplace) if x),
            description=commitment,
        )

    anchors = soup.select("div.postings-group a.posting-title") or soup.select("a.posting-title")
    listings, warnings = parse_each(anchors, _posting, label="lever")
    return ExtractionOutcome(listings=tuple(listings), warnings=tuple(warnings))


def _salary(j: dict[str, Any]) -> tuple[float | None, float | None]:
    rng = j.get("salaryRange")
    if not isinstance(rng, dict):
        return None, None
    lo, hi = rng.get("min"), rng.get("max")
    return (float(lo) if isinstance(lo, (int, float)) else None, float(hi) if isinstance(hi, (int, float)) else None)


def parse_feed(data: Any) -> ExtractionOutcome:
    if not isinstance(data, list):
        return ExtractionOutcome(warnings=("lever feed: expected a list of postings",))

    def _job(j: dict[str, Any]) -> RawListing | None:
        title = (j.get("text") or "").strip()
        url = (j.get("hostedUrl") or j.get("applyUrl") or "").strip()
        if not title or not url:
            return None
        cats = j.get("categories") or {}
        lists = j.get("lists") or []
        sections = " ".join(
            f"{sec.get('text', '')} {sec.get('content', '')}" for sec in lists if isinstance(sec, dict)
        )
        description = " ".join(
            x for x in (j.get("descriptionPlain") or "", html_to_text(sections), j.get("additionalPlain") or "") if x
        )
        salary_min, salary_max = _salary(j)
        location = " ".join(x for x in (cats.get("location") or "", j.get("workplaceType") or "") if x)
        return RawListing(
            title=title,
            url=url,
            location=location,
            description=description,
            posted=j.get("createdAt"),
            salary_min=salary_min,
            salary_max=salary_max,
        )

    listings, warnings = parse_each(data, _job, label="lever feed")
    return ExtractionOutcome(listings=tuple(listings), warnings=tuple(warnings))


def collect_feed(client: HttpClient, classification: ATSClassification) -> ExtractionOutcome | None:
    if not classification.identifier:
        return None
    res = client.fetch_json(_API.format(slug=classification.identifier), params={"mode": "json"})
    if not res.ok:
        log.info("Lever feed unavailable for %s: %s", classification.identifier, res.error)
        return None
    return parse_feed(res.data)


EXTRACTOR = register(
    ATSType.LEVER,
    Extractor(name="lever", extract_listings=extract_listings, collect_feed=collect_feed),
)
