# job_discovery/extractors/generic.py
"""
Generic careers-page heuristics, used for Custom and Unknown pages and for
job boards that have no dedicated feed parser.

Two passes, best-effort:
  1) schema.org JobPosting blocks in <script type="application/ld+json">
  2) keyword-anchored link scan: anchors whose href looks like a job page and
     whose text reads like a role title
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any
from urllib.parse import urljoin

from ..models import ATSClassification, ATSType, ExtractionOutcome, RawListing
from ..utils import clean_text
from .base import Extractor, html_to_text, make_soup, parse_each
from .registry import register

log = logging.getLogger(__name__)

MAX_LINKS = 200

_JOB_HREF_RE = re.compile(
    r"/(?:jobs?|careers?|positions?|openings?|vacanc(?:y|ies)|remote-jobs|listings?|opportunit(?:y|ies))(?:/|\?|#|-|$)",
    re.IGNORECASE,
)

_ROLE_RE = re.compile(
    r"\b(?:engineer|developer|programmer|architect|scientist|analyst|designer|manager|lead|"
    r"director|head|administrator|admin|devops|sre|consultant|specialist|intern|"
    r"tester|qa|writer|recruiter|coordinator|officer|support|marketing|sales|"
    r"product|accountant|counsel|researcher|technician|representative|associate|"
    r"editor|strategist|owner|cto|cfo|vp)\b",
    re.IGNORECASE,
)

# Navigation labels that point at job pages but are not jobs themselves.
_NAV_RE = re.compile(
    r"^(?:careers?|jobs?|all jobs|view all(?: jobs| positions| openings)?|see all.*|open positions|"
    r"open roles|current openings|apply(?: now)?|learn more|read more|join us|join our team|"
    r"search jobs|browse jobs|post a job|hiring|next|previous|more)$",
    re.IGNORECASE,
)

_LOCATION_SELECTORS = ('[class*="location"]', '[data-location]', '[class*="region"]')


def _base_url(classification: ATSClassification) -> str:
    ident = classification.identifier or ""
    if not ident:
        return ""
    return ident if "://" in ident else f"https://{ident}/"


# ---- JSON-LD ----
def _flatten_jsonld(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, list):
        out: list[dict[str, Any]] = []
        for item in data:
            out.extend(_flatten_jsonld(item))
        return out
    if not isinstance(data, dict):
        return []
    if isinstance(data.get("@graph"), list):
        return _flatten_jsonld(data["@graph"])
    if isinstance(data.get("itemListElement"), list):
        return _flatten_jsonld([el.get("item", el) for el in data["itemListElement"] if isinstance(el, dict)])
    return [data]


def _is_job_posting(item: dict[str, Any]) -> bool:
    t = item.get("@type", "")
    if isinstance(t, list):
        return any("JobPosting" in str(x) for x in t)
    return "JobPosting" in str(t)


def _jsonld_location(loc: Any) -> str:
    if isinstance(loc, list):
        return "; ".join(x for x in (_jsonld_location(v) for v in loc) if x)
    if isinstance(loc, str):
        return loc
    if not isinstance(loc, dict):
        return ""
    addr = loc.get("address", loc)
    if isinstance(addr, str):
        return addr
    if isinstance(addr, dict):
        country = addr.get("addressCountry")
        if isinstance(country, dict):
            country = country.get("name")
        parts = [addr.get("addressLocality"), addr.get("addressRegion"), country]
        return ", ".join(str(p) for p in parts if p)
    return str(loc.get("name") or "")


def _jsonld_salary(item: dict[str, Any]) -> tuple[float | None, float | None]:
    base = item.get("baseSalary")
    if not isinstance(base, dict):
        return None, None
    value = base.get("value")
    if isinstance(value, (int, float)):
        return float(value), float(value)
    if not isinstance(value, dict):
        return None, None

    def _num(v: Any) -> float | None:
        try:
            return float(v) if v not in (None, "") else None
        except (TypeError, ValueError):
            return None

    single = _num(value.get("value"))
    lo, hi = _num(value.get("minValue")), _num(value.get("maxValue"))
    if lo is None and hi is None and single is not None:
        return single, single
    return lo, hi


def _jsonld_listing(item: dict[str, Any], base: str) -> RawListing | None:
    title = clean_text(item.get("title") or item.get("name"))
    url = str(item.get("url") or item.get("sameAs") or "").strip()
    if not title or not url:
        return None
    org = item.get("hiringOrganization")
    company = org.get("name", "") if isinstance(org, dict) else str(org or "")
    location = _jsonld_location(item.get("jobLocation"))
    if str(item.get("jobLocationType") or "").upper() == "TELECOMMUTE":
        location = f"{location} Remote".strip()
    salary_min, salary_max = _jsonld_salary(item)
    return RawListing(
        title=title,
        url=urljoin(base or url, url),
        location=location,
        description=html_to_text(item.get("description")),
        posted=item.get("datePosted"),
        company=clean_text(company),
        salary_min=salary_min,
        salary_max=salary_max,
    )


def _from_jsonld(soup: Any, base: str) -> tuple[list[RawListing], list[str]]:
    postings: list[dict[str, Any]] = []
    broken = 0
    for script in soup.find_all("script", type="application/ld+json"):
        try:
            data = json.loads(script.string or "")
        except (TypeError, ValueError):
            broken += 1
            continue
        postings.extend(i for i in _flatten_jsonld(data) if _is_job_posting(i))

    listings, warnings = parse_each(postings, lambda i: _jsonld_listing(i, base), label="json-ld")
    if broken:
        log.debug("generic: %d unreadable JSON-LD blocks", broken)
    return listings, warnings


# ---- link scan ----
def _looks_like_role(text: str) -> bool:
    if not (4 <= len(text) <= 150):
        return False
    if _NAV_RE.match(text):
        return False
    return bool(_ROLE_RE.search(text))


def _nearby_location(a: Any) -> str:
    parent = a.parent
    for _ in range(3):
        if parent is None:
            break
        for sel in _LOCATION_SELECTORS:
            el = parent.select_one(sel)
            if el is not None and el is not a:
                txt = clean_text(el.get("data-location") or el.get_text(" ", strip=True))
                if txt:
                    return txt
        parent = parent.parent
    return ""


def _from_links(soup: Any, base: str) -> tuple[list[RawListing], list[str]]:
    def _anchor(a: Any) -> RawListing | None:
        href = (a.get("href") or "").strip()
        if not href or href.startswith(("#", "javascript:", "mailto:")):
            return None
        if not _JOB_HREF_RE.search(href):
            return None
        title = clean_text(a.get_text(" ", strip=True))
        if not _looks_like_role(title):
            return None
        return RawListing(title=title, url=urljoin(base or href, href), location=_nearby_location(a))

    anchors = soup.find_all("a", href=True)[: MAX_LINKS * 5]
    listings, warnings = parse_each(anchors, _anchor, label="generic")
    return listings[:MAX_LINKS], warnings


def extract_listings(html: str, classification: ATSClassification, page_url: str = "") -> ExtractionOutcome:
    soup = make_soup(html)
    # Relative links resolve against the page they came from; the host-only
    # guess is for callers that have no page URL.
    base = page_url or _base_url(classification)

    listings, warnings = _from_jsonld(soup, base)
    if not listings:
        listings, more = _from_links(soup, base)
        warnings += more

    # The same role is often linked twice (title + "Apply" card); keep the first.
    seen: set[str] = set()
    unique: list[RawListing] = []
    for item in listings:
        key = item.url.rstrip("/").lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)

    log.debug("generic: %d listings from %s", len(unique), base or "<no base>")
    return ExtractionOutcome(listings=tuple(unique), warnings=tuple(warnings))


EXTRACTOR = Extractor(name="generic", extract_listings=extract_listings)
register(ATSType.CUSTOM, EXTRACTOR)
register(ATSType.UNKNOWN, EXTRACTOR)
