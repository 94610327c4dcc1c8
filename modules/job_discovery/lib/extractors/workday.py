# job_discovery/extractors/workday.py
"""
Workday career sites.

The public page is a JS shell, so the HTML path only finds whatever job
links were server-rendered. The reliable path is the CxS JSON API:

  https://<tenant>.wdN.myworkdayjobs.com/<Site>[/...]
    -> POST https://<tenant>.wdN.myworkdayjobs.com/wday/cxs/<tenant>/<Site>/jobs
"""

from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import urljoin, urlsplit

from ..http_client import HttpClient
from ..models import ATSClassification, ATSType, ExtractionOutcome, RawListing
from .base import Extractor, make_soup, parse_each
from .registry import register

log = logging.getLogger(__name__)

_LOCALE_RE = re.compile(r"^[a-z]{2}-[A-Z]{2}$")

PAGE_LIMIT = 20
MAX_PAGES = 3


def infer_cxs_url(list_url: str) -> str | None:
    """
    https://<tenant>.wdX.myworkdayjobs.com/<Site>[/...] ->
    https://<tenant>.wdX.myworkdayjobs.com/wday/cxs/<tenant>/<Site>/jobs

    If the first path segment is a locale (e.g., en-US), use the *next* segment as the site.
    """
    if "://" not in list_url:
        list_url = "https://" + list_url
    try:
        p = urlsplit(list_url)
    except ValueError:
        return None
    host = p.netloc
    segs = [s for s in p.path.strip("/").split("/") if s]
    if segs and _LOCALE_RE.match(segs[0]):
        segs = segs[1:]
    site = segs[0] if segs else ""
    tenant = host.split(".")[0]
    if not (host and site and tenant):
        return None
    return f"https://{host}/wday/cxs/{tenant}/{site}/jobs"


def _site_base(cxs_url: str) -> str:
    p = urlsplit(cxs_url)
    return f"{p.scheme}://{p.netloc}"


def extract_listings(html: str, classification: ATSClassification, page_url: str = "") -> ExtractionOutcome:
    soup = make_soup(html)
    base = page_url or (f"https://{classification.identifier.split('/')[0]}" if classification.identifier else "")

    def _link(a: Any) -> RawListing | None:
        title = a.get_text(" ", strip=True)
        href = (a.get("href") or "").strip()
        if not title or not href:
            return None
        li = a.find_parent("li")
        location = ""
        if li is not None:
            loc_el = li.select_one('[data-automation-id="locations"] dd') or li.select_one(
                '[data-automation-id="locations"]'
            )
            location = loc_el.get_text(" ", strip=True) if loc_el else ""
        return RawListing(title=title, url=urljoin(base or href, href), location=location)

    anchors = soup.select('a[data-automation-id="jobTitle"]')
    listings, warnings = parse_each(anchors, _link, label="workday")
    if not anchors:
        warnings.append("workday: page is client-rendered; no server-side job links found")
    return ExtractionOutcome(listings=tuple(listings), warnings=tuple(warnings))


def extract_jobs(data: Any) -> list[dict[str, Any]]:
    """
    Common shapes seen from /wday/cxs/.../jobs:
      { jobPostings: [ {...}, ... ], total: N }
      { body: { jobPostings: [...] } }
    """
    if isinstance(data, dict):
        if isinstance(data.get("jobPostings"), list):
            return [x for x in data["jobPostings"] if isinstance(x, dict)]
        b = data.get("body")
        if isinstance(b, dict) and isinstance(b.get("jobPostings"), list):
            return [x for x in b["jobPostings"] if isinstance(x, dict)]
    return []


def parse_feed(data: Any, cxs_url: str) -> ExtractionOutcome:
    base = _site_base(cxs_url)
    site_path = urlsplit(cxs_url).path.split("/wday/cxs/", 1)[-1].split("/")
    site = site_path[1] if len(site_path) > 1 else ""

    def _job(j: dict[str, Any]) -> RawListing | None:
        title = (j.get("title") or "").strip()
        url = (j.get("externalPath") or j.get("canonicalPositionUrl") or "").strip()
        # externalPath is usually "/job/<Loc>/<Title>_<ReqId>" relative to the site.
        if url.startswith("/"):
            prefix = f"/{site}" if site and not url.startswith(f"/{site}/") and url.startswith("/job/") else ""
            url = f"{base}{prefix}{url}"
        if not title or not url:
            return None
        bullets = j.get("bulletFields") or []
        return RawListing(
            title=title,
            url=url,
            location=" ".join(x for x in (j.get("locationsText") or "", j.get("remoteType") or "") if x),
            posted=j.get("postedOn"),
            description=" ".join(str(b) for b in bullets if b),
        )

    listings, warnings = parse_each(extract_jobs(data), _job, label="workday feed")
    return ExtractionOutcome(listings=tuple(listings), warnings=tuple(warnings))


def collect_feed(client: HttpClient, classification: ATSClassification) -> ExtractionOutcome | None:
    if not classification.identifier:
        return None
    cxs_url = infer_cxs_url(classification.identifier)
    if not cxs_url:
        return None

    listings: list[RawListing] = []
    warnings: list[str] = []
    offset = 0
    for page in range(MAX_PAGES):
        payload = {"appliedFacets": {}, "limit": PAGE_LIMIT, "offset": offset, "searchText": ""}
        res = client.post_json(cxs_url, payload)
        if not res.ok:
            if page == 0:
                log.info("Workday CxS unavailable for %s: %s", classification.identifier, res.error)
                return None
            warnings.append(f"workday feed: page {page + 1}: {res.error}")
            break

        jobs = extract_jobs(res.data)
        log.debug("Workday CxS: %s page=%d got %d jobs", classification.identifier, page + 1, len(jobs))
        outcome = parse_feed(res.data, cxs_url)
        listings.extend(outcome.listings)
        warnings.extend(outcome.warnings)

        if len(jobs) < PAGE_LIMIT:
            break
        offset += len(jobs)

    return ExtractionOutcome(listings=tuple(listings), warnings=tuple(warnings))


EXTRACTOR = register(
    ATSType.WORKDAY,
    Extractor(name="workday", extract_listings=extract_listings, collect_feed=collect_feed),
)
