"""
Single-company scrape: fetch -> classify -> extract (feed first, page as
fallback) -> normalize -> stamp company.

Expected failures (network, odd markup) end up in the returned
CompanyScrapeResult; only caller mistakes (blank name or URL) raise.
"""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from urllib.parse import urlsplit

from . import ats, logging_bridge
from .errors import PreconditionError
from .extractors import registry
from .http_client import HttpClient
from .models import ATSClassification, ATSType, CompanyScrapeResult, ExtractionOutcome, ScrapeState, ScrapeTarget
from .normalize import normalize_listings

log = logging.getLogger(__name__)


def _valid_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.hostname)


class CompanyScraper:
    """
    Stateless apart from the shared HttpClient, so one instance can serve
    concurrent callers.
    """

    def __init__(self, client: HttpClient):
        self.client = client

    # =========================================================================
    # PUBLIC
    # =========================================================================
    def scrape_company(self, name: str, careers_url: str, *, detect_only: bool = False) -> CompanyScrapeResult:
        if not name or not str(name).strip():
            raise PreconditionError("Company name must not be empty.")
        if not careers_url or not str(careers_url).strip():
            raise PreconditionError(f"Careers URL for {name!r} must not be empty.")

        target = ScrapeTarget(name=name.strip(), careers_url=careers_url.strip())
        result = CompanyScrapeResult(target=target)
        t0 = time.perf_counter_ns()

        try:
            self._run(result, detect_only=detect_only)
        except Exception as e:  # result contract: report, never raise
            log.exception("Unexpected failure scraping %s", target.name)
            result.fail(f"unexpected error: {e!r}")
        finally:
            dt_us = int((time.perf_counter_ns() - t0) // 1000)
            record = {
                "component": "job_discovery.company",
                "op": "scrape_company",
                "company": target.name,
                "url": target.careers_url,
                "ats": result.classification.type.value,
                "identifier": result.classification.identifier,
                "state": result.state.value,
                "success": result.success,
                "postings": len(result.postings),
                "warnings": len(result.warnings),
                "duration_us": dt_us,
            }
            if result.success:
                logging_bridge.activity(record)
            else:
                logging_bridge.error({**record, "error": result.error})
        return result

    # =========================================================================
    # STEPS
    # =========================================================================
    def _run(self, result: CompanyScrapeResult, *, detect_only: bool) -> None:
        target = result.target
        if not _valid_url(target.careers_url):
            result.fail(f"invalid URL: {target.careers_url!r}")
            return

        # ---- fetch ----
        page = self.client.fetch_text(target.careers_url)
        if not page.ok:
            result.fail(page.error or "fetch failed")
            return
        result.state = ScrapeState.FETCHED

        # ---- classify ----
        # Classify against the final URL so redirects to a hosted board count.
        result.classification = ats.classify(page.text, page.url or target.careers_url)
        if result.classification.type is ATSType.UNKNOWN and page.url != target.careers_url:
            result.classification = ats.classify(page.text, target.careers_url)
        result.state = ScrapeState.CLASSIFIED
        log.info("%s classified as %s (%s)", target.name, result.classification.type.value, result.classification.identifier)

        if detect_only:
            result.success = True
            return

        # ---- extract ----
        outcome = self._extract(result.classification, page.text, page.url or target.careers_url)
        result.warnings.extend(outcome.warnings)
        result.state = ScrapeState.EXTRACTED

        # ---- normalize ----
        postings, warnings = normalize_listings(
            outcome.listings,
            company=target.name,
            source_platform=result.classification.type.value,
        )
        result.warnings.extend(warnings)
        # The company on a career page is the company being scraped, whatever
        # the page's structured data says.
        result.postings = [p if p.company == target.name else replace(p, company=target.name) for p in postings]
        result.success = True
        result.state = ScrapeState.DONE

    def _extract(self, classification: ATSClassification, page_text: str, page_url: str) -> ExtractionOutcome:
        extractor = registry.get(classification.type)
        if extractor.collect_feed is not None:
            try:
                feed = extractor.collect_feed(self.client, classification)
            except Exception as e:  # a broken feed parser must not cost us the page
                log.warning("%s feed failed for %s", extractor.name, classification.identifier, exc_info=True)
                feed = ExtractionOutcome(warnings=(f"{extractor.name} feed failed: {e!r}",))
            if feed is not None and feed.listings:
                return feed
            page = registry.extract(classification, page_text, page_url)
            carried = feed.warnings if feed is not None else ()
            return ExtractionOutcome(listings=page.listings, warnings=tuple(carried) + page.warnings)
        return registry.extract(classification, page_text, page_url)
