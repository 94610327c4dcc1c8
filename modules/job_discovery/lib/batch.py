"""
Batch mode: scrape a caller-supplied company list one at a time, with a
courtesy pause between companies.

Input formats:
  CSV   Name,CareersUrl   (first row is always treated as a header)
  JSON  [{"Name": "...", "CareersUrl": "..."}, ...]   (keys case-insensitive)
"""

from __future__ import annotations

import csv
import io
import json
import logging
import os
import random
import threading
import time
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

from . import logging_bridge
from .company import CompanyScraper
from .errors import ParseError
from .models import BatchSummary, CompanyScrapeResult, ScrapeTarget

log = logging.getLogger(__name__)


# =============================================================================
# PACING
# =============================================================================
class Pacing:
    """
    Interval plus optional random jitter between consecutive requests.
    `sleep` and `rng` are injectable so tests can run on a fake clock.
    """

    def __init__(
        self,
        interval: float = 1.0,
        jitter: float = 0.0,
        *,
        sleep: Callable[[float], Any] | None = None,
        rng: Callable[[], float] = random.random,
    ):
        if interval < 0 or jitter < 0:
            raise ValueError("Pacing interval and jitter cannot be negative.")
        self.interval = float(interval)
        self.jitter = float(jitter)
        self._sleep = sleep
        self._rng = rng

    def delay(self) -> float:
        return self.interval + (self.jitter * self._rng() if self.jitter else 0.0)

    def pause(self, cancel: threading.Event | None = None) -> float:
        """
        Wait one interval. With a cancel event and no injected sleep, the wait
        ends early when the event is set.
        """
        seconds = self.delay()
        if seconds <= 0:
            return 0.0
        if self._sleep is not None:
            self._sleep(seconds)
        elif cancel is not None:
            cancel.wait(seconds)
        else:
            time.sleep(seconds)
        return seconds


# =============================================================================
# INPUT PARSING
# =============================================================================
def _target(name: Any, url: Any) -> ScrapeTarget | None:
    name = str(name or "").strip().strip('"').strip()
    url = str(url or "").strip().strip('"').strip()
    if not name or not url:
        return None
    return ScrapeTarget(name=name, careers_url=url)


def parse_csv_targets(text: str) -> list[ScrapeTarget]:
    """
    Name,CareersUrl rows. The header row is skipped unconditionally; rows with
    fewer than two fields or a blank name/url are skipped.
    """
    targets: list[ScrapeTarget] = []
    rows = csv.reader(io.StringIO(text or ""), skipinitialspace=True)
    for i, row in enumerate(rows):
        if i == 0:
            continue
        if len(row) < 2:
            if any(cell.strip() for cell in row):
                log.debug("batch csv: skipping short row %d", i + 1)
            continue
        t = _target(row[0], row[1])
        if t is None:
            log.debug("batch csv: skipping row %d with blank name/url", i + 1)
            continue
        targets.append(t)
    return targets


def parse_json_targets(text: str) -> list[ScrapeTarget]:
    """
    A JSON array of {Name, CareersUrl} objects. Key matching ignores case;
    items that are not objects or lack a name/url are skipped. A document that
    is not a JSON array raises ParseError.
    """
    try:
        data = json.loads(text or "[]")
    except ValueError as e:
        raise ParseError(f"batch json: {e}") from e
    if not isinstance(data, list):
        raise ParseError("batch json: expected an array of {Name, CareersUrl} objects")

    targets: list[ScrapeTarget] = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            log.debug("batch json: skipping non-object item %d", i)
            continue
        lowered = {str(k).lower(): v for k, v in item.items()}
        t = _target(lowered.get("name"), lowered.get("careersurl"))
        if t is None:
            log.debug("batch json: skipping item %d with blank name/url", i)
            continue
        targets.append(t)
    return targets


def load_targets(path: str | os.PathLike[str]) -> list[ScrapeTarget]:
    """Read a .csv or .json target list; anything else raises ParseError."""
    p = Path(path)
    text = p.read_text(encoding="utf-8-sig")
    suffix = p.suffix.lower()
    if suffix == ".csv":
        return parse_csv_targets(text)
    if suffix == ".json":
        return parse_json_targets(text)
    raise ParseError(f"Unsupported batch input {p.name!r}; expected .csv or .json")


# =============================================================================
# RUN
# =============================================================================
def scrape_batch(
    targets: Iterable[ScrapeTarget],
    limit: int,
    pacing: Pacing,
    *,
    scraper: CompanyScraper,
    detect_only: bool = False,
    cancel: threading.Event | None = None,
    deadline: float | None = None,
) -> list[CompanyScrapeResult]:
    """
    Scrape up to `limit` targets in order, pausing between them. A failing
    company never stops the batch; cancellation or the deadline (seconds from
    now) stops before the next company and returns what is done.
    """
    if limit <= 0:
        raise ValueError("Batch limit must be >= 1.")
    todo = list(targets)[:limit]
    ends_at = time.monotonic() + deadline if deadline is not None else None
    results: list[CompanyScrapeResult] = []

    for i, target in enumerate(todo):
        if cancel is not None and cancel.is_set():
            log.info("Batch cancelled after %d of %d companies", len(results), len(todo))
            break
        if ends_at is not None and time.monotonic() >= ends_at:
            log.info("Batch deadline reached after %d of %d companies", len(results), len(todo))
            break
        if i > 0:
            pacing.pause(cancel)
            if cancel is not None and cancel.is_set():
                log.info("Batch cancelled after %d of %d companies", len(results), len(todo))
                break
            if ends_at is not None and time.monotonic() >= ends_at:
                log.info("Batch deadline reached after %d of %d companies", len(results), len(todo))
                break

        log.info("[%d/%d] %s", i + 1, len(todo), target.name)
        results.append(scraper.scrape_company(target.name, target.careers_url, detect_only=detect_only))

    summary = summarize_batch(results)
    logging_bridge.activity({
        "component": "job_discovery.batch",
        "op": "summary",
        "requested": len(todo),
        "detect_only": detect_only,
        **summary.to_dict(),
    })
    return results


def summarize_batch(results: Iterable[CompanyScrapeResult]) -> BatchSummary:
    summary = BatchSummary()
    for r in results:
        summary.total += 1
        if r.success:
            summary.succeeded += 1
        else:
            summary.failed += 1
        summary.postings += len(r.postings)
        ats = r.classification.type.value
        summary.by_ats[ats] = summary.by_ats.get(ats, 0) + 1
    return summary
