from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, TypeVar

from bs4 import BeautifulSoup

from ..http_client import HttpClient
from ..models import ATSClassification, ExtractionOutcome, RawListing
from ..utils import clean_text

log = logging.getLogger(__name__)

T = TypeVar("T")

PageExtractor = Callable[..., ExtractionOutcome]
FeedCollector = Callable[[HttpClient, ATSClassification], "ExtractionOutcome | None"]


@dataclass(frozen=True)
class Extractor:
    """
    One extraction strategy, registered per ATSType.

    Contract:
      - extract_listings(page_html, classification, page_url="") parses the careers page
        itself and returns an ExtractionOutcome. It must not raise for odd
        markup; malformed fragments are skipped.
      - collect_feed(client, classification) is optional. When the vendor
        publishes a JSON API keyed by the identifier, it fetches and parses
        it; returning None means "no feed available, use the page".
    """

    name: str
    extract_listings: PageExtractor
    collect_feed: FeedCollector | None = None


def make_soup(html: str, parser: str = "html5lib") -> BeautifulSoup:
    return BeautifulSoup(html or "", parser)


def parse_each(
    fragments: Iterable[T],
    parse: Callable[[T], RawListing | None],
    *,
    label: str,
) -> tuple[list[RawListing], list[str]]:
    """
    Apply `parse` to every fragment, skipping (and counting) the ones that
    blow up or come back empty-handed instead of aborting the whole page.
    """
    listings: list[RawListing] = []
    skipped = 0
    for frag in fragments:
        try:
            item = parse(frag)
        except (AttributeError, KeyError, TypeError, ValueError, IndexError):
            log.debug("%s: skipping malformed fragment", label, exc_info=True)
            skipped += 1
            continue
        if item is None:
            continue
        listings.append(item)
    warnings = [f"{label}: skipped {skipped} malformed entr{'y' if skipped == 1 else 'ies'}"] if skipped else []
    return listings, warnings


def html_to_text(fragment: Any) -> str:
    """Flatten an HTML snippet (possibly entity-escaped, as Greenhouse sends it) to text."""
    if not fragment:
        return ""
    raw = clean_text(str(fragment)) if "&lt;" in str(fragment) else str(fragment)
    return clean_text(BeautifulSoup(raw, "html.parser").get_text(" ", strip=True))


def first_text(node: Any, *selectors: str) -> str:
    """Text of the first selector that hits inside `node`."""
    for sel in selectors:
        el = node.select_one(sel)
        if el is not None:
            txt = el.get_text(" ", strip=True)
            if txt:
                return clean_text(txt)
    return ""
