"""
ATS detection.

Classifies a fetched careers page into one of the known ATS vendors using an
ordered list of signature rules. Rules are evaluated by their declared
priority (lowest number first), never by the order they appear in the list,
and the first rule that matches wins. A rule matches on a URL pattern or a
page marker; the identifier (usually the company slug) is then pulled from
the URL first and the page second.

classify() is total: anything it cannot place is {Unknown, None}.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from .models import ATSClassification, ATSType

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignatureRule:
    ats_type: ATSType
    priority: int
    url_patterns: tuple[re.Pattern[str], ...] = ()
    markers: tuple[re.Pattern[str], ...] = ()
    identifier_patterns: tuple[re.Pattern[str], ...] = ()

    def matches(self, page: str, url: str) -> bool:
        if url and any(p.search(url) for p in self.url_patterns):
            return True
        return bool(page) and any(m.search(page) for m in self.markers)

    def identifier(self, page: str, url: str) -> str | None:
        for source in (url, page):
            if not source:
                continue
            for pat in self.identifier_patterns:
                for m in pat.finditer(source):
                    ident = m.group(m.lastindex or 0).strip().strip("/")
                    if ident and ident.lower() not in _NON_SLUGS:
                        return ident
        return None


def _rx(*patterns: str) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


# Path segments that look like slugs but are not company identifiers.
_NON_SLUGS = {"embed", "v1", "v0", "boards", "jobs", "js", "api", "wday", "cxs", "static"}

_SLUG = r"([A-Za-z0-9][A-Za-z0-9_.\-]*)"

# Priority decides evaluation order. Hosted-board URLs are unambiguous, so the
# vendors come first; Custom is the catch-all for pages that look like a
# home-grown careers page.
RULES: tuple[SignatureRule, ...] = (
    SignatureRule(
        ats_type=ATSType.GREENHOUSE,
        priority=10,
        url_patterns=_rx(r"greenhouse\.io/", r"\bgrnh\.se/"),
        markers=_rx(
            r"boards\.greenhouse\.io",
            r"job-boards\.greenhouse\.io",
            r"boards-api\.greenhouse\.io",
            r"grnhse_app",
            r"greenhouse\.io/embed/job_board",
        ),
        identifier_patterns=_rx(
            r"greenhouse\.io/embed/job_board(?:/js)?\?for=" + _SLUG,
            r"boards-api\.greenhouse\.io/v1/boards/" + _SLUG,
            r"(?:job-)?boards(?:\.eu)?\.greenhouse\.io/" + _SLUG,
        ),
    ),
    SignatureRule(
        ats_type=ATSType.LEVER,
        priority=20,
        url_patterns=_rx(r"jobs\.(?:eu\.)?lever\.co/", r"api\.lever\.co/"),
        markers=_rx(r"jobs\.(?:eu\.)?lever\.co/", r"api\.lever\.co/v0/postings", r'class="postings-group"'),
        identifier_patterns=_rx(
            r"api\.lever\.co/v0/postings/" + _SLUG,
            r"jobs\.(?:eu\.)?lever\.co/" + _SLUG,
        ),
    ),
    SignatureRule(
        ats_type=ATSType.WORKDAY,
        priority=30,
        url_patterns=_rx(r"\.myworkdayjobs\.com", r"\.myworkdaysite\.com"),
        markers=_rx(r"[a-z0-9\-]+\.wd\d+\.myworkdayjobs\.com", r"myworkdayjobs\.com/", r"/wday/cxs/"),
        identifier_patterns=_rx(
            r"([a-z0-9\-]+\.wd\d+\.myworkdayjobs\.com(?:/[a-z]{2}-[A-Z]{2})?/[A-Za-z0-9_\-]+)",
            r"([a-z0-9\-]+\.wd\d+\.myworkdayjobs\.com)",
        ),
    ),
    SignatureRule(
        ats_type=ATSType.SMARTRECRUITERS,
        priority=40,
        url_patterns=_rx(r"(?:jobs|careers)\.smartrecruiters\.com/"),
        markers=_rx(r"(?:jobs|careers)\.smartrecruiters\.com/", r"api\.smartrecruiters\.com/v1/companies/"),
        identifier_patterns=_rx(
            r"api\.smartrecruiters\.com/v1/companies/" + _SLUG,
            r"(?:jobs|careers)\.smartrecruiters\.com/" + _SLUG,
        ),
    ),
    SignatureRule(
        ats_type=ATSType.CUSTOM,
        priority=90,
        markers=_rx(
            r"<a[^>]+href=[\"'][^\"']*/(?:careers?|jobs?|positions?|openings?|vacanc(?:y|ies))(?:[/?#\"'])",
            r"\b(?:open\s+positions|open\s+roles|current\s+openings|job\s+openings|join\s+our\s+team|we(?:'|&#39;)re\s+hiring)\b",
        ),
    ),
)


def _ordered_rules(rules: tuple[SignatureRule, ...]) -> list[SignatureRule]:
    return sorted(rules, key=lambda r: r.priority)


_ORDERED = _ordered_rules(RULES)


def classify(page_content: str | None, source_url: str | None) -> ATSClassification:
    """
    Classify a careers page. Never raises; falls back to {Unknown, None}.
    """
    page = page_content or ""
    url = (source_url or "").strip()
    try:
        for rule in _ORDERED:
            if not rule.matches(page, url):
                continue
            if rule.ats_type is ATSType.CUSTOM:
                host = urlsplit(url).hostname if url else None
                return ATSClassification(ATSType.CUSTOM, host or None)
            return ATSClassification(rule.ats_type, rule.identifier(page, url))
    except (re.error, ValueError):
        log.warning("ATS classification failed for %s", url, exc_info=True)
    return ATSClassification.unknown()


def classify_with(rules: tuple[SignatureRule, ...], page_content: str | None, source_url: str | None) -> ATSClassification:
    """Same as classify() but against a caller-provided rule set (useful for tests)."""
    page = page_content or ""
    url = (source_url or "").strip()
    for rule in _ordered_rules(rules):
        if rule.matches(page, url):
            return ATSClassification(rule.ats_type, rule.identifier(page, url))
    return ATSClassification.unknown()
