# job_discovery/filters.py
"""
Post-aggregation pipeline, always applied in this order:

  stack -> location -> salary -> dedup -> rank
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

from .models import AggregationRequest, JobPosting, RemotePolicy
from .normalize import REMOTE, WORLDWIDE, canonical_location, canonical_skill, region_covers
from .utils import norm_key

_TOKEN_RE = re.compile(r"[a-z0-9.+#]+")

# Countries that mean "no geographic restriction".
_OPEN_COUNTRIES = {norm_key(WORLDWIDE), norm_key(REMOTE), "anywhere", "global"}
_OPEN_POLICIES = (RemotePolicy.FULLY_REMOTE, RemotePolicy.REMOTE_FRIENDLY)

# Stack keywords at least this long may match inside a longer token
# ("java" in "javaee"); shorter ones must match a whole token ("go", "c#").
MIN_SUBSTRING_LEN = 3

GUIDANCE = (
    "No postings matched the requested filters. "
    "Try broadening the stack keywords, adding 'Worldwide' to locations, or lowering the minimum salary."
)


def _tokens(text: str) -> set[str]:
    return {t.strip(".") for t in _TOKEN_RE.findall(text.casefold()) if t.strip(".")}


def _posting_tokens(p: JobPosting) -> set[str]:
    tokens = _tokens(p.title)
    for skill in (*p.required_skills, *p.preferred_skills):
        tokens.add(skill.casefold())
        tokens |= _tokens(skill)
    return tokens


# =============================================================================
# INDIVIDUAL FILTERS
# =============================================================================
def matches_stack(p: JobPosting, stacks: Iterable[str]) -> bool:
    keywords = [s.strip().casefold() for s in stacks if s and s.strip()]
    if not keywords:
        return True
    tokens = _posting_tokens(p)
    for kw in keywords:
        if kw in tokens or canonical_skill(kw).casefold() in tokens:
            return True
        if len(kw) >= MIN_SUBSTRING_LEN and any(kw in t for t in tokens):
            return True
    return False


def matches_location(p: JobPosting, locations: Iterable[str]) -> bool:
    wanted = [loc.strip() for loc in locations if loc and loc.strip()]
    if not wanted or any(norm_key(loc) == norm_key(WORLDWIDE) for loc in wanted):
        return True
    if p.remote_policy in _OPEN_POLICIES or norm_key(p.country) in _OPEN_COUNTRIES:
        return True

    country = p.country or ""
    if not country:
        return False
    for loc in wanted:
        canon = canonical_location(loc) or loc
        if norm_key(canon) == norm_key(country):
            return True
        # Text outside the alias table only matches whole words of the country.
        loc_tokens = _tokens(loc)
        if loc_tokens and loc_tokens <= _tokens(country):
            return True
        if region_covers(canon, country):
            return True
    return False


def matches_salary(p: JobPosting, min_salary: float) -> bool:
    if not min_salary:
        return True
    return p.salary_max is None or p.salary_max >= min_salary


def dedupe(postings: Iterable[JobPosting]) -> list[JobPosting]:
    """First occurrence of each identity_key wins; order preserved."""
    seen: set[tuple[str, str, str]] = set()
    out: list[JobPosting] = []
    for p in postings:
        key = p.identity_key
        if key in seen:
            continue
        seen.add(key)
        out.append(p)
    return out


def rank(postings: Iterable[JobPosting], source_scores: Mapping[str, int]) -> list[JobPosting]:
    """
    Stable sort: board relevance (high first), then posted date (newest
    first, undated last).
    """

    def _key(p: JobPosting) -> tuple[int, int, int]:
        dated = p.posted_date is not None
        return (
            -int(source_scores.get(p.source_platform, 0)),
            0 if dated else 1,
            -p.posted_date.toordinal() if dated else 0,
        )

    return sorted(postings, key=_key)


# =============================================================================
# PIPELINE
# =============================================================================
def apply_pipeline(
    postings: Iterable[JobPosting],
    request: AggregationRequest,
    source_scores: Mapping[str, int] | None = None,
) -> list[JobPosting]:
    out = [p for p in postings if matches_stack(p, request.stacks)]
    out = [p for p in out if matches_location(p, request.locations)]
    out = [p for p in out if matches_salary(p, request.min_salary)]
    out = dedupe(out)
    return rank(out, source_scores or {})
