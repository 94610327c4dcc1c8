# job_discovery/normalize.py
"""
RawListing -> JobPosting.

Everything here is a pure function of its inputs (plus today's date for
relative "3 days ago" values), so the same listing always normalizes to the
same posting.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import date, datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Any

from .models import JobPosting, RawListing, RemotePolicy
from .utils import clean_text, uniq_preserve_order

log = logging.getLogger(__name__)


# -----------------------------
# Remote policy
# -----------------------------
# Checked in order; the first phrase group that hits decides.
_REMOTE_RULES: tuple[tuple[RemotePolicy, re.Pattern[str]], ...] = (
    (
        RemotePolicy.FULLY_REMOTE,
        re.compile(
            r"\b(?:fully[\s-]remote|full[\s-]remote|100%\s*remote|remote[\s-]only|remote[\s-]first|"
            r"work\s+from\s+anywhere|anywhere\s+in\s+the\s+world|remote\s*\(?\s*(?:worldwide|anywhere|global))\b",
            re.IGNORECASE,
        ),
    ),
    (RemotePolicy.HYBRID, re.compile(r"\bhybrid\b", re.IGNORECASE)),
    (RemotePolicy.REMOTE_FRIENDLY, re.compile(r"\b(?:remote|telecommute|work\s+from\s+home|wfh)\b", re.IGNORECASE)),
    (RemotePolicy.ON_SITE, re.compile(r"\b(?:on[\s-]?site|in[\s-]office|office[\s-]based|in[\s-]person)\b", re.IGNORECASE)),
)


def detect_remote_policy(text: str | None) -> RemotePolicy:
    if not text:
        return RemotePolicy.UNKNOWN
    for policy, rx in _REMOTE_RULES:
        if rx.search(text):
            return policy
    return RemotePolicy.UNKNOWN


# -----------------------------
# Country / region
# -----------------------------
WORLDWIDE = "Worldwide"
REMOTE = "Remote"

_US_STATES = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR", "california": "CA",
    "colorado": "CO", "connecticut": "CT", "delaware": "DE", "florida": "FL", "georgia": "GA",
    "hawaii": "HI", "idaho": "ID", "illinois": "IL", "indiana": "IN", "iowa": "IA",
    "kansas": "KS", "kentucky": "KY", "louisiana": "LA", "maine": "ME", "maryland": "MD",
    "massachusetts": "MA", "michigan": "MI", "minnesota": "MN", "mississippi": "MS",
    "missouri": "MO", "montana": "MT", "nebraska": "NE", "nevada": "NV", "new hampshire": "NH",
    "new jersey": "NJ", "new mexico": "NM", "new york": "NY", "north carolina": "NC",
    "north dakota": "ND", "ohio": "OH", "oklahoma": "OK", "oregon": "OR", "pennsylvania": "PA",
    "rhode island": "RI", "south carolina": "SC", "south dakota": "SD", "tennessee": "TN",
    "texas": "TX", "utah": "UT", "vermont": "VT", "virginia": "VA", "washington": "WA",
    "west virginia": "WV", "wisconsin": "WI", "wyoming": "WY", "district of columbia": "DC",
}
_US_STATE_CODES = set(_US_STATES.values())

# alias (lowercase) -> canonical country or region
COUNTRY_ALIASES: dict[str, str] = {
    "worldwide": WORLDWIDE, "anywhere": WORLDWIDE, "global": WORLDWIDE, "globally": WORLDWIDE,
    "international": WORLDWIDE,
    "united states": "United States", "united states of america": "United States", "usa": "United States",
    "us": "United States", "u.s.": "United States", "u.s.a.": "United States", "america": "United States",
    "united kingdom": "United Kingdom", "uk": "United Kingdom", "u.k.": "United Kingdom",
    "great britain": "United Kingdom", "england": "United Kingdom", "scotland": "United Kingdom",
    "wales": "United Kingdom", "london": "United Kingdom",
    "canada": "Canada", "toronto": "Canada", "vancouver": "Canada", "montreal": "Canada",
    "germany": "Germany", "deutschland": "Germany", "berlin": "Germany", "munich": "Germany",
    "france": "France", "paris": "France",
    "netherlands": "Netherlands", "the netherlands": "Netherlands", "amsterdam": "Netherlands",
    "spain": "Spain", "madrid": "Spain", "barcelona": "Spain",
    "portugal": "Portugal", "lisbon": "Portugal",
    "italy": "Italy", "ireland": "Ireland", "dublin": "Ireland",
    "poland": "Poland", "warsaw": "Poland", "krakow": "Poland",
    "ukraine": "Ukraine", "kyiv": "Ukraine", "kiev": "Ukraine", "lviv": "Ukraine",
    "romania": "Romania", "czechia": "Czechia", "czech republic": "Czechia",
    "austria": "Austria", "switzerland": "Switzerland", "belgium": "Belgium",
    "sweden": "Sweden", "norway": "Norway", "denmark": "Denmark", "finland": "Finland",
    "estonia": "Estonia", "lithuania": "Lithuania", "latvia": "Latvia", "greece": "Greece",
    "hungary": "Hungary", "bulgaria": "Bulgaria", "croatia": "Croatia", "serbia": "Serbia",
    "india": "India", "bangalore": "India", "bengaluru": "India",
    "australia": "Australia", "sydney": "Australia", "new zealand": "New Zealand",
    "brazil": "Brazil", "mexico": "Mexico", "argentina": "Argentina", "colombia": "Colombia",
    "chile": "Chile", "israel": "Israel", "japan": "Japan", "singapore": "Singapore",
    "philippines": "Philippines", "south africa": "South Africa", "turkey": "Turkey",
    # regions
    "europe": "Europe", "eu": "Europe", "european union": "Europe", "cet": "Europe", "cest": "Europe",
    "emea": "EMEA", "apac": "APAC", "asia": "APAC", "latam": "Latin America",
    "latin america": "Latin America", "south america": "Latin America",
    "north america": "North America", "americas": "Americas",
}

_EUROPE = {
    "United Kingdom", "Germany", "France", "Netherlands", "Spain", "Portugal", "Italy", "Ireland",
    "Poland", "Ukraine", "Romania", "Czechia", "Austria", "Switzerland", "Belgium", "Sweden",
    "Norway", "Denmark", "Finland", "Estonia", "Lithuania", "Latvia", "Greece", "Hungary",
    "Bulgaria", "Croatia", "Serbia",
}
_LATAM = {"Brazil", "Mexico", "Argentina", "Colombia", "Chile", "Latin America"}

# region -> countries (and sub-regions) it covers
REGIONS: dict[str, frozenset[str]] = {
    "Europe": frozenset(_EUROPE),
    "EMEA": frozenset(_EUROPE | {"Europe", "Israel", "South Africa", "Turkey"}),
    "North America": frozenset({"United States", "Canada", "Mexico"}),
    "Americas": frozenset({"United States", "Canada", "North America"} | _LATAM),
    "Latin America": frozenset(_LATAM - {"Latin America"}),
    "APAC": frozenset({"India", "Australia", "New Zealand", "Japan", "Singapore", "Philippines"}),
}

_ALIAS_RE = re.compile(
    r"(?<![\w.])(" + "|".join(re.escape(a) for a in sorted(COUNTRY_ALIASES, key=len, reverse=True)) + r")(?![\w])",
    re.IGNORECASE,
)
_STATE_RE = re.compile(
    r"\b(" + "|".join(re.escape(s) for s in sorted(_US_STATES, key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)


def canonical_location(text: str | None) -> str:
    """
    Map one free-text location to a canonical country/region name, or "" when
    nothing is recognized. Bare "Remote" maps to "Remote".
    """
    s = clean_text(text)
    if not s:
        return ""
    low = s.lower()
    if low in COUNTRY_ALIASES:
        return COUNTRY_ALIASES[low]

    m = _ALIAS_RE.search(s)
    # "US" in running text must be uppercase to avoid matching the pronoun.
    while m is not None and m.group(1).lower() == "us" and m.group(1) != "US":
        m = _ALIAS_RE.search(s, m.end())
    if m is not None:
        return COUNTRY_ALIASES[m.group(1).lower()]

    # "Austin, TX" / "Remote - NY"
    tail = re.split(r"[,\-/|(]", s)[-1].strip(" )")
    if tail in _US_STATE_CODES or _STATE_RE.search(s):
        return "United States"
    if re.search(r"\bremote\b", low):
        return REMOTE
    return ""


def country_from_location(text: str | None) -> str:
    """
    Canonical country/region for a posting. Unrecognized text is kept as-is
    (trimmed) so nothing the source said gets lost.
    """
    canon = canonical_location(text)
    if canon:
        return canon
    return clean_text(text)


def region_covers(region: str, country: str) -> bool:
    """True when `country` equals `region` or lies inside it."""
    if not region or not country:
        return False
    if region.casefold() == country.casefold():
        return True
    members = REGIONS.get(region)
    return bool(members) and country in members


# -----------------------------
# Skills
# -----------------------------
# (display name, pattern). Patterns are matched case-insensitively on word
# boundaries that treat '.', '+' and '#' as part of the token.
SKILLS: tuple[tuple[str, str], ...] = (
    ("C#", r"c#|c\s*sharp"),
    (".NET", r"\.net(?:\s*core)?|dotnet"),
    ("ASP.NET", r"asp\.net"),
    ("Entity Framework", r"entity\s+framework|ef\s+core"),
    ("Blazor", r"blazor"),
    ("Python", r"python"),
    ("Django", r"django"),
    ("Flask", r"flask"),
    ("FastAPI", r"fastapi"),
    ("Java", r"java(?!script)"),
    ("Kotlin", r"kotlin"),
    ("Scala", r"scala"),
    ("Spring", r"spring(?:\s*boot)?"),
    ("Go", r"golang|go\s+(?:developer|engineer)"),
    ("Rust", r"rust"),
    ("C++", r"c\+\+|cpp"),
    ("Ruby", r"ruby"),
    ("Rails", r"rails|ruby\s+on\s+rails"),
    ("PHP", r"php"),
    ("Laravel", r"laravel"),
    ("Node.js", r"node\.?js"),
    ("JavaScript", r"javascript|js"),
    ("TypeScript", r"typescript"),
    ("React", r"react(?:\.js|js)?"),
    ("Angular", r"angular(?:js)?"),
    ("Vue", r"vue(?:\.js|js)?"),
    ("Next.js", r"next\.js|nextjs"),
    ("Swift", r"swift"),
    ("iOS", r"ios"),
    ("Android", r"android"),
    ("Flutter", r"flutter"),
    ("SQL", r"sql"),
    ("SQL Server", r"sql\s+server|mssql"),
    ("PostgreSQL", r"postgres(?:ql)?"),
    ("MySQL", r"mysql"),
    ("MongoDB", r"mongo(?:db)?"),
    ("Redis", r"redis"),
    ("Elasticsearch", r"elastic\s*search"),
    ("Kafka", r"kafka"),
    ("RabbitMQ", r"rabbitmq"),
    ("GraphQL", r"graphql"),
    ("gRPC", r"grpc"),
    ("REST API", r"rest(?:ful)?\s+apis?"),
    ("Microservices", r"micro-?services"),
    ("AWS", r"aws|amazon\s+web\s+services"),
    ("Azure", r"azure"),
    ("GCP", r"gcp|google\s+cloud"),
    ("Docker", r"docker"),
    ("Kubernetes", r"kubernetes|k8s"),
    ("Terraform", r"terraform"),
    ("Linux", r"linux"),
    ("Git", r"git"),
    ("CI/CD", r"ci\s*/\s*cd"),
    ("Machine Learning", r"machine\s+learning|ml"),
    ("Pandas", r"pandas"),
    ("Spark", r"spark|pyspark"),
    ("Airflow", r"airflow"),
)

_TOKEN_L = r"(?<![A-Za-z0-9_.+#])"
_TOKEN_R = r"(?![A-Za-z0-9_+#])"

_SKILL_RES: tuple[tuple[str, re.Pattern[str]], ...] = tuple(
    (name, re.compile(_TOKEN_L + "(?:" + pat + ")" + _TOKEN_R, re.IGNORECASE)) for name, pat in SKILLS
)

_PREFERRED_MARKER_RE = re.compile(
    r"\b(?:nice[\s-]to[\s-]haves?|good[\s-]to[\s-]have|preferred(?:\s+qualifications)?|bonus(?:\s+points)?|"
    r"would\s+be\s+a\s+plus|is\s+a\s+plus|desirable|pluses)\b",
    re.IGNORECASE,
)


def find_skills(text: str | None) -> list[str]:
    """Known skills in `text`, ordered by first appearance."""
    if not text:
        return []
    hits: list[tuple[int, str]] = []
    for name, rx in _SKILL_RES:
        m = rx.search(text)
        if m is not None:
            hits.append((m.start(), name))
    hits.sort(key=lambda h: h[0])
    return [name for _, name in hits]


def canonical_skill(token: str) -> str:
    """Dictionary display name for a single tag, or the cleaned tag itself."""
    t = clean_text(token)
    for name, rx in _SKILL_RES:
        if rx.fullmatch(t) or name.casefold() == t.casefold():
            return name
    return t


def extract_skills(title: str, description: str, tags: Iterable[str] = ()) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """
    (required, preferred). Skills only mentioned after a "nice to have" /
    "preferred" / "bonus" marker are preferred; vendor tags count as required.
    """
    desc = description or ""
    m = _PREFERRED_MARKER_RE.search(desc)
    head, tail = (desc[: m.start()], desc[m.start():]) if m else (desc, "")

    required = uniq_preserve_order([canonical_skill(t) for t in tags if t] + find_skills(f"{title}\n{head}"))
    required_keys = {r.casefold() for r in required}
    preferred = [s for s in uniq_preserve_order(find_skills(tail)) if s.casefold() not in required_keys]
    return tuple(required), tuple(preferred)


# -----------------------------
# Salary
# -----------------------------
_NUM_RE = re.compile(r"(?<![\d.,])(\d[\d,]*(?:\.\d+)?)(?:\s*([kK]|[mM](?![a-z])))?(?![\d%])")
_UPPER_ONLY_RE = re.compile(r"\b(?:up\s+to|max(?:imum)?|under|below|less\s+than)\b", re.IGNORECASE)
_SALARY_IN_TEXT_RE = re.compile(
    r"[$€£]\s?\d[\d,.]*\s*[kK]?(?:\s*(?:-|–|to)\s*[$€£]?\s?\d[\d,.]*\s*[kK]?)?"
    r"|\d[\d,.]*\s*[kK]?\s*(?:-|–|to)\s*\d[\d,.]*\s*[kK]?\s*(?:USD|EUR|GBP)",
)


def _to_number(digits: str, suffix: str | None) -> float | None:
    try:
        value = float(digits.replace(",", ""))
    except ValueError:
        return None
    if suffix in ("k", "K"):
        value *= 1_000
    elif suffix in ("m", "M"):
        value *= 1_000_000
    return value if value > 0 else None


def parse_salary(text: str | None) -> tuple[float | None, float | None]:
    """
    "$120k - $150k" -> (120000, 150000); "up to 90k" -> (None, 90000);
    "from 80,000 EUR" -> (80000, None). Bounds are independent and never
    defaulted to zero.
    """
    if not text:
        return None, None
    s = clean_text(text)
    nums: list[float] = []
    matches = list(_NUM_RE.finditer(s))
    for i, m in enumerate(matches):
        suffix = m.group(2)
        # "120-150k": a bare lower bound borrows the upper bound's suffix.
        if suffix is None and i + 1 < len(matches) and matches[i + 1].group(2) and len(matches) == 2:
            between = s[m.end(): matches[i + 1].start()]
            if re.fullmatch(r"\s*(?:-|–|to)\s*[$€£]?\s*", between):
                suffix = matches[i + 1].group(2)
        v = _to_number(m.group(1), suffix)
        if v is not None:
            nums.append(v)

    if not nums:
        return None, None
    if len(nums) == 1:
        return (None, nums[0]) if _UPPER_ONLY_RE.search(s) else (nums[0], None)
    lo, hi = nums[0], nums[1]
    return (lo, hi) if lo <= hi else (hi, lo)


def salary_from_description(text: str | None) -> tuple[float | None, float | None]:
    """Only currency-anchored amounts count; bare numbers in prose are ignored."""
    if not text:
        return None, None
    m = _SALARY_IN_TEXT_RE.search(text)
    return parse_salary(m.group(0)) if m else (None, None)


# -----------------------------
# Dates
# -----------------------------
_AGO_RE = re.compile(r"(\d+)\+?\s*(minute|min|hour|hr|day|week|wk|month|mo|year|yr)s?\s*ago", re.IGNORECASE)
_SHORT_AGO_RE = re.compile(r"^(\d+)\s*(m|h|d|w|mo|y)$", re.IGNORECASE)
_UNIT_DAYS = {
    "minute": 0, "min": 0, "m": 0, "hour": 0, "hr": 0, "h": 0,
    "day": 1, "d": 1, "week": 7, "wk": 7, "w": 7,
    "month": 30, "mo": 30, "year": 365, "yr": 365, "y": 365,
}


def _from_epoch(value: float) -> date | None:
    # Anything past ~year 5000 in seconds is really milliseconds.
    if value > 1e11:
        value /= 1000.0
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc).date()
    except (OverflowError, OSError, ValueError):
        return None


def parse_posted(value: Any, today: date | None = None) -> date | None:
    """
    Posted value -> date. Accepts date/datetime, epoch seconds or
    milliseconds, ISO-8601, RFC 2822 (RSS), "N days ago", "today",
    "yesterday". Anything else is None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return _from_epoch(float(value))
        except OverflowError:
            return None

    s = clean_text(str(value))
    if not s:
        return None
    today = today or date.today()
    low = s.lower()

    if re.fullmatch(r"\d{9,14}(?:\.\d+)?", s):
        return _from_epoch(float(s))
    if low in ("today", "just now", "new") or "posted today" in low:
        return today
    if "yesterday" in low:
        return today - timedelta(days=1)

    m = _AGO_RE.search(low) or _SHORT_AGO_RE.match(low)
    if m:
        unit = m.group(2).lower()
        try:
            return today - timedelta(days=int(m.group(1)) * _UNIT_DAYS.get(unit, 1))
        except OverflowError:
            return None

    iso = s.replace("Z", "+00:00")
    try:
        return datetime.fromisoformat(iso).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(s).date()
    except (TypeError, ValueError, IndexError):
        return None


# -----------------------------
# Listing -> posting
# -----------------------------
def to_posting(
    raw: RawListing,
    company: str = "",
    source_platform: str = "",
    *,
    remote_hint: RemotePolicy | None = None,
    today: date | None = None,
) -> JobPosting | None:
    """
    Normalize one listing. Returns None when title or URL is missing.
    `remote_hint` applies to remote-only sources: it upgrades an Unknown or
    merely remote-friendly reading, never overrides Hybrid/OnSite.
    """
    title = clean_text(raw.title)
    url = (raw.url or "").strip()
    if not title or not url:
        return None

    policy = detect_remote_policy(raw.location)
    if policy is RemotePolicy.UNKNOWN:
        policy = detect_remote_policy(title)
    hint = raw.remote_hint or remote_hint
    if hint is not None and policy in (RemotePolicy.UNKNOWN, RemotePolicy.REMOTE_FRIENDLY):
        policy = hint

    salary_min, salary_max = raw.salary_min, raw.salary_max
    if salary_min is None and salary_max is None:
        salary_min, salary_max = parse_salary(raw.salary_text)
    if salary_min is None and salary_max is None:
        salary_min, salary_max = salary_from_description(raw.description)

    required, preferred = extract_skills(title, raw.description, raw.tags)

    return JobPosting(
        title=title,
        company=clean_text(raw.company) or clean_text(company),
        url=url,
        country=country_from_location(raw.location),
        remote_policy=policy,
        required_skills=required,
        preferred_skills=preferred,
        salary_min=salary_min,
        salary_max=salary_max,
        posted_date=parse_posted(raw.posted, today=today),
        source_platform=source_platform,
    )


def normalize_listings(
    listings: Iterable[RawListing],
    company: str = "",
    source_platform: str = "",
    *,
    remote_hint: RemotePolicy | None = None,
) -> tuple[list[JobPosting], list[str]]:
    """Normalize a batch; listings missing title/URL are dropped and counted in a warning."""
    postings: list[JobPosting] = []
    skipped = broken = 0
    for raw in listings:
        try:
            p = to_posting(raw, company, source_platform, remote_hint=remote_hint)
        except (AttributeError, TypeError, ValueError, OverflowError):
            log.debug("normalize: skipping malformed listing %r", getattr(raw, "url", raw), exc_info=True)
            broken += 1
            continue
        if p is None:
            skipped += 1
            continue
        postings.append(p)
    label = source_platform or company or "normalize"
    warnings = [f"{label}: skipped {skipped} listing(s) without title or URL"] if skipped else []
    if broken:
        warnings.append(f"{label}: skipped {broken} malformed listing(s)")
    if skipped:
        log.debug("normalize: dropped %d incomplete listings from %s", skipped, source_platform or company)
    return postings, warnings
