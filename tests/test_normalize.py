# tests/test_normalize.py
from datetime import date
from unittest import mock

import pytest

from modules.job_discovery.lib import normalize
from modules.job_discovery.lib.models import RawListing, RemotePolicy

TODAY = date(2025, 1, 15)


# ----------------------------------------------------------------------
# Remote policy / location
# ----------------------------------------------------------------------
@pytest.mark.parametrize(
    "text, expected",
    [
        ("Fully Remote", RemotePolicy.FULLY_REMOTE),
        ("Remote (Worldwide)", RemotePolicy.FULLY_REMOTE),
        ("Hybrid - London", RemotePolicy.HYBRID),
        ("Remote (US)", RemotePolicy.REMOTE_FRIENDLY),
        ("On-site in Munich", RemotePolicy.ON_SITE),
        ("Berlin", RemotePolicy.UNKNOWN),
        ("", RemotePolicy.UNKNOWN),
    ],
)
def test_detect_remote_policy(text, expected):
    assert normalize.detect_remote_policy(text) is expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Berlin, Germany", "Germany"),
        ("Austin, TX", "United States"),
        ("New York, New York", "United States"),
        ("Remote - Europe", "Europe"),
        ("Worldwide", "Worldwide"),
        ("Remote", "Remote"),
        ("USA", "United States"),
        ("join us today", ""),
        ("Mars Base Alpha", ""),
    ],
)
def test_canonical_location(text, expected):
    assert normalize.canonical_location(text) == expected


def test_unrecognized_country_text_is_kept():
    assert normalize.country_from_location("  Mars   Base ") == "Mars Base"


def test_region_covers():
    assert normalize.region_covers("Europe", "Germany")
    assert normalize.region_covers("EMEA", "Europe")
    assert not normalize.region_covers("Europe", "United States")
    assert not normalize.region_covers("", "Germany")


# ----------------------------------------------------------------------
# Skills
# ----------------------------------------------------------------------
def test_find_skills_ordered_by_first_mention():
    skills = normalize.find_skills("Senior C# developer with .NET Core and SQL Server")
    assert skills[:2] == ["C#", ".NET"]
    assert "SQL Server" in skills


def test_javascript_is_not_java():
    assert normalize.find_skills("JavaScript and TypeScript") == ["JavaScript", "TypeScript"]


@pytest.mark.parametrize(
    "token, expected",
    [("c#", "C#"), ("dotnet", ".NET"), ("k8s", "Kubernetes"), ("golang", "Go"), ("Cobol", "Cobol")],
)
def test_canonical_skill(token, expected):
    assert normalize.canonical_skill(token) == expected


def test_extract_skills_splits_preferred():
    required, preferred = normalize.extract_skills(
        "Backend Engineer",
        "Python and Django. Nice to have: Docker, Python.",
        tags=("aws",),
    )
    assert required == ("AWS", "Python", "Django")
    assert preferred == ("Docker",)


# ----------------------------------------------------------------------
# Salary
# ----------------------------------------------------------------------
@pytest.mark.parametrize(
    "text, expected",
    [
        ("$120k - $150k", (120000.0, 150000.0)),
        ("120-150k", (120000.0, 150000.0)),
        ("150k-120k", (120000.0, 150000.0)),
        ("up to 90k", (None, 90000.0)),
        ("from 80,000 EUR", (80000.0, None)),
        ("Competitive", (None, None)),
        ("", (None, None)),
    ],
)
def test_parse_salary(text, expected):
    assert normalize.parse_salary(text) == expected


def test_salary_in_description_needs_currency():
    assert normalize.salary_from_description("We pay $95,000 to $110,000 per year.") == (95000.0, 110000.0)
    assert normalize.salary_from_description("A team of 12 people, 401k plan.") == (None, None)


# ----------------------------------------------------------------------
# Dates
# ----------------------------------------------------------------------
@pytest.mark.parametrize(
    "value, expected",
    [
        ("3 days ago", date(2025, 1, 12)),
        ("Posted 3 Days Ago", date(2025, 1, 12)),
        ("2w", date(2025, 1, 1)),
        ("yesterday", date(2025, 1, 14)),
        ("today", TODAY),
        ("2025-01-10T08:00:00Z", date(2025, 1, 10)),
        ("Mon, 13 Jan 2025 10:00:00 +0000", date(2025, 1, 13)),
        (1736899200, date(2025, 1, 15)),
        (1736899200000, date(2025, 1, 15)),
        ("1736899200", date(2025, 1, 15)),
        ("sometime soon", None),
        (None, None),
    ],
)
def test_parse_posted(value, expected):
    assert normalize.parse_posted(value, today=TODAY) == expected


def test_relative_dates_use_the_clock(frozen_utc):
    assert normalize.parse_posted("2 weeks ago") == date(2025, 1, 1)


# ----------------------------------------------------------------------
# Listing -> posting
# ----------------------------------------------------------------------
def _raw(**kw):
    base = dict(
        title="  Senior C#   Developer ",
        url="https://boards.greenhouse.io/acme/jobs/1",
        location="Remote - Europe",
        description="C#, .NET. Salary $100k-$130k",
        posted="2025-01-10",
    )
    base.update(kw)
    return RawListing(**base)


def test_to_posting_fills_every_field():
    p = normalize.to_posting(_raw(), company="Acme", source_platform="Greenhouse", today=TODAY)
    assert p.title == "Senior C# Developer"
    assert p.company == "Acme"
    assert p.country == "Europe"
    assert p.remote_policy is RemotePolicy.REMOTE_FRIENDLY
    assert p.required_skills == ("C#", ".NET")
    assert (p.salary_min, p.salary_max) == (100000.0, 130000.0)
    assert p.posted_date == date(2025, 1, 10)
    assert p.source_platform == "Greenhouse"


def test_to_posting_is_deterministic():
    a = normalize.to_posting(_raw(), "Acme", "Greenhouse", today=TODAY)
    b = normalize.to_posting(_raw(), "Acme", "Greenhouse", today=TODAY)
    assert a == b


def test_missing_title_or_url_is_dropped():
    assert normalize.to_posting(_raw(url="")) is None
    assert normalize.to_posting(_raw(title="   ")) is None


def test_remote_hint_upgrades_but_never_overrides_hybrid():
    remote = normalize.to_posting(_raw(location="Worldwide", remote_hint=RemotePolicy.FULLY_REMOTE))
    hybrid = normalize.to_posting(_raw(location="Hybrid - Berlin", remote_hint=RemotePolicy.FULLY_REMOTE))
    assert remote.remote_policy is RemotePolicy.FULLY_REMOTE
    assert hybrid.remote_policy is RemotePolicy.HYBRID


def test_structured_salary_wins_over_text():
    p = normalize.to_posting(_raw(salary_min=50000.0, salary_max=None, salary_text="$200k"))
    assert (p.salary_min, p.salary_max) == (50000.0, None)


def test_listing_company_wins_over_default():
    p = normalize.to_posting(_raw(company="Initech"), company="RemoteOK")
    assert p.company == "Initech"


def test_normalize_listings_counts_skips():
    postings, warnings = normalize.normalize_listings([_raw(), _raw(title="")], company="Acme", source_platform="Lever")
    assert len(postings) == 1
    assert warnings == ["Lever: skipped 1 listing(s) without title or URL"]


@pytest.mark.parametrize("value", [10**400, "10000000000000000000000 days ago"])
def test_out_of_range_posted_values_are_unknown(value):
    assert normalize.parse_posted(value, today=TODAY) is None


def test_huge_epoch_does_not_sink_the_batch():
    postings, warnings = normalize.normalize_listings([_raw(posted=10**400), _raw(url="https://example.com/2")])
    assert len(postings) == 2
    assert postings[0].posted_date is None
    assert warnings == []


def test_one_broken_listing_is_skipped_not_fatal():
    real = normalize.to_posting

    def flaky(raw, *args, **kwargs):
        if raw.title == "Broken":
            raise OverflowError("date value out of range")
        return real(raw, *args, **kwargs)

    with mock.patch.object(normalize, "to_posting", side_effect=flaky):
        postings, warnings = normalize.normalize_listings(
            [_raw(title="Broken"), _raw()], company="Acme", source_platform="Remotive"
        )
    assert [p.title for p in postings] == ["Senior C# Developer"]
    assert warnings == ["Remotive: skipped 1 malformed listing(s)"]
