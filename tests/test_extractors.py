# tests/test_extractors.py
from unittest import mock

import pytest
from conftest import FakeClient, json_ok

from modules.job_discovery.lib.extractors import generic, greenhouse, lever, registry, smartrecruiters, workday
from modules.job_discovery.lib.extractors.base import Extractor
from modules.job_discovery.lib.models import ATSClassification, ATSType, ExtractionOutcome


# ----------------------------------------------------------------------
# Registry
# ----------------------------------------------------------------------
def test_every_vendor_has_an_extractor():
    types = registry.all_types()
    for t in (ATSType.GREENHOUSE, ATSType.LEVER, ATSType.WORKDAY, ATSType.SMARTRECRUITERS):
        assert t in types
    assert registry.get(ATSType.CUSTOM) is generic.EXTRACTOR
    assert registry.get(ATSType.UNKNOWN) is generic.EXTRACTOR


def test_register_is_idempotent_but_rejects_conflicts():
    assert registry.register(ATSType.LEVER, lever.EXTRACTOR) is lever.EXTRACTOR
    other = Extractor(name="other", extract_listings=lambda html, c, page_url="": ExtractionOutcome())
    with pytest.raises(ValueError):
        registry.register(ATSType.LEVER, other)
    with pytest.raises(ValueError):
        registry.register("Lever", other)


def test_whole_page_failure_becomes_warning():
    def boom(html, classification, page_url=""):
        raise RuntimeError("markup from outer space")

    broken = Extractor(name="broken", extract_listings=boom)
    with mock.patch.dict(registry._REGISTRY, {ATSType.LEVER: broken}):
        out = registry.extract(ATSClassification(ATSType.LEVER, "globex"), "<html/>")
    assert out.listings == ()
    assert "broken: page parse failed" in out.warnings[0]


# ----------------------------------------------------------------------
# Greenhouse
# ----------------------------------------------------------------------
def test_greenhouse_board_page(fixture_text):
    out = greenhouse.extract_listings(fixture_text("greenhouse_board.html"), ATSClassification(ATSType.GREENHOUSE, "acme"))
    assert [l.title for l in out.listings] == ["Senior C# Developer", "Backend Engineer (Python)"]
    assert out.listings[0].url == "https://boards.greenhouse.io/acme/jobs/4001"
    assert out.listings[1].location == "Berlin, Germany"
    assert out.warnings == ()


def test_greenhouse_feed_skips_malformed_entries():
    data = {
        "jobs": [
            {
                "title": "SRE",
                "absolute_url": "https://boards.greenhouse.io/acme/jobs/1",
                "location": {"name": "Remote"},
                "content": "&lt;p&gt;Kubernetes &amp;amp; Terraform&lt;/p&gt;",
                "updated_at": "2025-01-10T12:00:00-05:00",
            },
            "not-a-job",
            {"title": "", "absolute_url": "https://boards.greenhouse.io/acme/jobs/2"},
        ]
    }
    out = greenhouse.parse_feed(data)
    assert len(out.listings) == 1
    assert out.listings[0].location == "Remote"
    assert "Kubernetes" in out.listings[0].description
    assert out.warnings == ("greenhouse feed: skipped 1 malformed entry",)


def test_greenhouse_feed_wrong_shape_is_a_warning():
    out = greenhouse.parse_feed(["nope"])
    assert out.listings == ()
    assert out.warnings


# ----------------------------------------------------------------------
# Lever
# ----------------------------------------------------------------------
def test_lever_board_page(fixture_text):
    out = lever.extract_listings(fixture_text("lever_board.html"), ATSClassification(ATSType.LEVER, "globex"))
    assert len(out.listings) == 2
    first, second = out.listings
    assert first.title == "Platform Engineer"
    assert first.location == "Toronto, Canada Hybrid"
    assert first.description == "Full-time"
    assert second.url == "https://jobs.lever.co/globex/bbb-222"


def test_lever_feed_salary_and_epoch():
    data = [
        {
            "text": "Site Reliability Engineer",
            "hostedUrl": "https://jobs.lever.co/globex/ccc",
            "categories": {"location": "Remote"},
            "workplaceType": "remote",
            "createdAt": 1736899200000,
            "salaryRange": {"min": 100000, "max": 140000, "currency": "USD"},
            "descriptionPlain": "Kubernetes all day.",
        }
    ]
    out = lever.parse_feed(data)
    (item,) = out.listings
    assert (item.salary_min, item.salary_max) == (100000.0, 140000.0)
    assert item.posted == 1736899200000
    assert item.location.startswith("Remote")


# ----------------------------------------------------------------------
# Workday
# ----------------------------------------------------------------------
CXS = "https://initech.wd5.myworkdayjobs.com/wday/cxs/initech/Initech/jobs"


def test_infer_cxs_url_skips_locale():
    assert workday.infer_cxs_url("initech.wd5.myworkdayjobs.com/en-US/Initech") == CXS
    assert workday.infer_cxs_url("https://initech.wd5.myworkdayjobs.com/Initech/details/x") == CXS
    assert workday.infer_cxs_url("https://initech.wd5.myworkdayjobs.com/") is None


def test_workday_server_rendered_links(fixture_text):
    c = ATSClassification(ATSType.WORKDAY, "initech.wd5.myworkdayjobs.com/en-US/Initech")
    out = workday.extract_listings(fixture_text("workday_page.html"), c)
    (item,) = out.listings
    assert item.title == "Software Engineer"
    assert item.url == "https://initech.wd5.myworkdayjobs.com/en-US/Initech/job/Austin-TX/Software-Engineer_R123"
    assert item.location == "Austin, TX"


def test_workday_js_shell_warns():
    c = ATSClassification(ATSType.WORKDAY, "initech.wd5.myworkdayjobs.com/Initech")
    out = workday.extract_listings("<html><body><div id='root'></div></body></html>", c)
    assert out.listings == ()
    assert "client-rendered" in out.warnings[0]


def test_workday_feed_prefixes_site_path():
    data = {
        "total": 2,
        "jobPostings": [
            {
                "title": "QA Analyst",
                "externalPath": "/job/Remote-USA/QA-Analyst_R9",
                "locationsText": "Remote, USA",
                "postedOn": "Posted 3 Days Ago",
                "bulletFields": ["R9"],
            },
            {"externalPath": "/job/no-title"},
        ],
    }
    out = workday.parse_feed(data, CXS)
    (item,) = out.listings
    assert item.url == "https://initech.wd5.myworkdayjobs.com/Initech/job/Remote-USA/QA-Analyst_R9"
    assert item.posted == "Posted 3 Days Ago"


def test_workday_feed_paginates():
    def _page(start, n):
        return {"total": 25, "jobPostings": [
            {"title": f"Role {i}", "externalPath": f"/job/x/Role_{i}"} for i in range(start, start + n)
        ]}

    client = FakeClient({CXS: [json_ok(CXS, _page(0, workday.PAGE_LIMIT)), json_ok(CXS, _page(20, 5))]})
    out = workday.collect_feed(client, ATSClassification(ATSType.WORKDAY, "initech.wd5.myworkdayjobs.com/Initech"))

    assert len(out.listings) == 25
    offsets = [payload["offset"] for method, _, payload in client.calls]
    assert offsets == [0, 20]
    assert all(method == "POST" for method, _, _ in client.calls)


def test_workday_feed_unavailable_returns_none():
    client = FakeClient()
    c = ATSClassification(ATSType.WORKDAY, "initech.wd5.myworkdayjobs.com/Initech")
    assert workday.collect_feed(client, c) is None


# ----------------------------------------------------------------------
# SmartRecruiters
# ----------------------------------------------------------------------
def test_smartrecruiters_page(fixture_text):
    c = ATSClassification(ATSType.SMARTRECRUITERS, "Umbrella")
    out = smartrecruiters.extract_listings(fixture_text("smartrecruiters_page.html"), c)
    (item,) = out.listings
    assert item.title == "Data Engineer"
    assert item.url == "https://jobs.smartrecruiters.com/Umbrella/743999"
    assert item.location == "Warsaw, Poland"


def test_smartrecruiters_feed():
    data = {"content": [{
        "id": "744000",
        "name": "ML Engineer",
        "location": {"city": "Warsaw", "country": "pl", "remote": True},
        "releasedDate": "2025-01-02T10:00:00.000Z",
        "department": {"label": "R&D"},
    }]}
    (item,) = smartrecruiters.parse_feed(data, "Umbrella").listings
    assert item.url == "https://jobs.smartrecruiters.com/Umbrella/744000"
    assert item.location == "Warsaw, pl Remote"
    assert item.tags == ()


def test_smartrecruiters_feed_wrong_shape():
    out = smartrecruiters.parse_feed({"totalFound": 0}, "Umbrella")
    assert out.listings == ()
    assert "content" in out.warnings[0]


# ----------------------------------------------------------------------
# Generic
# ----------------------------------------------------------------------
def test_generic_link_scan(fixture_text):
    c = ATSClassification(ATSType.CUSTOM, "www.example.com")
    out = generic.extract_listings(fixture_text("custom_careers.html"), c)
    titles = [l.title for l in out.listings]
    assert titles == ["Senior .NET Engineer", "Product Designer"]
    assert out.listings[0].url == "https://www.example.com/careers/senior-dotnet-engineer"
    assert out.listings[0].location == "Remote (EU)"


def test_generic_prefers_json_ld(fixture_text):
    c = ATSClassification(ATSType.CUSTOM, "hooli.com")
    out = generic.extract_listings(fixture_text("jsonld_careers.html"), c)
    (item,) = out.listings
    assert item.title == "Staff Software Engineer"
    assert item.url == "https://hooli.com/jobs/staff-swe"
    assert item.company == "Hooli Inc."
    assert item.location == "Lisbon, Portugal Remote"
    assert (item.salary_min, item.salary_max) == (90000.0, 120000.0)


def test_generic_empty_page():
    out = generic.extract_listings("", ATSClassification.unknown())
    assert out.listings == ()


def test_generic_resolves_links_against_the_page_url():
    html = '<a href="/job-123">Backend Engineer</a>'
    out = generic.extract_listings(html, ATSClassification.unknown(), page_url="https://acme.example/about")
    assert [l.url for l in out.listings] == ["https://acme.example/job-123"]


def test_generic_keeps_scheme_and_path_of_the_page():
    html = '<a href="./openings/42">Data Analyst</a>'
    c = ATSClassification(ATSType.CUSTOM, "acme.example")
    out = generic.extract_listings(html, c, page_url="http://acme.example/careers/")
    assert [l.url for l in out.listings] == ["http://acme.example/careers/openings/42"]


def test_registry_passes_page_url_through():
    html = '<a href="/job-7">QA Engineer</a>'
    out = registry.extract(ATSClassification.unknown(), html, "https://initech.example/team")
    assert [l.url for l in out.listings] == ["https://initech.example/job-7"]
