# tests/test_main.py
import json
from unittest import mock

import pytest
from conftest import FakeClient, json_ok, page

from modules.job_discovery import run
from modules.job_discovery.lib.boards.catalog import BoardRegistry
from modules.job_discovery.lib.config import ConfigError
from modules.job_discovery.lib.models import BoardDescriptor

GH_PAGE = "https://boards.greenhouse.io/acme"
LEVER_PAGE = "https://jobs.lever.co/globex"


@pytest.fixture
def client(fixture_text):
    c = FakeClient({
        GH_PAGE: page(GH_PAGE, fixture_text("greenhouse_board.html")),
        LEVER_PAGE: page(LEVER_PAGE, fixture_text("lever_board.html")),
    })
    with mock.patch("modules.job_discovery.main.HttpClient.from_settings", return_value=c):
        yield c


def test_unknown_mode():
    with pytest.raises(ConfigError):
        run(mode="crawl-everything")


def test_bad_setting_is_a_config_error():
    with pytest.raises(ConfigError):
        run(mode="company", company="Acme", careers_url=GH_PAGE, timeout=-1)


def test_company_mode(client):
    out = run(mode="company", company="Acme", careers_url=GH_PAGE)
    assert out["mode"] == "company"
    assert out["result"]["success"] is True
    assert out["result"]["classification"] == {"type": "Greenhouse", "identifier": "acme"}
    assert len(out["result"]["postings"]) == 2
    json.dumps(out)


def test_detect_mode(client):
    out = run(mode="detect", company="Acme", careers_url=GH_PAGE)
    assert out["result"]["state"] == "Classified"
    assert out["result"]["postings"] == []


def test_batch_mode_from_targets(client):
    out = run(
        mode="batch",
        batch_interval=0,
        targets=[
            {"Name": "Acme", "CareersUrl": GH_PAGE},
            {"name": "Globex", "careersUrl": LEVER_PAGE},
            {"Name": "", "CareersUrl": "https://skipped.example"},
        ],
    )
    assert [r["target"]["name"] for r in out["results"]] == ["Acme", "Globex"]
    assert out["summary"]["by_ats"] == {"Greenhouse": 1, "Lever": 1}
    assert out["summary"]["postings"] == 4


def test_batch_mode_from_csv(client, tmp_path):
    path = tmp_path / "companies.csv"
    path.write_text(f"Name,CareersUrl\nAcme,{GH_PAGE}\nNowhere,https://nowhere.example/jobs\n", encoding="utf-8")
    out = run(mode="batch", targets_path=str(path), batch_interval=0)
    assert out["summary"]["total"] == 2
    assert out["summary"]["failed"] == 1


def test_aggregate_mode(client):
    api = "https://remotive.example/api"
    client.routes[api] = json_ok(api, {"jobs": [
        {"title": "Senior C# Developer", "url": "https://remotive.example/1", "company_name": "Initech",
         "candidate_required_location": "Europe"},
        {"title": "Ruby Developer", "url": "https://remotive.example/2", "company_name": "Initech"},
    ]})
    boards = BoardRegistry([
        BoardDescriptor(name="Remotive Test", url="https://remotive.example", priority=7,
                        feed_url=api, feed_kind="remotive"),
        BoardDescriptor(name="Down Board", url="https://down.example", priority=5,
                        feed_url="https://down.example/api", feed_kind="remoteok"),
    ])
    with mock.patch("modules.job_discovery.main.default_registry", return_value=boards):
        out = run(mode="aggregate", stacks="c#", locations=["Germany"])

    result = out["result"]
    assert result["postings_by_source"] == {"Remotive Test": 2}
    assert list(result["failed_sources"]) == ["Down Board"]
    assert [p["title"] for p in result["filtered_postings"]] == ["Senior C# Developer"]
    json.dumps(out)
