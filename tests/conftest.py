# tests/conftest.py
import os
import pathlib
import tempfile

import pytest
from freezegun import freeze_time

from modules.job_discovery.lib.http_client import FetchResult

FIXTURES = pathlib.Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------
# Live tests are opt-in: use --live or RUN_LIVE_TESTS=1
# ---------------------------------------------------------------------
def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run tests marked as 'live' (network calls or external services).",
    )


def pytest_configure(config: pytest.Config) -> None:
    # Marker registration (so pytest --markers shows it)
    config.addinivalue_line(
        "markers",
        "live: marks tests that perform live network calls or hit external services (skipped by default).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_live = config.getoption("--live") or os.getenv("RUN_LIVE_TESTS") == "1"
    if run_live:
        return
    skip_live = pytest.mark.skip(reason="live tests disabled (use --live or RUN_LIVE_TESTS=1)")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------
# Test-wide env defaults (autouse, function-scoped)
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _env_defaults(monkeypatch):
    # Write logs to a throwaway dir so real logs stay clean (per test)
    tmp_logs = tempfile.mkdtemp(prefix="jd-pytest-logs-")
    monkeypatch.setenv("LOG_DIR", tmp_logs)
    monkeypatch.setenv("ACTIVITY_LOG_PREFIX", "activity-test")
    monkeypatch.setenv("ERROR_LOG_PREFIX", "error-test")
    for key in list(os.environ):
        if key.startswith("JOB_DISCOVERY_"):
            monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def frozen_utc():
    with freeze_time("2025-01-15T12:00:00Z"):
        yield


# ---------------------------------------------------------------------
# Offline HTTP
# ---------------------------------------------------------------------
class FakeClient:
    """
    Stand-in for HttpClient. Routes are keyed by URL (query strings are not
    part of the key); values are FetchResults, or exceptions to raise.
    Unrouted URLs come back as HTTP 404.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def _answer(self, method, url, payload=None):
        self.calls.append((method, url, payload))
        hit = self.routes.get(url)
        if isinstance(hit, list):
            hit = hit.pop(0) if hit else None
        if hit is None:
            return FetchResult.failure(url, "HTTP 404", status=404)
        if isinstance(hit, BaseException):
            raise hit
        return hit

    def fetch_text(self, url, **kwargs):
        return self._answer("GET", url)

    def fetch_json(self, url, **kwargs):
        return self._answer("GET", url)

    def post_json(self, url, payload, **kwargs):
        return self._answer("POST", url, payload)

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def urls(self):
        return [u for _, u, _ in self.calls]


def page(url, text, final_url=None):
    return FetchResult(ok=True, url=final_url or url, status=200, text=text)


def json_ok(url, data):
    return FetchResult(ok=True, url=url, status=200, data=data)


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def fixture_text():
    def _read(name):
        return (FIXTURES / name).read_text(encoding="utf-8")

    return _read
