# tests/test_aggregator.py
import json
import os
import pathlib
import threading
import time

import pytest
from conftest import FakeClient

from modules.job_discovery.lib.aggregator import TIMED_OUT, Aggregator
from modules.job_discovery.lib.boards.catalog import BoardRegistry
from modules.job_discovery.lib.config import Settings
from modules.job_discovery.lib.errors import NetworkError
from modules.job_discovery.lib.filters import GUIDANCE
from modules.job_discovery.lib.http_client import CANCELLED
from modules.job_discovery.lib.models import AggregationRequest, BoardDescriptor, ExtractionOutcome, RawListing, RemotePolicy

HIGH, MID, LOW = "High Board", "Mid Board", "Low Board"


def _board(name, priority):
    return BoardDescriptor(name=name, url=f"https://{priority}.example", priority=priority, feed_kind="remotive")


def _listing(title, board, days_old=0):
    slug = title.lower().replace(" ", "-")
    return RawListing(
        title=title,
        url=f"https://{board.replace(' ', '').lower()}.example/{slug}",
        company="Initech",
        location="Worldwide",
        posted=f"2025-01-{15 - days_old:02d}",
        remote_hint=RemotePolicy.FULLY_REMOTE,
    )


@pytest.fixture
def registry():
    return BoardRegistry([_board(LOW, 5), _board(HIGH, 9), _board(MID, 7)])


def _collector(behaviour):
    """behaviour: board name -> list of RawListing | Exception | callable(board)"""

    def collect(client, board):
        b = behaviour[board.name]
        if callable(b) and not isinstance(b, Exception):
            b = b(board)
        if isinstance(b, Exception):
            raise b
        return ExtractionOutcome(listings=tuple(b))

    return collect


def _aggregator(behaviour, **settings):
    return Aggregator(FakeClient(), Settings(**settings), collect=_collector(behaviour))


# ----------------------------------------------------------------------
# Fan-out / fan-in
# ----------------------------------------------------------------------
def test_failed_board_is_isolated(registry):
    behaviour = {
        HIGH: [_listing("Python Engineer", HIGH, 2), _listing("Sales Lead", HIGH)],
        MID: NetworkError("Mid Board: HTTP 503"),
        LOW: [_listing("Python Developer", LOW)],
    }
    result = _aggregator(behaviour, max_parallel=3).aggregate(AggregationRequest.build(stacks=["python"]), registry)

    assert result.failed_sources == {MID: "Mid Board: HTTP 503"}
    assert result.postings_by_source == {HIGH: 2, LOW: 1}
    assert len(result.all_postings) == 3
    assert [p.title for p in result.filtered_postings] == ["Python Engineer", "Python Developer"]
    assert all(p.source_platform != MID for p in result.filtered_postings)
    assert result.boards_scraped == [LOW, HIGH, MID]
    assert result.message is None
    assert not result.cancelled


def test_same_posting_on_two_boards_is_kept_once(registry):
    shared = RawListing(title="Go Engineer", url="https://jobs.example/go", company="Initech", location="Remote")
    behaviour = {HIGH: [shared], MID: [shared], LOW: []}
    result = _aggregator(behaviour).aggregate(AggregationRequest.build(), registry)

    assert len(result.all_postings) == 2
    (only,) = result.filtered_postings
    assert only.source_platform == HIGH


def test_board_failure_is_logged(registry):
    behaviour = {HIGH: [], MID: NetworkError("down"), LOW: []}
    _aggregator(behaviour).aggregate(AggregationRequest.build(), registry)

    files = pathlib.Path(os.environ["LOG_DIR"]).glob("error-test-*.jsonl")
    records = [json.loads(line) for f in files for line in f.read_text(encoding="utf-8").splitlines()]
    assert any(r["op"] == "board_failed" and r["board"] == MID for r in records)


def test_board_limit_uses_recommendation(registry):
    behaviour = {HIGH: [], MID: [], LOW: []}
    result = _aggregator(behaviour, board_limit=2).aggregate(AggregationRequest.build(), registry)
    assert result.boards_scraped == [HIGH, MID]


# ----------------------------------------------------------------------
# Messages
# ----------------------------------------------------------------------
def test_nothing_collected_message(registry):
    behaviour = {HIGH: NetworkError("a"), MID: NetworkError("b"), LOW: NetworkError("c")}
    result = _aggregator(behaviour).aggregate(AggregationRequest.build(), registry)
    assert len(result.failed_sources) == 3
    assert result.message == "No postings were collected from any board."


def test_filtered_empty_gets_guidance(registry):
    behaviour = {HIGH: [_listing("Sales Lead", HIGH)], MID: [], LOW: []}
    result = _aggregator(behaviour).aggregate(AggregationRequest.build(stacks=["rust"]), registry)
    assert result.all_postings
    assert result.filtered_postings == []
    assert result.message == GUIDANCE


def test_empty_registry():
    result = _aggregator({}).aggregate(AggregationRequest.build(), BoardRegistry())
    assert result.boards_scraped == []
    assert result.message == "No boards to scrape."


# ----------------------------------------------------------------------
# Cancellation / deadline
# ----------------------------------------------------------------------
def test_cancel_keeps_finished_boards(registry):
    release = threading.Event()
    cancel = threading.Event()

    def slow(board):
        release.wait(5)
        return []

    behaviour = {HIGH: [_listing("Python Engineer", HIGH)], MID: slow, LOW: slow}
    timer = threading.Timer(0.5, cancel.set)
    timer.start()
    try:
        result = _aggregator(behaviour, max_parallel=3).aggregate(AggregationRequest.build(), registry, cancel=cancel)
    finally:
        release.set()
        timer.cancel()

    assert result.cancelled
    assert result.postings_by_source == {HIGH: 1}
    assert result.failed_sources == {MID: CANCELLED, LOW: CANCELLED}
    assert [p.title for p in result.filtered_postings] == ["Python Engineer"]


def test_deadline_times_out_slow_boards(registry):
    release = threading.Event()

    def slow(board):
        release.wait(5)
        return []

    behaviour = {HIGH: [], MID: [], LOW: slow}
    started = time.monotonic()
    try:
        result = _aggregator(behaviour).aggregate(AggregationRequest.build(), registry, deadline=0.3)
    finally:
        release.set()

    assert time.monotonic() - started < 3
    assert result.cancelled
    assert result.failed_sources == {LOW: TIMED_OUT}
    assert set(result.postings_by_source) == {HIGH, MID}


def test_cancelled_before_start(registry):
    cancel = threading.Event()
    cancel.set()
    behaviour = {HIGH: [_listing("Python Engineer", HIGH)], MID: [], LOW: []}
    result = _aggregator(behaviour).aggregate(AggregationRequest.build(), registry, cancel=cancel)

    assert result.all_postings == []
    assert set(result.failed_sources.values()) == {CANCELLED}
    assert len(result.failed_sources) == 3


def test_fan_out_respects_max_parallel_and_overlaps_boards():
    boards = BoardRegistry([_board(f"Board {i}", 5) for i in range(6)])
    lock = threading.Lock()
    state = {"running": 0, "peak": 0}

    def slow(board):
        with lock:
            state["running"] += 1
            state["peak"] = max(state["peak"], state["running"])
        time.sleep(0.3)
        with lock:
            state["running"] -= 1
        return [_listing("Python Engineer", board.name)]

    behaviour = {b.name: slow for b in boards}
    started = time.monotonic()
    result = _aggregator(behaviour, max_parallel=3).aggregate(AggregationRequest.build(), boards)
    elapsed = time.monotonic() - started

    assert 1 < state["peak"] <= 3
    # Six 0.3 s boards run serially would take 1.8 s; three at a time takes two waves.
    assert elapsed < 1.4
    assert len(result.postings_by_source) == 6
    assert not result.failed_sources
