"""
Multi-board aggregation.

Features:
  - Bounded fan-out: one task per board on a ThreadPoolExecutor
  - Per-board failure isolation (a failed board lands in failed_sources)
  - Cancellation via threading.Event and an overall deadline; finished
    boards are kept, unfinished ones are reported as cancelled/timed out
  - Single-threaded fan-in followed by the filter/dedup/rank pipeline
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait

from . import logging_bridge
from .boards.catalog import BoardRegistry, default_registry, relevance
from .boards.feeds import collect_board
from .config import Settings
from .errors import NetworkError
from .filters import GUIDANCE, apply_pipeline
from .http_client import CANCELLED, HttpClient
from .models import AggregationRequest, AggregationResult, BoardDescriptor, ExtractionOutcome, JobPosting
from .normalize import normalize_listings

log = logging.getLogger(__name__)

TIMED_OUT = "timed out"

# How often the join loop wakes up to look at the cancel flag.
_POLL_S = 0.25

BoardCollector = Callable[[HttpClient, BoardDescriptor], ExtractionOutcome]


class Aggregator:
    def __init__(
        self,
        client: HttpClient,
        settings: Settings | None = None,
        *,
        collect: BoardCollector = collect_board,
    ):
        self.client = client
        self.settings = settings or Settings()
        self.collect = collect

    # =========================================================================
    # PUBLIC
    # =========================================================================
    def aggregate(
        self,
        request: AggregationRequest,
        registry: BoardRegistry | None = None,
        *,
        cancel: threading.Event | None = None,
        deadline: float | None = None,
    ) -> AggregationResult:
        """
        Scrape every board in `registry` (or the best `board_limit` of them)
        and run the filter pipeline over the union.

        deadline: overall budget in seconds from now. Without one, the join
        waits task_timeout per wave of max_parallel boards.
        """
        start_ns = time.perf_counter_ns()
        registry = registry if registry is not None else default_registry()
        stacks, locations = sorted(request.stacks), sorted(request.locations)

        boards = self._select_boards(registry, locations, stacks)
        result = AggregationResult(boards_scraped=[b.name for b in boards])
        if not boards:
            result.message = "No boards to scrape."
            return result

        outcomes, failures, abandoned = self._fan_out(boards, cancel=cancel, deadline=deadline)

        # ---- fan-in (single-threaded, in board order) ----
        for board in boards:
            if board.name in failures:
                result.failed_sources[board.name] = failures[board.name]
                continue
            postings, warnings = outcomes[board.name]
            result.postings_by_source[board.name] = len(postings)
            result.all_postings.extend(postings)
            for w in warnings:
                log.debug("%s: %s", board.name, w)
        result.cancelled = abandoned

        # ---- pipeline ----
        scores = {b.name: relevance(b, locations, stacks) for b in boards}
        result.filtered_postings = apply_pipeline(result.all_postings, request, scores)

        if not result.filtered_postings:
            result.message = GUIDANCE if result.all_postings else "No postings were collected from any board."

        total_us = int((time.perf_counter_ns() - start_ns) // 1000)
        logging_bridge.activity({
            "component": "job_discovery.aggregator",
            "op": "summary",
            "stacks": stacks,
            "locations": locations,
            "min_salary": request.min_salary,
            "boards": len(boards),
            "found_by_source": dict(result.postings_by_source),
            "failed_sources": dict(result.failed_sources),
            "all_postings": len(result.all_postings),
            "filtered_postings": len(result.filtered_postings),
            "cancelled": result.cancelled,
            "total_us": total_us,
        })
        return result

    # =========================================================================
    # INTERNALS
    # =========================================================================
    def _select_boards(self, registry: BoardRegistry, locations: list[str], stacks: list[str]) -> list[BoardDescriptor]:
        if self.settings.board_limit:
            return registry.recommend(locations, stacks, self.settings.board_limit)
        return list(registry)

    def _scrape_board(self, board: BoardDescriptor, cancel: threading.Event | None) -> tuple[list[JobPosting], list[str]]:
        if cancel is not None and cancel.is_set():
            raise NetworkError(CANCELLED)
        outcome = self.collect(self.client, board)
        postings, warnings = normalize_listings(outcome.listings, source_platform=board.name)
        return postings, list(outcome.warnings) + warnings

    def _join_budget(self, n_boards: int, deadline: float | None) -> float:
        if deadline is not None:
            return max(0.0, float(deadline))
        waves = math.ceil(n_boards / max(1, self.settings.max_parallel))
        return self.settings.task_timeout * max(1, waves)

    def _fan_out(
        self,
        boards: list[BoardDescriptor],
        *,
        cancel: threading.Event | None,
        deadline: float | None,
    ) -> tuple[dict[str, tuple[list[JobPosting], list[str]]], dict[str, str], bool]:
        outcomes: dict[str, tuple[list[JobPosting], list[str]]] = {}
        failures: dict[str, str] = {}
        ends_at = time.monotonic() + self._join_budget(len(boards), deadline)

        pool = ThreadPoolExecutor(
            max_workers=max(1, min(len(boards), self.settings.max_parallel)),
            thread_name_prefix="job-board",
        )
        futures: dict[Future, BoardDescriptor] = {}
        abandoned = False
        try:
            for board in boards:
                futures[pool.submit(self._scrape_board, board, cancel)] = board

            pending = set(futures)
            reason = ""
            while pending:
                if cancel is not None and cancel.is_set():
                    reason = CANCELLED
                    break
                remaining = ends_at - time.monotonic()
                if remaining <= 0:
                    reason = TIMED_OUT
                    break
                done, pending = wait(pending, timeout=min(_POLL_S, remaining), return_when=FIRST_COMPLETED)
                for fut in done:
                    self._harvest(fut, futures[fut], outcomes, failures)

            # Boards that finished while we were deciding to stop still count.
            for fut in [f for f in pending if f.done() and not f.cancelled()]:
                pending.discard(fut)
                self._harvest(fut, futures[fut], outcomes, failures)

            if pending:
                abandoned = True
                for fut in pending:
                    fut.cancel()
                    failures[futures[fut].name] = reason
                log.warning("Aggregation stopped (%s) with %d board(s) unfinished", reason, len(pending))
        finally:
            # Running tasks are abandoned, not awaited; they finish on their own.
            pool.shutdown(wait=not abandoned, cancel_futures=True)

        return outcomes, failures, abandoned

    @staticmethod
    def _harvest(
        fut: Future,
        board: BoardDescriptor,
        outcomes: dict[str, tuple[list[JobPosting], list[str]]],
        failures: dict[str, str],
    ) -> None:
        try:
            outcomes[board.name] = fut.result()
        except Exception as e:
            failures[board.name] = str(e) or repr(e)
            logging_bridge.error({
                "component": "job_discovery.aggregator",
                "op": "board_failed",
                "board": board.name,
                "error": repr(e),
            })
