from __future__ import annotations

import threading
from typing import Any

from .lib.aggregator import Aggregator
from .lib.batch import Pacing, load_targets, parse_json_targets, scrape_batch, summarize_batch
from .lib.boards import default_registry
from .lib.company import CompanyScraper
from .lib.config import ConfigError, Settings
from .lib.http_client import HttpClient
from .lib.logging_bridge import activity as log_activity
from .lib.models import AggregationRequest, ScrapeTarget

MODES = ("company", "detect", "batch", "aggregate")


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return [str(v).strip() for v in value if str(v).strip()]


def _batch_targets(kwargs: dict[str, Any]) -> list[ScrapeTarget]:
    if kwargs.get("targets_path"):
        return load_targets(kwargs["targets_path"])
    targets = kwargs.get("targets")
    if isinstance(targets, str):
        return parse_json_targets(targets)
    out: list[ScrapeTarget] = []
    for t in targets or []:
        if isinstance(t, ScrapeTarget):
            out.append(t)
        elif isinstance(t, dict):
            lowered = {str(k).lower(): v for k, v in t.items()}
            name = str(lowered.get("name") or "").strip()
            url = str(lowered.get("careersurl") or "").strip()
            if name and url:
                out.append(ScrapeTarget(name, url))
    return out


def run(**kwargs: Any) -> dict[str, Any]:
    """
    Entry point for the 'job_discovery' module.

    Accepts kwargs, including:
      mode: "company" | "detect" | "batch" | "aggregate"   (default "aggregate")

      # company / detect
      company: str
      careers_url: str

      # batch
      targets_path: str            # .csv or .json file
      targets: list[dict] | str    # [{"Name": ..., "CareersUrl": ...}] or the same as JSON text

      # aggregate
      stacks: list[str] | "a,b"
      locations: list[str] | "a,b"
      min_salary: float = 0

      # shared
      cancel: threading.Event       # stops batch/aggregate early
      deadline: float               # seconds budget for batch/aggregate
      plus any Settings field (timeout, max_parallel, board_limit, batch_limit, ...)

    Returns a JSON-safe dict with the mode and its result.
    """
    mode = str(kwargs.get("mode") or "aggregate").strip().lower()
    if mode not in MODES:
        raise ConfigError(f"Unknown mode {mode!r}; expected one of {', '.join(MODES)}.")

    settings = Settings.from_env_and_kwargs(kwargs)
    cancel: threading.Event | None = kwargs.get("cancel")
    deadline = kwargs.get("deadline")

    log_activity({
        "component": "job_discovery.main",
        "op": "start",
        "mode": mode,
        "settings": {
            "timeout": settings.timeout,
            "max_parallel": settings.max_parallel,
            "board_limit": settings.board_limit,
            "batch_limit": settings.batch_limit,
            "detect_only": settings.detect_only,
        },
    })

    with HttpClient.from_settings(settings, cancel=cancel) as client:
        if mode in ("company", "detect"):
            scraper = CompanyScraper(client)
            res = scraper.scrape_company(
                kwargs.get("company") or "",
                kwargs.get("careers_url") or "",
                detect_only=mode == "detect" or settings.detect_only,
            )
            return {"mode": mode, "result": res.to_dict()}

        if mode == "batch":
            results = scrape_batch(
                _batch_targets(kwargs),
                settings.batch_limit,
                Pacing(settings.batch_interval, settings.batch_jitter),
                scraper=CompanyScraper(client),
                detect_only=settings.detect_only,
                cancel=cancel,
                deadline=float(deadline) if deadline is not None else None,
            )
            return {
                "mode": mode,
                "results": [r.to_dict() for r in results],
                "summary": summarize_batch(results).to_dict(),
            }

        request = AggregationRequest.build(
            stacks=_as_list(kwargs.get("stacks")),
            locations=_as_list(kwargs.get("locations")),
            min_salary=float(kwargs.get("min_salary") or 0),
        )
        agg = Aggregator(client, settings).aggregate(
            request,
            default_registry(),
            cancel=cancel,
            deadline=float(deadline) if deadline is not None else None,
        )
        return {"mode": mode, "result": agg.to_dict()}
