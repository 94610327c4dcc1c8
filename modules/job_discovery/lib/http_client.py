# job_discovery/http_client.py
from __future__ import annotations

import json
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .config import DEFAULT_USER_AGENT, Settings

LOG = logging.getLogger(__name__)

CANCELLED = "cancelled"


@dataclass(frozen=True)
class FetchResult:
    """
    Outcome of one HTTP exchange. Expected failures (DNS, timeout, non-2xx,
    undecodable JSON) come back as ok=False with an error string.
    """

    ok: bool
    url: str
    status: int | None = None
    text: str = ""
    data: Any = None
    error: str | None = None

    @classmethod
    def failure(cls, url: str, error: str, status: int | None = None) -> FetchResult:
        return cls(ok=False, url=url, status=status, error=error)


class HttpClient:
    """
    Shared HTTP client: one requests.Session with a pooled adapter that does a
    single retry with backoff on transient failures. Safe to share across
    the aggregator's worker threads.
    """

    def __init__(
        self,
        timeout: float = 15.0,
        user_agent: str = DEFAULT_USER_AGENT,
        *,
        retries: int = 1,
        backoff_factor: float = 0.5,
        pool_size: int = 10,
        cancel: threading.Event | None = None,
    ):
        self.timeout = float(timeout)
        self.cancel = cancel
        self.session = requests.Session()
        self.session.headers.update({
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml,application/json;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        })

        retry = Retry(
            total=retries,
            connect=retries,
            read=retries,
            backoff_factor=backoff_factor,
            status_forcelist=(429, 500, 502, 503, 504),
            allowed_methods=frozenset(["GET", "POST", "HEAD"]),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry, pool_connections=pool_size, pool_maxsize=pool_size * 2)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    @classmethod
    def from_settings(cls, settings: Settings, *, cancel: threading.Event | None = None) -> HttpClient:
        return cls(
            timeout=settings.timeout,
            user_agent=settings.user_agent,
            retries=settings.retries,
            backoff_factor=settings.backoff_factor,
            pool_size=max(10, settings.max_parallel),
            cancel=cancel,
        )

    # ---- core ----
    def _request(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        json_body: Any = None,
        timeout: float | None = None,
    ) -> tuple[requests.Response | None, FetchResult | None]:
        if self.cancel is not None and self.cancel.is_set():
            return None, FetchResult.failure(url, CANCELLED)
        try:
            resp = self.session.request(
                method,
                url,
                params=params,
                headers=headers,
                json=json_body,
                timeout=timeout or self.timeout,
            )
        except (
            requests.exceptions.InvalidURL,
            requests.exceptions.MissingSchema,
            requests.exceptions.InvalidSchema,
        ) as e:
            return None, FetchResult.failure(url, f"invalid URL: {e}")
        except requests.exceptions.Timeout:
            return None, FetchResult.failure(url, f"timed out after {timeout or self.timeout:g}s")
        except requests.exceptions.RequestException as e:
            LOG.debug("%s %s failed", method, url, exc_info=True)
            return None, FetchResult.failure(url, f"request failed: {e.__class__.__name__}: {e}")

        if not resp.ok:
            return resp, FetchResult.failure(url, f"HTTP {resp.status_code}", status=resp.status_code)
        return resp, None

    # ---- convenience ----
    def fetch_text(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> FetchResult:
        """GET and return decoded text with gentle encoding hints."""
        resp, failed = self._request("GET", url, params=params, headers=headers, timeout=timeout)
        if failed is not None:
            return failed
        if not resp.encoding and resp.apparent_encoding:
            resp.encoding = resp.apparent_encoding
        return FetchResult(ok=True, url=resp.url or url, status=resp.status_code, text=resp.text)

    def fetch_json(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> FetchResult:
        """GET and parse JSON; a body that isn't JSON is reported, not raised."""
        merged = {"Accept": "application/json, text/plain, */*", **dict(headers or {})}
        resp, failed = self._request("GET", url, params=params, headers=merged, timeout=timeout)
        if failed is not None:
            return failed
        return _decode_json(resp, url)

    def post_json(
        self,
        url: str,
        payload: Any,
        *,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> FetchResult:
        merged = {
            "Accept": "application/json, text/plain, */*",
            "Content-Type": "application/json;charset=UTF-8",
            **dict(headers or {}),
        }
        resp, failed = self._request("POST", url, headers=merged, json_body=payload, timeout=timeout)
        if failed is not None:
            return failed
        return _decode_json(resp, url)

    def close(self) -> None:
        try:
            self.session.close()
        except Exception:
            LOG.debug("HttpClient.close() swallow", exc_info=True)

    def __enter__(self) -> HttpClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def _decode_json(resp: requests.Response, url: str) -> FetchResult:
    try:
        data = resp.json()
    except ValueError:
        # Last-ditch try in case server sent text/plain but body is JSON.
        try:
            data = json.loads(resp.text)
        except ValueError:
            preview = resp.text[:200].replace("\n", " ")
            return FetchResult.failure(url, f"JSON decode failed; body starts: {preview!r}", status=resp.status_code)
    return FetchResult(ok=True, url=resp.url or url, status=resp.status_code, text=resp.text, data=data)
