from __future__ import annotations


class JobDiscoveryError(Exception):
    """Base exception for job discovery failures."""


class NetworkError(JobDiscoveryError):
    """Fetch failed (DNS, connect, timeout, non-2xx). Recovered into result data."""


class ParseError(JobDiscoveryError):
    """Page or payload did not have the expected structure. Recovered into warnings."""


class PreconditionError(JobDiscoveryError, ValueError):
    """Caller passed invalid arguments (e.g. an empty company name). Raised immediately."""
