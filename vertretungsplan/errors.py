"""
Exception taxonomy.

Only whole-request failures are exceptions. A single date or label that
cannot be understood is not an error: the resolver/classifier returns None
and the caller falls back to defaults.
"""

from __future__ import annotations


class ScheduleError(Exception):
    """Base class for everything that aborts a schedule request."""


class CredentialInvalid(ScheduleError):
    """Login was rejected (or the server answered 401/403)."""


class NoScheduleFound(ScheduleError):
    """No fetched document contained a recognizable schedule."""


class MalformedSource(ScheduleError):
    """A mandatory value (e.g. the date of a row) could not be produced."""


class ConfigError(ScheduleError):
    """The source configuration is missing or structurally invalid."""


class TransportError(ScheduleError):
    """A document could not be fetched."""

    def __init__(self, url: str, message: str = "") -> None:
        super().__init__(f"{url}: {message}" if message else url)
        self.url = url


class NotFound(TransportError):
    pass


class HttpError(TransportError):
    def __init__(self, url: str, message: str = "", status: int | None = None) -> None:
        super().__init__(url, message)
        self.status = status


class FetchTimeout(TransportError):
    pass
