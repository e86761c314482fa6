"""
Fetching raw documents (HTTP or local files) and logging in.

Error mapping:
- 401 / 403            -> CredentialInvalid
- 404, missing file    -> NotFound
- other HTTP errors    -> HttpError
- timeouts             -> FetchTimeout
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional, Protocol

import requests

from vertretungsplan.errors import ConfigError, CredentialInvalid, FetchTimeout, HttpError, NotFound


logger = logging.getLogger(__name__)

LOCAL_SCHEME = "local://"

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class Fetcher(Protocol):
    def fetch(self, url: str, encoding: Optional[str] = None, headers: Optional[Mapping[str, str]] = None) -> str:
        ...


Authenticator = Callable[[Fetcher], None]


def _check_status(url: str, resp: requests.Response) -> None:
    code = resp.status_code
    if code in (401, 403):
        raise CredentialInvalid(f"{url}: HTTP {code}")
    if code == 404:
        raise NotFound(url, "HTTP 404")
    if code >= 400:
        raise HttpError(url, f"HTTP {code}", status=code)


class HttpFetcher:
    """
    requests-based fetcher. One session per instance, so cookies set by a
    login carry over to later fetches.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
        local_root: Optional[str | Path] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.session = session or requests.Session()
        self.timeout = timeout
        self.local_root = Path(local_root) if local_root is not None else None
        self.headers: Dict[str, str] = {"User-Agent": USER_AGENT}
        self.headers.update(headers or {})

    def fetch(self, url: str, encoding: Optional[str] = None, headers: Optional[Mapping[str, str]] = None) -> str:
        if url.startswith(LOCAL_SCHEME):
            return self._read_local(url[len(LOCAL_SCHEME) :], encoding)

        logger.debug("GET %s", url)
        try:
            resp = self.session.get(url, headers={**self.headers, **(headers or {})}, timeout=self.timeout)
        except requests.Timeout as e:
            raise FetchTimeout(url, str(e)) from e
        except requests.RequestException as e:
            raise HttpError(url, str(e)) from e

        _check_status(url, resp)

        if encoding:
            resp.encoding = encoding
        elif "charset" not in resp.headers.get("Content-Type", "").lower():
            resp.encoding = resp.apparent_encoding
        return resp.text

    def post(self, url: str, data: Mapping[str, str]) -> requests.Response:
        logger.debug("POST %s", url)
        try:
            resp = self.session.post(url, data=dict(data), headers=self.headers, timeout=self.timeout)
        except requests.Timeout as e:
            raise FetchTimeout(url, str(e)) from e
        except requests.RequestException as e:
            raise HttpError(url, str(e)) from e
        _check_status(url, resp)
        return resp

    def _read_local(self, relative: str, encoding: Optional[str]) -> str:
        if self.local_root is None:
            raise NotFound(LOCAL_SCHEME + relative, "no local source directory configured")
        path = self.local_root / relative
        logger.debug("READ %s", path)
        try:
            return path.read_bytes().decode(encoding or "utf-8", errors="replace")
        except FileNotFoundError as e:
            raise NotFound(LOCAL_SCHEME + relative, "file not found") from e
        except OSError as e:
            raise HttpError(LOCAL_SCHEME + relative, str(e)) from e


class FormLogin:
    """
    Authenticator: posts a login form through the fetcher's session.

    The login counts as rejected on HTTP 401/403 or when failure_marker
    appears in the response.
    """

    def __init__(self, url: str, data: Mapping[str, str], failure_marker: Optional[str] = None) -> None:
        self.url = url
        self.data = dict(data)
        self.failure_marker = failure_marker

    def __call__(self, fetcher: Fetcher) -> None:
        if not isinstance(fetcher, HttpFetcher):
            raise ConfigError("Form login needs an HttpFetcher")
        resp = fetcher.post(self.url, self.data)
        if self.failure_marker and self.failure_marker in resp.text:
            raise CredentialInvalid(f"{self.url}: login rejected")
        logger.info("Logged in at %s", self.url)
