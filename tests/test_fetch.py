"""
Unit tests for the HTTP/local fetcher and the form login.

The network is never touched: requests sessions are replaced by mocks.
"""

import tempfile
import unittest
from pathlib import Path
from unittest import mock

import requests

from vertretungsplan.errors import ConfigError, CredentialInvalid, FetchTimeout, HttpError, NotFound
from vertretungsplan.fetch import FormLogin, HttpFetcher


def _response(status: int = 200, text: str = "", content_type: str = "text/html; charset=utf-8") -> mock.Mock:
    return mock.Mock(status_code=status, text=text, headers={"Content-Type": content_type}, apparent_encoding="utf-8")


class TestHttpFetcher(unittest.TestCase):
    def setUp(self) -> None:
        self.session = mock.Mock()
        self.fetcher = HttpFetcher(session=self.session, headers={"X-School": "123"})

    def test_returns_text_and_sends_headers(self) -> None:
        self.session.get.return_value = _response(text="<html></html>")
        self.assertEqual(self.fetcher.fetch("https://example.org/", headers={"Accept": "text/html"}), "<html></html>")

        _, kwargs = self.session.get.call_args
        self.assertEqual(kwargs["timeout"], 30)
        self.assertEqual(kwargs["headers"]["X-School"], "123")
        self.assertEqual(kwargs["headers"]["Accept"], "text/html")
        self.assertIn("User-Agent", kwargs["headers"])

    def test_explicit_encoding(self) -> None:
        resp = _response(text="x")
        self.session.get.return_value = resp
        self.fetcher.fetch("https://example.org/", encoding="ISO-8859-1")
        self.assertEqual(resp.encoding, "ISO-8859-1")

    def test_detected_encoding_without_charset(self) -> None:
        resp = _response(text="x", content_type="text/html")
        resp.apparent_encoding = "windows-1252"
        self.session.get.return_value = resp
        self.fetcher.fetch("https://example.org/")
        self.assertEqual(resp.encoding, "windows-1252")

    def test_status_mapping(self) -> None:
        cases = [(401, CredentialInvalid), (403, CredentialInvalid), (404, NotFound), (500, HttpError)]
        for status, error in cases:
            with self.subTest(status=status):
                self.session.get.return_value = _response(status=status)
                with self.assertRaises(error):
                    self.fetcher.fetch("https://example.org/")

    def test_http_error_carries_status_and_url(self) -> None:
        self.session.get.return_value = _response(status=502)
        with self.assertRaises(HttpError) as ctx:
            self.fetcher.fetch("https://example.org/x")
        self.assertEqual(ctx.exception.status, 502)
        self.assertEqual(ctx.exception.url, "https://example.org/x")

    def test_timeout(self) -> None:
        self.session.get.side_effect = requests.Timeout("slow")
        with self.assertRaises(FetchTimeout):
            self.fetcher.fetch("https://example.org/")

    def test_connection_error(self) -> None:
        self.session.get.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(HttpError):
            self.fetcher.fetch("https://example.org/")


class TestLocalFetch(unittest.TestCase):
    def test_reads_relative_to_root(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            (Path(d) / "plan").mkdir()
            (Path(d) / "plan" / "subst.htm").write_bytes("Vertretung für 5a".encode("iso-8859-1"))
            fetcher = HttpFetcher(local_root=d)
            self.assertEqual(fetcher.fetch("local://plan/subst.htm", encoding="iso-8859-1"), "Vertretung für 5a")

    def test_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(NotFound):
                HttpFetcher(local_root=d).fetch("local://missing.htm")

    def test_no_root(self) -> None:
        with self.assertRaises(NotFound):
            HttpFetcher().fetch("local://plan.htm")


class TestFormLogin(unittest.TestCase):
    def setUp(self) -> None:
        self.session = mock.Mock()
        self.fetcher = HttpFetcher(session=self.session)

    def test_successful_login(self) -> None:
        self.session.post.return_value = _response(text="Willkommen")
        FormLogin("https://example.org/login", {"user": "a", "pw": "b"}, failure_marker="falsch")(self.fetcher)
        _, kwargs = self.session.post.call_args
        self.assertEqual(kwargs["data"], {"user": "a", "pw": "b"})

    def test_failure_marker(self) -> None:
        self.session.post.return_value = _response(text="Passwort falsch")
        login = FormLogin("https://example.org/login", {}, failure_marker="falsch")
        with self.assertRaises(CredentialInvalid):
            login(self.fetcher)

    def test_forbidden(self) -> None:
        self.session.post.return_value = _response(status=403)
        with self.assertRaises(CredentialInvalid):
            FormLogin("https://example.org/login", {})(self.fetcher)

    def test_needs_http_fetcher(self) -> None:
        with self.assertRaises(ConfigError):
            FormLogin("https://example.org/login", {})(object())


if __name__ == "__main__":
    unittest.main()
