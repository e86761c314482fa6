"""
Dialects (raw document -> labeled rows).

A dialect knows the syntax of one publishing convention and nothing about the
canonical model. It turns one raw document into a NormalizedDocument:

- sections: one per published day, each with rows of (label, value) pairs
- messages, additional infos, a last-change string
- redirects (refresh directives / frames) that the pipeline may follow

Supported dialects are listed explicitly in DIALECTS.
"""

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Tuple
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, Tag

from vertretungsplan.dates import resolve_date
from vertretungsplan.errors import ConfigError, MalformedSource
from vertretungsplan.model import AdditionalInfo


Row = List[Tuple[str, str]]


@dataclass
class Section:
    date_text: Optional[str] = None
    last_change_text: Optional[str] = None
    rows: List[Row] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)


@dataclass
class NormalizedDocument:
    sections: List[Section] = field(default_factory=list)
    last_change_text: Optional[str] = None
    website: Optional[str] = None
    redirects: List[str] = field(default_factory=list)
    infos: List[AdditionalInfo] = field(default_factory=list)

    @property
    def recognized(self) -> bool:
        return bool(self.sections)


class Dialect(Protocol):
    def normalize(self, raw: str, url: str) -> NormalizedDocument:
        ...


# ---------------------------------------------------------------------------
# HTML tables
# ---------------------------------------------------------------------------

_REFRESH_URL = re.compile(r"url\s*=\s*['\"]?([^'\"\s;]+)", re.IGNORECASE)
_LAST_CHANGE = r"\d{1,2}\.\d{1,2}\.\d{4},? \d{1,2}:\d{2}"


def _text(el: Tag) -> str:
    return el.get_text(" ", strip=True)


def _header_cells(table: Tag) -> Tuple[List[str], List[Tag]]:
    """
    Return (header labels, data rows) of a table.

    The header is taken from <thead>, or from a first row made of <th> cells.
    No header -> ([], all rows).
    """
    rows = table.find_all("tr")
    thead = table.find("thead")
    if thead:
        labels = [_text(c) for c in thead.find_all(["th", "td"])]
        body = [r for r in rows if r.find_parent("thead") is None]
        return labels, body
    if rows:
        ths = rows[0].find_all("th")
        if ths:
            return [_text(th) for th in ths], rows[1:]
    return [], rows


def resolve_url(base: str, target: str) -> str:
    """
    Resolve a link against the document URL. Works for local:// sources,
    which urljoin leaves alone.
    """
    if "://" in target:
        return target
    if urlsplit(base).scheme in ("http", "https", "file"):
        return urljoin(base, target)
    return base[: base.rfind("/") + 1] + target.lstrip("/")


def find_redirects(soup: BeautifulSoup, url: str) -> List[str]:
    """
    Absolute URLs of <meta http-equiv="refresh"> targets and frame sources.
    """
    out: List[str] = []
    for meta in soup.find_all("meta", attrs={"http-equiv": re.compile(r"^refresh$", re.IGNORECASE)}):
        match = _REFRESH_URL.search(meta.get("content", ""))
        if match:
            out.append(resolve_url(url, match.group(1)))
    for frame in soup.find_all(["frame", "iframe"], src=True):
        out.append(resolve_url(url, frame["src"]))
    return out


class HtmlTableDialect:
    """
    Generic HTML layout: a title element with the date (".mon_title", h1-h3 or
    a table caption) followed by a table whose first row holds the column labels.

    Hints:
        title_selector        CSS selector of date titles
        table_selector        CSS selector of substitution tables
        message_selector      CSS selector of message elements
        last_change_selector  CSS selector of the element holding "Stand: ..."
    """

    def __init__(self, hints: Optional[Mapping[str, Any]] = None) -> None:
        hints = hints or {}
        self.title_selector = hints.get("title_selector", ".mon_title, h1, h2, h3")
        self.table_selector = hints.get("table_selector", "table")
        self.message_selector = hints.get("message_selector", ".message")
        self.last_change_selector = hints.get("last_change_selector", "table.mon_head, .stand")

    def normalize(self, raw: str, url: str) -> NormalizedDocument:
        soup = BeautifulSoup(raw, "html.parser")
        doc = NormalizedDocument(redirects=find_redirects(soup, url))

        titles = {id(el) for el in soup.select(self.title_selector)}
        tables = {id(el) for el in soup.select(self.table_selector)}
        messages = {id(el) for el in soup.select(self.message_selector)}
        stamps = {id(el) for el in soup.select(self.last_change_selector)}

        current: Optional[Section] = None
        for el in soup.find_all(True):
            if id(el) in titles:
                current = Section(date_text=_text(el))
                if resolve_date(current.date_text) is not None:
                    doc.sections.append(current)
            elif id(el) in messages:
                text = _text(el)
                if text:
                    current = self._ensure(doc, current)
                    current.messages.append(text)
            elif id(el) in tables:
                labels, body = _header_cells(el)
                if not labels:
                    if id(el) not in stamps and el.find("table") is None:
                        # header-less tables hold announcements, one per row
                        for text in filter(None, (_text(tr) for tr in body)):
                            current = self._ensure(doc, current)
                            current.messages.append(text)
                    continue
                caption = el.find("caption")
                if caption is not None:
                    current = Section(date_text=_text(caption))
                    doc.sections.append(current)
                current = self._ensure(doc, current)
                current.rows.extend(self._rows(labels, body))

        doc.last_change_text = self._last_change(soup)
        return doc

    @staticmethod
    def _ensure(doc: NormalizedDocument, section: Optional[Section]) -> Section:
        # titles that are not dates only become sections once they get content
        if section is None:
            section = Section()
        if not any(s is section for s in doc.sections):
            doc.sections.append(section)
        return section

    @staticmethod
    def _rows(labels: List[str], body: List[Tag]) -> List[Row]:
        out: List[Row] = []
        for tr in body:
            cells = [_text(c) for c in tr.find_all(["td", "th"])]
            if not any(cells):
                continue
            cells = cells[: len(labels)] + [""] * (len(labels) - len(cells))
            out.append(list(zip(labels, cells)))
        return out

    def _last_change(self, soup: BeautifulSoup) -> Optional[str]:
        for el in soup.select(self.last_change_selector):
            match = re.search(_LAST_CHANGE, _text(el))
            if match:
                return match.group()
        match = re.search(r"Stand:\s*(" + _LAST_CHANGE + ")", soup.get_text(" "))
        return match.group(1) if match else None


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------


class CsvDialect:
    """
    One line per substitution; the date is a column of its own.

    Hints: separator (";"), quote ('"'), columns (labels; default: first line),
    skip_lines (0).
    """

    def __init__(self, hints: Optional[Mapping[str, Any]] = None) -> None:
        hints = hints or {}
        self.separator = hints.get("separator", ";")
        self.quote = hints.get("quote", '"')
        self.columns: Optional[List[str]] = hints.get("columns")
        self.skip_lines = int(hints.get("skip_lines", 0))

    def normalize(self, raw: str, url: str) -> NormalizedDocument:
        reader = csv.reader(io.StringIO(raw), delimiter=self.separator, quotechar=self.quote)
        lines = list(reader)[self.skip_lines :]

        if self.columns:
            labels = list(self.columns)
        elif lines:
            labels, lines = [c.strip() for c in lines[0]], lines[1:]
        else:
            return NormalizedDocument()

        section = Section()
        for number, line in enumerate(lines, start=1):
            if not any(cell.strip() for cell in line):
                continue
            extra = [cell for cell in line[len(labels) :] if cell.strip()]
            if extra:
                raise MalformedSource(f"{url}: line {number} has more values than columns")
            cells = line + [""] * (len(labels) - len(line))
            section.rows.append([(label, cell.strip()) for label, cell in zip(labels, cells)])
        return NormalizedDocument(sections=[section])


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

DialectFactory = Callable[[Optional[Mapping[str, Any]]], Dialect]

DIALECTS: Mapping[str, DialectFactory] = MappingProxyType(
    {
        "html-table": HtmlTableDialect,
        "csv": CsvDialect,
    }
)


def get_dialect(name: str, hints: Optional[Mapping[str, Any]] = None) -> Dialect:
    factory = DIALECTS.get(name)
    if factory is None:
        known = ", ".join(sorted(DIALECTS))
        raise ConfigError(f"Unknown dialect {name!r} (known: {known})")
    return factory(hints)


def merged_hints(*layers: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for layer in layers:
        if layer:
            out.update(layer)
    return out
