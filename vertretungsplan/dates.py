"""
Date resolution (German schedule text -> date / datetime).

Substitution schedules print dates in many shapes, e.g.:

    "Montag, 15.3."   "15.03.2024 Freitag"   "Stand: 14.03.2024 16:32"
    "Mittwoch, den 3.4.24"   "Freitag, 5. April 2024 um 7:45 Uhr"

Rules:
- The format templates below are tried in a fixed order; the first full match wins.
- Without an explicit year the year (current, -1, +1) closest to "now" is used.
- Nothing matches -> None (never an exception).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple


# ---------------------------------------------------------------------------
# German names
# ---------------------------------------------------------------------------

WEEKDAYS = ("Montag", "Dienstag", "Mittwoch", "Donnerstag", "Freitag", "Samstag", "Sonntag")
WEEKDAY_ABBREVIATIONS = ("Mo", "Di", "Mi", "Do", "Fr", "Sa", "So")
MONTHS = (
    "Januar",
    "Februar",
    "März",
    "April",
    "Mai",
    "Juni",
    "Juli",
    "August",
    "September",
    "Oktober",
    "November",
    "Dezember",
)

_MONTH_NUMBERS = {name.lower(): i + 1 for i, name in enumerate(MONTHS)}
_MONTH_NUMBERS["maerz"] = 3


# ---------------------------------------------------------------------------
# Format templates (order matters)
# ---------------------------------------------------------------------------

# Letters: EEEE weekday, d day, M month (MMMM = month name), yy/yyyy year,
# HH hour, mm minute, ss second. Text in single quotes is literal.
DATE_FORMATS: Tuple[str, ...] = (
    "d.M.yy EEEE",
    "d.M.yyyy EEEE",
    "d.M. EEEE",
    "d.M EEEE",
    "d.M. / EEEE",
    "d/M/yyyy EEEE",
    "EEEE, d.M.yy",
    "EEEE, d.M.yyyy",
    "EEEE, d.M.",
    "EEEE, d.M",
    "EEEE d.M.yy",
    "EEEE d.M.yyyy",
    "EEEE d.M.",
    "EEEE d.M",
    "EEEE', den 'd.M.yy",
    "EEEE', den 'd.M.yyyy",
    "EEEE', den 'd.M.",
    "EEEE', den 'd.M",
    "d.M.yy",
    "d.M.yyyy",
    "d.M.",
    "EEEE, d. MMMM yy",
    "EEEE, d. MMMM yyyy",
    "d. MMMM yyyy",
)

SEPARATORS: Tuple[str, ...] = (" ", ", ", " 'um' ")

TIME_FORMATS: Tuple[str, ...] = (
    "HH:mm",
    "HH:mm 'Uhr'",
    "(HH:mm 'Uhr')",
    "HH:mm:ss",
)

DATETIME_FORMATS: Tuple[str, ...] = tuple(
    f"{d}{sep}{t}" for d in DATE_FORMATS for t in TIME_FORMATS for sep in SEPARATORS
)

_DATE_NOISE = (
    re.compile(r", Woche [A-Z]"),
    re.compile(r", .*unterricht Gruppe .*"),
    re.compile(r", Unterrichts.* Gruppe .*"),
)

_PLACEHOLDER = re.compile(r"\{date\(([^)]+)\)\}")


# ---------------------------------------------------------------------------
# Template compilation
# ---------------------------------------------------------------------------


def _tokenize(pattern: str) -> List[Tuple[str, str]]:
    """
    Split a template into ("lit", text) and ("tok", letters) parts.
    """
    tokens: List[Tuple[str, str]] = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "'":
            end = pattern.index("'", i + 1)
            tokens.append(("lit", pattern[i + 1 : end]))
            i = end + 1
        elif ch in "EdMyHms":
            j = i
            while j < len(pattern) and pattern[j] == ch:
                j += 1
            tokens.append(("tok", pattern[i:j]))
            i = j
        else:
            tokens.append(("lit", ch))
            i += 1
    return tokens


def _weekday_regex() -> str:
    names = list(WEEKDAYS) + [rf"{abbr}\.?" for abbr in WEEKDAY_ABBREVIATIONS]
    return "(?:" + "|".join(names) + ")"


def _token_regex(tok: str) -> str:
    letter = tok[0]
    if letter == "E":
        return _weekday_regex()
    if letter == "d":
        return r"(?P<day>\d{1,2})"
    if letter == "M":
        if len(tok) >= 3:
            return "(?P<month_name>" + "|".join(sorted(_MONTH_NUMBERS, key=len, reverse=True)) + ")"
        return r"(?P<month>\d{1,2})"
    if letter == "y":
        if len(tok) == 2:
            return r"(?P<year2>\d{2})"
        return r"(?P<year>\d{4})"
    if letter == "H":
        return r"(?P<hour>\d{1,2})"
    if letter == "m":
        return r"(?P<minute>\d{2})"
    return r"(?P<second>\d{2})"


@dataclass(frozen=True)
class _Template:
    pattern: str
    regex: "re.Pattern[str]"
    has_year: bool


def _compile(pattern: str) -> _Template:
    tokens = _tokenize(pattern)
    parts = [re.escape(text) if kind == "lit" else _token_regex(text) for kind, text in tokens]
    return _Template(
        pattern=pattern,
        regex=re.compile("".join(parts), re.IGNORECASE),
        has_year=any(kind == "tok" and text[0] == "y" for kind, text in tokens),
    )


_DATE_TEMPLATES: Tuple[_Template, ...] = tuple(_compile(p) for p in DATE_FORMATS)
_DATETIME_TEMPLATES: Tuple[_Template, ...] = tuple(_compile(p) for p in DATETIME_FORMATS)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def _expand_two_digit_year(yy: int, current_year: int) -> int:
    """Put a two-digit year into the century closest to current_year."""
    year = current_year - current_year % 100 + yy
    if year > current_year + 49:
        year -= 100
    elif year < current_year - 50:
        year += 100
    return year


def _normalize_space(text: str) -> str:
    return " ".join(text.split())


def _clean(text: str, for_date: bool) -> str:
    text = text.replace("Stand:", "").replace("Import:", "")
    if for_date:
        for noise in _DATE_NOISE:
            text = noise.sub("", text)
    return _normalize_space(text)


def _build(match: "re.Match[str]", template: _Template, now: datetime, with_time: bool) -> Optional[datetime]:
    g = match.groupdict()
    day = int(g["day"])
    if g.get("month_name"):
        month = _MONTH_NUMBERS[g["month_name"].lower()]
    else:
        month = int(g["month"])

    if with_time:
        hour = int(g["hour"])
        minute = int(g["minute"])
        second = int(g["second"]) if g.get("second") else 0
    else:
        # date-only candidates are compared at the current time of day
        hour, minute, second = now.hour, now.minute, now.second

    def at(year: int) -> Optional[datetime]:
        try:
            return datetime(year, month, day, hour, minute, second)
        except ValueError:
            return None

    if template.has_year:
        if g.get("year"):
            return at(int(g["year"]))
        return at(_expand_two_digit_year(int(g["year2"]), now.year))

    # current year first: min() keeps the first of equally close candidates
    candidates = [c for c in (at(now.year), at(now.year - 1), at(now.year + 1)) if c is not None]
    if not candidates:
        return None
    return min(candidates, key=lambda c: abs(c - now))


def _resolve(text: str, templates: Tuple[_Template, ...], now: datetime, with_time: bool) -> Optional[datetime]:
    for template in templates:
        match = template.regex.fullmatch(text)
        if match is None:
            continue
        value = _build(match, template, now, with_time)
        if value is not None:
            return value
    return None


def resolve_date(text: Optional[str], now: Optional[datetime] = None) -> Optional[date]:
    """
    Resolve a (possibly year-less) German date string.

    Returns None if no template matches.
    """
    if text is None:
        return None
    now = now or datetime.now()
    value = _resolve(_clean(text, for_date=True), _DATE_TEMPLATES, now, with_time=False)
    return value.date() if value is not None else None


def resolve_datetime(text: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Resolve a German date + time string such as "14.03.2024 16:32" or
    "Donnerstag, 14.3. um 7:45 Uhr".

    Returns None if no template matches.
    """
    if text is None:
        return None
    now = now or datetime.now()
    return _resolve(_clean(text, for_date=False), _DATETIME_TEMPLATES, now, with_time=True)


# ---------------------------------------------------------------------------
# Formatting (URL placeholders)
# ---------------------------------------------------------------------------


def format_date(value: date, pattern: str) -> str:
    """
    Render a date with the same template letters used for parsing,
    e.g. format_date(date(2024, 3, 5), "yyyyMMdd") == "20240305".
    """
    out: List[str] = []
    for kind, text in _tokenize(pattern):
        if kind == "lit":
            out.append(text)
            continue
        letter, width = text[0], len(text)
        if letter == "E":
            names = WEEKDAYS if width >= 4 else WEEKDAY_ABBREVIATIONS
            out.append(names[value.weekday()])
        elif letter == "d":
            out.append(f"{value.day:0{width}d}")
        elif letter == "M":
            out.append(MONTHS[value.month - 1] if width >= 3 else f"{value.month:0{width}d}")
        elif letter == "y":
            out.append(f"{value.year % 100:02d}" if width == 2 else f"{value.year:04d}")
        else:
            raise ValueError(f"Unsupported letter in date pattern: {text!r}")
    return "".join(out)


def expand_date_placeholders(url: str, today: Optional[date] = None, days: int = 7) -> List[str]:
    """
    Expand "{date(pattern)}" in a URL into one URL per day, starting today.

    URLs without a placeholder are returned unchanged (as a one-item list).
    """
    match = _PLACEHOLDER.search(url)
    if not match:
        return [url]

    today = today or date.today()
    pattern = match.group(1)
    return [
        url[: match.start()] + format_date(today + timedelta(days=offset), pattern) + url[match.end() :]
        for offset in range(days)
    ]
