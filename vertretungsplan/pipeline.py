"""
Reconciliation pipeline: source descriptors -> one Schedule.

Per request:
1) authenticate once (if an authenticator is configured)
2) for every descriptor, in order, and every URL it expands to:
   fetch -> dialect.normalize -> fold rows into the ScheduleModel
3) follow redirects (refresh / frames) of descriptors that ask for it
4) apply the website rule and return the schedule

Failure policy:
- CredentialInvalid always propagates
- transport failures are fatal for the first URL of the first descriptor and
  in strict mode, otherwise the URL is skipped with a warning
- a document without sections and without redirects is fatal only in strict
  mode; NoScheduleFound is raised if no document had any section
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from vertretungsplan.colors import ColorLookup, ColorProvider, default_color_for
from vertretungsplan.dates import expand_date_placeholders, resolve_date, resolve_datetime
from vertretungsplan.dialects import Dialect, NormalizedDocument, Row, Section, get_dialect, merged_hints
from vertretungsplan.errors import MalformedSource, NoScheduleFound, TransportError
from vertretungsplan.fetch import Authenticator, Fetcher, FormLogin, HttpFetcher
from vertretungsplan.fields import SemanticField, classify_row, recognize_type
from vertretungsplan.model import AdditionalInfo, Day, Schedule, ScheduleModel, Substitution
from vertretungsplan.text import has_data

if TYPE_CHECKING:
    from vertretungsplan.config import SourceConfig


logger = logging.getLogger(__name__)

_CLASS_SEPARATORS = re.compile(r"\s*[,;]\s*")

# semantic field -> Substitution attribute (fields handled separately are missing)
_ATTRIBUTES: Mapping[SemanticField, str] = {
    SemanticField.LESSON: "lesson",
    SemanticField.SUBJECT: "subject",
    SemanticField.PREVIOUS_SUBJECT: "previous_subject",
    SemanticField.ROOM: "room",
    SemanticField.PREVIOUS_ROOM: "previous_room",
    SemanticField.TEACHER: "teacher",
    SemanticField.PREVIOUS_TEACHER: "previous_teacher",
    SemanticField.TYPE: "type",
}


@dataclass
class Descriptor:
    """
    One source URL plus how to read it.

    url may contain "{date(pattern)}", which expands to one URL per day for
    a week starting today.
    """

    url: str
    encoding: Optional[str] = None
    follow: bool = False
    dialect: Optional[str] = None
    hints: Dict[str, Any] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class _Run:
    model: ScheduleModel
    now: datetime
    recognized: bool = False
    website: Optional[str] = None


class ReconciliationPipeline:
    def __init__(
        self,
        fetcher: Fetcher,
        dialect: str = "html-table",
        hints: Optional[Mapping[str, Any]] = None,
        colors: Optional[ColorLookup] = None,
        authenticator: Optional[Authenticator] = None,
        strict: bool = False,
        classes: Iterable[str] = (),
        website: Optional[str] = None,
        max_hops: int = 30,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.fetcher = fetcher
        self.dialect = dialect
        self.hints = dict(hints or {})
        self.colors = colors or default_color_for
        self.authenticator = authenticator
        self.strict = strict
        self.classes = list(classes)
        self.website = website
        self.max_hops = max_hops
        self.clock = clock

    def build_schedule(self, descriptors: Sequence[Descriptor]) -> Schedule:
        """
        Fetch, normalize and merge all descriptors into a new Schedule.
        """
        if self.authenticator is not None:
            self.authenticator(self.fetcher)

        run = _Run(model=ScheduleModel(self.colors), now=self.clock())
        for name in self.classes:
            run.model.add_class(name)

        for index, descriptor in enumerate(descriptors):
            dialect = get_dialect(descriptor.dialect or self.dialect, merged_hints(self.hints, descriptor.hints))
            urls = expand_date_placeholders(descriptor.url, today=run.now.date())
            for position, url in enumerate(urls):
                critical = index == 0 and position == 0
                self._load(run, descriptor, dialect, url, visited=set(), depth=0, critical=critical)

        if not run.recognized:
            raise NoScheduleFound("None of the fetched documents contains a substitution schedule")

        if self.website:
            run.model.set_website(self.website)
        elif run.website:
            run.model.set_website(run.website)
        elif len(descriptors) == 1:
            run.model.set_website(descriptors[0].url)

        schedule = run.model.schedule
        logger.info(
            "Built schedule: %d day(s), %d substitution(s)",
            len(schedule.days),
            sum(len(day.substitutions) for day in schedule.days),
        )
        return schedule

    # -----------------------------------------------------------------------
    # Loading
    # -----------------------------------------------------------------------

    def _load(
        self,
        run: _Run,
        descriptor: Descriptor,
        dialect: Dialect,
        url: str,
        visited: Set[str],
        depth: int,
        critical: bool,
    ) -> None:
        if url in visited:
            logger.debug("Already visited %s, not following again", url)
            return
        visited.add(url)

        try:
            raw = self.fetcher.fetch(url, encoding=descriptor.encoding, headers=descriptor.headers or None)
        except TransportError as e:
            if critical or self.strict:
                raise
            logger.warning("Skipping %s: %s", url, e)
            return

        doc = dialect.normalize(raw, url)
        if doc.recognized:
            run.recognized = True
            self._fold(run, doc, url)
        elif not doc.redirects:
            if self.strict:
                raise NoScheduleFound(f"{url}: no substitution schedule in document")
            logger.warning("No substitution schedule in %s", url)

        if not descriptor.follow or not doc.redirects:
            return
        if depth >= self.max_hops:
            logger.warning("Giving up on redirects after %d hops at %s", depth, url)
            return
        for target in doc.redirects:
            self._load(run, descriptor, dialect, target, visited, depth + 1, critical=False)

    # -----------------------------------------------------------------------
    # Folding
    # -----------------------------------------------------------------------

    def _fold(self, run: _Run, doc: NormalizedDocument, url: str) -> None:
        model = run.model
        doc_change = resolve_datetime(doc.last_change_text, run.now)
        model.update_last_change(doc_change)
        if doc.website and not run.website:
            run.website = doc.website
        for info in doc.infos:
            model.add_additional_info(info)

        for section in doc.sections:
            self._fold_section(run, section, doc_change, url)

    def _fold_section(self, run: _Run, section: Section, doc_change: Optional[datetime], url: str) -> None:
        model = run.model
        change = resolve_datetime(section.last_change_text, run.now) or doc_change

        section_day: Optional[Day] = None
        if has_data(section.date_text) and resolve_date(section.date_text, run.now) is not None:
            section_day = model.add_day(_day(section.date_text or "", change, run.now))

        def fallback_day() -> Optional[Day]:
            # unresolvable headings only become a day once something lands on it
            nonlocal section_day
            if section_day is None and has_data(section.date_text):
                section_day = model.add_day(_day(section.date_text or "", change, run.now))
            return section_day

        for text in section.messages:
            day = fallback_day()
            if day is not None:
                model.add_message(day, text)
            else:
                model.add_additional_info(AdditionalInfo(title="Nachrichten", text=text))

        for row in section.rows:
            self._fold_row(run, row, fallback_day, change, url)

    def _fold_row(
        self,
        run: _Run,
        row: Row,
        section_day: Callable[[], Optional[Day]],
        change: Optional[datetime],
        url: str,
    ) -> None:
        fields = classify_row([label for label, _ in row])

        subst = Substitution()
        day_text: Optional[str] = None
        as_of: Optional[str] = None
        descriptions: List[str] = []
        found = False

        for (label, value), semantic in zip(row, fields):
            if semantic is None or not has_data(value):
                continue
            value = value.strip()
            # a date or timestamp alone does not make a substitution
            found = found or semantic not in (SemanticField.DAY, SemanticField.AS_OF)
            if semantic is SemanticField.CLASS:
                subst.add_classes(_CLASS_SEPARATORS.split(value))
            elif semantic is SemanticField.DAY:
                day_text = day_text or value
            elif semantic is SemanticField.AS_OF:
                as_of = as_of or value
            elif semantic is SemanticField.DESCRIPTION:
                descriptions.append(value)
            elif getattr(subst, _ATTRIBUTES[semantic]) is None:
                setattr(subst, _ATTRIBUTES[semantic], value)

        if not found:
            return

        if descriptions:
            subst.desc = " ".join(descriptions)
            if subst.type is None:
                subst.type = recognize_type(subst.desc)

        row_change = resolve_datetime(as_of, run.now) or change
        if day_text is not None:
            day = run.model.add_day(_day(day_text, row_change, run.now))
        else:
            fallback = section_day()
            if fallback is None:
                raise MalformedSource(f"{url}: row without a date ({row!r})")
            day = fallback
            if as_of is not None:
                run.model.add_day(Day(date=day.date, date_text=day.date_text, last_change=row_change))

        run.model.add_substitution(day, subst)


def _day(text: str, last_change: Optional[datetime], now: datetime) -> Day:
    resolved = resolve_date(text, now)
    if resolved is None:
        logger.debug("Unresolvable date %r, keeping it as text", text)
    return Day(date=resolved, date_text=text, last_change=last_change)


# ---------------------------------------------------------------------------
# Convenience
# ---------------------------------------------------------------------------


def build_schedule(
    config: "SourceConfig",
    fetcher: Optional[Fetcher] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> Schedule:
    """
    Build the schedule of one configured school.
    """
    if fetcher is None:
        fetcher = HttpFetcher(headers=config.headers)

    authenticator = None
    if config.login:
        authenticator = FormLogin(
            config.login["url"],
            config.login.get("data", {}),
            failure_marker=config.login.get("failure_marker"),
        )

    pipeline = ReconciliationPipeline(
        fetcher,
        dialect=config.dialect,
        hints=config.hints,
        colors=ColorProvider(config.colors),
        authenticator=authenticator,
        strict=config.strict,
        classes=config.classes,
        website=config.website,
        clock=clock,
    )
    return pipeline.build_schedule(config.urls)
