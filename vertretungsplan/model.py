"""
Central data model of a substitution schedule.

Schedule -> Day -> Substitution, plus AdditionalInfo (news/ticker texts).

All dialects produce exactly these objects so that:
- downstream code never sees vendor-specific field names
- merging several pages into one schedule follows one set of rules

ScheduleModel is the only thing that mutates a Schedule while it is built:
- days are unique by resolved date (a second day for the same date is appended
  to the first one: existing entries first, then the new ones)
- every committed substitution has a type and a color
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime
from typing import Any, Collection, Iterable, List, Optional

from vertretungsplan.colors import ColorLookup, default_color_for
from vertretungsplan.dates import format_date
from vertretungsplan.text import has_data, substitution_text


DEFAULT_TYPE = "Vertretung"


def _append_unique(target: List[str], values: Iterable[str]) -> None:
    for value in values:
        value = value.strip()
        if value and value not in target:
            target.append(value)


@dataclass
class Substitution:
    """
    One change to a regular lesson.
    """

    lesson: Optional[str] = None
    classes: List[str] = field(default_factory=list)
    subject: Optional[str] = None
    previous_subject: Optional[str] = None
    teacher: Optional[str] = None
    previous_teacher: Optional[str] = None
    room: Optional[str] = None
    previous_room: Optional[str] = None
    type: Optional[str] = None
    color: Optional[str] = None
    desc: Optional[str] = None

    @property
    def text(self) -> str:
        return substitution_text(self)

    def add_classes(self, names: Iterable[str]) -> None:
        _append_unique(self.classes, names)

    def teachers(self) -> List[str]:
        """All teacher names mentioned (new and previous), split on commas."""
        out: List[str] = []
        for value in (self.teacher, self.previous_teacher):
            if has_data(value):
                _append_unique(out, (value or "").split(","))
        return out


@dataclass
class AdditionalInfo:
    title: str
    text: str
    # False for raw ticker/announcement text without substantive information
    has_information: bool = True


def subject_allowed(subst: Substitution, excluded_subjects: Collection[str]) -> bool:
    # the replaced lesson's subject decides whether it is excluded
    subject = subst.previous_subject if subst.previous_subject is not None else subst.subject
    return subject is None or subject not in excluded_subjects


@dataclass
class Day:
    """
    All substitutions and messages for one date.

    date is None when the source text could not be resolved; such days are
    told apart by their date_text.
    """

    date: Optional[date] = None
    date_text: Optional[str] = None
    last_change: Optional[datetime] = None
    substitutions: List[Substitution] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)

    def same_date(self, other: "Day") -> bool:
        if self.date is not None or other.date is not None:
            return self.date == other.date
        return self.date_text == other.date_text

    @property
    def label(self) -> str:
        if self.date is not None:
            return format_date(self.date, "EEEE, dd.MM.yyyy")
        return self.date_text or "?"


@dataclass
class Schedule:
    days: List[Day] = field(default_factory=list)
    classes: List[str] = field(default_factory=list)
    teachers: List[str] = field(default_factory=list)
    last_change: Optional[datetime] = None
    website: Optional[str] = None
    additional_infos: List[AdditionalInfo] = field(default_factory=list)

    def get_day(self, value: date) -> Optional[Day]:
        for day in self.days:
            if day.date == value:
                return day
        return None

    # -----------------------------------------------------------------------
    # Filtering (returns new schedules, never mutates this one)
    # -----------------------------------------------------------------------

    def filtered_by_class(self, name: str, excluded_subjects: Collection[str] = ()) -> "Schedule":
        """
        Only the substitutions of one class, minus excluded subjects.
        """
        return self._filtered(
            lambda s: name in s.classes,
            excluded_subjects,
            classes=[name],
            teachers=list(self.teachers),
        )

    def filtered_by_teacher(self, name: str, excluded_subjects: Collection[str] = ()) -> "Schedule":
        return self._filtered(
            lambda s: name in s.teachers(),
            excluded_subjects,
            classes=list(self.classes),
            teachers=[name],
        )

    def _filtered(self, keep, excluded_subjects, classes: List[str], teachers: List[str]) -> "Schedule":
        days = [
            replace(
                day,
                substitutions=[replace(s, classes=list(s.classes)) for s in day.substitutions
                               if keep(s) and subject_allowed(s, excluded_subjects)],
                messages=list(day.messages),
            )
            for day in self.days
        ]
        return replace(
            self,
            days=days,
            classes=classes,
            teachers=teachers,
            additional_infos=list(self.additional_infos),
        )

    # -----------------------------------------------------------------------
    # Serialization
    # -----------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """
        JSON-friendly dict (dates as ISO strings, substitution text included).
        """
        data = _jsonable(asdict(self))
        for day_data, day in zip(data["days"], self.days):
            for subst_data, subst in zip(day_data["substitutions"], day.substitutions):
                subst_data["text"] = subst.text
        return data


def _jsonable(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    return value


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------


class ScheduleModel:
    """
    Accumulates one Schedule. One instance per request.
    """

    def __init__(self, colors: ColorLookup = default_color_for) -> None:
        self.schedule = Schedule()
        self._colors = colors

    def _find(self, day: Day) -> Optional[Day]:
        for existing in self.schedule.days:
            if existing is day or existing.same_date(day):
                return existing
        return None

    def _commit(self, subst: Substitution) -> Substitution:
        if not has_data(subst.type):
            subst.type = DEFAULT_TYPE
            subst.color = self._colors(DEFAULT_TYPE)
        elif subst.color is None:
            subst.color = self._colors(subst.type)

        _append_unique(self.schedule.classes, subst.classes)
        _append_unique(self.schedule.teachers, subst.teachers())
        return subst

    def add_day(self, day: Day) -> Day:
        """
        Add a day, or append its content to the day with the same date.

        Returns the Day object that is part of the schedule.
        """
        self.update_last_change(day.last_change)

        existing = self._find(day)
        if existing is None:
            for subst in day.substitutions:
                self._commit(subst)
            self.schedule.days.append(day)
            return day

        if existing is not day:
            existing.substitutions.extend(self._commit(s) for s in day.substitutions)
            existing.messages.extend(day.messages)
            if day.last_change is not None and (
                existing.last_change is None or day.last_change > existing.last_change
            ):
                existing.last_change = day.last_change
        return existing

    def add_substitution(self, day: Day, subst: Substitution) -> None:
        target = self._find(day) or self.add_day(day)
        target.substitutions.append(self._commit(subst))

    def add_message(self, day: Day, text: str) -> None:
        target = self._find(day) or self.add_day(day)
        target.messages.append(text)

    def add_additional_info(self, info: AdditionalInfo) -> None:
        self.schedule.additional_infos.append(info)

    def add_class(self, name: str) -> None:
        _append_unique(self.schedule.classes, [name])

    def add_teacher(self, name: str) -> None:
        _append_unique(self.schedule.teachers, [name])

    def update_last_change(self, value: Optional[datetime]) -> None:
        """Keep the newest last-change timestamp."""
        if value is not None and (self.schedule.last_change is None or value > self.schedule.last_change):
            self.schedule.last_change = value

    def set_website(self, url: Optional[str]) -> None:
        if url and not self.schedule.website:
            self.schedule.website = url
