"""
Differences between two builds of the same schedule.

diff_schedules(old, new) answers "what changed since the last fetch?":
- days that appeared or disappeared (matched by Day.same_date)
- per remaining day: added / removed / edited substitutions and messages
- additional infos that appeared or disappeared

Matching a new substitution against the old day, in this order:
1) an equal one (same fields, same set of classes) -> unchanged
2) one with the same fields but other classes -> the gained classes count as
   added, the lost classes as removed
3) the most similar one with the same classes -> edited, as long as at most
   MAX_COMPLEXITY fields differ
4) otherwise the substitution is new
Old substitutions that matched nothing were removed.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from datetime import date
from typing import Any, Callable, Collection, List, Optional, Set

from vertretungsplan.model import AdditionalInfo, Day, Schedule, Substitution, _jsonable, subject_allowed


MAX_COMPLEXITY = 3

# fields compared between two substitutions (classes and color are not)
COMPARED_FIELDS = (
    "lesson",
    "type",
    "subject",
    "previous_subject",
    "teacher",
    "previous_teacher",
    "room",
    "previous_room",
    "desc",
)


def _same_fields(a: Substitution, b: Substitution) -> bool:
    return all(getattr(a, name) == getattr(b, name) for name in COMPARED_FIELDS)


def _similarity(a: Substitution, b: Substitution) -> int:
    return sum(getattr(a, name) == getattr(b, name) for name in COMPARED_FIELDS)


@dataclass
class SubstitutionDiff:
    old: Substitution
    new: Substitution

    @property
    def changed_fields(self) -> List[str]:
        return [name for name in COMPARED_FIELDS if getattr(self.old, name) != getattr(self.new, name)]

    @property
    def complexity(self) -> int:
        """Number of compared fields that differ."""
        return len(self.changed_fields)

    @property
    def classes(self) -> List[str]:
        return list(self.new.classes)


@dataclass
class DayDiff:
    date: Optional[date] = None
    date_text: Optional[str] = None
    added: List[Substitution] = field(default_factory=list)
    removed: List[Substitution] = field(default_factory=list)
    edited: List[SubstitutionDiff] = field(default_factory=list)
    added_messages: List[str] = field(default_factory=list)
    removed_messages: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.edited or self.added_messages or self.removed_messages)


@dataclass
class ScheduleDiff:
    added_days: List[Day] = field(default_factory=list)
    removed_days: List[Day] = field(default_factory=list)
    edited_days: List[DayDiff] = field(default_factory=list)
    added_infos: List[AdditionalInfo] = field(default_factory=list)
    removed_infos: List[AdditionalInfo] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.added_days
            or self.removed_days
            or self.added_infos
            or self.removed_infos
            or any(not d.is_empty for d in self.edited_days)
        )

    # -----------------------------------------------------------------------
    # Filtering (returns new diffs, never mutates this one)
    # -----------------------------------------------------------------------

    def filtered_by_class(self, name: str, excluded_subjects: Collection[str] = ()) -> "ScheduleDiff":
        return self._filtered(lambda s: name in s.classes, excluded_subjects)

    def filtered_by_teacher(self, name: str, excluded_subjects: Collection[str] = ()) -> "ScheduleDiff":
        def keep_edit(d: SubstitutionDiff) -> bool:
            return name in d.old.teachers() or name in d.new.teachers()

        return self._filtered(lambda s: name in s.teachers(), excluded_subjects, keep_edit)

    def _filtered(
        self,
        keep: Callable[[Substitution], bool],
        excluded_subjects: Collection[str],
        keep_edit: Optional[Callable[[SubstitutionDiff], bool]] = None,
    ) -> "ScheduleDiff":
        def wanted(s: Substitution) -> bool:
            return keep(s) and subject_allowed(s, excluded_subjects)

        def wanted_edit(d: SubstitutionDiff) -> bool:
            kept = keep_edit(d) if keep_edit is not None else keep(d.new)
            return kept and subject_allowed(d.new, excluded_subjects)

        def day(d: Day) -> Day:
            return replace(d, substitutions=[s for s in d.substitutions if wanted(s)], messages=list(d.messages))

        return ScheduleDiff(
            added_days=[day(d) for d in self.added_days],
            removed_days=[day(d) for d in self.removed_days],
            edited_days=[
                replace(
                    d,
                    added=[s for s in d.added if wanted(s)],
                    removed=[s for s in d.removed if wanted(s)],
                    edited=[e for e in d.edited if wanted_edit(e)],
                    added_messages=list(d.added_messages),
                    removed_messages=list(d.removed_messages),
                )
                for d in self.edited_days
            ],
            added_infos=list(self.added_infos),
            removed_infos=list(self.removed_infos),
        )

    def to_dict(self) -> dict[str, Any]:
        data = _jsonable(asdict(self))
        for day_data, day in zip(data["edited_days"], self.edited_days):
            for edit_data, edit in zip(day_data["edited"], day.edited):
                edit_data["changed_fields"] = edit.changed_fields
        return data


# ---------------------------------------------------------------------------
# Comparing
# ---------------------------------------------------------------------------


def _find(
    substitutions: List[Substitution],
    handled: Set[int],
    match: Callable[[Substitution], bool],
) -> Optional[int]:
    for index, subst in enumerate(substitutions):
        if index not in handled and match(subst):
            return index
    return None


def _most_similar(substitutions: List[Substitution], handled: Set[int], subst: Substitution) -> Optional[int]:
    best: Optional[int] = None
    best_score = 0
    for index, candidate in enumerate(substitutions):
        if index in handled or set(candidate.classes) != set(subst.classes):
            continue
        score = _similarity(candidate, subst)
        if score > best_score:
            best, best_score = index, score
    return best


def diff_days(old: Day, new: Day) -> DayDiff:
    """
    Compare two versions of the same day.

    Raises ValueError if the days do not have the same date.
    """
    if not old.same_date(new):
        raise ValueError(f"Cannot compare {old.label} with {new.label}")

    out = DayDiff(date=old.date, date_text=old.date_text)
    out.added_messages = [m for m in new.messages if m not in old.messages]
    out.removed_messages = [m for m in old.messages if m not in new.messages]

    previous = old.substitutions
    handled: Set[int] = set()
    for subst in new.substitutions:
        index = _find(previous, handled, lambda s: _same_fields(s, subst) and set(s.classes) == set(subst.classes))
        if index is not None:
            handled.add(index)
            continue

        index = _find(previous, handled, lambda s: _same_fields(s, subst))
        if index is not None:
            before = previous[index]
            gained = [c for c in subst.classes if c not in before.classes]
            lost = [c for c in before.classes if c not in subst.classes]
            if gained:
                out.added.append(replace(subst, classes=gained))
            if lost:
                out.removed.append(replace(subst, classes=lost))
            handled.add(index)
            continue

        index = _most_similar(previous, handled, subst)
        if index is not None:
            edit = SubstitutionDiff(old=previous[index], new=subst)
            if edit.complexity <= MAX_COMPLEXITY:
                out.edited.append(edit)
                handled.add(index)
                continue

        out.added.append(subst)

    out.removed.extend(s for index, s in enumerate(previous) if index not in handled)
    return out


def _same_date_day(day: Day, days: List[Day]) -> Optional[Day]:
    for candidate in days:
        if candidate.same_date(day):
            return candidate
    return None


def diff_schedules(old: Schedule, new: Schedule) -> ScheduleDiff:
    """
    What changed from old to new. Order follows new for added and edited
    entries and old for removed ones.
    """
    out = ScheduleDiff()
    out.added_infos = [i for i in new.additional_infos if i not in old.additional_infos]
    out.removed_infos = [i for i in old.additional_infos if i not in new.additional_infos]

    for day in new.days:
        before = _same_date_day(day, old.days)
        if before is None:
            out.added_days.append(day)
            continue
        day_diff = diff_days(before, day)
        if not day_diff.is_empty:
            out.edited_days.append(day_diff)

    out.removed_days = [d for d in old.days if _same_date_day(d, new.days) is None]
    return out
