"""
Human-readable one-line summary of a substitution, e.g.

    "Mathe (MUE statt SCH) in 204 statt 101 - Aufgaben"

Rules:
- changed subject / teacher / room are written as "<new> statt <old>"
- blank values and the placeholder "---" count as missing
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from vertretungsplan.model import Substitution


def has_data(value: Optional[str]) -> bool:
    if value is None:
        return False
    compact = "".join(value.split())
    return compact not in ("", "---")


def _changed(new: Optional[str], old: Optional[str]) -> tuple[str, str]:
    """
    Reduce a (new, old) pair: returns (value, previous) where previous is ""
    unless both exist and differ.
    """
    if has_data(new) and has_data(old) and new != old:
        return new or "", old or ""
    if has_data(new):
        return new or "", ""
    if has_data(old):
        return old or "", ""
    return "", ""


def _subject_and_teacher(s: "Substitution") -> str:
    subject, previous_subject = _changed(s.subject, s.previous_subject)
    teacher, previous_teacher = _changed(s.teacher, s.previous_teacher)

    if not subject:
        return f"{teacher} statt {previous_teacher}" if previous_teacher else teacher

    if previous_subject:
        if previous_teacher:
            return f"{subject} ({teacher}) statt {previous_subject} ({previous_teacher})"
        if teacher:
            return f"{subject} statt {previous_subject} ({teacher})"
        return f"{subject} statt {previous_subject}"

    if previous_teacher:
        return f"{subject} ({teacher} statt {previous_teacher})"
    if teacher:
        return f"{subject} ({teacher})"
    return subject


def _room(s: "Substitution") -> str:
    room, previous_room = _changed(s.room, s.previous_room)
    return f"{room} statt {previous_room}" if previous_room else room


def substitution_text(s: "Substitution") -> str:
    head = _subject_and_teacher(s)
    room = _room(s)
    if head and room:
        head = f"{head} in {room}"
    elif room:
        head = room
    desc = (s.desc or "").strip() if has_data(s.desc) else ""
    if head and desc:
        return f"{head} - {desc}"
    return head or desc
