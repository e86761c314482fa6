"""
Column label classification and change-type recognition.

Every vendor names its columns differently ("Vertreter", "Lehrer", "Lehrkraft",
...). This module maps such labels onto a small, closed set of semantic
fields, and recognizes change types ("Entfall", "Verlegung", ...) in free text.

The lookup tables are built once at import and are read-only afterwards.
"""

from __future__ import annotations

import logging
from enum import Enum
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple


logger = logging.getLogger(__name__)


class SemanticField(str, Enum):
    LESSON = "lesson"
    SUBJECT = "subject"
    PREVIOUS_SUBJECT = "previousSubject"
    TYPE = "type"
    ROOM = "room"
    PREVIOUS_ROOM = "previousRoom"
    TEACHER = "teacher"
    PREVIOUS_TEACHER = "previousTeacher"
    DESCRIPTION = "description"
    CLASS = "class"
    DAY = "day"
    AS_OF = "asOf"


# ---------------------------------------------------------------------------
# Label table
# ---------------------------------------------------------------------------

_LABELS_BY_FIELD: Mapping[SemanticField, Tuple[str, ...]] = MappingProxyType({
    SemanticField.LESSON: ("Stunde", "Std.", "Std", "Stunden", "Stunde(n)", "Pos", "Unterrichtsstunde"),
    SemanticField.SUBJECT: ("Fach", "Vertretungsfach", "Fach neu", "neues Fach"),
    SemanticField.PREVIOUS_SUBJECT: ("(Fach)", "statt Fach", "Fach alt", "altes Fach", "urspr. Fach"),
    SemanticField.TYPE: ("Art", "Vertretungsart", "Typ", "Art der Vertretung", "Vertretungs-Art"),
    SemanticField.ROOM: ("Raum", "Vertretungsraum", "Raum neu", "neuer Raum"),
    SemanticField.PREVIOUS_ROOM: ("(Raum)", "statt Raum", "Raum alt", "alter Raum", "urspr. Raum"),
    SemanticField.TEACHER: ("Lehrer", "Vertreter", "Lehrkraft", "Vertretung", "Vertretungslehrer", "Lehrer neu"),
    SemanticField.PREVIOUS_TEACHER: ("(Lehrer)", "für", "statt Lehrer", "Lehrer alt", "abwesend", "Absenz"),
    SemanticField.DESCRIPTION: (
        "Vertretungs-Text",
        "Vertretungstext",
        "Text",
        "Bemerkung",
        "Bemerkungen",
        "Hinweis",
        "Info",
        "Mitteilung",
        "Anmerkung",
    ),
    SemanticField.CLASS: ("Klasse", "Klassen", "Klasse(n)", "(Klasse(n))", "Kl.", "Klasse/Kurs"),
    SemanticField.DAY: ("Tag", "Datum"),
    SemanticField.AS_OF: ("Stand", "Zuletzt geändert", "Letzte Änderung"),
})

# Labels that are a class column only if the row has no better one.
AMBIGUOUS_CLASS_LABELS: frozenset = frozenset({"kurs", "kurse", "gruppe"})


def _key(label: str) -> str:
    return " ".join(label.split()).lower()


def _invert(table: Mapping[SemanticField, Tuple[str, ...]]) -> Mapping[str, SemanticField]:
    out = {}
    for field, labels in table.items():
        for label in labels:
            out[_key(label)] = field
    return MappingProxyType(out)


FIELD_BY_LABEL: Mapping[str, SemanticField] = _invert(_LABELS_BY_FIELD)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def classify_row(labels: Sequence[str]) -> List[Optional[SemanticField]]:
    """
    Classify all labels of one row/table header at once.

    Pass 1 classifies the unambiguous labels. Pass 2 resolves the ambiguous
    ones ("Kurs") against that result: they become the class column only
    if pass 1 found none.
    """
    keys = [_key(label) for label in labels]
    fields: List[Optional[SemanticField]] = [FIELD_BY_LABEL.get(k) for k in keys]

    has_class = SemanticField.CLASS in fields
    for i, k in enumerate(keys):
        if k in AMBIGUOUS_CLASS_LABELS:
            fields[i] = None if has_class else SemanticField.CLASS

    for label, field in zip(labels, fields):
        if field is None:
            logger.debug("Unclassified column label: %r", label)
    return fields


def classify(label: str, all_labels: Iterable[str]) -> Optional[SemanticField]:
    """
    Classify one label in the context of all labels of its row.
    """
    labels = list(all_labels)
    if label not in labels:
        labels.append(label)
    return classify_row(labels)[labels.index(label)]


# ---------------------------------------------------------------------------
# Change-type recognition
# ---------------------------------------------------------------------------

# Rules are checked top to bottom, first hit wins.
#   ("contains_lower", needle, result)  case-insensitive substring
#   ("equals", text, None)              exact label, returned as-is
#   ("prefix", prefix, result)
#   ("contains", needle, result)        case-sensitive substring
TYPE_RULES: Tuple[Tuple[str, str, Optional[str]], ...] = (
    ("contains_lower", "f.a.", "Entfall"),
    ("contains_lower", "fällt aus", "Entfall"),
    ("contains_lower", "faellt aus", "Entfall"),
    ("contains_lower", "entfällt", "Entfall"),
    ("contains_lower", "entfall", "Entfall"),
    *(
        ("equals", label, None)
        for label in (
            "Raumänderung",
            "Klasse frei",
            "Unterrichtstausch",
            "Freistunde",
            "Raumverlegung",
            "Selbstlernen",
            "Zusammenlegung",
            "HA",
            "Raum beachten",
            "Stundentausch",
            "Klausur",
            "Raum-Vertr.",
            "Betreuung",
            "Frei/Veranstaltung",
            "Raumwechsel",
            "selbstständiges Arbeiten",
        )
    ),
    ("prefix", "Ausfallstunde:", "Ausfallstunde"),
    ("prefix", "Raumwechsel/ Stillarbeit:", "Raumwechsel/ Stillarbeit"),
    ("prefix", "Stillarbeit:", "Stillarbeit"),
    ("contains", "verschoben", "Verlegung"),
    ("contains", "geänderter Raum", "Raumänderung"),
    ("contains", "frei", "Entfall"),
    ("contains", "Aufgaben", "Aufgaben"),
)


def recognize_type(text: Optional[str]) -> Optional[str]:
    """
    Guess the change type from a free-text description.

    Returns None when nothing matches; the caller falls back to the default type.
    """
    if not text:
        return None
    text = text.strip()
    lower = text.lower()
    for kind, needle, result in TYPE_RULES:
        if kind == "contains_lower" and needle in lower:
            return result
        if kind == "equals" and text == needle:
            return text
        if kind == "prefix" and text.startswith(needle):
            return result
        if kind == "contains" and needle in text:
            return result
    return None
