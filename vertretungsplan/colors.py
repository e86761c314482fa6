"""
Color lookup for change types.

Contract: color_for(type) -> "#RRGGBB", total, never None.
School-specific overrides win over the built-in table, unknown types get the
fallback color.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Callable, Dict, Iterable, Mapping, Optional

from vertretungsplan.errors import ConfigError


ColorLookup = Callable[[Optional[str]], str]

COLOR_NAMES: Mapping[str, str] = MappingProxyType(
    {
        "red": "#F44336",
        "blue": "#2196F3",
        "yellow": "#FFA000",
        "green": "#4CAF50",
        "brown": "#795548",
        "orange": "#FF9800",
        "gray": "#9E9E9E",
        "purple": "#9C27B0",
        "pink": "#E91E63",
        "indigo": "#3F51B5",
        "cyan": "#00BCD4",
        "teal": "#009688",
        "amber": "#FFC107",
        "black": "#000000",
    }
)

FALLBACK_COLOR = COLOR_NAMES["purple"]

_DEFAULT_TYPES: Mapping[str, Iterable[str]] = {
    "red": (
        "Entfall", "EVA", "Entf.", "Entf", "Fällt aus!", "Fällt aus", "entfällt", "Freistunde",
        "Klasse frei", "Selbstlernen", "HA", "selb.Arb.", "Aufgaben", "selbst.", "Frei", "Ausfall",
        "Stillarbeit", "Absenz", "-> Entfall", "Freisetzung", "Ausfallstunde",
    ),
    "blue": ("Vertretung", "Sondereins.", "Statt-Vertretung", "Betreuung", "V", "VTR", "Vertr."),
    "yellow": (
        "Tausch", "Verlegung", "Zusammenlegung", "Unterricht geändert", "Unterrichtstausch",
        "geändert", "statt", "Stundentausch",
    ),
    "green": (
        "Raum", "KLA", "Raum-Vtr.", "Raumtausch", "Raumverlegung", "Raumänderung", "R. Änd.",
        "Raum beachten", "Raum-Vertr.", "Raumwechsel",
    ),
    "brown": ("Veranst.", "Veranstaltung", "Frei/Veranstaltung", "Hochschultag"),
    "orange": ("Klausur",),
    "gray": ("Pausenaufsicht",),
}


def _build_map(table: Mapping[str, Iterable[str]]) -> Dict[str, str]:
    """
    {"red": ["Entfall"]} / {"#123456": ["Entfall"]} -> {"entfall": "#..."}
    """
    out: Dict[str, str] = {}
    for color, types in table.items():
        if isinstance(types, str):
            raise ConfigError(f"color {color!r}: expected a list of types, got {types!r}")
        value = COLOR_NAMES.get(color, color)
        for t in types:
            out[t.lower()] = value
    return out


DEFAULT_COLORS: Mapping[str, str] = MappingProxyType(_build_map(_DEFAULT_TYPES))


class ColorProvider:
    """
    Default ColorLookup. Instances are callable.
    """

    def __init__(self, overrides: Optional[Mapping[str, Iterable[str]]] = None) -> None:
        self._overrides = MappingProxyType(_build_map(overrides or {}))

    def __call__(self, change_type: Optional[str]) -> str:
        if not change_type:
            return FALLBACK_COLOR
        key = change_type.lower()
        if key in self._overrides:
            return self._overrides[key]
        return DEFAULT_COLORS.get(key, FALLBACK_COLOR)


default_color_for: ColorLookup = ColorProvider()
