"""
Unit tests for the change-type color lookup.

The lookup is total: every input (including None) yields a color.
"""

import unittest

from vertretungsplan.colors import COLOR_NAMES, FALLBACK_COLOR, ColorProvider, default_color_for
from vertretungsplan.errors import ConfigError


class TestColors(unittest.TestCase):
    def test_known_types(self) -> None:
        self.assertEqual(default_color_for("Entfall"), COLOR_NAMES["red"])
        self.assertEqual(default_color_for("Vertretung"), COLOR_NAMES["blue"])
        self.assertEqual(default_color_for("Klausur"), COLOR_NAMES["orange"])

    def test_lookup_ignores_case(self) -> None:
        self.assertEqual(default_color_for("entfall"), COLOR_NAMES["red"])

    def test_unknown_and_missing_types_get_fallback(self) -> None:
        for value in ("Sonstiges", "", None):
            self.assertEqual(default_color_for(value), FALLBACK_COLOR)

    def test_overrides_win(self) -> None:
        colors = ColorProvider({"green": ["Entfall"], "#123456": ["Projekt"]})
        self.assertEqual(colors("Entfall"), COLOR_NAMES["green"])
        self.assertEqual(colors("Projekt"), "#123456")
        # not overridden -> built-in table
        self.assertEqual(colors("Vertretung"), COLOR_NAMES["blue"])

    def test_types_must_be_a_list(self) -> None:
        with self.assertRaises(ConfigError):
            ColorProvider({"red": "Klausur"})


if __name__ == "__main__":
    unittest.main()
