"""
Unit tests for German date resolution.

Year-less dates get the year (current, previous or next) that puts them
closest to "now"; explicit years are taken as they are.
"""

import unittest
from datetime import date, datetime

from vertretungsplan.dates import (
    expand_date_placeholders,
    format_date,
    resolve_date,
    resolve_datetime,
)


class TestResolveDate(unittest.TestCase):
    def test_year_less_date_around_new_year(self) -> None:
        # 30.12. seen on 10.01. belongs to the previous year
        self.assertEqual(resolve_date("30.12. Montag", now=datetime(2024, 1, 10)), date(2023, 12, 30))

    def test_year_less_date_current_year(self) -> None:
        self.assertEqual(resolve_date("5.1.", now=datetime(2024, 1, 10)), date(2024, 1, 5))

    def test_year_less_date_next_year(self) -> None:
        self.assertEqual(resolve_date("Montag, 2.1.", now=datetime(2023, 12, 28)), date(2024, 1, 2))

    def test_tie_prefers_current_year(self) -> None:
        # 2024-01-01 and 2025-01-01 are both 183 days away
        self.assertEqual(resolve_date("1.1.", now=datetime(2024, 7, 2)), date(2024, 1, 1))

    def test_stand_prefix_is_ignored(self) -> None:
        self.assertEqual(resolve_date("Stand: 15.03.2024 Freitag"), date(2024, 3, 15))

    def test_week_suffix_is_ignored(self) -> None:
        self.assertEqual(resolve_date("15.3.2024 Freitag, Woche A"), date(2024, 3, 15))

    def test_month_name(self) -> None:
        self.assertEqual(resolve_date("Montag, 3. Juni 2024"), date(2024, 6, 3))

    def test_two_digit_year(self) -> None:
        self.assertEqual(resolve_date("15.3.24 Freitag", now=datetime(2024, 3, 1)), date(2024, 3, 15))

    def test_weekday_first_with_den(self) -> None:
        self.assertEqual(resolve_date("Freitag, den 15.03.2024"), date(2024, 3, 15))

    def test_garbage_is_none(self) -> None:
        self.assertIsNone(resolve_date("???"))
        self.assertIsNone(resolve_date(""))
        self.assertIsNone(resolve_date(None))

    def test_impossible_date_is_none(self) -> None:
        self.assertIsNone(resolve_date("31.02.2024"))

    def test_leap_day_without_year(self) -> None:
        # only the previous year has a 29th of February
        self.assertEqual(resolve_date("29.2.", now=datetime(2025, 3, 1)), date(2024, 2, 29))


class TestResolveDatetime(unittest.TestCase):
    def test_plain_timestamp(self) -> None:
        self.assertEqual(resolve_datetime("14.03.2024 16:32"), datetime(2024, 3, 14, 16, 32))

    def test_comma_separator(self) -> None:
        self.assertEqual(resolve_datetime("Stand: 14.03.2024, 07:05"), datetime(2024, 3, 14, 7, 5))

    def test_um_uhr(self) -> None:
        value = resolve_datetime("Donnerstag, 14.3. um 7:45 Uhr", now=datetime(2024, 3, 10))
        self.assertEqual(value, datetime(2024, 3, 14, 7, 45))

    def test_seconds(self) -> None:
        self.assertEqual(resolve_datetime("14.03.2024 16:32:10"), datetime(2024, 3, 14, 16, 32, 10))

    def test_date_only_is_not_a_datetime(self) -> None:
        self.assertIsNone(resolve_datetime("14.03.2024"))


class TestFormatting(unittest.TestCase):
    def test_format_compact(self) -> None:
        self.assertEqual(format_date(date(2024, 3, 5), "yyyyMMdd"), "20240305")

    def test_format_with_weekday(self) -> None:
        self.assertEqual(format_date(date(2024, 3, 5), "EEEE, dd.MM.yyyy"), "Dienstag, 05.03.2024")

    def test_format_month_name(self) -> None:
        self.assertEqual(format_date(date(2024, 3, 5), "d. MMMM yy"), "5. März 24")

    def test_placeholder_expands_to_a_week(self) -> None:
        urls = expand_date_placeholders("https://example.org/{date(yyyy-MM-dd)}.htm", today=date(2024, 3, 5))
        self.assertEqual(len(urls), 7)
        self.assertEqual(urls[0], "https://example.org/2024-03-05.htm")
        self.assertEqual(urls[-1], "https://example.org/2024-03-11.htm")

    def test_url_without_placeholder(self) -> None:
        self.assertEqual(expand_date_placeholders("https://example.org/plan.htm"), ["https://example.org/plan.htm"])


if __name__ == "__main__":
    unittest.main()
