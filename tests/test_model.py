"""
Unit tests for the schedule model.

Covered:
- days are unique by date, merged content keeps insertion order
- committed substitutions always have a type and a color
- filters return new schedules and leave the source untouched
"""

import unittest
from datetime import date, datetime

from vertretungsplan.colors import COLOR_NAMES, FALLBACK_COLOR
from vertretungsplan.model import DEFAULT_TYPE, AdditionalInfo, Day, ScheduleModel, Substitution


class TestScheduleModel(unittest.TestCase):
    def test_same_date_is_merged_into_one_day(self) -> None:
        model = ScheduleModel()
        first = Day(date=date(2024, 3, 15), substitutions=[Substitution(lesson="1")])
        second = Day(date=date(2024, 3, 15), substitutions=[Substitution(lesson="2")])

        stored = model.add_day(first)
        again = model.add_day(second)

        self.assertIs(stored, again)
        self.assertEqual(len(model.schedule.days), 1)
        self.assertEqual([s.lesson for s in stored.substitutions], ["1", "2"])

    def test_merged_messages_keep_existing_first(self) -> None:
        model = ScheduleModel()
        model.add_day(Day(date=date(2024, 3, 15), messages=["Wandertag 5a", "Aula gesperrt"]))
        merged = model.add_day(Day(date=date(2024, 3, 15), messages=["Sportfest", "Aula gesperrt"]))
        self.assertEqual(merged.messages, ["Wandertag 5a", "Aula gesperrt", "Sportfest", "Aula gesperrt"])

    def test_days_keep_first_seen_order(self) -> None:
        model = ScheduleModel()
        model.add_day(Day(date=date(2024, 3, 18)))
        model.add_day(Day(date=date(2024, 3, 15)))
        self.assertEqual([d.date for d in model.schedule.days], [date(2024, 3, 18), date(2024, 3, 15)])

    def test_unknown_dates_are_keyed_by_text(self) -> None:
        model = ScheduleModel()
        model.add_day(Day(date_text="Nächste Woche"))
        model.add_day(Day(date_text="Nächste Woche"))
        model.add_day(Day(date_text="irgendwann"))
        self.assertEqual(len(model.schedule.days), 2)

    def test_default_type_and_color(self) -> None:
        model = ScheduleModel()
        day = model.add_day(Day(date=date(2024, 3, 15)))
        model.add_substitution(day, Substitution(lesson="3", classes=["5a"]))

        subst = day.substitutions[0]
        self.assertEqual(subst.type, DEFAULT_TYPE)
        self.assertEqual(subst.type, "Vertretung")
        self.assertIsNotNone(subst.color)
        self.assertEqual(subst.color, COLOR_NAMES["blue"])

    def test_color_from_type_and_injected_lookup(self) -> None:
        model = ScheduleModel(colors=lambda t: "#000001" if t == "Entfall" else FALLBACK_COLOR)
        day = model.add_day(Day(date=date(2024, 3, 15)))
        model.add_substitution(day, Substitution(type="Entfall"))
        model.add_substitution(day, Substitution(type="Entfall", color="#ABCDEF"))
        self.assertEqual([s.color for s in day.substitutions], ["#000001", "#ABCDEF"])

    def test_classes_and_teachers_are_collected(self) -> None:
        model = ScheduleModel()
        day = model.add_day(Day(date=date(2024, 3, 15)))
        model.add_class("5a")
        model.add_substitution(day, Substitution(classes=["5b", "5a"], teacher="MUE", previous_teacher="SCH, MUE"))
        self.assertEqual(model.schedule.classes, ["5a", "5b"])
        self.assertEqual(model.schedule.teachers, ["MUE", "SCH"])
        model.add_teacher("SCH")
        model.add_teacher("ABC")
        self.assertEqual(model.schedule.teachers, ["MUE", "SCH", "ABC"])

    def test_substitution_for_new_day(self) -> None:
        model = ScheduleModel()
        model.add_substitution(Day(date=date(2024, 3, 15)), Substitution(lesson="1"))
        model.add_substitution(Day(date=date(2024, 3, 15)), Substitution(lesson="2"))
        self.assertEqual(len(model.schedule.days), 1)
        self.assertEqual(len(model.schedule.days[0].substitutions), 2)

    def test_last_change_keeps_newest(self) -> None:
        model = ScheduleModel()
        model.update_last_change(datetime(2024, 3, 14, 16, 0))
        model.update_last_change(datetime(2024, 3, 14, 8, 0))
        model.update_last_change(None)
        self.assertEqual(model.schedule.last_change, datetime(2024, 3, 14, 16, 0))

    def test_website_first_wins(self) -> None:
        model = ScheduleModel()
        model.set_website(None)
        model.set_website("https://a.example")
        model.set_website("https://b.example")
        self.assertEqual(model.schedule.website, "https://a.example")


class TestScheduleFilters(unittest.TestCase):
    def _schedule(self):
        model = ScheduleModel()
        day = model.add_day(Day(date=date(2024, 3, 15)))
        model.add_substitution(day, Substitution(lesson="1", classes=["5a"], subject="Mathe", teacher="MUE"))
        model.add_substitution(day, Substitution(lesson="2", classes=["5b"], subject="Sport", teacher="SCH"))
        model.add_substitution(day, Substitution(lesson="3", classes=["5a"], subject="Reli", teacher="SCH"))
        model.add_message(day, "Wandertag")
        model.add_additional_info(AdditionalInfo(title="Info", text="Schulfest"))
        return model.schedule

    def test_filter_by_class(self) -> None:
        schedule = self._schedule()
        filtered = schedule.filtered_by_class("5a", excluded_subjects={"Reli"})
        self.assertEqual([s.lesson for s in filtered.days[0].substitutions], ["1"])
        self.assertEqual(filtered.days[0].messages, ["Wandertag"])
        self.assertEqual(filtered.classes, ["5a"])

    def test_filter_by_teacher(self) -> None:
        filtered = self._schedule().filtered_by_teacher("SCH")
        self.assertEqual([s.lesson for s in filtered.days[0].substitutions], ["2", "3"])

    def test_filters_do_not_mutate(self) -> None:
        schedule = self._schedule()
        filtered = schedule.filtered_by_class("5a")
        filtered.days[0].substitutions[0].classes.append("6c")
        filtered.days[0].messages.clear()
        self.assertEqual(len(schedule.days[0].substitutions), 3)
        self.assertEqual(schedule.days[0].substitutions[0].classes, ["5a"])
        self.assertEqual(schedule.days[0].messages, ["Wandertag"])

    def test_get_day(self) -> None:
        schedule = self._schedule()
        self.assertIsNotNone(schedule.get_day(date(2024, 3, 15)))
        self.assertIsNone(schedule.get_day(date(2024, 3, 16)))

    def test_to_dict(self) -> None:
        data = self._schedule().to_dict()
        day = data["days"][0]
        self.assertEqual(day["date"], "2024-03-15")
        self.assertEqual(day["substitutions"][0]["text"], "Mathe (MUE)")
        self.assertEqual(day["substitutions"][0]["type"], "Vertretung")
        self.assertEqual(data["additional_infos"][0]["text"], "Schulfest")


if __name__ == "__main__":
    unittest.main()
