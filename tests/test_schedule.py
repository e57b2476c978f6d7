import unittest
from datetime import date, datetime, timezone

from dkutimetable.model import SCOPE_COHORT_SHARED, SCOPE_CORE_FIXED, Cohort, GroupOption, LessonEvent, TimetablePage, WeekOption
from dkutimetable.schedule import (
    is_assessment,
    merge_schedule,
    pick_rolling_weeks,
    resolve_group,
    resolve_week,
    resolve_week_by_date,
    today_in_almaty,
)

WEEKS = (
    WeekOption("10", "2.3.2026", "2026-03-02"),
    WeekOption("11", "9.3.2026", "2026-03-09"),
    WeekOption("12", "16.3.2026", "2026-03-16"),
)

GROUPS = (
    GroupOption(1, "1-ТЛ/-TL", "1-ТЛ", "1-TL"),
    GroupOption(2, "2-ТЛ/-TL", "2-ТЛ", "2-TL"),
)


def make_event(short: str, cohort: str | None = None, track: str = "none", full_ru: str = "") -> LessonEvent:
    return LessonEvent(
        id=f"e-{short}",
        date_iso="2026-03-03",
        day_index=1,
        start_time="09:00",
        end_time="10:20",
        subject_short_raw=short,
        subject_short_ru=short,
        subject_short_de="",
        subject_full_raw=full_ru,
        subject_full_ru=full_ru,
        subject_full_de="",
        lesson_type="",
        room="",
        group_code="1-ТЛ/-TL",
        origin_group_code="1-ТЛ/-TL",
        track=track,
        cohort_code=cohort,
        scope=SCOPE_COHORT_SHARED if cohort else SCOPE_CORE_FIXED,
    )


class TestResolveWeek(unittest.TestCase):
    def test_latest_started_week(self) -> None:
        self.assertEqual(resolve_week_by_date(WEEKS, date(2026, 3, 11)).value, "11")

    def test_sunday_shows_next_week(self) -> None:
        self.assertEqual(resolve_week_by_date(WEEKS, date(2026, 3, 8)).value, "11")

    def test_before_first_week_falls_back_to_first(self) -> None:
        self.assertEqual(resolve_week_by_date(WEEKS, date(2026, 1, 1)).value, "10")

    def test_no_weeks(self) -> None:
        self.assertIsNone(resolve_week_by_date((), date(2026, 3, 3)))

    def test_explicit_param_is_zero_padded(self) -> None:
        weeks = WEEKS + (WeekOption("09", "23.2.2026", "2026-02-23"),)
        self.assertEqual(resolve_week(weeks, "9", date(2026, 3, 3)).value, "09")

    def test_unknown_param_falls_back_to_date(self) -> None:
        self.assertEqual(resolve_week(WEEKS, "99", date(2026, 3, 17)).value, "12")

    def test_today_in_almaty(self) -> None:
        # 20:00 UTC is already the next day in Almaty (UTC+5)
        now = datetime(2026, 3, 2, 20, 0, tzinfo=timezone.utc)
        self.assertEqual(today_in_almaty(now), date(2026, 3, 3))


class TestRollingWeeks(unittest.TestCase):
    def test_window_starts_at_current_week(self) -> None:
        picked = pick_rolling_weeks(WEEKS, "", date(2026, 3, 10))
        self.assertEqual([w.value for w in picked], ["11", "12"])

    def test_future_anchor_starts_window(self) -> None:
        picked = pick_rolling_weeks(WEEKS, "12", date(2026, 3, 3), window_size=3)
        self.assertEqual([w.value for w in picked], ["12"])

    def test_past_anchor_is_ignored(self) -> None:
        picked = pick_rolling_weeks(WEEKS, "10", date(2026, 3, 10), window_size=1)
        self.assertEqual([w.value for w in picked], ["11"])

    def test_window_is_at_least_one(self) -> None:
        self.assertEqual(len(pick_rolling_weeks(WEEKS, "", date(2026, 3, 3), window_size=0)), 1)

    def test_empty(self) -> None:
        self.assertEqual(pick_rolling_weeks((), "", date(2026, 3, 3)), [])


class TestResolveGroup(unittest.TestCase):
    def test_any_code_variant(self) -> None:
        self.assertEqual(resolve_group(GROUPS, "2-TL").id, 2)
        self.assertEqual(resolve_group(GROUPS, "2-ТЛ").id, 2)
        self.assertEqual(resolve_group(GROUPS, "1-ТЛ/-TL").id, 1)

    def test_empty_selects_first(self) -> None:
        self.assertEqual(resolve_group(GROUPS, "").id, 1)
        self.assertIsNone(resolve_group((), ""))

    def test_unknown(self) -> None:
        self.assertIsNone(resolve_group(GROUPS, "9-XX"))


class TestMergeSchedule(unittest.TestCase):
    def setUp(self) -> None:
        self.page = TimetablePage(
            events=(
                make_event("СОЦ"),
                make_event("D7", cohort="D7", track="de"),
                make_event("E2", cohort="E2", track="en"),
                make_event("E3", cohort="E3", track="en", full_ru="Экзамен английский"),
            ),
            cohorts=(
                Cohort("E2", "en", "E2"),
                Cohort("D7", "de", "D7"),
                Cohort("E3", "en", "E3"),
            ),
        )

    def test_no_selection_keeps_everything(self) -> None:
        merged = merge_schedule(self.page)
        self.assertEqual(len(merged.events), 4)

    def test_selection_filters_cohort_events(self) -> None:
        merged = merge_schedule(self.page, [" D7 "])
        self.assertEqual([e.subject_short_raw for e in merged.events], ["СОЦ", "D7", "E3"])

    def test_cohorts_are_sorted_by_track_then_code(self) -> None:
        merged = merge_schedule(self.page)
        self.assertEqual([c.code for c in merged.cohorts], ["D7", "E2", "E3"])

    def test_assessment_detection(self) -> None:
        self.assertTrue(is_assessment(make_event("X", full_ru="Зачёт по истории")))
        self.assertTrue(is_assessment(make_event("Midterm")))
        self.assertFalse(is_assessment(make_event("СОЦ", full_ru="Социология")))


if __name__ == "__main__":
    unittest.main()
