"""
Unit tests for cohort / track classification.

Rules are evaluated in declaration order; the name rule wins over the code rule.
"""

import re
import unittest

from dkutimetable.cohorts import (
    DEFAULT_RULES,
    ClassifierRules,
    CohortCodeRule,
    classify,
    collect_cohorts,
    detect_track,
    extract_cohort_code,
    normalize_cohort_list,
    parse_cohorts_csv,
)
from dkutimetable.model import SCOPE_COHORT_SHARED, SCOPE_CORE_FIXED, TRACKS, LessonEvent


def _event(code, track, full_ru="", short_ru="X"):
    return LessonEvent(
        id="e1",
        date_iso="2026-03-02",
        day_index=0,
        start_time="08:00",
        end_time="09:20",
        subject_short_raw=short_ru,
        subject_short_ru=short_ru,
        subject_short_de=short_ru,
        subject_full_raw=full_ru,
        subject_full_ru=full_ru,
        subject_full_de=full_ru,
        lesson_type="",
        room="",
        group_code="1-ТЛ",
        origin_group_code="1-ТЛ",
        track=track,
        cohort_code=code,
        scope=SCOPE_COHORT_SHARED if code else SCOPE_CORE_FIXED,
    )


class TestCodeRules(unittest.TestCase):
    def test_german_code_drops_leading_zero(self) -> None:
        self.assertEqual(tuple(extract_cohort_code("D07")), ("D7", "de"))

    def test_english_code(self) -> None:
        self.assertEqual(tuple(extract_cohort_code("e12")), ("E12", "en"))

    def test_leading_dots_are_ignored(self) -> None:
        self.assertEqual(tuple(extract_cohort_code("..D3")), ("D3", "de"))

    def test_kazakh_codes(self) -> None:
        self.assertEqual(tuple(extract_cohort_code("Каз.02/Б")), ("Каз.2/Б", "kz"))
        self.assertEqual(tuple(extract_cohort_code("Каз3")), ("Каз.3", "kz"))

    def test_business_skills_code(self) -> None:
        self.assertEqual(tuple(extract_cohort_code("BSг.4")), ("BS4", "en"))

    def test_pe_codes(self) -> None:
        self.assertEqual(tuple(extract_cohort_code("ФК(д)")), ("ФК(д)", "pe"))
        self.assertEqual(tuple(extract_cohort_code("ФК(ю) зал")), ("ФК(ю)", "pe"))

    def test_no_match(self) -> None:
        self.assertIsNone(extract_cohort_code("СОЦ"))
        self.assertIsNone(extract_cohort_code("D123"))


class TestNameRules(unittest.TestCase):
    def test_tracks(self) -> None:
        self.assertEqual(detect_track("Немецкий язык/Deutsch пр."), "de")
        self.assertEqual(detect_track("Английский язык/Englisch"), "en")
        self.assertEqual(detect_track("Бизнес қазақ тілі"), "kz")
        self.assertEqual(detect_track("Физическая культура (девушки)"), "pe")
        self.assertEqual(detect_track("Социология/Soziologie"), "none")

    def test_default_rules_use_known_tracks(self) -> None:
        for rule in DEFAULT_RULES.track_rules + DEFAULT_RULES.code_rules:
            self.assertIn(rule.track, TRACKS)


class TestClassify(unittest.TestCase):
    def test_code_only(self) -> None:
        result = classify("D07", "D07")
        self.assertEqual(result.track, "de")
        self.assertEqual(result.cohort_code, "D7")
        self.assertEqual(result.scope, SCOPE_COHORT_SHARED)

    def test_name_rule_wins(self) -> None:
        result = classify("E2", "Немецкий язык/Deutsch")
        self.assertEqual(result.track, "de")
        self.assertEqual(result.cohort_code, "E2")

    def test_no_cohort_is_core(self) -> None:
        result = classify("НЕМ", "Немецкий язык/Deutsch")
        self.assertEqual(result.track, "de")
        self.assertIsNone(result.cohort_code)
        self.assertEqual(result.scope, SCOPE_CORE_FIXED)

    def test_generic_codes_are_not_cohorts(self) -> None:
        rules = ClassifierRules(
            track_rules=DEFAULT_RULES.track_rules,
            code_rules=(CohortCodeRule("de", re.compile(r"^DE$", re.IGNORECASE), "DE"),),
            generic_codes=DEFAULT_RULES.generic_codes,
        )
        result = classify("de", "de", rules)
        self.assertEqual(result.track, "de")
        self.assertIsNone(result.cohort_code)
        self.assertEqual(result.scope, SCOPE_CORE_FIXED)


class TestCollectCohorts(unittest.TestCase):
    def test_distinct_code_track_pairs(self) -> None:
        events = [
            _event("D7", "de", full_ru="Немецкий язык"),
            _event("D7", "de", full_ru="Другое"),
            _event("E2", "en", short_ru="E2"),
            _event(None, "de"),
            _event("X1", "none"),
        ]
        cohorts = collect_cohorts(events, "1-ТЛ")

        self.assertEqual([(c.code, c.track) for c in cohorts], [("D7", "de"), ("E2", "en")])
        self.assertEqual(cohorts[0].label, "Немецкий язык")
        self.assertEqual(cohorts[1].label, "E2")
        self.assertEqual(cohorts[0].source_groups, ("1-ТЛ",))


class TestCohortLists(unittest.TestCase):
    def test_parse_csv(self) -> None:
        self.assertEqual(parse_cohorts_csv(" D7, E2,, Каз.1 "), ["D7", "E2", "Каз.1"])
        self.assertEqual(parse_cohorts_csv(None), [])

    def test_normalize_list(self) -> None:
        self.assertEqual(normalize_cohort_list([" D7", 3, ""]), ["D7", "3"])
        self.assertEqual(normalize_cohort_list("D7"), [])


if __name__ == "__main__":
    unittest.main()
