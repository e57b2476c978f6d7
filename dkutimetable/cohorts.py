"""
Cohort / track classification.

Two independent rule tables, evaluated in declaration order (first match wins):

- name rules: patterns over the full (legend resolved) subject name -> track
- code rules: patterns over the short subject code -> canonical cohort code + track

The tables below describe one institution's course catalogue. They are plain
immutable data; pass a different `ClassifierRules` value to swap them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, NamedTuple, Optional, Pattern, Tuple

from dkutimetable.model import (
    SCOPE_COHORT_SHARED,
    SCOPE_CORE_FIXED,
    TRACK_NONE,
    Cohort,
    LessonEvent,
)
from dkutimetable.text import clean_text


@dataclass(frozen=True)
class TrackRule:
    track: str
    name_pattern: Pattern[str]


@dataclass(frozen=True)
class CohortCodeRule:
    """
    `code` may contain "{n}", replaced by the matched group number without leading zeros.
    """

    track: str
    code_pattern: Pattern[str]
    code: str


@dataclass(frozen=True)
class ClassifierRules:
    track_rules: Tuple[TrackRule, ...]
    code_rules: Tuple[CohortCodeRule, ...]
    generic_codes: FrozenSet[str]


class CohortMatch(NamedTuple):
    code: str
    track: str


class Classification(NamedTuple):
    track: str
    cohort_code: Optional[str]
    scope: str


def _ci(pattern: str) -> Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


DEFAULT_RULES = ClassifierRules(
    track_rules=(
        TrackRule("kz", _ci(r"Бизнес қазақ тілі")),
        TrackRule("kz", _ci(r"Казахский язык")),
        TrackRule("de", _ci(r"Немецкий язык")),
        TrackRule("en", _ci(r"Английский язык")),
        TrackRule("en", _ci(r"Business and Soft Skills")),
        TrackRule("pe", _ci(r"Физическая культура.*девушк")),
        TrackRule("pe", _ci(r"Физическая культура.*юнош")),
    ),
    code_rules=(
        CohortCodeRule("de", _ci(r"^D0?(\d{1,2})$"), "D{n}"),
        CohortCodeRule("en", _ci(r"^E0?(\d{1,2})$"), "E{n}"),
        CohortCodeRule("kz", _ci(r"^Каз\.?(\d+)/Б"), "Каз.{n}/Б"),
        CohortCodeRule("kz", _ci(r"^Каз\.?(\d+)"), "Каз.{n}"),
        CohortCodeRule("en", _ci(r"^BSг\.?(\d+)"), "BS{n}"),
        CohortCodeRule("pe", _ci(r"^ФК\(д\)"), "ФК(д)"),
        CohortCodeRule("pe", _ci(r"^ФК\(ю\)"), "ФК(ю)"),
    ),
    # Bare track abbreviations: "any section of this track", not a cohort
    generic_codes=frozenset({"DE", "EN", "KAZ", "KAZ-B"}),
)


def detect_track(subject_full: str, rules: ClassifierRules = DEFAULT_RULES) -> str:
    for rule in rules.track_rules:
        if rule.name_pattern.search(subject_full):
            return rule.track
    return TRACK_NONE


def extract_cohort_code(subject_code: str, rules: ClassifierRules = DEFAULT_RULES) -> Optional[CohortMatch]:
    """
    Map a short subject code to its canonical cohort code, e.g. "D07" -> ("D7", "de").
    """
    normalized = subject_code.lstrip(".")
    for rule in rules.code_rules:
        m = rule.code_pattern.search(normalized)
        if not m:
            continue
        if m.groups() and m.group(1):
            return CohortMatch(rule.code.replace("{n}", str(int(m.group(1)))), rule.track)
        return CohortMatch(rule.code, rule.track)
    return None


def classify(subject_code: str, subject_full: str, rules: ClassifierRules = DEFAULT_RULES) -> Classification:
    """
    Effective track and cohort for one event.

    The name rule wins over the code rule; generic codes never become a cohort.
    """
    cohort = extract_cohort_code(subject_code, rules)
    track = detect_track(subject_full, rules)
    if track == TRACK_NONE and cohort is not None:
        track = cohort.track

    cohort_code = cohort.code if cohort is not None and cohort.code not in rules.generic_codes else None
    scope = SCOPE_COHORT_SHARED if cohort_code else SCOPE_CORE_FIXED
    return Classification(track, cohort_code, scope)


def collect_cohorts(events: Iterable[LessonEvent], group_code: str) -> List[Cohort]:
    """
    Distinct (code, track) cohorts referenced by a page's events, in first-seen order.
    """
    found: Dict[Tuple[str, str], Tuple[str, List[str]]] = {}
    for event in events:
        if not event.cohort_code or event.track == TRACK_NONE:
            continue
        key = (event.cohort_code, event.track)
        if key in found:
            groups = found[key][1]
            if group_code not in groups:
                groups.append(group_code)
            continue
        found[key] = (event.subject_full_ru or event.subject_short_ru, [group_code])

    return [
        Cohort(code=code, track=track, label=label, source_groups=tuple(groups))
        for (code, track), (label, groups) in found.items()
    ]


def parse_cohorts_csv(raw: Optional[str]) -> List[str]:
    """
    "D7, E2,,Каз.1" -> ["D7", "E2", "Каз.1"]
    """
    return [item for item in (clean_text(x) for x in (raw or "").split(",")) if item]


def normalize_cohort_list(raw: object) -> List[str]:
    if not isinstance(raw, list):
        return []
    return [item for item in (clean_text(str(x)) for x in raw) if item]
