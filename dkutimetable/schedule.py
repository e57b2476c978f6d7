"""
Schedule helpers on top of parsed data.

- group / week lookup from user input
- "current week" in the institution's time zone
- cohort-aware filtering of a page's events
- rolling week window for calendar export
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence
from zoneinfo import ZoneInfo

from dkutimetable.model import SCOPE_CORE_FIXED, GroupOption, LessonEvent, TimetablePage, WeekOption
from dkutimetable.text import clean_text

ALMATY_TIME_ZONE = "Asia/Almaty"

ASSESSMENT_RE = re.compile(
    r"(?<!\w)(экзам|пересдач|зач[её]т|диф\.?\s*зач|коллоквиум|midterm|final|аттест|сесс)",
    re.IGNORECASE,
)


def today_in_almaty(now: Optional[datetime] = None) -> date:
    tz = ZoneInfo(ALMATY_TIME_ZONE)
    current = now.astimezone(tz) if now is not None else datetime.now(tz)
    return current.date()


def resolve_group(groups: Sequence[GroupOption], param: str) -> Optional[GroupOption]:
    """
    Find a group by raw, Russian or German code. Empty input selects the first group.
    """
    if not param:
        return groups[0] if groups else None
    for g in groups:
        if param in (g.code_raw, g.code_ru, g.code_de):
            return g
    return None


def resolve_week_by_date(weeks: Sequence[WeekOption], today: date) -> Optional[WeekOption]:
    """
    Latest week starting on or before `today`. On Sundays the next week is shown.
    """
    if not weeks:
        return None
    target = today + timedelta(days=1) if today.weekday() == 6 else today
    best = weeks[0]
    for week in weeks:
        if week.start_date_iso <= target.isoformat():
            best = week
    return best


def resolve_week(weeks: Sequence[WeekOption], param: str, today: date) -> Optional[WeekOption]:
    if param:
        wanted = param.zfill(2)
        for week in weeks:
            if week.value == wanted:
                return week
    return resolve_week_by_date(weeks, today)


def pick_rolling_weeks(
    weeks: Sequence[WeekOption],
    anchor: str,
    today: date,
    window_size: int = 2,
) -> List[WeekOption]:
    """
    `window_size` consecutive weeks starting at the current one.

    A future anchor week starts the window itself.
    """
    if not weeks:
        return []
    ordered = sorted(weeks, key=lambda w: w.start_date_iso)
    size = max(1, window_size)
    today_iso = today.isoformat()

    anchor_idx = next((i for i, w in enumerate(ordered) if w.value == anchor), -1)
    if anchor_idx >= 0 and ordered[anchor_idx].start_date_iso > today_iso:
        idx = anchor_idx
    else:
        idx = 0
        for i, w in enumerate(ordered):
            if w.start_date_iso <= today_iso:
                idx = i

    return ordered[idx : idx + size]


def is_assessment(event: LessonEvent) -> bool:
    text = " ".join(
        [event.subject_short_raw, event.subject_full_raw, event.subject_short_ru, event.subject_full_ru]
    )
    return bool(ASSESSMENT_RE.search(text))


def merge_schedule(page: TimetablePage, selected_cohorts: Iterable[str] = ()) -> TimetablePage:
    """
    Events a student with the given cohorts attends.

    Without a selection everything is kept. Otherwise core events,
    assessments and events of selected cohorts remain.
    """
    cohorts = tuple(sorted(page.cohorts, key=lambda c: (c.track, c.code)))
    selected = {clean_text(c) for c in selected_cohorts if clean_text(c)}
    if not selected:
        return TimetablePage(events=page.events, cohorts=cohorts)

    events = tuple(
        e
        for e in page.events
        if e.scope == SCOPE_CORE_FIXED or is_assessment(e) or (e.cohort_code and e.cohort_code in selected)
    )
    return TimetablePage(events=events, cohorts=cohorts)
