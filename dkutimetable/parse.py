"""
Parsing (HTML -> structured JSON).

- parse_nav_html(): navbar page -> MetaPayload (weeks + groups)
- parse_timetable_page(): one group/week page -> events + cohorts
- parse_all(): cached pages in data/raw/ -> JSON in data/processed/

Important rules (DO NOT CHANGE):
- GroupOption.id is the 1-based position in the upstream list
- 1 event per (cell, distinct period) and never two events with the same seed
- Missing structural anchors raise, anything cell-level is skipped
"""

from __future__ import annotations

import argparse
import json
import logging
import re
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional, Sequence, Union

from bs4 import BeautifulSoup

from dkutimetable.bilingual import is_missing_german_name, sanitize_label, split_bilingual_label
from dkutimetable.cohorts import DEFAULT_RULES, ClassifierRules, classify, collect_cohorts
from dkutimetable.errors import MissingAnchorError, ParseError
from dkutimetable.grid import (
    DAY_COUNT,
    TimeRange,
    collect_main_table_rows,
    day_index_for_column,
    is_renderable_subject,
    is_unknown_placeholder,
    parse_time_range,
    walk_grid,
)
from dkutimetable.hashing import stable_event_id
from dkutimetable.legend import SUBJECT_LEGEND_HEADING, LegendResolver, parse_legend_entries
from dkutimetable.model import GroupOption, LessonEvent, MetaPayload, TimetablePage, WeekOption
from dkutimetable.text import (
    clean_text,
    collapse_spaces,
    german_only_label,
    russian_only_label,
    strip_paren_suffix,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

PACKAGE_DIR = Path(__file__).resolve().parent
RAW_DIR = PACKAGE_DIR / "data" / "raw"
PROCESSED_DIR = PACKAGE_DIR / "data" / "processed"

NAVBAR_PATH = "frames/navbar.htm"


def group_page_path(week_value: str, group_id: int) -> str:
    """
    Upstream path of one group's page, e.g. ("10", 7) -> "10/c/c00007.htm".
    """
    return f"{week_value}/c/c{group_id:05d}.htm"


# ---------------------------------------------------------------------------
# Navbar
# ---------------------------------------------------------------------------

_LABEL_DATE_RE = re.compile(r"(\d{1,2})\.(\d{1,2})\.(\d{4})")
_CLASSES_RE = re.compile(r"var\s+classes\s*=\s*\[([\s\S]*?)\];", re.IGNORECASE)
_JS_STRING_RE = re.compile(r'"((?:\\.|[^"\\])*)"')


def parse_week_label_date(label: str) -> Optional[str]:
    """
    "2.3.2026" -> "2026-03-02", None if the label carries no valid date.
    """
    m = _LABEL_DATE_RE.search(label)
    if not m:
        return None
    day, month, year = m.groups()
    try:
        return date(int(year), int(month), int(day)).isoformat()
    except ValueError:
        return None


def _parse_js_string_array(body: str) -> List[str]:
    return [m.group(1).replace('\\"', '"').replace("\\\\", "\\") for m in _JS_STRING_RE.finditer(body)]


def _german_group_code(code_ru: str, code_de: str) -> str:
    """
    Give the German code the Russian year prefix it lacks: "2-ТЛ" + "-TL" -> "2-TL".
    """
    normalized = code_de.lstrip("-")
    if not normalized or normalized[0].isdigit():
        return normalized

    year = re.match(r"^(\d+)", code_ru)
    if not year:
        return normalized

    # keep subgroup markers compact: 1 + A-IB -> 1A-IB
    if re.match(r"^[A-Za-z]-", normalized):
        return f"{year.group(1)}{normalized}"
    return f"{year.group(1)}-{normalized}"


def _parse_week_options(soup: BeautifulSoup) -> List[WeekOption]:
    select = soup.find("select", attrs={"name": "week"})
    if select is None:
        raise MissingAnchorError("week select", "navbar has no <select name=\"week\">")

    weeks: List[WeekOption] = []
    for option in select.find_all("option"):
        value = (option.get("value") or "").strip()
        if not value.isdigit():
            continue
        label = collapse_spaces(option.get_text(" "))
        start_date_iso = parse_week_label_date(label)
        # non-date placeholder options
        if not start_date_iso:
            continue
        weeks.append(WeekOption(value=value.zfill(2), label=label, start_date_iso=start_date_iso))
    return weeks


def _parse_groups(html: str) -> List[GroupOption]:
    m = _CLASSES_RE.search(html)
    if not m:
        raise MissingAnchorError("classes array", "navbar has no `var classes = [...]`")

    groups: List[GroupOption] = []
    for idx, code_raw in enumerate(_parse_js_string_array(m.group(1))):
        code_ru = sanitize_label(strip_paren_suffix(russian_only_label(code_raw)))
        code_de = sanitize_label(strip_paren_suffix(german_only_label(code_raw)))
        groups.append(
            GroupOption(
                id=idx + 1,
                code_raw=clean_text(code_raw),
                code_ru=code_ru,
                code_de=_german_group_code(code_ru, code_de),
            )
        )
    return groups


def parse_nav_html(html: str) -> MetaPayload:
    """
    Parse the navbar page into week options and the ordered group list.
    """
    soup = BeautifulSoup(html, "lxml")
    weeks = _parse_week_options(soup)
    groups = _parse_groups(html)
    logger.debug("Navbar: %d weeks, %d groups", len(weeks), len(groups))
    return MetaPayload(weeks=tuple(weeks), groups=tuple(groups))


# ---------------------------------------------------------------------------
# Day dates
# ---------------------------------------------------------------------------

_DAY_HEADER_RE = re.compile(r"^[А-Яа-яЁёA-Za-z]+\s+(\d{1,2})\.(\d{1,2})\.?$")
_FOOTER_YEAR_RE = re.compile(r"ЛС/SS\s+\d{1,2}\.\d{1,2}\.(\d{4})", re.IGNORECASE)


def parse_day_dates(soup: BeautifulSoup, week_start_iso: str) -> List[str]:
    """
    ISO dates of the six day columns.

    Taken from the bold "Пн 2.3." headers with the year of the footer stamp.
    Falls back to week start + 0..5 days when the headers are incomplete.
    """
    week_start = date.fromisoformat(week_start_iso)
    fallback = [(week_start + timedelta(days=i)).isoformat() for i in range(DAY_COUNT)]

    headers = []
    for b in soup.find_all("b"):
        m = _DAY_HEADER_RE.match(collapse_spaces(b.get_text(" ")))
        if m:
            headers.append((int(m.group(1)), int(m.group(2))))
    if len(headers) < DAY_COUNT:
        logger.debug("Only %d day headers found, using week start dates", len(headers))
        return fallback

    footer = _FOOTER_YEAR_RE.search(soup.get_text(" "))
    year = int(footer.group(1)) if footer else week_start.year

    try:
        return [date(year, month, day).isoformat() for day, month in headers[:DAY_COUNT]]
    except ValueError:
        logger.debug("Impossible day header date, using week start dates")
        return fallback


# ---------------------------------------------------------------------------
# Timetable page (event assembly)
# ---------------------------------------------------------------------------


class _PendingCell(NamedTuple):
    day_index: int
    subject_raw: str
    room_raw: str
    row_index: int
    row_span: int


def collect_distinct_periods(
    row_times: Sequence[Optional[TimeRange]],
    start_row: int,
    row_span: int,
) -> List[TimeRange]:
    """
    Distinct (start, end) ranges covered by rows [start_row, start_row + row_span), in row order.
    """
    periods: List[TimeRange] = []
    for row in range(start_row, min(len(row_times), start_row + row_span)):
        period = row_times[row]
        if period is not None and period not in periods:
            periods.append(period)
    return periods


def parse_timetable_page(
    html: str,
    group: GroupOption,
    week: WeekOption,
    rules: ClassifierRules = DEFAULT_RULES,
    legend_heading: str = SUBJECT_LEGEND_HEADING,
) -> TimetablePage:
    """
    Parse one group/week timetable page into events and cohorts.

    Raises MissingAnchorError if the <center> container, its table or
    the table rows are missing.
    """
    soup = BeautifulSoup(html, "lxml")
    rows = collect_main_table_rows(soup)

    row_times: List[Optional[TimeRange]] = [None] * len(rows)
    day_dates = parse_day_dates(soup, week.start_date_iso)
    resolve_subject = LegendResolver(parse_legend_entries(soup, legend_heading))

    # events are created only once every row time is known,
    # a cell may span rows whose period cell comes later
    pending: List[_PendingCell] = []

    for placed in walk_grid(rows):
        if placed.col == 0:
            period = parse_time_range(collapse_spaces(placed.cell.text))
            if period is None:
                continue
            for r in range(placed.row, min(len(rows), placed.row + placed.row_span)):
                row_times[r] = period
            continue

        lines = placed.cell.lines()
        subject_raw = lines[0] if lines else ""
        room_raw = lines[2] if len(lines) > 2 else ""
        if not is_renderable_subject(subject_raw):
            continue

        day_index = day_index_for_column(placed.col)
        if 0 <= day_index < len(day_dates):
            pending.append(_PendingCell(day_index, subject_raw, room_raw, placed.row, placed.row_span))

    events: List[LessonEvent] = []
    seen_seeds = set()

    for cell in pending:
        legend_full_raw = resolve_subject(cell.subject_raw)
        if is_unknown_placeholder(cell.subject_raw) and not legend_full_raw:
            logger.debug("Skipping unresolved placeholder %r", cell.subject_raw)
            continue

        has_legend_full = bool(legend_full_raw.strip())
        no_german = is_missing_german_name(legend_full_raw if has_legend_full else cell.subject_raw)
        short_labels = split_bilingual_label(cell.subject_raw, no_german)
        if has_legend_full:
            full_labels = split_bilingual_label(legend_full_raw, no_german)
            subject_full_raw = legend_full_raw
            lesson_type = "" if no_german else full_labels.lesson_type
        else:
            full_labels = short_labels._replace(lesson_type="")
            subject_full_raw = sanitize_label(short_labels.primary)
            lesson_type = ""

        classification = classify(cell.subject_raw, subject_full_raw, rules)
        date_iso = day_dates[cell.day_index]

        for period in collect_distinct_periods(row_times, cell.row_index, cell.row_span):
            seed = "|".join(
                [
                    group.code_raw,
                    date_iso,
                    period.start,
                    period.end,
                    cell.subject_raw,
                    cell.room_raw,
                    classification.cohort_code or "",
                ]
            )
            # the same lesson rendered in several adjacent virtual columns
            if seed in seen_seeds:
                continue
            seen_seeds.add(seed)

            events.append(
                LessonEvent(
                    id=stable_event_id(seed),
                    date_iso=date_iso,
                    day_index=cell.day_index,
                    start_time=period.start,
                    end_time=period.end,
                    subject_short_raw=cell.subject_raw,
                    subject_short_ru=sanitize_label(short_labels.primary),
                    subject_short_de=sanitize_label(short_labels.secondary),
                    subject_full_raw=subject_full_raw,
                    subject_full_ru=sanitize_label(full_labels.primary),
                    subject_full_de=sanitize_label(full_labels.secondary),
                    lesson_type=sanitize_label(lesson_type),
                    room=cell.room_raw,
                    group_code=group.code_raw,
                    origin_group_code=group.code_raw,
                    track=classification.track,
                    cohort_code=classification.cohort_code,
                    scope=classification.scope,
                )
            )

    events.sort(key=lambda e: (e.date_iso, e.start_time, e.subject_short_raw))
    cohorts = collect_cohorts(events, group.code_raw)

    logger.debug(
        "Parsed %s week %s: %d cells, %d events, %d cohorts",
        group.code_raw,
        week.value,
        len(pending),
        len(events),
        len(cohorts),
    )
    return TimetablePage(events=tuple(events), cohorts=tuple(cohorts))


# ---------------------------------------------------------------------------
# Public API (cached files)
# ---------------------------------------------------------------------------


def _write_json(path: Path, payload: Union[Dict, List]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def parse_all(
    raw_dir: Path = RAW_DIR,
    out_dir: Path = PROCESSED_DIR,
) -> int:
    """
    Parse all cached pages and write the JSON output. Returns the number of parsed pages.

    Writes:
      - <out_dir>/meta.json
      - <out_dir>/schedules/<week>/<group id>.json
    """
    raw_path = raw_dir.resolve()
    out_path = out_dir.resolve()

    navbar_file = raw_path / NAVBAR_PATH
    if not navbar_file.exists():
        raise ParseError(f"Navbar not cached: {navbar_file}")

    meta = parse_nav_html(navbar_file.read_text(encoding="utf-8"))
    _write_json(out_path / "meta.json", meta.to_dict())

    parsed = 0
    for week in meta.weeks:
        for group in meta.groups:
            page_file = raw_path / group_page_path(week.value, group.id)
            if not page_file.exists():
                continue

            try:
                page = parse_timetable_page(page_file.read_text(encoding="utf-8"), group, week)
            except ParseError as exc:
                # never write a partial result for a broken page
                logger.warning("Skipping %s: %s", page_file, exc)
                continue

            _write_json(out_path / "schedules" / week.value / f"{group.id}.json", page.to_dict())
            parsed += 1

    logger.info("Parsed %d pages into %s", parsed, out_path)
    return parsed


def load_meta(processed_dir: Path = PROCESSED_DIR) -> MetaPayload:
    data = json.loads((processed_dir / "meta.json").read_text(encoding="utf-8"))
    return MetaPayload.from_dict(data)


def load_page(week_value: str, group_id: int, processed_dir: Path = PROCESSED_DIR) -> TimetablePage:
    path = processed_dir / "schedules" / week_value / f"{group_id}.json"
    return TimetablePage.from_dict(json.loads(path.read_text(encoding="utf-8")))


# ---------------------------------------------------------------------------
# CLI connection
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="dkutimetable.parse", description="Parse cached timetable HTML into JSON")
    p.add_argument("--raw-dir", type=Path, default=RAW_DIR)
    p.add_argument("--out-dir", type=Path, default=PROCESSED_DIR)
    return p


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")

    n = parse_all(raw_dir=args.raw_dir, out_dir=args.out_dir)
    print(f"Parsing finished. {n} pages written to {args.out_dir.resolve()}")


if __name__ == "__main__":
    main()
