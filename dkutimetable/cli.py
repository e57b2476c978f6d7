"""
CLI (Command Line Interface).

    dkutimetable scrape [--week 10] [--refresh]
    dkutimetable parse
    dkutimetable groups | weeks
    dkutimetable show <group> [--week 10] [--cohort D7 ...]
    dkutimetable select <group> [--cohort D7 ...]
    dkutimetable export <file.ics> [--group ...] [--lang de] [--weeks 2]

Note:
- scrape/parse write to dkutimetable/data/, all other commands read from there
- Output is plain text
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional

from dkutimetable.errors import TimetableError
from dkutimetable.export_ics import calendar_title, export_events_to_ics
from dkutimetable.model import GroupOption, LessonEvent, MetaPayload, Selection, WeekOption
from dkutimetable.parse import PROCESSED_DIR, RAW_DIR, load_meta, load_page, parse_all
from dkutimetable.schedule import merge_schedule, pick_rolling_weeks, resolve_group, resolve_week, today_in_almaty
from dkutimetable.scrape import scrape_all
from dkutimetable.storage import load_selection, save_selection

logger = logging.getLogger(__name__)


def _load_meta_or_none(processed_dir: Path) -> Optional[MetaPayload]:
    """
    CLI behavior: a missing meta.json is reported, not raised.
    """
    try:
        return load_meta(processed_dir)
    except (OSError, ValueError, KeyError):
        return None


def _group_or_report(meta: MetaPayload, param: str) -> Optional[GroupOption]:
    group = resolve_group(meta.groups, param)
    if group is None:
        print(f"Unknown group: {param}")
    return group


def _page_events(
    processed_dir: Path, week: WeekOption, group: GroupOption, cohorts: list[str]
) -> Optional[list[LessonEvent]]:
    try:
        page = load_page(week.value, group.id, processed_dir)
    except (OSError, ValueError, KeyError):
        return None
    return list(merge_schedule(page, cohorts).events)


def _selection_path(args: argparse.Namespace) -> Path:
    return args.selection if args.selection is not None else args.processed_dir / "selection.json"


def _cmd_scrape(args: argparse.Namespace) -> int:
    n = scrape_all(args.week, refresh=args.refresh, sleep_seconds=args.sleep, raw_dir=args.raw_dir)
    print(f"Downloaded {n} pages into {args.raw_dir}")
    return 0


def _cmd_parse(args: argparse.Namespace) -> int:
    n = parse_all(raw_dir=args.raw_dir, out_dir=args.processed_dir)
    print(f"Parsed {n} pages into {args.processed_dir}")
    return 0


def _cmd_groups(meta: MetaPayload) -> int:
    for g in meta.groups:
        print(f"{g.id:>4} | {g.code_raw} | ru: {g.code_ru} | de: {g.code_de}")
    return 0


def _cmd_weeks(meta: MetaPayload) -> int:
    for w in meta.weeks:
        print(f"{w.value} | {w.start_date_iso} | {w.label}")
    return 0


def _cmd_show(args: argparse.Namespace, meta: MetaPayload) -> int:
    """
    Print one group's week, filtered by cohorts.
    """
    group = _group_or_report(meta, (args.group or "").strip())
    if group is None:
        return 1
    week = resolve_week(meta.weeks, args.week or "", today_in_almaty())
    if week is None:
        print("No weeks available.")
        return 1

    events = _page_events(args.processed_dir, week, group, args.cohort or [])
    if events is None:
        print(f"No parsed schedule for {group.code_raw}, week {week.value}. Run scrape + parse first.")
        return 1
    if not events:
        print("No events.")
        return 0

    print(f"{group.code_raw} | week {week.value} ({week.label})")
    for e in events:
        cohort = f" [{e.cohort_code}]" if e.cohort_code else ""
        room = f" @ {e.room}" if e.room else ""
        print(f"{e.date_iso} {e.start_time}-{e.end_time} {e.subject_full_ru or e.subject_short_ru}{cohort}{room}")
    return 0


def _cmd_select(args: argparse.Namespace, meta: MetaPayload) -> int:
    """
    Persist group + cohort selection (selection.json).
    """
    group = _group_or_report(meta, (args.group or "").strip())
    if group is None:
        return 1

    selection = Selection(group=group.code_raw, cohorts=list(args.cohort or []))
    save_selection(selection, _selection_path(args))
    cohorts = ", ".join(selection.cohorts) or "-"
    print(f"Selected: {group.code_raw} (cohorts: {cohorts})")
    return 0


def _cmd_export(args: argparse.Namespace, meta: MetaPayload) -> int:
    """
    Export the selected group's upcoming weeks into an iCalendar (.ics) file.
    """
    out_path = (args.out or "").strip()
    if not out_path:
        print("Please provide output .ics path.")
        return 1

    selection = load_selection(_selection_path(args))
    group = _group_or_report(meta, (args.group or selection.group).strip())
    if group is None:
        return 1
    cohorts = args.cohort if args.cohort else selection.cohorts

    today = today_in_almaty()
    anchor = resolve_week(meta.weeks, args.week or "", today)
    weeks = pick_rolling_weeks(meta.weeks, anchor.value if anchor else "", today, args.weeks)

    events: list[LessonEvent] = []
    for week in weeks:
        week_events = _page_events(args.processed_dir, week, group, cohorts)
        if week_events is None:
            logger.warning("No parsed schedule for %s week %s", group.code_raw, week.value)
            continue
        events.extend(week_events)

    if not events:
        print("No events to export.")
        return 0

    n = export_events_to_ics(events, out_path, title=calendar_title(group.code_raw), lang=args.lang)
    print(f"Exported {n} events to: {out_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="dkutimetable", description="DKU timetable CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--raw-dir", type=Path, default=RAW_DIR)
    parser.add_argument("--processed-dir", type=Path, default=PROCESSED_DIR)
    parser.add_argument(
        "--selection", type=Path, default=None, help="Selection file (default: <processed-dir>/selection.json)"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_scrape = sub.add_parser("scrape", help="Download and cache upstream pages")
    p_scrape.add_argument("--week", "-w", action="append", default=None, help="Week code, repeatable")
    p_scrape.add_argument("--refresh", action="store_true", help="Re-fetch cached pages")
    p_scrape.add_argument("--sleep", type=float, default=0.2, help="Sleep seconds between requests")

    sub.add_parser("parse", help="Parse cached pages into JSON")
    sub.add_parser("groups", help="List groups")
    sub.add_parser("weeks", help="List weeks")

    p_show = sub.add_parser("show", help="Show one group's week")
    p_show.add_argument("group", type=str, help="Group code (e.g. 3А-ТЛ)")
    p_show.add_argument("--week", type=str, default="", help="Week code (default: current week)")
    p_show.add_argument("--cohort", action="append", default=None, help="Cohort code, repeatable")

    p_select = sub.add_parser("select", help="Store group and cohorts")
    p_select.add_argument("group", type=str, help="Group code")
    p_select.add_argument("--cohort", action="append", default=None, help="Cohort code, repeatable")

    p_export = sub.add_parser("export", help="Export schedule to .ics")
    p_export.add_argument("out", type=str, help="Output file path (e.g. out.ics)")
    p_export.add_argument("--group", type=str, default="", help="Group code (default: stored selection)")
    p_export.add_argument("--cohort", action="append", default=None, help="Cohort code, repeatable")
    p_export.add_argument("--week", type=str, default="", help="First week code (default: current week)")
    p_export.add_argument("--weeks", type=int, default=2, help="Number of weeks")
    p_export.add_argument("--lang", choices=("ru", "de"), default="ru")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, dispatches to command handlers,
    and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    try:
        if args.command == "scrape":
            raise SystemExit(_cmd_scrape(args))
        if args.command == "parse":
            raise SystemExit(_cmd_parse(args))

        meta = _load_meta_or_none(args.processed_dir)
        if meta is None:
            print(f"No metadata in {args.processed_dir}. Run scrape + parse first.")
            raise SystemExit(1)

        if args.command == "groups":
            raise SystemExit(_cmd_groups(meta))
        if args.command == "weeks":
            raise SystemExit(_cmd_weeks(meta))
        if args.command == "show":
            raise SystemExit(_cmd_show(args, meta))
        if args.command == "select":
            raise SystemExit(_cmd_select(args, meta))
        if args.command == "export":
            raise SystemExit(_cmd_export(args, meta))
    except TimetableError as exc:
        print(f"Error: {exc}")
        raise SystemExit(1)

    raise SystemExit(2)
