"""
iCalendar (.ics) export.

Lesson events are written with local Almaty times (TZID) so calendar apps
show them at the institution's wall-clock time. UIDs ignore the room, so a
room change updates an existing calendar entry instead of adding one.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from dkutimetable.hashing import fnv1a_hex
from dkutimetable.model import LessonEvent
from dkutimetable.schedule import ALMATY_TIME_ZONE

PRODID = "-//DKU Timetable//EN"
UID_DOMAIN = "dku-timetable"

_VTIMEZONE = [
    "BEGIN:VTIMEZONE",
    f"TZID:{ALMATY_TIME_ZONE}",
    "BEGIN:STANDARD",
    "DTSTART:19700101T000000",
    "TZOFFSETFROM:+0500",
    "TZOFFSETTO:+0500",
    "TZNAME:+05",
    "END:STANDARD",
    "END:VTIMEZONE",
]


def _ics_escape(text: str) -> str:
    """
    Escape text for ICS fields (very small subset, sufficient for our use).
    """
    return (
        text.replace("\\", "\\\\").replace("\r\n", "\\n").replace("\n", "\\n").replace(";", "\\;").replace(",", "\\,")
    )


def _fold_line(line: str, limit: int = 75) -> str:
    """
    Fold a content line into chunks of at most `limit` UTF-8 octets.

    Continuation lines start with a single space, which counts toward the limit.
    Characters are never split across chunks.
    """
    if len(line.encode("utf-8")) <= limit:
        return line

    chunks: list[str] = []
    current = ""
    size = 0
    for ch in line:
        width = len(ch.encode("utf-8"))
        budget = limit if not chunks else limit - 1
        if size + width > budget:
            chunks.append(current)
            current, size = "", 0
        current += ch
        size += width
    chunks.append(current)
    return "\r\n ".join(chunks)


def _dt_local(date_yyyy_mm_dd: str, time_hh_mm: str) -> str:
    """
    Convert date + time to ICS local datetime string 'YYYYMMDDTHHMM00'.
    """
    dt = datetime.strptime(f"{date_yyyy_mm_dd} {time_hh_mm}", "%Y-%m-%d %H:%M")
    return dt.strftime("%Y%m%dT%H%M00")


def calendar_title(group_code: str) -> str:
    return f"DKU {group_code}"


def build_uid(event: LessonEvent) -> str:
    base = "|".join(
        [
            event.date_iso,
            event.start_time,
            event.end_time,
            event.group_code,
            event.subject_short_raw,
            event.cohort_code or "",
        ]
    )
    return f"{fnv1a_hex(base)}@{UID_DOMAIN}"


def event_summary(event: LessonEvent, lang: str = "ru") -> str:
    if lang == "de":
        candidates = (event.subject_full_de, event.subject_short_de, event.subject_full_ru, event.subject_short_ru)
    else:
        candidates = (event.subject_full_ru, event.subject_short_ru, event.subject_full_de, event.subject_short_de)
    for text in candidates:
        if text:
            return text
    return event.subject_short_raw


def build_ics_calendar(
    title: str,
    events: Iterable[LessonEvent],
    lang: str = "ru",
    now: Optional[datetime] = None,
) -> str:
    """
    Render events as one VCALENDAR string with CRLF line endings.
    """
    dtstamp = (now or datetime.now(timezone.utc)).astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")

    lines: list[str] = []
    lines.append("BEGIN:VCALENDAR")
    lines.append("VERSION:2.0")
    lines.append(f"PRODID:{PRODID}")
    lines.append("CALSCALE:GREGORIAN")
    lines.append("METHOD:PUBLISH")
    lines.append(f"X-WR-CALNAME:{_ics_escape(title)}")
    lines.extend(_VTIMEZONE)

    for ev in events:
        try:
            dtstart = _dt_local(ev.date_iso, ev.start_time)
            dtend = _dt_local(ev.date_iso, ev.end_time)
        except ValueError:
            continue

        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:{_ics_escape(build_uid(ev))}")
        lines.append(f"DTSTAMP:{dtstamp}")
        lines.append(f"DTSTART;TZID={ALMATY_TIME_ZONE}:{dtstart}")
        lines.append(f"DTEND;TZID={ALMATY_TIME_ZONE}:{dtend}")
        lines.append(f"SUMMARY:{_ics_escape(event_summary(ev, lang))}")
        if ev.room:
            lines.append(f"LOCATION:{_ics_escape(ev.room)}")
        if ev.lesson_type:
            lines.append(f"DESCRIPTION:{_ics_escape(ev.lesson_type)}")
        lines.append("SEQUENCE:0")
        lines.append("END:VEVENT")

    lines.append("END:VCALENDAR")

    # ICS standard uses CRLF
    return "\r\n".join(_fold_line(line) for line in lines) + "\r\n"


def export_events_to_ics(
    events: list[LessonEvent],
    out_path: str | Path,
    title: str = "DKU",
    lang: str = "ru",
) -> int:
    """
    Export events to an .ics file. Returns number of exported events.
    """
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    text = build_ics_calendar(title, events, lang)
    out.write_text(text, encoding="utf-8", newline="")
    return text.count("BEGIN:VEVENT")
