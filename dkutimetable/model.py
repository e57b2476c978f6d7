"""
Central data model definitions used across the project.

This module defines the canonical structure of the parser output so that:
- the parser, the schedule helpers and the exporters share the same fields
- processed JSON always has the same (camelCase) wire format
- entities stay immutable once a parse call has built them
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

TRACKS = ("de", "en", "kz", "pe")
TRACK_NONE = "none"

SCOPE_CORE_FIXED = "core_fixed"
SCOPE_COHORT_SHARED = "cohort_shared"


@dataclass(frozen=True)
class WeekOption:
    """
    One selectable week of the upstream navbar.
    """

    value: str
    label: str
    start_date_iso: str

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "label": self.label, "startDateIso": self.start_date_iso}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeekOption":
        return cls(value=data["value"], label=data["label"], start_date_iso=data["startDateIso"])


@dataclass(frozen=True)
class GroupOption:
    """
    One class group of the upstream navbar.

    `id` is the 1-based position in the upstream list and selects the
    group's page URL, so it must never be renumbered.
    """

    id: int
    code_raw: str
    code_ru: str
    code_de: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "codeRaw": self.code_raw, "codeRu": self.code_ru, "codeDe": self.code_de}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GroupOption":
        return cls(
            id=int(data["id"]),
            code_raw=data["codeRaw"],
            code_ru=data["codeRu"],
            code_de=data["codeDe"],
        )


@dataclass(frozen=True)
class MetaPayload:
    weeks: Tuple[WeekOption, ...] = ()
    groups: Tuple[GroupOption, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weeks": [w.to_dict() for w in self.weeks],
            "groups": [g.to_dict() for g in self.groups],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MetaPayload":
        return cls(
            weeks=tuple(WeekOption.from_dict(w) for w in data.get("weeks", [])),
            groups=tuple(GroupOption.from_dict(g) for g in data.get("groups", [])),
        )


@dataclass(frozen=True)
class Cohort:
    """
    A sub-group track (language or PE section) referenced by events.
    """

    code: str
    track: str
    label: str
    source_groups: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "track": self.track,
            "label": self.label,
            "sourceGroups": list(self.source_groups),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Cohort":
        return cls(
            code=data["code"],
            track=data["track"],
            label=data["label"],
            source_groups=tuple(data.get("sourceGroups", [])),
        )


@dataclass(frozen=True)
class LessonEvent:
    """
    Represents one concrete lesson (single date & period) of one group.
    """

    id: str
    date_iso: str
    day_index: int
    start_time: str
    end_time: str
    subject_short_raw: str
    subject_short_ru: str
    subject_short_de: str
    subject_full_raw: str
    subject_full_ru: str
    subject_full_de: str
    lesson_type: str
    room: str
    group_code: str
    origin_group_code: str
    track: str
    cohort_code: Optional[str]
    scope: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "dateIso": self.date_iso,
            "dayIndex": self.day_index,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "subjectShortRaw": self.subject_short_raw,
            "subjectShortRu": self.subject_short_ru,
            "subjectShortDe": self.subject_short_de,
            "subjectFullRaw": self.subject_full_raw,
            "subjectFullRu": self.subject_full_ru,
            "subjectFullDe": self.subject_full_de,
            "lessonType": self.lesson_type,
            "room": self.room,
            "groupCode": self.group_code,
            "originGroupCode": self.origin_group_code,
            "track": self.track,
            "cohortCode": self.cohort_code,
            "scope": self.scope,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LessonEvent":
        return cls(
            id=data["id"],
            date_iso=data["dateIso"],
            day_index=int(data.get("dayIndex", 0)),
            start_time=data["startTime"],
            end_time=data["endTime"],
            subject_short_raw=data.get("subjectShortRaw", ""),
            subject_short_ru=data.get("subjectShortRu", ""),
            subject_short_de=data.get("subjectShortDe", ""),
            subject_full_raw=data.get("subjectFullRaw", ""),
            subject_full_ru=data.get("subjectFullRu", ""),
            subject_full_de=data.get("subjectFullDe", ""),
            lesson_type=data.get("lessonType", ""),
            room=data.get("room", ""),
            group_code=data["groupCode"],
            origin_group_code=data.get("originGroupCode", data["groupCode"]),
            track=data.get("track", TRACK_NONE),
            cohort_code=data.get("cohortCode"),
            scope=data.get("scope", SCOPE_CORE_FIXED),
        )


@dataclass(frozen=True)
class TimetablePage:
    """
    Result of parsing one group/week page.
    """

    events: Tuple[LessonEvent, ...] = ()
    cohorts: Tuple[Cohort, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "events": [e.to_dict() for e in self.events],
            "cohorts": [c.to_dict() for c in self.cohorts],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimetablePage":
        return cls(
            events=tuple(LessonEvent.from_dict(e) for e in data.get("events", [])),
            cohorts=tuple(Cohort.from_dict(c) for c in data.get("cohorts", [])),
        )


@dataclass
class Selection:
    """
    The user's persisted choice: one group plus the cohorts they attend.
    """

    group: str = ""
    cohorts: List[str] = field(default_factory=list)
