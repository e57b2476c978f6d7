"""
Splitting of bilingual "Russian/German" subject labels.

Examples:
    "Социология/Soziologie лекция" -> ("Социология", "Soziologie", "лекция")
    "Физкультура пр."              -> ("Физкультура", "Физкультура", "пр.")
    "Казахский язык/Қазақ тілі"    -> Kazakh after the slash, no German half
"""

from __future__ import annotations

import re
from typing import NamedTuple

from dkutimetable.text import CYRILLIC, GERMAN_PREFIX_RE, KNOWN_LESSON_TYPE_RE, LESSON_TYPE_SUFFIX_RE

_CYRILLIC_START_RE = re.compile(rf"^[{CYRILLIC}]")


class BilingualLabel(NamedTuple):
    primary: str
    secondary: str
    lesson_type: str


def is_missing_german_name(value: str) -> bool:
    """
    True if the part after the slash is Cyrillic (a Kazakh name in the German slot).
    """
    _, sep, rest = value.partition("/")
    if not sep:
        return False
    return bool(_CYRILLIC_START_RE.match(rest.strip()))


def split_bilingual_label(raw: str, no_german: bool = False) -> BilingualLabel:
    """
    Split a raw label into its Russian half, German half and lesson type.

    With `no_german` the German half repeats the Russian one.
    """
    value = raw.lstrip(".*").strip()
    left, sep, rest = value.partition("/")

    if not sep:
        known = KNOWN_LESSON_TYPE_RE.search(value)
        if known:
            stripped = value[: known.start()].strip()
            return BilingualLabel(stripped, stripped, known.group(1))
        return BilingualLabel(value, value, "")

    primary = left.strip() or value
    rest = rest.strip()
    suffix = LESSON_TYPE_SUFFIX_RE.search(rest)
    lesson_type = suffix.group(1) if suffix else ""
    if no_german:
        return BilingualLabel(primary, primary, lesson_type)

    german = GERMAN_PREFIX_RE.match(rest)
    secondary = (german.group(1).strip() if german else rest) or value
    return BilingualLabel(primary, secondary, lesson_type)


def sanitize_label(value: str) -> str:
    """
    Strip a trailing slash, leading dashes and surrounding whitespace.
    """
    if value.endswith("/"):
        value = value[:-1]
    return value.lstrip("-").strip()
