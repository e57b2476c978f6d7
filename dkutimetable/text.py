"""
Text normalisation helpers.

Every other module builds on these: markup fragments and extracted text
runs are decoded, stripped of tags and collapsed to single ASCII spaces.
All functions are pure and never raise.
"""

from __future__ import annotations

import re

# Cyrillic plus the extra Kazakh letters used in subject names
CYRILLIC = "А-Яа-яЁёҚқӘәҒғҢңӨөҰұҮүІіҺһ"

_TAG_RE = re.compile(r"<[^>]*>")
_NUMERIC_ENTITY_RE = re.compile(r"&#(\d+);")
_WHITESPACE_RE = re.compile(r"[\s\u00a0]+")
GERMAN_PREFIX_RE = re.compile(rf"^(.*?)\s+[{CYRILLIC}]")
LESSON_TYPE_SUFFIX_RE = re.compile(rf"\s+([{CYRILLIC}].*)$")
KNOWN_LESSON_TYPE_RE = re.compile(r"\s+(пр\.|лек\.|лекция|практика|семинар)$")
_PAREN_SUFFIX_RE = re.compile(r"\s*\(.*$")

_ENTITIES = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&lt;", "<"),
    ("&gt;", ">"),
)


def _numeric_entity(match: re.Match) -> str:
    try:
        return chr(int(match.group(1)))
    except (ValueError, OverflowError):
        return match.group(0)


def decode_html(value: str) -> str:
    """
    Decode the fixed entity set found in upstream pages.
    """
    for entity, replacement in _ENTITIES:
        value = value.replace(entity, replacement)
    return _NUMERIC_ENTITY_RE.sub(_numeric_entity, value)


def strip_tags(value: str) -> str:
    return decode_html(_TAG_RE.sub(" ", value))


def collapse_spaces(value: str) -> str:
    """
    Collapse whitespace (including non-breaking spaces) in already extracted text.
    """
    return _WHITESPACE_RE.sub(" ", value).strip()


def clean_text(value: str) -> str:
    """
    Strip tags, decode entities and collapse whitespace.
    """
    return collapse_spaces(strip_tags(value))


def _strip_markers(value: str) -> str:
    return clean_text(value).lstrip(".*")


def russian_only_label(value: str) -> str:
    """
    Left half of a "Russian/German" label, or the whole label without a slash.
    """
    text = _strip_markers(value)
    left, sep, _ = text.partition("/")
    if not sep:
        return text
    return left.strip() or text


def german_only_label(value: str) -> str:
    """
    Right half of a "Russian/German" label with any Cyrillic suffix removed.
    """
    text = _strip_markers(value)
    _, sep, rest = text.partition("/")
    if not sep:
        return text
    rest = rest.strip()
    match = GERMAN_PREFIX_RE.match(rest)
    return (match.group(1).strip() if match else rest) or text


def extract_lesson_type(value: str) -> str:
    """
    Cyrillic lesson-type suffix of a label.

    "Социология/Soziologie лекция/семинар" -> "лекция/семинар"
    """
    text = _strip_markers(value)
    _, sep, rest = text.partition("/")
    if not sep:
        known = KNOWN_LESSON_TYPE_RE.search(text)
        return known.group(1) if known else ""
    match = LESSON_TYPE_SUFFIX_RE.search(rest.strip())
    return match.group(1) if match else ""


def strip_paren_suffix(value: str) -> str:
    return _PAREN_SUFFIX_RE.sub("", value)


def normalize_code_key(value: str) -> str:
    """
    Case and format insensitive key for short subject codes.
    """
    text = re.sub(r"\s+", "", clean_text(value).lstrip("."))
    if text.endswith("/"):
        text = text[:-1]
    return text.upper()


def left_side_code(value: str) -> str:
    return normalize_code_key(clean_text(value).split("/")[0])
