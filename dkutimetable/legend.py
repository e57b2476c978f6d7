"""
Subject legend ("Дисциплины") parsing and lookup.

The legend is a two-column table below the grid mapping short subject codes
to full bilingual names. Codes in the grid and codes in the legend disagree
on trailing decorations, so lookup falls back to the part left of the slash.
"""

from __future__ import annotations

import logging
from typing import Dict, List, NamedTuple, Union

from bs4 import BeautifulSoup

from dkutimetable.text import collapse_spaces, left_side_code, normalize_code_key

logger = logging.getLogger(__name__)

SUBJECT_LEGEND_HEADING = "Дисциплины"

_HEADER_CODE = "Имя"
_HEADER_VALUE = "Полное назв/имя"


class LegendEntry(NamedTuple):
    code: str
    value: str


def _as_soup(html: Union[str, BeautifulSoup]) -> BeautifulSoup:
    if isinstance(html, BeautifulSoup):
        return html
    return BeautifulSoup(html, "lxml")


def parse_legend_entries(
    html: Union[str, BeautifulSoup],
    heading: str = SUBJECT_LEGEND_HEADING,
) -> List[LegendEntry]:
    """
    Extract ordered (code, value) pairs from the table following `heading`.

    Returns an empty list if the heading or its table is missing.
    """
    soup = _as_soup(html)

    heading_el = soup.find("b", string=lambda s: s is not None and collapse_spaces(s) == heading)
    if heading_el is None:
        return []

    table = heading_el.find_next("table")
    if table is None:
        return []

    cells = [collapse_spaces(td.get_text(" ")) for td in table.find_all("td")]

    entries: List[LegendEntry] = []
    for i in range(0, len(cells) - 1, 2):
        code, value = cells[i], cells[i + 1]
        if not code or not value:
            continue
        if code == _HEADER_CODE or value == _HEADER_VALUE:
            continue
        entries.append(LegendEntry(code, value))

    logger.debug("Legend %r: %d entries", heading, len(entries))
    return entries


class LegendResolver:
    """
    Case and format insensitive lookup of full subject names by short code.
    """

    def __init__(self, entries: List[LegendEntry]) -> None:
        self._by_full: Dict[str, str] = {}
        self._by_left: Dict[str, str] = {}
        for code, value in entries:
            self._by_full[normalize_code_key(code)] = value
            self._by_left[left_side_code(code)] = value

    def __call__(self, code: str) -> str:
        found = self._by_full.get(normalize_code_key(code))
        if found is not None:
            return found
        return self._by_left.get(left_side_code(code), "")

    def __len__(self) -> int:
        return len(self._by_full)


def has_events(html: Union[str, BeautifulSoup]) -> bool:
    return len(parse_legend_entries(html, SUBJECT_LEGEND_HEADING)) > 0
