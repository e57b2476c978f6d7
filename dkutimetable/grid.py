"""
Grid walker: HTML table geometry -> logical (row, column) grid.

The timetable page has one main table inside a <center> container.
Column 0 holds the period (time range) text, then six days follow, each
DAY_COLUMN_WIDTH virtual columns wide. Cells span rows and columns, so the
logical position of a cell is reconstructed with an occupancy vector the
same way a browser lays out rowspan/colspan.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from dkutimetable.errors import MissingAnchorError
from dkutimetable.text import collapse_spaces

logger = logging.getLogger(__name__)

DAY_COLUMN_WIDTH = 12
DAY_COUNT = 6

_DATE_MARKER_RE = re.compile(r"^\d{1,2}\.\d{1,2}\.\d{4}(?:\s*-\s*\d{1,2}\.\d{1,2}\.\d{4})?$")
_UNDERSCORE_RUN = "_" * 16
_TIME_RE = re.compile(r"\b\d{1,2}:\d{2}\b")


# ---------------------------------------------------------------------------
# Cells
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GridCell:
    """
    One physical <td> with its spans and extracted text.
    """

    col_span: int
    row_span: int
    text: str
    nested_lines: Tuple[str, ...] = ()

    def lines(self) -> List[str]:
        """
        Nested sub-table lines if there are any, else the flattened text as one line.
        """
        if self.nested_lines:
            return list(self.nested_lines)
        fallback = collapse_spaces(self.text)
        return [fallback] if fallback else []


@dataclass(frozen=True)
class PlacedCell:
    """
    A cell at its logical grid position.
    """

    row: int
    col: int
    cell: GridCell

    @property
    def row_span(self) -> int:
        return self.cell.row_span

    @property
    def col_span(self) -> int:
        return self.cell.col_span


class TimeRange(NamedTuple):
    start: str
    end: str


# ---------------------------------------------------------------------------
# Text extraction
# ---------------------------------------------------------------------------


def _is_text(node) -> bool:
    # comments, doctypes, CDATA etc. are NavigableStrings too
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def _collect_text(node: Tag, skip_tables: bool = False) -> str:
    parts: List[str] = []
    for child in node.children:
        if _is_text(child):
            parts.append(str(child))
        elif isinstance(child, Tag):
            if skip_tables and child.name == "table":
                continue
            parts.append(_collect_text(child, skip_tables))
    return "".join(parts)


def _first_level_rows(table: Tag) -> List[Tag]:
    """
    <tr> elements whose nearest enclosing table is `table` itself.
    """
    return [tr for tr in table.find_all("tr") if tr.find_parent("table") is table]


def _nested_lines(cell: Tag) -> List[str]:
    nested = cell.find("table")
    if nested is None:
        return []

    lines: List[str] = []
    for row in _first_level_rows(nested):
        first_td = row.find("td", recursive=False)
        if first_td is None:
            continue
        # tables inside the first cell hold teacher/extra annotations
        value = collapse_spaces(_collect_text(first_td, skip_tables=True))
        if value:
            lines.append(value)
    return lines


def _positive_span(value: Optional[str]) -> int:
    try:
        span = int(str(value if value is not None else "1").strip())
    except ValueError:
        return 1
    return span if span > 0 else 1


def _row_cells(row: Tag) -> List[GridCell]:
    cells: List[GridCell] = []
    for td in row.find_all("td", recursive=False):
        cells.append(
            GridCell(
                col_span=_positive_span(td.get("colspan")),
                row_span=_positive_span(td.get("rowspan")),
                text=_collect_text(td),
                nested_lines=tuple(_nested_lines(td)),
            )
        )
    return cells


# ---------------------------------------------------------------------------
# Main table
# ---------------------------------------------------------------------------


def _as_soup(html: Union[str, BeautifulSoup]) -> BeautifulSoup:
    if isinstance(html, BeautifulSoup):
        return html
    return BeautifulSoup(html, "lxml")


def find_main_table(soup: BeautifulSoup) -> Tag:
    """
    First <table> that is a direct child of a <center> container.
    """
    centers = soup.find_all("center")
    if not centers:
        raise MissingAnchorError("center container")

    for center in centers:
        table = center.find("table", recursive=False)
        if table is not None:
            return table
    raise MissingAnchorError("main table", "no <table> directly inside <center>")


def collect_main_table_rows(html: Union[str, BeautifulSoup]) -> List[List[GridCell]]:
    """
    Physical rows of the main table (direct <tr> children or rows of direct <tbody>).
    """
    table = find_main_table(_as_soup(html))

    rows: List[List[GridCell]] = []
    for child in table.find_all(["tr", "tbody"], recursive=False):
        if child.name == "tr":
            rows.append(_row_cells(child))
            continue
        for tr in child.find_all("tr", recursive=False):
            rows.append(_row_cells(tr))

    if not rows:
        raise MissingAnchorError("table rows", "main table has no <tr>")
    logger.debug("Main table: %d physical rows", len(rows))
    return rows


def walk_grid(rows: Sequence[Sequence[GridCell]]) -> Iterator[PlacedCell]:
    """
    Assign each physical cell its logical column.

    occupancy[c] counts the rows for which column c is still covered by a
    cell from an earlier row. Before placing a cell the column pointer skips
    covered columns; after each row every positive slot is decremented.
    """
    if not rows:
        return

    col_count = sum(cell.col_span for cell in rows[0])
    occupancy = [0] * max(col_count, 1)

    for row_index, cells in enumerate(rows):
        col = 0
        for cell in cells:
            while col < len(occupancy) and occupancy[col] > 0:
                col += 1

            yield PlacedCell(row=row_index, col=col, cell=cell)

            for c in range(col, min(len(occupancy), col + cell.col_span)):
                occupancy[c] = max(occupancy[c], cell.row_span)
            col += cell.col_span

        for c in range(len(occupancy)):
            if occupancy[c] > 0:
                occupancy[c] -= 1


def day_index_for_column(col: int) -> int:
    return (col - 1) // DAY_COLUMN_WIDTH


# ---------------------------------------------------------------------------
# Cell classification
# ---------------------------------------------------------------------------


def parse_time_range(text: str) -> Optional[TimeRange]:
    """
    "1 пара 8:00 - 9:20" -> ("08:00", "09:20"): first and last time of the text.
    """
    times = _TIME_RE.findall(text)
    if len(times) < 2:
        return None
    return TimeRange(_pad_time(times[0]), _pad_time(times[-1]))


def _pad_time(value: str) -> str:
    hours, minutes = value.split(":")
    return f"{hours.zfill(2)}:{minutes}"


def is_date_marker_cell(value: str) -> bool:
    # holiday cells: "23.3.2026" or "23.3.2026-23.3.2026"
    return bool(_DATE_MARKER_RE.match(value))


def is_underscore_placeholder(value: str) -> bool:
    return _UNDERSCORE_RUN in value or (bool(value) and set(value) == {"_"})


def is_unknown_placeholder(value: str) -> bool:
    stripped = value.strip()
    return bool(stripped) and set(stripped) == {"?"}


def is_renderable_subject(value: str) -> bool:
    return bool(value) and not is_underscore_placeholder(value) and not is_date_marker_cell(value)
