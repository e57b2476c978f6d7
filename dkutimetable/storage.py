"""
Persistent storage for the user's selection (group + cohorts).

This module manages the file:

    data/processed/selection.json

Parsed schedules are rebuilt on every parse run; the selection is the only
user state and lives in its own file so re-parsing never touches it.
"""

from __future__ import annotations

import json
from pathlib import Path

from dkutimetable.cohorts import normalize_cohort_list
from dkutimetable.model import Selection
from dkutimetable.text import clean_text


def _default_selection_path() -> Path:
    """
    Return the default path of selection.json inside the package.

    A function instead of a constant so tests can point elsewhere.
    """
    base_dir = Path(__file__).resolve().parent
    return base_dir / "data" / "processed" / "selection.json"


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def load_selection(path: str | Path | None = None) -> Selection:
    """
    Load the stored selection.

    Returns an empty selection if the file does not exist or is invalid.
    """
    selection_path = Path(path) if path is not None else _default_selection_path()

    if not selection_path.exists():
        return Selection()

    try:
        data = json.loads(selection_path.read_text(encoding="utf-8"))
        group = data.get("group", "")
        if not isinstance(group, str):
            group = ""
        cohorts = normalize_cohort_list(data.get("cohorts", []))
        return Selection(group=clean_text(group), cohorts=_dedupe(cohorts))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError, AttributeError):
        return Selection()


def save_selection(selection: Selection, path: str | Path | None = None) -> None:
    """
    Save the selection, creating parent directories if needed.

    Cohort codes are cleaned and de-duplicated (order kept).
    """
    selection_path = Path(path) if path is not None else _default_selection_path()
    selection_path.parent.mkdir(parents=True, exist_ok=True)

    payload = {
        "group": clean_text(selection.group),
        "cohorts": _dedupe(normalize_cohort_list(list(selection.cohorts))),
    }
    selection_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
