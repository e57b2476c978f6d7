from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import Iterable, List, Optional

import requests

from dkutimetable.errors import FetchError, TimetableError
from dkutimetable.parse import NAVBAR_PATH, RAW_DIR, group_page_path, parse_nav_html

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# URLs
# ---------------------------------------------------------------------------

BASE_URL = "https://timetable.dku.kz"
REQUEST_TIMEOUT = 15


# ---------------------------------------------------------------------------
# Core logic
# ---------------------------------------------------------------------------


def fetch_text(path: str, session: Optional[requests.Session] = None) -> str:
    """
    Download one upstream page, e.g. "frames/navbar.htm" or "10/c/c00007.htm".
    """
    url = f"{BASE_URL}/{path}"
    http = session or requests
    try:
        resp = http.get(url, timeout=REQUEST_TIMEOUT, headers={"cache-control": "no-cache"})
        resp.raise_for_status()
    except requests.RequestException as exc:
        raise FetchError(f"Failed to fetch {url}: {exc}") from exc

    # the upstream server does not always declare its charset
    if not resp.encoding or resp.encoding.lower() == "iso-8859-1":
        resp.encoding = resp.apparent_encoding
    return resp.text


def _cache(path: str, raw_dir: Path, refresh: bool, session: requests.Session) -> tuple[str, bool]:
    out_file = raw_dir / path
    if out_file.exists() and not refresh:
        logger.debug("SKIP  %s", path)
        return out_file.read_text(encoding="utf-8"), False

    logger.info("FETCH %s", path)
    text = fetch_text(path, session)
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text(text, encoding="utf-8")
    return text, True


def scrape_all(
    weeks: Optional[Iterable[str]] = None,
    refresh: bool = False,
    sleep_seconds: float = 0.2,
    raw_dir: Path = RAW_DIR,
) -> int:
    """
    Cache the navbar and every group page of the selected weeks as HTML.

    Returns the number of pages downloaded (cache hits are not counted).
    """
    raw_dir.mkdir(parents=True, exist_ok=True)
    wanted = {w.zfill(2) for w in weeks} if weeks else None

    with requests.Session() as session:
        # the navbar is always refetched: it defines the weeks and group ids
        navbar, _ = _cache(NAVBAR_PATH, raw_dir, True, session)
        meta = parse_nav_html(navbar)

        selected = [w for w in meta.weeks if wanted is None or w.value in wanted]
        logger.info("Found %d weeks x %d groups", len(selected), len(meta.groups))

        fetched = 0
        for week in selected:
            for group in meta.groups:
                _, downloaded = _cache(group_page_path(week.value, group.id), raw_dir, refresh, session)
                if downloaded:
                    fetched += 1
                    time.sleep(sleep_seconds)

    logger.info("Scraping finished: %d pages downloaded", fetched)
    return fetched


# ---------------------------------------------------------------------------
# CLI entry
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="dkutimetable.scrape", description="Scrape timetable pages (cache HTML)")
    p.add_argument("--week", "-w", action="append", default=None, help="Week code (e.g. 10), repeatable")
    p.add_argument("--refresh", action="store_true", help="Re-fetch and overwrite existing HTML files")
    p.add_argument("--sleep", type=float, default=0.2, help="Sleep seconds between requests")
    return p


def main(argv: List[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    try:
        scrape_all(args.week, refresh=args.refresh, sleep_seconds=args.sleep)
    except TimetableError as exc:
        logger.error("%s", exc)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
