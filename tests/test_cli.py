"""
Tests for CLI entry points.

Every test works on temporary raw/processed directories so the package's
own data directory and the stored selection are never touched.
"""

import io
import tempfile
import unittest
from contextlib import redirect_stdout
from datetime import date
from pathlib import Path
from unittest import mock

from html_samples import NAVBAR_HTML, lesson, period, timetable_page

from dkutimetable.cli import main
from dkutimetable.storage import load_selection


def _write_raw(raw: Path) -> None:
    (raw / "frames").mkdir(parents=True)
    (raw / "frames" / "navbar.htm").write_text(NAVBAR_HTML, encoding="utf-8")
    (raw / "10" / "c").mkdir(parents=True)
    rows = [
        "<tr>" + period("1 8:00-9:20") + lesson("СОЦ", "Иванов", "204") + "</tr>",
        "<tr></tr>",
    ]
    (raw / "10" / "c" / "c00001.htm").write_text(timetable_page(rows), encoding="utf-8")


class TestCLI(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        base = Path(self._tmp.name)
        self.raw = base / "raw"
        self.out = base / "processed"
        self.selection = base / "selection.json"
        _write_raw(self.raw)

    def run_cli(self, *argv: str) -> tuple[int, str]:
        args = ["--raw-dir", str(self.raw), "--processed-dir", str(self.out), "--selection", str(self.selection)]
        buf = io.StringIO()
        with redirect_stdout(buf), self.assertRaises(SystemExit) as ctx:
            main(args + list(argv))
        return ctx.exception.code, buf.getvalue()

    def test_commands_need_parsed_metadata(self) -> None:
        code, out = self.run_cli("groups")
        self.assertEqual(code, 1)
        self.assertIn("Run scrape + parse first", out)

    def test_parse_then_list(self) -> None:
        code, out = self.run_cli("parse")
        self.assertEqual(code, 0)
        self.assertIn("Parsed 1 pages", out)
        self.assertTrue((self.out / "meta.json").exists())
        self.assertTrue((self.out / "schedules" / "10" / "1.json").exists())

        code, out = self.run_cli("groups")
        self.assertEqual(code, 0)
        self.assertIn("1-ТЛ/-TL", out)

        code, out = self.run_cli("weeks")
        self.assertEqual(code, 0)
        self.assertIn("10 | 2026-03-02", out)

    def test_parse_skips_week_with_impossible_date(self) -> None:
        navbar = self.raw / "frames" / "navbar.htm"
        navbar.write_text(NAVBAR_HTML.replace(">9.3.2026<", ">31.2.2026<"), encoding="utf-8")
        (self.raw / "11" / "c").mkdir(parents=True)
        page = (self.raw / "10" / "c" / "c00001.htm").read_text(encoding="utf-8")
        (self.raw / "11" / "c" / "c00001.htm").write_text(page, encoding="utf-8")
        code, out = self.run_cli("parse")
        self.assertEqual(code, 0)
        self.assertIn("Parsed 1 pages", out)

        code, out = self.run_cli("weeks")
        self.assertNotIn("11 |", out)

    def test_selection_defaults_to_processed_dir(self) -> None:
        self.run_cli("parse")
        argv = ["--raw-dir", str(self.raw), "--processed-dir", str(self.out), "select", "2-TL"]
        with redirect_stdout(io.StringIO()), self.assertRaises(SystemExit) as ctx:
            main(argv)
        self.assertEqual(ctx.exception.code, 0)
        self.assertEqual(load_selection(self.out / "selection.json").group, "2-ТЛ/-TL")

    def test_show_week(self) -> None:
        self.run_cli("parse")
        code, out = self.run_cli("show", "1-TL", "--week", "10")
        self.assertEqual(code, 0)
        self.assertIn("2026-03-02 08:00-09:20", out)
        self.assertIn("@ 204", out)

    def test_show_unknown_group(self) -> None:
        self.run_cli("parse")
        code, out = self.run_cli("show", "9-XX")
        self.assertEqual(code, 1)
        self.assertIn("Unknown group", out)

    def test_select_stores_selection(self) -> None:
        self.run_cli("parse")
        code, _ = self.run_cli("select", "1-ТЛ", "--cohort", "D7")
        self.assertEqual(code, 0)
        selection = load_selection(self.selection)
        self.assertEqual(selection.group, "1-ТЛ/-TL")
        self.assertEqual(selection.cohorts, ["D7"])

    def test_export_uses_stored_selection(self) -> None:
        self.run_cli("parse")
        self.run_cli("select", "1-ТЛ")
        ics = Path(self._tmp.name) / "cal" / "out.ics"
        with mock.patch("dkutimetable.cli.today_in_almaty", return_value=date(2026, 3, 3)):
            code, out = self.run_cli("export", str(ics))
        self.assertEqual(code, 0)
        self.assertIn("Exported 1 events", out)
        self.assertIn("X-WR-CALNAME:DKU 1-ТЛ/-TL", ics.read_text(encoding="utf-8"))


if __name__ == "__main__":
    unittest.main()
