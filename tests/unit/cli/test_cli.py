"""CLI behavior tests.

Verifies how ``repo2txt.cli.main`` picks its output sink, applies overrides,
and reports failures.
"""

from __future__ import annotations

import io
import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from repo2txt import cli
from repo2txt.config import AppConfig
from repo2txt.file_tree_model import RECORD_FILENAME


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()
        (self.root / "a.txt").write_text("alpha\n", encoding="utf-8")
        (self.root / "big.txt").write_text("b" * 64, encoding="utf-8")
        patches = [
            mock.patch("repo2txt.cli.load_app_config", return_value=AppConfig()),
            mock.patch("repo2txt.analysis.tokens._get_encoding", return_value=None),
        ]
        for patcher in patches:
            patcher.start()
            self.addCleanup(patcher.stop)
        self.stdout = io.StringIO()
        self.stderr = io.StringIO()
        for name, stream in (("sys.stdout", self.stdout), ("sys.stderr", self.stderr)):
            patcher = mock.patch(name, stream)
            patcher.start()
            self.addCleanup(patcher.stop)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_default_run_writes_output_file_and_selection_record(self) -> None:
        cli.main([str(self.root)])

        written = (self.root / "output.md").read_text(encoding="utf-8")
        self.assertTrue(written.startswith("# Collected Files\n"))
        self.assertIn("## a.txt\n\n```text\nalpha\n", written)
        self.assertTrue((self.root / RECORD_FILENAME).exists())
        self.assertIn("Wrote 2 files", self.stderr.getvalue())
        self.assertEqual(self.stdout.getvalue(), "")

    def test_stdout_mode_prints_export_without_writing_file(self) -> None:
        cli.main([str(self.root), "--stdout", "--no-save"])

        self.assertIn("## big.txt", self.stdout.getvalue())
        self.assertFalse((self.root / "output.md").exists())
        self.assertFalse((self.root / RECORD_FILENAME).exists())

    def test_stats_only_reports_totals(self) -> None:
        cli.main([str(self.root), "--stats"])

        self.assertIn("files=2 size=70 tokens=17", self.stderr.getvalue())
        self.assertFalse((self.root / "output.md").exists())
        self.assertFalse((self.root / RECORD_FILENAME).exists())

    def test_stdout_is_not_capped_like_the_clipboard(self) -> None:
        chunk = "y" * 1_000_000
        for i in range(11):
            (self.root / f"part{i:02d}.txt").write_text(chunk, encoding="utf-8")

        cli.main([str(self.root), "--stdout", "--no-save", "--max-file-size", "2097152"])

        output = self.stdout.getvalue()
        self.assertGreater(len(output.encode("utf-8")), 10 * 1024 * 1024)
        self.assertIn("## part10.txt", output)

    def test_stats_flags_totals_over_token_limit(self) -> None:
        with mock.patch("repo2txt.cli.load_app_config", return_value=AppConfig(token_limit=10)):
            cli.main([str(self.root), "--stats"])

        self.assertIn("tokens=17 (over token limit)", self.stderr.getvalue())

    def test_overrides_for_size_limit_and_template(self) -> None:
        template = self.root / "tpl.txt"
        template.write_text("<{{path}}>{{content}}</>\n", encoding="utf-8")
        (self.root / ".r2x_ignore").write_text("tpl.txt\n", encoding="utf-8")

        cli.main([str(self.root), "--stdout", "--no-save", "--max-file-size", "10", "--template", str(template)])

        output = self.stdout.getvalue()
        self.assertIn("<a.txt>alpha\n</>\n", output)
        self.assertIn("*File too large (64 bytes, limit: 10 bytes) - skipped*", output)
        self.assertNotIn("tpl.txt>", output)

    def test_clean_discards_saved_selection(self) -> None:
        record = {"nodes": [{"path": "a.txt", "selected": False, "expanded": False}]}
        (self.root / RECORD_FILENAME).write_text(json.dumps(record), encoding="utf-8")

        cli.main([str(self.root), "--stdout", "--no-save", "--clean"])

        self.assertIn("## a.txt", self.stdout.getvalue())
        self.assertFalse((self.root / RECORD_FILENAME).exists())

    def test_saved_selection_is_respected_without_clean(self) -> None:
        record = {"nodes": [{"path": "a.txt", "selected": False, "expanded": False}]}
        (self.root / RECORD_FILENAME).write_text(json.dumps(record), encoding="utf-8")

        cli.main([str(self.root), "--stdout", "--no-save"])

        self.assertNotIn("## a.txt", self.stdout.getvalue())
        self.assertIn("[ ] a.txt", self.stdout.getvalue())

    def test_missing_directory_exits_with_message(self) -> None:
        with self.assertRaises(SystemExit) as ctx:
            cli.main([str(self.root / "absent")])
        self.assertIn("Directory does not exist", str(ctx.exception.code))

    def test_rejects_non_positive_size_limit(self) -> None:
        with self.assertRaises(SystemExit):
            cli.main([str(self.root), "--max-file-size", "0"])


if __name__ == "__main__":
    unittest.main()
