"""Tests for ignore-rule matchers and the git matcher cache."""

from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
import unittest
from pathlib import Path, PurePosixPath
from unittest import mock

from repo2txt.gitignore import (
    IGNORE_RULES_FILENAME,
    GitIgnoreMatcher,
    _load_matcher,
    clear_gitignore_cache,
    get_gitignore_matcher,
    load_ignore_rules_matcher,
    read_ignore_rules,
)


class GitMatcherCacheTests(unittest.TestCase):
    def setUp(self) -> None:
        clear_gitignore_cache()

    def tearDown(self) -> None:
        clear_gitignore_cache()

    def test_repeated_lookups_share_one_git_listing(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            with mock.patch("repo2txt.gitignore._load_matcher", return_value=mock.sentinel.matcher) as load:
                results = [get_gitignore_matcher(root) for _ in range(3)]
        self.assertEqual(results, [mock.sentinel.matcher] * 3)
        self.assertEqual(load.call_count, 1)

    def test_cache_entry_expires(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            with mock.patch(
                "repo2txt.gitignore._load_matcher",
                side_effect=[mock.sentinel.old, mock.sentinel.new],
            ) as load, mock.patch("repo2txt.gitignore.time.monotonic", side_effect=[10.0, 20.0]):
                self.assertIs(get_gitignore_matcher(root), mock.sentinel.old)
                self.assertIs(get_gitignore_matcher(root), mock.sentinel.new)
        self.assertEqual(load.call_count, 2)

    def test_root_change_invalidates_cache(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            with mock.patch(
                "repo2txt.gitignore._load_matcher",
                side_effect=[mock.sentinel.old, mock.sentinel.new],
            ):
                get_gitignore_matcher(root)
                (root / "added.txt").write_text("x", encoding="utf-8")
                self.assertIs(get_gitignore_matcher(root), mock.sentinel.new)


class GitIgnoreMatcherTests(unittest.TestCase):
    def test_ignored_directory_covers_descendants(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / "build" / "out").mkdir(parents=True)
            matcher = GitIgnoreMatcher(
                root=root,
                ignored_files=frozenset({PurePosixPath("secret.env")}),
                ignored_dirs=frozenset({PurePosixPath("build")}),
            )
            self.assertTrue(matcher.is_ignored(root / "build" / "out" / "a.o"))
            self.assertTrue(matcher.is_ignored(root / "secret.env"))
            self.assertFalse(matcher.is_ignored(root / "main.py"))
            self.assertFalse(matcher.is_ignored(root.parent / "elsewhere.txt"))


def _link_pair(root: Path, test: unittest.TestCase) -> tuple[Path, Path]:
    real = root / "real.txt"
    real.write_text("payload", encoding="utf-8")
    link = root / "link.txt"
    try:
        os.symlink(real, link)
    except (OSError, NotImplementedError) as exc:
        test.skipTest(f"symlinks unavailable: {exc}")
    return real, link


class SymlinkEntryTests(unittest.TestCase):
    def test_git_matcher_matches_the_link_not_its_target(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            real, link = _link_pair(root, self)
            by_link = GitIgnoreMatcher(root, frozenset({PurePosixPath("link.txt")}), frozenset())
            by_target = GitIgnoreMatcher(root, frozenset({PurePosixPath("real.txt")}), frozenset())

            self.assertTrue(by_link.is_ignored(link))
            self.assertFalse(by_link.is_ignored(real))
            self.assertTrue(by_target.is_ignored(real))
            self.assertFalse(by_target.is_ignored(link))

    def test_rules_file_matches_the_link_not_its_target(self) -> None:
        for rule, ignored, kept in (("link.txt", "link.txt", "real.txt"), ("real.txt", "real.txt", "link.txt")):
            with self.subTest(rule=rule), tempfile.TemporaryDirectory() as tmp:
                root = Path(tmp).resolve()
                _link_pair(root, self)
                (root / IGNORE_RULES_FILENAME).write_text(rule + "\n", encoding="utf-8")
                matcher = load_ignore_rules_matcher(root)
                assert matcher is not None

                self.assertTrue(matcher.is_ignored(root / ignored))
                self.assertFalse(matcher.is_ignored(root / kept))

    @unittest.skipIf(shutil.which("git") is None, "git is not installed")
    def test_git_listing_keeps_link_names(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            subprocess.run(["git", "init", "-q", str(root)], check=True)
            real, link = _link_pair(root, self)
            (root / ".gitignore").write_text("link.txt\n", encoding="utf-8")

            matcher = _load_matcher(root)

            assert matcher is not None
            self.assertTrue(matcher.is_ignored(link))
            self.assertFalse(matcher.is_ignored(real))


class IgnoreRulesFileTests(unittest.TestCase):
    def test_read_rules_skips_comments_and_blanks(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / IGNORE_RULES_FILENAME
            path.write_text("# generated\n\n*.log\n  dist/  \n", encoding="utf-8")
            self.assertEqual(read_ignore_rules(path), ["*.log", "dist/"])
            self.assertEqual(read_ignore_rules(Path(tmp) / "missing"), [])

    def test_missing_or_empty_rules_file_gives_no_matcher(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            self.assertIsNone(load_ignore_rules_matcher(root))
            (root / IGNORE_RULES_FILENAME).write_text("# nothing\n", encoding="utf-8")
            self.assertIsNone(load_ignore_rules_matcher(root))

    def test_rules_use_gitignore_semantics(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp).resolve()
            (root / IGNORE_RULES_FILENAME).write_text("*.log\ndist/\n/top.txt\n", encoding="utf-8")
            matcher = load_ignore_rules_matcher(root)
            assert matcher is not None

            self.assertTrue(matcher.is_ignored(root / "nested" / "debug.log"))
            self.assertTrue(matcher.is_ignored(root / "dist", is_directory=True))
            self.assertFalse(matcher.is_ignored(root / "dist", is_directory=False))
            self.assertTrue(matcher.is_ignored(root / "top.txt"))
            self.assertFalse(matcher.is_ignored(root / "sub" / "top.txt"))
            self.assertFalse(matcher.is_ignored(root))


if __name__ == "__main__":
    unittest.main()
