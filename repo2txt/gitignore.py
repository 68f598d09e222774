"""Ignore-rule matchers for directory scans.

``GitIgnoreMatcher`` asks git which untracked paths are ignored under a root,
so scans honor ``.gitignore``, ``.git/info/exclude`` and global excludes
exactly as git does. ``IgnoreRulesMatcher`` compiles a root-local rules file
(``.r2x_ignore``) with gitignore wildmatch semantics via ``pathspec``.

Both match an entry by its own location, never by a symlink target: only
the containing directory is resolved, the final component is kept as named.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import pathspec

logger = logging.getLogger(__name__)

IGNORE_RULES_FILENAME = ".r2x_ignore"
GITIGNORE_MATCHER_CACHE_MAX = 64
GITIGNORE_MATCHER_CACHE_TTL_SECONDS = 2.0


def entry_path(path: Path) -> Path:
    """Absolute path of a directory entry without following the entry itself."""
    path = Path(path).absolute()
    if path.parent == path:
        return path
    return path.parent.resolve() / path.name


def root_relative(path: Path, root: Path) -> PurePosixPath | None:
    """Return ``path`` relative to ``root`` as a POSIX path, or ``None`` outside it."""
    try:
        return PurePosixPath(entry_path(path).relative_to(root).as_posix())
    except ValueError:
        return None


@dataclass(frozen=True)
class GitIgnoreMatcher:
    """Git's ignored entries under ``root``, as root-relative POSIX paths.

    An entry is ignored when it is listed itself or lies below a listed
    directory.
    """

    root: Path
    ignored_files: frozenset[PurePosixPath]
    ignored_dirs: frozenset[PurePosixPath]

    def is_ignored(self, path: Path, is_directory: bool = False) -> bool:
        relative = root_relative(path, self.root)
        if relative is None or relative == PurePosixPath("."):
            return False
        if relative in self.ignored_files or relative in self.ignored_dirs:
            return True
        return any(parent in self.ignored_dirs for parent in relative.parents)


@dataclass(frozen=True)
class IgnoreRulesMatcher:
    """Gitignore-style rules loaded from one file and anchored at ``root``."""

    root: Path
    spec: pathspec.PathSpec

    def is_ignored(self, path: Path, is_directory: bool = False) -> bool:
        relative = root_relative(path, self.root)
        if relative is None or relative == PurePosixPath("."):
            return False
        candidate = str(relative)
        if is_directory:
            candidate += "/"
        return self.spec.match_file(candidate)


def _run_git(args: list[str]) -> bytes | None:
    try:
        proc = subprocess.run(
            ["git", *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as exc:
        logger.debug("git %s failed: %s", " ".join(args), exc)
        return None
    return proc.stdout


def _load_matcher(root: Path) -> GitIgnoreMatcher | None:
    """Query git for ignored entries under ``root``.

    Returns ``None`` when git is missing, ``root`` is outside a work tree, or
    a git call fails. Entries from elsewhere in a larger repository are
    dropped.
    """
    if shutil.which("git") is None:
        return None

    root = root.resolve()
    toplevel = _run_git(["-C", str(root), "rev-parse", "--show-toplevel"])
    if not toplevel or not toplevel.strip():
        return None
    repo_root = Path(toplevel.decode("utf-8", errors="replace").strip()).resolve()
    try:
        root_in_repo = PurePosixPath(root.relative_to(repo_root).as_posix())
    except ValueError:
        return None

    listing = _run_git(
        ["-C", str(repo_root), "ls-files", "-z", "--others", "-i", "--exclude-standard", "--directory"]
    )
    if listing is None:
        return None

    files: set[PurePosixPath] = set()
    dirs: set[PurePosixPath] = set()
    for raw in listing.split(b"\x00"):
        name = raw.decode("utf-8", errors="replace")
        if not name.rstrip("/"):
            continue
        repo_relative = PurePosixPath(name.rstrip("/"))
        if root_in_repo != PurePosixPath("."):
            try:
                repo_relative = repo_relative.relative_to(root_in_repo)
            except ValueError:
                continue
        on_disk = root / repo_relative
        if name.endswith("/") or (not on_disk.is_symlink() and on_disk.is_dir()):
            dirs.add(repo_relative)
        else:
            files.add(repo_relative)

    return GitIgnoreMatcher(root=root, ignored_files=frozenset(files), ignored_dirs=frozenset(dirs))


@dataclass(frozen=True)
class _CachedMatcher:
    matcher: GitIgnoreMatcher | None
    root_mtime_ns: int | None
    loaded_at: float

    def fresh(self, root_mtime_ns: int | None, now: float) -> bool:
        return (
            self.root_mtime_ns == root_mtime_ns
            and now - self.loaded_at <= GITIGNORE_MATCHER_CACHE_TTL_SECONDS
        )


_MATCHER_CACHE: OrderedDict[str, _CachedMatcher] = OrderedDict()


def clear_gitignore_cache() -> None:
    _MATCHER_CACHE.clear()


def get_gitignore_matcher(root: Path) -> GitIgnoreMatcher | None:
    """Return a matcher for ``root``, reusing one that is at most a TTL old.

    A change to the root directory's mtime also forces a reload.
    """
    root = root.resolve()
    key = str(root)
    try:
        root_mtime_ns: int | None = root.stat().st_mtime_ns
    except OSError:
        root_mtime_ns = None
    now = time.monotonic()

    cached = _MATCHER_CACHE.get(key)
    if cached is not None and cached.fresh(root_mtime_ns, now):
        _MATCHER_CACHE.move_to_end(key)
        return cached.matcher

    matcher = _load_matcher(root)
    _MATCHER_CACHE[key] = _CachedMatcher(matcher=matcher, root_mtime_ns=root_mtime_ns, loaded_at=now)
    _MATCHER_CACHE.move_to_end(key)
    while len(_MATCHER_CACHE) > GITIGNORE_MATCHER_CACHE_MAX:
        _MATCHER_CACHE.popitem(last=False)
    return matcher


def read_ignore_rules(path: Path) -> list[str]:
    """Return non-blank, non-comment lines of an ignore-rules file."""
    try:
        text = path.read_text(encoding="utf-8", errors="ignore")
    except OSError:
        return []
    return [line.strip() for line in text.splitlines() if line.strip() and not line.strip().startswith("#")]


def load_ignore_rules_matcher(root: Path) -> IgnoreRulesMatcher | None:
    """Compile ``<root>/.r2x_ignore`` when present and non-empty."""
    root = root.resolve()
    rules_path = root / IGNORE_RULES_FILENAME
    if not rules_path.is_file():
        return None
    rules = read_ignore_rules(rules_path)
    if not rules:
        return None
    logger.info("Found %s with %d rules, adding to ignore rules", IGNORE_RULES_FILENAME, len(rules))
    return IgnoreRulesMatcher(root=root, spec=pathspec.PathSpec.from_lines("gitwildmatch", rules))


__all__ = [
    "IGNORE_RULES_FILENAME",
    "GitIgnoreMatcher",
    "IgnoreRulesMatcher",
    "clear_gitignore_cache",
    "entry_path",
    "get_gitignore_matcher",
    "load_ignore_rules_matcher",
    "read_ignore_rules",
    "root_relative",
]
