"""Command-line front door for repo2txt.

Scans a directory, waits for background analysis, then reports stats and/or
exports selected files to a Markdown document or stdout.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .config import load_app_config
from .errors import Repo2TxtError
from .file_tree_model import clear_selection_record
from .session import Repo2TxtSession


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repo2txt",
        description="Collect the selected files of a directory tree into one Markdown document.",
    )
    parser.add_argument("path", nargs="?", default=None, help="Directory to scan. Defaults to current directory.")
    parser.add_argument("-o", "--output", default=None, help="Output file (relative paths resolve against PATH).")
    parser.add_argument("--stdout", action="store_true", help="Print the full export to stdout.")
    parser.add_argument("--stats", action="store_true", help="Print file/size/token totals for the selection.")
    parser.add_argument("--template", metavar="FILE", default=None, help="Read the output template from FILE.")
    parser.add_argument(
        "--max-file-size",
        type=_positive_int,
        default=None,
        help="Skip files larger than this many bytes.",
    )
    parser.add_argument("--no-save", action="store_true", help="Do not write the .r2x selection record.")
    parser.add_argument("--clean", action="store_true", help="Delete the .r2x selection record before scanning.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and run one scan/export cycle."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_app_config()
    if args.max_file_size is not None:
        config = replace(config, max_file_size=args.max_file_size)
    if args.template is not None:
        try:
            config = replace(config, output_template=Path(args.template).read_text(encoding="utf-8"))
        except OSError as exc:
            raise SystemExit(f"Cannot read template: {exc}") from exc

    path = Path(args.path) if args.path else Path.cwd()
    session = Repo2TxtSession(config=config)
    try:
        if args.clean:
            clear_selection_record(path)
        session.open_directory(path)
        session.wait_for_analysis()

        if args.stats:
            stats = session.get_stats()
            warning = " (over token limit)" if stats.exceeds(config.token_limit) else ""
            sys.stderr.write(f"files={stats.files} size={stats.size} tokens={stats.tokens}{warning}\n")

        output = args.output
        if output is None and not args.stdout and not args.stats:
            output = config.output_filename
        if output is None and not args.stdout:
            return

        result = session.generate(
            Path(output) if output is not None else None,
            persist=not args.no_save,
        )

        if args.stdout:
            sys.stdout.write(session.cache.get() or "")
        if output is not None:
            sys.stderr.write(
                f"Wrote {result.stats.files} files ({result.stats.size} bytes, "
                f"{result.stats.tokens} tokens) to {output}\n"
            )
    except Repo2TxtError as exc:
        raise SystemExit(str(exc)) from exc


if __name__ == "__main__":
    main()
