#!/usr/bin/env python3
"""
TrimZip: strip trailing garbage from ZIP and EPUB files

Command-line interface.

Usage:
    trimzip <path>...                 Trim every .zip/.epub under the paths
    trimzip --rename <path>...        ...and rename EPUBs from their metadata
    trimzip --dry-run -v <path>...    Show what would be trimmed, change nothing
"""

from __future__ import annotations

import argparse
import sys
import textwrap
from pathlib import Path
from typing import Optional

from trimzip import __version__
from trimzip.batch import DEFAULT_EXTENSIONS, BatchOptions, BatchTrimmer, ResultCode
from trimzip.errors import TrimZipError
from trimzip.residue import TrailingResidue
from trimzip.trailer import Trailer


# ============================================================================
# Formatting helpers
# ============================================================================

class C:
    """ANSI colors."""
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    RESET = "\033[0m"

    @staticmethod
    def off():
        C.BOLD = C.DIM = C.RED = C.GREEN = C.YELLOW = ""
        C.CYAN = C.RESET = ""


def header(text: str) -> str:
    return f"\n{C.BOLD}{C.CYAN}{'─' * 60}{C.RESET}\n{C.BOLD}  {text}{C.RESET}\n{C.BOLD}{C.CYAN}{'─' * 60}{C.RESET}"


def ok(text: str) -> str:
    return f"  {C.GREEN}✓{C.RESET} {text}"


def warn(text: str) -> str:
    return f"  {C.YELLOW}⚠{C.RESET} {text}"


def fail(text: str) -> str:
    return f"  {C.RED}✗{C.RESET} {text}"


def dim(text: str) -> str:
    return f"{C.DIM}{text}{C.RESET}"


def bar(ratio: float, width: int = 30) -> str:
    filled = int(ratio * width)
    empty = width - filled
    return f"{C.GREEN}{'█' * filled}{'░' * empty}{C.RESET} {ratio:.1%}"


def filesize(n: int) -> str:
    if n > 1_000_000:
        return f"{n/1_000_000:.1f} MB"
    if n > 1_000:
        return f"{n/1_000:.1f} KB"
    return f"{n} B"


# ============================================================================
# Console reporter
# ============================================================================

class ConsoleReporter:
    """Prints batch events; progress goes to stderr only on a terminal."""

    def __init__(self, verbose: bool = False, dry_run: bool = False) -> None:
        self.verbose = verbose
        self.dry_run = dry_run
        self.errors = 0
        self._live = sys.stderr.isatty()

    def clear_progress(self) -> None:
        if self._live:
            sys.stderr.write("\r\033[K")

    def progress(self, ratio: float, name: Optional[str]) -> None:
        if not self._live:
            return
        label = f" processing \"{name}\"" if name else ""
        sys.stderr.write(f"\r\033[K{bar(ratio, 20)}{label}")
        sys.stderr.flush()

    def _details(self, trailer: Trailer) -> None:
        residue = TrailingResidue.of(trailer)
        print(dim(f"    EOCDR at {trailer.offset:#x}, {trailer.entry_count} entries, "
                  f"comment {trailer.comment_length} B"))
        print(dim(f"    logical end {trailer.logical_end:#x} / physical {trailer.physical_length:#x}, "
                  f"residue {filesize(residue.length)} ({residue.residue_ratio:.1%})"))
        for field in trailer.fields:
            if field.length:
                print(dim(f"      [{field.start:#08x}:{field.end:#08x}] {field.field_id:<20} {field.description}"))

    def trimmed(self, path: Path, trailer: Trailer) -> None:
        self.clear_progress()
        verb = "Would trim" if self.dry_run else "Trimmed"
        print(ok(f"{verb}: {path.name}"))
        if self.verbose:
            self._details(trailer)

    def unchanged(self, path: Path, trailer: Trailer) -> None:
        if not self.verbose:
            return
        self.clear_progress()
        print(f"  {dim('·')} Unchanged: {path.name}")
        self._details(trailer)

    def renamed(self, path: Path, new_path: Path) -> None:
        self.clear_progress()
        print(ok(f"Renamed: {path.name} → {new_path.name}"))

    def error(self, path: Optional[Path], error: Exception) -> None:
        self.clear_progress()
        self.errors += 1
        where = f"{path.name}: " if path is not None else ""
        print(fail(f"{where}{error}"), file=sys.stderr)


# ============================================================================
# CLI setup
# ============================================================================

def _parse_extensions(value: str) -> tuple[str, ...]:
    exts = []
    for item in value.split(","):
        item = item.strip().lower()
        if not item:
            continue
        exts.append(item if item.startswith(".") else f".{item}")
    if not exts:
        raise argparse.ArgumentTypeError("at least one extension is required")
    return tuple(exts)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trimzip",
        description="Remove trailing garbage appended after the end of ZIP/EPUB files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""
        examples:
          trimzip book.epub
          trimzip ~/Books --rename
          trimzip downloads/ --dry-run -v
          trimzip archive.bin --extensions .bin
        """),
    )
    parser.add_argument("paths", nargs="+", help="Files or directories to process")
    parser.add_argument("--rename", action="store_true",
                        help="Rename EPUBs to \"[creators] title.epub\" after trimming")
    parser.add_argument("-n", "--dry-run", action="store_true",
                        help="Report what would be trimmed without changing files")
    parser.add_argument("--extensions", type=_parse_extensions, default=DEFAULT_EXTENSIONS,
                        help="Comma-separated extensions to process (default: .zip,.epub)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show trailer details per file")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.no_color:
        C.off()

    options = BatchOptions(rename=args.rename, dry_run=args.dry_run, extensions=args.extensions)
    reporter = ConsoleReporter(verbose=args.verbose, dry_run=args.dry_run)
    trimmer = BatchTrimmer(options, reporter)

    if args.verbose:
        print(header(f"TRIMZIP {__version__}{' (dry run)' if args.dry_run else ''}"))

    try:
        result = trimmer.run(args.paths)
    except KeyboardInterrupt:
        result = ResultCode.CANCELLED
    except TrimZipError as e:
        reporter.error(None, e)
        result = ResultCode.FAILED
    except Exception as e:
        reporter.clear_progress()
        print(fail(f"Error: {e}"), file=sys.stderr)
        result = ResultCode.FAILED

    reporter.clear_progress()
    if result == ResultCode.SUCCESS:
        if reporter.errors:
            print(warn(f"{reporter.errors} file(s) could not be processed"))
        print("Completed.")
    elif result == ResultCode.CANCELLED:
        print("Cancelled.")
    return int(result)


if __name__ == "__main__":
    sys.exit(main())
