"""
TrimZip Batch Processing

Runs the trimmer over every ZIP/EPUB named on the command line:

1. Expand directories recursively, keep matching extensions, skip hidden
   files and anything inside a hidden directory
2. For each file, locate the logical end of the archive
3. If the file is longer, write the prefix to a temporary file next to it
   and atomically replace the original
4. Optionally rename EPUBs from their package metadata

A failure on one file is reported and the batch moves on. Cancellation is
only honoured between files, so a file is either fully trimmed or not
touched; files already trimmed stay trimmed.
"""

from __future__ import annotations

import enum
import errno
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Protocol, Union

from trimzip.epub import read_epub_summary
from trimzip.locator import read_trailer
from trimzip.naming import build_epub_file_name, unique_destination
from trimzip.trailer import Trailer
from trimzip.truncator import TrimOutcome, trim_file

DEFAULT_EXTENSIONS = (".zip", ".epub")
HIDDEN_PREFIX = "."


class ResultCode(enum.IntEnum):
    """Process exit codes."""
    SUCCESS = 0
    FAILED = 1
    CANCELLED = 2


@dataclass
class BatchOptions:
    rename: bool = False
    dry_run: bool = False
    extensions: tuple[str, ...] = DEFAULT_EXTENSIONS


@dataclass
class FileOutcome:
    """What happened to one file."""
    path: Path
    trailer: Optional[Trailer] = None
    trimmed: bool = False
    renamed_to: Optional[Path] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class Reporter(Protocol):
    def progress(self, ratio: float, name: Optional[str]) -> None: ...

    def trimmed(self, path: Path, trailer: Trailer) -> None: ...

    def unchanged(self, path: Path, trailer: Trailer) -> None: ...

    def renamed(self, path: Path, new_path: Path) -> None: ...

    def error(self, path: Optional[Path], error: Exception) -> None: ...


class NullReporter:
    """Reporter that ignores everything."""

    def progress(self, ratio: float, name: Optional[str]) -> None:
        pass

    def trimmed(self, path: Path, trailer: Trailer) -> None:
        pass

    def unchanged(self, path: Path, trailer: Trailer) -> None:
        pass

    def renamed(self, path: Path, new_path: Path) -> None:
        pass

    def error(self, path: Optional[Path], error: Exception) -> None:
        pass


# ============================================================================
# File enumeration
# ============================================================================

def is_hidden_path(path: Path) -> bool:
    """True if the file or any directory above it, up to the root, starts with a dot."""
    resolved = path.resolve()
    return any(p.name.startswith(HIDDEN_PREFIX) for p in (resolved, *resolved.parents))


def enumerate_candidates(
    paths: Iterable[Union[str, Path]],
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> Iterator[Path]:
    """Files to process, in argument order, directories expanded sorted."""
    wanted = {ext.lower() for ext in extensions}
    for arg in paths:
        path = Path(arg)
        if path.is_dir():
            files = sorted(p for p in path.rglob("*") if p.is_file())
        elif path.is_file():
            files = [path]
        else:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", str(path))
        for file in files:
            if file.suffix.lower() in wanted and not is_hidden_path(file):
                yield file


# ============================================================================
# Batch trimmer
# ============================================================================

class BatchTrimmer:
    """Trims (and optionally renames) a batch of files.

    Usage:
        trimmer = BatchTrimmer(BatchOptions(rename=True), reporter)
        code = trimmer.run(["~/Books"])
    """

    def __init__(
        self,
        options: Optional[BatchOptions] = None,
        reporter: Optional[Reporter] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> None:
        self.options = options or BatchOptions()
        self.reporter = reporter or NullReporter()
        self._should_cancel = should_cancel or (lambda: False)
        self.outcomes: list[FileOutcome] = []

    def run(self, paths: Iterable[Union[str, Path]]) -> ResultCode:
        try:
            files = list(enumerate_candidates(paths, self.options.extensions))
        except OSError as e:
            self.reporter.error(None, e)
            return ResultCode.FAILED

        total = sum(f.stat().st_size for f in files)
        processed = 0
        self.reporter.progress(0.0, None)
        try:
            for path in files:
                if self._should_cancel():
                    return ResultCode.CANCELLED
                size = path.stat().st_size
                outcome = self.process(path)
                self.outcomes.append(outcome)
                if outcome.trimmed:
                    total = total - size + outcome.trailer.logical_end
                    size = outcome.trailer.logical_end
                processed += size
                shown = outcome.renamed_to or outcome.path
                self.reporter.progress(processed / total if total else 1.0, shown.name)
        except KeyboardInterrupt:
            return ResultCode.CANCELLED
        return ResultCode.SUCCESS

    def process(self, path: Path) -> FileOutcome:
        """Trim one file; errors are recorded on the outcome, not raised."""
        outcome = FileOutcome(path)
        try:
            trailer = read_trailer(path)
            outcome.trailer = trailer
            if trailer.padding_length > 0:
                if not self.options.dry_run:
                    self._replace_with_prefix(path, trailer.logical_end)
                    outcome.trimmed = True
                self.reporter.trimmed(path, trailer)
            else:
                self.reporter.unchanged(path, trailer)

            if self.options.rename and not self.options.dry_run:
                outcome.renamed_to = self._rename(path)
        except Exception as e:
            outcome.error = e
            self.reporter.error(path, e)
        return outcome

    def _replace_with_prefix(self, path: Path, logical_end: int) -> None:
        fd, tmp = tempfile.mkstemp(prefix=".trimzip-", suffix=".tmp", dir=path.parent)
        os.close(fd)
        try:
            if trim_file(path, logical_end, destination=tmp) is TrimOutcome.TRIMMED:
                shutil.copymode(path, tmp)
                os.replace(tmp, path)
        finally:
            if os.path.exists(tmp):
                os.unlink(tmp)

    def _rename(self, path: Path) -> Optional[Path]:
        summary = read_epub_summary(path)
        if summary is None:
            return None
        file_name = build_epub_file_name(summary, path.suffix)
        if file_name == path.name:
            return None
        destination = unique_destination(path.parent, file_name)
        os.rename(path, destination)
        self.reporter.renamed(path, destination)
        return destination
