"""
I/O utilities for log file discovery, batch reading, tailing and JSONL output.
"""

import os
import json
import glob
import time
import fnmatch
from pathlib import Path
from typing import List, Iterator, Optional, Tuple

from .models import TransactionReport


class LogFileWalker:
    """
    Resolves input arguments (files, directories, glob patterns) to log files.
    """

    def __init__(self,
                 include_patterns: List[str] = None,
                 exclude_patterns: List[str] = None):
        self.include_patterns = include_patterns or ["*.log", "*.txt", "*.json", "*.jsonl"]
        self.exclude_patterns = list(exclude_patterns or [])

        # Common exclusion patterns
        default_excludes = [
            "*/.git/*", "*/node_modules/*", "*/__pycache__/*",
            "*.gz", "*.zip",
        ]
        self.exclude_patterns.extend(default_excludes)

    def _matches_pattern(self, file_path: Path, patterns: List[str]) -> bool:
        """Check if file path matches any of the given patterns."""
        for pattern in patterns:
            if fnmatch.fnmatch(file_path.name, pattern):
                return True
            if fnmatch.fnmatch(str(file_path), pattern):
                return True
        return False

    def walk_directory(self, root: Path) -> Iterator[Path]:
        """Yield matching files under a directory, in sorted order."""
        for current, dirs, files in os.walk(root):
            current_path = Path(current)

            dirs[:] = sorted(d for d in dirs if not self._matches_pattern(
                current_path / d, self.exclude_patterns
            ))

            for name in sorted(files):
                file_path = current_path / name
                if not self._matches_pattern(file_path, self.include_patterns):
                    continue
                if self._matches_pattern(file_path, self.exclude_patterns):
                    continue
                yield file_path

    def expand(self, raw_paths: List[str]) -> List[Path]:
        """
        Expand files, directories and globs, deduplicating while keeping order.

        Raises:
            FileNotFoundError: a plain path does not exist, or nothing matched
        """
        expanded: List[Path] = []
        seen = set()

        def add(path: Path) -> None:
            key = str(path.resolve())
            if key not in seen:
                seen.add(key)
                expanded.append(path)

        for raw in raw_paths:
            if any(c in raw for c in ("*", "?", "[")):
                for match in sorted(glob.glob(raw)):
                    path = Path(match)
                    if path.is_dir():
                        for file_path in self.walk_directory(path):
                            add(file_path)
                    elif path.is_file():
                        add(path)
                continue

            path = Path(raw)
            if path.is_dir():
                for file_path in self.walk_directory(path):
                    add(file_path)
            elif path.is_file():
                add(path)
            else:
                raise FileNotFoundError(f"Input not found: {raw}")

        if not expanded:
            raise FileNotFoundError("No log files found matching the given inputs")

        return expanded


def read_lines(file_path: Path) -> Iterator[str]:
    """Yield lines of one file, undecodable bytes ignored."""
    with open(file_path, 'r', encoding='utf-8', errors='ignore') as f:
        for line in f:
            yield line


def read_multiple(paths: List[Path]) -> Iterator[Tuple[str, Path]]:
    """Yield (line, path) from several files, one file after another."""
    for path in paths:
        for line in read_lines(path):
            yield line, path


def tail_lines(file_path: Path,
               poll_interval: float = 0.5,
               from_start: bool = False,
               max_idle_polls: Optional[int] = None) -> Iterator[str]:
    """
    Follow a file and yield complete lines as they are appended.

    Args:
        file_path: File to follow
        poll_interval: Seconds to sleep when no new data is available
        from_start: Read existing content first instead of seeking to the end
        max_idle_polls: Stop after this many consecutive empty polls
            (None follows forever)
    """
    with open(file_path, 'r', encoding='utf-8', errors='ignore') as f:
        if not from_start:
            f.seek(0, os.SEEK_END)

        buffer = ""
        idle_polls = 0
        while True:
            chunk = f.read()
            if chunk:
                idle_polls = 0
                buffer += chunk
                while "\n" in buffer:
                    line, buffer = buffer.split("\n", 1)
                    yield line
                continue

            idle_polls += 1
            if max_idle_polls is not None and idle_polls > max_idle_polls:
                if buffer:
                    yield buffer
                return
            time.sleep(poll_interval)


class JSONLWriter:
    """
    Writer for transaction reports in JSONL (JSON Lines) format.
    """

    def __init__(self, file_path: str):
        self.file_path = Path(file_path)
        self.file_handle = None

    def __enter__(self):
        self.file_handle = open(self.file_path, 'w', encoding='utf-8')
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.file_handle:
            self.file_handle.close()

    def write_report(self, report: TransactionReport) -> None:
        """Write a single transaction report to the JSONL file."""
        if not self.file_handle:
            raise ValueError("JSONLWriter not opened")

        json.dump(report.to_dict(), self.file_handle, ensure_ascii=False)
        self.file_handle.write('\n')

    def write_reports(self, reports: List[TransactionReport]) -> None:
        for report in reports:
            self.write_report(report)


class JSONLReader:
    """
    Reader for transaction reports written by ``JSONLWriter``.

    Blank and invalid lines are skipped; their line numbers are kept in
    ``skipped_lines``.
    """

    def __init__(self, file_path: str):
        self.file_path = Path(file_path)
        self.skipped_lines: List[int] = []

    def read_reports(self) -> List[TransactionReport]:
        """Read all transaction reports from the JSONL file."""
        return list(self)

    def __iter__(self) -> Iterator[TransactionReport]:
        self.skipped_lines = []
        if not self.file_path.exists():
            return

        with open(self.file_path, 'r', encoding='utf-8') as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue

                try:
                    report_dict = json.loads(line)
                    yield TransactionReport.from_dict(report_dict, infer_missing=False)
                except (json.JSONDecodeError, KeyError, TypeError, AttributeError):
                    self.skipped_lines.append(line_num)


def ensure_directory(path: str) -> Path:
    """Ensure directory exists and return Path object."""
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path
