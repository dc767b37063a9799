"""
Fingerprinting and counting of recurring error lines.
"""

from typing import Dict, List

from .models import ErrorGroup


FINGERPRINT_WIDTH = 80


def fingerprint(line: str) -> str:
    # Literal prefix; no trimming or normalization
    return line[:FINGERPRINT_WIDTH]


class ErrorGrouper:
    """
    Counts error lines per fingerprint.

    Groups come back sorted by count, descending; ties keep the order in
    which each fingerprint was first seen.
    """

    def __init__(self):
        self._counts: Dict[str, int] = {}
        self._exemplars: Dict[str, str] = {}

    def add(self, line: str) -> str:
        key = fingerprint(line)
        if key not in self._counts:
            self._counts[key] = 0
            self._exemplars[key] = line
        self._counts[key] += 1
        return key

    def groups(self) -> List[ErrorGroup]:
        ordered = sorted(self._counts.items(), key=lambda item: -item[1])
        return [
            ErrorGroup(fingerprint=key, count=count, exemplar_line=self._exemplars[key])
            for key, count in ordered
        ]

    def clear(self) -> None:
        self._counts = {}
        self._exemplars = {}

    def __len__(self) -> int:
        return len(self._counts)
