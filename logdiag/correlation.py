"""
Correlation index: groups lines by the UUID-shaped token they carry.
"""

import re
from typing import Dict, List, Optional, Tuple


UUID_PATTERN = re.compile(
    r'\b[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\b',
    re.IGNORECASE,
)


def find_uuid(line: str) -> Optional[str]:
    """Return the first UUID-shaped token in the line, if any."""
    match = UUID_PATTERN.search(line)
    return match.group(0) if match else None


class CorrelationIndex:
    """
    Append-only mapping of correlation token to the lines that carried it.

    Only the first token of a line is used. Lines keep insertion order and
    duplicates are kept; entries are never merged or pruned.
    """

    def __init__(self):
        self._entries: Dict[str, List[str]] = {}

    def add(self, line: str) -> Optional[str]:
        """Index a line and return the token it was filed under."""
        token = find_uuid(line)
        if token is None:
            return None

        self._entries.setdefault(token, []).append(line)
        return token

    def trace(self, token: str) -> Tuple[str, ...]:
        """Lines seen for a token, in order; empty when unknown."""
        return tuple(self._entries.get(token, ()))

    def tokens(self) -> List[str]:
        return list(self._entries.keys())

    def size(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries = {}

    def __contains__(self, token: str) -> bool:
        return token in self._entries

    def __len__(self) -> int:
        return len(self._entries)
