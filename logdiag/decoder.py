"""
Best-effort decoding of JSON log lines into structured records.
"""

import json
from typing import List, Optional

from .models import StructuredRecord


class StructuredDecoder:
    """
    Decodes lines whose trimmed content opens with ``{``.

    Decoding is permissive: trailing text after the closing brace is
    ignored. Any failure yields None and the line is left to the text
    rules; nothing is raised or counted.
    """

    def __init__(self):
        self._decoder = json.JSONDecoder()
        self.records: List[StructuredRecord] = []

    def decode(self, line: str) -> Optional[StructuredRecord]:
        text = line.strip()
        if not text.startswith('{'):
            return None

        try:
            value, _ = self._decoder.raw_decode(text)
        except (ValueError, RecursionError):
            return None

        if not isinstance(value, dict):
            return None

        record = StructuredRecord(value)
        self.records.append(record)
        return record

    def reset(self) -> None:
        self.records = []
