"""
Classification rules for operational log categories.

Each rule looks at a raw line and, when available, its decoded structured
record. Rules are evaluated independently, so a line can carry several
categories at once (an error that was also slow, for example).
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Tuple

from .models import Category, StructuredRecord


SLOW_CALL_THRESHOLD_MS = 300

# Fields written as key="123" that carry a latency in milliseconds
SLOW_CALL_FIELDS = (
    'completeReqTTms', 'reqTTms', 'durationMs', 'latencyMs',
    'elapsedMs', 'responseTimeMs',
)

LEVEL_FIELDS = ('level', 'severity')
STATUS_FIELDS = ('status', 'statusCode')
DURATION_FIELDS = ('durationMs', 'duration_ms', 'latencyMs', 'elapsedMs')


class ClassificationRule(ABC):
    """Base class for line classification rules."""

    category: Category

    @abstractmethod
    def matches(self, line: str, record: Optional[StructuredRecord] = None) -> bool:
        """Check if the line belongs to this rule's category."""
        pass


class PatternRule(ClassificationRule):
    """Rule backed by a single case-insensitive text pattern."""

    pattern = ''

    def __init__(self):
        self._regex = re.compile(self.pattern, re.IGNORECASE)

    def matches(self, line: str, record: Optional[StructuredRecord] = None) -> bool:
        return self._regex.search(line) is not None


class ErrorRule(PatternRule):
    """
    Generic error vocabulary, or a structured record reporting
    ``level == "error"`` or ``status == 500``.
    """

    category = Category.ERROR
    pattern = (r'\b(?:error|exception|fatal|critical|panic|traceback)\b'
               r'|\w+(?:error|exception)\b')

    def matches(self, line: str, record: Optional[StructuredRecord] = None) -> bool:
        if super().matches(line, record):
            return True
        if record is None:
            return False

        level = record.get_string(*LEVEL_FIELDS)
        if level is not None and level.strip().lower() == 'error':
            return True

        status = record.get_number(*STATUS_FIELDS)
        return status == 500


class TimeoutRule(PatternRule):
    category = Category.TIMEOUT
    # Whole words, or a CamelCase part such as ReadTimeout; "runtime output" is not a timeout
    pattern = (r'\btime[ds]?[\s-]?outs?\b'
               r'|(?-i:[a-z]Time[dD]?[oO]ut)'
               r'|deadline exceeded|\betimedout\b')


class ServiceHealthRule(PatternRule):
    """Connectivity failures and explicit unhealthy flags."""

    category = Category.SERVICE_HEALTH_ISSUE
    pattern = (r'failed to connect'
               r'|unable to connect'
               r'|\bstatus[ _]?code\b["\']?\s*[:=]?\s*["\']?0\b'
               r'|healthy["\']?\s*[:=]\s*["\']?false\b'
               r'|\bunhealthy\b')


class SlowCallRule(ClassificationRule):
    """
    Latency above the slow-call threshold, read from ``key="123"`` fields
    in the text or from the structured duration field.

    Every hit is kept as ``"<ms> ms : <line>"`` so the number can be
    re-parsed for percentiles and the line shown alongside it.
    """

    category = Category.SLOW_CALL

    def __init__(self, threshold_ms: int = SLOW_CALL_THRESHOLD_MS):
        self.threshold_ms = threshold_ms
        names = '|'.join(re.escape(name) for name in SLOW_CALL_FIELDS)
        # Longer digit runs are not latencies and are left unmatched
        self._field_regex = re.compile(r'\b(?:%s)="(\d{1,18})"' % names)

    def samples(self, line: str, record: Optional[StructuredRecord] = None) -> List[str]:
        found = []

        for match in self._field_regex.finditer(line):
            ms = int(match.group(1))
            if ms > self.threshold_ms:
                found.append(format_sample(ms, line))

        if record is not None:
            duration = record.get_number(*DURATION_FIELDS)
            if duration is not None:
                # Whole milliseconds, so the tag and the composite agree
                ms = int(duration)
                if ms > self.threshold_ms:
                    found.append(format_sample(ms, line))

        return found

    def matches(self, line: str, record: Optional[StructuredRecord] = None) -> bool:
        return bool(self.samples(line, record))


def format_sample(ms: int, line: str) -> str:
    return f"{ms} ms : {line}"


@dataclass(frozen=True)
class Classification:
    """Tags for one line plus the slow-call composites it produced."""
    tags: FrozenSet[Category] = frozenset()
    slow_samples: Tuple[str, ...] = field(default_factory=tuple)

    def has(self, category: Category) -> bool:
        return category in self.tags


class LineClassifier:
    """
    Applies every rule to a line.

    Stateless across lines: the same line and record always produce the
    same classification.
    """

    def __init__(self, threshold_ms: int = SLOW_CALL_THRESHOLD_MS):
        self.slow_call_rule = SlowCallRule(threshold_ms)
        self.rules: List[ClassificationRule] = [
            ErrorRule(),
            TimeoutRule(),
            ServiceHealthRule(),
        ]

    def classify(self, line: str, record: Optional[StructuredRecord] = None) -> Classification:
        tags = {rule.category for rule in self.rules if rule.matches(line, record)}

        samples = self.slow_call_rule.samples(line, record)
        if samples:
            tags.add(Category.SLOW_CALL)

        return Classification(tags=frozenset(tags), slow_samples=tuple(samples))
