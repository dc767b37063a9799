"""
Diagnostic engine: the single entry point over a stream of log lines.

Data flows one line at a time through the structured decoder and the line
classifier, then into the correlation index and the transaction tracker.
Latency percentiles and error groups are computed from the accumulated
category lines whenever a snapshot is taken.
"""

from typing import Dict, Iterable, List

from .correlation import CorrelationIndex
from .decoder import StructuredDecoder
from .grouping import ErrorGrouper
from .latency import LatencyAggregator
from .models import Category, EngineSnapshot, StructuredRecord
from .rules import Classification, LineClassifier
from .transactions import TransactionTracker


class DiagnosticEngine:
    """
    Single-threaded fold over log lines.

    ``ingest`` never fails: lines that match nothing simply carry no tags
    and no identifiers. All state is kept until ``reset``; a long tail
    session has to snapshot and reset periodically to bound memory.
    """

    def __init__(self):
        self.decoder = StructuredDecoder()
        self.classifier = LineClassifier()
        self.correlation = CorrelationIndex()
        self.tracker = TransactionTracker()
        self.reset()

    def reset(self) -> None:
        """Drop all accumulated state and start a new logical run."""
        self.total_lines = 0
        self.decoder.reset()
        self.correlation.clear()
        self.tracker.clear()
        self._category_lines: Dict[Category, List[str]] = {
            category: [] for category in Category
        }
        self._slow_calls: List[str] = []

    def ingest(self, line: str) -> Classification:
        """Feed one line; a trailing newline is dropped before processing."""
        line = line.rstrip('\r\n')
        self.total_lines += 1

        record = self.decoder.decode(line)
        classification = self.classifier.classify(line, record)

        for category in classification.tags:
            self._category_lines[category].append(line)
        self._slow_calls.extend(classification.slow_samples)

        self.correlation.add(line)
        self.tracker.observe(line)

        return classification

    def ingest_many(self, lines: Iterable[str]) -> int:
        """Feed lines in order and return how many were consumed."""
        count = 0
        for line in lines:
            self.ingest(line)
            count += 1
        return count

    def lines_for(self, category: Category) -> List[str]:
        return list(self._category_lines[category])

    def structured_records(self) -> List[StructuredRecord]:
        return list(self.decoder.records)

    def snapshot(self) -> EngineSnapshot:
        """
        Read everything accumulated so far. Pure: taking a snapshot never
        changes engine state, and later ingestion never changes a snapshot.
        """
        latency = LatencyAggregator()
        latency.extend(self._slow_calls)

        grouper = ErrorGrouper()
        for line in self._category_lines[Category.ERROR]:
            grouper.add(line)

        return EngineSnapshot(
            total_lines=self.total_lines,
            category_counts={
                category.value: len(lines)
                for category, lines in self._category_lines.items()
            },
            correlation_index_size=self.correlation.size(),
            transactions=self.tracker.reports(),
            latency=latency.percentiles(),
            error_groups=tuple(grouper.groups()),
            slow_calls=tuple(self._slow_calls),
            timeout_lines=tuple(self._category_lines[Category.TIMEOUT]),
            service_health_lines=tuple(self._category_lines[Category.SERVICE_HEALTH_ISSUE]),
            structured_record_count=len(self.decoder.records),
        )
