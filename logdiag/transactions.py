"""
Transaction lifecycle tracking.

Folds an unordered stream of partial evidence (PAPI/TAPI requests and
responses, the Kinesis + DynamoDB acknowledgement, websocket drops,
offline-table fallbacks) into one TransactionRecord per identifier.

Flags only ever flip from False to True. The two captured responses are
last-write-wins, so their value depends on the relative order of response
lines for the same identifier.
"""

import re
from typing import Dict, List, Optional

from .correlation import find_uuid
from .models import CapturedResponse, TransactionRecord, TransactionReport


TAGGED_ID_PATTERN = re.compile(
    r'\b(?:transactionId|transaction_id|txnId)["\']?\s*[:=]\s*["\']?'
    r'([^\s"\',;{}()\[\]]{36})',
    re.IGNORECASE,
)

PAPI_REQUEST_PATTERN = re.compile(r'\bPOST\s+\S*/papi/', re.IGNORECASE)
TAPI_REQUEST_PATTERN = re.compile(r'\bPOST\s+\S*/tapi/', re.IGNORECASE)

PAPI_RESPONSE_PATTERN = re.compile(
    r'\bpapi\b.*?"statusCode"\s*:\s*"?(\d{3})"?.*?"status"\s*:\s*"([^"]*)"',
    re.IGNORECASE,
)
TAPI_RESPONSE_PATTERN = re.compile(
    r'\btapi\b.*?"statusCode"\s*:\s*"?(\d{3})"?.*?"outcome"\s*:\s*"([^"]*)"',
    re.IGNORECASE,
)

SIDE_CHANNEL_PATTERN = re.compile(
    r'kinesis\s*(?:\+|and|&)\s*dynamodb\b.*?\bsuccess', re.IGNORECASE)
DISCONNECT_PATTERN = re.compile(
    r'web\s?socket\b.*?\b(?:disconnect(?:ed)?|closed)\b', re.IGNORECASE)
OFFLINE_PATTERN = re.compile(r'offline[\s_-]?(?:table|queue)', re.IGNORECASE)

SCHEDULER_PATTERN = re.compile(r'\bscheduler\b.*?\bjob\b|\bscheduled job\b', re.IGNORECASE)


def resolve_transaction_id(line: str) -> Optional[str]:
    """
    Resolve the transaction a line belongs to.

    A tagged ``transactionId`` field wins over a bare UUID elsewhere in
    the line.
    """
    match = TAGGED_ID_PATTERN.search(line)
    if match:
        return match.group(1)
    return find_uuid(line)


def is_scheduler_marker(line: str) -> bool:
    return SCHEDULER_PATTERN.search(line) is not None


def _capture(pattern, line: str) -> Optional[CapturedResponse]:
    match = pattern.search(line)
    if not match:
        return None
    return CapturedResponse(code=int(match.group(1)), status=match.group(2))


class TransactionTracker:
    """Per-identifier state machine over transaction evidence."""

    def __init__(self):
        self._records: Dict[str, TransactionRecord] = {}

    def observe(self, line: str) -> Optional[str]:
        """
        Feed one line.

        Identifier-scoped evidence is applied first; a scheduler marker is
        then broadcast to every record known at that point, including one
        created by this very line.

        Returns:
            The resolved transaction identifier, or None
        """
        transaction_id = resolve_transaction_id(line)
        if transaction_id is not None:
            record = self._records.get(transaction_id)
            if record is None:
                record = TransactionRecord(transaction_id=transaction_id)
                self._records[transaction_id] = record
            record.raw_lines.append(line)
            self.apply_evidence(record, line)

        if is_scheduler_marker(line):
            self.broadcast_scheduler_touch(line)

        return transaction_id

    def apply_evidence(self, record: TransactionRecord, line: str) -> None:
        """Evaluate every evidence rule; rules are not mutually exclusive."""
        if PAPI_REQUEST_PATTERN.search(line):
            record.papi_request_seen = True
        if TAPI_REQUEST_PATTERN.search(line):
            record.tapi_request_seen = True

        papi_response = _capture(PAPI_RESPONSE_PATTERN, line)
        if papi_response is not None:
            record.papi_response = papi_response
        tapi_response = _capture(TAPI_RESPONSE_PATTERN, line)
        if tapi_response is not None:
            record.tapi_response = tapi_response

        if SIDE_CHANNEL_PATTERN.search(line):
            record.side_channel_confirmed = True
        if DISCONNECT_PATTERN.search(line):
            record.channel_dropped = True
        if OFFLINE_PATTERN.search(line):
            record.offline_fallback = True

    def broadcast_scheduler_touch(self, line: str) -> int:
        """
        Append a scheduler line to every record that exists right now,
        whether or not its identifier appears in the line. Records created
        later never receive it.

        Returns:
            Number of records touched
        """
        for record in self._records.values():
            record.scheduler_touches.append(line)
        return len(self._records)

    def get(self, transaction_id: str) -> Optional[TransactionRecord]:
        return self._records.get(transaction_id)

    def transaction_ids(self) -> List[str]:
        return list(self._records.keys())

    def reports(self) -> Dict[str, TransactionReport]:
        """Frozen reports in first-seen order."""
        return {tid: record.freeze() for tid, record in self._records.items()}

    def clear(self) -> None:
        self._records = {}

    def __contains__(self, transaction_id: str) -> bool:
        return transaction_id in self._records

    def __len__(self) -> int:
        return len(self._records)
