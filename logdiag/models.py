"""
Core data models for line classification and transaction diagnosis.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from dataclasses_json import dataclass_json
from enum import Enum


class Category(Enum):
    """Operational categories a log line can be tagged with."""
    ERROR = "Error"
    TIMEOUT = "Timeout"
    SLOW_CALL = "SlowCall"
    SERVICE_HEALTH_ISSUE = "ServiceHealthIssue"

    def __str__(self) -> str:
        return self.value


class RootCause:
    """Terminal diagnostic labels assigned to a transaction."""
    MISSING_PAPI_REQUEST = "Missing PAPI Request"
    MISSING_PAPI_RESPONSE = "Missing PAPI Response"
    WEBSOCKET_DISCONNECT = "WebSocket Disconnect between PAPI & TAPI"
    MISSING_TAPI_REQUEST = "Missing TAPI Request"
    TAPI_OFFLINE = "TAPI sent to Offline Table"
    MISSING_TAPI_RESPONSE = "Missing TAPI Response"
    OK = "OK"
    MISSING_SIDE_CHANNEL = "Missing Kinesis + DynamoDB Success Message"
    UNKNOWN = "UNKNOWN"


class StructuredRecord:
    """
    Decoded field map of a JSON log line.

    Accessors never raise: a missing key or a value of the wrong type
    comes back as None.
    """

    def __init__(self, fields: Dict[str, Any]):
        self._fields = dict(fields)

    def get(self, key: str) -> Any:
        return self._fields.get(key)

    def get_string(self, *keys: str) -> Optional[str]:
        """Return the first of ``keys`` holding a string value."""
        for key in keys:
            value = self._fields.get(key)
            if isinstance(value, str):
                return value
        return None

    def get_number(self, *keys: str) -> Optional[float]:
        """
        Return the first of ``keys`` holding a number.

        Numeric strings such as ``"450"`` count; booleans do not. Values
        that do not fit a finite float (``1e999``, ``"inf"``, very long
        integers) are skipped.
        """
        for key in keys:
            value = self._fields.get(key)
            if isinstance(value, bool) or value is None:
                continue
            if isinstance(value, str):
                value = value.strip()
            elif not isinstance(value, (int, float)):
                continue
            try:
                number = float(value)
            except (ValueError, OverflowError):
                continue
            if math.isfinite(number):
                return number
        return None

    def keys(self) -> List[str]:
        return list(self._fields.keys())

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._fields)

    def __contains__(self, key: str) -> bool:
        return key in self._fields

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StructuredRecord):
            return NotImplemented
        return self._fields == other._fields

    def __repr__(self) -> str:
        return f"StructuredRecord({self._fields!r})"


@dataclass_json
@dataclass(frozen=True)
class CapturedResponse:
    """Status code plus status token captured from a response line."""
    code: int
    status: str  # PAPI status or TAPI outcome token

    def is_error_status(self) -> bool:
        """True for 4xx/5xx codes."""
        return str(self.code)[:1] in ("4", "5")

    def __str__(self) -> str:
        return f"{self.code} {self.status}"


SUCCESS_OUTCOMES = frozenset({"SUCCESS", "APPROVED"})


@dataclass
class TransactionRecord:
    """Mutable lifecycle evidence for one transaction identifier."""
    transaction_id: str
    papi_request_seen: bool = False
    papi_response: Optional[CapturedResponse] = None
    tapi_request_seen: bool = False
    tapi_response: Optional[CapturedResponse] = None
    side_channel_confirmed: bool = False
    channel_dropped: bool = False
    offline_fallback: bool = False
    scheduler_touches: List[str] = field(default_factory=list)
    raw_lines: List[str] = field(default_factory=list)

    def tapi_succeeded(self) -> bool:
        response = self.tapi_response
        if response is None:
            return False
        return str(response.code).startswith("2") and response.status.upper() in SUCCESS_OUTCOMES

    def root_cause(self) -> str:
        """Evaluate the diagnosis; the first matching clause wins."""
        if not self.papi_request_seen:
            return RootCause.MISSING_PAPI_REQUEST
        if self.papi_response is None:
            return RootCause.MISSING_PAPI_RESPONSE
        if self.channel_dropped:
            return RootCause.WEBSOCKET_DISCONNECT
        if not self.tapi_request_seen:
            return RootCause.MISSING_TAPI_REQUEST
        if self.tapi_response is None:
            if self.offline_fallback:
                return RootCause.TAPI_OFFLINE
            return RootCause.MISSING_TAPI_RESPONSE
        if self.tapi_succeeded():
            if self.side_channel_confirmed:
                return RootCause.OK
            return RootCause.MISSING_SIDE_CHANNEL
        return RootCause.UNKNOWN

    def is_abnormal(self, root_cause: Optional[str] = None) -> bool:
        """
        Abnormal is independent of the root cause label: an "OK" record
        carrying a 4xx/5xx captured status is still abnormal.
        """
        if root_cause is None:
            root_cause = self.root_cause()
        if root_cause != RootCause.OK:
            return True
        if not self.scheduler_touches and self.offline_fallback:
            return True
        for response in (self.papi_response, self.tapi_response):
            if response is not None and response.is_error_status():
                return True
        return False

    def freeze(self) -> 'TransactionReport':
        """Create an immutable report of the current state."""
        cause = self.root_cause()
        return TransactionReport(
            transaction_id=self.transaction_id,
            papi_request_seen=self.papi_request_seen,
            papi_response=str(self.papi_response) if self.papi_response else None,
            tapi_request_seen=self.tapi_request_seen,
            tapi_response=str(self.tapi_response) if self.tapi_response else None,
            side_channel_confirmed=self.side_channel_confirmed,
            channel_dropped=self.channel_dropped,
            offline_fallback=self.offline_fallback,
            scheduler_touches=tuple(self.scheduler_touches),
            raw_lines=tuple(self.raw_lines),
            root_cause=cause,
            abnormal=self.is_abnormal(cause),
        )


@dataclass_json
@dataclass(frozen=True)
class TransactionReport:
    """Snapshot view of a transaction, root cause included."""
    transaction_id: str
    papi_request_seen: bool
    papi_response: Optional[str]  # "<code> <status>"
    tapi_request_seen: bool
    tapi_response: Optional[str]
    side_channel_confirmed: bool
    channel_dropped: bool
    offline_fallback: bool
    scheduler_touches: Tuple[str, ...]
    raw_lines: Tuple[str, ...]
    root_cause: str
    abnormal: bool


@dataclass_json
@dataclass(frozen=True)
class ErrorGroup:
    """Recurring error signature."""
    fingerprint: str  # first 80 characters of the line
    count: int
    exemplar_line: str

    def __str__(self) -> str:
        return f"[{self.count}x] {self.fingerprint}"


@dataclass_json
@dataclass(frozen=True)
class LatencyPercentiles:
    """Nearest-rank percentiles over slow-call samples; None when no samples."""
    p50: Optional[int] = None
    p90: Optional[int] = None
    p99: Optional[int] = None
    sample_count: int = 0

    def is_empty(self) -> bool:
        return self.sample_count == 0


@dataclass_json
@dataclass(frozen=True)
class EngineSnapshot:
    """Immutable read of everything the engine has accumulated."""
    total_lines: int
    category_counts: Dict[str, int]
    correlation_index_size: int
    transactions: Dict[str, TransactionReport]
    latency: LatencyPercentiles
    error_groups: Tuple[ErrorGroup, ...]
    slow_calls: Tuple[str, ...] = ()
    timeout_lines: Tuple[str, ...] = ()
    service_health_lines: Tuple[str, ...] = ()
    structured_record_count: int = 0

    def count(self, category: Category) -> int:
        return self.category_counts.get(category.value, 0)

    def abnormal_transactions(self) -> List[TransactionReport]:
        return [report for report in self.transactions.values() if report.abnormal]

    def root_cause_distribution(self) -> Dict[str, int]:
        distribution: Dict[str, int] = {}
        for report in self.transactions.values():
            distribution[report.root_cause] = distribution.get(report.root_cause, 0) + 1
        return distribution
