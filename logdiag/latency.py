"""
Nearest-rank latency percentiles over slow-call samples.
"""

from typing import Iterable, List, Optional, Sequence

from .models import LatencyPercentiles


DEFAULT_PERCENTILES = (0.50, 0.90, 0.99)


def parse_sample(sample: str) -> Optional[int]:
    """Leading integer of a ``"<ms> ms : <line>"`` composite, if positive."""
    parts = sample.split(None, 1)
    if not parts:
        return None
    try:
        value = int(parts[0])
    except ValueError:
        return None
    return value if value > 0 else None


def nearest_rank(sorted_values: Sequence[int], percentile: float) -> int:
    """
    ``sorted[min(n - 1, floor(n * P))]``. No interpolation; reported
    figures depend on this exact estimator.
    """
    n = len(sorted_values)
    index = min(n - 1, int(n * percentile))
    return sorted_values[index]


class LatencyAggregator:
    """Keeps slow-call composites in discovery order."""

    def __init__(self):
        self.samples: List[str] = []

    def add(self, sample: str) -> None:
        self.samples.append(sample)

    def extend(self, samples: Iterable[str]) -> None:
        self.samples.extend(samples)

    def values(self) -> List[int]:
        """Parsed, valid sample values in ascending order."""
        parsed = (parse_sample(sample) for sample in self.samples)
        return sorted(value for value in parsed if value is not None)

    def percentiles(self) -> LatencyPercentiles:
        values = self.values()
        if not values:
            return LatencyPercentiles()

        p50, p90, p99 = (nearest_rank(values, p) for p in DEFAULT_PERCENTILES)
        return LatencyPercentiles(p50=p50, p90=p90, p99=p99, sample_count=len(values))

    def clear(self) -> None:
        self.samples = []
