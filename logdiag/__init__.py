"""
Log Classification and Transaction Diagnosis

A Python library for tagging heterogeneous application log lines, grouping
them by correlation identifier and reconstructing PAPI/TAPI transaction
lifecycles into a root-cause label per transaction.
"""

__version__ = "1.0.0"
__author__ = "Log Diagnosis System"

from .engine import DiagnosticEngine
from .models import Category, EngineSnapshot, RootCause, TransactionReport
from .rules import LineClassifier, ClassificationRule
from .correlation import CorrelationIndex
from .transactions import TransactionTracker
from .io_utils import LogFileWalker, JSONLWriter, JSONLReader

__all__ = [
    "DiagnosticEngine",
    "Category",
    "EngineSnapshot",
    "RootCause",
    "TransactionReport",
    "LineClassifier",
    "ClassificationRule",
    "CorrelationIndex",
    "TransactionTracker",
    "LogFileWalker",
    "JSONLWriter",
    "JSONLReader",
]
