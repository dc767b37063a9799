"""
Renderers that turn an EngineSnapshot into JSON, JSONL, CSV, HTML or a
plain-text summary.
"""

import csv
import html
import json
from pathlib import Path
from typing import List, Optional

from .io_utils import JSONLWriter
from .models import Category, EngineSnapshot, TransactionReport


REPORT_FORMATS = ('json', 'jsonl', 'csv', 'html', 'summary')

CSV_HEADER = [
    'transaction_id', 'root_cause', 'abnormal',
    'papi_request_seen', 'papi_response',
    'tapi_request_seen', 'tapi_response',
    'side_channel_confirmed', 'channel_dropped', 'offline_fallback',
    'scheduler_touches', 'line_count',
]


def select_transactions(snapshot: EngineSnapshot, abnormal_only: bool = False) -> List[TransactionReport]:
    if abnormal_only:
        return snapshot.abnormal_transactions()
    return list(snapshot.transactions.values())


def _format_ms(value: Optional[int]) -> str:
    return f"{value} ms" if value is not None else "n/a"


def write_json(snapshot: EngineSnapshot, output_path: Path, abnormal_only: bool = False) -> None:
    data = snapshot.to_dict()
    if abnormal_only:
        data['transactions'] = {
            report.transaction_id: report.to_dict()
            for report in snapshot.abnormal_transactions()
        }
    with open(output_path, 'w', encoding='utf-8') as outfile:
        json.dump(data, outfile, indent=2, ensure_ascii=False)


def write_jsonl(snapshot: EngineSnapshot, output_path: Path, abnormal_only: bool = False) -> None:
    with JSONLWriter(str(output_path)) as writer:
        writer.write_reports(select_transactions(snapshot, abnormal_only))


def write_csv(snapshot: EngineSnapshot, output_path: Path, abnormal_only: bool = False) -> None:
    """One row per transaction."""
    with open(output_path, 'w', newline='', encoding='utf-8') as outfile:
        writer = csv.writer(outfile)
        writer.writerow(CSV_HEADER)

        for report in select_transactions(snapshot, abnormal_only):
            writer.writerow([
                report.transaction_id,
                report.root_cause,
                report.abnormal,
                report.papi_request_seen,
                report.papi_response or '',
                report.tapi_request_seen,
                report.tapi_response or '',
                report.side_channel_confirmed,
                report.channel_dropped,
                report.offline_fallback,
                len(report.scheduler_touches),
                len(report.raw_lines),
            ])


def format_summary(snapshot: EngineSnapshot, top_errors: int = 10) -> str:
    """Human-readable summary report."""
    lines = []
    lines.append("LOG DIAGNOSIS SUMMARY REPORT")
    lines.append("=" * 50)
    lines.append("")
    lines.append(f"Total lines processed: {snapshot.total_lines}")
    lines.append(f"Structured (JSON) lines: {snapshot.structured_record_count}")
    lines.append(f"Correlation identifiers: {snapshot.correlation_index_size}")
    lines.append(f"Transactions: {len(snapshot.transactions)}")
    lines.append("")

    lines.append("CATEGORY COUNTS:")
    lines.append("-" * 25)
    for category in Category:
        lines.append(f"{category.value:20}: {snapshot.count(category):8}")
    lines.append("")

    latency = snapshot.latency
    lines.append(f"SLOW CALL LATENCY ({latency.sample_count} samples):")
    lines.append("-" * 25)
    lines.append(f"P50: {_format_ms(latency.p50)}")
    lines.append(f"P90: {_format_ms(latency.p90)}")
    lines.append(f"P99: {_format_ms(latency.p99)}")
    lines.append("")

    distribution = snapshot.root_cause_distribution()
    if distribution:
        lines.append("ROOT CAUSES:")
        lines.append("-" * 25)
        for cause, count in sorted(distribution.items(), key=lambda x: x[1], reverse=True):
            lines.append(f"[{count:6}x] {cause}")
        lines.append("")

    abnormal = snapshot.abnormal_transactions()
    if abnormal:
        lines.append(f"ABNORMAL TRANSACTIONS ({len(abnormal)}):")
        lines.append("-" * 25)
        for report in abnormal:
            lines.append(f"{report.transaction_id}  {report.root_cause}")
        lines.append("")

    if snapshot.error_groups:
        lines.append("TOP ERROR GROUPS:")
        lines.append("-" * 25)
        for i, group in enumerate(snapshot.error_groups[:top_errors], 1):
            lines.append(f"{i:2}. [{group.count:6}x] {group.fingerprint}")
        lines.append("")

    return "\n".join(lines)


def write_summary(snapshot: EngineSnapshot, output_path: Path, abnormal_only: bool = False) -> None:
    with open(output_path, 'w', encoding='utf-8') as outfile:
        outfile.write(format_summary(snapshot))
        outfile.write("\n")


def _html_table(headers: List[str], rows: List[List[str]]) -> str:
    parts = ["<table>", "<tr>" + "".join(f"<th>{html.escape(h)}</th>" for h in headers) + "</tr>"]
    for row in rows:
        parts.append("<tr>" + "".join(f"<td>{html.escape(str(cell))}</td>" for cell in row) + "</tr>")
    parts.append("</table>")
    return "\n".join(parts)


def render_html(snapshot: EngineSnapshot, abnormal_only: bool = False) -> str:
    """Single self-contained HTML page."""
    latency = snapshot.latency
    sections = [
        "<h2>Overview</h2>",
        _html_table(
            ["Metric", "Value"],
            [["Total lines", snapshot.total_lines],
             ["Structured lines", snapshot.structured_record_count],
             ["Correlation identifiers", snapshot.correlation_index_size],
             ["Transactions", len(snapshot.transactions)]]
            + [[category.value, snapshot.count(category)] for category in Category],
        ),
        "<h2>Slow call latency</h2>",
        _html_table(
            ["P50", "P90", "P99", "Samples"],
            [[_format_ms(latency.p50), _format_ms(latency.p90),
              _format_ms(latency.p99), latency.sample_count]],
        ),
        "<h2>Transactions</h2>",
        _html_table(
            ["Transaction", "Root cause", "Abnormal", "PAPI response", "TAPI response", "Lines"],
            [[report.transaction_id, report.root_cause, "yes" if report.abnormal else "no",
              report.papi_response or "", report.tapi_response or "", len(report.raw_lines)]
             for report in select_transactions(snapshot, abnormal_only)],
        ),
        "<h2>Error groups</h2>",
        _html_table(
            ["Count", "Fingerprint"],
            [[group.count, group.fingerprint] for group in snapshot.error_groups],
        ),
    ]

    return "\n".join([
        "<!DOCTYPE html>",
        "<html>",
        "<head><meta charset=\"utf-8\"><title>Log Diagnosis Report</title>",
        "<style>table{border-collapse:collapse}td,th{border:1px solid #ccc;padding:4px}</style>",
        "</head>",
        "<body>",
        "<h1>Log Diagnosis Report</h1>",
        *sections,
        "</body>",
        "</html>",
    ])


def write_html(snapshot: EngineSnapshot, output_path: Path, abnormal_only: bool = False) -> None:
    with open(output_path, 'w', encoding='utf-8') as outfile:
        outfile.write(render_html(snapshot, abnormal_only))


_WRITERS = {
    'json': write_json,
    'jsonl': write_jsonl,
    'csv': write_csv,
    'html': write_html,
    'summary': write_summary,
}


def write_report(snapshot: EngineSnapshot, output_path: Path, format: str,
                 abnormal_only: bool = False) -> None:
    """
    Render a snapshot to ``output_path``.

    Raises:
        ValueError: unknown format
    """
    writer = _WRITERS.get(format)
    if writer is None:
        raise ValueError(f"Unknown report format: {format}")
    writer(snapshot, Path(output_path), abnormal_only)
