"""
Integration tests: file discovery, reports and the command-line tool.
"""

import csv
import json
import shutil
import tempfile
import unittest
from pathlib import Path

from click.testing import CliRunner

from analyze_logs import analyze_logs
from logdiag import DiagnosticEngine, LogFileWalker, RootCause, JSONLWriter, JSONLReader
from logdiag.io_utils import read_multiple, tail_lines
from logdiag.reporting import format_summary, render_html, write_report
from tests.test_data.log_samples import (
    TXN_A, TXN_B, SCHEDULER_LINE, happy_path, papi_request, papi_response, offline
)


def sample_stream():
    return happy_path(TXN_A) + [
        papi_request(TXN_B),
        papi_response(TXN_B, 500, "FAILED"),
        offline(TXN_B),
        "ERROR: disk full",
        "ERROR: disk full",
        'completeReqTTms="450" path=/checkout',
        "Failed to connect to ledger <primary>",
    ]


class TestFileDiscovery(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        (self.temp_dir / "nested").mkdir()
        (self.temp_dir / "app.log").write_text("a\nb\n")
        (self.temp_dir / "nested" / "worker.log").write_text("c\n")
        (self.temp_dir / "notes.md").write_text("ignored\n")
        (self.temp_dir / "old.log.gz").write_text("ignored\n")

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_directory_expansion(self):
        paths = LogFileWalker().expand([str(self.temp_dir)])
        names = [p.name for p in paths]

        self.assertEqual(names, ["app.log", "worker.log"])

    def test_glob_and_deduplication(self):
        app_log = str(self.temp_dir / "app.log")
        paths = LogFileWalker().expand([app_log, str(self.temp_dir / "*.log"), app_log])

        self.assertEqual([p.name for p in paths], ["app.log"])

    def test_include_and_exclude(self):
        walker = LogFileWalker(include_patterns=["*.md", "*.log"], exclude_patterns=["worker*"])
        names = sorted(p.name for p in walker.expand([str(self.temp_dir)]))

        self.assertEqual(names, ["app.log", "notes.md"])

    def test_missing_inputs(self):
        walker = LogFileWalker()
        with self.assertRaises(FileNotFoundError):
            walker.expand([str(self.temp_dir / "missing.log")])
        with self.assertRaises(FileNotFoundError):
            walker.expand([str(self.temp_dir / "*.nothing")])

    def test_read_multiple(self):
        paths = LogFileWalker().expand([str(self.temp_dir)])
        lines = [line.strip() for line, _ in read_multiple(paths)]

        self.assertEqual(lines, ["a", "b", "c"])

    def test_tail_from_start_stops_when_idle(self):
        path = self.temp_dir / "live.log"
        path.write_text("first\nsecond\npartial")

        lines = list(tail_lines(path, poll_interval=0.01, from_start=True, max_idle_polls=1))
        self.assertEqual(lines, ["first", "second", "partial"])

    def test_tail_skips_existing_content(self):
        path = self.temp_dir / "live.log"
        path.write_text("old line\n")

        lines = list(tail_lines(path, poll_interval=0.01, max_idle_polls=1))
        self.assertEqual(lines, [])


class TestReports(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        engine = DiagnosticEngine()
        engine.ingest_many(sample_stream())
        self.snapshot = engine.snapshot()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_json_report(self):
        output = self.temp_dir / "report.json"
        write_report(self.snapshot, output, 'json')
        data = json.loads(output.read_text())

        self.assertEqual(data['total_lines'], self.snapshot.total_lines)
        self.assertEqual(data['transactions'][TXN_A]['root_cause'], RootCause.OK)
        self.assertEqual(data['transactions'][TXN_B]['papi_response'], "500 FAILED")
        self.assertEqual(data['latency']['p50'], 450)
        self.assertEqual(data['error_groups'][0]['count'], 2)
        self.assertEqual(data['category_counts']['Error'], 3)

    def test_jsonl_abnormal_only(self):
        output = self.temp_dir / "transactions.jsonl"
        write_report(self.snapshot, output, 'jsonl', abnormal_only=True)
        rows = [json.loads(line) for line in output.read_text().splitlines()]

        self.assertEqual([row['transaction_id'] for row in rows], [TXN_B])
        self.assertTrue(rows[0]['abnormal'])

    def test_jsonl_reports_read_back(self):
        output = self.temp_dir / "transactions.jsonl"
        reports = list(self.snapshot.transactions.values())
        with JSONLWriter(str(output)) as writer:
            writer.write_reports(reports)
        with open(output, 'a', encoding='utf-8') as f:
            f.write("\nnot json\n[1, 2]\n")

        reader = JSONLReader(str(output))
        loaded = reader.read_reports()

        self.assertEqual(loaded, reports)
        self.assertEqual(loaded[0].raw_lines, reports[0].raw_lines)
        self.assertEqual(reader.skipped_lines, [4, 5])
        self.assertEqual(JSONLReader(str(self.temp_dir / "missing.jsonl")).read_reports(), [])

    def test_csv_report(self):
        output = self.temp_dir / "transactions.csv"
        write_report(self.snapshot, output, 'csv')

        with open(output, newline='', encoding='utf-8') as f:
            rows = list(csv.DictReader(f))

        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[0]['transaction_id'], TXN_A)
        self.assertEqual(rows[0]['root_cause'], RootCause.OK)
        self.assertEqual(rows[1]['papi_response'], "500 FAILED")
        self.assertEqual(rows[1]['line_count'], "3")

    def test_html_report(self):
        page = render_html(self.snapshot)

        self.assertIn("<h1>Log Diagnosis Report</h1>", page)
        self.assertIn(TXN_A, page)
        self.assertIn("450 ms", page)

    def test_html_is_escaped(self):
        engine = DiagnosticEngine()
        engine.ingest("ERROR <script>alert(1)</script>")
        page = render_html(engine.snapshot())

        self.assertIn("&lt;script&gt;", page)
        self.assertNotIn("<script>", page)

    def test_summary(self):
        summary = format_summary(self.snapshot)

        self.assertIn("Total lines processed: 12", summary)
        self.assertIn("P50: 450 ms", summary)
        self.assertIn("ERROR: disk full", summary)
        self.assertIn(TXN_B, summary)

    def test_summary_without_samples(self):
        summary = format_summary(DiagnosticEngine().snapshot())
        self.assertIn("P99: n/a", summary)

    def test_unknown_format(self):
        with self.assertRaises(ValueError):
            write_report(self.snapshot, self.temp_dir / "x.txt", 'xml')


class TestCommandLine(unittest.TestCase):

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.log_file = self.temp_dir / "app.log"
        self.log_file.write_text("\n".join(sample_stream()) + "\n")
        self.runner = CliRunner()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_summary_to_stdout(self):
        result = self.runner.invoke(analyze_logs, ['--in', str(self.log_file)])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("LOG DIAGNOSIS SUMMARY REPORT", result.output)
        self.assertIn("Analysis completed", result.output)

    def test_json_output_and_trace(self):
        output = self.temp_dir / "out" / "report.json"
        result = self.runner.invoke(analyze_logs, [
            '--in', str(self.temp_dir), '--out', str(output),
            '--format', 'json', '--trace', TXN_A,
        ])

        self.assertEqual(result.exit_code, 0, result.output)
        data = json.loads(output.read_text())
        self.assertEqual(len(data['transactions']), 2)
        self.assertIn(f"Trace {TXN_A} (5 lines)", result.output)

    def test_sample_lines(self):
        output = self.temp_dir / "report.json"
        result = self.runner.invoke(analyze_logs, [
            '--in', str(self.log_file), '--out', str(output),
            '--format', 'json', '--sample-lines', '3',
        ])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(json.loads(output.read_text())['total_lines'], 3)

    def test_verbose_lists_abnormal_transactions(self):
        result = self.runner.invoke(analyze_logs, ['--in', str(self.log_file), '--verbose'])

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Abnormal transactions:", result.output)
        self.assertIn(f"{TXN_B}: {RootCause.MISSING_TAPI_REQUEST}", result.output)
        self.assertNotIn(f"{TXN_A}: {RootCause.OK}", result.output)

    def test_missing_input_is_fatal(self):
        result = self.runner.invoke(analyze_logs, ['--in', str(self.temp_dir / "nope.log")])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Input not found", result.output)

    def test_out_required_for_file_formats(self):
        result = self.runner.invoke(analyze_logs, ['--in', str(self.log_file), '--format', 'csv'])
        self.assertEqual(result.exit_code, 1)

    def test_tail_with_reset_cycles(self):
        output = self.temp_dir / "snap.json"
        result = self.runner.invoke(analyze_logs, [
            '--in', str(self.log_file), '--tail', '--from-start',
            '--poll-interval', '0.01', '--max-idle-polls', '1',
            '--reset-every', '5', '--out', str(output), '--format', 'json',
        ])

        self.assertEqual(result.exit_code, 0, result.output)
        cycles = sorted(self.temp_dir.glob("snap.*.json"))
        self.assertEqual([p.name for p in cycles], ["snap.1.json", "snap.2.json", "snap.3.json"])

        first = json.loads((self.temp_dir / "snap.1.json").read_text())
        last = json.loads((self.temp_dir / "snap.3.json").read_text())
        self.assertEqual(first['total_lines'], 5)
        self.assertEqual(first['transactions'][TXN_A]['root_cause'], RootCause.OK)
        self.assertEqual(last['total_lines'], 2)

    def test_tail_requires_single_file(self):
        (self.temp_dir / "other.log").write_text(SCHEDULER_LINE + "\n")
        result = self.runner.invoke(analyze_logs, ['--in', str(self.temp_dir), '--tail'])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("--tail requires a single file", result.output)


if __name__ == '__main__':
    unittest.main()
