#!/usr/bin/env python3
"""
Demo script for the log classification and transaction diagnosis system.
"""

import tempfile
from pathlib import Path

from logdiag import DiagnosticEngine
from logdiag.reporting import format_summary, write_report


TXN_OK = "3f2b8c1e-9a4d-4e7f-8b21-6c5d4e3f2a10"
TXN_OFFLINE = "7a1c2d3e-4f5a-4b6c-9d7e-8f9a0b1c2d3e"
TXN_FAILED = "c0ffee00-1234-4abc-8def-0123456789ab"


def create_sample_logs():
    """Create a small, interleaved log stream covering the main outcomes."""
    return [
        "2024-03-01 10:00:00 INFO  Service starting, healthcheck ok",
        f"2024-03-01 10:00:01 INFO  transactionId=\"{TXN_OK}\" POST /gateway/papi/v2/payments",
        f"2024-03-01 10:00:01 INFO  transactionId=\"{TXN_OFFLINE}\" POST /gateway/papi/v2/payments",
        f"2024-03-01 10:00:02 INFO  PAPI response transactionId=\"{TXN_OK}\" {{\"statusCode\":200,\"status\":\"ACCEPTED\"}}",
        f"2024-03-01 10:00:02 INFO  transactionId=\"{TXN_OK}\" POST /terminal/tapi/v1/authorize completeReqTTms=\"512\"",
        f"2024-03-01 10:00:03 INFO  PAPI response transactionId=\"{TXN_OFFLINE}\" {{\"statusCode\":200,\"status\":\"ACCEPTED\"}}",
        f"2024-03-01 10:00:03 INFO  transactionId=\"{TXN_OFFLINE}\" POST /terminal/tapi/v1/authorize",
        f"2024-03-01 10:00:04 ERROR TAPI call timed out for {TXN_OFFLINE}, saving to offline table",
        f"2024-03-01 10:00:04 INFO  TAPI response transactionId=\"{TXN_OK}\" {{\"statusCode\":200,\"outcome\":\"APPROVED\"}}",
        f"2024-03-01 10:00:05 INFO  transactionId=\"{TXN_OK}\" Kinesis + DynamoDB write successful",
        '{"level":"error","message":"ledger sync failed","durationMs":845}',
        "2024-03-01 10:00:06 WARN  Failed to connect to fraud-service:8443",
        f"2024-03-01 10:00:07 INFO  transactionId=\"{TXN_FAILED}\" POST /gateway/papi/v2/payments",
        f"2024-03-01 10:00:08 INFO  PAPI response transactionId=\"{TXN_FAILED}\" {{\"statusCode\":500,\"status\":\"FAILED\"}}",
        "2024-03-01 10:00:09 INFO  Offline scheduler job started, replaying queued payments",
        "2024-03-01 10:00:10 ERROR Database error: connection pool exhausted",
        "2024-03-01 10:00:11 ERROR Database error: connection pool exhausted",
        '{"level":"info","message":"render receipt","durationMs":120}',
    ]


def main():
    """Run the demo."""
    print("🚀 Log Diagnosis System Demo")
    print("=" * 50)

    engine = DiagnosticEngine()

    # Step 1: feed the stream
    lines = create_sample_logs()
    print(f"\n📥 Ingesting {len(lines)} log lines...")
    for i, line in enumerate(lines, 1):
        classification = engine.ingest(line)
        tags = ", ".join(sorted(str(tag) for tag in classification.tags)) or "-"
        print(f"  {i:2}. [{tags}] {line[:90]}")

    # Step 2: snapshot
    snapshot = engine.snapshot()
    print("\n" + format_summary(snapshot))

    # Step 3: per-transaction detail
    print("🔎 Transactions:")
    for report in snapshot.transactions.values():
        marker = "⚠️ " if report.abnormal else "✅"
        print(f"  {marker} {report.transaction_id}")
        print(f"      Root cause: {report.root_cause}")
        print(f"      PAPI: {report.papi_response or 'none'}  TAPI: {report.tapi_response or 'none'}")
        print(f"      Scheduler touches: {len(report.scheduler_touches)}")

    # Step 4: correlation trace
    print(f"\n🧵 Trace for {TXN_OK}:")
    for line in engine.correlation.trace(TXN_OK):
        print(f"   {line}")

    # Step 5: write a JSON report
    with tempfile.TemporaryDirectory() as temp_dir:
        report_path = Path(temp_dir) / "report.json"
        write_report(snapshot, report_path, 'json')
        print(f"\n💾 Wrote JSON report ({report_path.stat().st_size} bytes)")

    print(f"\n🎉 Demo completed successfully!")


if __name__ == '__main__':
    main()
