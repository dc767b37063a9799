#!/usr/bin/env python3
"""
CLI tool for classifying log lines and diagnosing PAPI/TAPI transactions.

Usage:
    python analyze_logs.py --in logs/ --out report.json --format json
"""

import click
import sys
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from logdiag import DiagnosticEngine, EngineSnapshot, LogFileWalker
from logdiag.io_utils import ensure_directory, read_lines, tail_lines
from logdiag.reporting import REPORT_FORMATS, format_summary, write_report


@click.command()
@click.option('--input', '--in', 'inputs',
              required=True,
              multiple=True,
              help='Log file, directory or glob pattern (can be specified multiple times)')
@click.option('--output', '--out', 'output_file',
              type=click.Path(dir_okay=False),
              help='Output report file (summary is printed when omitted)')
@click.option('--format',
              type=click.Choice(REPORT_FORMATS),
              default='summary',
              help='Report format (default: summary)')
@click.option('--include', '-i',
              multiple=True,
              help='File patterns to include when scanning directories')
@click.option('--exclude', '-e',
              multiple=True,
              help='File patterns to exclude when scanning directories')
@click.option('--tail', 'follow',
              is_flag=True,
              help='Follow a single log file for new lines (like tail -f)')
@click.option('--poll-interval',
              type=float,
              default=0.5,
              help='Seconds between polls in tail mode (default: 0.5)')
@click.option('--from-start',
              is_flag=True,
              help='In tail mode, process existing content before following')
@click.option('--max-idle-polls',
              type=int,
              default=None,
              help='In tail mode, stop after this many empty polls (default: follow forever)')
@click.option('--reset-every',
              type=int,
              default=None,
              help='In tail mode, write a snapshot and reset the engine every N lines')
@click.option('--trace', 'trace_ids',
              multiple=True,
              help='Print every line seen for a correlation identifier')
@click.option('--abnormal-only',
              is_flag=True,
              help='Only report abnormal transactions')
@click.option('--sample-lines',
              type=int,
              help='Process only first N lines (for testing)')
@click.option('--verbose', '-v',
              is_flag=True,
              help='Enable verbose output')
def analyze_logs(inputs: tuple,
                 output_file: Optional[str],
                 format: str,
                 include: tuple,
                 exclude: tuple,
                 follow: bool,
                 poll_interval: float,
                 from_start: bool,
                 max_idle_polls: Optional[int],
                 reset_every: Optional[int],
                 trace_ids: tuple,
                 abnormal_only: bool,
                 sample_lines: Optional[int],
                 verbose: bool):
    """
    Classify log lines and reconstruct transaction lifecycles.

    Every line is tagged (Error, Timeout, SlowCall, ServiceHealthIssue),
    grouped by correlation identifier and folded into per-transaction
    evidence. The report carries category counts, slow-call percentiles,
    recurring error groups and a root cause per transaction.

    Examples:

    \b
    # Summary of a directory of logs
    python analyze_logs.py --in /var/log/payments

    \b
    # CSV of abnormal transactions only
    python analyze_logs.py --in 'logs/*.log' --out abnormal.csv \\
        --format csv --abnormal-only

    \b
    # Follow a live log, snapshotting every 10000 lines
    python analyze_logs.py --in app.log --tail --reset-every 10000 \\
        --out snapshot.json --format json
    """

    if format != 'summary' and not output_file:
        click.echo(f"Error: --out is required for --format {format}")
        sys.exit(1)

    if reset_every is not None and reset_every < 1:
        click.echo("Error: --reset-every must be a positive number of lines")
        sys.exit(1)

    if reset_every is not None and not follow:
        click.echo("Error: --reset-every only applies to --tail")
        sys.exit(1)

    if verbose:
        click.echo(f"Inputs: {list(inputs)}")
        click.echo(f"Output: {output_file or 'stdout'} ({format})")
        click.echo(f"Include patterns: {list(include)}")
        click.echo(f"Exclude patterns: {list(exclude)}")
        click.echo(f"Tail mode: {follow}")
        click.echo()

    try:
        walker = LogFileWalker(
            include_patterns=list(include) if include else None,
            exclude_patterns=list(exclude) if exclude else None,
        )
        paths = walker.expand(list(inputs))

        engine = DiagnosticEngine()

        if follow:
            if len(paths) != 1:
                click.echo("Error: --tail requires a single file")
                sys.exit(1)
            _run_tail(engine, paths[0], output_file, format, abnormal_only,
                      poll_interval, from_start, max_idle_polls, reset_every, verbose)
        else:
            _run_batch(engine, paths, sample_lines, verbose)
            snapshot = engine.snapshot()
            _emit(snapshot, output_file, format, abnormal_only)
            _echo_results(snapshot, output_file, verbose)

        for trace_id in trace_ids:
            _echo_trace(engine, trace_id)

    except FileNotFoundError as e:
        click.echo(f"\n❌ {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        click.echo("\n❌ Analysis cancelled by user")
        sys.exit(1)
    except Exception as e:
        click.echo(f"\n❌ Error during analysis: {e}")
        if verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


def _run_batch(engine: DiagnosticEngine, paths: List[Path],
               sample_lines: Optional[int], verbose: bool) -> None:
    """Feed every file, in order, into the engine."""
    line_num = 0

    with tqdm(total=len(paths), desc="Processing files", unit="file") as pbar:
        for path in paths:
            try:
                for line in read_lines(path):
                    if sample_lines and line_num >= sample_lines:
                        break
                    engine.ingest(line)
                    line_num += 1
            except OSError as e:
                click.echo(f"Warning: Skipping unreadable file {path}: {e}", err=True)
            pbar.update(1)

            if sample_lines and line_num >= sample_lines:
                break

    if verbose:
        click.echo(f"Read {line_num} lines from {len(paths)} file(s)")


def _run_tail(engine: DiagnosticEngine, path: Path, output_file: Optional[str],
              format: str, abnormal_only: bool, poll_interval: float,
              from_start: bool, max_idle_polls: Optional[int],
              reset_every: Optional[int], verbose: bool) -> None:
    """
    Follow one file. With ``reset_every`` the engine is snapshotted and
    reset every N lines so memory stays bounded.
    """
    click.echo(f"👀 Following {path} (Ctrl+C to stop)")

    cycle = 0
    lines_in_cycle = 0

    try:
        for line in tail_lines(path, poll_interval=poll_interval,
                               from_start=from_start, max_idle_polls=max_idle_polls):
            classification = engine.ingest(line)
            lines_in_cycle += 1

            if verbose and classification.tags:
                tags = ", ".join(sorted(str(tag) for tag in classification.tags))
                click.echo(f"[{tags}] {line.rstrip()}")

            if reset_every and lines_in_cycle >= reset_every:
                cycle += 1
                _flush_cycle(engine.snapshot(), output_file, format, abnormal_only, cycle)
                engine.reset()
                lines_in_cycle = 0
    except KeyboardInterrupt:
        click.echo("\n⏹️  Tail stopped by user")

    if reset_every:
        if lines_in_cycle:
            cycle += 1
            _flush_cycle(engine.snapshot(), output_file, format, abnormal_only, cycle)
        return

    snapshot = engine.snapshot()
    _emit(snapshot, output_file, format, abnormal_only)
    _echo_results(snapshot, output_file, verbose)


def _cycle_path(output_file: str, cycle: int) -> Path:
    path = Path(output_file)
    return path.with_name(f"{path.stem}.{cycle}{path.suffix}")


def _flush_cycle(snapshot: EngineSnapshot, output_file: Optional[str], format: str,
                 abnormal_only: bool, cycle: int) -> None:
    target = _cycle_path(output_file, cycle) if output_file else None
    _emit(snapshot, str(target) if target else None, format, abnormal_only)
    click.echo(f"📸 Snapshot {cycle}: {snapshot.total_lines} lines, "
               f"{len(snapshot.transactions)} transactions, "
               f"{len(snapshot.abnormal_transactions())} abnormal")


def _emit(snapshot: EngineSnapshot, output_file: Optional[str], format: str,
          abnormal_only: bool) -> None:
    if output_file:
        output_path = Path(output_file)
        ensure_directory(str(output_path.parent))
        write_report(snapshot, output_path, format, abnormal_only)
    else:
        click.echo(format_summary(snapshot))


def _echo_results(snapshot: EngineSnapshot, output_file: Optional[str], verbose: bool) -> None:
    click.echo(f"\n✅ Analysis completed!")
    click.echo(f"📊 Results:")
    click.echo(f"   • Total lines processed: {snapshot.total_lines}")
    click.echo(f"   • Errors: {snapshot.category_counts.get('Error', 0)}")
    click.echo(f"   • Timeouts: {snapshot.category_counts.get('Timeout', 0)}")
    click.echo(f"   • Slow calls: {snapshot.category_counts.get('SlowCall', 0)}")
    click.echo(f"   • Service health issues: {snapshot.category_counts.get('ServiceHealthIssue', 0)}")
    click.echo(f"   • Transactions: {len(snapshot.transactions)} "
               f"({len(snapshot.abnormal_transactions())} abnormal)")
    if output_file:
        click.echo(f"   • Output file: {Path(output_file).absolute()}")

    if verbose and snapshot.error_groups:
        click.echo(f"\n🔍 Top error groups:")
        for i, group in enumerate(snapshot.error_groups[:5], 1):
            click.echo(f"   {i}. {group}")
        if len(snapshot.error_groups) > 5:
            click.echo(f"   ... and {len(snapshot.error_groups) - 5} more")

    abnormal = snapshot.abnormal_transactions()
    if verbose and abnormal:
        click.echo(f"\n⚠️  Abnormal transactions:")
        for report in abnormal:
            click.echo(f"   • {report.transaction_id}: {report.root_cause}")


def _echo_trace(engine: DiagnosticEngine, trace_id: str) -> None:
    lines = engine.correlation.trace(trace_id)
    click.echo(f"\n🧵 Trace {trace_id} ({len(lines)} lines):")
    if not lines:
        click.echo("   (no lines seen for this identifier)")
    for line in lines:
        click.echo(f"   {line}")


if __name__ == '__main__':
    analyze_logs()
