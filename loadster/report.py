"""
Console output

Verbose per-request lines and the end-of-run summary. Only raw aggregates
(counts, totals, average/min/max) are reported.
"""

import os
import sys
import threading
from typing import Optional, TextIO

from loadster.model import Outcome, ResultSet

# ANSI color codes
GREEN = "\033[92m"
RED = "\033[91m"
YELLOW = "\033[93m"
CYAN = "\033[96m"
BOLD = "\033[1m"
RESET = "\033[0m"

_colors_enabled = "NO_COLOR" not in os.environ
_print_lock = threading.Lock()


def set_color(enabled: bool) -> None:
    """Enable or disable ANSI colors for all console output."""
    global _colors_enabled
    _colors_enabled = enabled and "NO_COLOR" not in os.environ


def paint(text: str, *codes: str) -> str:
    if not _colors_enabled or not codes:
        return text
    return "".join(codes) + text + RESET


def warn(message: str) -> None:
    print(paint(f"Warning: {message}", YELLOW), file=sys.stderr)


def error(message: str) -> None:
    print(paint(f"Error: {message}", RED), file=sys.stderr)


def info(message: str) -> None:
    print(paint(message, GREEN))


def status_color(status: int) -> str:
    if 200 <= status < 300:
        return GREEN
    if 300 <= status < 400:
        return YELLOW
    return RED


def format_outcome_line(seq: int, outcome: Outcome) -> str:
    """
    Build the verbose console line for one outcome.

    Args:
        seq: 1-based arrival number
        outcome: Completed request outcome

    Returns:
        Line like "[3] 200 | 12 ms" or "[4] timeout | 30000 ms | <detail>"
    """
    if outcome.ok:
        return f"[{seq}] {paint(str(outcome.status), status_color(outcome.status))} | {outcome.elapsed_ms} ms"
    line = f"[{seq}] {paint(outcome.reason.value, RED)} | {outcome.elapsed_ms} ms"
    if outcome.detail:
        line += f" | {outcome.detail[:80]}"
    return line


def print_outcome(seq: int, outcome: Outcome) -> None:
    """Collector listener used in verbose mode; safe to call from any thread."""
    line = format_outcome_line(seq, outcome)
    with _print_lock:
        print(line, flush=True)


def print_run_header(url: str, method: str, concurrency: int,
                     requests_per_user: int, duration: Optional[float]) -> None:
    print(f"\n{paint('Starting load test...', BOLD)}")
    print(f"Target: {paint(url, CYAN)}")
    print(f"Method: {method}")
    print(f"Virtual users: {concurrency}")
    if duration:
        print(f"Duration: {duration:g} seconds")
    else:
        print(f"Requests per user: {requests_per_user}")
    print("-" * 60)


def print_summary(result_set: ResultSet, url: str, out: Optional[TextIO] = None) -> None:
    """
    Print the load test summary.

    Args:
        result_set: Frozen results of the run
        url: Target URL
        out: Stream to write to (default: stdout)
    """
    out = out or sys.stdout

    def emit(line: str = "") -> None:
        print(line, file=out)

    times = [o.elapsed_ms for o in result_set]
    total_time = sum(times)
    throughput = result_set.total / result_set.duration if result_set.duration > 0 else 0

    emit()
    emit(paint("Load Test Results", BOLD, CYAN))
    if result_set.cancelled:
        emit(paint("Run cancelled: partial results", YELLOW))
    emit(f"Target URL: {url}")
    emit(f"Total Requests: {result_set.total}")
    emit(f"Successful Requests: {paint(str(result_set.succeeded), GREEN)}")
    failed = str(result_set.failed)
    emit(f"Failed Requests: {paint(failed, RED) if result_set.failed else failed}")
    emit(f"Duration: {result_set.duration:.2f} seconds")
    emit(f"Throughput: {throughput:.2f} req/s")
    emit(f"Total Time: {total_time} ms")

    if times:
        emit(f"Average Time per Request: {total_time / len(times):.2f} ms")
        emit(f"Minimum Time: {min(times)} ms")
        emit(f"Maximum Time: {max(times)} ms")

    success_times = [o.elapsed_ms for o in result_set if o.ok]
    if success_times:
        emit()
        emit(paint("Additional Metrics", BOLD))
        emit(f"Min Successful Request Time: {min(success_times)} ms")
        emit(f"Max Successful Request Time: {max(success_times)} ms")
        emit(f"Avg Successful Request Time: {sum(success_times) / len(success_times):.2f} ms")

    status_counts = result_set.status_counts()
    if status_counts:
        emit()
        emit(paint("Response Codes", BOLD))
        for code, count in sorted(status_counts.items()):
            pct = count / result_set.total * 100
            emit(f"  {paint(str(code), status_color(code))}  {count} ({pct:.1f}%)")

    failure_counts = result_set.failure_counts()
    if failure_counts:
        emit()
        emit(paint("Failures", BOLD, RED))
        for reason, count in sorted(failure_counts.items(), key=lambda x: -x[1]):
            emit(f"  {reason.value}  {count}")
