#!/usr/bin/env python3
"""Summarize tasks and node timings from a framework log file.

Usage:
  python -m loganalyzer.scripts.analyze_log debug/maa.log
  python -m loganalyzer.scripts.analyze_log debug/maa.log --top 5 --tasks
  python -m loganalyzer.scripts.analyze_log debug/maa.log --process-id Px1234 --json
"""
from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from loganalyzer import config
from loganalyzer.models import LogAnalysis, NodeStatistics
from loganalyzer.services.log_analysis import analyze_log


def _read_log(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


def _format_duration(value: int | float | None) -> str:
    if value is None:
        return "-"
    if value >= 1000:
        return f"{value / 1000:.2f}s"
    return f"{value:.0f}ms"


def _print_rows(title: str, rows: list[NodeStatistics]) -> None:
    print(title)
    if not rows:
        print("  (none)")
        print("")
        return
    for idx, row in enumerate(rows, start=1):
        print(
            f"  {idx:02d}. {row.name} count={row.count} avg={_format_duration(row.avgDuration)} "
            f"max={_format_duration(row.maxDuration)} success={row.successRate:.1f}%"
        )
    print("")


def _print_report(path: Path, analysis: LogAnalysis, show_tasks: bool) -> None:
    summary = analysis.summary
    print(f"Log: {path}")
    print(
        f"Lines: {summary.total_lines} decoded={summary.decoded_lines} "
        f"malformed={summary.malformed_lines} events={summary.event_count}"
    )
    print(f"Tasks: {len(analysis.tasks)}")
    if analysis.processIds:
        print(f"Processes: {', '.join(analysis.processIds)}")
    if analysis.threadIds:
        print(f"Threads: {', '.join(analysis.threadIds)}")
    print("")

    if show_tasks:
        for task in analysis.tasks:
            print(
                f"  task={task.task_id} entry={task.entry} status={task.status} "
                f"nodes={len(task.nodes)} duration={_format_duration(task.duration)}"
            )
        print("")

    _print_rows("Slowest nodes:", analysis.topSlowest)
    _print_rows("Most frequent nodes:", analysis.topFrequent)
    _print_rows("Most failed nodes:", analysis.topFailed)


async def _run(args: argparse.Namespace) -> int:
    path = Path(args.path)
    try:
        content = _read_log(path)
    except OSError as exc:
        print(f"Failed to read log file: {path} ({exc.strerror or exc})")
        return 1

    analysis = await analyze_log(
        content,
        process_id=args.process_id or None,
        thread_id=args.thread_id or None,
        top_n=args.top,
    )

    if args.json:
        print(analysis.model_dump_json(indent=2))
        return 0

    _print_report(path, analysis, args.tasks)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("path", help="Path to the framework log file")
    parser.add_argument("--top", type=int, default=config.DEFAULT_TOP_N, help="Rows per top-N view")
    parser.add_argument("--process-id", default="", help="Only tasks announced by this process")
    parser.add_argument("--thread-id", default="", help="Only tasks announced by this thread")
    parser.add_argument("--tasks", action="store_true", help="List every reconstructed task")
    parser.add_argument("--json", action="store_true", help="Print the full analysis as JSON")
    args = parser.parse_args(argv)
    return asyncio.run(_run(args))


if __name__ == "__main__":
    raise SystemExit(main())
