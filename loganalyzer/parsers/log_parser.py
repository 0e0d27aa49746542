"""Chunked log parser that turns raw framework logs into task trees."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Optional

from loganalyzer import config
from loganalyzer.models import EventNotification, LogLine, ParseProgress, ParseSummary, TaskInfo
from loganalyzer.observability import record_parse, record_parser_failure, start_span
from loganalyzer.parsers.events import TaskOwnerRegistry, extract_event
from loganalyzer.parsers.log_lines import parse_line
from loganalyzer.parsers.tasks import TaskReconstructor
from loganalyzer.string_pool import StringPool

logger = logging.getLogger("loganalyzer.parser")

ProgressCallback = Callable[[ParseProgress], Any]


def _percentage(current: int, total: int) -> int:
    if total <= 0:
        return 100
    return int(current * 100 / total + 0.5)


class LogParser:
    """Parse one log at a time; every ``parse`` call starts from a clean slate.

    Instances are not safe to share between concurrent parses. Use one
    parser per log.
    """

    def __init__(self, chunk_size: Optional[int] = None) -> None:
        self.chunk_size = max(1, chunk_size or config.PARSE_CHUNK_SIZE)
        self._events: list[EventNotification] = []
        self._string_pool = StringPool()
        self._process_ids: set[str] = set()
        self._thread_ids: set[str] = set()
        self._owners = TaskOwnerRegistry()

    def _reset(self) -> None:
        self._events = []
        self._string_pool.clear()
        self._process_ids.clear()
        self._thread_ids.clear()
        self._owners.clear()

    async def parse(
        self,
        content: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> ParseSummary:
        """Decode ``content`` into the event buffer, yielding between chunks.

        ``on_progress`` is called after each chunk; coroutine callbacks are
        awaited. Malformed lines are logged and skipped.
        """
        self._reset()
        started = time.monotonic()

        raw_lines = content.split("\n")
        total_lines = len(raw_lines)
        summary = ParseSummary(total_lines=total_lines)
        events: list[EventNotification] = []

        with start_span("loganalyzer.parse", {"lines": total_lines}):
            for start_idx in range(0, total_lines, self.chunk_size):
                # Let other coroutines (and any UI feeding progress) run.
                await asyncio.sleep(0)

                end_idx = min(start_idx + self.chunk_size, total_lines)
                for line_number in range(start_idx + 1, end_idx + 1):
                    raw_line = raw_lines[line_number - 1].strip()
                    if not raw_line:
                        continue
                    try:
                        parsed = parse_line(raw_line, line_number)
                        if parsed is None:
                            logger.warning("Skipping malformed log line %d", line_number)
                            summary.malformed_lines += 1
                            continue
                        summary.decoded_lines += 1
                        event = self._register(parsed, raw_line)
                    except Exception:
                        logger.warning("Failed to parse line %d", line_number, exc_info=True)
                        summary.malformed_lines += 1
                        continue
                    if event is not None:
                        events.append(event)

                if on_progress is not None:
                    progress = ParseProgress(
                        current=end_idx,
                        total=total_lines,
                        percentage=_percentage(end_idx, total_lines),
                    )
                    result = on_progress(progress)
                    if asyncio.iscoroutine(result):
                        await result

        self._events = events
        summary.event_count = len(events)
        summary.duration_ms = int((time.monotonic() - started) * 1000)

        record_parse("success", summary.duration_ms, lines=summary.decoded_lines, events=summary.event_count)
        record_parser_failure("log_line", summary.malformed_lines)
        logger.info(
            "Parsed %d lines (%d events, %d malformed) in %dms",
            summary.total_lines,
            summary.event_count,
            summary.malformed_lines,
            summary.duration_ms,
        )
        return summary

    def _register(self, parsed: LogLine, raw_line: str) -> EventNotification | None:
        """Record the line's process/thread ids and return its event, if any."""
        self._process_ids.add(parsed.processId)
        self._thread_ids.add(parsed.threadId)

        if config.EVENT_MARKER not in raw_line:
            return None
        event = extract_event(parsed)
        if event is not None:
            self._owners.observe(event, parsed.processId, parsed.threadId)
        return event

    def get_tasks(self) -> list[TaskInfo]:
        """Reconstruct the task forest and release the event buffer.

        A second call without a new ``parse`` returns an empty list.
        """
        with start_span("loganalyzer.reconstruct", {"events": len(self._events)}):
            tasks = TaskReconstructor(self._events, self._string_pool).build()

        self._events = []
        logger.debug("String pool held %d unique strings", self._string_pool.size())
        self._string_pool.clear()
        return tasks

    def get_events(self) -> list[EventNotification]:
        return self._events

    def get_process_ids(self) -> list[str]:
        """Process ids that own at least one task, sorted."""
        return self._owners.process_ids()

    def get_thread_ids(self) -> list[str]:
        """Thread ids that own at least one task, sorted."""
        return self._owners.thread_ids()

    def get_all_process_ids(self) -> list[str]:
        return sorted(self._process_ids)

    def get_all_thread_ids(self) -> list[str]:
        return sorted(self._thread_ids)

    def get_task_process_id(self, task_id: int) -> str | None:
        return self._owners.process_id(task_id)

    def get_task_thread_id(self, task_id: int) -> str | None:
        return self._owners.thread_id(task_id)
