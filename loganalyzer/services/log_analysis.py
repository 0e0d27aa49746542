"""Run a full parse and bundle the task forest with its statistics."""
from __future__ import annotations

import logging
from typing import Optional

from loganalyzer import config
from loganalyzer.models import LogAnalysis, TaskInfo, TaskSummary
from loganalyzer.observability import record_task_outcomes
from loganalyzer.parsers.log_parser import LogParser, ProgressCallback
from loganalyzer.services import node_statistics

logger = logging.getLogger("loganalyzer.analysis")


def filter_tasks_by_owner(
    parser: LogParser,
    tasks: list[TaskInfo],
    process_id: Optional[str] = None,
    thread_id: Optional[str] = None,
) -> list[TaskInfo]:
    """Keep tasks whose announcing process/thread matches the given ids."""
    if not process_id and not thread_id:
        return tasks
    kept: list[TaskInfo] = []
    for task in tasks:
        if process_id and parser.get_task_process_id(task.task_id) != process_id:
            continue
        if thread_id and parser.get_task_thread_id(task.task_id) != thread_id:
            continue
        kept.append(task)
    return kept


def summarize_task(parser: LogParser, task: TaskInfo) -> TaskSummary:
    return TaskSummary(
        task_id=task.task_id,
        entry=task.entry,
        uuid=task.uuid,
        start_time=task.start_time,
        end_time=task.end_time,
        status=task.status,
        duration=task.duration,
        nodeCount=len(task.nodes),
        processId=parser.get_task_process_id(task.task_id),
        threadId=parser.get_task_thread_id(task.task_id),
    )


async def parse_log(
    content: str,
    *,
    process_id: Optional[str] = None,
    thread_id: Optional[str] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> tuple[LogParser, LogAnalysis]:
    """Parse ``content`` with a fresh parser; the returned analysis has no statistics yet."""
    parser = LogParser()
    summary = await parser.parse(content, on_progress=on_progress)
    tasks = filter_tasks_by_owner(parser, parser.get_tasks(), process_id, thread_id)
    record_task_outcomes(task.status for task in tasks)
    analysis = LogAnalysis(
        summary=summary,
        tasks=tasks,
        processIds=parser.get_process_ids(),
        threadIds=parser.get_thread_ids(),
    )
    return parser, analysis


async def analyze_log(
    content: str,
    *,
    process_id: Optional[str] = None,
    thread_id: Optional[str] = None,
    top_n: Optional[int] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> LogAnalysis:
    """Parse ``content`` and attach node statistics plus the top-N views."""
    limit = config.DEFAULT_TOP_N if top_n is None else max(0, top_n)
    _, analysis = await parse_log(
        content,
        process_id=process_id,
        thread_id=thread_id,
        on_progress=on_progress,
    )

    tasks = analysis.tasks
    analysis.nodeStatistics = node_statistics.analyze(tasks)
    analysis.recognitionActionStatistics = node_statistics.analyze_recognition_action(tasks)
    analysis.topSlowest = node_statistics.get_top_slowest(tasks, limit)
    analysis.topFrequent = node_statistics.get_top_frequent(tasks, limit)
    analysis.topFailed = node_statistics.get_top_failed(tasks, limit)

    logger.info(
        "Analyzed %d tasks (%d node names) from %d events",
        len(tasks),
        len(analysis.nodeStatistics),
        analysis.summary.event_count,
    )
    return analysis
