"""Per-node timing and recognition/action statistics over reconstructed tasks.

Every function here is a pure function of the task list: rows are pooled by
node *name* across all tasks, and duration samples outside
``[0, config.DURATION_OUTLIER_MS)`` are dropped as garbled timestamps.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from loganalyzer import config
from loganalyzer.date_utils import duration_ms
from loganalyzer.models import NodeStatistics, RecognitionActionStatistics, TaskInfo


@dataclass
class _TimingAccumulator:
    durations: list[int] = field(default_factory=list)
    success_count: int = 0
    fail_count: int = 0


@dataclass
class _PhaseAccumulator:
    recognition_durations: list[int] = field(default_factory=list)
    action_durations: list[int] = field(default_factory=list)
    recognition_attempts: list[int] = field(default_factory=list)
    success_count: int = 0
    fail_count: int = 0


def _is_valid_duration(value: Optional[int]) -> bool:
    return value is not None and 0 <= value < config.DURATION_OUTLIER_MS


def _success_rate(success_count: int, fail_count: int) -> float:
    return success_count / (success_count + fail_count) * 100


def analyze(tasks: list[TaskInfo]) -> list[NodeStatistics]:
    """Return one timing row per node name, slowest average first.

    A node's duration runs until the next node of the same task, or until
    the task's end for the last node. The last node of an unfinished task
    has no end and is skipped.
    """
    stats_by_name: dict[str, _TimingAccumulator] = {}

    for task in tasks:
        nodes = task.nodes
        for index, node in enumerate(nodes):
            if index + 1 < len(nodes):
                duration = duration_ms(node.timestamp, nodes[index + 1].timestamp)
            elif task.end_time:
                duration = duration_ms(node.timestamp, task.end_time)
            else:
                continue

            if not _is_valid_duration(duration):
                continue

            stats = stats_by_name.setdefault(node.name, _TimingAccumulator())
            stats.durations.append(duration)
            if node.status == "success":
                stats.success_count += 1
            else:
                stats.fail_count += 1

    result: list[NodeStatistics] = []
    for name, stats in stats_by_name.items():
        durations = stats.durations
        count = len(durations)
        if count == 0:
            continue
        total = sum(durations)
        result.append(
            NodeStatistics(
                name=name,
                count=count,
                totalDuration=total,
                avgDuration=total / count,
                minDuration=min(durations),
                maxDuration=max(durations),
                successCount=stats.success_count,
                failCount=stats.fail_count,
                successRate=_success_rate(stats.success_count, stats.fail_count),
                durations=list(durations),
            )
        )

    result.sort(key=lambda row: row.avgDuration, reverse=True)
    return result


def get_top_slowest(tasks: list[TaskInfo], top_n: int = 10) -> list[NodeStatistics]:
    return analyze(tasks)[:top_n]


def get_top_frequent(tasks: list[TaskInfo], top_n: int = 10) -> list[NodeStatistics]:
    rows = analyze(tasks)
    return sorted(rows, key=lambda row: row.count, reverse=True)[:top_n]


def get_top_failed(tasks: list[TaskInfo], top_n: int = 10) -> list[NodeStatistics]:
    """Names with at least one failure, highest failure ratio first."""
    rows = [row for row in analyze(tasks) if row.failCount > 0]
    return sorted(rows, key=lambda row: row.failCount / row.count, reverse=True)[:top_n]


def analyze_recognition_action(tasks: list[TaskInfo]) -> list[RecognitionActionStatistics]:
    """Split each node's time into a recognition phase and an action phase.

    Recognition runs from the first to the last recognition attempt and is
    only meaningful with two or more attempts. Action runs from the last
    attempt to the node's completion. Rows are sorted by average action
    duration, longest first.
    """
    stats_by_name: dict[str, _PhaseAccumulator] = {}

    for task in tasks:
        for node in task.nodes:
            attempts = node.recognition_attempts
            if not attempts:
                continue

            stats = stats_by_name.setdefault(node.name, _PhaseAccumulator())
            stats.recognition_attempts.append(len(attempts))

            first_ts = attempts[0].timestamp
            last_ts = attempts[-1].timestamp

            recognition_duration = duration_ms(first_ts, last_ts)
            if len(attempts) > 1 and _is_valid_duration(recognition_duration):
                stats.recognition_durations.append(recognition_duration)

            action_duration = duration_ms(last_ts, node.timestamp)
            if _is_valid_duration(action_duration):
                stats.action_durations.append(action_duration)

            if node.status == "success":
                stats.success_count += 1
            else:
                stats.fail_count += 1

    result: list[RecognitionActionStatistics] = []
    for name, stats in stats_by_name.items():
        count = stats.success_count + stats.fail_count
        if count == 0:
            continue

        reco = stats.recognition_durations
        reco_total = sum(reco)
        action = stats.action_durations
        action_total = sum(action)
        attempts_total = sum(stats.recognition_attempts)

        result.append(
            RecognitionActionStatistics(
                name=name,
                count=count,
                avgRecognitionDuration=reco_total / len(reco) if reco else 0.0,
                minRecognitionDuration=min(reco) if reco else 0,
                maxRecognitionDuration=max(reco) if reco else 0,
                totalRecognitionDuration=reco_total,
                recognitionCount=len(reco),
                avgActionDuration=action_total / len(action) if action else 0.0,
                minActionDuration=min(action) if action else 0,
                maxActionDuration=max(action) if action else 0,
                totalActionDuration=action_total,
                actionCount=len(action),
                avgRecognitionAttempts=attempts_total / len(stats.recognition_attempts),
                totalRecognitionAttempts=attempts_total,
                successCount=stats.success_count,
                failCount=stats.fail_count,
                successRate=_success_rate(stats.success_count, stats.fail_count),
            )
        )

    result.sort(key=lambda row: row.avgActionDuration, reverse=True)
    return result
