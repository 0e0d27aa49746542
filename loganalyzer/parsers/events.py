"""Extract event notifications from decoded log lines."""
from __future__ import annotations

from typing import Any

from loganalyzer import config
from loganalyzer.models import EventNotification, LogLine

TASK_STARTING = "Tasker.Task.Starting"
TASK_SUCCEEDED = "Tasker.Task.Succeeded"
TASK_FAILED = "Tasker.Task.Failed"
NEXT_LIST_STARTING = "Node.NextList.Starting"
PIPELINE_NODE_SUCCEEDED = "Node.PipelineNode.Succeeded"
PIPELINE_NODE_FAILED = "Node.PipelineNode.Failed"
RECOGNITION_NODE_SUCCEEDED = "Node.RecognitionNode.Succeeded"
RECOGNITION_NODE_FAILED = "Node.RecognitionNode.Failed"
ACTION_NODE_SUCCEEDED = "Node.ActionNode.Succeeded"
ACTION_NODE_FAILED = "Node.ActionNode.Failed"
RECOGNITION_SUCCEEDED = "Node.Recognition.Succeeded"
RECOGNITION_FAILED = "Node.Recognition.Failed"
ACTION_SUCCEEDED = "Node.Action.Succeeded"
ACTION_FAILED = "Node.Action.Failed"


def as_id(value: Any) -> int | None:
    """Return value if it is a usable integer id (bools excluded), else None."""
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def extract_event(log_line: LogLine) -> EventNotification | None:
    """Build an EventNotification from a decoded marker line.

    Returns None when the line is not an event notification or carries no
    ``msg`` parameter. A ``details`` value that is not a JSON object is
    treated as empty.
    """
    if config.EVENT_MARKER not in log_line.message:
        return None

    msg = log_line.params.get("msg")
    if not msg or not isinstance(msg, str):
        return None

    details = log_line.params.get("details")
    if not isinstance(details, dict):
        details = {}

    return EventNotification(
        timestamp=log_line.timestamp,
        level=log_line.level,
        message=msg,
        details=details,
        line_number=log_line.line_number,
    )


class TaskOwnerRegistry:
    """Remember which process/thread first announced each task id.

    Events relayed over IPC repeat the task start from another process, so
    only the first owner seen for a task id is kept.
    """

    def __init__(self) -> None:
        self._process_by_task: dict[int, str] = {}
        self._thread_by_task: dict[int, str] = {}

    def observe(self, event: EventNotification, process_id: str, thread_id: str) -> None:
        if event.message != TASK_STARTING:
            return
        task_id = as_id(event.details.get("task_id"))
        if not task_id or task_id in self._process_by_task:
            return
        self._process_by_task[task_id] = process_id
        self._thread_by_task[task_id] = thread_id

    def process_id(self, task_id: Any) -> str | None:
        return self._process_by_task.get(task_id)

    def thread_id(self, task_id: Any) -> str | None:
        return self._thread_by_task.get(task_id)

    def process_ids(self) -> list[str]:
        return sorted(set(self._process_by_task.values()))

    def thread_ids(self) -> list[str]:
        return sorted(set(self._thread_by_task.values()))

    def clear(self) -> None:
        self._process_by_task.clear()
        self._thread_by_task.clear()
