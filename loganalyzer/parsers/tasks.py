"""Rebuild task -> node -> recognition/action trees from event notifications."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from loganalyzer import config
from loganalyzer.date_utils import duration_ms
from loganalyzer.models import (
    ActionAttempt,
    EventNotification,
    NextListItem,
    NodeInfo,
    RecognitionAttempt,
    TaskInfo,
)
from loganalyzer.parsers.events import (
    ACTION_FAILED,
    ACTION_NODE_FAILED,
    ACTION_NODE_SUCCEEDED,
    ACTION_SUCCEEDED,
    NEXT_LIST_STARTING,
    PIPELINE_NODE_FAILED,
    PIPELINE_NODE_SUCCEEDED,
    RECOGNITION_FAILED,
    RECOGNITION_NODE_FAILED,
    RECOGNITION_NODE_SUCCEEDED,
    RECOGNITION_SUCCEEDED,
    TASK_FAILED,
    TASK_STARTING,
    TASK_SUCCEEDED,
    as_id,
)
from loganalyzer.string_pool import StringPool

logger = logging.getLogger("loganalyzer.parser")

_SUCCEEDED_MESSAGES = {
    PIPELINE_NODE_SUCCEEDED,
    RECOGNITION_NODE_SUCCEEDED,
    ACTION_NODE_SUCCEEDED,
    RECOGNITION_SUCCEEDED,
    ACTION_SUCCEEDED,
}


@dataclass
class _TaskSlice:
    task: TaskInfo
    start_index: int
    end_index: Optional[int] = None


@dataclass
class _NodeScratch:
    """Per-node accumulators, reset every time a pipeline node completes."""

    next_list: list[Any] = field(default_factory=list)
    recognition_attempts: list[RecognitionAttempt] = field(default_factory=list)
    nested_nodes: list[RecognitionAttempt] = field(default_factory=list)
    nested_action_nodes: list[ActionAttempt] = field(default_factory=list)

    def reset(self) -> None:
        self.next_list = []
        self.recognition_attempts.clear()
        self.nested_nodes.clear()
        self.nested_action_nodes.clear()


def _node_status(message: str) -> str:
    return "success" if message in _SUCCEEDED_MESSAGES else "failed"


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _blob(value: Any) -> Any:
    """Pass detail payloads through untouched; empty objects still count as present."""
    if value or isinstance(value, (dict, list)):
        return value
    return None


class TaskReconstructor:
    """Two-pass reconstruction over one parse's ordered event list.

    Pass one discovers tasks and pairs each start with its close event.
    Pass two replays every task's own slice of events to assemble its
    nodes, including recognitions and actions run by nested sub-tasks.
    """

    def __init__(
        self,
        events: list[EventNotification],
        pool: StringPool,
        post_stop_entry: str | None = None,
    ) -> None:
        self._events = events
        self._pool = pool
        self._post_stop_entry = config.POST_STOP_ENTRY if post_stop_entry is None else post_stop_entry

    def _text(self, value: Any) -> str:
        if isinstance(value, str):
            return self._pool.intern(value)
        if not value:
            return ""
        return self._pool.intern(str(value))

    # ── Pass 1: task discovery ──────────────────────────────────────

    def _discover_tasks(self) -> list[_TaskSlice]:
        slices: list[_TaskSlice] = []
        seen_keys: set[str] = set()

        for index, event in enumerate(self._events):
            message, details = event.message, event.details

            if message == TASK_STARTING:
                task_id = as_id(details.get("task_id"))
                uuid = details.get("uuid") or ""
                if not isinstance(uuid, str):
                    uuid = str(uuid)
                # task_id is reused across controllers; uuid disambiguates.
                task_key = f"{uuid}_{task_id}"
                if task_id and task_key not in seen_keys:
                    task = TaskInfo(
                        task_id=task_id,
                        entry=self._text(details.get("entry")),
                        hash=self._text(details.get("hash")),
                        uuid=self._text(uuid),
                        start_time=self._text(event.timestamp),
                    )
                    slices.append(_TaskSlice(task=task, start_index=index))
                    seen_keys.add(task_key)

            elif message in (TASK_SUCCEEDED, TASK_FAILED):
                matched = self._match_open_task(slices, details)
                if matched is None:
                    logger.debug(
                        "Ignoring unmatched %s for task_id=%s at line %d",
                        message,
                        details.get("task_id"),
                        event.line_number,
                    )
                    continue
                task = matched.task
                task.status = "succeeded" if message == TASK_SUCCEEDED else "failed"
                task.end_time = self._text(event.timestamp)
                task.duration = duration_ms(task.start_time, task.end_time)
                matched.end_index = index

        return slices

    @staticmethod
    def _match_open_task(slices: list[_TaskSlice], details: dict[str, Any]) -> _TaskSlice | None:
        uuid = details.get("uuid")
        if isinstance(uuid, str) and uuid.strip():
            for candidate in slices:
                if candidate.task.uuid == uuid and not candidate.task.end_time:
                    return candidate
            return None

        # No uuid: earliest-started open task with the same id wins.
        task_id = as_id(details.get("task_id"))
        for candidate in slices:
            if candidate.task.task_id == task_id and not candidate.task.end_time:
                return candidate
        return None

    # ── Pass 2: node reconstruction ─────────────────────────────────

    def _build_nodes(self, task_slice: _TaskSlice) -> list[NodeInfo]:
        task = task_slice.task
        end_index = task_slice.end_index if task_slice.end_index is not None else len(self._events) - 1
        task_events = self._events[task_slice.start_index : end_index + 1]

        nodes: list[NodeInfo] = []
        seen_node_ids: set[int] = set()
        scratch = _NodeScratch()
        recognitions_by_task: dict[Optional[int], list[RecognitionAttempt]] = {}
        actions_by_task: dict[Optional[int], list[ActionAttempt]] = {}

        for event in task_events:
            message, details = event.message, event.details
            event_task_id = as_id(details.get("task_id"))
            own_task = event_task_id == task.task_id

            if message == NEXT_LIST_STARTING and own_task:
                next_list = details.get("list")
                scratch.next_list = next_list if isinstance(next_list, list) else []

            elif message in (RECOGNITION_NODE_SUCCEEDED, RECOGNITION_NODE_FAILED) and not own_task:
                # A custom recognizer's sub-task finished one of its nodes.
                reco_details = details.get("reco_details")
                nested = recognitions_by_task.pop(event_task_id, [])
                scratch.nested_nodes.append(
                    RecognitionAttempt(
                        reco_id=as_id(_mapping(reco_details).get("reco_id")) or as_id(details.get("node_id")),
                        name=self._text(details.get("name")),
                        timestamp=self._text(event.timestamp),
                        status=_node_status(message),
                        reco_details=_blob(reco_details),
                        nested_nodes=nested or None,
                    )
                )

            elif message in (ACTION_NODE_SUCCEEDED, ACTION_NODE_FAILED) and not own_task:
                action_details = details.get("action_details")
                nested_actions = actions_by_task.pop(event_task_id, [])
                scratch.nested_action_nodes.append(
                    ActionAttempt(
                        action_id=as_id(_mapping(action_details).get("action_id")) or as_id(details.get("node_id")),
                        name=self._text(details.get("name")),
                        timestamp=self._text(event.timestamp),
                        status=_node_status(message),
                        action_details=_blob(action_details),
                        nested_actions=nested_actions or None,
                    )
                )

            elif message in (RECOGNITION_SUCCEEDED, RECOGNITION_FAILED):
                reco_details = details.get("reco_details")
                if own_task:
                    scratch.recognition_attempts.append(
                        RecognitionAttempt(
                            reco_id=as_id(details.get("reco_id")),
                            name=self._text(details.get("name")),
                            timestamp=self._text(event.timestamp),
                            status=_node_status(message),
                            reco_details=_blob(reco_details),
                            nested_nodes=list(scratch.nested_nodes) or None,
                        )
                    )
                    scratch.nested_nodes.clear()
                else:
                    recognitions_by_task.setdefault(event_task_id, []).append(
                        RecognitionAttempt(
                            reco_id=as_id(details.get("reco_id")),
                            name=self._text(details.get("name")),
                            timestamp=self._text(event.timestamp),
                            status=_node_status(message),
                            reco_details=_blob(reco_details),
                        )
                    )

            elif message in (ACTION_SUCCEEDED, ACTION_FAILED) and not own_task:
                action_details = details.get("action_details")
                actions_by_task.setdefault(event_task_id, []).append(
                    ActionAttempt(
                        action_id=as_id(details.get("action_id")),
                        name=self._text(details.get("name")),
                        timestamp=self._text(event.timestamp),
                        status=_node_status(message),
                        action_details=_blob(action_details),
                    )
                )

            elif message in (PIPELINE_NODE_SUCCEEDED, PIPELINE_NODE_FAILED) and own_task:
                node_id = as_id(details.get("node_id"))
                # IPC relay can deliver the same completion twice.
                if node_id and node_id not in seen_node_ids:
                    nodes.append(self._make_node(task, node_id, event, scratch))
                    seen_node_ids.add(node_id)
                scratch.reset()

        return nodes

    def _make_node(
        self,
        task: TaskInfo,
        node_id: int,
        event: EventNotification,
        scratch: _NodeScratch,
    ) -> NodeInfo:
        details = event.details
        node_details = details.get("node_details")
        name = _mapping(node_details).get("name") or details.get("name") or ""

        return NodeInfo(
            node_id=node_id,
            name=self._text(name),
            timestamp=self._text(event.timestamp),
            status=_node_status(event.message),
            task_id=task.task_id,
            reco_details=_blob(details.get("reco_details")),
            action_details=_blob(details.get("action_details")),
            focus=_blob(details.get("focus")),
            node_details=_blob(node_details),
            next_list=[self._next_item(item) for item in scratch.next_list],
            recognition_attempts=list(scratch.recognition_attempts),
            nested_action_nodes=list(scratch.nested_action_nodes) or None,
            nested_recognition_in_action=list(scratch.nested_nodes) or None,
        )

    def _next_item(self, item: Any) -> NextListItem:
        if isinstance(item, dict):
            return NextListItem(
                name=self._text(item.get("name")),
                anchor=bool(item.get("anchor")),
                jump_back=bool(item.get("jump_back")),
            )
        return NextListItem(name=self._text(item))

    # ── Entry point ─────────────────────────────────────────────────

    def build(self) -> list[TaskInfo]:
        slices = self._discover_tasks()

        for task_slice in slices:
            task = task_slice.task
            task.nodes = self._build_nodes(task_slice)

            # Running tasks only get an approximate duration up to their last node.
            if task.status == "running" and task.nodes:
                task.duration = duration_ms(task.start_time, task.nodes[-1].timestamp)

        return [s.task for s in slices if s.task.entry != self._post_stop_entry]
