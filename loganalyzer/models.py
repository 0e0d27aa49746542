"""Pydantic models matching the frontend TypeScript types."""
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Any, Literal, Optional

TaskStatus = Literal["running", "succeeded", "failed"]
NodeStatus = Literal["success", "failed"]

# ── Raw log models ──────────────────────────────────────────────────

class LogLine(BaseModel):
    timestamp: str
    level: str
    processId: str
    threadId: str
    sourceFile: Optional[str] = None
    lineNumber: Optional[str] = None
    functionName: Optional[str] = None
    message: str = ""
    params: dict[str, Any] = Field(default_factory=dict)
    status: Optional[Literal["enter", "leave"]] = None
    duration: Optional[int] = None
    line_number: int = 0


class EventNotification(BaseModel):
    timestamp: str
    level: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    line_number: int = 0


class ParseProgress(BaseModel):
    current: int
    total: int
    percentage: int


class ParseSummary(BaseModel):
    total_lines: int = 0
    decoded_lines: int = 0
    malformed_lines: int = 0
    event_count: int = 0
    duration_ms: int = 0


# ── Task tree models ────────────────────────────────────────────────

class NextListItem(BaseModel):
    name: str = ""
    anchor: bool = False
    jump_back: bool = False


class RecognitionAttempt(BaseModel):
    reco_id: Optional[int] = None
    name: str = ""
    timestamp: str
    status: NodeStatus
    reco_details: Optional[Any] = None
    nested_nodes: Optional[list[RecognitionAttempt]] = None


class ActionAttempt(BaseModel):
    action_id: Optional[int] = None
    name: str = ""
    timestamp: str
    status: NodeStatus
    action_details: Optional[Any] = None
    nested_actions: Optional[list[ActionAttempt]] = None


class NodeInfo(BaseModel):
    node_id: int
    name: str = ""
    timestamp: str
    status: NodeStatus
    task_id: int
    reco_details: Optional[Any] = None
    action_details: Optional[Any] = None
    focus: Optional[Any] = None
    node_details: Optional[Any] = None
    next_list: list[NextListItem] = Field(default_factory=list)
    recognition_attempts: list[RecognitionAttempt] = Field(default_factory=list)
    nested_action_nodes: Optional[list[ActionAttempt]] = None
    nested_recognition_in_action: Optional[list[RecognitionAttempt]] = None


class TaskInfo(BaseModel):
    task_id: int
    entry: str = ""
    hash: str = ""
    uuid: str = ""
    start_time: str
    end_time: Optional[str] = None
    status: TaskStatus = "running"
    duration: Optional[int] = None
    nodes: list[NodeInfo] = Field(default_factory=list)


class TaskSummary(BaseModel):
    task_id: int
    entry: str = ""
    uuid: str = ""
    start_time: str
    end_time: Optional[str] = None
    status: TaskStatus = "running"
    duration: Optional[int] = None
    nodeCount: int = 0
    processId: Optional[str] = None
    threadId: Optional[str] = None


# ── Statistics models ───────────────────────────────────────────────

class NodeStatistics(BaseModel):
    name: str
    count: int = 0
    totalDuration: int = 0
    avgDuration: float = 0.0
    minDuration: int = 0
    maxDuration: int = 0
    successCount: int = 0
    failCount: int = 0
    successRate: float = 0.0
    durations: list[int] = Field(default_factory=list)


class RecognitionActionStatistics(BaseModel):
    name: str
    count: int = 0

    avgRecognitionDuration: float = 0.0
    minRecognitionDuration: int = 0
    maxRecognitionDuration: int = 0
    totalRecognitionDuration: int = 0
    recognitionCount: int = 0

    avgActionDuration: float = 0.0
    minActionDuration: int = 0
    maxActionDuration: int = 0
    totalActionDuration: int = 0
    actionCount: int = 0

    avgRecognitionAttempts: float = 0.0
    totalRecognitionAttempts: int = 0

    successCount: int = 0
    failCount: int = 0
    successRate: float = 0.0


class LogAnalysis(BaseModel):
    summary: ParseSummary = Field(default_factory=ParseSummary)
    tasks: list[TaskInfo] = Field(default_factory=list)
    processIds: list[str] = Field(default_factory=list)
    threadIds: list[str] = Field(default_factory=list)
    nodeStatistics: list[NodeStatistics] = Field(default_factory=list)
    recognitionActionStatistics: list[RecognitionActionStatistics] = Field(default_factory=list)
    topSlowest: list[NodeStatistics] = Field(default_factory=list)
    topFrequent: list[NodeStatistics] = Field(default_factory=list)
    topFailed: list[NodeStatistics] = Field(default_factory=list)
