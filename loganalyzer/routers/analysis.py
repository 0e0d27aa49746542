"""Log analysis API: parse uploaded log text into task trees and statistics."""
from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from loganalyzer import config
from loganalyzer.models import LogAnalysis
from loganalyzer.services import node_statistics
from loganalyzer.services.log_analysis import analyze_log, parse_log, summarize_task

logger = logging.getLogger("loganalyzer.analysis")

analysis_router = APIRouter(prefix="/api/analysis", tags=["analysis"])

StatisticsView = Literal["all", "slowest", "frequent", "failed", "recognition"]


class AnalysisRequest(BaseModel):
    content: str
    processId: Optional[str] = None
    threadId: Optional[str] = None
    topN: Optional[int] = Field(default=None, ge=0, le=1000)


def _validate_content(content: str) -> None:
    if not content or not content.strip():
        raise HTTPException(status_code=400, detail="Log content is empty")
    size = len(content.encode("utf-8"))
    if size > config.MAX_CONTENT_BYTES:
        raise HTTPException(
            status_code=413,
            detail=f"Log content is {size} bytes; limit is {config.MAX_CONTENT_BYTES}",
        )


@analysis_router.post("", response_model=LogAnalysis)
async def analyze(req: AnalysisRequest) -> LogAnalysis:
    """Parse a log and return task trees, owner ids and node statistics."""
    _validate_content(req.content)
    return await analyze_log(
        req.content,
        process_id=req.processId,
        thread_id=req.threadId,
        top_n=req.topN,
    )


@analysis_router.post("/tasks")
async def list_tasks(req: AnalysisRequest):
    """Return task summaries without node trees."""
    _validate_content(req.content)
    parser, analysis = await parse_log(
        req.content,
        process_id=req.processId,
        thread_id=req.threadId,
    )
    items = [summarize_task(parser, task) for task in analysis.tasks]
    return {
        "items": items,
        "total": len(items),
        "processIds": analysis.processIds,
        "threadIds": analysis.threadIds,
        "summary": analysis.summary,
    }


@analysis_router.post("/statistics")
async def get_statistics(
    req: AnalysisRequest,
    view: StatisticsView = Query("all"),
):
    """Return one statistics view for a log."""
    _validate_content(req.content)
    _, analysis = await parse_log(
        req.content,
        process_id=req.processId,
        thread_id=req.threadId,
    )
    tasks = analysis.tasks
    limit = config.DEFAULT_TOP_N if req.topN is None else req.topN

    if view == "slowest":
        items = node_statistics.get_top_slowest(tasks, limit)
    elif view == "frequent":
        items = node_statistics.get_top_frequent(tasks, limit)
    elif view == "failed":
        items = node_statistics.get_top_failed(tasks, limit)
    elif view == "recognition":
        items = node_statistics.analyze_recognition_action(tasks)
    else:
        items = node_statistics.analyze(tasks)

    logger.debug("Statistics view %s produced %d rows", view, len(items))
    return {"view": view, "items": items, "total": len(items)}
