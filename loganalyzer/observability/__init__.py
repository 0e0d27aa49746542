"""Observability helpers."""

from loganalyzer.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_parse,
    record_parser_failure,
    record_task_outcomes,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_parse",
    "record_parser_failure",
    "record_task_outcomes",
]
