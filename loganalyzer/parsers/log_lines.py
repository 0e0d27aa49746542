"""Decode bracketed framework log lines into LogLine models.

Line layout::

    [timestamp][level][pid][tid][file][line][function] message [key=value] [flag] | leave, 12ms

The three trailing bracket groups after the thread id are optional and
their meaning is guessed from how many are present.
"""
from __future__ import annotations

import json
import re
from typing import Any

from loganalyzer.models import LogLine

_LINE_PATTERN = re.compile(
    r"^\[([^\]]+)\]\[([^\]]+)\]\[([^\]]+)\]\[([^\]]+)\]"
    r"(?:\[([^\]]+)\])?(?:\[([^\]]+)\])?(?:\[([^\]]+)\])?\s*(.*)$"
)
_KEY_VALUE_PATTERN = re.compile(r"^([^=]+)=(.+)$")
_INT_PATTERN = re.compile(r"^-?\d+$")
_FLOAT_PATTERN = re.compile(r"^-?\d+\.\d+$")
_STATUS_PATTERN = re.compile(r"\|\s*(enter|leave)(?:,\s*(\d+)ms)?")
_STATUS_TAIL_PATTERN = re.compile(r"\|\s*(enter|leave).*$")
# Substrings that mark a lone optional group as a source file.
_SOURCE_FILE_HINTS = (".cpp", ".h")


def _classify_location(
    part1: str | None, part2: str | None, part3: str | None
) -> tuple[str | None, str | None, str | None]:
    """Return (source_file, line_number, function_name) for the optional groups."""
    if part3:
        return part1, part2, part3
    if part1 and not part2:
        if any(hint in part1 for hint in _SOURCE_FILE_HINTS):
            return part1, None, None
        return None, None, part1
    if part1 and part2:
        return part1, part2, None
    return None, None, None


def parse_value(value: str) -> Any:
    """Coerce a raw parameter value into a JSON, bool, number or string."""
    if value.startswith("{") or value.startswith("["):
        try:
            return json.loads(value)
        except (ValueError, RecursionError):
            return value

    if value == "true":
        return True
    if value == "false":
        return False

    if _INT_PATTERN.match(value):
        return int(value)
    if _FLOAT_PATTERN.match(value):
        return float(value)

    if (value.startswith('"') and value.endswith('"')) or (
        value.startswith("'") and value.endswith("'")
    ):
        return value[1:-1]

    return value


def extract_param_spans(message: str) -> list[str]:
    """Return the inner text of every balanced ``[...]`` group, left to right.

    Square brackets only count while no brace is open, so a JSON value such
    as ``[box={"roi":[1,2,3,4]}]`` is captured whole. A group that never
    closes is skipped and scanning resumes one character later.
    """
    spans: list[str] = []
    length = len(message)
    i = 0
    while i < length:
        if message[i] != "[":
            i += 1
            continue

        depth = 1
        brace_depth = 0
        j = i + 1
        while j < length and (depth > 0 or brace_depth > 0):
            ch = message[j]
            if ch == "{":
                brace_depth += 1
            elif ch == "}":
                brace_depth -= 1
            elif ch == "[" and brace_depth == 0:
                depth += 1
            elif ch == "]" and brace_depth == 0:
                depth -= 1
            j += 1

        if depth == 0:
            spans.append(message[i + 1 : j - 1])
            i = j
        else:
            i += 1
    return spans


def parse_message_and_params(
    message: str,
) -> tuple[str, dict[str, Any], str | None, int | None]:
    """Split a message into (clean_message, params, status, duration)."""
    params: dict[str, Any] = {}
    spans = extract_param_spans(message)

    for span in spans:
        kv_match = _KEY_VALUE_PATTERN.match(span)
        if kv_match:
            key, value = kv_match.groups()
            params[key.strip()] = parse_value(value.strip())
        else:
            params[span.strip()] = True

    clean_message = message
    for span in spans:
        clean_message = clean_message.replace(f"[{span}]", "", 1)
    clean_message = clean_message.strip()

    status: str | None = None
    duration: int | None = None
    status_match = _STATUS_PATTERN.search(clean_message)
    if status_match:
        status = status_match.group(1)
        if status_match.group(2):
            duration = int(status_match.group(2))
        clean_message = _STATUS_TAIL_PATTERN.sub("", clean_message, count=1).strip()

    return clean_message, params, status, duration


def parse_line(line: str, line_number: int = 0) -> LogLine | None:
    """Decode one trimmed log line; returns None when the layout does not match."""
    match = _LINE_PATTERN.match(line)
    if not match:
        return None

    timestamp, level, process_id, thread_id, part1, part2, part3, rest = match.groups()
    source_file, source_line, function_name = _classify_location(part1, part2, part3)
    message, params, status, duration = parse_message_and_params(rest)

    return LogLine(
        timestamp=timestamp,
        level=level,
        processId=process_id,
        threadId=thread_id,
        sourceFile=source_file,
        lineNumber=source_line,
        functionName=function_name,
        message=message,
        params=params,
        status=status,
        duration=duration,
        line_number=line_number,
    )
