"""Parser for the agent's newline-delimited ``stream-json`` output."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Literal

StreamEventType = Literal["tool_use", "result", "text", "system", "error", "unknown"]

SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{8,64}$")


@dataclass(frozen=True, slots=True)
class StreamEvent:
    """A single typed event decoded from one line of agent output."""

    type: StreamEventType
    tool_name: str | None = None
    session_id: str | None = None
    text: str | None = None


def validate_session_id(value: Any) -> str | None:
    """Return ``value`` if it looks like an agent session id, else ``None``."""

    if isinstance(value, str) and SESSION_ID_PATTERN.match(value):
        return value
    return None


def _parse_assistant(message: Any) -> StreamEvent:
    content = message.get("content") if isinstance(message, dict) else None
    if isinstance(content, list):
        for block in content:
            if not isinstance(block, dict):
                continue
            if block.get("type") == "tool_use":
                name = block.get("name")
                return StreamEvent("tool_use", tool_name=name if isinstance(name, str) else None)
            if block.get("type") == "text":
                text = block.get("text")
                return StreamEvent("text", text=text if isinstance(text, str) else None)
    return StreamEvent("text")


def parse_stream_line(line: str) -> StreamEvent | None:
    """Parse one line of agent output.

    Blank lines, invalid JSON and non-object payloads yield ``None``.
    Unrecognised object types are reported as ``unknown`` events.
    """

    if not line.strip():
        return None
    try:
        parsed = json.loads(line)
    except (ValueError, RecursionError):
        return None
    if not isinstance(parsed, dict):
        return None

    kind = parsed.get("type")
    if kind == "system":
        return StreamEvent("system", session_id=validate_session_id(parsed.get("session_id")))
    if kind == "assistant" and parsed.get("message"):
        return _parse_assistant(parsed["message"])
    if kind == "result":
        return StreamEvent("result", session_id=validate_session_id(parsed.get("session_id")))
    if kind == "error":
        error = parsed.get("error")
        message = error.get("message") if isinstance(error, dict) else None
        return StreamEvent("error", text=message if isinstance(message, str) else "Unknown error")
    return StreamEvent("unknown")


__all__ = [
    "SESSION_ID_PATTERN",
    "StreamEvent",
    "StreamEventType",
    "parse_stream_line",
    "validate_session_id",
]
