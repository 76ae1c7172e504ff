"""Event-stream envelope parsing for MCP HTTP responses.

A streamable HTTP server may answer a POST either with a plain JSON document
or with a ``text/event-stream`` body such as::

    id: 7
    event: message
    data: {"jsonrpc": "2.0", "id": 2, "result": {"tools": []}}

The helpers here classify each line, drop the framing and hand back the
payload text so that JSON-RPC handling never sees the envelope.
"""

import json
import re
from enum import Enum
from typing import Any, NamedTuple


# Field names that only carry stream metadata and never payload
METADATA_FIELDS = frozenset({"id", "event", "retry"})

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class LineKind(str, Enum):
    """Classification of a single body line."""

    DATA = "data"
    METADATA = "metadata"
    COMMENT = "comment"
    BLANK = "blank"
    PAYLOAD = "payload"


class Line(NamedTuple):
    kind: LineKind
    value: str


def split_lines(body: str) -> list[str]:
    """Split on CRLF, CR or LF only.

    ``str.splitlines`` also breaks on characters JSON allows inside strings
    (e.g. U+2028), so it can't be used here.
    """
    if not body:
        return []
    lines = _LINE_BREAK.split(body)
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def classify_line(line: str) -> Line:
    """Classify one line of a response body.

    ``data:`` lines lose the marker and one optional space. ``id:``,
    ``event:`` and ``retry:`` lines are metadata, lines starting with ``:``
    are comments. Anything else is unframed payload and kept verbatim.
    """
    if not line.strip():
        return Line(LineKind.BLANK, "")
    if line.startswith(":"):
        return Line(LineKind.COMMENT, line[1:])

    field, sep, value = line.partition(":")
    if sep:
        if field == "data":
            if value.startswith(" "):
                value = value[1:]
            return Line(LineKind.DATA, value)
        if field in METADATA_FIELDS:
            return Line(LineKind.METADATA, value.strip())

    return Line(LineKind.PAYLOAD, line)


def is_event_stream(body: str) -> bool:
    """Return True if the body carries at least one ``data:`` line."""
    return any(classify_line(line).kind is LineKind.DATA for line in split_lines(body))


def iter_events(body: str) -> list[str]:
    """Return the payload text of every event in the body.

    An unframed body is a single event and is returned untouched. In a framed
    body, events are separated by blank lines and the payload lines of one
    event are joined with a newline. Events without payload are skipped.

    Args:
        body: Raw response body.

    Returns:
        List of payload strings, possibly empty.
    """
    lines = [classify_line(raw) for raw in split_lines(body)]

    if not any(line.kind is LineKind.DATA for line in lines):
        return [body] if body.strip() else []

    events: list[str] = []
    current: list[str] = []

    def flush() -> None:
        payload = "\n".join(current)
        if payload.strip():
            events.append(payload)
        current.clear()

    for line in lines:
        if line.kind is LineKind.BLANK:
            flush()
        elif line.kind in (LineKind.DATA, LineKind.PAYLOAD):
            current.append(line.value)
        # metadata and comments are dropped

    flush()
    return events


def unwrap_event_stream(body: str) -> str:
    """Strip event-stream framing and return the bare payload text."""
    return "\n".join(iter_events(body))


def decode_messages(body: str) -> list[Any]:
    """Decode every event payload in the body as JSON.

    Args:
        body: Raw response body, framed or not.

    Returns:
        One decoded document per event. An empty body gives an empty list.

    Raises:
        json.JSONDecodeError: If any payload is not valid JSON.
    """
    return [json.loads(payload) for payload in iter_events(body)]
