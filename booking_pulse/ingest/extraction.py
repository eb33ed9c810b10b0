"""Recover a JSON object from a free-text chat message.

Booking events arrive as human-readable messages in which the JSON
object may be surrounded by other text or code fences:

    here's a booking: ```{"booking_id": "B2", ...}``` thanks

The scanner returns the first balanced ``{...}`` span. Braces inside
JSON string literals (including escaped quotes) do not count towards
the balance.
"""

from __future__ import annotations

import html
import json
from typing import Any

from ..errors import JSONExtractionError


def find_balanced_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` substring of text, or None.

    A single left-to-right pass keeps a stack of open-brace positions.
    Among the braces that find their match, the earliest opening one
    wins, so an unclosed early brace does not hide a later object.
    Quotes only open strings inside an object; prose around the object
    may contain stray quotes.
    """
    open_braces: list[int] = []
    best: tuple[int, int] | None = None
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == "{":
            open_braces.append(i)
        elif not open_braces:
            continue
        elif ch == '"':
            in_string = True
        elif ch == "}":
            start = open_braces.pop()
            if best is None or start < best[0]:
                best = (start, i)
            if not open_braces:
                # Nothing earlier is still open, so no better span can follow
                break

    if best is None:
        return None
    return text[best[0]:best[1] + 1]


def unescape_message(text: str) -> str:
    """Undo chat markup escaping (``&amp;``, ``&lt;``, ``&gt;``)."""
    return html.unescape(text)


def extract_json_object(text: str) -> dict[str, Any]:
    """Parse the JSON object embedded in a message body.

    The first balanced ``{...}`` span is parsed; if there is none, or it
    is not valid JSON, the whole body is parsed instead.

    Raises:
        JSONExtractionError: Neither attempt produced a JSON object.
    """
    body = unescape_message(text or "")
    candidates: list[str] = []
    span = find_balanced_object(body)
    if span is not None:
        candidates.append(span)
    candidates.append(body.strip())

    last_error: str = "empty message"
    for candidate in candidates:
        if not candidate:
            continue
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError as e:
            last_error = str(e)
            continue
        if isinstance(value, dict):
            return value
        last_error = f"expected a JSON object, got {type(value).__name__}"

    raise JSONExtractionError(last_error)
