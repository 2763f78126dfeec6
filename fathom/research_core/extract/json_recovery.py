"""Recover a JSON value from free-form model output.

Models asked for "strict JSON" still wrap it in Markdown fences or chatter
around it. Recovery runs in three stages and stops at the first success:

1. the whole (trimmed) text parsed as JSON;
2. each fenced code block, optionally tagged ``json``, in order of appearance;
3. the first balanced ``{...}`` or ``[...]`` span, found by a scanner that
   skips over string literals and their escape sequences.
"""
from __future__ import annotations

import json
import re
from typing import Any

from fathom.errors import ParseError

FENCED_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)

_CLOSERS = {"{": "}", "[": "]"}


def _try_loads(text: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except json.JSONDecodeError:
        return False, None


def extract_first_json_span(text: str) -> str | None:
    """Return the first balanced object/array substring, or None."""
    start = -1
    depth = 0
    in_string = False
    escaping = False
    opening = closing = ""

    for index, ch in enumerate(text):
        if in_string:
            if escaping:
                escaping = False
            elif ch == "\\":
                escaping = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
            continue

        if start == -1:
            if ch in _CLOSERS:
                start = index
                opening, closing = ch, _CLOSERS[ch]
                depth = 1
            continue

        if ch == opening:
            depth += 1
        elif ch == closing:
            depth -= 1
            if depth == 0:
                return text[start : index + 1]

    return None


def parse_model_json(raw: str) -> Any:
    """Parse model output into a JSON value, raising ParseError when impossible."""
    trimmed = raw.strip()

    ok, value = _try_loads(trimmed)
    if ok:
        return value

    for match in FENCED_BLOCK_RE.finditer(trimmed):
        candidate = match.group(1).strip()
        if not candidate:
            continue
        ok, value = _try_loads(candidate)
        if ok:
            return value

    embedded = extract_first_json_span(trimmed)
    if embedded is not None:
        ok, value = _try_loads(embedded)
        if ok:
            return value
        raise ParseError("Balanced JSON span found in model response but it is not valid JSON")

    raise ParseError("Unable to parse JSON from model response")
