"""Locate the JSON query directive embedded in a model reply."""
from __future__ import annotations

import json
import re
from typing import Any, Dict, Iterator, Optional

from finac.core.logger import get_logger

logger = get_logger(__name__)

_FENCED_JSON = re.compile(r"```json\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)


def _balanced_object_at(text: str, start: int) -> Optional[str]:
    """Return the balanced ``{...}`` beginning at ``start``, if it closes."""
    depth = 0
    in_string = False
    escape = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escape:
                escape = False
            elif char == "\\":
                escape = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
            continue

        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:index + 1]

    return None


def _candidate_objects(text: str) -> Iterator[str]:
    start = text.find("{")
    while start != -1:
        candidate = _balanced_object_at(text, start)
        if candidate:
            yield candidate
        start = text.find("{", start + 1)


def _load_object(candidate: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_directive(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Find the query directive in ``text``.

    A fenced ```json block wins; otherwise the first balanced object carrying
    a ``"queryType"`` key is used. Returns ``None`` when nothing parses.
    """
    if not text:
        return None

    fenced = _FENCED_JSON.search(text)
    if fenced:
        parsed = _load_object(fenced.group(1))
        if parsed is not None:
            return parsed
        logger.debug("Fenced json block did not parse, scanning for a bare directive")

    if '"queryType"' not in text:
        return None

    for candidate in _candidate_objects(text):
        if '"queryType"' not in candidate:
            continue
        parsed = _load_object(candidate)
        if parsed is not None and "queryType" in parsed:
            return parsed

    return None


__all__ = ["extract_directive"]
