"""
Shape check for entry collections.

A collection is valid when it is a JSON array whose elements are objects with
a string `name` and a `trans` array of strings. Phone fields are optional
because older records do not have them.
"""

from __future__ import annotations

import json
from typing import Any

from .errors import SchemaValidationError


def _decode(candidate: Any) -> Any:
    if isinstance(candidate, (bytes, bytearray)):
        candidate = bytes(candidate).decode("utf-8-sig")
    if isinstance(candidate, str):
        return json.loads(candidate)
    return candidate


def find_problem(candidate: Any) -> str | None:
    """
    Return a description of the first shape problem, or None when valid.
    """
    try:
        data = _decode(candidate)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        return f"not valid JSON: {e}"

    if not isinstance(data, list):
        return "expected an array of entries"

    for i, item in enumerate(data):
        if not isinstance(item, dict):
            return f"entry {i} is not an object"
        if not isinstance(item.get("name"), str):
            return f"entry {i} has no string 'name'"
        trans = item.get("trans")
        if not isinstance(trans, list):
            return f"entry {i} ({item['name']!r}) has no 'trans' array"
        if not all(isinstance(t, str) for t in trans):
            return f"entry {i} ({item['name']!r}) has non-string translations"

    return None


def validate(candidate: Any) -> bool:
    return find_problem(candidate) is None


def ensure_valid(candidate: Any) -> None:
    problem = find_problem(candidate)
    if problem is not None:
        raise SchemaValidationError(f"Entries failed validation: {problem}.")
