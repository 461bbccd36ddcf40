"""Best-effort recovery of JSON from free-form model output.

Strategies run in a fixed order and the first one that parses wins:

1. the first fenced code block holding a JSON object
2. the first balanced ``{...}`` substring
3. textual repairs (trailing commas, unquoted keys, unquoted scalar values)

The repairs are regex heuristics, not a JSON5 parser. They can turn genuinely
wrong text into something that parses, so callers must still validate the
structure of whatever comes back.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, List, Optional

_FENCED_OBJECT = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```", re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",(\s*[}\]])")
_UNQUOTED_KEY = re.compile(r"([{,]\s*)([A-Za-z_][\w-]*)(\s*):")
_UNQUOTED_VALUE = re.compile(r":\s*([^\",\[\]{}\s][^\",\[\]{}]*?)(\s*[,}\]])")
_BARE_LITERAL = re.compile(r"^(?:true|false|null|-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)$")


@dataclass
class JsonRecovery:
    """Outcome of :func:`recover_json`."""

    success: bool
    value: Any = None
    strategy: Optional[str] = None  # "fenced_block" | "balanced_object" | "repaired"
    errors: List[str] = field(default_factory=list)


def extract_fenced_json(text: str) -> Optional[str]:
    """Return the JSON object inside the first fenced code block, if any."""
    match = _FENCED_OBJECT.search(text)
    return match.group(1) if match else None


def extract_balanced_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` substring of *text*.

    Braces inside string literals are ignored, escapes included.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        char = text[i]
        if escape_next:
            escape_next = False
            continue
        if char == "\\":
            escape_next = True
            continue
        if char == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def repair_json_text(text: str) -> str:
    """Apply the textual repairs in order and return the patched text."""
    fixed = _TRAILING_COMMA.sub(r"\1", text)
    fixed = _UNQUOTED_KEY.sub(r'\1"\2"\3:', fixed)

    def _quote_value(match: "re.Match[str]") -> str:
        value = match.group(1).strip()
        if _BARE_LITERAL.match(value):
            return match.group(0)
        return f': "{value}"{match.group(2)}'

    return _UNQUOTED_VALUE.sub(_quote_value, fixed)


def recover_json(text: str) -> JsonRecovery:
    """Try every recovery strategy on *text*; never raises."""
    errors: List[str] = []

    fenced = extract_fenced_json(text)
    if fenced is not None:
        try:
            return JsonRecovery(success=True, value=json.loads(fenced), strategy="fenced_block")
        except (ValueError, RecursionError) as e:
            errors.append(f"Found JSON in code block but parsing failed: {e}")

    balanced = extract_balanced_object(text)
    if balanced is not None:
        try:
            return JsonRecovery(success=True, value=json.loads(balanced), strategy="balanced_object")
        except (ValueError, RecursionError) as e:
            errors.append(f"Found JSON-like structure but parsing failed: {e}")

    candidate = fenced or balanced or text
    try:
        return JsonRecovery(success=True, value=json.loads(repair_json_text(candidate)), strategy="repaired")
    except (ValueError, RecursionError) as e:
        errors.append(f"Attempted JSON fixes but parsing still failed: {e}")

    return JsonRecovery(success=False, errors=errors)
