"""
JSON helpers for model output.

Models, especially smaller or local ones, return JSON wrapped in markdown
fences, with trailing commas, Python literals, or truncated mid-structure.
``repair_json_string`` fixes those shapes; it is a best-effort single pass.
"""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_PY_LITERALS = {"True": "true", "False": "false", "None": "null"}
_CLOSERS = {"{": "}", "[": "]"}


def _drop_trailing_comma(out: list[str]) -> None:
    while out and out[-1].isspace():
        out.pop()
    if out and out[-1] == ",":
        out.pop()


def repair_json_string(text: str) -> str:
    """
    Repair common JSON defects in model output.

    Handles markdown code fences, leading prose, trailing commas, Python
    literals (True/False/None), raw newlines inside strings, unterminated
    strings and unclosed brackets. Text after the first complete top-level
    value is discarded.

    Args:
        text: Raw model output

    Returns:
        Repaired JSON text (not guaranteed to parse)
    """
    s = _FENCE_RE.sub("", text.strip())

    starts = [i for i in (s.find("{"), s.find("[")) if i >= 0]
    if starts:
        s = s[min(starts):]

    out: list[str] = []
    stack: list[str] = []
    in_string = False
    escape = False
    i = 0

    while i < len(s):
        ch = s[i]

        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            elif ch == "\n":
                out.append("\\n")
                i += 1
                continue
            out.append(ch)
            i += 1
            continue

        if ch == '"':
            in_string = True
        elif ch in _CLOSERS:
            stack.append(ch)
        elif ch in "}]":
            if not stack or _CLOSERS[stack[-1]] != ch:
                i += 1
                continue
            stack.pop()
            _drop_trailing_comma(out)
            out.append(ch)
            i += 1
            if not stack:
                break
            continue
        elif ch.isalpha():
            match = re.match(r"\w+", s[i:])
            word = match.group(0)
            out.append(_PY_LITERALS.get(word, word))
            i += len(word)
            continue

        out.append(ch)
        i += 1

    if in_string:
        if escape:
            out.pop()
        out.append('"')

    _drop_trailing_comma(out)
    if out and out[-1] == ":":
        out.append("null")

    while stack:
        out.append(_CLOSERS[stack.pop()])

    return "".join(out)


def parse_json_lenient(text: str) -> Any:
    """
    Parse JSON, attempting one repair pass if direct parsing fails.

    Raises:
        json.JSONDecodeError: If the text is still invalid after repair
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        repaired = repair_json_string(text)
        logger.info("Repaired malformed JSON: %s", repaired[:200])
        return json.loads(repaired)
