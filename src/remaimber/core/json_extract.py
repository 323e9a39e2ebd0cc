"""Extraction of a JSON object from free-form LLM output.

Small models wrap their answer in prose, markdown fences or thinking tags.
The grader only trusts the first balanced ``{...}`` region found by a
string-aware brace scan.
"""

from __future__ import annotations

import re

# Some models emit reasoning blocks that may contain braces of their own
SANITIZE_PATTERNS = [
    re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<analysis>.*?</analysis>", re.DOTALL | re.IGNORECASE),
    re.compile(r"<reasoning>.*?</reasoning>", re.DOTALL | re.IGNORECASE),
]


def strip_thinking(text: str) -> str:
    """Remove thinking/reasoning tags from model output."""
    result = text
    for pattern in SANITIZE_PATTERNS:
        result = pattern.sub("", result)
    return result.strip()


def extract_json_object(text: str) -> str:
    """Return the first balanced JSON object in ``text``.

    Scans character by character, tracking whether the cursor is inside a
    double-quoted string (with backslash escapes) and, outside strings
    only, the brace depth. The first ``{`` seen at depth 0 starts the
    candidate; when depth returns to 0 the substring through that closing
    ``}`` is returned.

    Args:
        text: Raw model output

    Returns:
        The object substring, or "" if no balanced region exists.

    Example:
        >>> extract_json_object('Sure! {"covered": ["a}"]} Hope it helps')
        '{"covered": ["a}"]}'
    """
    start = -1
    depth = 0
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if escaped:
            escaped = False
            continue
        if in_string:
            if ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
            continue

        if ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                return text[start : i + 1]

    return ""
