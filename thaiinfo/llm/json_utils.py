"""JSON parsing helpers for LLM responses.

Models asked for "JSON only" still wrap output in markdown fences, emit
invalid escapes, or add a sentence after the payload. These helpers
recover the object where possible and return None otherwise.
"""

from __future__ import annotations

import json
import re


def fix_escape_sequences(text: str) -> str:
    """Double lone backslashes that do not form a valid JSON escape.

    Args:
        text: Raw text potentially containing invalid escapes.

    Returns:
        Text with invalid escape sequences fixed.
    """
    return re.sub(r'(?<!\\)\\(?!["\\/bfnrtu])', r"\\\\", text)


def strip_markdown_fences(text: str) -> str:
    """Strip a surrounding markdown code fence (```json ... ```)."""
    text = text.strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        if first_newline != -1:
            text = text[first_newline + 1 :]
        else:
            text = text[3:]
        if text.endswith("```"):
            text = text[: -len("```")]
        text = text.strip()
    return text


def extract_first_json_object(text: str) -> str | None:
    """Extract the first balanced ``{...}`` block from text.

    Braces inside string literals are ignored.

    Args:
        text: Raw text potentially containing a JSON object.

    Returns:
        The object text, or None if no balanced block is found.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def try_parse_json_object(text: str) -> dict[str, object] | None:
    """Parse text as a JSON object, retrying once with escapes fixed."""
    for candidate in (text, fix_escape_sequences(text)):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def parse_llm_json_object(raw: str) -> dict[str, object] | None:
    """Best-effort parse of a single JSON object from an LLM response.

    Tries the fence-stripped text first, then the first balanced object
    found inside it.

    Args:
        raw: Raw model output.

    Returns:
        Parsed dict, or None if nothing parseable was found.
    """
    text = strip_markdown_fences(raw)
    parsed = try_parse_json_object(text)
    if parsed is not None:
        return parsed

    extracted = extract_first_json_object(text)
    if extracted and extracted != text:
        return try_parse_json_object(extracted)
    return None
