# src/generation/json_repair.py — v1
"""Layered JSON recovery for model output.

Models are asked for bare JSON but regularly wrap it in prose, fence it in
markdown, or stop mid-record when they hit the token limit. Strategies are
tried in order:

  1. direct     parse the stripped text as-is
  2. bracketed  first balanced ``[...]`` span in the text
  3. fenced     content of the first ```/```json code block
  4. repaired   bracket balancing: drop unmatched closers, close open
                containers, and fall back to the last complete element
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Callable

from filethetic.core.errors import GenerationError

logger = logging.getLogger(__name__)

RAW_PREFIX_LEN = 500

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_CLOSERS = {"[": "]", "{": "}"}


def _loads(text: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return False, None


def _span_end(text: str, start: int) -> int | None:
    """Index of the ``]`` closing the ``[`` at ``start``, or None."""
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
        elif ch == "[":
            depth += 1
        elif ch == "]":
            depth -= 1
            if depth == 0:
                return i
    return None


def _is_record_list(span: str) -> bool:
    ok, value = _loads(span)
    return ok and isinstance(value, list) and bool(value) and all(
        isinstance(item, dict) for item in value
    )


def extract_bracketed_span(text: str) -> str | None:
    """Return the first balanced top-level ``[...]`` span holding objects.

    Spans such as ``[1]`` in surrounding prose are skipped in favour of a
    later array of objects. When no span holds objects, the first balanced
    span is returned. None when there is no balanced span.
    """
    first: str | None = None
    start = text.find("[")
    while start >= 0:
        end = _span_end(text, start)
        if end is None:
            break
        span = text[start : end + 1]
        if _is_record_list(span):
            return span
        if first is None:
            first = span
        start = text.find("[", end + 1)
    return first


def extract_fenced_block(text: str) -> str | None:
    """Return the content of the first fenced code block, or None."""
    match = _FENCE_RE.search(text)
    if match is None:
        return None
    return match.group(1).strip() or None


def repair_brackets(text: str) -> str | None:
    """Balance brackets in truncated or over-closed JSON.

    Unmatched closers are dropped and anything after the root container
    closes is discarded. Two candidates are produced: the full text with the
    open containers closed, and the text cut back to the last complete
    element (for output truncated inside a string or key). The first one
    that parses is returned.
    """
    starts = [i for i in (text.find("["), text.find("{")) if i >= 0]
    if not starts:
        return None
    body = text[min(starts):].rstrip()

    out: list[str] = []
    stack: list[str] = []
    in_string = False
    escaped = False
    safe_len: int | None = None
    safe_stack: list[str] = []

    for ch in body:
        if in_string:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
            out.append(ch)
        elif ch in _CLOSERS:
            stack.append(ch)
            out.append(ch)
        elif ch in ("]", "}"):
            if stack and _CLOSERS[stack[-1]] == ch:
                stack.pop()
                out.append(ch)
                safe_len = len(out)
                safe_stack = list(stack)
                if not stack:
                    break
        else:
            out.append(ch)

    candidates: list[str] = []
    if not in_string:
        candidates.append(_close("".join(out), stack))
    if safe_len is not None:
        candidates.append(_close("".join(out[:safe_len]), safe_stack))

    for candidate in candidates:
        ok, _ = _loads(candidate)
        if ok:
            return candidate
    return None


def _close(text: str, stack: list[str]) -> str:
    """Strip a dangling comma and append closers for ``stack``."""
    text = text.rstrip().rstrip(",").rstrip()
    return text + "".join(_CLOSERS[opener] for opener in reversed(stack))


_STRATEGIES: list[tuple[str, Callable[[str], str | None]]] = [
    ("direct", lambda text: text),
    ("bracketed", extract_bracketed_span),
    ("fenced", extract_fenced_block),
    ("repaired", repair_brackets),
]


def parse_model_json(text: str) -> Any:
    """Parse model output into JSON data using the layered strategies.

    Raises:
        GenerationError: If every strategy fails. Carries the raw text prefix.
    """
    stripped = text.strip()
    for name, strategy in _STRATEGIES:
        candidate = strategy(stripped)
        if candidate is None:
            continue
        ok, value = _loads(candidate)
        if ok:
            if name != "direct":
                logger.debug("Recovered model JSON via %s strategy", name)
            return value

    prefix = stripped[:RAW_PREFIX_LEN]
    raise GenerationError(
        f"Failed to parse JSON response. Raw response: {prefix}...",
        raw_prefix=prefix,
    )
