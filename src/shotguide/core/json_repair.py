"""Text transforms that repair semi-structured model output into JSON.

Generative models asked for JSON frequently wrap it in markdown fences,
prefix it with prose, sprinkle comments through it, or leave a trailing
comma after the last element.  Each of those corruptions gets its own pure
``str -> str`` function here; every function is a no-op when its pattern is
absent, so the pipeline is safe to run on clean input.

Pipeline Order
--------------
1. :func:`strip_code_fences`
2. :func:`extract_json_payload`
3. :func:`strip_comment_lines`
4. :func:`remove_trailing_commas`

:func:`repair_json` composes them in that order.
"""

from __future__ import annotations

import re
from collections.abc import Callable

FENCE = "```"

# Line prefixes that mark a comment line, after leading whitespace is removed.
COMMENT_PREFIXES: tuple[str, ...] = ("//", "#", "/*", "*/", "*")

_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence.

    When the text starts with a fence marker, everything up to and including
    the first line break is dropped (the fence and its language tag), as is
    everything from the last fence marker onward.
    """
    stripped = text.strip()
    if not stripped.startswith(FENCE):
        return text

    newline = stripped.find("\n")
    # No line break: only the opening marker itself can be dropped.
    body = stripped[newline + 1 :] if newline != -1 else stripped[len(FENCE) :]

    closing = body.rfind(FENCE)
    if closing != -1:
        body = body[:closing]
    return body.strip()


def extract_json_payload(text: str) -> str:
    """Slice the outermost JSON object or array out of surrounding prose.

    Whichever of ``{`` and ``[`` appears first decides the delimiters, so a
    top-level array of plans survives intact.  Text without an ordered
    delimiter pair is returned unchanged.
    """
    brace = text.find("{")
    bracket = text.find("[")
    if bracket != -1 and (brace == -1 or bracket < brace):
        opener, closer = "[", "]"
    else:
        opener, closer = "{", "}"
    start = text.find(opener)
    end = text.rfind(closer)
    if start == -1 or end == -1 or end < start:
        return text
    return text[start : end + 1]


def strip_comment_lines(text: str) -> str:
    """Drop blank lines and whole-line ``//``, ``#`` and block comments."""
    kept = []
    for line in text.splitlines():
        candidate = line.strip()
        if not candidate or candidate.startswith(COMMENT_PREFIXES):
            continue
        kept.append(line)
    return "\n".join(kept)


def remove_trailing_commas(text: str) -> str:
    """Remove commas that directly precede a closing ``}`` or ``]``."""
    return _TRAILING_COMMA_RE.sub(r"\1", text)


REPAIR_STAGES: tuple[Callable[[str], str], ...] = (
    strip_code_fences,
    extract_json_payload,
    strip_comment_lines,
    remove_trailing_commas,
)


def repair_json(text: str) -> str:
    """Run every repair stage over *text* in order."""
    for stage in REPAIR_STAGES:
        text = stage(text)
    return text
