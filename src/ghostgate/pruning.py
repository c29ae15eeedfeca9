"""Tool result pruning.

Large tool outputs are normalized and, if still over budget, truncated
before they re-enter the conversation:

1. Results of LARGE_RESULT_THRESHOLD characters or fewer are never touched
2. Results estimated below ``min_tokens`` are returned unchanged
3. Whitespace, code fences, blank-line runs and empty list/heading markers
   are normalized
4. Text longer than ``max_tokens * CHARS_PER_TOKEN`` characters is cut to
   exactly that length and a disclosure suffix is appended

Token counts use a fixed four-characters-per-token estimate, not a real
tokenizer.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Any

from .config import PruningConfig

CHARS_PER_TOKEN = 4
LARGE_RESULT_THRESHOLD = 500

TRUNCATION_NOTICE = "\n\n[GhostGate: Result truncated to save tokens. Original length: {length} chars]"

# Applied in order
_REWRITES: list[tuple[re.Pattern[str], str]] = [
    # Collapse whitespace runs (newlines included)
    (re.compile(r"\s+"), " "),
    # Canonical empty-language fence
    (re.compile(r"```\w*\n?"), "```\n"),
    # Blank-line runs
    (re.compile(r"\n{3,}"), "\n\n"),
    # List/heading markers with nothing after them on the line
    (re.compile(r"(?m)^[ \t]*[-*#]+[ \t]*(?:\n|$)"), ""),
]


def estimate_tokens(text: str) -> int:
    """Estimate token count as ceil(len / CHARS_PER_TOKEN)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def estimate_schema_tokens(schema: Any) -> int:
    """Estimate the prompt cost of a schema serialized as compact JSON."""
    return estimate_tokens(json.dumps(schema, separators=(",", ":"), ensure_ascii=False))


@dataclass
class PruneResult:
    """Outcome of a prune pass.

    Attributes:
        text: Pruned text (the original when nothing was done)
        tokens_saved: Estimated tokens saved, never negative
        original_length: Character length of the input
        truncated: Whether the character budget cut the text
    """

    text: str
    tokens_saved: int = 0
    original_length: int = 0
    truncated: bool = False

    @property
    def changed(self) -> bool:
        return self.tokens_saved > 0


def normalize(text: str) -> str:
    """Apply the normalizing rewrites."""
    for pattern, replacement in _REWRITES:
        text = pattern.sub(replacement, text)
    return text


def should_prune(result: Any) -> bool:
    """Coarse pre-filter: only strings longer than LARGE_RESULT_THRESHOLD qualify."""
    return isinstance(result, str) and len(result) > LARGE_RESULT_THRESHOLD


def prune(text: str, config: PruningConfig) -> PruneResult:
    """Shorten ``text`` according to ``config``.

    Pure and deterministic. The disclosure suffix is added after the cut, so
    the kept slice is exactly ``max_tokens * CHARS_PER_TOKEN`` characters.
    """
    original_length = len(text)
    unchanged = PruneResult(text=text, original_length=original_length)
    if not config.enabled:
        return unchanged

    original_tokens = estimate_tokens(text)
    if original_tokens < config.min_tokens:
        return unchanged

    pruned = normalize(text)

    truncated = False
    max_chars = config.max_tokens * CHARS_PER_TOKEN
    if len(pruned) > max_chars:
        pruned = pruned[:max_chars] + TRUNCATION_NOTICE.format(length=original_length)
        truncated = True

    tokens_saved = max(0, original_tokens - estimate_tokens(pruned))
    return PruneResult(
        text=pruned,
        tokens_saved=tokens_saved,
        original_length=original_length,
        truncated=truncated,
    )


__all__ = [
    "CHARS_PER_TOKEN",
    "LARGE_RESULT_THRESHOLD",
    "TRUNCATION_NOTICE",
    "PruneResult",
    "estimate_tokens",
    "estimate_schema_tokens",
    "normalize",
    "should_prune",
    "prune",
]
