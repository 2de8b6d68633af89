"""
Per-flash display durations.

A token's hold time is the base interval scaled by the single largest
applicable multiplier; multipliers never stack.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

QUOTED_SENTENCE_END_RE = re.compile("[.!?][\"'”’)\\]]$")
SENTENCE_END_RE = re.compile(r"[.!?]$")
CLAUSE_END_RE = re.compile(r"[,;:]$")
# Also used by sentence navigation.
SENTENCE_BOUNDARY_RE = re.compile("[.!?][\"'”’]?$")
DIGIT_RE = re.compile(r"\d")

QUOTED_SENTENCE_MULT = 1.8
SENTENCE_MULT = 1.5
CLAUSE_MULT = 1.2
SENTENCE_START_MULT = 1.15
NUMBER_MULT = 1.15
ACRONYM_MULT = 1.15
HYPHENATED_MULT = 1.1
LONG_WORD_MULT = 1.1

LONG_WORD_LENGTH = 10


def is_sentence_end(token: Optional[str]) -> bool:
    return bool(token) and SENTENCE_BOUNDARY_RE.search(token) is not None


def is_acronym(token: str) -> bool:
    letters = "".join(ch for ch in token if ch.isalpha())
    return len(letters) >= 3 and letters.isupper()


def delay_multiplier(token: str, preceding: Optional[str] = None) -> float:
    if not token:
        return 1.0

    mult = 1.0
    if QUOTED_SENTENCE_END_RE.search(token):
        mult = max(mult, QUOTED_SENTENCE_MULT)
    elif SENTENCE_END_RE.search(token):
        mult = max(mult, SENTENCE_MULT)

    if CLAUSE_END_RE.search(token):
        mult = max(mult, CLAUSE_MULT)
    if is_sentence_end(preceding):
        mult = max(mult, SENTENCE_START_MULT)
    if DIGIT_RE.search(token):
        mult = max(mult, NUMBER_MULT)
    if is_acronym(token):
        mult = max(mult, ACRONYM_MULT)
    if "-" in token and len(token) > 3:
        mult = max(mult, HYPHENATED_MULT)
    if len(token) > LONG_WORD_LENGTH:
        mult = max(mult, LONG_WORD_MULT)
    return mult


def delay_for_token(token: str, preceding: Optional[str], base_interval_ms: float) -> float:
    if not token:
        return base_interval_ms
    return base_interval_ms * delay_multiplier(token, preceding)


def base_interval_ms(wpm: float, chunk_size: int = 1) -> float:
    """One flash advances chunk_size tokens, so dwell scales with it."""
    if wpm <= 0:
        return float("inf")
    return (60000.0 / wpm) * max(1, chunk_size)


def chunk_delay_ms(tokens: Sequence[str], start: int, chunk_size: int, wpm: float) -> float:
    """Hold time for the chunk starting at `start`, governed by its last token."""
    base = base_interval_ms(wpm, chunk_size)
    if not tokens or not 0 <= start < len(tokens):
        return base
    last = min(start + chunk_size, len(tokens)) - 1
    preceding = tokens[last - 1] if last > 0 else None
    return delay_for_token(tokens[last], preceding, base)
