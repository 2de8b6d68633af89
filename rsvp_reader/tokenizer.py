"""
Text -> RSVP token sequence.

Tokens are whitespace-free words with their punctuation attached, in reading
order. The function never raises: anything that is not a str yields [].
"""

from __future__ import annotations

import hashlib
import re
from typing import Iterable, List

ZERO_WIDTH_RE = re.compile("[\u200b\u200c\u200d\ufeff]")
WHITESPACE_RE = re.compile("[\\s\u00a0\u2000-\u200a\u202f\u205f\u3000]+")

# Repairs for spaces lost during HTML/PDF -> text extraction.
# 'Martian."Yet' -> 'Martian." Yet'
TERMINAL_QUOTE_CAPITAL_RE = re.compile("([.!?])([\"'\u201d\u2019)\\]]+)([A-Z])")
# 'end.Start' -> 'end. Start'
TERMINAL_CAPITAL_RE = re.compile(r"([.!?])([A-Z])")
# 'said"He' -> 'said" He'
CLOSING_QUOTE_CAPITAL_RE = re.compile("(?<=\\S)([\"\u201d])([A-Z])")

LONG_TOKEN_LENGTH = 25
# Break once after a whole em-dash or double-hyphen run.
DASH_BREAK_RE = re.compile("(?:(?<=\u2014)|(?<=--))(?![\u2014-])")

CONTENT_HASH_LENGTH = 16


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run (incl. NBSP and Unicode spaces) to one space."""
    if not text:
        return ""
    text = ZERO_WIDTH_RE.sub("", text)
    return WHITESPACE_RE.sub(" ", text).strip()


def repair_spacing(text: str) -> str:
    text = TERMINAL_QUOTE_CAPITAL_RE.sub(r"\1\2 \3", text)
    text = TERMINAL_CAPITAL_RE.sub(r"\1 \2", text)
    return CLOSING_QUOTE_CAPITAL_RE.sub(r"\1 \2", text)


def split_long_token(token: str) -> List[str]:
    if len(token) <= LONG_TOKEN_LENGTH:
        return [token]
    parts = [p for p in DASH_BREAK_RE.split(token) if p]
    return parts or [token]


def tokenize(text: str) -> List[str]:
    if not isinstance(text, str) or not text:
        return []

    cleaned = repair_spacing(normalize_whitespace(text))
    if not cleaned:
        return []

    tokens: List[str] = []
    for word in cleaned.split(" "):
        if word:
            tokens.extend(split_long_token(word))
    return tokens


def content_hash(tokens: Iterable[str]) -> str:
    """Stable identifier for a token sequence, used to key saved progress."""
    joined = " ".join(tokens)
    return hashlib.sha256(joined.encode("utf-8")).hexdigest()[:CONTENT_HASH_LENGTH]
