"""
Optimal Recognition Point (ORP) placement.

The focal letter sits roughly 25-35% into a word. Short words use fixed
breakpoints, long words a flat 35%.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence


@dataclass(frozen=True)
class ORPResult:
    before: str
    focal: str
    after: str
    focal_index: int

    @property
    def text(self) -> str:
        return self.before + self.focal + self.after

    def to_dict(self) -> dict:
        return {
            "before": self.before,
            "focal": self.focal,
            "after": self.after,
            "focal_index": self.focal_index,
        }


def compute_orp_index(length: int) -> int:
    if length <= 1:
        return 0
    if length <= 2:
        return 0  # "to" -> [t]o
    if length <= 4:
        return 1  # "word" -> w[o]rd
    if length <= 6:
        return 1
    if length <= 8:
        return 2  # "reading" -> re[a]ding
    if length <= 10:
        return 3  # "understand" -> und[e]rstand
    return math.floor(length * 0.35)


def _split_at(text: str, idx: int) -> ORPResult:
    return ORPResult(
        before=text[:idx],
        focal=text[idx] if 0 <= idx < len(text) else "",
        after=text[idx + 1:],
        focal_index=idx,
    )


def calculate_orp(token: str) -> ORPResult:
    return _split_at(token, compute_orp_index(len(token)))


def focal_token_position(chunk_length: int) -> int:
    """Which token of a chunk carries the focal letter: first of two, middle of three."""
    if chunk_length <= 2:
        return 0
    return chunk_length // 2


def calculate_chunk_orp(tokens: Sequence[str]) -> ORPResult:
    if not tokens:
        return ORPResult("", "", "", 0)
    if len(tokens) == 1:
        return calculate_orp(tokens[0])

    pos = focal_token_position(len(tokens))
    offset = sum(len(t) + 1 for t in tokens[:pos])
    local = calculate_orp(tokens[pos])
    return _split_at(" ".join(tokens), offset + local.focal_index)
