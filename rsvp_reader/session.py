"""
Reading session: the token sequence plus position, speed, chunking,
play state and launch state, mutated only through the methods below.

All navigation keeps `position` on a chunk boundary and never raises for
out-of-range input; an empty sequence turns every operation into a no-op.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .config import CHUNK_SIZES, DEFAULT_SETTINGS, ReaderSettings
from .launch import LaunchController, LaunchState
from .orp import ORPResult, calculate_chunk_orp
from .timing import is_sentence_end
from .tokenizer import content_hash, tokenize

logger = logging.getLogger(__name__)

SOURCE_KINDS = ("text", "pdf", "epub", "url")


@dataclass(frozen=True)
class Heading:
    token_index: int
    title: str
    level: int = 1

    def to_dict(self) -> dict:
        return {"token_index": self.token_index, "title": self.title, "level": self.level}


@dataclass(frozen=True)
class ContentMeta:
    title: str = ""
    source_kind: str = "text"
    source_url: Optional[str] = None
    headings: Tuple[Heading, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "ContentMeta":
        """Build metadata from caller-supplied JSON; malformed headings are skipped."""
        headings = []
        raw_headings = data.get("headings")
        for h in raw_headings if isinstance(raw_headings, list) else ():
            try:
                headings.append(Heading(int(h["token_index"]), str(h.get("title", "")), int(h.get("level", 1))))
            except (KeyError, TypeError, ValueError, OverflowError, AttributeError):
                logger.debug("Skipping malformed heading %r", h)
        source_url = data.get("source_url")
        return cls(
            title=str(data.get("title") or ""),
            source_kind=str(data.get("source_kind") or "text"),
            source_url=source_url if isinstance(source_url, str) and source_url else None,
            headings=tuple(headings),
        )


@dataclass(frozen=True)
class ProgressReport:
    content_id: str
    title: str
    source_kind: str
    current_index: int
    source_url: Optional[str] = None
    word_count: int = 0

    def to_dict(self) -> dict:
        return {
            "content_id": self.content_id,
            "title": self.title,
            "source_kind": self.source_kind,
            "current_index": self.current_index,
            "source_url": self.source_url,
            "word_count": self.word_count,
        }


@dataclass(frozen=True)
class SessionSnapshot:
    tokens: Tuple[str, ...]
    position: int
    chunk_size: int
    wpm: int
    is_playing: bool
    launch: LaunchState
    progress: float
    meta: Optional[ContentMeta] = None
    content_id: Optional[str] = None
    chunk: Tuple[str, ...] = field(default=())

    @property
    def orp(self) -> ORPResult:
        return calculate_chunk_orp(self.chunk)


def snap(index: int, chunk_size: int) -> int:
    return (index // chunk_size) * chunk_size


def default_title(source_kind: str, word_count: int) -> str:
    if source_kind == "text":
        return f"Pasted text ({word_count} words)"
    return f"Untitled ({word_count} words)"


class ReaderSession:
    def __init__(self, settings: ReaderSettings = DEFAULT_SETTINGS, wpm: Optional[int] = None):
        self.settings = settings
        self.launch = LaunchController(settings)
        self._tokens: Tuple[str, ...] = ()
        self._meta: Optional[ContentMeta] = None
        self._content_id: Optional[str] = None
        self._position = 0
        self._chunk_size = 1
        self._wpm = settings.clamp_wpm(wpm if wpm is not None else settings.default_wpm)
        self._playing = False

    # -------------------------------
    # Read-only views
    # -------------------------------
    @property
    def tokens(self) -> Tuple[str, ...]:
        return self._tokens

    @property
    def meta(self) -> Optional[ContentMeta]:
        return self._meta

    @property
    def content_id(self) -> Optional[str]:
        return self._content_id

    @property
    def position(self) -> int:
        return self._position

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def wpm(self) -> int:
        return self._wpm

    @property
    def is_playing(self) -> bool:
        return self._playing

    @property
    def is_empty(self) -> bool:
        return not self._tokens

    @property
    def last_index(self) -> int:
        return max(0, len(self._tokens) - 1)

    @property
    def progress(self) -> float:
        if len(self._tokens) <= 1:
            return 0.0
        return self._position / (len(self._tokens) - 1) * 100

    def current_chunk(self) -> Tuple[str, ...]:
        return self._tokens[self._position:self._position + self._chunk_size]

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            tokens=self._tokens,
            position=self._position,
            chunk_size=self._chunk_size,
            wpm=self._wpm,
            is_playing=self._playing,
            launch=self.launch.state,
            progress=self.progress,
            meta=self._meta,
            content_id=self._content_id,
            chunk=self.current_chunk(),
        )

    def progress_report(self) -> Optional[ProgressReport]:
        if self.is_empty or self._content_id is None:
            return None
        meta = self._meta or ContentMeta()
        return ProgressReport(
            content_id=self._content_id,
            title=meta.title,
            source_kind=meta.source_kind,
            current_index=self._position,
            source_url=meta.source_url,
            word_count=len(self._tokens),
        )

    # -------------------------------
    # Content
    # -------------------------------
    def load_content(self, raw_text: str, meta: Optional[ContentMeta] = None) -> int:
        """Replace the sequence and reset position, progress, playback and launch together."""
        tokens = tuple(tokenize(raw_text))
        meta = meta or ContentMeta()
        source_kind = meta.source_kind if meta.source_kind in SOURCE_KINDS else "text"
        headings = tuple(h for h in meta.headings if 0 <= h.token_index < len(tokens))
        if len(headings) != len(meta.headings):
            logger.debug("Dropped %d out-of-range headings", len(meta.headings) - len(headings))
        meta = ContentMeta(
            title=meta.title or default_title(source_kind, len(tokens)),
            source_kind=source_kind,
            source_url=meta.source_url,
            headings=headings,
        )

        self._tokens = tokens
        self._meta = meta
        self._content_id = content_hash(tokens) if tokens else None
        self._position = 0
        self._playing = False
        self.launch.cancel()
        logger.info("Loaded %r: %d tokens", meta.title, len(tokens))
        return len(tokens)

    def reset(self) -> None:
        self._tokens = ()
        self._meta = None
        self._content_id = None
        self._position = 0
        self._playing = False
        self.launch.cancel()

    def restart(self) -> None:
        self._position = 0
        self._playing = False
        self.launch.cancel()

    # -------------------------------
    # Settings
    # -------------------------------
    def set_wpm(self, wpm) -> int:
        try:
            value = int(round(float(wpm)))
        except (TypeError, ValueError, OverflowError):
            return self._wpm
        self._wpm = self.settings.clamp_wpm(value)
        return self._wpm

    def set_chunk_size(self, chunk_size) -> bool:
        if isinstance(chunk_size, bool) or chunk_size not in CHUNK_SIZES:
            return False
        self._chunk_size = int(chunk_size)
        self._position = snap(self._position, self._chunk_size)
        return True

    # -------------------------------
    # Playback flags (driven by the engine)
    # -------------------------------
    def start_playback(self) -> bool:
        if self.is_empty:
            return False
        self._playing = True
        return True

    def stop_playback(self) -> None:
        self._playing = False

    # -------------------------------
    # Navigation
    # -------------------------------
    def _move_to(self, index: int) -> int:
        if self.is_empty:
            self._position = 0
            return 0
        index = max(0, min(self.last_index, index))
        self._position = snap(index, self._chunk_size)
        return self._position

    def advance(self) -> bool:
        """Step one chunk forward. False means the current chunk is the last one."""
        if self.is_empty:
            return False
        target = snap(min(self._position + self._chunk_size, self.last_index), self._chunk_size)
        if target <= self._position:
            return False
        self._position = target
        return True

    def jump_to(self, index: int) -> int:
        return self._move_to(int(index))

    def go_back(self, count: Optional[int] = None) -> int:
        count = self.settings.skip_words if count is None else count
        return self._move_to(self._position - count)

    def go_forward(self, count: Optional[int] = None) -> int:
        count = self.settings.skip_words if count is None else count
        return self._move_to(self._position + count)

    def previous_sentence_start(self) -> int:
        tokens = self._tokens
        i = self._position - 1
        # Already at a sentence start: step over the previous sentence's ending.
        if i >= 0 and is_sentence_end(tokens[i]):
            i -= 1
        while i >= 0 and not is_sentence_end(tokens[i]):
            i -= 1
        return i + 1

    def next_sentence_start(self) -> int:
        tokens = self._tokens
        i = self._position
        while i < len(tokens) and not is_sentence_end(tokens[i]):
            i += 1
        return i + 1

    def go_back_sentence(self) -> int:
        if self.is_empty:
            return 0
        return self._move_to(self.previous_sentence_start())

    def go_forward_sentence(self) -> int:
        if self.is_empty:
            return 0
        return self._move_to(self.next_sentence_start())

    def chunks(self) -> List[Tuple[int, Sequence[str]]]:
        size = self._chunk_size
        return [(i, self._tokens[i:i + size]) for i in range(0, len(self._tokens), size)]
