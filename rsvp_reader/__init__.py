"""RSVP speed reader: tokenizer, ORP, timing and playback engine."""

from .engine import PlaybackEngine
from .launch import LaunchController, LaunchState, ramp_wpm
from .orp import ORPResult, calculate_chunk_orp, calculate_orp
from .session import ContentMeta, Heading, ProgressReport, ReaderSession, SessionSnapshot
from .ticker import FrameLoop
from .timing import base_interval_ms, delay_for_token
from .tokenizer import content_hash, tokenize

__version__ = "0.1.0"

__all__ = [
    "ContentMeta",
    "FrameLoop",
    "Heading",
    "LaunchController",
    "LaunchState",
    "ORPResult",
    "PlaybackEngine",
    "ProgressReport",
    "ReaderSession",
    "SessionSnapshot",
    "base_interval_ms",
    "calculate_chunk_orp",
    "calculate_orp",
    "content_hash",
    "delay_for_token",
    "ramp_wpm",
    "tokenize",
]
