"""
Launch mode: a 3-2-1 countdown followed by an ease-out speed ramp from a
low starting WPM up to the reader's target.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Optional

from .config import DEFAULT_SETTINGS, ReaderSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LaunchState:
    is_launching: bool = False
    countdown: int = 0
    current_wpm: int = DEFAULT_SETTINGS.ramp_start_wpm
    target_wpm: int = DEFAULT_SETTINGS.default_wpm
    ramp_start_time: Optional[float] = None

    @property
    def is_counting_down(self) -> bool:
        return self.is_launching and self.countdown > 0

    @property
    def is_ramping(self) -> bool:
        return self.is_launching and self.countdown == 0 and self.ramp_start_time is not None

    @property
    def phase(self) -> str:
        if self.is_counting_down:
            return "countdown"
        if self.is_ramping:
            return "ramping"
        return "inert"

    def to_dict(self) -> dict:
        return {
            "is_launching": self.is_launching,
            "countdown": self.countdown,
            "current_wpm": self.current_wpm,
            "target_wpm": self.target_wpm,
            "ramp_start_time": self.ramp_start_time,
            "phase": self.phase,
        }


INERT_LAUNCH = LaunchState()


def round_half_up(value: float) -> int:
    # WPM is always positive, so this is round-half-away-from-zero.
    return int(math.floor(value + 0.5))


def ramp_progress(elapsed_ms: float, duration_ms: float) -> float:
    if duration_ms <= 0:
        return 1.0
    return max(0.0, min(1.0, elapsed_ms / duration_ms))


def ramp_wpm(
    elapsed_ms: float,
    target_wpm: int,
    start_wpm: int = DEFAULT_SETTINGS.ramp_start_wpm,
    duration_ms: float = DEFAULT_SETTINGS.ramp_duration_ms,
) -> int:
    progress = ramp_progress(elapsed_ms, duration_ms)
    eased = 1 - (1 - progress) ** 2
    return round_half_up(start_wpm + (target_wpm - start_wpm) * eased)


class LaunchController:
    """
    State machine over a LaunchState value: inert -> countdown -> ramping -> inert.

    It owns no playback; callers apply the returned transitions to the
    engine (start playing when the ramp begins, stop on cancel).
    """

    def __init__(self, settings: ReaderSettings = DEFAULT_SETTINGS):
        self.settings = settings
        self.state = INERT_LAUNCH

    def start(self, target_wpm: int) -> LaunchState:
        self.state = LaunchState(
            is_launching=True,
            countdown=self.settings.countdown_from,
            current_wpm=self.settings.ramp_start_wpm,
            target_wpm=target_wpm,
            ramp_start_time=None,
        )
        logger.debug("Launch started (target %d WPM)", target_wpm)
        return self.state

    def countdown_tick(self, timestamp: float) -> bool:
        """One-second countdown step. Returns True when the ramp begins."""
        if not self.state.is_counting_down:
            return False
        if self.state.countdown > 1:
            self.state = replace(self.state, countdown=self.state.countdown - 1)
            return False
        self.state = replace(self.state, countdown=0, ramp_start_time=timestamp)
        logger.debug("Countdown finished, ramping to %d WPM", self.state.target_wpm)
        return True

    def update(self, timestamp: float) -> Optional[int]:
        """Per-frame ramp step. Returns the live WPM, or None when not ramping."""
        if not self.state.is_ramping:
            return None
        elapsed = timestamp - self.state.ramp_start_time
        wpm = ramp_wpm(
            elapsed,
            self.state.target_wpm,
            self.settings.ramp_start_wpm,
            self.settings.ramp_duration_ms,
        )
        if ramp_progress(elapsed, self.settings.ramp_duration_ms) >= 1:
            logger.debug("Ramp complete at %d WPM", wpm)
            self.state = INERT_LAUNCH
            return wpm
        self.state = replace(self.state, current_wpm=wpm)
        return wpm

    def cancel(self) -> None:
        if self.state.is_launching:
            logger.debug("Launch cancelled during %s", self.state.phase)
        self.state = INERT_LAUNCH

    def effective_wpm(self, user_wpm: int) -> int:
        if self.state.is_ramping:
            return self.state.current_wpm
        return user_wpm
