from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .config import COUNTDOWN_TICK_MS
from .engine import PlaybackEngine

logger = logging.getLogger(__name__)


class FrameLoop:
    """
    Drives a PlaybackEngine from a clock, standing in for a display's
    animation-frame callback. `clock` returns seconds (time.monotonic by
    default); the engine sees milliseconds. Pass a fake clock/sleep pair for
    deterministic runs.
    """

    def __init__(
        self,
        engine: PlaybackEngine,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        fps: float = 60.0,
    ):
        self.engine = engine
        self.clock = clock
        self.sleep = sleep
        self.frame_interval = 1.0 / fps
        self.frames = 0
        self._next_countdown: Optional[float] = None

    def now_ms(self) -> float:
        return self.clock() * 1000.0

    @property
    def active(self) -> bool:
        return self.engine.is_playing or self.engine.is_launching

    def step(self) -> None:
        now = self.now_ms()
        self._countdown(now)
        self.engine.on_tick(now)
        self.frames += 1

    def _countdown(self, now: float) -> None:
        if not self.engine.launch.state.is_counting_down:
            self._next_countdown = None
            return
        if self._next_countdown is None:
            self._next_countdown = now + COUNTDOWN_TICK_MS
            return
        if now >= self._next_countdown:
            self._next_countdown += COUNTDOWN_TICK_MS
            self.engine.countdown_tick(now)

    def run(self, max_frames: Optional[int] = None) -> int:
        """Tick until playback and any launch have finished. Returns frames run."""
        start = self.frames
        while self.active:
            if max_frames is not None and self.frames - start >= max_frames:
                logger.debug("Frame budget of %d exhausted", max_frames)
                break
            self.step()
            self.sleep(self.frame_interval)
        return self.frames - start
