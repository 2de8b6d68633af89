"""
RSVP playback engine.

Driven by a ticker that calls `on_tick(timestamp_ms)` once per display
frame and `countdown_tick(timestamp_ms)` once per second during a launch
countdown. Every tick reads WPM, chunk size and launch state fresh from the
session, so live changes apply on the very next frame.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from .config import DEFAULT_SETTINGS, ReaderSettings
from .session import ContentMeta, ProgressReport, ReaderSession, SessionSnapshot
from .timing import chunk_delay_ms

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressReport], None]
AdvanceCallback = Callable[[SessionSnapshot], None]


class PlaybackEngine:
    def __init__(
        self,
        session: Optional[ReaderSession] = None,
        settings: Optional[ReaderSettings] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_advance: Optional[AdvanceCallback] = None,
    ):
        if session is None:
            session = ReaderSession(settings or DEFAULT_SETTINGS)
        self.session = session
        self.settings = session.settings
        self.on_progress = on_progress
        self.on_advance = on_advance
        self._anchor: Optional[float] = None
        self._last_autosave: Optional[float] = None

    @property
    def launch(self):
        return self.session.launch

    @property
    def is_playing(self) -> bool:
        return self.session.is_playing

    @property
    def is_launching(self) -> bool:
        return self.session.launch.state.is_launching

    def effective_wpm(self) -> int:
        return self.session.launch.effective_wpm(self.session.wpm)

    def current_delay_ms(self) -> float:
        s = self.session
        return chunk_delay_ms(s.tokens, s.position, s.chunk_size, self.effective_wpm())

    # -------------------------------
    # Content
    # -------------------------------
    def load_content(self, raw_text: str, meta: Optional[ContentMeta] = None) -> int:
        count = self.session.load_content(raw_text, meta)
        self._reset_clock()
        return count

    def resume(self, raw_text: str, current_index: int, meta: Optional[ContentMeta] = None) -> int:
        """Load saved content and jump to its index without reporting progress."""
        self.load_content(raw_text, meta)
        return self.session.jump_to(current_index)

    def _reset_clock(self) -> None:
        self._anchor = None
        self._last_autosave = None

    # -------------------------------
    # Play / pause
    # -------------------------------
    def play(self) -> bool:
        if not self.session.start_playback():
            return False
        self._reset_clock()
        return True

    def pause(self) -> None:
        was_active = self.session.is_playing or self.is_launching
        self.session.stop_playback()
        self.session.launch.cancel()
        self._reset_clock()
        if was_active and self.session.position > 0:
            self.report_progress()

    def toggle(self) -> None:
        if self.session.is_empty:
            return
        if self.is_launching:
            self.cancel_launch()
        elif self.session.is_playing:
            self.pause()
        else:
            self.play()

    def restart(self) -> None:
        self.session.restart()
        self._reset_clock()

    # -------------------------------
    # Launch mode
    # -------------------------------
    def start_launch(self) -> bool:
        if self.session.is_empty:
            return False
        self.session.stop_playback()
        self._reset_clock()
        self.session.launch.start(self.session.wpm)
        return True

    def launch_from_start(self) -> bool:
        self.restart()
        return self.start_launch()

    def countdown_tick(self, timestamp: float) -> None:
        if self.session.launch.countdown_tick(timestamp):
            self.play()

    def cancel_launch(self) -> None:
        self.session.launch.cancel()
        self.session.stop_playback()
        self._reset_clock()

    # -------------------------------
    # Frame tick
    # -------------------------------
    def on_tick(self, timestamp: float) -> bool:
        """Advance when the current flash has been held long enough. Returns True on advance."""
        session = self.session
        if not session.is_playing:
            return False

        session.launch.update(timestamp)

        if self._anchor is None:
            self._anchor = timestamp
        if self._last_autosave is None:
            self._last_autosave = timestamp

        elapsed = timestamp - self._anchor
        if elapsed < self.current_delay_ms():
            self._maybe_autosave(timestamp)
            return False

        self._anchor = timestamp
        if session.advance():
            if self.on_advance is not None:
                self.on_advance(session.snapshot())
            self._maybe_autosave(timestamp)
            return True

        logger.debug("Reached end of content at index %d", session.position)
        session.stop_playback()
        session.launch.cancel()
        self._reset_clock()
        self.report_progress()
        return True

    # -------------------------------
    # Progress reporting
    # -------------------------------
    def _maybe_autosave(self, timestamp: float) -> None:
        if self._last_autosave is None:
            return
        if timestamp - self._last_autosave >= self.settings.autosave_interval_ms:
            self._last_autosave = timestamp
            self.report_progress()

    def report_progress(self) -> None:
        """Hand the current position to on_progress, if any."""
        if self.on_progress is None:
            return
        report = self.session.progress_report()
        if report is not None:
            self.on_progress(report)
