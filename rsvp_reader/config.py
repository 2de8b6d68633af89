from __future__ import annotations

from dataclasses import dataclass

# --- Reader defaults ---
MIN_WPM = 150
MAX_WPM = 1200
DEFAULT_WPM = 300
WPM_STEP = 25

CHUNK_SIZES = (1, 2, 3)
DEFAULT_SKIP_WORDS = 10

RAMP_START_WPM = 150
RAMP_DURATION_MS = 12000  # 12 seconds to reach target speed
COUNTDOWN_FROM = 3
COUNTDOWN_TICK_MS = 1000

AUTOSAVE_INTERVAL_MS = 10000

# --- Web app defaults (Flask app.config keys) ---
DEFAULT_APP_CONFIG = {
    "MAX_CONTENT_LENGTH": 10 * 1024 * 1024,  # 10MB uploads
    "HISTORY_PATH": None,
    "HISTORY_MAX_ITEMS": 20,
    "DEFAULT_WPM": DEFAULT_WPM,
}


@dataclass(frozen=True)
class ReaderSettings:
    """Tunables shared by the session, launch controller and engine."""

    min_wpm: int = MIN_WPM
    max_wpm: int = MAX_WPM
    default_wpm: int = DEFAULT_WPM
    skip_words: int = DEFAULT_SKIP_WORDS
    ramp_start_wpm: int = RAMP_START_WPM
    ramp_duration_ms: int = RAMP_DURATION_MS
    countdown_from: int = COUNTDOWN_FROM
    autosave_interval_ms: int = AUTOSAVE_INTERVAL_MS

    def clamp_wpm(self, wpm: int) -> int:
        return max(self.min_wpm, min(self.max_wpm, wpm))


DEFAULT_SETTINGS = ReaderSettings()
