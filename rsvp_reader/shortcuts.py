"""
Keyboard map for the reader:
- space: play/pause (cancels a launch in progress)
- up / down: +/- 25 WPM
- left / right: back / forward 10 words
- shift+left / shift+right: previous / next sentence
- r: restart, l: launch from start
- 1 / 2 / 3: words per flash
- escape: pause

The terminal player feeds raw input through `parse_keys`; the web page binds
the same map in its own keydown handler.
"""

from __future__ import annotations

import os
import select
import sys
from typing import List, Optional, TextIO, Tuple

from .config import WPM_STEP
from .engine import PlaybackEngine

NAVIGATION_KEYS = {"left", "right", "r", "l"}

KEY_ALIASES = {
    "arrowup": "up",
    "arrowdown": "down",
    "arrowleft": "left",
    "arrowright": "right",
    "esc": "escape",
}

# ANSI/xterm sequences, longest first so "\x1b[1;2C" wins over "\x1b".
ESCAPE_SEQUENCES = [
    ("\x1b[1;2A", ("up", True)),
    ("\x1b[1;2B", ("down", True)),
    ("\x1b[1;2C", ("right", True)),
    ("\x1b[1;2D", ("left", True)),
    ("\x1b[A", ("up", False)),
    ("\x1b[B", ("down", False)),
    ("\x1b[C", ("right", False)),
    ("\x1b[D", ("left", False)),
    ("\x1b", ("escape", False)),
]

KeyPress = Tuple[str, bool]


def normalize_key(key: Optional[str]) -> str:
    if key == " ":
        return "space"
    key = (key or "").strip().lower()
    return KEY_ALIASES.get(key, key)


def parse_keys(data: str) -> List[KeyPress]:
    """Split raw terminal input into (key, shift) presses."""
    presses: List[KeyPress] = []
    i = 0
    while i < len(data):
        if data[i] == "\x1b":
            for seq, press in ESCAPE_SEQUENCES:
                if data.startswith(seq, i):
                    presses.append(press)
                    i += len(seq)
                    break
            continue
        presses.append((normalize_key(data[i]), False))
        i += 1
    return presses


def handle_key(engine: PlaybackEngine, key: str, shift: bool = False) -> bool:
    """Apply one key press. Returns False for keys with no binding."""
    key = normalize_key(key)
    session = engine.session

    if key in NAVIGATION_KEYS and session.is_empty:
        return True

    if key == "space":
        engine.toggle()
    elif key == "escape":
        engine.pause()
    elif key == "up":
        session.set_wpm(session.wpm + WPM_STEP)
    elif key == "down":
        session.set_wpm(session.wpm - WPM_STEP)
    elif key == "left":
        if shift:
            session.go_back_sentence()
        else:
            session.go_back()
    elif key == "right":
        if shift:
            session.go_forward_sentence()
        else:
            session.go_forward()
    elif key == "r":
        engine.restart()
    elif key == "l":
        engine.launch_from_start()
    elif key in ("1", "2", "3"):
        session.set_chunk_size(int(key))
    else:
        return False
    return True


class TerminalKeys:
    """
    Non-blocking key reader for a POSIX terminal. Puts the terminal in cbreak
    mode for the duration of the `with` block and restores it afterwards.
    """

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdin
        self.fd = self.stream.fileno()
        self._saved = None

    def __enter__(self) -> "TerminalKeys":
        import termios
        import tty

        self._saved = termios.tcgetattr(self.fd)
        tty.setcbreak(self.fd)
        return self

    def __exit__(self, *exc) -> None:
        import termios

        termios.tcsetattr(self.fd, termios.TCSADRAIN, self._saved)

    def key_pressed(self) -> bool:
        return bool(select.select([self.fd], [], [], 0)[0])

    def read(self) -> str:
        data = b""
        while self.key_pressed():
            chunk = os.read(self.fd, 64)
            if not chunk:
                break
            data += chunk
        return data.decode("utf-8", errors="ignore")
