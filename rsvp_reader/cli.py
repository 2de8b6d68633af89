from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, List, Optional, TextIO, Tuple

from .config import CHUNK_SIZES, DEFAULT_WPM
from .engine import PlaybackEngine
from .extract import ExtractionError, allowed_file, extract_text_from_file
from .history import HistoryStore
from .session import ContentMeta, SessionSnapshot
from .shortcuts import TerminalKeys, handle_key, parse_keys
from .ticker import FrameLoop
from .tokenizer import content_hash, tokenize

logger = logging.getLogger(__name__)

FOCAL_START = "\033[31m"
FOCAL_END = "\033[0m"
DISPLAY_WIDTH = 40

QUIT_KEYS = {"q"}
KEY_HELP = (
    "space play/pause | up/down speed | left/right 10 words | shift+left/right sentence | "
    "1-3 words per flash | r restart | l launch | q quit"
)


def format_flash(snapshot: SessionSnapshot, color: bool = True) -> str:
    """Render a flash with its focal letter at a fixed column."""
    orp = snapshot.orp
    pad = max(0, DISPLAY_WIDTH // 2 - len(orp.before))
    focal = f"{FOCAL_START}{orp.focal}{FOCAL_END}" if color else f"[{orp.focal}]"
    return " " * pad + orp.before + focal + orp.after


def load_source(source: str) -> Tuple[str, ContentMeta]:
    if source == "-":
        return sys.stdin.read(), ContentMeta(source_kind="text")
    path = Path(source)
    if allowed_file(path.name):
        extracted = extract_text_from_file(str(path))
        return extracted.text, extracted.meta
    return path.read_text(encoding="utf-8", errors="replace"), ContentMeta(title=path.stem, source_kind="text")


def play(args: argparse.Namespace, out: TextIO = sys.stdout) -> int:
    try:
        text, meta = load_source(args.source)
    except (OSError, ExtractionError) as e:
        logger.error("Could not read %s: %s", args.source, e)
        return 1

    history = HistoryStore(args.history) if args.history else None
    color = out.isatty()

    def show(snapshot: SessionSnapshot) -> None:
        out.write("\r\033[K" if color else "\n")
        out.write(format_flash(snapshot, color=color))
        out.flush()

    engine = PlaybackEngine(
        on_progress=(lambda report: history.save(report, preview=text)) if history else None,
        on_advance=show,
    )
    engine.session.set_wpm(args.wpm)
    engine.session.set_chunk_size(args.chunk_size)

    saved = history.get(content_hash(tokenize(text))) if history else None
    resumed = saved is not None and not args.restart
    if resumed:
        engine.resume(text, saved.current_index, meta)
        logger.info("Resuming %r at word %d", saved.title, engine.session.position)
    else:
        engine.load_content(text, meta)

    if engine.session.is_empty:
        logger.error("No readable words in %s", args.source)
        return 1

    started = engine.launch_from_start() if args.launch and not resumed else engine.play()
    if not started:
        return 1
    show(engine.session.snapshot())

    loop = FrameLoop(engine)
    try:
        if color and args.source != "-" and sys.stdin.isatty():
            out.write(KEY_HELP + "\n")
            with TerminalKeys() as keys:
                run_interactive(engine, loop, keys.read, show)
        else:
            loop.run()
    except KeyboardInterrupt:
        engine.pause()
    out.write("\n")
    return 0


def run_interactive(
    engine: PlaybackEngine,
    loop: FrameLoop,
    read_input: Callable[[], str],
    show: Callable[[SessionSnapshot], None],
) -> None:
    """Route key presses through the shortcut map until 'q'. Pausing keeps the session open."""
    while True:
        for key, shift in parse_keys(read_input()):
            if key in QUIT_KEYS:
                engine.pause()
                engine.report_progress()
                return
            if handle_key(engine, key, shift):
                show(engine.session.snapshot())
        loop.step()
        loop.sleep(loop.frame_interval)


def serve(args: argparse.Namespace) -> int:
    from .web import create_app

    config = {"HISTORY_PATH": args.history} if args.history else None
    app = create_app(config)
    print(f"Starting local speed reader on http://{args.host}:{args.port}")
    app.run(host=args.host, port=args.port, debug=False)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="rsvp-reader", description="RSVP speed reader")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="run the web reader")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=5000)
    p_serve.add_argument("--history", help="JSON file for reading history")
    p_serve.set_defaults(func=serve)

    p_play = sub.add_parser("play", help="read a file in the terminal")
    p_play.add_argument("source", help="text, .pdf or .epub file ('-' for stdin)")
    p_play.add_argument("--wpm", type=int, default=DEFAULT_WPM)
    p_play.add_argument("--chunk-size", type=int, choices=CHUNK_SIZES, default=1)
    p_play.add_argument("--launch", action="store_true", help="countdown and speed ramp")
    p_play.add_argument("--history", help="JSON file for resumable progress")
    p_play.add_argument("--restart", action="store_true", help="ignore saved progress")
    p_play.set_defaults(func=play)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)
