"""
Local web app (Flask) for RSVP speed reading.

- Paste text or upload PDF/EPUB
- Server-side tokenization, ORP focal letters and per-flash delays
- Words-per-flash (1-3) and WPM controls
- Reading history with resumable positions
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional

from flask import Flask, current_app, jsonify, render_template_string, request
from werkzeug.exceptions import RequestEntityTooLarge

from .config import CHUNK_SIZES, DEFAULT_APP_CONFIG, DEFAULT_SETTINGS, WPM_STEP
from .extract import ExtractionError, allowed_file, extract_text_from_file
from .history import HistoryStore
from .orp import calculate_chunk_orp
from .session import ContentMeta, ProgressReport, ReaderSession
from .timing import chunk_delay_ms

logger = logging.getLogger(__name__)


def _parse_wpm(value: Any, default: int) -> int:
    # Same rounding as ReaderSession.set_wpm.
    try:
        return int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return default


def _parse_chunk_size(value: Any) -> int:
    try:
        size = int(value)
    except (TypeError, ValueError):
        return 1
    return size if size in CHUNK_SIZES else 1


def build_payload(session: ReaderSession) -> dict:
    tokens = session.tokens
    meta = session.meta or ContentMeta()
    chunks = []
    for index, chunk in session.chunks():
        orp = calculate_chunk_orp(chunk)
        chunks.append({
            "index": index,
            "tokens": list(chunk),
            "text": orp.text,
            **orp.to_dict(),
            "delay_ms": round(chunk_delay_ms(tokens, index, session.chunk_size, session.wpm), 1),
        })
    return {
        "ok": True,
        "title": meta.title,
        "source_kind": meta.source_kind,
        "source_url": meta.source_url,
        "content_id": session.content_id,
        "tokens": list(tokens),
        "headings": [h.to_dict() for h in meta.headings],
        "word_count": len(tokens),
        "wpm": session.wpm,
        "chunk_size": session.chunk_size,
        "chunks": chunks,
    }


def load_session(text: str, meta: ContentMeta, wpm: Any, chunk_size: Any) -> ReaderSession:
    session = ReaderSession(DEFAULT_SETTINGS)
    session.set_wpm(_parse_wpm(wpm, current_app.config["DEFAULT_WPM"]))
    session.load_content(text, meta)
    session.set_chunk_size(_parse_chunk_size(chunk_size))
    return session


def error(message: str, status: int):
    return jsonify({"ok": False, "error": message}), status


HTML_PAGE = r"""
<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8" />
  <title>RSVP Speed Reader</title>
  <meta name="viewport" content="width=device-width, initial-scale=1" />
  <style>
    :root { --bg: #0f1115; --panel: #181c24; --text: #e8edf5; --muted: #9fb0c8; --focal: #ef4444; }
    body { margin: 0; background: var(--bg); color: var(--text); font-family: Inter, system-ui, sans-serif; }
    main { max-width: 900px; margin: 0 auto; padding: 24px; }
    .panel { background: var(--panel); border-radius: 10px; padding: 16px; margin-bottom: 16px; }
    textarea { width: 100%; min-height: 120px; background: #10131a; color: var(--text); border: 1px solid #2e3645; }
    #word { font-family: "Roboto Mono", Menlo, Consolas, monospace; font-size: 48px; text-align: center; min-height: 72px; white-space: pre; }
    #word .focal { color: var(--focal); }
    #status { color: var(--muted); font-size: 13px; }
  </style>
</head>
<body>
<main>
  <div class="panel">
    <textarea id="textInput" placeholder="Paste text here"></textarea>
    <p>
      <button id="loadText">Load text</button>
      <input type="file" id="fileInput" accept=".pdf,.epub" />
      <button id="loadFile">Load file</button>
    </p>
    <p>
      WPM <input type="number" id="wpm" value="{{ wpm }}" min="{{ min_wpm }}" max="{{ max_wpm }}" step="25" />
      Words per flash
      <select id="chunkSize"><option>1</option><option>2</option><option>3</option></select>
    </p>
  </div>
  <div class="panel">
    <div id="word"></div>
    <p><button id="play">Play</button> <span id="status">No content loaded.</span></p>
  </div>
</main>
<script>
(() => {
  const els = {
    text: document.getElementById("textInput"), file: document.getElementById("fileInput"),
    wpm: document.getElementById("wpm"), chunk: document.getElementById("chunkSize"),
    word: document.getElementById("word"), play: document.getElementById("play"),
    status: document.getElementById("status"),
  };
  const state = { payload: null, index: 0, playing: false, timer: null, wpm: {{ wpm }} };
  const MIN_WPM = {{ min_wpm }}, MAX_WPM = {{ max_wpm }}, WPM_STEP = {{ wpm_step }}, SKIP_WORDS = {{ skip_words }};
  const SENTENCE_END = /[.!?]["'”’]?$/;

  function escapeHtml(s) {
    return (s ?? "").replaceAll("&", "&amp;").replaceAll("<", "&lt;").replaceAll(">", "&gt;");
  }

  function render() {
    const chunks = state.payload ? state.payload.chunks : [];
    if (!chunks.length) { els.word.innerHTML = ""; return; }
    const c = chunks[state.index];
    els.word.innerHTML = `${escapeHtml(c.before)}<span class="focal">${escapeHtml(c.focal)}</span>${escapeHtml(c.after)}`;
    els.status.textContent = `${state.payload.title} | ${state.index + 1} / ${chunks.length}`;
  }

  function schedule() {
    if (!state.playing) return;
    const chunks = state.payload.chunks;
    state.timer = setTimeout(() => {
      if (state.index < chunks.length - 1) { state.index += 1; render(); schedule(); }
      else { setPlaying(false); saveProgress(); }
    }, chunks[state.index].delay_ms * state.payload.wpm / state.wpm);
  }

  // Last chunk starting at or before tokenIndex.
  function chunkAt(tokenIndex) {
    const chunks = state.payload.chunks;
    let i = 0;
    while (i + 1 < chunks.length && chunks[i + 1].index <= tokenIndex) i += 1;
    return i;
  }

  function jumpTo(tokenIndex) {
    clearTimeout(state.timer);
    state.index = chunkAt(Math.max(0, tokenIndex));
    render();
    if (state.playing) schedule();
  }

  function sentenceStart(back) {
    const tokens = state.payload.tokens;
    let i = state.payload.chunks[state.index].index;
    if (back) {
      i -= 1;
      if (i >= 0 && SENTENCE_END.test(tokens[i])) i -= 1;
      while (i >= 0 && !SENTENCE_END.test(tokens[i])) i -= 1;
      return i + 1;
    }
    while (i < tokens.length && !SENTENCE_END.test(tokens[i])) i += 1;
    return i + 1;
  }

  function setWpm(value) {
    state.wpm = Math.min(MAX_WPM, Math.max(MIN_WPM, Math.round(Number(value) || state.wpm)));
    els.wpm.value = state.wpm;
  }

  function setPlaying(on) {
    state.playing = !!on && !!state.payload && state.payload.chunks.length > 0;
    els.play.textContent = state.playing ? "Pause" : "Play";
    clearTimeout(state.timer);
    if (state.playing) schedule(); else saveProgress();
  }

  async function saveProgress() {
    if (!state.payload || !state.payload.content_id) return;
    await fetch("/api/progress", {
      method: "POST", headers: { "Content-Type": "application/json" },
      body: JSON.stringify({
        content_id: state.payload.content_id, title: state.payload.title,
        source_kind: state.payload.source_kind, word_count: state.payload.word_count,
        current_index: state.payload.chunks[state.index].index,
      }),
    });
  }

  async function accept(res) {
    const data = await res.json();
    if (!res.ok || !data.ok) throw new Error(data.error || "Load failed");
    setPlaying(false);
    state.payload = data; state.index = 0; state.wpm = data.wpm;
    const saved = await fetch(`/api/progress/${data.content_id}`);
    if (saved.ok) {
      const item = await saved.json();
      state.index = chunkAt(item.current_index);
    }
    render();
  }

  document.getElementById("loadText").addEventListener("click", async () => {
    try {
      await accept(await fetch("/api/text", {
        method: "POST", headers: { "Content-Type": "application/json" },
        body: JSON.stringify({ text: els.text.value, wpm: els.wpm.value, chunk_size: els.chunk.value }),
      }));
    } catch (err) { els.status.textContent = `Load failed: ${err.message || err}`; }
  });

  document.getElementById("loadFile").addEventListener("click", async () => {
    const file = els.file.files && els.file.files[0];
    if (!file) { els.status.textContent = "Choose a PDF or EPUB first."; return; }
    const form = new FormData();
    form.append("file", file); form.append("wpm", els.wpm.value); form.append("chunk_size", els.chunk.value);
    try { await accept(await fetch("/api/extract", { method: "POST", body: form })); }
    catch (err) { els.status.textContent = `Load failed: ${err.message || err}`; }
  });

  els.play.addEventListener("click", () => setPlaying(!state.playing));
  els.wpm.addEventListener("change", () => setWpm(els.wpm.value));

  // Chunk size and launch keys are handled by the terminal player only.
  window.addEventListener("keydown", (e) => {
    if (["INPUT", "TEXTAREA", "SELECT", "BUTTON"].includes(e.target.tagName)) return;
    if (!state.payload || !state.payload.chunks.length) return;
    const at = state.payload.chunks[state.index].index;
    if (e.key === " ") setPlaying(!state.playing);
    else if (e.key === "Escape") setPlaying(false);
    else if (e.key === "ArrowUp") setWpm(state.wpm + WPM_STEP);
    else if (e.key === "ArrowDown") setWpm(state.wpm - WPM_STEP);
    else if (e.key === "ArrowLeft") jumpTo(e.shiftKey ? sentenceStart(true) : at - SKIP_WORDS);
    else if (e.key === "ArrowRight") jumpTo(e.shiftKey ? sentenceStart(false) : at + SKIP_WORDS);
    else if (e.key === "r" || e.key === "R") { setPlaying(false); jumpTo(0); }
    else return;
    e.preventDefault();
  });
})();
</script>
</body>
</html>
"""


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config.from_mapping(DEFAULT_APP_CONFIG)
    app.config.from_prefixed_env("RSVP")
    if config:
        app.config.from_mapping(config)

    app.extensions["rsvp_history"] = HistoryStore(
        app.config.get("HISTORY_PATH"),
        max_items=int(app.config["HISTORY_MAX_ITEMS"]),
    )

    def history() -> HistoryStore:
        return app.extensions["rsvp_history"]

    @app.errorhandler(RequestEntityTooLarge)
    def too_large(_e):
        return error("File too large", 413)

    @app.route("/", methods=["GET"])
    def index():
        return render_template_string(
            HTML_PAGE,
            wpm=app.config["DEFAULT_WPM"],
            min_wpm=DEFAULT_SETTINGS.min_wpm,
            max_wpm=DEFAULT_SETTINGS.max_wpm,
            wpm_step=WPM_STEP,
            skip_words=DEFAULT_SETTINGS.skip_words,
        )

    @app.route("/api/text", methods=["POST"])
    def api_text():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        text = data.get("text")
        if not isinstance(text, str) or not text.strip():
            return error("No text provided", 400)

        meta = ContentMeta.from_dict(data)
        session = load_session(text, meta, data.get("wpm"), data.get("chunk_size"))
        if session.is_empty:
            return error("No readable words in text", 400)
        return jsonify(build_payload(session))

    @app.route("/api/extract", methods=["POST"])
    def api_extract():
        if "file" not in request.files:
            return error("No file uploaded", 400)

        f = request.files["file"]
        if not f or not f.filename:
            return error("Missing file", 400)

        filename = f.filename
        if not allowed_file(filename):
            return error("Unsupported file type (use .pdf or .epub)", 400)

        suffix = Path(filename).suffix.lower()
        with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
            temp_path = tmp.name
            f.save(tmp)

        try:
            extracted = extract_text_from_file(temp_path, filename)
        except ExtractionError as e:
            logger.info("Extraction failed for %s: %s", filename, e)
            return error(str(e), 400)
        except Exception as e:
            logger.exception("Unexpected error extracting %s", filename)
            return error(str(e), 500)
        finally:
            try:
                os.unlink(temp_path)
            except OSError:
                logger.warning("Could not remove temp file %s", temp_path)

        meta = extracted.meta
        if not meta.title:
            meta = ContentMeta(title=Path(filename).stem, source_kind=meta.source_kind, headings=meta.headings)
        session = load_session(extracted.text, meta, request.form.get("wpm"), request.form.get("chunk_size"))
        payload = build_payload(session)
        payload["filename"] = filename
        return jsonify(payload)

    @app.route("/api/progress", methods=["POST"])
    def api_save_progress():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        content_id = data.get("content_id")
        if not isinstance(content_id, str) or not content_id:
            return error("Missing content_id", 400)
        try:
            report = ProgressReport(
                content_id=content_id,
                title=str(data.get("title") or ""),
                source_kind=str(data.get("source_kind") or "text"),
                current_index=max(0, int(data.get("current_index", 0))),
                source_url=data.get("source_url"),
                word_count=max(0, int(data.get("word_count", 0))),
            )
        except (TypeError, ValueError, OverflowError):
            return error("current_index and word_count must be integers", 400)
        item = history().save(report, preview=str(data.get("preview") or ""))
        return jsonify({"ok": True, "item": item.to_dict()})

    @app.route("/api/progress/<content_id>", methods=["GET"])
    def api_get_progress(content_id: str):
        item = history().get(content_id)
        if item is None:
            return error("Not found", 404)
        return jsonify(item.to_dict())

    @app.route("/api/history", methods=["GET"])
    def api_history():
        return jsonify({
            "ok": True,
            "items": [dict(i.to_dict(), percent=i.percent) for i in history().items()],
        })

    @app.route("/api/history/<content_id>", methods=["DELETE"])
    def api_delete_history(content_id: str):
        if not history().remove(content_id):
            return error("Not found", 404)
        return jsonify({"ok": True})

    return app
