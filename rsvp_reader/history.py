from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import List, Optional

from .session import ProgressReport

logger = logging.getLogger(__name__)

MAX_HISTORY_ITEMS = 20
PREVIEW_LENGTH = 100


@dataclass
class HistoryItem:
    id: str  # content id
    title: str
    source_kind: str
    current_index: int
    word_count: int = 0
    source_url: Optional[str] = None
    last_read: float = 0.0
    preview: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryItem":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            source_kind=str(data.get("source_kind", "text")),
            current_index=int(data.get("current_index", 0)),
            word_count=int(data.get("word_count", 0)),
            source_url=data.get("source_url"),
            last_read=float(data.get("last_read", 0.0)),
            preview=str(data.get("preview", "")),
        )

    @property
    def percent(self) -> int:
        if self.word_count <= 1:
            return 0
        return int(self.current_index / (self.word_count - 1) * 100)


def make_preview(text: str) -> str:
    flat = " ".join(text.split())
    if len(flat) <= PREVIEW_LENGTH:
        return flat
    return flat[:PREVIEW_LENGTH].rstrip() + "..."


class HistoryStore:
    """
    Most-recent-first reading history keyed by content id, so the same
    content loaded twice resumes from one record. Optionally backed by a
    JSON file.
    """

    def __init__(self, path: Optional[str] = None, max_items: int = MAX_HISTORY_ITEMS):
        self.path = Path(path) if path else None
        self.max_items = max_items
        self._items: List[HistoryItem] = []
        self._load()

    def _load(self) -> None:
        if self.path is None or not self.path.exists():
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict) or not isinstance(data.get("items", []), list):
                raise ValueError("expected an object with an \"items\" list")
            self._items = [HistoryItem.from_dict(d) for d in data.get("items", [])][: self.max_items]
            logger.info("Loaded %d history items from %s", len(self._items), self.path)
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("Could not read history file %s: %s", self.path, e)
            self._items = []

    def _save(self) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump({"items": [i.to_dict() for i in self._items]}, f, indent=2)
            os.replace(tmp, self.path)
        except OSError as e:
            logger.error("Could not write history file %s: %s", self.path, e)

    def save(self, report: ProgressReport, preview: str = "") -> HistoryItem:
        item = HistoryItem(
            id=report.content_id,
            title=report.title or f"Untitled ({report.word_count} words)",
            source_kind=report.source_kind,
            current_index=report.current_index,
            word_count=report.word_count,
            source_url=report.source_url,
            last_read=time.time(),
            preview=make_preview(preview),
        )
        existing = self.get(item.id)
        if existing is not None and not item.preview:
            item.preview = existing.preview
        self._items = [item] + [i for i in self._items if i.id != item.id]
        self._items = self._items[: self.max_items]
        self._save()
        logger.debug("Saved progress for %s at %d", item.id, item.current_index)
        return item

    def get(self, content_id: str) -> Optional[HistoryItem]:
        for item in self._items:
            if item.id == content_id:
                return item
        return None

    def get_by_url(self, url: str) -> Optional[HistoryItem]:
        for item in self._items:
            if item.source_url and item.source_url == url:
                return item
        return None

    def items(self) -> List[HistoryItem]:
        return list(self._items)

    def remove(self, content_id: str) -> bool:
        before = len(self._items)
        self._items = [i for i in self._items if i.id != content_id]
        removed = len(self._items) != before
        if removed:
            self._save()
        return removed

    def clear(self) -> None:
        self._items = []
        self._save()
