"""
PDF / EPUB -> plain text (+ headings) for the reader.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import ebooklib
from bs4 import BeautifulSoup, CData, NavigableString, Tag
from ebooklib import epub
from pypdf import PdfReader

from .session import ContentMeta, Heading
from .tokenizer import tokenize

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".pdf", ".epub"}
HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]

LINE_END_RE = re.compile(r"\r\n?")
LINE_EDGE_SPACE_RE = re.compile(r"[ \t]*\n[ \t]*")
SPACE_RUN_RE = re.compile(r"[ \t]{2,}")
BLANK_LINES_RE = re.compile(r"\n{3,}")


class ExtractionError(RuntimeError):
    pass


@dataclass
class ExtractedContent:
    text: str
    source_kind: str
    title: str = ""
    headings: List[Heading] = field(default_factory=list)

    @property
    def meta(self) -> ContentMeta:
        return ContentMeta(title=self.title, source_kind=self.source_kind, headings=tuple(self.headings))


def tidy_page_text(text: str) -> str:
    """
    Tidy extracted page or chapter text but keep paragraph breaks: unify line
    endings, trim each line, collapse space runs and cap blank lines at one.
    """
    if not text:
        return ""
    text = LINE_END_RE.sub("\n", text)
    text = LINE_EDGE_SPACE_RE.sub("\n", text)
    text = SPACE_RUN_RE.sub(" ", text)
    return BLANK_LINES_RE.sub("\n\n", text).strip()


def allowed_file(filename: str) -> bool:
    return Path(filename).suffix.lower() in ALLOWED_EXTENSIONS


def extract_text_from_pdf(path: str) -> ExtractedContent:
    try:
        reader = PdfReader(path)
    except Exception as e:
        raise ExtractionError(f"Could not open PDF: {e}") from e

    pages_text: List[str] = []
    for i, page in enumerate(reader.pages):
        try:
            txt = page.extract_text() or ""
        except Exception as e:
            logger.warning("Could not extract text from PDF page %d: %s", i + 1, e)
            txt = ""
        if txt.strip():
            pages_text.append(txt)

    text = tidy_page_text("\n\n".join(pages_text))
    if not text:
        raise ExtractionError("No extractable text found. (Scanned PDF likely needs OCR.)")

    title = ""
    metadata = getattr(reader, "metadata", None)
    if metadata is not None and metadata.title:
        title = str(metadata.title).strip()
    return ExtractedContent(text=text, source_kind="pdf", title=title)


def _epub_title(book: epub.EpubBook) -> str:
    found = book.get_metadata("DC", "title")
    if found and found[0] and found[0][0]:
        return str(found[0][0]).strip()
    return ""


def _spine_documents(book: epub.EpubBook):
    for idref, _linear in book.spine:
        item = book.get_item_with_id(idref)
        if item is None or item.get_type() != ebooklib.ITEM_DOCUMENT:
            continue
        if isinstance(item, epub.EpubNav):
            continue
        yield item


def extract_text_from_epub(path: str) -> ExtractedContent:
    try:
        book = epub.read_epub(path)
    except Exception as e:
        raise ExtractionError(f"Invalid EPUB file: {e}") from e

    parts: List[str] = []
    headings: List[Heading] = []
    token_count = 0

    for item in _spine_documents(book):
        soup = BeautifulSoup(item.get_content(), "html.parser")
        for tag in soup(["script", "style", "nav"]):
            tag.decompose()

        body = soup.body or soup
        doc_tokens = 0
        for element in body.descendants:
            if isinstance(element, Tag):
                if element.name in HEADING_TAGS:
                    heading_text = element.get_text(" ", strip=True)
                    if heading_text:
                        headings.append(Heading(
                            token_index=token_count + doc_tokens,
                            title=heading_text,
                            level=int(element.name[1]),
                        ))
            elif type(element) in (NavigableString, CData):
                doc_tokens += len(tokenize(element.strip()))

        text = tidy_page_text(body.get_text(" ", strip=True))
        if text:
            parts.append(text)
            token_count += doc_tokens

    if not parts:
        raise ExtractionError("No text found in EPUB.")

    logger.info("EPUB extracted: %d documents, %d headings", len(parts), len(headings))
    return ExtractedContent(
        text="\n\n".join(parts),
        source_kind="epub",
        title=_epub_title(book),
        headings=headings,
    )


def extract_text_from_file(path: str, filename: Optional[str] = None) -> ExtractedContent:
    ext = Path(filename or path).suffix.lower()
    if ext == ".pdf":
        return extract_text_from_pdf(path)
    if ext == ".epub":
        return extract_text_from_epub(path)
    raise ExtractionError(f"Unsupported file type: {ext} (expected .pdf or .epub)")
