from __future__ import annotations

import pytest
from ebooklib import epub

from rsvp_reader.engine import PlaybackEngine
from rsvp_reader.session import ReaderSession

SAMPLE_TEXT = "Hello world. This is a test."
SAMPLE_TOKENS = ["Hello", "world.", "This", "is", "a", "test."]

LONG_TEXT = " ".join(
    f"Sentence number {i} has a few plain words in it." for i in range(40)
)


class FakeClock:
    """Seconds-based clock whose sleep() just moves time forward."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session():
    s = ReaderSession()
    s.load_content(SAMPLE_TEXT)
    return s


@pytest.fixture
def reports():
    return []


@pytest.fixture
def engine(reports):
    e = PlaybackEngine(on_progress=reports.append)
    e.load_content(SAMPLE_TEXT)
    return e


def build_epub(path) -> str:
    book = epub.EpubBook()
    book.set_identifier("rsvp-test-book")
    book.set_title("Sample Book")
    book.set_language("en")

    c1 = epub.EpubHtml(title="Chapter One", file_name="chap_01.xhtml", lang="en")
    c1.content = "<h1>Chapter One</h1><p>It was a dark night. The end came.</p>"
    c2 = epub.EpubHtml(title="Part Two", file_name="chap_02.xhtml", lang="en")
    c2.content = "<h2>Part Two</h2><p>Morning arrived.</p><script>var x = 1;</script>"
    book.add_item(c1)
    book.add_item(c2)

    book.toc = (
        epub.Link("chap_01.xhtml", "Chapter One", "chap1"),
        epub.Link("chap_02.xhtml", "Part Two", "chap2"),
    )
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = [c1, c2]

    epub.write_epub(str(path), book)
    return str(path)


@pytest.fixture
def epub_path(tmp_path):
    return build_epub(tmp_path / "sample.epub")
