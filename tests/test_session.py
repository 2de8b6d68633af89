import random

import pytest

from rsvp_reader.config import ReaderSettings
from rsvp_reader.session import ContentMeta, Heading, ReaderSession
from rsvp_reader.tokenizer import content_hash

from .conftest import LONG_TEXT, SAMPLE_TOKENS


def test_load_content(session):
    assert list(session.tokens) == SAMPLE_TOKENS
    assert session.position == 0
    assert session.progress == 0
    assert not session.is_playing
    assert session.meta.title == "Pasted text (6 words)"
    assert session.content_id == content_hash(SAMPLE_TOKENS)


def test_load_replaces_everything(session):
    session.jump_to(4)
    session.start_playback()
    session.launch.start(400)
    session.load_content("Brand new text here.")
    assert session.tokens == ("Brand", "new", "text", "here.")
    assert session.position == 0
    assert session.progress == 0
    assert not session.is_playing
    assert not session.launch.state.is_launching


def test_default_titles():
    s = ReaderSession()
    s.load_content("one two", ContentMeta(source_kind="pdf"))
    assert s.meta.title == "Untitled (2 words)"
    s.load_content("one two", ContentMeta(title="Notes", source_kind="bogus"))
    assert s.meta.title == "Notes"
    assert s.meta.source_kind == "text"


def test_out_of_range_headings_dropped():
    s = ReaderSession()
    meta = ContentMeta(headings=(Heading(0, "Start"), Heading(3, "Mid", 2), Heading(9, "Gone")))
    s.load_content("a b c d e", meta)
    assert [h.title for h in s.meta.headings] == ["Start", "Mid"]


def test_progress_bounds():
    s = ReaderSession()
    s.load_content("single")
    assert s.progress == 0
    s.load_content("one two three four five")
    s.jump_to(4)
    assert s.progress == 100
    s.jump_to(2)
    assert s.progress == pytest.approx(50)


def test_advance_until_end(session):
    moves = 0
    while session.advance():
        moves += 1
    assert moves == 5
    assert session.position == 5
    assert session.progress == 100


def test_advance_in_chunks():
    s = ReaderSession()
    s.load_content("a b c d e f g h")
    s.set_chunk_size(3)
    assert s.advance() and s.position == 3
    assert s.advance() and s.position == 6
    assert not s.advance()
    assert s.position == 6
    assert s.current_chunk() == ("g", "h")


def test_chunk_size_change_resnaps():
    s = ReaderSession()
    s.load_content(" ".join(f"w{i}" for i in range(12)))
    s.jump_to(7)
    assert s.position == 7
    assert s.set_chunk_size(3)
    assert s.position == 6
    assert s.set_chunk_size(2)
    assert s.position == 6
    assert s.set_chunk_size(1)
    assert s.position == 6


@pytest.mark.parametrize("bad", [0, 4, -1, "2", None, True, 2.5])
def test_invalid_chunk_size_rejected(session, bad):
    session.set_chunk_size(2)
    assert not session.set_chunk_size(bad)
    assert session.chunk_size == 2


@pytest.mark.parametrize("value, expected", [
    (50, 150),
    (5000, 1200),
    (333.6, 334),
    ("450", 450),
])
def test_wpm_clamped(value, expected):
    s = ReaderSession()
    assert s.set_wpm(value) == expected


def test_wpm_garbage_ignored():
    s = ReaderSession(wpm=400)
    assert s.set_wpm("fast") == 400
    assert s.set_wpm(None) == 400


def test_custom_wpm_bounds():
    s = ReaderSession(ReaderSettings(min_wpm=100, max_wpm=900))
    assert s.set_wpm(1000) == 900
    assert s.set_wpm(10) == 100


def test_jump_to_clamps_and_snaps(session):
    assert session.jump_to(-5) == 0
    assert session.jump_to(99) == 5
    session.set_chunk_size(2)
    assert session.jump_to(99) == 4
    assert session.jump_to(3) == 2


def test_go_back_and_forward_default_ten():
    s = ReaderSession()
    s.load_content(LONG_TEXT)
    s.jump_to(25)
    assert s.go_back() == 15
    assert s.go_forward() == 25
    assert s.go_forward(3) == 28
    assert s.go_back(100) == 0


def test_back_sentence_from_mid_sentence(session):
    session.jump_to(3)  # "is"
    assert session.go_back_sentence() == 2  # "This"


def test_back_sentence_from_sentence_start(session):
    session.jump_to(2)
    assert session.go_back_sentence() == 0


def test_forward_sentence(session):
    assert session.go_forward_sentence() == 2
    # From inside the last sentence, clamp to the final token.
    assert session.go_forward_sentence() == 5


def test_sentence_navigation_snaps_to_chunks():
    s = ReaderSession()
    s.load_content("One two three four. Five six seven eight nine ten.")
    s.set_chunk_size(3)
    s.jump_to(9)
    assert s.go_back_sentence() == 3  # sentence starts at 4
    assert s.position % 3 == 0


def test_empty_session_is_inert():
    s = ReaderSession()
    s.load_content("  ")
    assert s.is_empty
    assert not s.advance()
    assert s.jump_to(10) == 0
    assert s.go_back() == 0
    assert s.go_forward() == 0
    assert s.go_back_sentence() == 0
    assert s.go_forward_sentence() == 0
    assert s.set_chunk_size(3)
    assert s.position == 0
    assert s.progress == 0
    assert not s.start_playback()
    assert s.progress_report() is None


def test_snapping_invariant_holds_under_random_navigation():
    rng = random.Random(1234)
    s = ReaderSession()
    s.load_content(LONG_TEXT)
    ops = [
        lambda: s.advance(),
        lambda: s.jump_to(rng.randint(-20, len(s.tokens) + 20)),
        lambda: s.go_back(rng.randint(0, 30)),
        lambda: s.go_forward(rng.randint(0, 30)),
        lambda: s.go_back_sentence(),
        lambda: s.go_forward_sentence(),
        lambda: s.set_chunk_size(rng.choice([1, 2, 3, 4])),
    ]
    for _ in range(2000):
        rng.choice(ops)()
        assert s.position % s.chunk_size == 0
        assert 0 <= s.position <= s.last_index


def test_snapshot_and_report(session):
    session.set_chunk_size(2)
    session.jump_to(2)
    snap = session.snapshot()
    assert snap.chunk == ("This", "is")
    assert snap.orp.focal == "h"
    assert snap.position == 2
    report = session.progress_report()
    assert report.current_index == 2
    assert report.word_count == 6
    assert report.content_id == session.content_id


def test_restart(session):
    session.jump_to(4)
    session.start_playback()
    session.restart()
    assert session.position == 0
    assert not session.is_playing


def test_chunks(session):
    session.set_chunk_size(3)
    assert [i for i, _ in session.chunks()] == [0, 3]


def test_reset_drops_content(session):
    session.jump_to(3)
    session.start_playback()
    session.reset()
    assert session.is_empty
    assert session.meta is None
    assert session.content_id is None
    assert session.position == 0
    assert not session.is_playing
    assert session.snapshot().chunk == ()


def test_meta_from_dict_skips_bad_headings():
    meta = ContentMeta.from_dict({
        "title": "Notes",
        "source_url": "",
        "headings": [
            {"token_index": "3", "title": "Mid", "level": 2},
            {"title": "missing index"},
            {"token_index": "x"},
            ["not", "a", "dict"],
        ],
    })
    assert meta.title == "Notes"
    assert meta.source_kind == "text"
    assert meta.source_url is None
    assert meta.headings == (Heading(3, "Mid", 2),)
    assert ContentMeta.from_dict({"headings": "oops"}).headings == ()
