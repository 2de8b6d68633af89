from rsvp_reader.config import ReaderSettings
from rsvp_reader.engine import PlaybackEngine
from rsvp_reader.session import ReaderSession

from .conftest import LONG_TEXT, SAMPLE_TEXT


def run_ticks(engine, start=0.0, step=1000.0, limit=100):
    t = start
    for _ in range(limit):
        if not engine.is_playing:
            break
        engine.on_tick(t)
        t += step
    return t


def test_plays_to_completion_with_six_advances(engine, monkeypatch):
    calls = []
    advance = engine.session.advance

    def counting_advance():
        calls.append(engine.session.position)
        return advance()

    monkeypatch.setattr(engine.session, "advance", counting_advance)
    engine.session.set_wpm(300)
    assert engine.play()
    run_ticks(engine)
    assert len(calls) == 6
    assert not engine.is_playing
    assert engine.session.position == 5


def test_play_requires_content():
    engine = PlaybackEngine()
    assert not engine.play()
    assert not engine.is_playing


def test_holds_until_delay_elapsed(engine):
    engine.session.set_wpm(300)  # 200 ms per word, "Hello" has no pause
    engine.play()
    assert not engine.on_tick(1000)
    assert not engine.on_tick(1150)
    assert engine.on_tick(1200)
    assert engine.session.position == 1
    # "world." holds for 1.5x
    assert not engine.on_tick(1450)
    assert engine.on_tick(1500)
    assert engine.session.position == 2


def test_irregular_frames_do_not_drift(engine):
    engine.session.set_wpm(300)
    engine.play()
    engine.on_tick(0)
    # A long stall advances once, not once per missed frame.
    assert engine.on_tick(5000)
    assert engine.session.position == 1
    assert not engine.on_tick(5100)


def test_live_wpm_change_applies_next_tick(engine):
    engine.session.set_wpm(150)  # 400 ms
    engine.play()
    engine.on_tick(0)
    assert not engine.on_tick(300)
    engine.session.set_wpm(600)  # 100 ms
    assert engine.on_tick(301)


def test_live_chunk_size_change(engine):
    engine.session.set_wpm(300)
    engine.play()
    engine.on_tick(0)
    engine.session.set_chunk_size(3)
    # Chunk ("Hello", "world.", "This") -> base 600, "This" follows a sentence end.
    assert not engine.on_tick(650)
    assert engine.on_tick(700)
    assert engine.session.position == 3


def test_pause_halts_and_reports(engine, reports):
    engine.session.set_wpm(300)
    engine.play()
    engine.on_tick(0)
    engine.on_tick(1000)
    engine.pause()
    assert not engine.is_playing
    assert not engine.on_tick(5000)
    assert engine.session.position == 1
    assert len(reports) == 1
    assert reports[0].current_index == 1


def test_pause_at_start_does_not_report(engine, reports):
    engine.play()
    engine.pause()
    assert reports == []


def test_end_of_content_reports(engine, reports):
    engine.play()
    run_ticks(engine)
    assert reports[-1].current_index == 5


def test_toggle(engine):
    engine.toggle()
    assert engine.is_playing
    engine.toggle()
    assert not engine.is_playing


def test_toggle_on_empty_is_noop():
    engine = PlaybackEngine()
    engine.toggle()
    assert not engine.is_playing


def test_toggle_cancels_launch(engine):
    engine.start_launch()
    engine.toggle()
    assert not engine.is_launching
    assert not engine.is_playing


def test_launch_needs_content():
    engine = PlaybackEngine()
    assert not engine.start_launch()
    assert not engine.is_launching


def test_launch_countdown_and_ramp():
    engine = PlaybackEngine()
    engine.load_content(LONG_TEXT)
    engine.session.set_wpm(600)
    assert engine.start_launch()
    assert not engine.on_tick(500)  # counting down, not playing
    engine.countdown_tick(1000)
    engine.countdown_tick(2000)
    assert not engine.is_playing
    engine.countdown_tick(3000)
    assert engine.is_playing
    assert engine.effective_wpm() == 150

    engine.on_tick(3000 + 6000)
    assert engine.launch.state.current_wpm == 488
    assert engine.effective_wpm() == 488

    engine.on_tick(3000 + 12000)
    assert not engine.is_launching
    assert engine.is_playing
    assert engine.effective_wpm() == 600


def test_launch_from_start_resets_position():
    engine = PlaybackEngine()
    engine.load_content(LONG_TEXT)
    engine.session.jump_to(50)
    assert engine.launch_from_start()
    assert engine.session.position == 0
    assert engine.launch.state.countdown == 3


def test_cancel_launch_during_ramp():
    engine = PlaybackEngine()
    engine.load_content(LONG_TEXT)
    engine.start_launch()
    for t in (1000, 2000, 3000):
        engine.countdown_tick(t)
    engine.on_tick(4000)
    engine.cancel_launch()
    assert not engine.is_playing
    assert not engine.is_launching
    position = engine.session.position
    assert not engine.on_tick(20000)
    assert engine.session.position == position


def test_reaching_end_clears_launch(engine):
    engine.start_launch()
    for t in (1000, 2000, 3000):
        engine.countdown_tick(t)
    run_ticks(engine, start=3000)
    assert not engine.is_playing
    assert not engine.is_launching


def test_periodic_autosave():
    reports = []
    session = ReaderSession(ReaderSettings(autosave_interval_ms=1000))
    engine = PlaybackEngine(session, on_progress=reports.append)
    engine.load_content(LONG_TEXT)
    engine.session.set_wpm(150)
    engine.play()
    for t in range(0, 3001, 100):
        engine.on_tick(t)
    assert len(reports) == 3
    assert [r.current_index for r in reports] == sorted(r.current_index for r in reports)


def test_resume_jumps_without_reporting(reports):
    engine = PlaybackEngine(on_progress=reports.append)
    engine.session.set_chunk_size(2)
    engine.resume(LONG_TEXT, 37)
    assert engine.session.position == 36
    assert not engine.is_playing
    assert reports == []


def test_load_during_playback_resets(engine):
    engine.play()
    engine.on_tick(0)
    engine.on_tick(1000)
    engine.load_content("Fresh words.")
    assert not engine.is_playing
    assert engine.session.position == 0
    assert engine.session.tokens == ("Fresh", "words.")


def test_on_advance_receives_snapshots():
    seen = []
    engine = PlaybackEngine(on_advance=seen.append)
    engine.load_content(SAMPLE_TEXT)
    engine.play()
    run_ticks(engine)
    assert [s.position for s in seen] == [1, 2, 3, 4, 5]
    assert seen[0].chunk == ("world.",)


def test_restart(engine):
    engine.play()
    run_ticks(engine)
    engine.restart()
    assert engine.session.position == 0
    assert engine.play()
