from __future__ import annotations

import numpy as np
import pytest

from vitaltriage.analyzer import RPPGAnalyzer, RPPGReading
from vitaltriage.session import ManualScheduler, RPPGSession, ThreadScheduler


def _camera(sched: ManualScheduler):
    """Frame source producing flat skin-colored frames with a 72 BPM pulse."""

    def grab():
        t = sched.now
        frame = np.empty((40, 40, 3), dtype=np.float64)
        frame[...] = (150.0, 120.0 + 2.0 * np.sin(2 * np.pi * 1.2 * t), 110.0)
        return t, frame

    return grab


def test_manual_scheduler_fires_on_simulated_time() -> None:
    sched = ManualScheduler()
    fired: list[float] = []
    handle = sched.every(0.5, lambda: fired.append(sched.now))
    sched.advance(2.0)
    assert fired == [0.5, 1.0, 1.5, 2.0]
    handle.cancel()
    sched.advance(2.0)
    assert len(fired) == 4
    assert sched.clock() == 4.0


def test_manual_scheduler_rejects_bad_interval() -> None:
    with pytest.raises(ValueError):
        ManualScheduler().every(0.0, lambda: None)


def test_session_produces_readings() -> None:
    sched = ManualScheduler()
    readings: list[RPPGReading] = []
    analyzer = RPPGAnalyzer()
    session = RPPGSession(
        analyzer, _camera(sched), sched, on_reading=readings.append, capture_interval=1 / 30.0
    )
    with session:
        assert session.running
        sched.advance(12.0)
        assert readings
        assert all(68.0 <= r.bpm <= 76.0 for r in readings)
        assert session.latest is readings[-1]
        assert session.frames_skipped == 0
    assert not session.running
    assert analyzer.buffer_progress() == 0.0


def test_no_readings_before_window_fills() -> None:
    sched = ManualScheduler()
    readings: list[RPPGReading] = []
    session = RPPGSession(
        RPPGAnalyzer(), _camera(sched), sched, on_reading=readings.append, capture_interval=1 / 30.0
    )
    session.start()
    sched.advance(5.0)
    assert readings == []
    session.stop()


def test_stop_halts_ticks() -> None:
    sched = ManualScheduler()
    session = RPPGSession(RPPGAnalyzer(), _camera(sched), sched, capture_interval=0.1)
    session.start()
    sched.advance(1.0)
    seen = session.frames_seen
    assert seen >= 9
    session.stop()
    sched.advance(1.0)
    assert session.frames_seen == seen


def test_missing_frames_are_skipped() -> None:
    sched = ManualScheduler()
    session = RPPGSession(RPPGAnalyzer(), lambda: None, sched, capture_interval=0.1)
    session.start()
    sched.advance(1.0)
    session.stop()
    assert session.frames_seen == session.frames_skipped
    assert session.latest is None


def test_callback_errors_do_not_stop_session() -> None:
    sched = ManualScheduler()

    def boom(_: RPPGReading) -> None:
        raise RuntimeError("consumer failed")

    session = RPPGSession(
        RPPGAnalyzer(), _camera(sched), sched, on_reading=boom, capture_interval=1 / 30.0
    )
    session.start()
    sched.advance(12.0)
    assert session.running
    assert session.latest is not None
    session.stop()


def test_frame_source_errors_are_logged_and_skipped() -> None:
    sched = ManualScheduler()

    def broken():
        raise OSError("camera unplugged")

    session = RPPGSession(RPPGAnalyzer(), broken, sched, capture_interval=0.1)
    session.start()
    sched.advance(1.0)
    assert session.running
    assert session.frames_seen == 0
    session.stop()


def test_thread_scheduler_forgets_cancelled_jobs() -> None:
    sched = ThreadScheduler()
    handles = [sched.every(60.0, lambda: None) for _ in range(3)]
    assert len(sched) == 3
    handles[0].cancel()
    assert len(sched) == 2
    handles[0].cancel()
    assert len(sched) == 2
    sched.shutdown()
    assert len(sched) == 0


def test_restarting_a_session_does_not_accumulate_jobs() -> None:
    sched = ThreadScheduler()
    session = RPPGSession(
        RPPGAnalyzer(),
        lambda: None,
        sched,
        capture_interval=60.0,
        analysis_interval=60.0,
    )
    try:
        for _ in range(5):
            session.start()
            assert len(sched) == 2
            session.stop()
            assert len(sched) == 0
    finally:
        sched.shutdown()
