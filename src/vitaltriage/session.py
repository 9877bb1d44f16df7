"""Capture/analysis ticks for an rPPG session.

Two periodic jobs drive the analyzer: a fast capture tick that pulls a
frame from the caller's frame source and appends its ROI color, and a slow
analysis tick that runs :meth:`RPPGAnalyzer.analyze` on a buffer snapshot.
The timer mechanism is injected as a :class:`Scheduler`, so tests can run
on simulated time with :class:`ManualScheduler`.
"""

from __future__ import annotations

import heapq
import itertools
import logging
import threading
from typing import Callable, List, Optional, Protocol, Tuple

import numpy as np

from .analyzer import RPPGAnalyzer, RPPGReading

logger = logging.getLogger(__name__)

FrameSource = Callable[[], Optional[Tuple[float, np.ndarray]]]
ReadingCallback = Callable[[RPPGReading], None]


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def every(self, interval: float, callback: Callable[[], None]) -> Handle: ...


class _ThreadJob:
    def __init__(
        self,
        interval: float,
        callback: Callable[[], None],
        on_cancel: Optional[Callable[["_ThreadJob"], None]] = None,
    ) -> None:
        self.interval = float(interval)
        self.callback = callback
        self.on_cancel = on_cancel
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.callback()
            except Exception:
                logger.exception("periodic job failed")

    def cancel(self) -> None:
        self._stop.set()
        if self.on_cancel is not None:
            self.on_cancel(self)
        if self._thread.is_alive() and threading.current_thread() is not self._thread:
            self._thread.join(timeout=max(1.0, 2 * self.interval))


class ThreadScheduler:
    """Runs each periodic job on its own daemon thread."""

    def __init__(self) -> None:
        self._jobs: List[_ThreadJob] = []
        self._lock = threading.Lock()

    def every(self, interval: float, callback: Callable[[], None]) -> Handle:
        job = _ThreadJob(interval, callback, on_cancel=self._forget)
        with self._lock:
            self._jobs.append(job)
        job.start()
        return job

    def _forget(self, job: _ThreadJob) -> None:
        with self._lock:
            if job in self._jobs:
                self._jobs.remove(job)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def shutdown(self) -> None:
        with self._lock:
            jobs = list(self._jobs)
        for job in jobs:
            job.cancel()


class _ManualJob:
    def __init__(self, interval: float, callback: Callable[[], None]) -> None:
        self.interval = float(interval)
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Simulated-time scheduler; jobs fire only inside :meth:`advance`."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = float(start)
        self._queue: list[tuple[float, int, _ManualJob]] = []
        self._seq = itertools.count()

    def every(self, interval: float, callback: Callable[[], None]) -> Handle:
        if interval <= 0:
            raise ValueError("interval must be > 0")
        job = _ManualJob(interval, callback)
        heapq.heappush(self._queue, (self.now + job.interval, next(self._seq), job))
        return job

    def clock(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        end = self.now + float(seconds)
        while self._queue and self._queue[0][0] <= end + 1e-12:
            due, _, job = heapq.heappop(self._queue)
            if job.cancelled:
                continue
            self.now = due
            try:
                job.callback()
            except Exception:
                logger.exception("periodic job failed")
            if not job.cancelled:
                heapq.heappush(self._queue, (due + job.interval, next(self._seq), job))
        self.now = end


class RPPGSession:
    """Scoped capture + analysis ticks around one :class:`RPPGAnalyzer`.

    The frame source belongs to the caller; the session only calls it.
    ``stop()`` cancels both ticks and discards the buffered window. Use as a
    context manager to guarantee that on every exit path.
    """

    def __init__(
        self,
        analyzer: RPPGAnalyzer,
        frame_source: FrameSource,
        scheduler: Scheduler,
        on_reading: Optional[ReadingCallback] = None,
        capture_interval: float = 0.033,
        analysis_interval: float = 1.0,
    ) -> None:
        self.analyzer = analyzer
        self.frame_source = frame_source
        self.scheduler = scheduler
        self.on_reading = on_reading
        self.capture_interval = capture_interval
        self.analysis_interval = analysis_interval
        self.latest: Optional[RPPGReading] = None
        self.frames_seen = 0
        self.frames_skipped = 0
        self._handles: list[Handle] = []
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return bool(self._handles)

    def start(self) -> None:
        with self._lock:
            if self._handles:
                return
            self.latest = None
            self._handles = [
                self.scheduler.every(self.capture_interval, self.capture_tick),
                self.scheduler.every(self.analysis_interval, self.analysis_tick),
            ]
        logger.info(
            "rPPG session started (capture %.3fs, analysis %.3fs)",
            self.capture_interval,
            self.analysis_interval,
        )

    def stop(self) -> None:
        with self._lock:
            handles, self._handles = self._handles, []
        for h in handles:
            h.cancel()
        self.analyzer.clear_buffer()
        if handles:
            logger.info("rPPG session stopped")

    def __enter__(self) -> "RPPGSession":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def capture_tick(self) -> None:
        try:
            item = self.frame_source()
        except Exception:
            logger.exception("frame source failed")
            return
        self.frames_seen += 1
        if item is None:
            self.frames_skipped += 1
            return
        ts, frame = item
        roi = self.analyzer.detect_roi(frame)
        sample = self.analyzer.extract_color(frame, roi, timestamp=ts)
        if sample is None:
            self.frames_skipped += 1
            logger.debug("no ROI color for frame at %.3f", ts)
            return
        self.analyzer.add_reading(sample)

    def analysis_tick(self) -> None:
        reading = self.analyzer.analyze()
        if reading is None:
            return
        self.latest = reading
        if self.on_reading is not None:
            try:
                self.on_reading(reading)
            except Exception:
                logger.exception("reading callback failed")
