"""rPPG analyzer: rolling color window to heart-rate readings.

The green channel carries most of the blood-volume signal, so the pipeline
is: detrend + normalize green -> zero-phase band-pass to the pulse range ->
peak picking -> median inter-beat interval. SNR and beat regularity grade
the reading. Missing faces, bad lighting and motion only degrade or
suppress output; nothing here raises on bad input.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Optional

import numpy as np

from .bpm import estimate_bpm_peaks
from .buffer import ColorSample, SignalBuffer
from .config import AnalyzerConfig
from .preprocess import bandpass, detrend_normalize
from .quality import SignalQuality, downgrade, grade, peak_regularity, quality_score, snr_db
from .roi import ROI, detect_roi, mean_rgb

logger = logging.getLogger(__name__)


class Lighting(str, Enum):
    TOO_DARK = "too_dark"
    TOO_BRIGHT = "too_bright"
    GOOD = "good"


@dataclass(frozen=True)
class RPPGReading:
    bpm: float
    snr: float  # dB
    quality: SignalQuality
    timestamp: float
    confidence: float = 0.0
    motion_detected: bool = False
    lighting: Lighting = Lighting.GOOD


class RPPGAnalyzer:
    """Owns a :class:`SignalBuffer` and derives readings from it."""

    def __init__(self, cfg: AnalyzerConfig | None = None) -> None:
        self.cfg = cfg or AnalyzerConfig()
        self.buffer = SignalBuffer(self.cfg.capacity)
        # Motion flags aligned with buffer contents (same maxlen)
        self._motion: Deque[bool] = deque(maxlen=self.cfg.capacity)
        self._motion_lock = threading.Lock()

    # -- capture side -------------------------------------------------

    def add_reading(self, sample: ColorSample) -> None:
        s = ColorSample.clamped(sample.r, sample.g, sample.b, sample.timestamp)
        prev = self.buffer.last()
        moved = prev is not None and self.detect_movement(prev, s)
        self.buffer.append(s)
        with self._motion_lock:
            self._motion.append(moved)

    def buffer_progress(self) -> float:
        return min(1.0, self.buffer.progress())

    @staticmethod
    def detect_roi(frame: object) -> Optional[ROI]:
        return detect_roi(frame)

    @staticmethod
    def extract_color(
        frame: object, roi: Optional[ROI], timestamp: float | None = None
    ) -> Optional[ColorSample]:
        rgb = mean_rgb(frame, roi)
        if rgb is None:
            return None
        ts = time.time() if timestamp is None else timestamp
        return ColorSample.clamped(rgb[0], rgb[1], rgb[2], ts)

    def assess_lighting(self, sample: ColorSample) -> Lighting:
        brightness = sample.luminance
        if brightness < self.cfg.dark_threshold:
            return Lighting.TOO_DARK
        if brightness > self.cfg.bright_threshold:
            return Lighting.TOO_BRIGHT
        return Lighting.GOOD

    def detect_movement(self, prev: ColorSample, curr: ColorSample) -> bool:
        total = abs(curr.r - prev.r) + abs(curr.g - prev.g) + abs(curr.b - prev.b)
        return total > self.cfg.motion_threshold

    # -- analysis side ------------------------------------------------

    def _sampling_rate(self, t: np.ndarray) -> float:
        if t.size >= 2:
            d = np.diff(t)
            d = d[d > 0]
            if d.size > 0:
                fs = 1.0 / float(np.median(d))
                if np.isfinite(fs) and fs > 0:
                    return fs
        return self.cfg.fs

    def analyze(self, timestamp: float | None = None) -> Optional[RPPGReading]:
        """Estimate heart rate from the current window.

        Returns None while the buffer is below ``ready_fraction`` of capacity
        or when too few beats are found for a stable period.
        """
        cfg = self.cfg
        samples = self.buffer.snapshot()
        with self._motion_lock:
            motion = list(self._motion)
        if len(samples) / float(cfg.capacity) < cfg.ready_fraction:
            return None
        t = np.array([s.timestamp for s in samples], dtype=np.float64)
        g = np.array([s.g for s in samples], dtype=np.float64)
        fs = self._sampling_rate(t)
        x = detrend_normalize(g)
        if not np.any(x):
            logger.debug("flat green channel, no reading")
            return None
        fmin, fmax = cfg.bpm_min / 60.0, min(cfg.bpm_max / 60.0, 0.45 * fs)
        y = bandpass(x, fs, fmin, fmax, order=cfg.filter_order, zero_phase=True)
        pr = estimate_bpm_peaks(
            y, fs=fs, t=t, bpm_min=cfg.bpm_min, bpm_max=cfg.bpm_max, min_peaks=cfg.min_peaks
        )
        if pr.bpm is None:
            logger.debug("insufficient peaks (%d), no reading", pr.peaks.size)
            return None
        snr = snr_db(x, fs, pr.bpm / 60.0)
        score = quality_score(snr, peak_regularity(pr.intervals))
        quality = grade(score)
        moved_share = (sum(motion) / float(len(motion))) if motion else 0.0
        moved = moved_share > cfg.motion_fraction
        if moved:
            quality = downgrade(quality)
        recent = samples[-max(1, int(fs)) :]
        avg = ColorSample(
            float(np.mean([s.r for s in recent])),
            float(np.mean([s.g for s in recent])),
            float(np.mean([s.b for s in recent])),
            samples[-1].timestamp,
        )
        return RPPGReading(
            bpm=round(pr.bpm, 1),
            snr=float(snr),
            quality=quality,
            timestamp=time.time() if timestamp is None else timestamp,
            confidence=float(score),
            motion_detected=moved,
            lighting=self.assess_lighting(avg),
        )

    def latest_signal(self, seconds: float = 2.0) -> list[float]:
        """Detrended, normalized green tail for display; empty if < 1 s buffered."""
        samples = self.buffer.snapshot()
        if len(samples) < int(self.cfg.fs):
            return []
        n = max(2, int(seconds * self.cfg.fs))
        g = np.array([s.g for s in samples[-n:]], dtype=np.float64)
        return detrend_normalize(g).tolist()

    def clear_buffer(self) -> None:
        self.buffer.clear()
        with self._motion_lock:
            self._motion.clear()

    reset = clear_buffer
