"""Peak-based BPM estimation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.signal import find_peaks


@dataclass
class PeakResult:
    bpm: float | None
    peaks: np.ndarray  # sample indices
    intervals: np.ndarray  # seconds between consecutive peaks


def estimate_bpm_peaks(
    x: np.ndarray,
    fs: float,
    t: Optional[np.ndarray] = None,
    bpm_min: float = 42.0,
    bpm_max: float = 240.0,
    min_peaks: int = 4,
    prominence: float = 0.5,
) -> PeakResult:
    """Estimate BPM from the median inter-peak interval of a band-limited pulse.

    Args:
        x: filtered pulse signal (1D array), roughly unit variance.
        fs: sampling rate (Hz).
        t: optional sample timestamps (s); intervals use them when given.
        bpm_min/bpm_max: plausible pulse range. bpm_max sets the minimum
            distance between peaks.
        min_peaks: fewer peaks than this yields bpm=None.
        prominence: minimum peak prominence in units of std(x).
    """
    x = np.asarray(x, dtype=np.float64)
    empty = np.zeros(0, dtype=np.float64)
    if x.size < 8 or fs <= 0:
        return PeakResult(None, np.zeros(0, dtype=int), empty)
    std = float(np.std(x))
    if std <= 1e-9:
        return PeakResult(None, np.zeros(0, dtype=int), empty)
    distance = max(1, int(np.floor(fs * 60.0 / bpm_max)))
    peaks, _ = find_peaks(x, distance=distance, prominence=prominence * std)
    if peaks.size < max(2, min_peaks):
        return PeakResult(None, peaks, empty)
    if t is not None and len(t) == x.size:
        intervals = np.diff(np.asarray(t, dtype=np.float64)[peaks])
    else:
        intervals = np.diff(peaks).astype(np.float64) / fs
    intervals = intervals[intervals > 0]
    if intervals.size < 1:
        return PeakResult(None, peaks, empty)
    bpm = 60.0 / float(np.median(intervals))
    if not (bpm_min <= bpm <= bpm_max):
        return PeakResult(None, peaks, intervals)
    return PeakResult(float(bpm), peaks, intervals)
