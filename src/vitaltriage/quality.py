"""Quality metrics for rPPG readings.

SNR follows the usual rPPG definition: power around the pulse fundamental
and its first harmonic against the remaining spectral power. Peak
regularity measures how evenly the detected beats are spaced.
"""

from __future__ import annotations

from enum import Enum

import numpy as np


class SignalQuality(str, Enum):
    POOR = "poor"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"


_GRADES = (SignalQuality.POOR, SignalQuality.FAIR, SignalQuality.GOOD, SignalQuality.EXCELLENT)


def snr_db(
    x: np.ndarray,
    fs: float,
    f0: float,
    half_width: float = 0.1,
) -> float:
    """Estimate SNR in dB of a pulse at ``f0`` Hz.

    Signal power is taken within ±half_width of f0 and 2*f0; noise is every
    other non-DC bin. Returns 0.0 when either side is empty.
    """
    x = np.asarray(x, dtype=np.float64)
    if x.size < 8 or fs <= 0 or f0 <= 0:
        return 0.0
    w = np.hanning(x.size)
    power = np.abs(np.fft.rfft((x - x.mean()) * w)) ** 2
    freqs = np.fft.rfftfreq(x.size, d=1.0 / fs)
    valid = freqs > 0
    sig_mask = (np.abs(freqs - f0) <= half_width) | (np.abs(freqs - 2.0 * f0) <= half_width)
    sig_mask &= valid
    noise_mask = valid & ~sig_mask
    sig = float(power[sig_mask].sum())
    noise = float(power[noise_mask].sum())
    if sig <= 0.0 or noise <= 0.0:
        return 0.0
    return 10.0 * float(np.log10(sig / noise))


def peak_regularity(intervals: np.ndarray) -> float:
    """Return 1 - coefficient of variation of inter-beat intervals, in [0, 1]."""
    iv = np.asarray(intervals, dtype=np.float64)
    if iv.size < 2:
        return 0.0
    mean = float(np.mean(iv))
    if mean <= 0:
        return 0.0
    return float(np.clip(1.0 - float(np.std(iv)) / mean, 0.0, 1.0))


def quality_score(snr: float, regularity: float) -> float:
    """Combine SNR (dB) and regularity into a 0..1 score."""
    s = float(np.clip(snr / 10.0, 0.0, 1.0))
    return (s + float(np.clip(regularity, 0.0, 1.0))) / 2.0


def grade(score: float) -> SignalQuality:
    if score >= 0.8:
        return SignalQuality.EXCELLENT
    if score >= 0.6:
        return SignalQuality.GOOD
    if score >= 0.4:
        return SignalQuality.FAIR
    return SignalQuality.POOR


def downgrade(q: SignalQuality) -> SignalQuality:
    i = _GRADES.index(q)
    return _GRADES[max(0, i - 1)]
