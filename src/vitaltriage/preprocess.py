"""Signal preprocessing for the green-channel pulse series."""

from __future__ import annotations

import numpy as np
from scipy.signal import butter, detrend, filtfilt, lfilter


def detrend_normalize(x: np.ndarray) -> np.ndarray:
    """Remove the linear trend and scale to zero mean, unit variance.

    A flat input returns zeros.
    """
    x = np.asarray(x, dtype=np.float64)
    if x.size < 2:
        return np.zeros_like(x)
    y = detrend(x, type="linear")
    std = float(np.std(y))
    if std <= 1e-9:
        return np.zeros_like(y)
    return (y - float(np.mean(y))) / std


def bandpass(
    x: np.ndarray,
    fs: float,
    fmin: float = 0.7,
    fmax: float = 4.0,
    order: int = 3,
    zero_phase: bool = False,
) -> np.ndarray:
    """Butterworth band-pass filter.

    Args:
        x: 1D array.
        fs: sampling rate [Hz].
        fmin: low cut [Hz].
        fmax: high cut [Hz].
        order: IIR order.
        zero_phase: run forward-backward (filtfilt) instead of causal lfilter.
            Falls back to lfilter when the window is too short to pad.
    """
    x = np.asarray(x, dtype=np.float64)
    nyq = 0.5 * fs
    low = max(1e-6, fmin / nyq)
    high = min(0.999, fmax / nyq)
    if not (0 < low < high < 1):
        return x.copy()
    b, a = butter(order, [low, high], btype="band")
    if zero_phase and x.size > 3 * max(len(a), len(b)):
        return filtfilt(b, a, x)
    return lfilter(b, a, x)
