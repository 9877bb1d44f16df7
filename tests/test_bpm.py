from __future__ import annotations

import numpy as np

from vitaltriage.bpm import estimate_bpm_peaks


def test_estimate_bpm_peaks_on_sine() -> None:
    fs = 30.0
    t = np.arange(0, 10.0, 1 / fs)
    x = np.sin(2 * np.pi * 1.2 * t)  # 72 BPM
    res = estimate_bpm_peaks(x, fs=fs, t=t)
    assert res.bpm is not None
    assert 70.0 <= res.bpm <= 74.0
    assert res.peaks.size >= 10


def test_estimate_bpm_peaks_with_noise() -> None:
    fs = 30.0
    t = np.arange(0, 10.0, 1 / fs)
    x = np.sin(2 * np.pi * 1.5 * t) + 0.1 * np.random.RandomState(0).randn(t.size)
    res = estimate_bpm_peaks(x, fs=fs)
    assert res.bpm is not None and 85.0 <= res.bpm <= 95.0


def test_too_few_peaks_gives_none() -> None:
    fs = 30.0
    t = np.arange(0, 2.0, 1 / fs)
    x = np.sin(2 * np.pi * 1.0 * t)  # two beats only
    assert estimate_bpm_peaks(x, fs=fs, min_peaks=4).bpm is None


def test_flat_signal_gives_none() -> None:
    assert estimate_bpm_peaks(np.zeros(300), fs=30.0).bpm is None
