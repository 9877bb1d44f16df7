"""Sliding window of timestamped color samples."""

from __future__ import annotations

import math
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, Tuple


def _channel(v: float) -> float:
    v = float(v)
    if not math.isfinite(v):
        return 0.0
    return min(255.0, max(0.0, v))


@dataclass(frozen=True)
class ColorSample:
    r: float
    g: float
    b: float
    timestamp: float

    @classmethod
    def clamped(cls, r: float, g: float, b: float, timestamp: float) -> "ColorSample":
        """Build a sample with every channel clipped to [0, 255]."""
        return cls(_channel(r), _channel(g), _channel(b), float(timestamp))

    @property
    def luminance(self) -> float:
        return (self.r + self.g + self.b) / 3.0


class SignalBuffer:
    """Fixed-capacity FIFO of :class:`ColorSample`.

    Appending past capacity evicts the oldest sample. Readers take a
    :meth:`snapshot`, so analysis never sees a half-written window.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        self.capacity = int(capacity)
        self._samples: Deque[ColorSample] = deque(maxlen=self.capacity)
        self._lock = threading.Lock()

    def append(self, sample: ColorSample) -> None:
        with self._lock:
            self._samples.append(sample)

    def last(self) -> ColorSample | None:
        with self._lock:
            return self._samples[-1] if self._samples else None

    def snapshot(self) -> Tuple[ColorSample, ...]:
        with self._lock:
            return tuple(self._samples)

    def progress(self) -> float:
        with self._lock:
            return len(self._samples) / float(self.capacity)

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)
