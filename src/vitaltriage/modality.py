"""Canonical per-channel values consumed by the correlation engine."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field, fields, replace
from enum import Enum


class Channel(str, Enum):
    VOICE = "voice"
    FACIAL = "facial"
    ANAMNESIS = "anamnesis"


class Source(str, Enum):
    """Provenance of an adapted value."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
    FALLBACK = "fallback"


def unit(v: object, default: float = 0.0) -> float:
    """Coerce to a finite float clipped to [0, 1]."""
    try:
        x = float(v)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default
    if not math.isfinite(x):
        return default
    return min(1.0, max(0.0, x))


# Fields that are not clipped to [0, 1]
_UNBOUNDED = {"timestamp", "heart_rate", "blood_pressure", "emotional_state",
              "respiratory_pattern", "source", "channel"}


@dataclass(frozen=True)
class ModalityData:
    quality: float = 0.5
    coherence: float = 0.5
    confidence: float = 0.5
    timestamp: float = field(default_factory=time.time)
    source: Source = Source.FALLBACK

    channel = None  # set by subclasses

    def clamped(self):
        """Copy with every bounded numeric field clipped to [0, 1]."""
        changes = {}
        for f in fields(self):
            if f.name in _UNBOUNDED:
                continue
            v = getattr(self, f.name)
            if isinstance(v, (int, float)) and not isinstance(v, bool):
                changes[f.name] = unit(v)
        return replace(self, **changes)


@dataclass(frozen=True)
class VoiceModality(ModalityData):
    stress_level: float = 0.5
    emotional_state: str = "neutral"
    respiratory_pattern: str = "normal"
    speech_clarity: float = 0.5
    audio_quality: float = 0.5

    channel = Channel.VOICE


@dataclass(frozen=True)
class FacialModality(ModalityData):
    heart_rate: float = 72.0
    blood_pressure: str = ""
    stress_indicators: float = 0.5
    movement_stability: float = 0.5
    lighting_quality: float = 0.5

    channel = Channel.FACIAL

    def clamped(self) -> "FacialModality":
        out = super().clamped()
        try:
            hr = float(self.heart_rate)
        except (TypeError, ValueError):
            hr = 0.0
        if not math.isfinite(hr) or hr < 0:
            hr = 0.0
        return replace(out, heart_rate=hr)


@dataclass(frozen=True)
class AnamnesisModality(ModalityData):
    symptom_severity: float = 0.5
    response_consistency: float = 0.5
    objectivity_score: float = 0.5
    completeness: float = 0.5

    channel = Channel.ANAMNESIS
