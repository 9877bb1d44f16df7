"""Map provider payloads onto canonical channel values.

Providers name the same quantity differently (``stressLevel`` vs
``stress_indicators.stress_level``, 0..1 vs 0..10 scales, ...). All of that
is resolved here by the versioned payload models in :data:`FIELD_ALIASES_V1`:
for each canonical field the first alias present in the payload wins, and
each alias carries a fixed scale. Nothing downstream looks at provider field
names.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from .analyzer import Lighting, RPPGReading
from .modality import AnamnesisModality, FacialModality, Source, VoiceModality, unit
from .quality import SignalQuality

logger = logging.getLogger(__name__)

ALIAS_TABLE_VERSION = 1

SOURCE_ALIASES = {
    "primary": Source.PRIMARY,
    "provider_a": Source.PRIMARY,
    "secondary": Source.SECONDARY,
    "provider_b": Source.SECONDARY,
    "fallback": Source.FALLBACK,
}

_EMOTION_STRESS = {
    "calm": 0.1,
    "neutral": 0.5,
    "depressed": 0.4,
    "anxious": 0.6,
    "anxiety": 0.6,
    "sadness": 0.6,
    "stressed": 0.8,
    "stress": 0.8,
}

_URGENCY_SEVERITY = {
    "critical": 0.9,
    "crítica": 0.9,
    "critica": 0.9,
    "high": 0.7,
    "alta": 0.7,
    "medium": 0.5,
    "média": 0.5,
    "media": 0.5,
    "low": 0.2,
    "baixa": 0.2,
}


class ProviderPayload(BaseModel):
    """Common envelope of every provider payload.

    Unreadable values (wrong type, NaN, unparsable timestamp) are treated as
    missing rather than rejected.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, allow_inf_nan=False)

    timestamp: Optional[datetime] = None
    source: Optional[str] = Field(None, validation_alias=AliasChoices("source", "provider"))

    @field_validator("*", mode="wrap")
    @classmethod
    def _unreadable_is_missing(cls, value: Any, handler: Any) -> Any:
        try:
            return handler(value)
        except ValidationError:
            logger.debug("%s: ignoring unreadable value %r", cls.__name__, value)
            return None

    @field_validator("source", mode="before")
    @classmethod
    def _source_name(cls, value: Any) -> Any:
        return value.value if isinstance(value, Enum) else value

    def provenance(self) -> Source:
        if self.source is None:
            return Source.FALLBACK
        src = SOURCE_ALIASES.get(self.source.strip().lower())
        if src is None:
            logger.debug("unknown provenance %r, tagged as fallback", self.source)
            return Source.FALLBACK
        return src

    def epoch(self) -> float:
        if self.timestamp is None:
            return time.time()
        ts = self.timestamp
        # naive timestamps are UTC
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return ts.timestamp()


class VoicePayloadV1(ProviderPayload):
    # nested provider stress is reported on a 0..10 scale
    stress_tenths: Optional[float] = Field(
        None, validation_alias=AliasPath("stress_indicators", "stress_level")
    )
    stress_level: Optional[float] = Field(None, validation_alias=AliasChoices("stressLevel", "stress_level"))
    emotional_state: Optional[str] = Field(
        None,
        validation_alias=AliasChoices(
            AliasPath("emotional_tone", "primary_emotion"),
            AliasPath("emotions", 0, "label"),
            "emotionalState",
            "emotional_state",
        ),
    )
    respiratory_pattern: Optional[str] = Field(
        None,
        validation_alias=AliasChoices(
            AliasPath("respiratory_patterns", "pattern"), "respiratoryPattern", "respiratory_pattern"
        ),
    )
    # percent
    speech_clarity: Optional[float] = Field(
        None, validation_alias=AliasChoices("speech_clarity", "speechClarity")
    )
    audio_quality: Optional[float] = Field(
        None, validation_alias=AliasChoices("audio_quality", "audioQuality", AliasPath("quality", "audio"))
    )
    quality: Optional[float] = Field(None, validation_alias=AliasChoices("quality", "dataQuality"))
    confidence: Optional[float] = Field(
        None, validation_alias=AliasChoices("confidence_score", "confidence")
    )

    @field_validator("stress_tenths")
    @classmethod
    def _from_tenths(cls, v: Optional[float]) -> Optional[float]:
        return None if v is None else v / 10.0

    @field_validator("speech_clarity")
    @classmethod
    def _from_percent(cls, v: Optional[float]) -> Optional[float]:
        return None if v is None else v / 100.0


class FacialPayloadV1(ProviderPayload):
    heart_rate: Optional[float] = Field(
        None,
        validation_alias=AliasChoices(
            "heartRate",
            "heart_rate",
            AliasPath("vitalSigns", "heartRate"),
            AliasPath("vital_signs", "heart_rate"),
            "bpm",
        ),
    )
    blood_pressure: Optional[str] = Field(
        None,
        validation_alias=AliasChoices(
            "bloodPressure",
            "blood_pressure",
            AliasPath("vitalSigns", "bloodPressure"),
            AliasPath("vital_signs", "blood_pressure"),
        ),
    )
    temperature: Optional[float] = Field(
        None,
        validation_alias=AliasChoices(
            "temperature", AliasPath("vitalSigns", "temperature"), AliasPath("vital_signs", "temperature")
        ),
    )
    stress_indicators: Optional[float] = Field(
        None, validation_alias=AliasChoices("stressIndicators", "stress_indicators")
    )
    # facial metrics providers report stress on a 0..10 scale
    stress_tenths: Optional[float] = Field(None, validation_alias="stressLevel")
    movement_stability: Optional[float] = Field(
        None, validation_alias=AliasChoices("movementStability", "movement_stability")
    )
    lighting_quality: Optional[float] = Field(
        None,
        validation_alias=AliasChoices(
            "lightingQuality",
            "lighting_quality",
            AliasPath("quality", "lighting"),
            "videoQuality",
            "video_quality",
        ),
    )
    quality: Optional[float] = Field(
        None, validation_alias=AliasChoices("quality", "videoQuality", "video_quality")
    )
    confidence: Optional[float] = Field(
        None, validation_alias=AliasChoices(AliasPath("quality", "analysisReliability"), "confidence")
    )

    @field_validator("stress_tenths")
    @classmethod
    def _from_tenths(cls, v: Optional[float]) -> Optional[float]:
        return None if v is None else v / 10.0


class AnamnesisPayloadV1(ProviderPayload):
    urgency_level: Optional[str] = Field(
        None, validation_alias=AliasChoices("urgencyLevel", "urgency_level", "level")
    )
    # 0..100 urgency score, stored as a fraction
    urgency_score: Optional[float] = Field(
        None, validation_alias=AliasChoices("urgencyScore", "urgency_score", "score")
    )
    symptom_severity: Optional[float] = Field(
        None, validation_alias=AliasChoices("symptomSeverity", "symptom_severity")
    )
    response_consistency: Optional[float] = Field(
        None, validation_alias=AliasChoices("consistency", "responseConsistency", "response_consistency")
    )
    objectivity_score: Optional[float] = Field(
        None, validation_alias=AliasChoices("objectivityScore", "objectivity_score")
    )
    completeness: Optional[float] = None
    responses: Optional[Dict[str, Any]] = Field(None, validation_alias=AliasChoices("responses", "answers"))
    quality: Optional[float] = None
    confidence: Optional[float] = None

    @field_validator("urgency_score")
    @classmethod
    def _from_percent(cls, v: Optional[float]) -> Optional[float]:
        return None if v is None else v / 100.0


# channel -> payload model of alias table version 1
FIELD_ALIASES_V1: Dict[str, Type[ProviderPayload]] = {
    "voice": VoicePayloadV1,
    "facial": FacialPayloadV1,
    "anamnesis": AnamnesisPayloadV1,
}


def parse_payload(channel: str, payload: Mapping[str, Any]) -> Any:
    """Validate ``payload`` against the channel's payload model."""
    model = FIELD_ALIASES_V1[channel]
    data = dict(payload) if isinstance(payload, Mapping) else {}
    return model.model_validate(data)


def _or(v: Optional[float], default: float) -> float:
    return default if v is None else v


def _first(*values: Optional[float]) -> Optional[float]:
    for v in values:
        if v is not None:
            return v
    return None


# -- coherence / derived fields -------------------------------------------

def voice_coherence(emotional_state: str, respiratory_pattern: str) -> float:
    base = 0.8
    if emotional_state == "calm" and respiratory_pattern == "labored":
        return base - 0.2
    if emotional_state == "stressed" and respiratory_pattern == "normal":
        return base - 0.1
    return base


def facial_coherence(heart_rate: float, temperature: Optional[float]) -> float:
    if temperature is not None:
        if heart_rate > 100 and temperature < 36.5:
            return 0.6
        if heart_rate < 60 and temperature > 37.5:
            return 0.6
    return 0.85


def stress_from_vitals(
    heart_rate: float, temperature: Optional[float] = None, blood_pressure: str = ""
) -> float:
    stress = 0.0
    if heart_rate > 90:
        stress += 0.3
    if heart_rate > 100:
        stress += 0.2
    if 0 < heart_rate < 60:
        stress += 0.1
    if temperature is not None:
        if temperature > 37.5:
            stress += 0.2
        if temperature < 36:
            stress += 0.1
    if "140" in blood_pressure or "90" in blood_pressure:
        stress += 0.2
    return min(1.0, stress)


def anamnesis_coherence(responses: Any) -> float:
    if not isinstance(responses, Mapping) or not responses:
        return 0.7
    answered = sum(
        1
        for r in responses.values()
        if (isinstance(r, str) and r) or isinstance(r, bool)
    )
    return min(0.95, 0.5 + 0.1 * answered / len(responses))


# -- adapters --------------------------------------------------------------

def adapt_voice(payload: Mapping[str, Any]) -> VoiceModality:
    p = parse_payload("voice", payload)
    emotion = (p.emotional_state or "neutral").lower()
    pattern = (p.respiratory_pattern or "normal").lower()
    stress = _first(p.stress_tenths, p.stress_level)
    if stress is None:
        stress = _EMOTION_STRESS.get(emotion, 0.5)
    audio = unit(_or(p.audio_quality, 0.7))
    return VoiceModality(
        quality=unit(_or(p.quality, audio)),
        coherence=voice_coherence(emotion, pattern),
        confidence=unit(_or(p.confidence, 0.8)),
        timestamp=p.epoch(),
        source=p.provenance(),
        stress_level=unit(stress),
        emotional_state=emotion,
        respiratory_pattern=pattern,
        speech_clarity=unit(_or(p.speech_clarity, 0.85)),
        audio_quality=audio,
    )


def adapt_facial(payload: Mapping[str, Any]) -> FacialModality:
    p = parse_payload("facial", payload)
    hr = _or(p.heart_rate, 72.0)
    bp = p.blood_pressure or ""
    stress = _first(p.stress_indicators, p.stress_tenths)
    if stress is None:
        stress = stress_from_vitals(hr, p.temperature, bp)
    lighting = unit(_or(p.lighting_quality, 0.8))
    return FacialModality(
        quality=unit(_or(p.quality, lighting)),
        coherence=facial_coherence(hr, p.temperature),
        confidence=unit(_or(p.confidence, 0.8)),
        timestamp=p.epoch(),
        source=p.provenance(),
        heart_rate=max(0.0, hr),
        blood_pressure=bp,
        stress_indicators=unit(stress),
        movement_stability=unit(_or(p.movement_stability, 0.8)),
        lighting_quality=lighting,
    )


def adapt_anamnesis(payload: Mapping[str, Any]) -> AnamnesisModality:
    p = parse_payload("anamnesis", payload)
    severity = p.symptom_severity
    if severity is None and p.urgency_level is not None:
        severity = _URGENCY_SEVERITY.get(p.urgency_level.strip().lower())
    if severity is None:
        severity = p.urgency_score
    return AnamnesisModality(
        quality=unit(_or(p.quality, 0.9)),
        coherence=anamnesis_coherence(p.responses),
        confidence=unit(_or(p.confidence, 0.8)),
        timestamp=p.epoch(),
        source=p.provenance(),
        symptom_severity=unit(_or(severity, 0.5)),
        response_consistency=unit(_or(p.response_consistency, 0.8)),
        objectivity_score=unit(_or(p.objectivity_score, 0.7)),
        completeness=unit(_or(p.completeness, 0.8)),
    )

_QUALITY_LEVEL = {
    SignalQuality.POOR: 0.25,
    SignalQuality.FAIR: 0.5,
    SignalQuality.GOOD: 0.75,
    SignalQuality.EXCELLENT: 0.95,
}


def facial_from_reading(
    reading: RPPGReading,
    blood_pressure: str = "",
    temperature: Optional[float] = None,
) -> FacialModality:
    """Wrap an rPPG reading as a facial channel value."""
    return FacialModality(
        quality=_QUALITY_LEVEL[reading.quality],
        coherence=facial_coherence(reading.bpm, temperature),
        confidence=unit(reading.confidence),
        timestamp=reading.timestamp,
        source=Source.PRIMARY,
        heart_rate=reading.bpm,
        blood_pressure=blood_pressure,
        stress_indicators=stress_from_vitals(reading.bpm, temperature, blood_pressure),
        movement_stability=0.5 if reading.motion_detected else 0.9,
        lighting_quality=0.9 if reading.lighting is Lighting.GOOD else 0.4,
    )


def anamnesis_from_assessment(
    assessment: Any,
    answers: Optional[Mapping[str, Any]] = None,
    response_consistency: float = 0.8,
    completeness: float = 0.8,
) -> AnamnesisModality:
    """Wrap an :class:`~vitaltriage.urgency.UrgencyAssessment` as an anamnesis value."""
    return AnamnesisModality(
        quality=0.9,
        coherence=anamnesis_coherence(answers),
        confidence=0.8,
        timestamp=time.time(),
        source=Source.PRIMARY,
        symptom_severity=unit(assessment.score / 100.0),
        response_consistency=unit(response_consistency),
        objectivity_score=0.7,
        completeness=unit(completeness),
    )
