"""Cross-modal correlation and reliability scoring.

Pure functions over up to three channel values. Each call builds a fresh
:class:`CorrelationResult`; nothing is retained between calls, so the
module is safe to call from any number of threads.

Reliability = weighted confidence + inconsistency penalties + agreement
bonuses, clamped to [0.1, 0.95].
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .modality import AnamnesisModality, Channel, FacialModality, VoiceModality

RELIABILITY_MIN = 0.1
RELIABILITY_MAX = 0.95
TEMPORAL_GAP_SEC = 15 * 60.0


class InconsistencyKind(str, Enum):
    CROSS_MODAL = "cross_modal"
    TEMPORAL = "temporal"
    PHYSIOLOGICAL = "physiological"
    BEHAVIORAL = "behavioral"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Polarity(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


class TrustLevel(str, Enum):
    VERY_HIGH = "very_high"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    VERY_LOW = "very_low"


@dataclass(frozen=True)
class Inconsistency:
    kind: InconsistencyKind
    severity: Severity
    description: str
    affected_channels: frozenset
    impact_on_reliability: float  # -0.3 .. 0
    code: str = ""


@dataclass(frozen=True)
class CorrelationFactor:
    polarity: Polarity
    name: str
    strength: float  # 0 .. 1
    description: str
    reliability_bonus: float  # -0.2 .. 0.2


@dataclass(frozen=True)
class CorrelationResult:
    weighted_confidence: float
    reliability_score: float
    inconsistencies: Tuple[Inconsistency, ...]
    correlation_factors: Tuple[CorrelationFactor, ...]
    recommendations: Tuple[str, ...]
    trust_level: TrustLevel


def _clip(x: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, x))


def _inc(kind, severity, description, channels, impact, code) -> Inconsistency:
    return Inconsistency(
        kind=kind,
        severity=severity,
        description=description,
        affected_channels=frozenset(channels),
        impact_on_reliability=_clip(impact, -0.3, 0.0),
        code=code,
    )


def _factor(name, strength, description, bonus) -> CorrelationFactor:
    return CorrelationFactor(
        polarity=Polarity.POSITIVE if bonus >= 0 else Polarity.NEGATIVE,
        name=name,
        strength=_clip(strength, 0.0, 1.0),
        description=description,
        reliability_bonus=_clip(bonus, -0.2, 0.2),
    )


def detect_inconsistencies(
    voice: Optional[VoiceModality] = None,
    facial: Optional[FacialModality] = None,
    anamnesis: Optional[AnamnesisModality] = None,
) -> List[Inconsistency]:
    """Apply every rule whose channels are present; all matches are kept."""
    out: List[Inconsistency] = []
    V, F, A = Channel.VOICE, Channel.FACIAL, Channel.ANAMNESIS

    if voice and facial:
        if voice.stress_level > 0.7 and facial.heart_rate < 70:
            out.append(_inc(
                InconsistencyKind.CROSS_MODAL, Severity.MEDIUM,
                "Alto stress vocal detectado, mas frequência cardíaca normal",
                (V, F), -0.08, "voice_stress_low_hr",
            ))
        if voice.stress_level < 0.3 and facial.heart_rate > 90:
            out.append(_inc(
                InconsistencyKind.CROSS_MODAL, Severity.MEDIUM,
                "Baixo stress vocal mas frequência cardíaca elevada",
                (V, F), -0.06, "voice_calm_high_hr",
            ))
        if voice.audio_quality < 0.4:
            out.append(_inc(
                InconsistencyKind.PHYSIOLOGICAL, Severity.HIGH,
                "Qualidade de áudio baixa pode afetar análise vocal",
                (V,), -0.12, "audio_quality",
            ))

    if voice and anamnesis:
        if voice.stress_level < 0.3 and anamnesis.symptom_severity > 0.7:
            out.append(_inc(
                InconsistencyKind.BEHAVIORAL, Severity.MEDIUM,
                "Voz calma mas sintomas severos relatados",
                (V, A), -0.05, "calm_voice_severe_symptoms",
            ))

    if facial and anamnesis:
        if (
            facial.heart_rate < 75
            and facial.stress_indicators < 0.4
            and anamnesis.symptom_severity > 0.8
        ):
            out.append(_inc(
                InconsistencyKind.CROSS_MODAL, Severity.HIGH,
                "Sinais vitais normais mas sintomas severos relatados",
                (F, A), -0.10, "normal_vitals_severe_symptoms",
            ))
        if facial.lighting_quality < 0.5:
            out.append(_inc(
                InconsistencyKind.PHYSIOLOGICAL, Severity.MEDIUM,
                "Iluminação inadequada pode afetar análise facial",
                (F,), -0.08, "lighting_quality",
            ))

    if facial and (0 < facial.heart_rate < 35 or facial.heart_rate > 220):
        out.append(_inc(
            InconsistencyKind.PHYSIOLOGICAL, Severity.CRITICAL,
            f"Frequência cardíaca fisiologicamente implausível: {facial.heart_rate:.0f} bpm",
            (F,), -0.20, "implausible_heart_rate",
        ))

    present = [m for m in (voice, facial, anamnesis) if m is not None]
    if len(present) >= 2:
        stamps = [m.timestamp for m in present]
        if max(stamps) - min(stamps) > TEMPORAL_GAP_SEC:
            out.append(_inc(
                InconsistencyKind.TEMPORAL, Severity.LOW,
                "Dados coletados em momentos muito distantes",
                tuple(m.channel for m in present), -0.03, "temporal_gap",
            ))

    if anamnesis and anamnesis.response_consistency < 0.6:
        out.append(_inc(
            InconsistencyKind.BEHAVIORAL, Severity.HIGH,
            "Respostas da anamnese apresentam inconsistências",
            (A,), -0.15, "anamnesis_consistency",
        ))

    return out


def identify_correlation_factors(
    voice: Optional[VoiceModality] = None,
    facial: Optional[FacialModality] = None,
    anamnesis: Optional[AnamnesisModality] = None,
) -> List[CorrelationFactor]:
    out: List[CorrelationFactor] = []

    if voice and facial:
        diff = abs(voice.stress_level - facial.stress_indicators)
        if diff < 0.2:
            out.append(_factor(
                "stress_coherence", 1.0 - diff * 5.0,
                "Níveis de stress vocal e facial são coerentes", 0.08,
            ))
        if voice.audio_quality > 0.7 and facial.lighting_quality > 0.7:
            out.append(_factor(
                "high_data_quality", (voice.audio_quality + facial.lighting_quality) / 2.0,
                "Alta qualidade dos dados de áudio e vídeo", 0.05,
            ))

    if voice and facial and anamnesis:
        xs = (voice.stress_level, facial.stress_indicators, anamnesis.symptom_severity)
        avg = sum(xs) / 3.0
        consistency = 1.0 - max(abs(x - avg) for x in xs)
        if consistency > 0.7:
            out.append(_factor(
                "tri_modal_consistency", consistency,
                "Dados de voz, face e anamnese são consistentes", 0.12,
            ))

    if anamnesis and anamnesis.response_consistency > 0.8 and anamnesis.completeness > 0.8:
        out.append(_factor(
            "high_anamnesis_quality",
            (anamnesis.response_consistency + anamnesis.completeness) / 2.0,
            "Anamnese completa e consistente", 0.06,
        ))

    return out


def weighted_confidence(
    voice: Optional[VoiceModality] = None,
    facial: Optional[FacialModality] = None,
    anamnesis: Optional[AnamnesisModality] = None,
) -> float:
    """Confidence averaged with weight = quality * coherence * channel modifier."""
    terms = []
    if voice:
        terms.append((voice.confidence, voice.quality * voice.coherence * voice.audio_quality))
    if facial:
        terms.append((facial.confidence, facial.quality * facial.coherence * facial.lighting_quality))
    if anamnesis:
        terms.append((
            anamnesis.confidence,
            anamnesis.quality * anamnesis.coherence * anamnesis.response_consistency,
        ))
    total = sum(w for _, w in terms)
    if total <= 0:
        return 0.0
    return _clip(sum(c * w for c, w in terms) / total, 0.0, 1.0)


def reliability_score(
    base: float,
    inconsistencies: List[Inconsistency],
    factors: List[CorrelationFactor],
) -> float:
    r = base
    r += sum(i.impact_on_reliability for i in inconsistencies)
    r += sum(f.reliability_bonus for f in factors)
    return _clip(r, RELIABILITY_MIN, RELIABILITY_MAX)


def determine_trust_level(score: float) -> TrustLevel:
    if score >= 0.90:
        return TrustLevel.VERY_HIGH
    if score >= 0.80:
        return TrustLevel.HIGH
    if score >= 0.65:
        return TrustLevel.MEDIUM
    if score >= 0.50:
        return TrustLevel.LOW
    return TrustLevel.VERY_LOW


_TRUST_DESCRIPTIONS = {
    TrustLevel.VERY_HIGH: "Confiabilidade muito alta - dados altamente correlacionados",
    TrustLevel.HIGH: "Confiabilidade alta - boa correlação entre dados",
    TrustLevel.MEDIUM: "Confiabilidade média - algumas inconsistências detectadas",
    TrustLevel.LOW: "Confiabilidade baixa - inconsistências significativas",
    TrustLevel.VERY_LOW: "Confiabilidade muito baixa - dados conflitantes",
}


def trust_level_description(level: TrustLevel | str) -> str:
    try:
        return _TRUST_DESCRIPTIONS[TrustLevel(level)]
    except ValueError:
        return "Confiabilidade indeterminada"


def generate_recommendations(
    inconsistencies: List[Inconsistency],
    factors: List[CorrelationFactor],
) -> List[str]:
    recs: List[str] = []
    codes = {i.code for i in inconsistencies}
    if any(i.severity is Severity.CRITICAL for i in inconsistencies):
        recs.append("Detectadas inconsistências críticas - recomenda-se avaliação médica presencial")
    if "audio_quality" in codes:
        recs.append("Melhorar qualidade do áudio para análise mais precisa")
    if "lighting_quality" in codes:
        recs.append("Ajustar iluminação para melhor análise facial")
    if sum(1 for f in factors if f.strength > 0.8) >= 2:
        recs.append("Alta correlação entre dados - resultado confiável")
    if "anamnesis_consistency" in codes:
        recs.append("Validar respostas da anamnese com profissional de saúde")
    return recs


def analyze(
    voice: Optional[VoiceModality] = None,
    facial: Optional[FacialModality] = None,
    anamnesis: Optional[AnamnesisModality] = None,
) -> CorrelationResult:
    """Fuse the present channels into one :class:`CorrelationResult`."""
    voice = voice.clamped() if voice is not None else None
    facial = facial.clamped() if facial is not None else None
    anamnesis = anamnesis.clamped() if anamnesis is not None else None

    inconsistencies = detect_inconsistencies(voice, facial, anamnesis)
    factors = identify_correlation_factors(voice, facial, anamnesis)
    base = weighted_confidence(voice, facial, anamnesis)
    score = reliability_score(base, inconsistencies, factors)
    return CorrelationResult(
        weighted_confidence=base,
        reliability_score=score,
        inconsistencies=tuple(inconsistencies),
        correlation_factors=tuple(factors),
        recommendations=tuple(generate_recommendations(inconsistencies, factors)),
        trust_level=determine_trust_level(score),
    )


# -- data quality report ---------------------------------------------------


@dataclass(frozen=True)
class ChannelQuality:
    quality: float
    issues: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DataQualityReport:
    overall: str  # excellent | good | fair | poor
    voice: Optional[ChannelQuality] = None
    facial: Optional[ChannelQuality] = None
    anamnesis: Optional[ChannelQuality] = None
    missing: Tuple[str, ...] = field(default_factory=tuple)


def assess_data_quality(
    voice: Optional[VoiceModality] = None,
    facial: Optional[FacialModality] = None,
    anamnesis: Optional[AnamnesisModality] = None,
) -> DataQualityReport:
    """Per-channel quality summary; absent channels are listed, not scored."""
    parts = {}
    missing = []
    if voice is not None:
        v = voice.clamped()
        low = v.audio_quality < 0.6
        parts["voice"] = ChannelQuality(
            v.audio_quality * v.quality,
            ("Qualidade de áudio baixa",) if low else (),
            ("Melhorar ambiente acústico",) if low else (),
        )
    else:
        missing.append(Channel.VOICE.value)
    if facial is not None:
        f = facial.clamped()
        low = f.lighting_quality < 0.6
        parts["facial"] = ChannelQuality(
            f.lighting_quality * f.quality,
            ("Iluminação inadequada",) if low else (),
            ("Ajustar iluminação",) if low else (),
        )
    else:
        missing.append(Channel.FACIAL.value)
    if anamnesis is not None:
        a = anamnesis.clamped()
        low = a.response_consistency < 0.7
        parts["anamnesis"] = ChannelQuality(
            a.response_consistency * a.quality,
            ("Respostas inconsistentes",) if low else (),
            ("Validar respostas",) if low else (),
        )
    else:
        missing.append(Channel.ANAMNESIS.value)

    scores = [p.quality for p in parts.values()]
    avg = sum(scores) / len(scores) if scores else 0.0
    if avg > 0.8:
        overall = "excellent"
    elif avg > 0.6:
        overall = "good"
    elif avg > 0.4:
        overall = "fair"
    else:
        overall = "poor"
    return DataQualityReport(overall=overall, missing=tuple(missing), **parts)
