"""Fuse the three channels into one urgency estimate.

The questionnaire carries most of the weight (0.5); facial (0.3) and voice
(0.2) signs fill in. The weighted score is then discounted by how far the
channels can be trusted, so conflicting data never raises urgency on its own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from . import correlation
from .correlation import CorrelationResult, TrustLevel
from .modality import AnamnesisModality, FacialModality, VoiceModality
from .urgency import UrgencyLevel, level_for

ANAMNESIS_WEIGHT = 0.5
FACIAL_WEIGHT = 0.3
VOICE_WEIGHT = 0.2

_TRUST_MULTIPLIER = {
    TrustLevel.VERY_HIGH: 1.0,
    TrustLevel.HIGH: 1.0,
    TrustLevel.MEDIUM: 0.9,
    TrustLevel.LOW: 0.8,
    TrustLevel.VERY_LOW: 0.8,
}

_LEVEL_RECOMMENDATION = {
    UrgencyLevel.CRITICA: "Buscar atendimento médico de emergência imediatamente",
    UrgencyLevel.ALTA: "Procurar atendimento médico urgente nas próximas horas",
    UrgencyLevel.MEDIA: "Agendar consulta médica em 24-48 horas",
    UrgencyLevel.BAIXA: "Monitoramento e autocuidado",
}


@dataclass(frozen=True)
class ConsolidatedUrgency:
    score: int  # 0..100
    level: UrgencyLevel
    confidence: float  # 0..1
    combined_symptoms: Tuple[str, ...] = ()
    risk_factors: Tuple[str, ...] = ()
    outliers: Tuple[str, ...] = ()
    recommendations: Tuple[str, ...] = ()
    data_completeness: str = "Insuficiente"
    channels: Tuple[str, ...] = field(default_factory=tuple)


def facial_urgency(facial: FacialModality) -> float:
    u = facial.stress_indicators * 100.0
    if facial.heart_rate > 100:
        u += 20.0
    return min(u, 100.0)


def voice_urgency(voice: VoiceModality) -> float:
    u = voice.stress_level * 100.0
    if voice.emotional_state in ("stress", "stressed"):
        u += 20.0
    if voice.respiratory_pattern == "irregular":
        u += 15.0
    return min(u, 100.0)


def weighted_urgency(
    voice: Optional[VoiceModality] = None,
    facial: Optional[FacialModality] = None,
    anamnesis: Optional[AnamnesisModality] = None,
) -> float:
    """Channel urgencies (0..100) averaged by channel weight; 50 with no channel."""
    terms = []
    if anamnesis is not None:
        terms.append((anamnesis.symptom_severity * 100.0, ANAMNESIS_WEIGHT))
    if facial is not None:
        terms.append((facial_urgency(facial), FACIAL_WEIGHT))
    if voice is not None:
        terms.append((voice_urgency(voice), VOICE_WEIGHT))
    if not terms:
        return 50.0
    return sum(u * w for u, w in terms) / sum(w for _, w in terms)


def detect_outliers(
    voice: Optional[VoiceModality] = None,
    facial: Optional[FacialModality] = None,
) -> List[str]:
    out: List[str] = []
    if facial is not None:
        if facial.heart_rate > 120 or 0 < facial.heart_rate < 50:
            out.append(f"Frequência cardíaca anormal: {facial.heart_rate:.0f} bpm")
        if facial.stress_indicators > 0.9:
            out.append("Nível de estresse facial extremamente alto")
    if voice is not None:
        if voice.stress_level > 0.9:
            out.append("Nível de estresse vocal extremamente alto")
        if voice.confidence < 0.3:
            out.append("Confiança muito baixa na análise de voz")
    return out


def data_completeness(*channels: object) -> str:
    n = sum(1 for c in channels if c is not None)
    return {3: "Completa", 2: "Boa", 1: "Parcial"}.get(n, "Insuficiente")


def _unique(items: Iterable[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(items))


def consolidate(
    voice: Optional[VoiceModality] = None,
    facial: Optional[FacialModality] = None,
    anamnesis: Optional[AnamnesisModality] = None,
    result: Optional[CorrelationResult] = None,
    symptoms: Sequence[str] = (),
) -> ConsolidatedUrgency:
    """Fused urgency, risk factors and outliers for the present channels.

    ``result`` is the :func:`correlation.analyze` output for the same inputs;
    it is computed when not given. ``symptoms`` are questionnaire findings
    (e.g. :attr:`UrgencyAssessment.symptoms`).
    """
    voice = voice.clamped() if voice is not None else None
    facial = facial.clamped() if facial is not None else None
    anamnesis = anamnesis.clamped() if anamnesis is not None else None
    if result is None:
        result = correlation.analyze(voice, facial, anamnesis)

    multiplier = _TRUST_MULTIPLIER[result.trust_level]
    score = int(round(weighted_urgency(voice, facial, anamnesis) * multiplier))
    score = min(100, max(0, score))
    level = level_for(score)

    combined = list(symptoms)
    if voice is not None and voice.emotional_state != "neutral":
        combined.append(f"Estado vocal: {voice.emotional_state}")
    if facial is not None and facial.stress_indicators > 0.5:
        combined.append("Sinais faciais de estresse")

    risks: List[str] = []
    if facial is not None and facial.heart_rate > 100:
        risks.append("Taquicardia detectada")
    if voice is not None and voice.stress_level > 0.7:
        risks.append("Estresse vocal elevado")
    if result.inconsistencies:
        risks.append("Dados conflitantes requerem atenção")

    recs = [_LEVEL_RECOMMENDATION[level]]
    if result.trust_level in (TrustLevel.LOW, TrustLevel.VERY_LOW):
        recs.append("Repetir análise para maior precisão")
    if risks:
        recs.append("Informar todos os achados ao médico")

    present = [m for m in (voice, facial, anamnesis) if m is not None]
    return ConsolidatedUrgency(
        score=score,
        level=level,
        confidence=min(1.0, result.reliability_score * multiplier),
        combined_symptoms=_unique(combined),
        risk_factors=tuple(risks),
        outliers=tuple(detect_outliers(voice, facial)),
        recommendations=tuple(recs),
        data_completeness=data_completeness(voice, facial, anamnesis),
        channels=tuple(m.channel.value for m in present),
    )
