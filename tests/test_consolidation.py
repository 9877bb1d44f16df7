from __future__ import annotations

import pytest

from vitaltriage import consolidation, correlation
from vitaltriage.consolidation import consolidate
from vitaltriage.correlation import CorrelationResult, TrustLevel
from vitaltriage.modality import AnamnesisModality, FacialModality, VoiceModality
from vitaltriage.urgency import UrgencyLevel


def _result(trust: TrustLevel, reliability: float = 0.7) -> CorrelationResult:
    return CorrelationResult(
        weighted_confidence=reliability,
        reliability_score=reliability,
        inconsistencies=(),
        correlation_factors=(),
        recommendations=(),
        trust_level=trust,
    )


def _channels():
    voice = VoiceModality(stress_level=0.5, confidence=0.8)
    facial = FacialModality(heart_rate=110.0, stress_indicators=0.6, confidence=0.8)
    anamnesis = AnamnesisModality(symptom_severity=0.6, confidence=0.8)
    return voice, facial, anamnesis


def test_channel_urgencies() -> None:
    tachy = FacialModality(heart_rate=110, stress_indicators=0.6)
    assert consolidation.facial_urgency(tachy) == pytest.approx(80.0)
    saturated = FacialModality(heart_rate=120, stress_indicators=0.95)
    assert consolidation.facial_urgency(saturated) == 100.0
    v = VoiceModality(stress_level=0.3, emotional_state="stressed", respiratory_pattern="irregular")
    assert consolidation.voice_urgency(v) == pytest.approx(65.0)


def test_weighted_urgency_uses_present_channels_only() -> None:
    voice, facial, anamnesis = _channels()
    assert consolidation.weighted_urgency(voice, facial, anamnesis) == pytest.approx(64.0)
    # weights renormalize over what is present
    assert consolidation.weighted_urgency(anamnesis=anamnesis) == pytest.approx(60.0)
    assert consolidation.weighted_urgency() == 50.0


@pytest.mark.parametrize(
    "trust,score,level",
    [
        (TrustLevel.VERY_HIGH, 64, UrgencyLevel.ALTA),
        (TrustLevel.HIGH, 64, UrgencyLevel.ALTA),
        (TrustLevel.MEDIUM, 58, UrgencyLevel.MEDIA),
        (TrustLevel.LOW, 51, UrgencyLevel.MEDIA),
        (TrustLevel.VERY_LOW, 51, UrgencyLevel.MEDIA),
    ],
)
def test_reliability_discounts_the_score(trust: TrustLevel, score: int, level: UrgencyLevel) -> None:
    fused = consolidate(*_channels(), result=_result(trust))
    assert fused.score == score
    assert fused.level is level
    repeat = "Repetir análise para maior precisão" in fused.recommendations
    assert repeat is (trust in (TrustLevel.LOW, TrustLevel.VERY_LOW))


def test_no_channels() -> None:
    fused = consolidate()
    assert fused.score == 40
    assert fused.level is UrgencyLevel.MEDIA
    assert fused.confidence == pytest.approx(0.08)
    assert fused.data_completeness == "Insuficiente"
    assert fused.channels == ()
    assert fused.recommendations[0] == "Agendar consulta médica em 24-48 horas"


def test_risk_factors_and_symptoms() -> None:
    voice = VoiceModality(stress_level=0.8, emotional_state="anxious")
    facial = FacialModality(heart_rate=65.0, stress_indicators=0.7)
    fused = consolidate(voice, facial, symptoms=["Febre", "Febre"])
    # high vocal stress with a calm heart rate is a conflict
    assert "Estresse vocal elevado" in fused.risk_factors
    assert "Dados conflitantes requerem atenção" in fused.risk_factors
    assert "Taquicardia detectada" not in fused.risk_factors
    assert fused.combined_symptoms == (
        "Febre",
        "Estado vocal: anxious",
        "Sinais faciais de estresse",
    )
    assert "Informar todos os achados ao médico" in fused.recommendations
    assert fused.data_completeness == "Boa"
    assert fused.channels == ("voice", "facial")


def test_computes_correlation_when_not_given() -> None:
    voice, facial, anamnesis = _channels()
    expected = correlation.analyze(voice, facial, anamnesis)
    fused = consolidate(voice, facial, anamnesis)
    assert fused == consolidate(voice, facial, anamnesis, result=expected)
    assert 0.0 <= fused.confidence <= 1.0


def test_outliers() -> None:
    out = consolidation.detect_outliers(
        VoiceModality(stress_level=0.95, confidence=0.2),
        FacialModality(heart_rate=130.0, stress_indicators=0.95),
    )
    assert out == [
        "Frequência cardíaca anormal: 130 bpm",
        "Nível de estresse facial extremamente alto",
        "Nível de estresse vocal extremamente alto",
        "Confiança muito baixa na análise de voz",
    ]
    assert consolidation.detect_outliers(facial=FacialModality(heart_rate=45.0)) == [
        "Frequência cardíaca anormal: 45 bpm"
    ]
    # 0 bpm means no reading, not bradycardia
    assert consolidation.detect_outliers(facial=FacialModality(heart_rate=0.0)) == []


def test_out_of_range_inputs_are_clamped() -> None:
    fused = consolidate(
        facial=FacialModality(heart_rate=180.0, stress_indicators=3.0),
        anamnesis=AnamnesisModality(symptom_severity=2.0),
        result=_result(TrustLevel.HIGH),
    )
    assert fused.score == 100
    assert fused.level is UrgencyLevel.CRITICA


def test_data_completeness_labels() -> None:
    voice, facial, anamnesis = _channels()
    assert consolidation.data_completeness(voice, facial, anamnesis) == "Completa"
    assert consolidation.data_completeness(None, facial, None) == "Parcial"
    assert consolidation.data_completeness(None, None, None) == "Insuficiente"
