"""Structured-questionnaire urgency scoring (Manchester-inspired).

Severity signals are combined with ``max`` rather than summed, so correlated
symptoms are not counted twice. Breathing difficulty together with chest pain
is an unconditional emergency. Unknown or missing answers count as "no".
"""

from __future__ import annotations

import math
import re
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

_YES = {"sim", "s", "yes", "y", "true"}
_NO = {"nao", "n", "no", "false", "nenhum", "nenhuma", "none", "prefiro"}
_ACUTE = {
    "menos de 1 dia",
    "menos de 1 hora",
    "algumas horas",
    "less than 1 day",
    "less than 1 hour",
    "a few hours",
}


class UrgencyLevel(str, Enum):
    BAIXA = "baixa"
    MEDIA = "média"
    ALTA = "alta"
    CRITICA = "crítica"


@dataclass(frozen=True)
class ManchesterPriority:
    code: int
    color: str
    name: str
    max_wait: str


_MANCHESTER = {
    UrgencyLevel.CRITICA: ManchesterPriority(1, "red", "Emergência", "Imediato"),
    UrgencyLevel.ALTA: ManchesterPriority(2, "orange", "Muito Urgente", "10 minutos"),
    UrgencyLevel.MEDIA: ManchesterPriority(3, "yellow", "Urgente", "60 minutos"),
    UrgencyLevel.BAIXA: ManchesterPriority(4, "green", "Pouco Urgente", "120 minutos"),
}

_TIER_RECOMMENDATIONS = {
    UrgencyLevel.CRITICA: (
        "Procure atendimento de emergência IMEDIATAMENTE",
        "Ligue para o SAMU (192) ou vá ao pronto-socorro mais próximo",
        "Não espere os sintomas melhorarem sozinhos",
    ),
    UrgencyLevel.ALTA: (
        "Procure atendimento médico urgente nas próximas horas",
        "Monitore os sintomas de perto",
    ),
    UrgencyLevel.MEDIA: (
        "Agende consulta médica em 24-48 horas",
        "Procure ajuda imediata se os sintomas piorarem",
    ),
    UrgencyLevel.BAIXA: (
        "Considere consulta médica de rotina",
        "Mantenha cuidados básicos de saúde",
    ),
}


@dataclass(frozen=True)
class UrgencyAssessment:
    score: int
    level: UrgencyLevel
    recommendations: Tuple[str, ...]
    symptoms: Tuple[str, ...] = ()
    manchester: Optional[ManchesterPriority] = None


def _fold(text: str) -> str:
    text = unicodedata.normalize("NFKD", text.strip().lower())
    return "".join(c for c in text if not unicodedata.combining(c))


def _first_word(value: str) -> str:
    words = re.split(r"[\s,.;:!?]+", _fold(value))
    return words[0] if words else ""


def is_affirmative(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return _first_word(value) in _YES
    return False


def reports(value: Any) -> bool:
    """True for a yes, or for any answer that names something (e.g. a medication)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        word = _first_word(value)
        return bool(word) and word not in _NO
    if isinstance(value, (list, tuple)):
        return any(reports(v) for v in value)
    return False


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        x = float(value)
    elif isinstance(value, str):
        m = re.search(r"-?\d+(?:[.,]\d+)?", value)
        if not m:
            return None
        x = float(m.group(0).replace(",", "."))
    else:
        return None
    return x if math.isfinite(x) else None


class QuestionnaireAnswers(BaseModel):
    """Answer keys of both questionnaire variants.

    The server variant's names (``pain_scale``, ``fever_check``, ...) are
    accepted as aliases; the canonical key wins when both are given. Other
    answers pass through untouched.
    """

    model_config = ConfigDict(extra="allow")

    pain_intensity: Any = Field(None, validation_alias=AliasChoices("pain_intensity", "pain_scale"))
    fever: Any = Field(None, validation_alias=AliasChoices("fever", "fever_check"))
    fever_temperature: Any = Field(
        None, validation_alias=AliasChoices("fever_temperature", "temperature")
    )
    symptom_duration: Any = Field(
        None, validation_alias=AliasChoices("symptom_duration", "duration")
    )


def normalize_answers(answers: Mapping[str, Any]) -> Dict[str, Any]:
    """Answers keyed by canonical names."""
    data = {str(k): v for k, v in answers.items()}
    return QuestionnaireAnswers.model_validate(data).model_dump()


def temperature(answers: Mapping[str, Any]) -> Optional[float]:
    """Body temperature from ``fever_temperature``, else a numeric ``fever`` answer."""
    temp = _number(answers.get("fever_temperature"))
    if temp is None:
        temp = _number(answers.get("fever"))
    return temp


def pain_level(answers: Mapping[str, Any]) -> float:
    p = _number(answers.get("pain_intensity"))
    if p is None:
        return 0.0
    return min(10.0, max(0.0, p))


def is_acute(value: Any) -> bool:
    """Onset less than one day ago. Numeric durations are read as days."""
    if isinstance(value, str):
        return _fold(value) in {_fold(s) for s in _ACUTE}
    n = _number(value)
    return n is not None and 0 <= n < 1


def level_for(score: float) -> UrgencyLevel:
    if score >= 80:
        return UrgencyLevel.CRITICA
    if score >= 60:
        return UrgencyLevel.ALTA
    if score >= 40:
        return UrgencyLevel.MEDIA
    return UrgencyLevel.BAIXA


def manchester_priority(level: UrgencyLevel) -> ManchesterPriority:
    return _MANCHESTER[UrgencyLevel(level)]


def _raw_score(a: Mapping[str, Any]) -> int:
    breathing = is_affirmative(a.get("breathing"))
    chest = is_affirmative(a.get("chest_pain"))
    if breathing and chest:
        return 100

    candidates = [0]
    if breathing:
        candidates.append(90)
    if chest:
        candidates.append(70)
    pain = pain_level(a)
    if pain >= 9:
        candidates.append(85)
    elif pain >= 7:
        candidates.append(60)
    elif pain >= 5:
        candidates.append(40)
    temp = temperature(a)
    if temp is not None and temp >= 39.0:
        candidates.append(50)
    elif is_affirmative(a.get("fever")) or (temp is not None and temp >= 37.8):
        candidates.append(30)

    score = max(candidates)
    if score > 40 and is_acute(a.get("symptom_duration")):
        score = min(100, score + 15)
    return score


def recommendations_for(level: UrgencyLevel, answers: Mapping[str, Any]) -> List[str]:
    recs = list(_TIER_RECOMMENDATIONS[level])
    if reports(answers.get("medications")):
        recs.append("Leve a lista de medicamentos em uso à consulta")
    if reports(answers.get("chronic_conditions")):
        recs.append("Informe suas condições crônicas ao profissional de saúde")
    return recs


def extract_symptoms(answers: Mapping[str, Any]) -> List[str]:
    a = normalize_answers(answers)
    symptoms: List[str] = []
    main = a.get("main_symptom")
    if isinstance(main, str) and main.strip():
        symptoms.append(main.strip())
    temp = temperature(a)
    if is_affirmative(a.get("fever")) or (temp is not None and temp >= 37.8):
        symptoms.append("Febre")
    if is_affirmative(a.get("breathing")):
        symptoms.append("Dificuldade respiratória")
    if is_affirmative(a.get("chest_pain")):
        symptoms.append("Dor no peito")
    pain = pain_level(a)
    if pain > 0:
        symptoms.append(f"Dor nível {pain:g}/10")
    return symptoms


def score(answers: Mapping[str, Any]) -> UrgencyAssessment:
    """Score a questionnaire into an :class:`UrgencyAssessment`."""
    a = normalize_answers(answers or {})
    value = _raw_score(a)
    level = level_for(value)
    return UrgencyAssessment(
        score=int(value),
        level=level,
        recommendations=tuple(recommendations_for(level, a)),
        symptoms=tuple(extract_symptoms(a)),
        manchester=manchester_priority(level),
    )


def summarize(assessment: UrgencyAssessment, answers: Mapping[str, Any]) -> str:
    a = normalize_answers(answers)
    main = a.get("main_symptom") or "sintoma não especificado"
    duration = a.get("symptom_duration") or "duração não informada"
    level = assessment.level
    if level is UrgencyLevel.CRITICA:
        tail = "ATENÇÃO: Busque atendimento imediato!"
    elif level is UrgencyLevel.ALTA:
        tail = "Recomenda-se avaliação médica urgente."
    else:
        tail = "Situação sob controle, acompanhamento recomendado."
    return (
        f"Paciente apresenta {main} com duração de {duration}. "
        f"Nível de urgência: {level.value}. {tail}"
    )
