from __future__ import annotations

import pytest

from vitaltriage import urgency
from vitaltriage.urgency import UrgencyLevel


def test_breathing_with_chest_pain_overrides() -> None:
    result = urgency.score({"breathing": "sim", "chest_pain": "sim"})
    assert result.score == 100
    assert result.level is UrgencyLevel.CRITICA
    assert result.manchester is not None and result.manchester.color == "red"


def test_severe_pain_is_critical() -> None:
    result = urgency.score({"breathing": "não", "chest_pain": "não", "pain_intensity": 9})
    assert result.score >= 85
    assert result.level is UrgencyLevel.CRITICA


def test_mild_case_is_low() -> None:
    result = urgency.score(
        {"breathing": "não", "chest_pain": "não", "pain_intensity": 2, "fever": "não"}
    )
    assert result.score < 40
    assert result.level is UrgencyLevel.BAIXA
    assert result.manchester is not None and result.manchester.code == 4


def test_empty_answers() -> None:
    result = urgency.score({})
    assert result.score == 0
    assert result.level is UrgencyLevel.BAIXA
    assert result.symptoms == ()


def test_score_is_monotonic_in_pain() -> None:
    scores = [urgency.score({"pain_intensity": p}).score for p in range(11)]
    assert scores == sorted(scores)
    assert all(0 <= s <= 100 for s in scores)


@pytest.mark.parametrize(
    "answers,expected",
    [
        ({"breathing": "sim"}, 90),
        ({"chest_pain": "yes"}, 70),
        ({"pain_intensity": 7}, 60),
        ({"pain_intensity": "5"}, 40),
        ({"fever": "sim"}, 30),
        ({"fever_temperature": 39.5}, 50),
        ({"fever_temperature": "38,0"}, 30),
        ({"fever_temperature": 37.0}, 0),
        ({"chest_pain": "sim", "pain_intensity": 9}, 85),
    ],
)
def test_severity_candidates_take_the_max(answers: dict, expected: int) -> None:
    assert urgency.score(answers).score == expected


def test_acute_onset_escalates_above_moderate() -> None:
    acute = urgency.score({"chest_pain": "sim", "symptom_duration": "algumas horas"})
    assert acute.score == 85
    assert acute.level is UrgencyLevel.CRITICA
    # a score of exactly 40 is not escalated
    moderate = urgency.score({"pain_intensity": 5, "symptom_duration": "Menos de 1 dia"})
    assert moderate.score == 40
    chronic = urgency.score({"chest_pain": "sim", "symptom_duration": "mais de 1 semana"})
    assert chronic.score == 70


def test_escalation_is_capped() -> None:
    result = urgency.score({"breathing": "sim", "symptom_duration": 0.5})
    assert result.score == 100


def test_legacy_field_names() -> None:
    assert urgency.score({"pain_scale": 7}).score == 60
    assert urgency.score({"fever_check": "sim"}).score == 30
    assert urgency.score({"temperature": 39.2}).score == 50
    assert urgency.score({"chest_pain": "sim", "duration": "a few hours"}).score == 85
    # the canonical key wins over its alias
    assert urgency.score({"pain_scale": 9, "pain_intensity": 2}).score == 0


@pytest.mark.parametrize(
    "fever,expected",
    [
        (39.5, 50),
        ("39.5", 50),
        ("39,5 graus", 50),
        (38.0, 30),
        (37.0, 0),
        (True, 30),
    ],
)
def test_numeric_fever_answer_is_a_temperature(fever: object, expected: int) -> None:
    result = urgency.score({"fever": fever})
    assert result.score == expected
    assert ("Febre" in result.symptoms) is (expected > 0)


def test_fever_temperature_wins_over_numeric_fever() -> None:
    assert urgency.temperature({"fever_temperature": 37.0, "fever": 40}) == 37.0
    assert urgency.temperature({"fever": "sim"}) is None
    assert urgency.score({"fever_temperature": 37.0, "fever": 40}).score == 0


def test_questionnaire_answers_model() -> None:
    a = urgency.normalize_answers({"fever_check": "sim", "main_symptom": "tosse", 3: "x"})
    assert a["fever"] == "sim"
    assert a["main_symptom"] == "tosse"
    assert a["3"] == "x"
    assert a["pain_intensity"] is None
    parsed = urgency.QuestionnaireAnswers.model_validate({"duration": "algumas horas"})
    assert parsed.symptom_duration == "algumas horas"


def test_affirmative_parsing() -> None:
    assert urgency.is_affirmative("Sim, bastante")
    assert urgency.is_affirmative("  YES ")
    assert urgency.is_affirmative(True)
    assert not urgency.is_affirmative("Não")
    assert not urgency.is_affirmative("simples")
    assert not urgency.is_affirmative(None)
    assert not urgency.is_affirmative(1)


@pytest.mark.parametrize(
    "score,level",
    [
        (80, UrgencyLevel.CRITICA),
        (79, UrgencyLevel.ALTA),
        (60, UrgencyLevel.ALTA),
        (59, UrgencyLevel.MEDIA),
        (40, UrgencyLevel.MEDIA),
        (39, UrgencyLevel.BAIXA),
    ],
)
def test_level_thresholds(score: int, level: UrgencyLevel) -> None:
    assert urgency.level_for(score) is level


def test_manchester_priorities() -> None:
    assert urgency.manchester_priority(UrgencyLevel.ALTA).max_wait == "10 minutos"
    assert urgency.manchester_priority("média").color == "yellow"


def test_recommendation_add_ons() -> None:
    result = urgency.score({"medications": "Losartana", "chronic_conditions": "Hipertensão"})
    assert result.recommendations[:2] == (
        "Considere consulta médica de rotina",
        "Mantenha cuidados básicos de saúde",
    )
    assert "Leve a lista de medicamentos em uso à consulta" in result.recommendations
    assert "Informe suas condições crônicas ao profissional de saúde" in result.recommendations
    plain = urgency.score({"medications": "não", "chronic_conditions": "nenhuma"})
    assert len(plain.recommendations) == 2


def test_symptoms_and_summary() -> None:
    answers = {
        "main_symptom": "dor de cabeça",
        "symptom_duration": "algumas horas",
        "breathing": "sim",
        "chest_pain": "sim",
        "pain_intensity": 6,
    }
    result = urgency.score(answers)
    assert result.symptoms == (
        "dor de cabeça",
        "Dificuldade respiratória",
        "Dor no peito",
        "Dor nível 6/10",
    )
    text = urgency.summarize(result, answers)
    assert text.startswith("Paciente apresenta dor de cabeça com duração de algumas horas.")
    assert text.endswith("ATENÇÃO: Busque atendimento imediato!")
