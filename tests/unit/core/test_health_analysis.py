"""
Tests for the rule-based health risk analyzer.

Expected scores are worked out by hand from the weight tables so that a
change to any weight or threshold shows up as a failing test.
"""

import math
from typing import Any

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from core.domain.models import (
    ActivityLevel,
    AnalysisResult,
    HealthSnapshot,
    RiskBand,
    SymptomObservation,
    Urgency,
)
from core.domain.weights import DIAGNOSIS_RISK_WEIGHTS, SYMPTOM_WEIGHTS
from core.services.health_analysis import (
    HealthRiskAnalyzer,
    analyze_health,
    normalize_symptoms,
    risk_band,
)


def snapshot(**overrides: Any) -> HealthSnapshot:
    """Quiet baseline: no symptoms, good sleep, empty history."""
    fields: dict[str, Any] = {
        "symptoms": [],
        "sleep_score": 80,
        "allergies": [],
        "past_diagnoses": [],
    }
    fields.update(overrides)
    return HealthSnapshot(**fields)


def obs(name: str, severity: int) -> SymptomObservation:
    return SymptomObservation(name=name, severity=severity)


class TestBaselineAndReasoning:
    def test_empty_snapshot_is_stable(self) -> None:
        result = analyze_health(snapshot())

        assert result.risk_score == 0
        assert result.urgency == Urgency.NORMAL
        assert result.recommended_specialist == "General Physician"
        assert result.reasoning == [
            "✅ No active symptoms reported today",
            "✨ Good sleep quality (Score: 80/100) - supporting overall health",
            "✅ STABLE: Continue healthy habits and preventive care",
        ]
        assert result.impact_breakdown.model_dump() == {
            "symptom_impact": 0,
            "sleep_impact": 0,
            "lifestyle_impact": 0,
            "medical_history_impact": 0,
        }

    def test_reasoning_follows_evaluation_order(self) -> None:
        result = analyze_health(
            snapshot(
                symptoms=[obs("cough", 6)],
                sleep_score=50,
                past_diagnoses=["Asthma", "COPD"],
                smoking=True,
                alcohol=True,
                activity_level="sedentary",
                age=60,
                allergies=["Peanuts"],
            )
        )

        prefixes = ["⚡", "📊", "🌙", "🏥", "🏥", "⚕️", "🚬", "🍺", "🪑", "🧓", "🤧", "🔴"]
        assert len(result.reasoning) == len(prefixes)
        for line, prefix in zip(result.reasoning, prefixes, strict=True):
            assert line.startswith(prefix), line

        # 4.8 + 15 + (12 + 18 + 8) + (15 + 8 + 12) + 12 + 2 = 106.8, clamped
        assert result.risk_score == 100
        assert result.impact_breakdown.symptom_impact == 5
        assert result.impact_breakdown.sleep_impact == 15
        assert result.impact_breakdown.lifestyle_impact == 35
        assert result.impact_breakdown.medical_history_impact == 52

    def test_first_hyphen_in_name_becomes_space_in_reasoning(self) -> None:
        result = analyze_health(snapshot(symptoms=[obs("shortness-of-breath", 9)]))

        assert result.reasoning[0] == (
            "⚠️ High severity shortness of-breath (9/10) detected - requires immediate attention"
        )

    def test_fractional_sleep_average_is_shown_to_one_decimal(self) -> None:
        result = analyze_health(snapshot(sleep_score=72.3333))

        assert "💤 Suboptimal sleep (Score: 72.3/100) - room for improvement" in result.reasoning
        assert result.impact_breakdown.sleep_impact == 8

    def test_analysis_is_idempotent(self) -> None:
        snap = snapshot(symptoms=[obs("fever", 7), obs("cough", 4)], age=45, smoking=True)

        assert analyze_health(snap) == analyze_health(snap)

    def test_accepts_plain_mapping(self) -> None:
        result = analyze_health({"symptoms": ["fatigue"], "sleep_score": 80})

        assert isinstance(result, AnalysisResult)
        assert result.risk_score == 6  # 12 * 5/10


class TestSymptomScoring:
    def test_three_mild_unknown_symptoms_get_multi_symptom_bonus(self) -> None:
        result = analyze_health(
            snapshot(symptoms=[obs("itching", 3), obs("sneezing", 3), obs("hiccups", 3)])
        )

        # 3 x (8 x 0.3) + 10 = 17.2
        assert result.risk_score == 17
        assert result.urgency == Urgency.NORMAL
        assert result.impact_breakdown.symptom_impact == 17
        assert result.reasoning[0].startswith("🔴 Multiple symptoms (3) detected")

    def test_plain_names_use_overall_severity(self) -> None:
        result = analyze_health(snapshot(symptoms=["headache", "fever"], overall_severity=8))

        # (10 + 15) x 0.8 = 20; severity 8 makes both "high severity"
        assert result.risk_score == 20
        assert result.urgency == Urgency.EMERGENCY
        assert result.recommended_specialist == "Emergency Medicine Specialist"
        assert "📊 2 active symptom(s) analyzed" in result.reasoning

    def test_plain_names_default_to_severity_five(self) -> None:
        result = analyze_health(snapshot(symptoms=["fatigue"]))

        assert result.risk_score == 6
        # Severity 5 is below the "moderate" reasoning threshold
        assert result.reasoning[0] == "📊 1 active symptom(s) analyzed"

    def test_zero_overall_severity_falls_back_to_default(self) -> None:
        observations = normalize_symptoms(["fatigue"], overall_severity=0)

        assert observations == [obs("fatigue", 5)]

    def test_observations_pass_through_unchanged(self) -> None:
        given_obs = [obs("fever", 9)]

        assert normalize_symptoms(given_obs, overall_severity=2) == given_obs

    def test_out_of_range_severity_is_not_clamped(self) -> None:
        result = analyze_health(snapshot(symptoms=[obs("fatigue", -10)]))

        assert result.impact_breakdown.symptom_impact == -12
        assert result.risk_score == 0

    def test_custom_weight_tables_and_half_up_rounding(self) -> None:
        analyzer = HealthRiskAnalyzer(symptom_weights={"tremor": 5}, diagnosis_weights={})

        result = analyzer.analyze(snapshot(symptoms=[obs("tremor", 5)]))

        # 5 x 0.5 = 2.5 rounds up, not to even
        assert result.risk_score == 3
        assert result.impact_breakdown.symptom_impact == 3

    @pytest.mark.parametrize(
        "name,severity,risk_score,urgency,specialist,symptom_impact",
        [
            (
                "chest-pain",
                10**308,
                100,
                Urgency.EMERGENCY,
                "Cardiologist / Emergency Room",
                1_000_000,
            ),
            ("fever", 10**400, 100, Urgency.EMERGENCY, "Emergency Medicine Specialist", 1_000_000),
            ("fever", -(10**400), 0, Urgency.NORMAL, "General Physician", -1_000_000),
        ],
    )
    def test_huge_severities_saturate_instead_of_overflowing(
        self,
        name: str,
        severity: int,
        risk_score: int,
        urgency: Urgency,
        specialist: str,
        symptom_impact: int,
    ) -> None:
        result = analyze_health(snapshot(symptoms=[obs(name, severity)]))

        assert result.risk_score == risk_score
        assert result.urgency is urgency
        assert result.recommended_specialist == specialist
        assert result.impact_breakdown.symptom_impact == symptom_impact

    def test_severity_past_int_display_limit_is_shown_as_magnitude(self) -> None:
        result = analyze_health(snapshot(symptoms=[obs("fever", 10**5000)]))

        assert result.risk_score == 100
        assert result.reasoning[0].startswith("⚠️ High severity fever (~1e")


class TestSleepScoring:
    @pytest.mark.parametrize(
        "sleep_score,points,prefix",
        [
            (10, 25, "😴 Critical sleep deficiency"),
            (39.9, 25, "😴 Critical sleep deficiency"),
            (40, 15, "🌙 Poor sleep quality"),
            (59, 15, "🌙 Poor sleep quality"),
            (60, 8, "💤 Suboptimal sleep"),
            (74, 8, "💤 Suboptimal sleep"),
            (75, 0, "✨ Good sleep quality"),
            (100, 0, "✨ Good sleep quality"),
        ],
    )
    def test_sleep_bands(self, sleep_score: float, points: int, prefix: str) -> None:
        result = analyze_health(snapshot(sleep_score=sleep_score))

        assert result.impact_breakdown.sleep_impact == points
        assert result.risk_score == points
        assert result.reasoning[1].startswith(prefix)

    @pytest.mark.parametrize("sleep_score", [math.nan, math.inf])
    def test_non_finite_sleep_score_still_gets_a_sleep_line(self, sleep_score: float) -> None:
        result = analyze_health(snapshot(sleep_score=sleep_score))

        assert result.impact_breakdown.sleep_impact == 0
        assert result.reasoning[1].startswith("✨ Good sleep quality")


class TestMedicalHistoryAndLifestyle:
    def test_single_diagnosis_adds_its_weight(self) -> None:
        result = analyze_health(snapshot(past_diagnoses=["Heart Disease"]))

        assert result.risk_score == 25
        assert "🏥 Pre-existing condition: Heart Disease (+25 risk points)" in result.reasoning
        assert not any(line.startswith("⚕️") for line in result.reasoning)

    def test_unknown_diagnosis_uses_default_weight(self) -> None:
        result = analyze_health(snapshot(past_diagnoses=["Migraine"]))

        assert result.risk_score == 5
        assert "🏥 Pre-existing condition: Migraine (+5 risk points)" in result.reasoning

    def test_onboarding_label_for_hypertension_is_weighted(self) -> None:
        assert DIAGNOSIS_RISK_WEIGHTS["Hypertension (High BP)"] == 20
        assert analyze_health(snapshot(past_diagnoses=["Hypertension (High BP)"])).risk_score == 20

    def test_two_diagnoses_add_coordination_bonus(self) -> None:
        result = analyze_health(snapshot(past_diagnoses=["Depression", "Thyroid Disorder"]))

        assert result.risk_score == 24  # 8 + 8 + 8
        assert result.impact_breakdown.medical_history_impact == 24
        assert (
            "⚕️ Multiple chronic conditions require coordinated care management"
            in result.reasoning
        )

    def test_active_bonus_reduces_total_but_not_lifestyle_impact(self) -> None:
        result = analyze_health(snapshot(smoking=True, activity_level=ActivityLevel.ACTIVE))

        assert result.risk_score == 10
        assert result.impact_breakdown.lifestyle_impact == 15
        assert "🏃 Active lifestyle is supporting cardiovascular health" in result.reasoning

    def test_active_bonus_cannot_push_score_below_zero(self) -> None:
        result = analyze_health(snapshot(activity_level="active"))

        assert result.risk_score == 0
        assert result.impact_breakdown.lifestyle_impact == 0

    @pytest.mark.parametrize("level", ["light", "moderate", "very-active"])
    def test_other_activity_levels_are_neutral(self, level: str) -> None:
        result = analyze_health(snapshot(activity_level=level))

        assert result.risk_score == 0
        assert len(result.reasoning) == 3

    @pytest.mark.parametrize(
        "age,points",
        [(None, 0), (30, 0), (35, 0), (36, 5), (50, 5), (51, 12), (65, 12), (66, 18), (90, 18)],
    )
    def test_age_bands_are_mutually_exclusive(self, age: int | None, points: int) -> None:
        result = analyze_health(snapshot(age=age))

        assert result.risk_score == points
        assert result.impact_breakdown.medical_history_impact == points
        age_lines = [line for line in result.reasoning if line[0] in "👴🧓📈"]
        assert len(age_lines) == (1 if points else 0)

    def test_allergies_add_two_points_each(self) -> None:
        result = analyze_health(snapshot(allergies=["Peanuts", "Latex", "Pollen"]))

        assert result.risk_score == 6
        assert (
            "🤧 3 known allergy/allergies documented for medication safety" in result.reasoning
        )


class TestUrgencyClassification:
    def test_severe_chest_pain_is_an_emergency_room_case(self) -> None:
        result = analyze_health(snapshot(symptoms=[obs("chest-pain", 9)]))

        assert result.risk_score == 27
        assert result.urgency == Urgency.EMERGENCY
        assert result.recommended_specialist == "Cardiologist / Emergency Room"
        assert result.reasoning[-1].startswith("🚨 EMERGENCY")

    def test_chest_symptom_with_any_other_severe_symptom_triggers_rule(self) -> None:
        result = analyze_health(snapshot(symptoms=[obs("chest-tightness", 4), obs("fever", 8)]))

        assert result.recommended_specialist == "Cardiologist / Emergency Room"

    def test_severe_breathing_issue_goes_to_pulmonologist(self) -> None:
        result = analyze_health(snapshot(symptoms=[obs("shortness-of-breath", 8)]))

        assert result.urgency == Urgency.EMERGENCY
        assert result.recommended_specialist == "Pulmonologist"
        assert result.reasoning[-1].startswith("🔴 HIGH RISK")

    def test_high_score_without_severe_symptoms_is_emergency(self) -> None:
        result = analyze_health(
            snapshot(past_diagnoses=["Heart Disease", "COPD"], age=70, smoking=True)
        )

        # 25 + 18 + 8 + 18 + 15 = 84
        assert result.risk_score == 84
        assert result.urgency == Urgency.EMERGENCY
        assert result.recommended_specialist == "Emergency Medicine Specialist"

    def test_high_score_with_mild_chest_pain_goes_to_cardiologist(self) -> None:
        result = analyze_health(
            snapshot(
                symptoms=[obs("chest-pain", 5)],
                past_diagnoses=["Heart Disease", "Hypertension"],
                age=70,
                smoking=True,
            )
        )

        assert result.risk_score == 100
        assert result.urgency == Urgency.EMERGENCY
        assert result.recommended_specialist == "Cardiologist"

    @pytest.mark.parametrize(
        "overrides,expected_score,expected_specialist",
        [
            # 15 + 8 + 12 + 18
            (
                {"smoking": True, "alcohol": True, "activity_level": "sedentary", "age": 70},
                53,
                "General Physician",
            ),
            # 12 + 25 + 8 + 15: asthma outranks heart disease
            (
                {"past_diagnoses": ["Asthma", "Heart Disease"], "sleep_score": 55},
                60,
                "Pulmonologist",
            ),
            # 15 + 25 + 15
            (
                {"smoking": True, "past_diagnoses": ["Heart Disease"], "sleep_score": 50},
                55,
                "Cardiologist",
            ),
            # 15 + 15 + 12 + 15
            (
                {
                    "past_diagnoses": ["Type 2 Diabetes"],
                    "smoking": True,
                    "activity_level": "sedentary",
                    "sleep_score": 45,
                },
                57,
                "Endocrinologist",
            ),
            # 5 + 5 + 25 + 15 + 8
            (
                {
                    "symptoms": [obs("headache", 5), obs("nausea", 5)],
                    "sleep_score": 30,
                    "smoking": True,
                    "alcohol": True,
                },
                58,
                "General Physician (Internal Medicine)",
            ),
        ],
    )
    def test_monitor_tier_specialist_selection(
        self, overrides: dict[str, Any], expected_score: int, expected_specialist: str
    ) -> None:
        result = analyze_health(snapshot(**overrides))

        assert result.risk_score == expected_score
        assert result.urgency == Urgency.MONITOR
        assert result.recommended_specialist == expected_specialist
        assert result.reasoning[-1] == "🟡 MONITOR: Schedule medical checkup within 48-72 hours"

    def test_breathing_symptom_selects_pulmonologist_in_monitor_tier(self) -> None:
        result = analyze_health(
            snapshot(
                symptoms=[obs("shortness-of-breath", 6), obs("cough", 5)],
                past_diagnoses=["Asthma"],
                sleep_score=55,
                smoking=True,
            )
        )

        # 12 + 4 + 12 + 15 + 15
        assert result.risk_score == 58
        assert result.recommended_specialist == "Pulmonologist"

    def test_routine_tier(self) -> None:
        result = analyze_health(snapshot(smoking=True, sleep_score=50))

        assert result.risk_score == 30
        assert result.urgency == Urgency.MONITOR
        assert result.recommended_specialist == "General Physician"
        assert result.reasoning[-1].startswith("🟢 ROUTINE")

    def test_just_below_routine_is_normal(self) -> None:
        result = analyze_health(snapshot(smoking=True, sleep_score=65, age=40))

        assert result.risk_score == 28
        assert result.urgency == Urgency.NORMAL


class TestSummary:
    @pytest.mark.parametrize(
        "score,band",
        [
            (0, RiskBand.MINIMAL),
            (24, RiskBand.MINIMAL),
            (25, RiskBand.LOW),
            (44, RiskBand.LOW),
            (45, RiskBand.MODERATE),
            (64, RiskBand.MODERATE),
            (65, RiskBand.ELEVATED),
            (79, RiskBand.ELEVATED),
            (80, RiskBand.HIGH),
            (100, RiskBand.HIGH),
        ],
    )
    def test_risk_band_boundaries(self, score: int, band: RiskBand) -> None:
        assert risk_band(score) == band

    def test_quiet_summary(self) -> None:
        summary = analyze_health(snapshot()).summary

        assert summary == (
            "Your current health risk assessment is 0/100 (minimal risk). "
            "No active symptoms reported today. "
            "Sleep patterns are supporting your health. "
            "✅ Continue maintaining healthy habits, daily health logging,"
            " and preventive care routines."
        )

    def test_emergency_summary_mentions_severe_symptoms_and_history(self) -> None:
        summary = analyze_health(
            snapshot(
                symptoms=[obs("chest-pain", 9), obs("cough", 3)],
                sleep_score=45,
                past_diagnoses=["Asthma"],
            )
        ).summary

        assert "You have reported 1 severe symptom(s) that require attention." in summary
        assert "Your sleep quality is critically low" in summary
        assert "Your medical history (1 condition(s)) requires ongoing monitoring." in summary
        assert summary.endswith("Do not delay seeking professional care.")

    def test_summary_with_mild_symptoms(self) -> None:
        result = analyze_health(snapshot(symptoms=[obs("cough", 6)], sleep_score=65, smoking=True))
        summary = result.summary

        # 4.8 + 8 + 15 = 27.8
        assert result.risk_score == 28
        assert "You have logged 1 symptom(s) with mild to moderate severity." in summary
        assert "Sleep quality needs improvement for optimal recovery." in summary

    def test_monitor_action_directive(self) -> None:
        summary = analyze_health(snapshot(smoking=True, sleep_score=50)).summary

        assert "(low risk)" in summary
        assert "consult a healthcare provider within 2-3 days" in summary


class TestSnapshotLeniency:
    def test_null_lists_become_empty(self) -> None:
        snap = HealthSnapshot(symptoms=None, allergies=None, past_diagnoses=None, sleep_score=80)

        assert snap.symptoms == [] and snap.allergies == [] and snap.past_diagnoses == []

    def test_activity_level_is_case_insensitive(self) -> None:
        assert snapshot(activity_level="Very-Active").activity_level == ActivityLevel.VERY_ACTIVE

    def test_unknown_activity_level_is_treated_as_missing(self) -> None:
        assert snapshot(activity_level="athlete").activity_level is None

    def test_symptom_dicts_become_observations(self) -> None:
        snap = snapshot(symptoms=[{"name": "fever", "severity": 7}, "cough"])

        assert snap.symptoms == [obs("fever", 7), "cough"]

    def test_observations_are_immutable(self) -> None:
        observation = obs("fever", 7)

        with pytest.raises(ValueError, match="frozen"):
            observation.severity = 2  # type: ignore[misc]


_symptom_names = st.sampled_from([*SYMPTOM_WEIGHTS, "mystery-ache"])
_diagnoses = st.sampled_from([*DIAGNOSIS_RISK_WEIGHTS, "Arthritis"])
# Mostly everyday severities, occasionally far past what a float can hold
_severities = st.integers(-20, 30) | st.integers(-(10**400), 10**400)


@st.composite
def snapshots(draw: st.DrawFn) -> HealthSnapshot:
    plain = draw(st.booleans())
    if plain:
        symptoms: list[Any] = draw(st.lists(_symptom_names, max_size=6))
    else:
        symptoms = draw(
            st.lists(
                st.builds(SymptomObservation, name=_symptom_names, severity=_severities),
                max_size=6,
            )
        )
    return HealthSnapshot(
        symptoms=symptoms,
        overall_severity=draw(st.none() | st.integers(0, 10)),
        sleep_score=draw(st.floats(min_value=-50, max_value=150, allow_nan=False)),
        allergies=draw(st.lists(st.text(min_size=1, max_size=10), max_size=5)),
        past_diagnoses=draw(st.lists(_diagnoses, max_size=5)),
        age=draw(st.none() | st.integers(0, 120)),
        smoking=draw(st.none() | st.booleans()),
        alcohol=draw(st.none() | st.booleans()),
        activity_level=draw(st.none() | st.sampled_from(list(ActivityLevel))),
    )


class TestProperties:
    @settings(max_examples=200)
    @given(snap=snapshots())
    def test_risk_score_is_always_clamped(self, snap: HealthSnapshot) -> None:
        result = analyze_health(snap)

        assert 0 <= result.risk_score <= 100
        assert result.reasoning  # never empty: at least symptoms, sleep and urgency lines

    @given(snap=snapshots())
    def test_emergency_whenever_any_symptom_is_severe(self, snap: HealthSnapshot) -> None:
        observations = normalize_symptoms(snap.symptoms, snap.overall_severity)
        result = analyze_health(snap)

        if any(o.severity >= 8 for o in observations):
            assert result.urgency == Urgency.EMERGENCY
