"""
Rule-based health risk analysis.

Turns a HealthSnapshot into a 0-100 risk score, an urgency tier, a specialist
recommendation, and a human-readable reasoning trace.

Scoring pipeline (each step appends to the reasoning trace in this order):
1. Symptoms: weight x severity/10 each, +10 when three or more are present
2. Sleep: fixed penalty per sleep-score band
3. Medical history: points per diagnosis, +8 for two or more conditions
4. Lifestyle: smoking, alcohol, sedentary (+) and active (-5, total only)
5. Age band, then allergy count
6. Clamp to 0-100, then classify urgency with a fixed rule precedence

The analyzer never raises for a valid snapshot: unknown symptoms and
diagnoses fall back to default weights, missing fields count as absent.
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from core.domain.models import (
    ActivityLevel,
    AnalysisResult,
    HealthSnapshot,
    ImpactBreakdown,
    RiskBand,
    SymptomObservation,
    Urgency,
)
from core.domain.weights import (
    BREATHING_SYMPTOMS,
    CHEST_PAIN_SYMPTOMS,
    DEFAULT_DIAGNOSIS_WEIGHT,
    DEFAULT_SYMPTOM_WEIGHT,
    DIAGNOSIS_RISK_WEIGHTS,
    SYMPTOM_WEIGHTS,
)

logger = structlog.get_logger(__name__)

DEFAULT_SPECIALIST = "General Physician"

HIGH_SEVERITY = 8
MODERATE_SEVERITY = 6
SUMMARY_SEVERE_SEVERITY = 7
MULTI_SYMPTOM_COUNT = 3
MULTI_SYMPTOM_BONUS = 10
MULTI_DIAGNOSIS_COUNT = 2
MULTI_DIAGNOSIS_BONUS = 8
POINTS_PER_ALLERGY = 2

# (upper bound exclusive, points, reasoning template); scores matching no band count as good
SLEEP_PENALTY_BANDS: tuple[tuple[float, int, str], ...] = (
    (
        40,
        25,
        "😴 Critical sleep deficiency (Score: {score}/100) - "
        "severely impacting immune system and cognitive function",
    ),
    (
        60,
        15,
        "🌙 Poor sleep quality (Score: {score}/100) - "
        "increasing stress and inflammation markers",
    ),
    (75, 8, "💤 Suboptimal sleep (Score: {score}/100) - room for improvement"),
)
GOOD_SLEEP_TEMPLATE = "✨ Good sleep quality (Score: {score}/100) - supporting overall health"

# (exclusive lower age bound, points, reasoning); highest matching band only
AGE_BANDS: tuple[tuple[int, int, str], ...] = (
    (65, 18, "👴 Age-related health considerations require regular monitoring"),
    (50, 12, "🧓 Middle-age risk factors applied for preventive care"),
    (35, 5, "📈 Age-appropriate health screening recommended"),
)

SMOKING_POINTS = 15
ALCOHOL_POINTS = 8
SEDENTARY_POINTS = 12
ACTIVE_BONUS = 5

EMERGENCY_RISK_SCORE = 75
MONITOR_RISK_SCORE = 50
ROUTINE_RISK_SCORE = 30

# Symptom impacts saturate here so extreme severities stay finite
MAX_ABS_IMPACT = 1_000_000.0


def _round_half_up(value: float) -> int:
    """Halves round up (2.5 -> 3, -2.5 -> -2); built-in round() would go to even."""
    return math.floor(value + 0.5)


def _format_score(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.1f}"


def _display_name(symptom_name: str) -> str:
    # First hyphen only: "shortness-of-breath" reads "shortness of-breath"
    return symptom_name.replace("-", " ", 1)


def _format_severity(severity: int) -> str:
    try:
        return str(severity)
    except ValueError:
        # Past the interpreter's int-to-str digit limit, show the magnitude
        sign = "-" if severity < 0 else ""
        return f"{sign}~1e{int(abs(severity).bit_length() * math.log10(2))}"


def _symptom_impact(weight: float, severity: int) -> float:
    """weight x severity/10, saturated at MAX_ABS_IMPACT instead of overflowing."""
    if weight == 0 or severity == 0:
        return 0.0
    try:
        impact = weight * (severity / 10)
    except OverflowError:
        impact = math.inf if (weight > 0) == (severity > 0) else -math.inf
    return max(-MAX_ABS_IMPACT, min(MAX_ABS_IMPACT, impact))


def risk_band(score: float) -> RiskBand:
    """Qualitative band used in the summary text."""
    if score < 25:
        return RiskBand.MINIMAL
    if score < 45:
        return RiskBand.LOW
    if score < 65:
        return RiskBand.MODERATE
    if score < 80:
        return RiskBand.ELEVATED
    return RiskBand.HIGH


def normalize_symptoms(
    symptoms: Sequence[SymptomObservation | str],
    overall_severity: int | None = None,
    default_severity: int = 5,
) -> list[SymptomObservation]:
    """Give plain symptom names the overall severity; observations pass through."""
    severity = overall_severity or default_severity
    return [
        symptom if isinstance(symptom, SymptomObservation)
        else SymptomObservation(name=symptom, severity=severity)
        for symptom in symptoms
    ]


@dataclass
class _ScoreSheet:
    """Running totals for one analysis."""

    total: float = 0.0
    symptom_impact: float = 0.0
    sleep_impact: float = 0.0
    lifestyle_impact: float = 0.0
    medical_history_impact: float = 0.0
    reasoning: list[str] = field(default_factory=list)

    def breakdown(self) -> ImpactBreakdown:
        return ImpactBreakdown(
            symptom_impact=_round_half_up(self.symptom_impact),
            sleep_impact=_round_half_up(self.sleep_impact),
            lifestyle_impact=_round_half_up(self.lifestyle_impact),
            medical_history_impact=_round_half_up(self.medical_history_impact),
        )


class HealthRiskAnalyzer:
    """
    Scores health snapshots against fixed weight tables.

    Stateless between calls: the same snapshot always yields the same result,
    so one instance can be shared freely.
    """

    def __init__(
        self,
        symptom_weights: Mapping[str, float] = SYMPTOM_WEIGHTS,
        diagnosis_weights: Mapping[str, float] = DIAGNOSIS_RISK_WEIGHTS,
        default_symptom_severity: int = 5,
    ) -> None:
        self.symptom_weights = symptom_weights
        self.diagnosis_weights = diagnosis_weights
        self.default_symptom_severity = default_symptom_severity
        self.logger = logger.bind(component="health_risk_analyzer")

    def analyze(self, snapshot: HealthSnapshot) -> AnalysisResult:
        observations = normalize_symptoms(
            snapshot.symptoms, snapshot.overall_severity, self.default_symptom_severity
        )
        sheet = _ScoreSheet()

        self._score_symptoms(observations, sheet)
        self._score_sleep(snapshot.sleep_score, sheet)
        self._score_medical_history(snapshot.past_diagnoses, sheet)
        self._score_lifestyle(snapshot, sheet)
        self._score_age(snapshot.age, sheet)
        self._score_allergies(snapshot.allergies, sheet)

        risk_score = _round_half_up(min(100.0, max(0.0, sheet.total)))
        urgency, specialist = self._classify(risk_score, observations, snapshot, sheet)

        result = AnalysisResult(
            risk_score=risk_score,
            urgency=urgency,
            recommended_specialist=specialist,
            reasoning=sheet.reasoning,
            summary=self._build_summary(risk_score, urgency, snapshot, observations),
            impact_breakdown=sheet.breakdown(),
        )

        self.logger.debug(
            "health_analysis_completed",
            risk_score=risk_score,
            raw_score=round(sheet.total, 2),
            urgency=urgency.value,
            symptom_count=len(observations),
            diagnosis_count=len(snapshot.past_diagnoses),
        )
        return result

    def _score_symptoms(self, observations: list[SymptomObservation], sheet: _ScoreSheet) -> None:
        if not observations:
            sheet.reasoning.append("✅ No active symptoms reported today")
            return

        for observation in observations:
            weight = self.symptom_weights.get(observation.name, DEFAULT_SYMPTOM_WEIGHT)
            impact = _symptom_impact(weight, observation.severity)
            sheet.total += impact
            sheet.symptom_impact += impact

            name = _display_name(observation.name)
            severity = _format_severity(observation.severity)
            if observation.severity >= HIGH_SEVERITY:
                sheet.reasoning.append(
                    f"⚠️ High severity {name} ({severity}/10) detected"
                    " - requires immediate attention"
                )
            elif observation.severity >= MODERATE_SEVERITY:
                sheet.reasoning.append(f"⚡ Moderate {name} ({severity}/10) reported")

        if len(observations) >= MULTI_SYMPTOM_COUNT:
            sheet.total += MULTI_SYMPTOM_BONUS
            sheet.symptom_impact += MULTI_SYMPTOM_BONUS
            sheet.reasoning.append(
                f"🔴 Multiple symptoms ({len(observations)}) detected"
                " - indicates potential systemic issue"
            )
        else:
            sheet.reasoning.append(f"📊 {len(observations)} active symptom(s) analyzed")

    def _score_sleep(self, sleep_score: float, sheet: _ScoreSheet) -> None:
        for upper_bound, points, template in SLEEP_PENALTY_BANDS:
            if sleep_score < upper_bound:
                sheet.total += points
                sheet.sleep_impact += points
                sheet.reasoning.append(template.format(score=_format_score(sleep_score)))
                return
        # Also reached for NaN, which compares false against every bound
        sheet.reasoning.append(GOOD_SLEEP_TEMPLATE.format(score=_format_score(sleep_score)))

    def _score_medical_history(self, diagnoses: list[str], sheet: _ScoreSheet) -> None:
        for diagnosis in diagnoses:
            risk = self.diagnosis_weights.get(diagnosis, DEFAULT_DIAGNOSIS_WEIGHT)
            sheet.total += risk
            sheet.medical_history_impact += risk
            sheet.reasoning.append(
                f"🏥 Pre-existing condition: {diagnosis} (+{_format_score(risk)} risk points)"
            )

        if len(diagnoses) >= MULTI_DIAGNOSIS_COUNT:
            sheet.total += MULTI_DIAGNOSIS_BONUS
            sheet.medical_history_impact += MULTI_DIAGNOSIS_BONUS
            sheet.reasoning.append(
                "⚕️ Multiple chronic conditions require coordinated care management"
            )

    def _score_lifestyle(self, snapshot: HealthSnapshot, sheet: _ScoreSheet) -> None:
        if snapshot.smoking:
            sheet.total += SMOKING_POINTS
            sheet.lifestyle_impact += SMOKING_POINTS
            sheet.reasoning.append(
                "🚬 Smoking significantly increases cardiovascular and respiratory risks"
            )

        if snapshot.alcohol:
            sheet.total += ALCOHOL_POINTS
            sheet.lifestyle_impact += ALCOHOL_POINTS
            sheet.reasoning.append(
                "🍺 Regular alcohol consumption affects liver and metabolic health"
            )

        if snapshot.activity_level == ActivityLevel.SEDENTARY:
            sheet.total += SEDENTARY_POINTS
            sheet.lifestyle_impact += SEDENTARY_POINTS
            sheet.reasoning.append(
                "🪑 Sedentary lifestyle increases risk of metabolic syndrome"
                " and cardiovascular issues"
            )
        elif snapshot.activity_level == ActivityLevel.ACTIVE:
            # Bonus reduces the total only; the lifestyle subtotal never goes down
            sheet.total -= ACTIVE_BONUS
            sheet.reasoning.append("🏃 Active lifestyle is supporting cardiovascular health")

    def _score_age(self, age: int | None, sheet: _ScoreSheet) -> None:
        if not age:
            return
        for lower_bound, points, message in AGE_BANDS:
            if age > lower_bound:
                sheet.total += points
                sheet.medical_history_impact += points
                sheet.reasoning.append(message)
                return

    def _score_allergies(self, allergies: list[str], sheet: _ScoreSheet) -> None:
        if not allergies:
            return
        points = POINTS_PER_ALLERGY * len(allergies)
        sheet.total += points
        sheet.medical_history_impact += points
        sheet.reasoning.append(
            f"🤧 {len(allergies)} known allergy/allergies documented for medication safety"
        )

    def _classify(
        self,
        risk_score: int,
        observations: list[SymptomObservation],
        snapshot: HealthSnapshot,
        sheet: _ScoreSheet,
    ) -> tuple[Urgency, str]:
        """Rules are checked in order and the first match wins."""
        has_chest_pain = any(o.name in CHEST_PAIN_SYMPTOMS for o in observations)
        has_breathing_issue = any(o.name in BREATHING_SYMPTOMS for o in observations)
        has_severe_symptom = any(o.severity >= HIGH_SEVERITY for o in observations)

        if has_chest_pain and has_severe_symptom:
            sheet.reasoning.append(
                "🚨 EMERGENCY: Chest pain with high severity - seek immediate medical attention"
            )
            return Urgency.EMERGENCY, "Cardiologist / Emergency Room"

        if risk_score >= EMERGENCY_RISK_SCORE or has_severe_symptom:
            if has_chest_pain:
                specialist = "Cardiologist"
            elif has_breathing_issue:
                specialist = "Pulmonologist"
            else:
                specialist = "Emergency Medicine Specialist"
            sheet.reasoning.append(
                "🔴 HIGH RISK: Immediate medical consultation strongly recommended"
            )
            return Urgency.EMERGENCY, specialist

        if risk_score >= MONITOR_RISK_SCORE:
            diagnoses = snapshot.past_diagnoses
            if "Asthma" in diagnoses or has_breathing_issue:
                specialist = "Pulmonologist"
            elif "Heart Disease" in diagnoses:
                specialist = "Cardiologist"
            elif "Type 2 Diabetes" in diagnoses:
                specialist = "Endocrinologist"
            elif len(observations) >= 2:
                specialist = "General Physician (Internal Medicine)"
            else:
                specialist = DEFAULT_SPECIALIST
            sheet.reasoning.append("🟡 MONITOR: Schedule medical checkup within 48-72 hours")
            return Urgency.MONITOR, specialist

        if risk_score >= ROUTINE_RISK_SCORE:
            sheet.reasoning.append("🟢 ROUTINE: Monitor symptoms and schedule regular checkup")
            return Urgency.MONITOR, DEFAULT_SPECIALIST

        sheet.reasoning.append("✅ STABLE: Continue healthy habits and preventive care")
        return Urgency.NORMAL, DEFAULT_SPECIALIST

    def _build_summary(
        self,
        risk_score: int,
        urgency: Urgency,
        snapshot: HealthSnapshot,
        observations: list[SymptomObservation],
    ) -> str:
        parts = [
            f"Your current health risk assessment is {risk_score}/100 "
            f"({risk_band(risk_score).value} risk)."
        ]

        if observations:
            severe = [o for o in observations if o.severity >= SUMMARY_SEVERE_SEVERITY]
            if severe:
                parts.append(
                    f"You have reported {len(severe)} severe symptom(s) that require attention."
                )
            else:
                parts.append(
                    f"You have logged {len(observations)} symptom(s)"
                    " with mild to moderate severity."
                )
        else:
            parts.append("No active symptoms reported today.")

        if snapshot.sleep_score < 50:
            parts.append(
                "Your sleep quality is critically low and significantly impacting your health."
            )
        elif snapshot.sleep_score < 70:
            parts.append("Sleep quality needs improvement for optimal recovery.")
        else:
            parts.append("Sleep patterns are supporting your health.")

        if snapshot.past_diagnoses:
            parts.append(
                f"Your medical history ({len(snapshot.past_diagnoses)} condition(s))"
                " requires ongoing monitoring."
            )

        if urgency == Urgency.EMERGENCY:
            parts.append(
                "⚠️ Based on current indicators, immediate medical consultation is strongly"
                " recommended. Do not delay seeking professional care."
            )
        elif urgency == Urgency.MONITOR:
            parts.append(
                "📋 Please monitor your symptoms closely and consult a healthcare provider"
                " within 2-3 days if symptoms persist or worsen."
            )
        else:
            parts.append(
                "✅ Continue maintaining healthy habits, daily health logging,"
                " and preventive care routines."
            )

        return " ".join(parts)


_default_analyzer = HealthRiskAnalyzer()


def analyze_health(snapshot: HealthSnapshot | Mapping[str, Any]) -> AnalysisResult:
    """Analyze a snapshot with the process-wide default weight tables."""
    if not isinstance(snapshot, HealthSnapshot):
        snapshot = HealthSnapshot.model_validate(snapshot)
    return _default_analyzer.analyze(snapshot)
