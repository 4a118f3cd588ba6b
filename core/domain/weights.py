"""
Scoring tables for the health risk analyzer.

Plain name -> points mappings, wrapped read-only so they can be shared by
every analyzer in the process. Adding a symptom or diagnosis is a data change
here, never a change to the scoring logic.
"""

from collections.abc import Mapping
from types import MappingProxyType

# Points per symptom at severity 10; scaled linearly by severity / 10
SYMPTOM_WEIGHTS: Mapping[str, float] = MappingProxyType(
    {
        "chest-tightness": 30,
        "chest-pain": 30,
        "shortness-of-breath": 20,
        "rapid-heartbeat": 18,
        "dizziness": 15,
        "fever": 15,
        "confusion": 15,
        "fatigue": 12,
        "headache": 10,
        "anxiety": 10,
        "nausea": 10,
        "weakness": 10,
        "cough": 8,
    }
)
DEFAULT_SYMPTOM_WEIGHT: float = 8

# Flat points per pre-existing condition, keyed by the labels users pick at onboarding
DIAGNOSIS_RISK_WEIGHTS: Mapping[str, float] = MappingProxyType(
    {
        "Heart Disease": 25,
        "Hypertension": 20,
        "Hypertension (High BP)": 20,
        "COPD": 18,
        "Type 2 Diabetes": 15,
        "Asthma": 12,
        "Sleep Apnea": 12,
        "Anxiety Disorder": 10,
        "Thyroid Disorder": 8,
        "Depression": 8,
    }
)
DEFAULT_DIAGNOSIS_WEIGHT: float = 5

SLEEP_QUALITY_BONUS: Mapping[str, int] = MappingProxyType(
    {
        "excellent": 30,
        "good": 20,
        "average": 10,
        "poor": 0,
    }
)

CHEST_PAIN_SYMPTOMS: frozenset[str] = frozenset({"chest-tightness", "chest-pain"})
BREATHING_SYMPTOMS: frozenset[str] = frozenset({"shortness-of-breath"})
