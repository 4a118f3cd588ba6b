"""
Domain models for personal health logging and triage.

These models represent the core business concepts and are framework-agnostic.
Snapshots are deliberately permissive: missing profile data is treated as
absent rather than rejected, so an analysis can always be produced.
"""

from datetime import UTC, date, datetime
from enum import Enum
from typing import Any, Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ActivityLevel(str, Enum):
    """Self-reported physical activity."""

    SEDENTARY = "sedentary"
    LIGHT = "light"
    MODERATE = "moderate"
    ACTIVE = "active"
    VERY_ACTIVE = "very-active"


class SleepQuality(str, Enum):
    """Subjective rating of a night's sleep."""

    EXCELLENT = "excellent"
    GOOD = "good"
    AVERAGE = "average"
    POOR = "poor"


class Urgency(str, Enum):
    """Triage tier, ordered from least to most urgent."""

    NORMAL = "normal"
    MONITOR = "monitor"
    EMERGENCY = "emergency"


class RiskBand(str, Enum):
    """Qualitative wording for a numeric risk score."""

    MINIMAL = "minimal"
    LOW = "low"
    MODERATE = "moderate"
    ELEVATED = "elevated"
    HIGH = "high"


class SymptomObservation(BaseModel):
    """A single symptom with its reported severity (nominally 1-10)."""

    model_config = ConfigDict(frozen=True)

    name: str
    severity: int


def _none_to_list(v: Any) -> Any:
    return [] if v is None else v


def _coerce_activity_level(v: Any) -> Any:
    # Unknown labels from older profiles are treated as "not reported"
    if v is None or isinstance(v, ActivityLevel):
        return v
    try:
        return ActivityLevel(str(v).strip().lower())
    except ValueError:
        return None


class HealthSnapshot(BaseModel):
    """Everything the risk analyzer looks at, gathered fresh for each analysis."""

    symptoms: list[SymptomObservation | str] = Field(default_factory=list)
    overall_severity: int | None = Field(
        None, description="Severity applied to every symptom given as a plain name"
    )
    sleep_score: float = Field(default=70.0, description="Rolling average of recent sleep scores")
    allergies: list[str] = Field(default_factory=list)
    past_diagnoses: list[str] = Field(default_factory=list)
    age: int | None = None
    smoking: bool | None = None
    alcohol: bool | None = None
    activity_level: ActivityLevel | None = None

    @field_validator("symptoms", "allergies", "past_diagnoses", mode="before")
    @classmethod
    def lists_may_be_null(cls, v: Any) -> Any:
        return _none_to_list(v)

    @field_validator("activity_level", mode="before")
    @classmethod
    def lenient_activity_level(cls, v: Any) -> Any:
        return _coerce_activity_level(v)


class ImpactBreakdown(BaseModel):
    """Per-category contributions to the raw score, rounded but not clamped."""

    model_config = ConfigDict(frozen=True)

    symptom_impact: int = 0
    sleep_impact: int = 0
    lifestyle_impact: int = 0
    medical_history_impact: int = 0


class AnalysisResult(BaseModel):
    """Output of a single health risk analysis."""

    model_config = ConfigDict(frozen=True)

    risk_score: int = Field(ge=0, le=100)
    urgency: Urgency
    recommended_specialist: str
    reasoning: list[str]
    summary: str
    impact_breakdown: ImpactBreakdown


class AccessToken(BaseModel):
    """Freshly generated key material for sharing data with a clinician."""

    model_config = ConfigDict(frozen=True)

    display_key: str = Field(pattern=r"^[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}$")
    opaque_hash: str = Field(pattern=r"^[a-f0-9]{64}$")


AccessKeyStatus = Literal["active", "expired", "used"]


def as_utc(moment: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


class AccessGrant(BaseModel):
    """An issued access key together with its lifecycle state."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    patient_id: str
    display_key: str
    opaque_hash: str
    doctor_name: str | None = None
    hospital_name: str | None = None
    purpose: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    expires_at: datetime
    is_used: bool = False
    used_at: datetime | None = None

    @field_validator("created_at", "expires_at", "used_at", mode="after")
    @classmethod
    def _normalize_to_utc(cls, value: datetime | None) -> datetime | None:
        return None if value is None else as_utc(value)

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at < as_utc(now or datetime.now(UTC))

    def status(self, now: datetime | None = None) -> AccessKeyStatus:
        """Used wins over expired, matching how keys are listed to patients."""
        if self.is_used:
            return "used"
        if self.is_expired(now):
            return "expired"
        return "active"


class HealthLogEntry(BaseModel):
    """A symptom log as entered by the user."""

    symptoms: list[SymptomObservation | str] = Field(default_factory=list)
    severity: int | None = None
    notes: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("symptoms", mode="before")
    @classmethod
    def symptoms_may_be_null(cls, v: Any) -> Any:
        return _none_to_list(v)


class SleepEntry(BaseModel):
    """One logged night of sleep; the score is computed once at logging time."""

    hours_slept: float
    quality: SleepQuality
    sleep_score: int | None = Field(None, ge=0, le=100)
    logged_date: date = Field(default_factory=lambda: datetime.now(UTC).date())


class UserProfile(BaseModel):
    """Demographic, lifestyle and history data captured during onboarding."""

    user_id: str
    age: int | None = None
    smoking: bool | None = None
    alcohol: bool | None = None
    activity_level: ActivityLevel | None = None
    allergies: list[str] = Field(default_factory=list)
    past_diagnoses: list[str] = Field(default_factory=list)

    @field_validator("allergies", "past_diagnoses", mode="before")
    @classmethod
    def lists_may_be_null(cls, v: Any) -> Any:
        return _none_to_list(v)

    @field_validator("activity_level", mode="before")
    @classmethod
    def lenient_activity_level(cls, v: Any) -> Any:
        return _coerce_activity_level(v)
