"""
Triage service that turns logged health data into reports and alerts.

This is the host-side pipeline around the pure scorers:
1. Score each night of sleep once, when it is logged
2. Assemble a snapshot from the latest symptom log, recent sleep and the profile
3. Run the risk analyzer
4. Raise alerts for urgent outcomes and keep a short report history

Storage and delivery stay outside: callers pass data in and receive plain
models back.
"""

import inspect
import time
from collections import deque
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from typing import Any

import structlog
from pydantic import BaseModel, Field

from core.config import AppConfig, ScoringConfig, get_config
from core.domain.models import (
    AnalysisResult,
    HealthLogEntry,
    HealthSnapshot,
    SleepEntry,
    SleepQuality,
    Urgency,
    UserProfile,
)
from core.services.health_analysis import HealthRiskAnalyzer
from core.services.sleep_scoring import average_sleep_score, calculate_sleep_score

logger = structlog.get_logger(__name__)

REPORT_HISTORY_LIMIT = 100


def record_sleep(
    hours_slept: float, quality: SleepQuality | str, *, logged_date: date | None = None
) -> SleepEntry:
    """Build a sleep entry with its score computed at logging time."""
    entry = SleepEntry(
        hours_slept=hours_slept,
        quality=SleepQuality(quality),
        sleep_score=calculate_sleep_score(hours_slept, quality),
        logged_date=logged_date or datetime.now(UTC).date(),
    )
    logger.info("sleep_recorded", hours_slept=hours_slept, sleep_score=entry.sleep_score)
    return entry


def build_snapshot(
    latest_log: HealthLogEntry | None,
    sleep_entries: Sequence[SleepEntry],
    profile: UserProfile,
    *,
    config: ScoringConfig | None = None,
) -> HealthSnapshot:
    """
    Assemble the analyzer input from stored records.

    ``sleep_entries`` must be ordered newest first.
    """
    config = config or ScoringConfig()

    return HealthSnapshot(
        symptoms=list(latest_log.symptoms) if latest_log else [],
        overall_severity=latest_log.severity if latest_log else None,
        sleep_score=average_sleep_score(
            sleep_entries,
            window=config.sleep_average_window,
            default=config.default_sleep_score,
        ),
        allergies=profile.allergies,
        past_diagnoses=profile.past_diagnoses,
        age=profile.age,
        smoking=profile.smoking,
        alcohol=profile.alcohol,
        activity_level=profile.activity_level,
    )


class TriageReport(BaseModel):
    """One analysis run, with the snapshot that produced it."""

    user_id: str
    snapshot: HealthSnapshot
    analysis: AnalysisResult
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    analysis_duration_seconds: float = Field(ge=0.0)

    def to_record(self) -> dict[str, Any]:
        """Row shape of the stored AI health report."""
        return {
            "user_id": self.user_id,
            "health_risk_score": self.analysis.risk_score,
            "urgency_level": self.analysis.urgency.value,
            "recommended_doctor_type": self.analysis.recommended_specialist,
            "reasoning": "\n".join(self.analysis.reasoning),
            "summary": self.analysis.summary,
            "created_at": self.generated_at.isoformat(),
        }


@dataclass
class AlertEvent:
    """Represents an alert that should be shown or sent to the user."""

    timestamp: datetime
    severity: str
    title: str
    description: str
    user_id: str
    recommended_specialist: str
    risk_score: int


AlertHandler = Callable[[AlertEvent], Any]


class AlertManager:
    """Manages alert generation and dispatching."""

    def __init__(self) -> None:
        self.alert_history: deque[AlertEvent] = deque(maxlen=1000)
        self.logger = logger.bind(component="alert_manager")

    def process_report(self, report: TriageReport) -> list[AlertEvent]:
        """Emergency results always alert; monitor results alert from risk 50 up."""
        analysis = report.analysis

        if analysis.urgency == Urgency.EMERGENCY:
            severity = "emergency"
            title = "Seek medical care now"
        elif analysis.urgency == Urgency.MONITOR and analysis.risk_score >= 50:
            severity = "warning"
            title = "Schedule a medical checkup"
        else:
            return []

        alert = AlertEvent(
            timestamp=datetime.now(UTC),
            severity=severity,
            title=title,
            description=analysis.summary,
            user_id=report.user_id,
            recommended_specialist=analysis.recommended_specialist,
            risk_score=analysis.risk_score,
        )
        self.alert_history.append(alert)

        self.logger.info(
            "alert_generated",
            severity=severity,
            user_id=report.user_id,
            risk_score=analysis.risk_score,
        )
        return [alert]

    async def dispatch_alerts(
        self,
        alerts: list[AlertEvent],
        handlers: list[AlertHandler] | None = None,
    ) -> None:
        """Dispatch alerts to configured handlers (push, SMS, dashboard banner, etc.)."""

        if not alerts:
            return

        # Default console handler for development
        if not handlers:
            handlers = [self._console_alert_handler]

        for alert in alerts:
            for handler in handlers:
                try:
                    outcome = handler(alert)
                    if inspect.isawaitable(outcome):
                        await outcome
                except Exception as e:
                    self.logger.error(
                        "alert_dispatch_failed", error=str(e), alert_title=alert.title
                    )

    def _console_alert_handler(self, alert: AlertEvent) -> None:
        """Development alert handler that prints to console."""

        emoji = {"warning": "⚠️", "emergency": "🚨"}.get(alert.severity, "📢")

        print(f"\n{emoji} ALERT - {alert.severity.upper()}")
        print(f"Title: {alert.title}")
        print(f"User: {alert.user_id}")
        print(f"Time: {alert.timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')}")
        print(f"Risk Score: {alert.risk_score}/100")
        print(f"See: {alert.recommended_specialist}")
        print(f"Details: {alert.description}")
        print("-" * 80)


class TriageService:
    """
    Orchestrates snapshot assembly, risk analysis and alerting.

    Holds no per-user state apart from the bounded report history.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        analyzer: HealthRiskAnalyzer | None = None,
        alert_manager: AlertManager | None = None,
    ) -> None:
        self.config = config or get_config()
        self.analyzer = analyzer or HealthRiskAnalyzer(
            default_symptom_severity=self.config.scoring.default_symptom_severity
        )
        self.alert_manager = alert_manager or AlertManager()
        self.logger = logger.bind(component="triage_service")

        self.report_history: deque[TriageReport] = deque(maxlen=REPORT_HISTORY_LIMIT)

    async def run_triage(
        self,
        profile: UserProfile,
        latest_log: HealthLogEntry | None,
        sleep_entries: Sequence[SleepEntry],
        handlers: list[AlertHandler] | None = None,
    ) -> TriageReport:
        """Analyze a user's current data and dispatch any resulting alerts."""
        start_time = time.perf_counter()

        snapshot = build_snapshot(
            latest_log, sleep_entries, profile, config=self.config.scoring
        )
        analysis = self.analyzer.analyze(snapshot)

        report = TriageReport(
            user_id=profile.user_id,
            snapshot=snapshot,
            analysis=analysis,
            analysis_duration_seconds=time.perf_counter() - start_time,
        )
        self.report_history.append(report)

        self.logger.info(
            "triage_completed",
            user_id=profile.user_id,
            risk_score=analysis.risk_score,
            urgency=analysis.urgency.value,
            recommended_specialist=analysis.recommended_specialist,
            duration_seconds=round(report.analysis_duration_seconds, 4),
        )

        alerts = self.alert_manager.process_report(report)
        await self.alert_manager.dispatch_alerts(alerts, handlers)

        return report

    def get_report_history(
        self, hours: int = 24, user_id: str | None = None
    ) -> list[TriageReport]:
        """Get recent reports, optionally for a single user, oldest first."""
        cutoff = datetime.now(UTC) - timedelta(hours=hours)
        return [
            report
            for report in self.report_history
            if report.generated_at >= cutoff and (user_id is None or report.user_id == user_id)
        ]
