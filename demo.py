"""
End-to-end walkthrough of the triage pipeline.

This script demonstrates:
1. Configuration loading and validation
2. Sleep scoring for a week of logged nights
3. Risk analysis and alerting for several patient profiles
4. Clinician access key sharing and redemption

Run with: uv run python demo.py
"""

import asyncio
from datetime import UTC, datetime, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adapters.memory import InMemoryAccessKeyStore
from core.config import get_config, print_config_summary, validate_config
from core.domain.models import (
    HealthLogEntry,
    SleepEntry,
    SymptomObservation,
    Urgency,
    UserProfile,
)
from core.observability import configure_logging
from core.services import AccessKeyService, TriageService, record_sleep
from core.services.triage import AlertEvent

console = Console()

URGENCY_STYLES = {
    Urgency.NORMAL: "green",
    Urgency.MONITOR: "yellow",
    Urgency.EMERGENCY: "bold red",
}

WEEK_OF_SLEEP = [
    (4.5, "poor"),
    (6.5, "average"),
    (7.5, "good"),
    (8.0, "excellent"),
    (5.5, "poor"),
    (9.5, "average"),
    (11.0, "good"),
]


def demo_configuration() -> bool:
    """Load and print the active configuration."""

    console.print(Panel("🔧 Configuration", style="blue"))

    try:
        validate_config()
        print_config_summary()
        return True
    except ValueError as e:
        console.print(f"❌ Configuration invalid: {e}", style="red")
        return False


def demo_sleep_scoring() -> list[SleepEntry]:
    """Score a week of sleep and show the resulting entries, newest first."""

    console.print(Panel("😴 Sleep Scoring", style="blue"))

    today = datetime.now(UTC).date()
    entries = [
        record_sleep(hours, quality, logged_date=today - timedelta(days=offset))
        for offset, (hours, quality) in enumerate(WEEK_OF_SLEEP)
    ]

    table = Table(title="Logged Nights")
    table.add_column("Date", style="cyan")
    table.add_column("Hours", style="magenta")
    table.add_column("Quality", style="yellow")
    table.add_column("Score", style="green")

    for entry in entries:
        table.add_row(
            entry.logged_date.isoformat(),
            f"{entry.hours_slept:.1f}",
            entry.quality.value,
            str(entry.sleep_score),
        )

    console.print(table)
    return entries


def _patients() -> list[tuple[UserProfile, HealthLogEntry | None]]:
    return [
        (
            UserProfile(user_id="ananya", age=27, activity_level="active"),
            None,
        ),
        (
            UserProfile(
                user_id="rahul",
                age=46,
                smoking=True,
                activity_level="sedentary",
                past_diagnoses=["Asthma"],
                allergies=["Dust"],
            ),
            HealthLogEntry(
                symptoms=[
                    SymptomObservation(name="shortness-of-breath", severity=6),
                    SymptomObservation(name="cough", severity=5),
                ],
                notes="Worse after climbing stairs",
            ),
        ),
        (
            UserProfile(
                user_id="meera",
                age=61,
                past_diagnoses=["Hypertension (High BP)", "Type 2 Diabetes"],
            ),
            HealthLogEntry(symptoms=["chest-tightness", "dizziness"], severity=8),
        ),
    ]


async def demo_triage(sleep_entries: list[SleepEntry]) -> bool:
    """Run triage for a handful of patients and show their reports."""

    console.print(Panel("🩺 Health Risk Triage", style="blue"))

    service = TriageService(config=get_config())
    raised: list[AlertEvent] = []

    async def collect_alert(alert: AlertEvent) -> None:
        raised.append(alert)

    table = Table(title="Triage Reports")
    table.add_column("Patient", style="cyan")
    table.add_column("Risk", style="white")
    table.add_column("Urgency", style="white")
    table.add_column("See", style="magenta")

    for profile, latest_log in _patients():
        report = await service.run_triage(
            profile, latest_log, sleep_entries, handlers=[collect_alert]
        )
        analysis = report.analysis
        table.add_row(
            profile.user_id,
            f"{analysis.risk_score}/100",
            f"[{URGENCY_STYLES[analysis.urgency]}]{analysis.urgency.value.upper()}[/]",
            analysis.recommended_specialist,
        )

    console.print(table)

    last_report = service.get_report_history()[-1]
    console.print(f"\n📋 Reasoning for {last_report.user_id}:")
    for line in last_report.analysis.reasoning:
        console.print(f"  {line}")
    console.print(f"\n{last_report.analysis.summary}")

    for alert in raised:
        style = "bold red" if alert.severity == "emergency" else "yellow"
        console.print(
            f"\n🚨 {alert.title} ({alert.user_id}, risk {alert.risk_score})", style=style
        )

    return True


def demo_access_keys() -> bool:
    """Share records with a doctor and show the single-use rule."""

    console.print(Panel("🔑 Doctor Access Keys", style="blue"))

    service = AccessKeyService(InMemoryAccessKeyStore(), get_config().access_keys)

    grant = service.issue(
        "meera",
        doctor_name="Dr. Kavita Rao",
        hospital_name="City Heart Institute",
        purpose="Cardiology consultation",
    )
    console.print(f"Issued key: [bold]{grant.display_key}[/]")
    console.print(f"Expires: {grant.expires_at.strftime('%Y-%m-%d %H:%M UTC')}")

    first = service.redeem(grant.display_key.lower())
    second = service.redeem(grant.display_key)
    later = service.issue("meera")
    expired = service.redeem(later.display_key, now=later.expires_at + timedelta(minutes=1))

    table = Table(title="Redemption Attempts")
    table.add_column("Attempt", style="cyan")
    table.add_column("Outcome", style="white")

    table.add_row("First use (typed in lowercase)", "✅ granted" if first.is_ok() else "❌")
    table.add_row("Second use", f"❌ {second.unwrap_err()}" if second.is_err() else "✅")
    table.add_row("After expiry", f"❌ {expired.unwrap_err()}" if expired.is_err() else "✅")
    console.print(table)

    now = datetime.now(UTC)
    for key in service.recent_keys("meera"):
        console.print(f"  {key.display_key}  {key.status(now)}")

    return first.is_ok() and second.is_err() and expired.is_err()


async def run_demo() -> None:
    """Run every walkthrough step and summarize."""

    configure_logging(get_config().logging)
    console.print(Panel("🧪 Health Triage Engine - Walkthrough", style="bold blue"))

    results: list[tuple[str, bool]] = [("Configuration", demo_configuration())]

    console.print(f"\n{'=' * 60}")
    sleep_entries = demo_sleep_scoring()
    results.append(("Sleep Scoring", bool(sleep_entries)))

    console.print(f"\n{'=' * 60}")
    results.append(("Triage", await demo_triage(sleep_entries)))

    console.print(f"\n{'=' * 60}")
    results.append(("Access Keys", demo_access_keys()))

    console.print(f"\n{'=' * 60}")
    summary_table = Table(title="Walkthrough Summary")
    summary_table.add_column("Step", style="cyan")
    summary_table.add_column("Result", style="white")
    for step, ok in results:
        summary_table.add_row(step, "✅ OK" if ok else "❌ FAILED")
    console.print(summary_table)


if __name__ == "__main__":
    try:
        asyncio.run(run_demo())
    except KeyboardInterrupt:
        console.print("\n👋 Demo stopped by user", style="yellow")
