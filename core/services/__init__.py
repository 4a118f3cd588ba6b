"""
Core services for the application.

This package contains the main service implementations for the application,
including sleep scoring, health risk analysis, access keys and triage.
"""

from .access_keys import AccessKeyService, AccessKeyStore, generate_access_key
from .health_analysis import HealthRiskAnalyzer, analyze_health, risk_band
from .sleep_scoring import average_sleep_score, calculate_sleep_score
from .triage import AlertManager, TriageReport, TriageService, build_snapshot, record_sleep

__all__ = [
    "AccessKeyService",
    "AccessKeyStore",
    "AlertManager",
    "HealthRiskAnalyzer",
    "TriageReport",
    "TriageService",
    "analyze_health",
    "average_sleep_score",
    "build_snapshot",
    "calculate_sleep_score",
    "generate_access_key",
    "record_sleep",
    "risk_band",
]
