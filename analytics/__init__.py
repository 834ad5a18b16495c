# outbreak_sentinel/analytics/__init__.py
#
# Analytics Package API
# Aggregation, anomaly detection, forecasting, risk classification and alert
# generation, plus the pipeline and hosting service that run them together.

"""
Initializes the analytics package, making key functions and classes
available at the top level for easier, cleaner imports in other modules.
"""

# --- Time Aggregation ---
from .aggregation import aggregate_admissions, aggregate_water_quality

# --- Anomaly Detection & Correlation ---
from .anomaly import (
    detect_in_series,
    detect_admission_anomalies,
    detect_water_anomalies,
    correlate,
    analyze_water_disease_correlation,
    assess_water_disease_risk,
)

# --- Forecasting ---
from .forecasting import forecast, forecast_all, evaluate

# --- Risk & Alerts ---
from .risk import RiskClassifier, classify_tier
from .alerts import generate_alerts

# --- Orchestration ---
from .errors import AnalyticsError, SourceUnavailableError
from .pipeline import run_pipeline
from .service import (
    AnalyticsService,
    InMemoryRecordSource,
    JsonFileRecordSource,
    RefreshOutcome,
)


__all__ = [
    # Aggregation
    "aggregate_admissions",
    "aggregate_water_quality",

    # Detection
    "detect_in_series",
    "detect_admission_anomalies",
    "detect_water_anomalies",
    "correlate",
    "analyze_water_disease_correlation",
    "assess_water_disease_risk",

    # Forecasting
    "forecast",
    "forecast_all",
    "evaluate",

    # Risk & Alerts
    "RiskClassifier",
    "classify_tier",
    "generate_alerts",

    # Orchestration
    "AnalyticsError",
    "SourceUnavailableError",
    "run_pipeline",
    "AnalyticsService",
    "InMemoryRecordSource",
    "JsonFileRecordSource",
    "RefreshOutcome",
]
