# outbreak_sentinel/analytics/alerts.py
#
# Alert Generator
# Turns risk tiers and detected anomalies into a severity-ordered list of
# human-facing alerts.

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

try:
    from config.settings import AlertConfig
    from .models import (
        Alert, AlertCategory, AnomalyReport, AnomalySample, Disease,
        RiskClassification, RiskTier,
    )
except ImportError as e:
    logging.basicConfig(level="CRITICAL")
    logging.critical(f"FATAL ERROR in alerts.py: A core dependency is missing. {e}", exc_info=True)
    raise

logger = logging.getLogger(__name__)

SEVERITY_RANK = {'critical': 0, 'high': 1, 'moderate': 2, 'low': 3}


def severity_rank(severity: str) -> int:
    """Sort rank of an alert severity; unknown severities sort last."""
    return SEVERITY_RANK.get(severity, len(SEVERITY_RANK))


def _recent_flagged(samples: Sequence[AnomalySample], limit: int) -> List[AnomalySample]:
    flagged = [s for s in samples if s.is_anomaly]
    return flagged[-limit:] if limit > 0 else []


def _risk_alert(rc: RiskClassification, now: datetime) -> Optional[Alert]:
    if rc.tier == RiskTier.CRITICAL:
        return Alert(
            id=f"ALERT-CRIT-{rc.region_id}",
            category=AlertCategory.CRITICAL_RISK,
            severity='critical',
            timestamp=now,
            title=f"CRITICAL: {rc.region_name}",
            message=(
                f"Risk score {rc.score:.2f} - immediate action required. "
                "Water quality and admission rates indicate potential outbreak."
            ),
            region_id=rc.region_id,
            region_name=rc.region_name,
            risk_score=rc.score,
        )
    if rc.tier == RiskTier.HIGH:
        return Alert(
            id=f"ALERT-HIGH-{rc.region_id}",
            category=AlertCategory.HIGH_RISK,
            severity='high',
            timestamp=now,
            title=f"HIGH RISK: {rc.region_name}",
            message=f"Risk score {rc.score:.2f} - elevated disease activity detected. Monitor closely.",
            region_id=rc.region_id,
            region_name=rc.region_name,
            risk_score=rc.score,
        )
    return None


def generate_alerts(
    classifications: Sequence[RiskClassification],
    anomalies: Optional[AnomalyReport] = None,
    config: Optional[AlertConfig] = None,
    now: Optional[datetime] = None,
) -> List[Alert]:
    """
    Builds the alert list.

    One alert per Critical or High region, the most recent flagged overall
    anomalies and the most recent flagged anomalies per disease. Region
    alerts are stamped with `now`; anomaly alerts with their bucket time.
    """
    config = config or AlertConfig()
    now = now or datetime.now(timezone.utc)
    alerts: List[Alert] = []

    for rc in classifications:
        alert = _risk_alert(rc, now)
        if alert is not None:
            alerts.append(alert)

    if anomalies is not None:
        for anomaly in _recent_flagged(anomalies.overall, config.max_overall_anomaly_alerts):
            alerts.append(Alert(
                id=f"ALERT-ANOM-{anomaly.timestamp.isoformat()}",
                category=AlertCategory.ANOMALY_DETECTED,
                severity='critical' if abs(anomaly.z_score) > config.critical_z_score else 'high',
                timestamp=anomaly.timestamp,
                title="Anomaly: Admission Spike",
                message=(
                    f"Unusual admission count of {anomaly.value:g} detected "
                    f"(Z-score: {anomaly.z_score}). Mean: {anomaly.mean}, Std: {anomaly.std}."
                ),
                z_score=anomaly.z_score,
                value=anomaly.value,
            ))

        for disease, samples in anomalies.by_disease.items():
            disease = Disease(disease)
            for anomaly in _recent_flagged(samples, config.max_disease_anomaly_alerts):
                alerts.append(Alert(
                    id=f"ALERT-DIS-{disease.value}-{anomaly.timestamp.isoformat()}",
                    category=AlertCategory.DISEASE_SPIKE,
                    severity='high',
                    timestamp=anomaly.timestamp,
                    title=f"{disease.value} Spike Detected",
                    message=f"{disease.value} admissions spiked to {anomaly.value:g} (Z-score: {anomaly.z_score}).",
                    disease=disease,
                    z_score=anomaly.z_score,
                    value=anomaly.value,
                ))

    # Stable sort keeps generation order within a severity.
    alerts.sort(key=lambda a: severity_rank(a.severity))
    logger.info(f"Generated {len(alerts)} alert(s).")
    return alerts
