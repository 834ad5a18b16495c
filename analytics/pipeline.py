# outbreak_sentinel/analytics/pipeline.py
#
# Analytics Pipeline
# A pure function that runs every stage over an in-memory snapshot of the
# records and returns one immutable AnalyticsSnapshot.

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import List, Optional, Sequence

try:
    from config.settings import Settings, settings as default_settings
    from .aggregation import aggregate_admissions, aggregate_water_quality, overall_series
    from .alerts import generate_alerts
    from .anomaly import (
        analyze_water_disease_correlation, assess_water_disease_risk,
        detect_admission_anomalies, detect_water_anomalies,
    )
    from .forecasting import evaluate, forecast_all
    from .models import (
        AdmissionRecord, AnalyticsSnapshot, Disease, Region, RiskClassification,
        RiskTier, SnapshotSummary, TimeBucket, WaterSample, Alert,
    )
    from .risk import RiskClassifier
except ImportError as e:
    logging.basicConfig(level="CRITICAL")
    logging.critical(f"FATAL ERROR in pipeline.py: A core dependency is missing. {e}", exc_info=True)
    raise

logger = logging.getLogger(__name__)

TIER_ORDER = [RiskTier.LOW, RiskTier.MODERATE, RiskTier.HIGH, RiskTier.CRITICAL]


def _water_linked_diseases(config: Settings) -> List[Disease]:
    diseases = []
    for label in config.water_linked_diseases:
        disease = Disease.parse(label)
        if disease is None:
            logger.warning(f"Ignoring unknown water-linked disease '{label}' in settings.")
        else:
            diseases.append(disease)
    return diseases


def _summarize(
    admissions: Sequence[AdmissionRecord],
    water_samples: Sequence[WaterSample],
    buckets: Sequence[TimeBucket],
    classifications: Sequence[RiskClassification],
    alerts: Sequence[Alert],
) -> SnapshotSummary:
    by_disease, by_severity = Counter(), Counter()
    for bucket in buckets:
        by_disease.update(bucket.by_disease)
        by_severity.update(bucket.by_severity)
    overall_risk = max((rc.tier for rc in classifications), key=TIER_ORDER.index, default=RiskTier.LOW)
    return SnapshotSummary(
        total_admissions=len(admissions),
        total_water_samples=len(water_samples),
        admissions_by_disease=dict(by_disease),
        admissions_by_severity=dict(by_severity),
        overall_risk=overall_risk,
        total_alerts=len(alerts),
        critical_alerts=sum(1 for a in alerts if a.severity == 'critical'),
    )


def run_pipeline(
    admissions: Sequence[AdmissionRecord],
    water_samples: Sequence[WaterSample],
    regions: Sequence[Region],
    config: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> AnalyticsSnapshot:
    """
    Runs Aggregator -> {Detector, Forecaster} -> Classifier -> Alert Generator.

    The result depends only on the inputs, the configuration and `now`
    (used for alert and snapshot timestamps, never in the scoring math), so
    two runs over the same inputs with the same `now` are identical.
    """
    config = config or default_settings
    now = now or datetime.now(timezone.utc)
    agg, anomaly_cfg, fc = config.aggregation, config.anomaly, config.forecast
    known_regions = [r.id for r in regions]

    logger.info(
        f"Running analytics pipeline over {len(admissions)} admissions, "
        f"{len(water_samples)} water samples and {len(regions)} regions."
    )

    admission_buckets = aggregate_admissions(admissions, agg.admission_bucket_hours, known_regions)
    water_buckets = aggregate_water_quality(water_samples, agg.water_bucket_hours, known_regions)

    admission_anomalies = detect_admission_anomalies(
        admission_buckets, anomaly_cfg.window_size, anomaly_cfg.z_threshold)
    water_anomalies = detect_water_anomalies(
        water_buckets, anomaly_cfg.window_size, anomaly_cfg.z_threshold)
    correlations = analyze_water_disease_correlation(
        admission_buckets, water_buckets, _water_linked_diseases(config))
    water_assessments = assess_water_disease_risk(
        water_samples, water_buckets, admission_buckets, regions)

    forecast_params = dict(alpha=fc.alpha, beta=fc.beta, horizon_hours=fc.horizon_hours,
                           bucket_hours=agg.admission_bucket_hours)
    forecasts = forecast_all(admission_buckets, trend_threshold=fc.trend_threshold, **forecast_params)
    forecast_evaluation = evaluate(overall_series(admission_buckets), fc.holdout_ratio, **forecast_params)

    classifier = RiskClassifier(config.risk, agg.admission_bucket_hours)
    classifications = classifier.classify_all(regions, admission_buckets, water_buckets, forecasts)
    alerts = generate_alerts(classifications, admission_anomalies, config.alerts, now)

    return AnalyticsSnapshot(
        generated_at=now,
        admission_buckets=admission_buckets,
        water_buckets=water_buckets,
        admission_anomalies=admission_anomalies,
        water_anomalies=water_anomalies,
        correlations=correlations,
        water_assessments=water_assessments,
        forecasts=forecasts,
        forecast_evaluation=forecast_evaluation,
        classifications=classifications,
        alerts=alerts,
        summary=_summarize(admissions, water_samples, admission_buckets, classifications, alerts),
    )
