# outbreak_sentinel/analytics/anomaly.py
#
# Anomaly Detector
# Sliding-window Z-scores over aggregated series, plus Pearson correlation
# between disease admissions and water-quality degradation per region.

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from scipy import stats

try:
    from data_processing.enrichment import enrich_water_samples_with_wqi
    from data_processing.helpers import CORRELATION_PRECISION, round_metric
    from .aggregation import (
        WATER_METRICS, disease_series, observed_region_ids, overall_series,
        region_series, water_metric_series, water_region_ids,
    )
    from .models import (
        AnomalyReport, AnomalySample, CorrelationResult, Disease, Region,
        SeriesPoint, Significance, TimeBucket, WaterBucket, WaterDiseaseCorrelation,
        WaterRisk, WaterSample, ZoneWaterAssessment,
    )
except ImportError as e:
    logging.basicConfig(level="CRITICAL")
    logging.critical(f"FATAL ERROR in anomaly.py: A core dependency is missing. {e}", exc_info=True)
    raise

logger = logging.getLogger(__name__)

CORRELATED_WATER_METRICS = ('avg_turbidity', 'avg_coliform')
MIN_CORRELATION_SAMPLES = 3

SeriesLike = Sequence[Union[SeriesPoint, float, int]]


def _values(series: SeriesLike) -> np.ndarray:
    return np.array(
        [p.value if isinstance(p, SeriesPoint) else p for p in series],
        dtype=float,
    )


def _is_constant(values: np.ndarray) -> bool:
    # Exact check; a computed std of a constant window can be a tiny non-zero.
    return values.size == 0 or values.max() == values.min()


def detect_in_series(
    series: Sequence[SeriesPoint],
    window: int = 20,
    threshold: float = 2.0,
) -> List[AnomalySample]:
    """
    Flags unusual points with a trailing-window Z-score.

    For point i the window is [max(0, i - window), i] inclusive. The standard
    deviation is the population one; a zero-variance window gives z = 0.
    A point is anomalous when |z| exceeds `threshold`.
    """
    values = _values(series)
    results = []
    for i, point in enumerate(series):
        window_values = values[max(0, i - window): i + 1]
        mean = float(window_values.mean())
        if _is_constant(window_values):
            std, z_score = 0.0, 0.0
        else:
            std = float(window_values.std())
            z_score = (values[i] - mean) / std
        results.append(AnomalySample(
            timestamp=point.timestamp,
            value=float(values[i]),
            mean=round_metric(mean),
            std=round_metric(std),
            z_score=round_metric(z_score),
            is_anomaly=bool(abs(z_score) > threshold),
        ))
    return results


def detect_admission_anomalies(
    buckets: Sequence[TimeBucket],
    window: int = 20,
    threshold: float = 2.0,
) -> AnomalyReport:
    """Runs the detector over the overall, per-disease and per-region admission series."""
    report = AnomalyReport(
        overall=detect_in_series(overall_series(buckets), window, threshold),
        by_disease={
            disease: detect_in_series(disease_series(buckets, disease), window, threshold)
            for disease in Disease
        },
        by_region={
            region_id: detect_in_series(region_series(buckets, region_id), window, threshold)
            for region_id in observed_region_ids(buckets)
        },
    )
    flagged = sum(s.is_anomaly for s in report.overall)
    logger.info(f"Admission anomaly scan complete: {flagged} overall bucket(s) flagged.")
    return report


def detect_water_anomalies(
    buckets: Sequence[WaterBucket],
    window: int = 20,
    threshold: float = 2.0,
) -> Dict[str, Dict[str, List[AnomalySample]]]:
    """Runs the detector over each water-quality metric of each sampled region."""
    return {
        region_id: {
            metric: detect_in_series(water_metric_series(buckets, region_id, metric), window, threshold)
            for metric in WATER_METRICS
        }
        for region_id in water_region_ids(buckets)
    }


def _significance(abs_correlation: float) -> Significance:
    if abs_correlation >= 0.7:
        return Significance.STRONG
    if abs_correlation >= 0.4:
        return Significance.MODERATE
    if abs_correlation >= 0.2:
        return Significance.WEAK
    return Significance.NEGLIGIBLE


def correlate(series_a: SeriesLike, series_b: SeriesLike) -> CorrelationResult:
    """
    Pearson correlation between two series, truncated to the shorter length.

    Fewer than three pairs gives "insufficient data"; a constant side gives
    "no variance". Neither raises.
    """
    n = min(len(series_a), len(series_b))
    if n < MIN_CORRELATION_SAMPLES:
        return CorrelationResult(significance=Significance.INSUFFICIENT_DATA, n_samples=n)

    a = _values(series_a[:n])
    b = _values(series_b[:n])
    if _is_constant(a) or _is_constant(b):
        return CorrelationResult(significance=Significance.NO_VARIANCE, n_samples=n)

    r, _ = stats.pearsonr(a, b)
    r = float(r)
    return CorrelationResult(
        correlation=round_metric(r, CORRELATION_PRECISION),
        significance=_significance(abs(r)),
        n_samples=n,
    )


def _cases_in_window(
    admission_buckets: Sequence[TimeBucket],
    start: datetime,
    end: datetime,
    region_id: str,
    disease: Optional[Disease] = None,
) -> int:
    total = 0
    for bucket in admission_buckets:
        if start <= bucket.start < end:
            if disease is None:
                total += bucket.by_region.get(region_id, 0)
            else:
                total += bucket.by_region_disease.get(region_id, {}).get(disease, 0)
    return total


def _aligned_pairs(
    admission_buckets: Sequence[TimeBucket],
    water_buckets: Sequence[WaterBucket],
    region_id: str,
    metric: str,
    disease: Optional[Disease] = None,
) -> Tuple[List[float], List[float]]:
    """
    Pairs a region's water metric with its admissions re-bucketed onto the
    water buckets. Only water buckets inside the admission time range are used.
    """
    if not admission_buckets:
        return [], []
    first = admission_buckets[0].start
    last = admission_buckets[-1].end
    cases, readings = [], []
    for wb in water_buckets:
        averages = wb.region_averages.get(region_id)
        if averages is None or wb.end <= first or wb.start >= last:
            continue
        cases.append(_cases_in_window(admission_buckets, wb.start, wb.end, region_id, disease))
        readings.append(getattr(averages, metric))
    return cases, readings


def analyze_water_disease_correlation(
    admission_buckets: Sequence[TimeBucket],
    water_buckets: Sequence[WaterBucket],
    diseases: Sequence[Disease] = (Disease.CHOLERA, Disease.TYPHOID),
) -> List[WaterDiseaseCorrelation]:
    """
    Correlates water-linked disease admissions with water degradation per region.

    Only defined, non-negligible correlations are kept, strongest first.
    """
    correlations = []
    for region_id in water_region_ids(water_buckets):
        for disease in diseases:
            for metric in CORRELATED_WATER_METRICS:
                cases, readings = _aligned_pairs(admission_buckets, water_buckets, region_id, metric, disease)
                result = correlate(cases, readings)
                if not result.significance.is_defined or result.significance == Significance.NEGLIGIBLE:
                    continue
                correlations.append(WaterDiseaseCorrelation(
                    region_id=region_id,
                    disease=disease,
                    water_metric=metric,
                    correlation=result.correlation,
                    significance=result.significance,
                ))

    correlations.sort(key=lambda c: abs(c.correlation), reverse=True)
    logger.info(f"Found {len(correlations)} non-negligible water/disease correlation(s).")
    return correlations


# --- Zone-level water risk assessment ---

HIGH_RISK_LIMITS = {'coliform': 100, 'turbidity': 10, 'ph': 6.0}
MEDIUM_RISK_LIMITS = {'coliform': 30, 'turbidity': 5, 'ph': 6.5}
HIGH_CASE_LOAD = 100


def classify_water_risk(avg_ph: float, avg_turbidity: float, avg_coliform: float) -> WaterRisk:
    if (avg_coliform > HIGH_RISK_LIMITS['coliform'] or avg_turbidity > HIGH_RISK_LIMITS['turbidity']
            or avg_ph < HIGH_RISK_LIMITS['ph']):
        return WaterRisk.HIGH
    if (avg_coliform > MEDIUM_RISK_LIMITS['coliform'] or avg_turbidity > MEDIUM_RISK_LIMITS['turbidity']
            or avg_ph < MEDIUM_RISK_LIMITS['ph']):
        return WaterRisk.MEDIUM
    return WaterRisk.LOW


def _correlation_note(water_risk: WaterRisk, correlation: CorrelationResult, total_cases: int) -> str:
    if water_risk == WaterRisk.HIGH and (
            correlation.significance == Significance.STRONG or total_cases > HIGH_CASE_LOAD):
        return "Strong correlation: poor water quality matches high disease cases"
    if water_risk == WaterRisk.MEDIUM:
        return "Moderate correlation detected"
    return "No significant correlation"


def assess_water_disease_risk(
    water_samples: Sequence[WaterSample],
    water_buckets: Sequence[WaterBucket],
    admission_buckets: Sequence[TimeBucket],
    regions: Sequence[Region],
) -> List[ZoneWaterAssessment]:
    """
    Summarises water safety against the disease load of each region.

    Each region gets its average readings, the share of unsafe readings, a
    water risk level, the correlation between its coliform averages and its
    admissions over the water buckets, and a short note. Busiest regions first.
    """
    samples_df = enrich_water_samples_with_wqi(water_samples)
    assessments = []
    for region in regions:
        total_cases = sum(b.by_region.get(region.id, 0) for b in admission_buckets)
        disease_counts = {
            disease: sum(b.by_region_disease.get(region.id, {}).get(disease, 0) for b in admission_buckets)
            for disease in Disease
        }
        region_df = samples_df[samples_df['region_id'] == region.id] if not samples_df.empty else samples_df

        if region_df.empty:
            assessments.append(ZoneWaterAssessment(
                region_id=region.id,
                total_cases=total_cases,
                disease_counts=disease_counts,
                water_risk=WaterRisk.NO_DATA,
                correlation=CorrelationResult(significance=Significance.INSUFFICIENT_DATA),
                note="No water quality data available for this zone",
            ))
            continue

        avg_ph = float(region_df['ph'].mean())
        avg_turbidity = float(region_df['turbidity'].mean())
        avg_coliform = float(region_df['coliform_count'].mean())
        water_risk = classify_water_risk(avg_ph, avg_turbidity, avg_coliform)
        cases, coliform = _aligned_pairs(admission_buckets, water_buckets, region.id, 'avg_coliform')
        correlation = correlate(cases, coliform)

        assessments.append(ZoneWaterAssessment(
            region_id=region.id,
            total_cases=total_cases,
            disease_counts=disease_counts,
            avg_ph=round_metric(avg_ph),
            avg_turbidity=round_metric(avg_turbidity),
            avg_coliform=round_metric(avg_coliform),
            unsafe_readings_percent=round_metric(float(region_df['is_unsafe'].mean()) * 100),
            water_risk=water_risk,
            correlation=correlation,
            note=_correlation_note(water_risk, correlation, total_cases),
        ))

    assessments.sort(key=lambda a: a.total_cases, reverse=True)
    return assessments
