# outbreak_sentinel/analytics/aggregation.py
#
# Time Aggregator
# Buckets raw admission and water-quality records into fixed-width time
# windows and computes the per-bucket breakdowns used by every later stage.

import logging
from collections import defaultdict
from datetime import timedelta
from typing import Collection, Dict, List, Optional, Sequence

import pandas as pd

try:
    from data_processing.helpers import round_metric
    from data_processing.pipeline import DataPipeline
    from .models import (
        AdmissionRecord, Disease, SeriesPoint, Severity, TimeBucket,
        WaterBucket, WaterRegionAverage, WaterSample,
    )
except ImportError as e:
    logging.basicConfig(level="CRITICAL")
    logging.critical(f"FATAL ERROR in aggregation.py: A core dependency is missing. {e}", exc_info=True)
    raise

logger = logging.getLogger(__name__)

WATER_METRICS = ('avg_turbidity', 'avg_coliform', 'avg_ph', 'avg_dissolved_oxygen')


def _admissions_frame(records: Sequence[AdmissionRecord]) -> pd.DataFrame:
    return pd.DataFrame([
        {
            'timestamp': r.timestamp,
            'disease': r.disease.value if r.disease else None,
            'severity': r.severity.value if r.severity else None,
            'region_id': r.region_id,
            'patient_age': r.patient_age,
            'is_anomaly': r.is_anomaly,
        }
        for r in records
    ])


def _count_by(df: pd.DataFrame, keys: List[str]) -> pd.Series:
    """Group sizes over rows where every key is present."""
    subset = df.dropna(subset=keys)
    if subset.empty:
        return pd.Series(dtype=int)
    return subset.groupby(keys).size()


def aggregate_admissions(
    records: Sequence[AdmissionRecord],
    bucket_hours: int = 6,
    known_regions: Optional[Collection[str]] = None,
) -> List[TimeBucket]:
    """
    Aggregates admissions into time-ordered buckets.

    Buckets with no records are omitted. Records with an unknown disease,
    severity or (when `known_regions` is given) region stay in the bucket
    total but are left out of the matching breakdown.
    """
    if not records:
        logger.warning("No admission records to aggregate.")
        return []

    df = (
        DataPipeline(_admissions_frame(records))
        .convert_date_columns(['timestamp'])
        .add_time_bucket('timestamp', hours=bucket_hours)
        .restrict_to_known('region_id', known_regions)
        .get_df()
    )

    totals = df.groupby('bucket_start').agg(
        total=('timestamp', 'size'),
        avg_age=('patient_age', 'mean'),
        anomaly_count=('is_anomaly', 'sum'),
    )

    by_disease: Dict[pd.Timestamp, Dict[Disease, int]] = defaultdict(dict)
    for (start, disease), count in _count_by(df, ['bucket_start', 'disease']).items():
        by_disease[start][Disease(disease)] = int(count)

    by_region: Dict[pd.Timestamp, Dict[str, int]] = defaultdict(dict)
    for (start, region_id), count in _count_by(df, ['bucket_start', 'region_id']).items():
        by_region[start][region_id] = int(count)

    by_severity: Dict[pd.Timestamp, Dict[Severity, int]] = defaultdict(lambda: {s: 0 for s in Severity})
    for (start, severity), count in _count_by(df, ['bucket_start', 'severity']).items():
        by_severity[start][Severity(severity)] = int(count)

    by_region_disease: Dict[pd.Timestamp, Dict[str, Dict[Disease, int]]] = defaultdict(lambda: defaultdict(dict))
    for (start, region_id, disease), count in _count_by(df, ['bucket_start', 'region_id', 'disease']).items():
        by_region_disease[start][region_id][Disease(disease)] = int(count)

    width = timedelta(hours=bucket_hours)
    buckets = []
    for start, row in totals.sort_index().iterrows():
        start_dt = start.to_pydatetime()
        buckets.append(TimeBucket(
            start=start_dt,
            end=start_dt + width,
            total=int(row['total']),
            by_disease=by_disease.get(start, {}),
            by_region=by_region.get(start, {}),
            by_severity=by_severity[start],
            by_region_disease={k: dict(v) for k, v in by_region_disease.get(start, {}).items()},
            avg_age=round_metric(row['avg_age']),
            anomaly_count=int(row['anomaly_count']),
        ))

    logger.info(f"Aggregated {len(records)} admissions into {len(buckets)} buckets of {bucket_hours}h.")
    return buckets


def aggregate_water_quality(
    samples: Sequence[WaterSample],
    bucket_hours: int = 24,
    known_regions: Optional[Collection[str]] = None,
) -> List[WaterBucket]:
    """Aggregates water samples into buckets of per-region averages."""
    if not samples:
        logger.warning("No water samples to aggregate.")
        return []

    frame = pd.DataFrame([s.model_dump() for s in samples])
    df = (
        DataPipeline(frame)
        .convert_date_columns(['timestamp'])
        .add_time_bucket('timestamp', hours=bucket_hours)
        .restrict_to_known('region_id', known_regions)
        .get_df()
        .dropna(subset=['region_id'])
    )
    if df.empty:
        return []

    grouped = df.groupby(['bucket_start', 'region_id']).agg(
        avg_ph=('ph', 'mean'),
        avg_turbidity=('turbidity', 'mean'),
        avg_coliform=('coliform_count', 'mean'),
        avg_dissolved_oxygen=('dissolved_oxygen', 'mean'),
        sample_count=('ph', 'size'),
        has_anomaly=('is_anomaly', 'any'),
    )

    per_bucket: Dict[pd.Timestamp, Dict[str, WaterRegionAverage]] = defaultdict(dict)
    for (start, region_id), row in grouped.iterrows():
        per_bucket[start][region_id] = WaterRegionAverage(
            avg_ph=round_metric(row['avg_ph']),
            avg_turbidity=round_metric(row['avg_turbidity']),
            avg_coliform=round_metric(row['avg_coliform']),
            avg_dissolved_oxygen=round_metric(row['avg_dissolved_oxygen']),
            sample_count=int(row['sample_count']),
            has_anomaly=bool(row['has_anomaly']),
        )

    width = timedelta(hours=bucket_hours)
    buckets = [
        WaterBucket(start=start.to_pydatetime(), end=start.to_pydatetime() + width, region_averages=averages)
        for start, averages in sorted(per_bucket.items())
    ]
    logger.info(f"Aggregated {len(df)} water samples into {len(buckets)} buckets of {bucket_hours}h.")
    return buckets


# --- Series extraction ---
# Downstream stages work on (timestamp, value) series cut from the buckets.
# A key missing from a bucket's breakdown counts as zero.

def overall_series(buckets: Sequence[TimeBucket]) -> List[SeriesPoint]:
    return [SeriesPoint(timestamp=b.start, value=b.total) for b in buckets]


def disease_series(buckets: Sequence[TimeBucket], disease: Disease) -> List[SeriesPoint]:
    return [SeriesPoint(timestamp=b.start, value=b.by_disease.get(disease, 0)) for b in buckets]


def region_series(buckets: Sequence[TimeBucket], region_id: str) -> List[SeriesPoint]:
    return [SeriesPoint(timestamp=b.start, value=b.by_region.get(region_id, 0)) for b in buckets]


def observed_region_ids(buckets: Sequence[TimeBucket]) -> List[str]:
    return sorted({region_id for b in buckets for region_id in b.by_region})


def water_metric_series(buckets: Sequence[WaterBucket], region_id: str, metric: str) -> List[SeriesPoint]:
    """A region's metric over the water buckets in which it was sampled."""
    return [
        SeriesPoint(timestamp=b.start, value=getattr(b.region_averages[region_id], metric))
        for b in buckets
        if region_id in b.region_averages
    ]


def water_region_ids(buckets: Sequence[WaterBucket]) -> List[str]:
    return sorted({region_id for b in buckets for region_id in b.region_averages})
