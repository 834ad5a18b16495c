# outbreak_sentinel/tests/fixtures.py
#
# Small builders for records and intermediate results used across the tests.

from datetime import datetime, timedelta, timezone

from analytics.models import (
    AdmissionRecord, Coordinate, FactorScore, Region, RiskClassification,
    RiskFactors, SeriesPoint, WaterSample,
)

BASE_TIME = datetime(2024, 3, 1, tzinfo=timezone.utc)
FIXED_NOW = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)


def make_region(region_id="region-1", name="Central District", population=100_000, historical_risk=0.5):
    return Region(
        id=region_id,
        name=name,
        center=Coordinate(lat=28.6, lng=77.2),
        population=population,
        historical_risk=historical_risk,
    )


def make_admission(hours=0.0, disease="Cholera", severity="Moderate", region_id="region-1", age=30):
    return AdmissionRecord(
        timestamp=BASE_TIME + timedelta(hours=hours),
        disease=disease,
        severity=severity,
        region_id=region_id,
        patient_age=age,
    )


def make_sample(hours=0.0, region_id="region-1", ph=7.0, turbidity=2.0, coliform=10.0,
                dissolved_oxygen=8.0, chlorine=None):
    return WaterSample(
        timestamp=BASE_TIME + timedelta(hours=hours),
        region_id=region_id,
        ph=ph,
        turbidity=turbidity,
        coliform_count=coliform,
        dissolved_oxygen=dissolved_oxygen,
        chlorine_residual=chlorine,
    )


def make_series(values, bucket_hours=6):
    return [
        SeriesPoint(timestamp=BASE_TIME + timedelta(hours=bucket_hours * i), value=v)
        for i, v in enumerate(values)
    ]


def cholera_spike_admissions(region_id="region-1"):
    """Seven 6-hour buckets of ten Cholera cases followed by one of fifty."""
    records = []
    for bucket, count in enumerate([10] * 7 + [50]):
        records.extend(make_admission(hours=bucket * 6 + 1, region_id=region_id) for _ in range(count))
    return records


def make_classification(region_id, score, tier, name=None):
    factor = FactorScore(value=0.5, weight=0.1)
    return RiskClassification(
        region_id=region_id,
        region_name=name or region_id,
        score=score,
        tier=tier,
        factors=RiskFactors(
            admission_velocity=factor, water_quality=factor, severity_index=factor,
            historical_risk=factor, population_density=factor, trend_score=factor,
        ),
        population=100_000,
        center=Coordinate(lat=28.6, lng=77.2),
    )
