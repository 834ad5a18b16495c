import unittest
from datetime import timedelta

from analytics.aggregation import aggregate_admissions
from analytics.forecasting import forecast
from analytics.models import (
    ForecastResult, RiskTier, Severity, TimeBucket, Trend, WaterBucket, WaterRegionAverage,
)
from analytics.risk import RiskClassifier, classify_tier
from config.settings import RiskConfig, RiskWeightConfig
from tests.fixtures import BASE_TIME, cholera_spike_admissions, make_region, make_series


def _bucket(index, region_counts=None, severe=0, bucket_hours=6):
    region_counts = region_counts or {}
    total = sum(region_counts.values())
    start = BASE_TIME + timedelta(hours=bucket_hours * index)
    return TimeBucket(
        start=start,
        end=start + timedelta(hours=bucket_hours),
        total=total,
        by_region=region_counts,
        by_severity={Severity.MILD: total - severe, Severity.MODERATE: 0, Severity.SEVERE: severe},
    )


def _water_bucket(index, region_id="region-1", coliform=10.0, turbidity=2.0):
    start = BASE_TIME + timedelta(days=index)
    return WaterBucket(
        start=start,
        end=start + timedelta(days=1),
        region_averages={region_id: WaterRegionAverage(
            avg_ph=7.0, avg_turbidity=turbidity, avg_coliform=coliform,
            avg_dissolved_oxygen=8.0, sample_count=3,
        )},
    )


class TestTierBoundaries(unittest.TestCase):

    def test_cut_points_are_inclusive(self):
        self.assertEqual(classify_tier(0.75), RiskTier.CRITICAL)
        self.assertEqual(classify_tier(0.749999), RiskTier.HIGH)
        self.assertEqual(classify_tier(0.4875), RiskTier.HIGH)
        self.assertEqual(classify_tier(0.4874), RiskTier.MODERATE)
        self.assertEqual(classify_tier(0.275), RiskTier.MODERATE)
        self.assertEqual(classify_tier(0.2749), RiskTier.LOW)
        self.assertEqual(classify_tier(0.0), RiskTier.LOW)
        self.assertEqual(classify_tier(1.0), RiskTier.CRITICAL)

    def test_weights_must_sum_to_one(self):
        with self.assertRaises(ValueError):
            RiskWeightConfig(admission_velocity=0.5)


class TestRiskFactors(unittest.TestCase):

    def setUp(self):
        self.classifier = RiskClassifier(RiskConfig(), bucket_hours=6)

    def test_velocity_with_empty_previous_day(self):
        buckets = [_bucket(i) for i in range(4)] + [_bucket(4 + i, {"region-1": n}) for i, n in enumerate([1, 1, 1, 0])]
        velocity = self.classifier.admission_velocity(buckets, "region-1")
        # (3 - 1) / 1 scaled by the saturation of 3.
        self.assertAlmostEqual(velocity, 2 / 3)
        self.assertGreater(velocity, 0)

    def test_velocity_is_clamped(self):
        buckets = [_bucket(i, {"region-1": 1}) for i in range(4)] + [_bucket(4 + i, {"region-1": 50}) for i in range(4)]
        self.assertEqual(self.classifier.admission_velocity(buckets, "region-1"), 1.0)
        falling = [_bucket(i, {"region-1": 50}) for i in range(4)] + [_bucket(4 + i, {"region-1": 1}) for i in range(4)]
        self.assertEqual(self.classifier.admission_velocity(falling, "region-1"), 0.0)

    def test_velocity_for_cholera_spike(self):
        buckets = aggregate_admissions(cholera_spike_admissions("region-1"), 6)
        velocity = self.classifier.admission_velocity(buckets, "region-1")
        # Last day 80 cases against 40 the day before.
        self.assertGreater(velocity, 0)
        self.assertAlmostEqual(velocity, 1 / 3)

    def test_water_score_rises_with_contamination(self):
        clean = self.classifier.water_quality_score([_water_bucket(0, coliform=5)], "region-1")
        dirty = self.classifier.water_quality_score([_water_bucket(0, coliform=180, turbidity=15)], "region-1")
        self.assertGreater(dirty, clean)
        self.assertTrue(0 <= clean <= 1 and 0 <= dirty <= 1)

    def test_water_score_over_three_periods(self):
        levels = [5, 150, 300]
        mixed = self.classifier.water_quality_score(
            [_water_bucket(i, coliform=c) for i, c in enumerate(levels)], "region-1")
        singles = [self.classifier.water_quality_score([_water_bucket(0, coliform=c)], "region-1") for c in levels]

        self.assertTrue(0 <= mixed <= 1)
        self.assertLess(singles[0], singles[1])
        self.assertLess(singles[1], singles[2])
        self.assertLess(singles[0], mixed)
        self.assertLess(mixed, singles[2])
        self.assertAlmostEqual(mixed, sum(singles) / 3)

    def test_water_score_uses_only_recent_periods(self):
        stale = [_water_bucket(0, coliform=300)]
        recent = [_water_bucket(i + 1, coliform=5) for i in range(3)]
        self.assertAlmostEqual(
            self.classifier.water_quality_score(stale + recent, "region-1"),
            self.classifier.water_quality_score(recent, "region-1"),
        )

    def test_water_score_without_data(self):
        self.assertEqual(self.classifier.water_quality_score([], "region-1"), 0.5)
        # A region absent from the recent buckets scores a neutral WQI of 50.
        self.assertEqual(self.classifier.water_quality_score([_water_bucket(0)], "region-2"), 0.5)

    def test_severity_index(self):
        buckets = [_bucket(0, {"region-1": 4}, severe=2)]
        self.assertEqual(self.classifier.severity_index(buckets), 1.0)
        buckets = [_bucket(0, {"region-1": 30}, severe=1)]
        self.assertAlmostEqual(self.classifier.severity_index(buckets), 0.1)
        self.assertEqual(self.classifier.severity_index([]), 0.0)

    def test_trend_score(self):
        self.assertEqual(RiskClassifier.trend_score(None), 0.5)
        self.assertEqual(RiskClassifier.trend_score(ForecastResult(trend=Trend.INSUFFICIENT_DATA)), 0.5)
        rising = ForecastResult(trend=Trend.RISING, trend_value=2.0)
        falling = ForecastResult(trend=Trend.FALLING, trend_value=-2.0)
        self.assertAlmostEqual(RiskClassifier.trend_score(rising), 0.8)
        self.assertAlmostEqual(RiskClassifier.trend_score(falling), 0.2)


class TestRegionClassification(unittest.TestCase):

    def setUp(self):
        self.classifier = RiskClassifier(RiskConfig(), bucket_hours=6)

    def test_score_and_factors(self):
        region = make_region(population=400_000, historical_risk=0.9)
        buckets = [_bucket(i, {"region-1": 1}) for i in range(4)] + \
                  [_bucket(4 + i, {"region-1": 20}, severe=10) for i in range(4)]
        water = [_water_bucket(i, coliform=250, turbidity=30) for i in range(3)]
        trend = forecast(make_series([1, 1, 1, 1, 20, 20, 20, 20]))

        result = self.classifier.classify_region(region, buckets, water, trend)
        self.assertTrue(0 <= result.score <= 1)
        self.assertEqual(result.factors.admission_velocity.value, 1.0)
        self.assertEqual(result.factors.population_density.value, 1.0)
        self.assertEqual(result.factors.admission_velocity.weight, 0.30)
        self.assertEqual(result.tier, RiskTier.CRITICAL)
        self.assertEqual(result.region_name, "Central District")

    def test_quiet_region_is_low(self):
        region = make_region(population=10_000, historical_risk=0.0)
        buckets = [_bucket(i, {"region-1": 2}) for i in range(8)]
        water = [_water_bucket(i, coliform=0, turbidity=0) for i in range(3)]
        result = self.classifier.classify_region(region, buckets, water, None)
        self.assertEqual(result.tier, RiskTier.LOW)

    def test_score_ignores_breakdown_key_order(self):
        region = make_region(population=250_000, historical_risk=0.6)
        counts = [(3, 1), (4, 2), (9, 5), (12, 6)]
        forward = [_bucket(i, {"region-1": n, "region-2": m}, severe=2) for i, (n, m) in enumerate(counts)]
        backward = [
            b.model_copy(update={
                'by_region': dict(reversed(list(b.by_region.items()))),
                'by_severity': dict(reversed(list(b.by_severity.items()))),
            })
            for b in forward
        ]
        water = [_water_bucket(i, coliform=120) for i in range(3)]

        first = self.classifier.classify_region(region, forward, water, None)
        second = self.classifier.classify_region(region, backward, water, None)
        self.assertEqual(list(backward[0].by_region), ["region-2", "region-1"])
        self.assertEqual(first.score, second.score)
        self.assertEqual(first.tier, second.tier)
        self.assertEqual(first.factors, second.factors)

    def test_classify_all_orders_by_score(self):
        regions = [
            make_region("region-1", population=10_000, historical_risk=0.1),
            make_region("region-2", population=300_000, historical_risk=0.9),
        ]
        buckets = [_bucket(i, {"region-1": 1, "region-2": 1}) for i in range(8)]
        results = self.classifier.classify_all(regions, buckets, [])
        self.assertEqual([r.region_id for r in results], ["region-2", "region-1"])
        self.assertGreaterEqual(results[0].score, results[1].score)


if __name__ == '__main__':
    unittest.main()
