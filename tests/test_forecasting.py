import unittest
from datetime import timedelta

from analytics.aggregation import aggregate_admissions
from analytics.forecasting import evaluate, forecast, forecast_all
from analytics.models import Disease, Trend
from tests.fixtures import cholera_spike_admissions, make_series


class TestHoltForecast(unittest.TestCase):

    def test_constant_series_forecasts_itself(self):
        result = forecast(make_series([5] * 10), horizon_hours=48, bucket_hours=6)

        self.assertEqual(result.trend, Trend.STABLE)
        self.assertEqual(result.trend_value, 0.0)
        self.assertEqual(result.standard_error, 0.0)
        self.assertEqual(len(result.predictions), 8)
        for point in result.predictions:
            self.assertEqual(point.predicted, 5.0)
            self.assertEqual(point.upper, 5.0)
            self.assertEqual(point.lower, 5.0)

    def test_short_series_is_insufficient(self):
        for n in range(4):
            with self.assertLogs('analytics.forecasting', level='WARNING') as logs:
                result = forecast(make_series([3] * n))
            self.assertIn("Insufficient data", logs.output[0])
            self.assertEqual(result.trend, Trend.INSUFFICIENT_DATA)
            self.assertEqual(result.predictions, [])
            self.assertIsNone(result.current_level)

    def test_prediction_bounds(self):
        result = forecast(make_series([3, 8, 1, 12, 4, 9, 2, 15, 6, 11]))
        self.assertTrue(result.predictions)
        for point in result.predictions:
            self.assertLessEqual(point.lower, point.predicted)
            self.assertLessEqual(point.predicted, point.upper)
            self.assertGreaterEqual(point.lower, 0)

    def test_band_widens_with_horizon(self):
        result = forecast(make_series([3, 8, 1, 12, 4, 9, 2, 15, 6, 11]))
        widths = [p.upper - p.lower for p in result.predictions]
        self.assertGreater(widths[-1], widths[0])

    def test_falling_series_never_goes_negative(self):
        result = forecast(make_series([40, 30, 20, 10, 5]))
        self.assertEqual(result.trend, Trend.FALLING)
        self.assertTrue(all(p.predicted >= 0 for p in result.predictions))

    def test_rising_series(self):
        result = forecast(make_series([2, 4, 6, 8, 10, 12]))
        self.assertEqual(result.trend, Trend.RISING)
        self.assertGreater(result.predictions[0].predicted, 12)

    def test_timestamps_and_confidence(self):
        series = make_series([5] * 6)
        result = forecast(series, horizon_hours=60, bucket_hours=6)
        self.assertEqual(len(result.predictions), 10)
        self.assertEqual(result.predictions[0].timestamp, series[-1].timestamp + timedelta(hours=6))
        confidences = [p.confidence for p in result.predictions]
        self.assertEqual(confidences[0], 90)
        self.assertEqual(confidences[-1], 50)
        self.assertEqual(confidences, sorted(confidences, reverse=True))

    def test_partial_step_rounds_up(self):
        result = forecast(make_series([5] * 6), horizon_hours=13, bucket_hours=6)
        self.assertEqual(len(result.predictions), 3)

    def test_forecast_all(self):
        buckets = aggregate_admissions(cholera_spike_admissions(), bucket_hours=6)
        bundle = forecast_all(buckets, horizon_hours=48, bucket_hours=6)
        self.assertEqual(bundle.horizon_hours, 48)
        self.assertEqual(set(bundle.by_disease), set(Disease))
        self.assertIn("region-1", bundle.by_region)
        self.assertEqual(len(bundle.overall.predictions), 8)


class TestForecastEvaluation(unittest.TestCase):

    def test_constant_series_is_exact(self):
        evaluation = evaluate(make_series([5] * 10), holdout_ratio=0.2)
        self.assertEqual(evaluation.samples_used, 2)
        self.assertEqual(evaluation.mape, 0.0)
        self.assertEqual(evaluation.accuracy, 100.0)

    def test_short_training_set_has_no_metrics(self):
        evaluation = evaluate(make_series([1, 2, 3]), holdout_ratio=0.2)
        self.assertEqual(evaluation.samples_used, 0)
        self.assertIsNone(evaluation.mape)

    def test_empty_series(self):
        self.assertIsNone(evaluate([]).accuracy)


if __name__ == '__main__':
    unittest.main()
