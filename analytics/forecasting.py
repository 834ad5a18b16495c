# outbreak_sentinel/analytics/forecasting.py
#
# Time-Series Forecasting Engine
# Holt's linear trend method (double exponential smoothing) projects each
# aggregated admission series a fixed horizon forward with widening
# confidence bands.

import logging
import math
from datetime import timedelta
from typing import List, Sequence, Tuple

import numpy as np

try:
    from data_processing.helpers import round_metric
    from .aggregation import disease_series, observed_region_ids, overall_series, region_series
    from .models import (
        Disease, ForecastBundle, ForecastEvaluation, ForecastPoint, ForecastResult,
        SeriesPoint, TimeBucket, Trend,
    )
except ImportError as e:
    logging.basicConfig(level="CRITICAL")
    logging.critical(f"FATAL ERROR in forecasting.py: A core dependency is missing. {e}", exc_info=True)
    raise

logger = logging.getLogger(__name__)

MIN_FORECAST_POINTS = 4
Z_95 = 1.96
MAX_CONFIDENCE_PCT = 95
MIN_CONFIDENCE_PCT = 50
CONFIDENCE_DECAY_PCT = 5


def _holt_smoothing(values: Sequence[float], alpha: float, beta: float) -> Tuple[float, float, List[float]]:
    """
    Runs Holt's method and returns the final level, final trend and the
    smoothed level at every step.

    The updates are written in error-correction form, which is algebraically
    the textbook recurrence but exact for constant series.
    """
    level = values[0]
    trend = values[1] - values[0]
    smoothed = [level]
    for value in values[1:]:
        projected = level + trend
        new_level = projected + alpha * (value - projected)
        trend = trend + beta * ((new_level - level) - trend)
        level = new_level
        smoothed.append(level)
    return level, trend, smoothed


def _standard_error(actual: Sequence[float], smoothed: Sequence[float]) -> float:
    residuals = np.asarray(actual, dtype=float) - np.asarray(smoothed, dtype=float)
    return float(np.sqrt(np.mean(residuals ** 2)))


def _classify_trend(trend: float, threshold: float) -> Trend:
    if trend > threshold:
        return Trend.RISING
    if trend < -threshold:
        return Trend.FALLING
    return Trend.STABLE


def insufficient_forecast() -> ForecastResult:
    return ForecastResult(trend=Trend.INSUFFICIENT_DATA)


def forecast(
    series: Sequence[SeriesPoint],
    alpha: float = 0.3,
    beta: float = 0.1,
    horizon_hours: int = 48,
    bucket_hours: int = 6,
    trend_threshold: float = 0.5,
) -> ForecastResult:
    """
    Forecasts a series `horizon_hours` ahead at its own bucket width.

    Step k projects max(0, level + trend * k) with a band of
    1.96 * sqrt(k) * standard error; reported confidence starts at 90% and
    drops 5 points per step down to 50%. Series shorter than four points
    yield the insufficient-data result with no predictions.
    """
    if len(series) < MIN_FORECAST_POINTS:
        logger.warning(f"Insufficient data for forecast: {len(series)} point(s), need {MIN_FORECAST_POINTS}.")
        return insufficient_forecast()

    values = [float(p.value) for p in series]
    level, trend, smoothed = _holt_smoothing(values, alpha, beta)
    standard_error = _standard_error(values, smoothed)

    steps = math.ceil(horizon_hours / bucket_hours)
    last_timestamp = series[-1].timestamp
    predictions = []
    for step in range(1, steps + 1):
        predicted = max(0.0, level + trend * step)
        half_width = standard_error * Z_95 * math.sqrt(step)
        predictions.append(ForecastPoint(
            timestamp=last_timestamp + timedelta(hours=bucket_hours * step),
            predicted=round_metric(predicted),
            upper=round_metric(predicted + half_width),
            lower=round_metric(max(0.0, predicted - half_width)),
            confidence=max(MIN_CONFIDENCE_PCT, MAX_CONFIDENCE_PCT - step * CONFIDENCE_DECAY_PCT),
        ))

    return ForecastResult(
        smoothed_history=[
            SeriesPoint(timestamp=p.timestamp, value=round_metric(v)) for p, v in zip(series, smoothed)
        ],
        predictions=predictions,
        trend=_classify_trend(trend, trend_threshold),
        trend_value=round_metric(trend),
        current_level=round_metric(level),
        standard_error=round_metric(standard_error),
    )


def forecast_all(
    buckets: Sequence[TimeBucket],
    alpha: float = 0.3,
    beta: float = 0.1,
    horizon_hours: int = 48,
    bucket_hours: int = 6,
    trend_threshold: float = 0.5,
) -> ForecastBundle:
    """Forecasts the overall, per-disease and per-region admission series."""
    params = dict(alpha=alpha, beta=beta, horizon_hours=horizon_hours,
                  bucket_hours=bucket_hours, trend_threshold=trend_threshold)
    logger.info(f"Generating {horizon_hours}-hour admission forecasts...")
    return ForecastBundle(
        overall=forecast(overall_series(buckets), **params),
        by_disease={disease: forecast(disease_series(buckets, disease), **params) for disease in Disease},
        by_region={
            region_id: forecast(region_series(buckets, region_id), **params)
            for region_id in observed_region_ids(buckets)
        },
        horizon_hours=horizon_hours,
    )


def evaluate(
    series: Sequence[SeriesPoint],
    holdout_ratio: float = 0.2,
    alpha: float = 0.3,
    beta: float = 0.1,
    horizon_hours: int = 48,
    bucket_hours: int = 6,
) -> ForecastEvaluation:
    """
    Back-tests the forecaster on a train/holdout split.

    The last max(1, floor(n * holdout_ratio)) points are held out. MAPE and
    accuracy are percentages over the overlap of predictions and holdout; an
    actual value of zero is treated as one. Both are None with no overlap.
    """
    if not series:
        return ForecastEvaluation()
    holdout_size = max(1, int(len(series) * holdout_ratio))
    train, holdout = series[:-holdout_size], series[-holdout_size:]

    predictions = forecast(train, alpha=alpha, beta=beta,
                           horizon_hours=horizon_hours, bucket_hours=bucket_hours).predictions
    n = min(len(predictions), len(holdout))
    if n == 0:
        return ForecastEvaluation()

    total_error = 0.0
    for predicted, actual_point in zip(predictions[:n], holdout[:n]):
        actual = actual_point.value or 1
        total_error += abs(predicted.predicted - actual) / actual
    mean_error = total_error / n
    return ForecastEvaluation(
        mape=round_metric(mean_error * 100),
        accuracy=round_metric((1 - mean_error) * 100),
        samples_used=n,
    )
