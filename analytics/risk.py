# outbreak_sentinel/analytics/risk.py
#
# Risk Classifier
# Combines admission velocity, water quality, severity, historical prior,
# population density and forecast trend into one weighted score per region,
# tiered into four risk levels.

import logging
from typing import Dict, List, Optional, Sequence

try:
    from config.settings import RiskConfig
    from data_processing.enrichment import compute_wqi
    from data_processing.helpers import round_metric
    from .models import (
        FactorScore, ForecastBundle, ForecastResult, Region, RiskClassification,
        RiskFactors, RiskTier, Severity, TimeBucket, Trend, WaterBucket,
    )
except ImportError as e:
    logging.basicConfig(level="CRITICAL")
    logging.critical(f"FATAL ERROR in risk.py: A core dependency is missing. {e}", exc_info=True)
    raise

logger = logging.getLogger(__name__)

NEUTRAL_WQI = 50
NEUTRAL_TREND_SCORE = 0.5


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def classify_tier(score: float, config: Optional[RiskConfig] = None) -> RiskTier:
    """Maps a composite score onto a tier. Every boundary is inclusive ("≥")."""
    config = config or RiskConfig()
    if score >= config.critical_cut:
        return RiskTier.CRITICAL
    if score >= config.high_cut:
        return RiskTier.HIGH
    if score >= config.moderate_cut:
        return RiskTier.MODERATE
    return RiskTier.LOW


class RiskClassifier:
    """
    Scores regions from aggregated admissions, water buckets and forecasts.

    All factors are normalized to [0, 1]. The composite is their weighted sum,
    clamped to [0, 1]; the tier is decided on the unrounded composite.
    """
    def __init__(self, config: Optional[RiskConfig] = None, bucket_hours: int = 6):
        self.config = config or RiskConfig()
        self.buckets_per_day = max(1, 24 // bucket_hours)

    def admission_velocity(self, buckets: Sequence[TimeBucket], region_id: str) -> float:
        """Relative change of the last day's admissions over the day before."""
        day = self.buckets_per_day
        recent = sum(b.by_region.get(region_id, 0) for b in buckets[-day:])
        previous = sum(b.by_region.get(region_id, 0) for b in buckets[-2 * day:-day]) or 1
        velocity = (recent - previous) / previous
        return _clamp(velocity / self.config.velocity_saturation)

    def water_quality_score(self, water_buckets: Sequence[WaterBucket], region_id: str) -> float:
        """Inverted average WQI over the most recent water periods."""
        recent = water_buckets[-self.config.water_lookback_periods:]
        if not recent:
            return self.config.default_water_score

        scores = []
        for bucket in recent:
            data = bucket.region_averages.get(region_id)
            if data is None:
                scores.append(NEUTRAL_WQI)
                continue
            scores.append(compute_wqi(
                ph=data.avg_ph,
                turbidity=data.avg_turbidity,
                coliform_count=data.avg_coliform,
                dissolved_oxygen=data.avg_dissolved_oxygen,
                chlorine_residual=self.config.assumed_chlorine_residual,
            ))
        return _clamp(1 - (sum(scores) / len(scores)) / 100)

    def severity_index(self, buckets: Sequence[TimeBucket]) -> float:
        """Share of severe cases over the last two days, scaled up and capped at 1."""
        window = buckets[-2 * self.buckets_per_day:]
        severe = sum(b.by_severity.get(Severity.SEVERE, 0) for b in window)
        total = sum(b.total for b in window) or 1
        return _clamp((severe / total) * self.config.severity_scale)

    def population_density(self, region: Region) -> float:
        return _clamp(region.population / self.config.population_saturation)

    @staticmethod
    def trend_score(forecast: Optional[ForecastResult]) -> float:
        if forecast is None or forecast.trend in (Trend.INSUFFICIENT_DATA, Trend.STABLE):
            return NEUTRAL_TREND_SCORE
        magnitude = forecast.trend_value or 0.0
        if forecast.trend == Trend.RISING:
            return min(1.0, 0.6 + magnitude * 0.1)
        return max(0.0, 0.4 - abs(magnitude) * 0.1)

    def classify_region(
        self,
        region: Region,
        buckets: Sequence[TimeBucket],
        water_buckets: Sequence[WaterBucket],
        forecast: Optional[ForecastResult] = None,
    ) -> RiskClassification:
        weights = self.config.weights
        values: Dict[str, float] = {
            'admission_velocity': self.admission_velocity(buckets, region.id),
            'water_quality': self.water_quality_score(water_buckets, region.id),
            'severity_index': self.severity_index(buckets),
            'historical_risk': region.historical_risk,
            'population_density': self.population_density(region),
            'trend_score': self.trend_score(forecast),
        }
        # Fixed factor order keeps the sum independent of input ordering.
        score = _clamp(sum(values[name] * getattr(weights, name) for name in RiskFactors.model_fields))

        return RiskClassification(
            region_id=region.id,
            region_name=region.name,
            score=round_metric(score),
            tier=classify_tier(score, self.config),
            factors=RiskFactors(**{
                name: FactorScore(value=round_metric(value), weight=getattr(weights, name))
                for name, value in values.items()
            }),
            population=region.population,
            center=region.center,
        )

    def classify_all(
        self,
        regions: Sequence[Region],
        buckets: Sequence[TimeBucket],
        water_buckets: Sequence[WaterBucket],
        forecasts: Optional[ForecastBundle] = None,
    ) -> List[RiskClassification]:
        """Classifies every region, highest score first."""
        results = [
            self.classify_region(
                region, buckets, water_buckets,
                forecasts.by_region.get(region.id) if forecasts else None,
            )
            for region in regions
        ]
        results.sort(key=lambda rc: rc.score, reverse=True)
        tiers = [rc.tier.value for rc in results]
        logger.info(
            f"Classified {len(results)} regions: "
            f"{tiers.count('Critical')} critical, {tiers.count('High')} high."
        )
        return results
