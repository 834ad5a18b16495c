# outbreak_sentinel/data_processing/enrichment.py
#
# Water Quality Enrichment
# Computes the Water Quality Index (WQI) for individual readings or
# aggregates and adds WQI-derived columns to water sample frames.

import logging
import math
from typing import Dict, Iterable, Optional

import pandas as pd

try:
    from config.settings import settings
    from .pipeline import DataPipeline
except ImportError as e:
    logging.basicConfig(level="CRITICAL")
    logging.critical(f"FATAL ERROR in enrichment.py: A core dependency is missing. {e}", exc_info=True)
    raise

logger = logging.getLogger(__name__)

# Weights of the five sub-scores. They sum to 1.0.
WQI_WEIGHTS: Dict[str, float] = {
    'ph': 0.15,
    'turbidity': 0.20,
    'coliform': 0.30,
    'dissolved_oxygen': 0.20,
    'chlorine': 0.15,
}

# Readings with a WQI below this value are counted as unsafe.
UNSAFE_WQI_THRESHOLD = 50


def wqi_sub_scores(
    ph: float,
    turbidity: float,
    coliform_count: float,
    dissolved_oxygen: float,
    chlorine_residual: float,
) -> Dict[str, float]:
    """Returns the five 0-100 sub-scores that make up the WQI."""
    ph_distance = abs(ph - 7.0)
    if 6.5 <= ph <= 8.5:
        ph_score = 100 - ph_distance * 20
    else:
        ph_score = max(0.0, 50 - ph_distance * 15)

    if chlorine_residual >= 0.2:
        chlorine_score = min(100.0, chlorine_residual * 100)
    else:
        chlorine_score = chlorine_residual * 200

    return {
        'ph': ph_score,
        'turbidity': max(0.0, 100 - turbidity * 5),
        'coliform': max(0.0, 100 - coliform_count * 0.5),
        'dissolved_oxygen': min(100.0, dissolved_oxygen * 12),
        'chlorine': chlorine_score,
    }


def compute_wqi(
    ph: float,
    turbidity: float,
    coliform_count: float,
    dissolved_oxygen: float,
    chlorine_residual: Optional[float] = None,
) -> int:
    """
    Computes the Water Quality Index on a 0-100 scale, higher is better.

    Missing chlorine residual falls back to the configured assumption used for
    aggregates, which carry no chlorine reading.
    """
    if chlorine_residual is None:
        chlorine_residual = settings.risk.assumed_chlorine_residual
    scores = wqi_sub_scores(ph, turbidity, coliform_count, dissolved_oxygen, chlorine_residual)
    wqi = sum(scores[name] * weight for name, weight in WQI_WEIGHTS.items())
    clamped = max(0.0, min(100.0, wqi))
    # Half-up rounding to an integer index.
    return int(math.floor(clamped + 0.5))


def enrich_water_samples_with_wqi(samples: Iterable) -> pd.DataFrame:
    """
    Builds a DataFrame of water samples with 'wqi' and 'is_unsafe' columns.

    Args:
        samples: WaterSample models.

    Returns:
        One row per sample, or an empty DataFrame when there are no samples.
    """
    rows = [sample.model_dump() for sample in samples]
    if not rows:
        return pd.DataFrame()

    df = (
        DataPipeline(pd.DataFrame(rows))
        .convert_date_columns(['timestamp'])
        .fill_missing_readings({'chlorine_residual': float(settings.risk.assumed_chlorine_residual)})
        .get_df()
    )
    df['wqi'] = [
        compute_wqi(r.ph, r.turbidity, r.coliform_count, r.dissolved_oxygen, r.chlorine_residual)
        for r in df.itertuples(index=False)
    ]
    df['is_unsafe'] = df['wqi'] < UNSAFE_WQI_THRESHOLD
    logger.debug(f"Computed WQI for {len(df)} water samples; {int(df['is_unsafe'].sum())} unsafe.")
    return df
