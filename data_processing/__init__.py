# outbreak_sentinel/data_processing/__init__.py
#
# Data Processing Package API
# Loading raw record collections, fluent DataFrame preparation and
# water-quality enrichment shared by the analytics stages.

"""
Initializes the data_processing package, making key functions and classes
available at the top level for easier, cleaner imports in other modules.
"""

# --- Raw Record Loading ---
from .loaders import (
    DataLoader,
    load_admission_rows,
    load_water_quality_rows,
    load_region_rows,
)

# --- Data Preparation & Cleaning ---
from .pipeline import DataPipeline

# --- Data Enrichment ---
from .enrichment import (
    compute_wqi,
    enrich_water_samples_with_wqi,
)

# --- Shared Helpers ---
from .helpers import round_metric, robust_json_load


__all__ = [
    # --- Loading ---
    "DataLoader",
    "load_admission_rows",
    "load_water_quality_rows",
    "load_region_rows",

    # --- Preparation ---
    "DataPipeline",

    # --- Enrichment ---
    "compute_wqi",
    "enrich_water_samples_with_wqi",

    # --- Helpers ---
    "round_metric",
    "robust_json_load",
]
