# outbreak_sentinel/config/settings.py
#
# Centralized Application Configuration
# Every tunable of the analytics core lives here as a validated Pydantic model.
# Defaults can be overridden per deployment without code changes.

import logging
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Project Root ---
# Data and log directories are resolved relative to this path.
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# --- Module Logger ---
settings_logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# 1. SECTION MODELS
# One model per pipeline stage, each overridable through OUTBREAK_<SECTION>__<FIELD>.
# -----------------------------------------------------------------------------

class AppConfig(BaseModel):
    """Application identity and logging setup."""
    name: str = "Outbreak Sentinel"
    version: str = "1.0.0"

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: str = "%(asctime)s - %(name)s.%(funcName)s - %(levelname)s - %(message)s"
    log_date_format: str = "%Y-%m-%d %H:%M:%S"

class DirectoryConfig(BaseModel):
    """Record directory, created on startup when missing."""
    root: Path = PROJECT_ROOT
    data_sources: Path = root / "data_sources"

    @model_validator(mode='after')
    def create_directories(self) -> 'DirectoryConfig':
        """Creates the record directory if needed."""
        self.data_sources.mkdir(parents=True, exist_ok=True)
        return self

class AggregationConfig(BaseModel):
    """Bucket widths used by the time aggregator."""
    admission_bucket_hours: int = Field(default=6, ge=1, le=24)
    water_bucket_hours: int = Field(default=24, ge=1, le=24)

class AnomalyConfig(BaseModel):
    """Sliding-window Z-score parameters."""
    z_threshold: float = Field(default=2.0, gt=0)
    window_size: int = Field(default=20, ge=1)

class ForecastConfig(BaseModel):
    """Holt double exponential smoothing parameters."""
    alpha: float = Field(default=0.3, gt=0, le=1)
    beta: float = Field(default=0.1, gt=0, le=1)
    horizon_hours: int = Field(default=48, ge=1)
    holdout_ratio: float = Field(default=0.2, gt=0, lt=1)
    trend_threshold: float = Field(default=0.5, ge=0)

class RiskWeightConfig(BaseModel):
    """Weights of the six risk factors. They must sum to 1.0."""
    admission_velocity: float = 0.30
    water_quality: float = 0.25
    severity_index: float = 0.20
    historical_risk: float = 0.10
    population_density: float = 0.08
    trend_score: float = 0.07

    @model_validator(mode='after')
    def check_total(self) -> 'RiskWeightConfig':
        total = sum(self.model_dump().values())
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Risk factor weights must sum to 1.0, got {total:.4f}")
        return self

class RiskConfig(BaseModel):
    """Composite risk scoring constants."""
    weights: RiskWeightConfig = Field(default_factory=RiskWeightConfig)
    # Literal cut points inherited from the compound threshold derivation
    # (1.00*0.75, 0.75*0.65, 0.50*0.55). Kept as-is for compatibility.
    critical_cut: float = 0.75
    high_cut: float = 0.4875
    moderate_cut: float = 0.275
    population_saturation: int = Field(default=200_000, gt=0)
    velocity_saturation: float = Field(default=3.0, gt=0)
    severity_scale: float = Field(default=3.0, gt=0)
    default_water_score: float = Field(default=0.5, ge=0, le=1)
    water_lookback_periods: int = Field(default=3, ge=1)
    assumed_chlorine_residual: float = Field(default=0.5, ge=0)

class AlertConfig(BaseModel):
    """Limits and thresholds for alert generation."""
    max_overall_anomaly_alerts: int = 5
    max_disease_anomaly_alerts: int = 2
    critical_z_score: float = 3.0

class CoordinateConfig(BaseModel):
    lat: float
    lng: float

class RegionConfig(BaseModel):
    """Static reference data for a monitored region."""
    id: str
    name: str
    center: CoordinateConfig
    population: int = Field(ge=0)
    historical_risk: float = Field(ge=0, le=1)

def _default_regions() -> List[RegionConfig]:
    rows = [
        ("region-1", "Central District", 28.6139, 77.2090, 185000, 0.35),
        ("region-2", "North Zone", 28.6500, 77.2200, 142000, 0.42),
        ("region-3", "South Zone", 28.5800, 77.2100, 167000, 0.28),
        ("region-4", "East Industrial", 28.6200, 77.2500, 98000, 0.55),
        ("region-5", "West Residential", 28.6100, 77.1700, 210000, 0.20),
        ("region-6", "Northeast Suburb", 28.6600, 77.2500, 76000, 0.48),
        ("region-7", "Southwest Settlement", 28.5700, 77.1700, 120000, 0.62),
        ("region-8", "Old Town", 28.6350, 77.1900, 155000, 0.50),
    ]
    return [
        RegionConfig(id=rid, name=name, center=CoordinateConfig(lat=lat, lng=lng),
                     population=pop, historical_risk=risk)
        for rid, name, lat, lng, pop, risk in rows
    ]

# -----------------------------------------------------------------------------
# 2. ROOT SETTINGS
# Combines the section models with the static region reference data.
# -----------------------------------------------------------------------------

class Settings(BaseSettings):
    """
    Main settings class for the Outbreak Sentinel analytics core.
    Stage sections plus region reference data and source file names.
    """
    # Values come from OUTBREAK_* environment variables or the project .env file.
    model_config = SettingsConfigDict(
        env_prefix='OUTBREAK_',
        case_sensitive=False,
        env_nested_delimiter='__',
        env_file=f"{PROJECT_ROOT}/.env",
        extra='ignore'
    )

    # --- Stage Sections ---
    app: AppConfig = Field(default_factory=AppConfig)
    directories: DirectoryConfig = Field(default_factory=DirectoryConfig)
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    anomaly: AnomalyConfig = Field(default_factory=AnomalyConfig)
    forecast: ForecastConfig = Field(default_factory=ForecastConfig)
    risk: RiskConfig = Field(default_factory=RiskConfig)
    alerts: AlertConfig = Field(default_factory=AlertConfig)

    # --- Static Reference Data ---
    regions: List[RegionConfig] = Field(default_factory=_default_regions)
    water_linked_diseases: List[str] = ["Cholera", "Typhoid"]

    # --- Data Source File Names (relative to directories.data_sources) ---
    admissions_file: str = "hospital_admissions.json"
    water_quality_file: str = "water_quality.json"
    regions_file: Optional[str] = "regions.json"

# -----------------------------------------------------------------------------
# 3. SHARED INSTANCE
# Imported by every module as `from config.settings import settings`.
# -----------------------------------------------------------------------------

try:
    settings = Settings()
    settings_logger.info(
        f"Settings loaded for '{settings.app.name}' v{settings.app.version}. "
        f"LOG_LEVEL={settings.app.log_level}. PROJECT_ROOT='{PROJECT_ROOT}'"
    )
except Exception as e:
    settings_logger.critical(f"FATAL: Could not initialize application settings. Error: {e}", exc_info=True)
    # The analytics core cannot run without settings.
    raise
