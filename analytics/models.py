# outbreak_sentinel/analytics/models.py
#
# Domain models for the analytics core. Input records are validated on entry;
# every model produced by the pipeline is frozen so a published snapshot can
# never be mutated after creation.

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from data_processing.helpers import ensure_utc


class LabelEnum(str, Enum):
    """A closed set of canonical string labels."""

    @classmethod
    def parse(cls, label):
        """Maps a free-form label onto the canonical member, or None if unknown."""
        if isinstance(label, cls):
            return label
        if not isinstance(label, str):
            return None
        wanted = label.strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        return None


class Disease(LabelEnum):
    CHOLERA = "Cholera"
    TYPHOID = "Typhoid"
    DENGUE = "Dengue"
    MALARIA = "Malaria"


class Severity(LabelEnum):
    MILD = "Mild"
    MODERATE = "Moderate"
    SEVERE = "Severe"


class Trend(str, Enum):
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


class Significance(str, Enum):
    NEGLIGIBLE = "negligible"
    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"
    INSUFFICIENT_DATA = "insufficient data"
    NO_VARIANCE = "no variance"

    @property
    def is_defined(self) -> bool:
        return self not in (Significance.INSUFFICIENT_DATA, Significance.NO_VARIANCE)


class RiskTier(str, Enum):
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"
    CRITICAL = "Critical"


class WaterRisk(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    NO_DATA = "No Data"


class AlertCategory(str, Enum):
    CRITICAL_RISK = "CRITICAL_RISK"
    HIGH_RISK = "HIGH_RISK"
    ANOMALY_DETECTED = "ANOMALY_DETECTED"
    DISEASE_SPIKE = "DISEASE_SPIKE"


# -----------------------------------------------------------------------------
# Input records (owned by the ingestion layer, read-only to the core)
# -----------------------------------------------------------------------------

class RecordModel(BaseModel):
    """Base configuration for immutable input records in wire (camelCase) or snake_case form."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True, extra='ignore',
                              allow_inf_nan=False)


class AdmissionRecord(RecordModel):
    timestamp: datetime
    disease: Optional[Disease] = None
    severity: Optional[Severity] = None
    region_id: str = Field(min_length=1)
    patient_age: int = Field(ge=0)
    is_anomaly: bool = False

    @field_validator('timestamp')
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @field_validator('disease', mode='before')
    @classmethod
    def _known_disease(cls, value):
        # Unknown labels are kept out of disease breakdowns, not rejected.
        return Disease.parse(value)

    @field_validator('severity', mode='before')
    @classmethod
    def _known_severity(cls, value):
        return Severity.parse(value)


class WaterSample(RecordModel):
    timestamp: datetime
    region_id: str = Field(min_length=1)
    ph: float = Field(alias='pH')
    turbidity: float = Field(ge=0)
    coliform_count: float = Field(ge=0)
    dissolved_oxygen: float = Field(ge=0)
    chlorine_residual: Optional[float] = Field(default=None, ge=0)
    conductivity: Optional[float] = None
    lead_level: Optional[float] = None
    arsenic_level: Optional[float] = None
    is_anomaly: bool = False

    @field_validator('timestamp')
    @classmethod
    def _as_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class Coordinate(RecordModel):
    lat: float
    lng: float


class Region(RecordModel):
    id: str = Field(min_length=1)
    name: str
    center: Coordinate
    population: int = Field(ge=0)
    historical_risk: float = Field(ge=0, le=1)


# -----------------------------------------------------------------------------
# Produced results
# -----------------------------------------------------------------------------

class AnalyticsBaseModel(BaseModel):
    """Base configuration for immutable analytics models."""
    model_config = ConfigDict(frozen=True)


class SeriesPoint(AnalyticsBaseModel):
    timestamp: datetime
    value: float


class TimeBucket(AnalyticsBaseModel):
    """Admission counts for the half-open interval [start, end)."""
    start: datetime
    end: datetime
    total: int = Field(ge=0)
    by_disease: Dict[Disease, int] = Field(default_factory=dict)
    by_region: Dict[str, int] = Field(default_factory=dict)
    by_severity: Dict[Severity, int] = Field(default_factory=dict)
    by_region_disease: Dict[str, Dict[Disease, int]] = Field(default_factory=dict)
    avg_age: float = 0.0
    anomaly_count: int = Field(default=0, ge=0)


class WaterRegionAverage(AnalyticsBaseModel):
    avg_ph: float
    avg_turbidity: float
    avg_coliform: float
    avg_dissolved_oxygen: float
    sample_count: int = Field(ge=0)
    has_anomaly: bool = False


class WaterBucket(AnalyticsBaseModel):
    start: datetime
    end: datetime
    region_averages: Dict[str, WaterRegionAverage] = Field(default_factory=dict)


class AnomalySample(AnalyticsBaseModel):
    timestamp: datetime
    value: float
    mean: float
    std: float
    z_score: float
    is_anomaly: bool


class AnomalyReport(AnalyticsBaseModel):
    overall: List[AnomalySample] = Field(default_factory=list)
    by_disease: Dict[Disease, List[AnomalySample]] = Field(default_factory=dict)
    by_region: Dict[str, List[AnomalySample]] = Field(default_factory=dict)


class CorrelationResult(AnalyticsBaseModel):
    correlation: Optional[float] = None
    significance: Significance
    n_samples: int = 0


class WaterDiseaseCorrelation(AnalyticsBaseModel):
    region_id: str
    disease: Disease
    water_metric: str
    correlation: float
    significance: Significance


class ZoneWaterAssessment(AnalyticsBaseModel):
    region_id: str
    total_cases: int
    disease_counts: Dict[Disease, int] = Field(default_factory=dict)
    avg_ph: Optional[float] = None
    avg_turbidity: Optional[float] = None
    avg_coliform: Optional[float] = None
    unsafe_readings_percent: Optional[float] = None
    water_risk: WaterRisk
    correlation: CorrelationResult
    note: str


class ForecastPoint(AnalyticsBaseModel):
    timestamp: datetime
    predicted: float
    upper: float
    lower: float
    confidence: int


class ForecastResult(AnalyticsBaseModel):
    smoothed_history: List[SeriesPoint] = Field(default_factory=list)
    predictions: List[ForecastPoint] = Field(default_factory=list)
    trend: Trend
    trend_value: Optional[float] = None
    current_level: Optional[float] = None
    standard_error: Optional[float] = None


class ForecastBundle(AnalyticsBaseModel):
    overall: ForecastResult
    by_disease: Dict[Disease, ForecastResult] = Field(default_factory=dict)
    by_region: Dict[str, ForecastResult] = Field(default_factory=dict)
    horizon_hours: int


class ForecastEvaluation(AnalyticsBaseModel):
    mape: Optional[float] = None
    accuracy: Optional[float] = None
    samples_used: int = 0


class FactorScore(AnalyticsBaseModel):
    value: float
    weight: float


class RiskFactors(AnalyticsBaseModel):
    admission_velocity: FactorScore
    water_quality: FactorScore
    severity_index: FactorScore
    historical_risk: FactorScore
    population_density: FactorScore
    trend_score: FactorScore


class RiskClassification(AnalyticsBaseModel):
    region_id: str
    region_name: str
    score: float = Field(ge=0, le=1)
    tier: RiskTier
    factors: RiskFactors
    population: int
    center: Coordinate


class Alert(AnalyticsBaseModel):
    id: str
    category: AlertCategory
    severity: str
    timestamp: datetime
    title: str
    message: str
    region_id: Optional[str] = None
    region_name: Optional[str] = None
    disease: Optional[Disease] = None
    risk_score: Optional[float] = None
    z_score: Optional[float] = None
    value: Optional[float] = None


class SnapshotSummary(AnalyticsBaseModel):
    total_admissions: int
    total_water_samples: int
    admissions_by_disease: Dict[Disease, int] = Field(default_factory=dict)
    admissions_by_severity: Dict[Severity, int] = Field(default_factory=dict)
    overall_risk: RiskTier
    total_alerts: int
    critical_alerts: int


class AnalyticsSnapshot(AnalyticsBaseModel):
    """The complete, immutable result set of one pipeline run."""
    generated_at: datetime
    admission_buckets: List[TimeBucket] = Field(default_factory=list)
    water_buckets: List[WaterBucket] = Field(default_factory=list)
    admission_anomalies: AnomalyReport
    water_anomalies: Dict[str, Dict[str, List[AnomalySample]]] = Field(default_factory=dict)
    correlations: List[WaterDiseaseCorrelation] = Field(default_factory=list)
    water_assessments: List[ZoneWaterAssessment] = Field(default_factory=list)
    forecasts: ForecastBundle
    forecast_evaluation: ForecastEvaluation
    classifications: List[RiskClassification] = Field(default_factory=list)
    alerts: List[Alert] = Field(default_factory=list)
    summary: SnapshotSummary
