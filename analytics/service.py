# outbreak_sentinel/analytics/service.py
#
# Analytics Hosting Service
# Owns the latest AnalyticsSnapshot and recomputes it on demand from a record
# source. At most one refresh runs at a time; readers always see either the
# previous or the new complete snapshot.

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol, Sequence, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

try:
    from config.settings import Settings, settings as default_settings
    from data_processing.loaders import (
        DataLoader, load_admission_rows, load_region_rows, load_water_quality_rows,
    )
    from .errors import SourceUnavailableError
    from .models import AdmissionRecord, AnalyticsSnapshot, Region, WaterSample
    from .pipeline import run_pipeline
except ImportError as e:
    logging.basicConfig(level="CRITICAL")
    logging.critical(f"FATAL ERROR in service.py: A core dependency is missing. {e}", exc_info=True)
    raise

logger = logging.getLogger(__name__)

ModelT = TypeVar('ModelT', bound=BaseModel)

REFRESH_IN_PROGRESS = "refresh already in progress"


class RefreshOutcome(BaseModel):
    """Result of one refresh request."""
    model_config = ConfigDict(frozen=True)

    success: bool
    reason: Optional[str] = None
    generated_at: Optional[datetime] = None


# --- Record Sources ---

class RecordSource(Protocol):
    """Anything able to hand the core a consistent copy of the raw collections."""
    def load_admissions(self) -> List[AdmissionRecord]: ...
    def load_water_samples(self) -> List[WaterSample]: ...
    def load_regions(self) -> List[Region]: ...


class InMemoryRecordSource:
    """Serves records already held in memory, e.g. by an ingestion layer or a test."""
    def __init__(
        self,
        admissions: Sequence[AdmissionRecord] = (),
        water_samples: Sequence[WaterSample] = (),
        regions: Optional[Sequence[Region]] = None,
    ):
        self.admissions = list(admissions)
        self.water_samples = list(water_samples)
        self.regions = list(regions) if regions is not None else _validate_rows(load_region_rows(), Region, "Regions")

    def load_admissions(self) -> List[AdmissionRecord]:
        return list(self.admissions)

    def load_water_samples(self) -> List[WaterSample]:
        return list(self.water_samples)

    def load_regions(self) -> List[Region]:
        return list(self.regions)


def _validate_rows(rows, model: Type[ModelT], context: str) -> List[ModelT]:
    """Validates raw rows into models, skipping (and counting) invalid ones."""
    valid, skipped = [], 0
    for row in rows:
        try:
            valid.append(model.model_validate(row))
        except ValidationError as e:
            skipped += 1
            logger.debug(f"[{context}] Invalid record skipped: {e.errors()[0].get('msg')}")
    if skipped:
        logger.warning(f"[{context}] Skipped {skipped} record(s) failing validation.")
    return valid


class JsonFileRecordSource:
    """
    Reads the record collections from JSON files in the data directory.

    A missing or malformed admissions or water-quality file raises
    SourceUnavailableError so the service keeps its previous snapshot.
    """
    def __init__(self, loader: Optional[DataLoader] = None):
        self.loader = loader

    def load_admissions(self) -> List[AdmissionRecord]:
        rows = load_admission_rows(self.loader)
        if rows is None:
            raise SourceUnavailableError("admissions")
        return _validate_rows(rows, AdmissionRecord, "Admissions")

    def load_water_samples(self) -> List[WaterSample]:
        rows = load_water_quality_rows(self.loader)
        if rows is None:
            raise SourceUnavailableError("water_quality")
        return _validate_rows(rows, WaterSample, "WaterQuality")

    def load_regions(self) -> List[Region]:
        regions = _validate_rows(load_region_rows(self.loader), Region, "Regions")
        if not regions:
            raise SourceUnavailableError("regions", "no valid regions configured")
        return regions


# --- Service ---

class AnalyticsService:
    """
    Holds the most recent snapshot and recomputes it with `refresh()`.

    The snapshot reference is replaced only after a fully successful run.
    A refresh requested while another is running is rejected immediately.
    """
    def __init__(
        self,
        source: RecordSource,
        config: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.source = source
        self.config = config or default_settings
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._snapshot: Optional[AnalyticsSnapshot] = None
        self._refresh_lock = threading.Lock()

    @property
    def snapshot(self) -> Optional[AnalyticsSnapshot]:
        """The latest complete snapshot, or None before the first successful refresh."""
        return self._snapshot

    def refresh(self) -> RefreshOutcome:
        if not self._refresh_lock.acquire(blocking=False):
            logger.warning("Refresh requested while another refresh is running. Skipping.")
            return RefreshOutcome(success=False, reason=REFRESH_IN_PROGRESS)

        try:
            snapshot = run_pipeline(
                admissions=self.source.load_admissions(),
                water_samples=self.source.load_water_samples(),
                regions=self.source.load_regions(),
                config=self.config,
                now=self._clock(),
            )
            self._snapshot = snapshot
        except SourceUnavailableError as e:
            logger.error(f"Refresh failed, keeping previous snapshot: {e}", exc_info=True)
            return RefreshOutcome(success=False, reason=f"{e.source}: {e.reason}")
        except Exception as e:
            logger.critical(f"Unexpected error during refresh, keeping previous snapshot: {e}", exc_info=True)
            return RefreshOutcome(success=False, reason=f"pipeline error: {e}")
        finally:
            self._refresh_lock.release()

        logger.info(f"Snapshot refreshed at {snapshot.generated_at.isoformat()}.")
        return RefreshOutcome(success=True, generated_at=snapshot.generated_at)
