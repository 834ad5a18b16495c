# outbreak_sentinel/data_processing/loaders.py
#
# Record Loading Engine
# Reads the raw admission, water-quality and region collections from the
# configured data directory. Rows are returned as plain dictionaries; schema
# validation happens where the records enter the analytics core.

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

# --- Core Application Imports ---
try:
    from config.settings import settings
    from .helpers import robust_json_load
except ImportError as e:
    logging.basicConfig(level="CRITICAL")
    logging.critical(f"FATAL ERROR in loaders.py: A core dependency is missing. {e}", exc_info=True)
    raise

logger = logging.getLogger(__name__)

Rows = List[Dict[str, Any]]


class DataLoader:
    """
    Loads JSON record collections relative to a base data directory.

    A collection is either a top-level list of objects or an object holding
    that list under a single key (e.g. {"admissions": [...]}). Anything else
    is reported as unavailable by returning None.
    """
    def __init__(self, data_source_dir: Path):
        self.base_dir = data_source_dir
        if not self.base_dir.exists():
            logger.warning(f"Record directory {self.base_dir} does not exist yet; creating it.")
            self.base_dir.mkdir(parents=True, exist_ok=True)

    def _get_path(self, file_path: Path) -> Path:
        """Relative paths are taken from the record directory."""
        return self.base_dir / file_path if not file_path.is_absolute() else file_path

    def exists(self, file_path: Path) -> bool:
        return self._get_path(file_path).is_file()

    def load_records(self, file_path: Path, context: str, key: Optional[str] = None) -> Optional[Rows]:
        full_path = self._get_path(file_path)
        log_ctx = f"{context}({full_path.name})"
        data = robust_json_load(full_path, context)
        if data is None:
            return None

        if isinstance(data, dict) and key is not None:
            data = data.get(key)
        if not isinstance(data, list):
            logger.error(f"[{log_ctx}] Expected a list of records, got {type(data).__name__}.")
            return None

        rows = [row for row in data if isinstance(row, dict)]
        if len(rows) != len(data):
            logger.warning(f"[{log_ctx}] Skipped {len(data) - len(rows)} non-object entries.")
        logger.info(f"[{log_ctx}] Loaded {len(rows)} raw records.")
        return rows


# --- Singleton Instance ---
_data_loader = DataLoader(settings.directories.data_sources)


# --- Public API Functions for Data Loading ---

def load_admission_rows(loader: Optional[DataLoader] = None) -> Optional[Rows]:
    """Loads raw hospital admission records, or None when unavailable."""
    loader = loader or _data_loader
    return loader.load_records(Path(settings.admissions_file), "Admissions", key="admissions")

def load_water_quality_rows(loader: Optional[DataLoader] = None) -> Optional[Rows]:
    """Loads raw water-quality samples, or None when unavailable."""
    loader = loader or _data_loader
    return loader.load_records(Path(settings.water_quality_file), "WaterQuality", key="samples")

def load_region_rows(loader: Optional[DataLoader] = None) -> Rows:
    """
    Loads region reference data. The regions file is optional: when it is
    not configured, missing or malformed the regions from settings are used.
    """
    loader = loader or _data_loader
    if settings.regions_file and loader.exists(Path(settings.regions_file)):
        rows = loader.load_records(Path(settings.regions_file), "Regions", key="regions")
        if rows is not None:
            return rows
        logger.warning("Regions file could not be used. Falling back to configured regions.")
    return [region.model_dump() for region in settings.regions]
