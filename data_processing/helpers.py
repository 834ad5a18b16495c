# outbreak_sentinel/data_processing/helpers.py
#
# Core Data Utilities
# Metric rounding, timestamp normalization and safe JSON reading shared by
# the loaders and analytics stages.

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np

logger = logging.getLogger(__name__)

# Precision applied to every reported metric. Intermediate math is never rounded.
METRIC_PRECISION = 2
CORRELATION_PRECISION = 3


def round_metric(value: Optional[float], digits: int = METRIC_PRECISION) -> Optional[float]:
    """
    Rounds a computed metric at the boundary where it leaves a stage.

    Returns None for None/NaN so callers can report "no data" instead of a
    wrong number. Negative zero is normalized to 0.0.
    """
    if value is None:
        return None
    value = float(value)
    if np.isnan(value):
        return None
    return round(value, digits) + 0.0


def ensure_utc(dt_input: datetime) -> datetime:
    """Makes a datetime timezone-aware in UTC, assuming UTC when it is naive."""
    if dt_input.tzinfo is None:
        return dt_input.replace(tzinfo=timezone.utc)
    return dt_input.astimezone(timezone.utc)


def robust_json_load(file_path: Path, context: str = "JSON") -> Optional[Union[dict, list]]:
    """
    Reads a JSON document, logging and returning None instead of raising when
    the file is absent, unreadable or not valid JSON.
    """
    log_ctx = f"{context}({file_path.name})"
    if not file_path.is_file():
        logger.error(f"[{log_ctx}] No such file: {file_path}")
        return None
    try:
        raw: Any = file_path.read_text(encoding='utf-8')
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.error(f"[{log_ctx}] Not valid JSON: {e}")
    except OSError as e:
        logger.error(f"[{log_ctx}] Could not read file: {e}", exc_info=True)
    return None
