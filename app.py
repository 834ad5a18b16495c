# outbreak_sentinel/app.py
#
# Main Application Entry Point
# Runs one analytics refresh against the JSON record files in the configured
# data directory and prints the result as JSON.

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

# --- Core Application Imports ---
try:
    from config.settings import settings
    from analytics import AnalyticsService, JsonFileRecordSource
    from data_processing import DataLoader
except ImportError as e:
    logging.basicConfig(level="CRITICAL")
    logging.critical(f"FATAL ERROR in app.py: A core dependency is missing. {e}", exc_info=True)
    raise

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    logging.basicConfig(
        level=settings.app.log_level,
        format=settings.app.log_format,
        datefmt=settings.app.log_date_format,
        force=True  # Override any existing handlers
    )


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="outbreak-sentinel",
        description=f"{settings.app.name}: recompute disease outbreak analytics from JSON records.",
    )
    parser.add_argument(
        "--data-dir", type=Path, default=None,
        help=f"Directory holding the record files (default: {settings.directories.data_sources}).",
    )
    parser.add_argument(
        "--full", action="store_true",
        help="Print the complete snapshot instead of the summary, risk table and alerts.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    _configure_logging()
    logger.info(f"Starting {settings.app.name} v{settings.app.version}.")

    loader = DataLoader(args.data_dir) if args.data_dir else None
    service = AnalyticsService(JsonFileRecordSource(loader))
    outcome = service.refresh()
    if not outcome.success:
        logger.error(f"Analytics refresh failed: {outcome.reason}")
        print(outcome.model_dump_json(indent=2))
        return 1

    snapshot = service.snapshot
    if args.full:
        print(snapshot.model_dump_json(indent=2))
        return 0

    report = {
        "generated_at": snapshot.generated_at.isoformat(),
        "summary": snapshot.summary.model_dump(mode="json"),
        "risk": [
            {"region_id": rc.region_id, "region_name": rc.region_name, "score": rc.score, "tier": rc.tier.value}
            for rc in snapshot.classifications
        ],
        "alerts": [alert.model_dump(mode="json", exclude_none=True) for alert in snapshot.alerts],
        "forecast_evaluation": snapshot.forecast_evaluation.model_dump(mode="json"),
    }
    print(json.dumps(report, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
