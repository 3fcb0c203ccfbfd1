"""
Data health precheck - Sanity checks on freshly generated tables, run
before anything touches the store.
"""

import csv
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

from services.ingestor.config import HealthCheckConfig
from services.ingestor.errors import HealthCheckError


def count_empty(csv_path: Path, column: str) -> int:
    """Rows of a generated CSV whose column is empty (NULL once loaded)."""
    path = Path(csv_path)
    if not path.exists():
        return 0
    with open(path, newline="", encoding="utf-8") as handle:
        return sum(1 for row in csv.DictReader(handle) if not row.get(column))


def evaluate(
    counts: Dict[str, int],
    null_hotel_names: int,
    config: HealthCheckConfig,
) -> List[str]:
    """Return the failed checks, empty when healthy."""
    failures = []

    hotels = counts.get("hotels", 0)
    if hotels < config.min_hotels:
        failures.append(f"hotels has {hotels} rows, expected at least {config.min_hotels}")

    rates = counts.get("hotel_rates", 0)
    if rates < config.min_rates:
        failures.append(f"hotel_rates has {rates} rows, expected at least {config.min_rates}")

    if null_hotel_names and not config.allow_null_hotel_names:
        failures.append(f"{null_hotel_names} hotels have no name")

    return failures


def run_health_check(
    counts: Dict[str, int],
    config: HealthCheckConfig,
    hotels_csv: Optional[Path] = None,
) -> None:
    """
    Validate generated row counts.

    Raises:
        HealthCheckError: If any check fails
    """
    if not config.enabled:
        logger.warning("Data health check disabled, skipping")
        return

    null_names = count_empty(hotels_csv, "name") if hotels_csv else 0
    failures = evaluate(counts, null_names, config)
    if failures:
        for failure in failures:
            logger.error(f"Health check failed: {failure}")
        raise HealthCheckError(failures)

    logger.info(
        f"Health check passed: {counts.get('hotels', 0)} hotels, "
        f"{counts.get('hotel_rates', 0)} rates"
    )
