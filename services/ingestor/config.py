"""
Ingestor configuration models.
"""

import os
from typing import Literal, Optional

from pydantic import BaseModel, Field

from lib.hotelbeds.dedup import DEFAULT_MAX_SIZE
from lib.hotelbeds.tokenizer import DEFAULT_MAX_FILE_BYTES

ImportMode = Literal["full", "update"]


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.lower() in ("1", "true", "yes", "y")


class HealthCheckConfig(BaseModel):
    """Row-count minimums applied to freshly generated tables before loading."""

    enabled: bool = Field(default=True, description="Run the precheck at all")
    min_hotels: int = Field(default=20_000, description="Minimum rows in hotels")
    min_rates: int = Field(default=15_000, description="Minimum rows in hotel_rates")
    allow_null_hotel_names: bool = Field(
        default=False, description="Accept hotels without a name"
    )


class IngestConfig(BaseModel):
    """
    Runtime configuration for a feed ingestion run.

    Thresholds and limits all have production defaults and can be overridden
    through HOTELBEDS_* environment variables via from_env().
    """

    # Working directories
    work_dir: str = Field(default="/tmp/hotelbeds", description="Archive extraction directory")
    csv_dir: Optional[str] = Field(
        default=None, description="CSV output directory (defaults to <work_dir>/csv)"
    )

    # Processing
    concurrency: int = Field(default=50, ge=1, description="Concurrent hotel files")
    max_file_bytes: int = Field(
        default=DEFAULT_MAX_FILE_BYTES, description="Files above this size are skipped"
    )
    dedup_max_size: int = Field(
        default=DEFAULT_MAX_SIZE, description="Per-table duplicate cache ceiling"
    )
    progress_every: int = Field(default=1000, ge=1, description="Log progress every N files")

    # Loading
    disable_fk_checks: bool = Field(
        default=True, description="Disable FK triggers while a phase loads"
    )
    load_retries: int = Field(default=2, ge=0, description="Retries per bulk load on connection errors")

    # Staging
    staging_bucket: Optional[str] = Field(
        default=None, description="S3 bucket for staged CSVs (None = load local files)"
    )
    staging_prefix: str = Field(default="hotelbeds/csv/", description="S3 key prefix")
    staging_region: Optional[str] = Field(default=None, description="AWS region")

    health: HealthCheckConfig = Field(default_factory=HealthCheckConfig)

    @property
    def output_dir(self) -> str:
        return self.csv_dir or os.path.join(self.work_dir, "csv")

    @classmethod
    def from_env(cls, **overrides) -> "IngestConfig":
        values = {
            "work_dir": os.getenv("HOTELBEDS_WORK_DIR", "/tmp/hotelbeds"),
            "csv_dir": os.getenv("HOTELBEDS_CSV_DIR") or None,
            "concurrency": _env_int("HOTELBEDS_CONCURRENCY", 50),
            "max_file_bytes": _env_int("HOTELBEDS_MAX_FILE_BYTES", DEFAULT_MAX_FILE_BYTES),
            "dedup_max_size": _env_int("HOTELBEDS_DEDUP_MAX_SIZE", DEFAULT_MAX_SIZE),
            "disable_fk_checks": _env_bool("HOTELBEDS_DISABLE_FK_CHECKS", True),
            "staging_bucket": os.getenv("HOTELBEDS_STAGING_BUCKET") or None,
            "staging_prefix": os.getenv("HOTELBEDS_STAGING_PREFIX", "hotelbeds/csv/"),
            "staging_region": os.getenv("AWS_REGION") or None,
            "health": HealthCheckConfig(
                enabled=_env_bool("HOTELBEDS_HEALTH_CHECK", True),
                min_hotels=_env_int("HOTELBEDS_MIN_HOTELS", 20_000),
                min_rates=_env_int("HOTELBEDS_MIN_RATES", 15_000),
                allow_null_hotel_names=_env_bool("HOTELBEDS_ALLOW_NULL_HOTEL_NAMES", False),
            ),
        }
        values.update(overrides)
        return cls(**values)


class FeedConfig(BaseModel):
    """Configuration for the upstream feed download."""

    base_url: str = Field(..., description="Feed base URL, mode is appended")
    api_key: str = Field(..., description="Value for the Api-key header")
    connect_timeout: float = Field(default=30.0, description="Connect timeout in seconds")
    read_timeout: float = Field(
        default=600.0, description="Max seconds between received chunks"
    )
    retries: int = Field(default=3, ge=0, description="Retries after the first attempt")
    backoff_base: float = Field(default=2.0, description="Backoff base in seconds")
    chunk_size: int = Field(default=1024 * 1024, description="Stream chunk size in bytes")
    progress_bytes: int = Field(default=5 * 1024 * 1024, description="Log progress every N bytes")

    @classmethod
    def from_env(cls, **overrides) -> "FeedConfig":
        values = {
            "base_url": os.getenv("HOTELBEDS_API_URL", ""),
            "api_key": os.getenv("HOTELBEDS_API_KEY", ""),
            "read_timeout": float(os.getenv("HOTELBEDS_DOWNLOAD_TIMEOUT", "600")),
            "retries": _env_int("HOTELBEDS_DOWNLOAD_RETRIES", 3),
        }
        values.update(overrides)
        return cls(**values)
