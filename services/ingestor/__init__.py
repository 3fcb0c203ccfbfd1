"""
Ingestor Service - Import the Hotelbeds cache feed.

Usage:
    from services.ingestor import Service, IngestConfig

    service = Service(db, IngestConfig.from_env())
    report = await service.sync("update")          # download + ingest
    report = await service.ingest(path, "full")    # local archive

    # Dry run, CSVs only
    generated = await service.generate_tables(extracted_dir, "full")
"""

# Service
from services.ingestor.service import GeneratedTables, IService, Service

# Config
from services.ingestor.config import FeedConfig, HealthCheckConfig, ImportMode, IngestConfig

# Errors
from services.ingestor.errors import (
    ArchiveLayoutError,
    FatalIngestError,
    FeedDownloadError,
    HealthCheckError,
    IngestError,
    StoreUnavailableError,
)

# Models
from services.ingestor.models.base import ImportReport, IngestStats, TableLoadResult

# Pipeline pieces
from services.ingestor.orchestrator import BulkLoadOrchestrator
from services.ingestor.processor import TableGenerator
from services.ingestor.tables import TABLES, TableSpec
from services.ingestor.writer import TableWriter

# Sources
from services.ingestor.sources import ArchiveSource, DownloadResult, FeedDownloader

# Logging
from services.ingestor.logging import IngestLogger, capture_ingest_logs

__all__ = [
    # Service
    "Service",
    "IService",
    "GeneratedTables",
    # Config
    "FeedConfig",
    "HealthCheckConfig",
    "ImportMode",
    "IngestConfig",
    # Errors
    "ArchiveLayoutError",
    "FatalIngestError",
    "FeedDownloadError",
    "HealthCheckError",
    "IngestError",
    "StoreUnavailableError",
    # Models
    "ImportReport",
    "IngestStats",
    "TableLoadResult",
    # Pipeline
    "BulkLoadOrchestrator",
    "TableGenerator",
    "TABLES",
    "TableSpec",
    "TableWriter",
    # Sources
    "ArchiveSource",
    "DownloadResult",
    "FeedDownloader",
    # Logging
    "IngestLogger",
    "capture_ingest_logs",
]
