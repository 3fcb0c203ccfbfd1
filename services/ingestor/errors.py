"""
Ingestion errors.

Line-level problems never raise (they are counted). File-level problems are
caught per file. Table-load problems are caught per table. Only the
FatalIngestError family aborts a run.
"""

from typing import List, Optional

from lib.hotelbeds.tokenizer import FileTooLargeError


class IngestError(Exception):
    """Base class for ingestion errors."""


class FatalIngestError(IngestError):
    """Aborts the whole run."""


class ArchiveLayoutError(FatalIngestError):
    """Required top-level archive directory is missing."""

    def __init__(self, missing: List[str], root: str):
        self.missing = missing
        self.root = root
        super().__init__(f"Archive at {root} is missing: {', '.join(missing)}")


class HealthCheckError(FatalIngestError):
    """Pre-load data health validation failed."""

    def __init__(self, failures: List[str]):
        self.failures = failures
        super().__init__("Data health check failed: " + "; ".join(failures))


class StoreUnavailableError(FatalIngestError):
    """Lost the relational store mid-phase."""

    def __init__(self, message: str, table: Optional[str] = None):
        self.table = table
        super().__init__(message)


class FeedDownloadError(IngestError):
    """Feed download failed after all retries."""


__all__ = [
    "IngestError",
    "FatalIngestError",
    "ArchiveLayoutError",
    "HealthCheckError",
    "StoreUnavailableError",
    "FeedDownloadError",
    "FileTooLargeError",
]
