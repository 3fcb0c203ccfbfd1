"""
Ingestor Service - Import the Hotelbeds cache feed into the hotelbeds schema.

One run:

    archive -> extract -> GENERAL + hotel files -> per-table CSVs
            -> health precheck -> stage (local dir or S3) -> phased bulk load
"""

import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

from loguru import logger
from pydantic import BaseModel, Field

from db.client import Database
from db.store import CONNECTION_ERRORS, RelationalStore
from infra.blob import BlobStore, LocalBlobStore
from infra.s3 import S3BlobStore
from lib.hotelbeds.dedup import DuplicateDetector
from services.ingestor.archive import extract_archive, locate_layout
from services.ingestor.config import FeedConfig, ImportMode, IngestConfig
from services.ingestor.errors import StoreUnavailableError
from services.ingestor.health import run_health_check
from services.ingestor.models.base import ImportReport, IngestStats
from services.ingestor.orchestrator import BulkLoadOrchestrator
from services.ingestor.processor import TableGenerator
from services.ingestor.sources import ArchiveSource, FeedDownloader
from services.ingestor.tables import natural_keys
from services.ingestor.writer import TableWriter

IMPORT_MODES = ("full", "update")


class GeneratedTables(BaseModel):
    """Per-table CSVs produced from one archive, before any store access."""

    mode: str
    output_dir: Path
    stats: IngestStats = Field(default_factory=IngestStats)
    duplicates: dict = Field(default_factory=dict)
    counts: Dict[str, int] = Field(default_factory=dict)
    paths: Dict[str, Path] = Field(default_factory=dict)

    @property
    def non_empty(self) -> Dict[str, Path]:
        return {name: path for name, path in self.paths.items() if self.counts.get(name, 0) > 0}


def _check_mode(mode: str) -> None:
    if mode not in IMPORT_MODES:
        raise ValueError(f"Unknown import mode: '{mode}'. Expected one of {IMPORT_MODES}")


class IService(ABC):
    """Ingestor Service Interface - Import the hotel inventory feed."""

    @abstractmethod
    async def generate_tables(self, archive_root: Union[str, Path], mode: ImportMode) -> GeneratedTables:
        """
        Parse an extracted archive into per-table CSV files.

        Touches no store; used on its own for dry runs.

        Raises:
            ArchiveLayoutError: GENERAL/ or DESTINATIONS/ missing
        """
        pass

    @abstractmethod
    async def ingest(
        self,
        archive_path: Union[str, Path],
        mode: ImportMode,
        version: Optional[str] = None,
    ) -> ImportReport:
        """
        Import one archive (zip file or extracted directory).

        Args:
            archive_path: Zip file or directory holding GENERAL/ and DESTINATIONS/
            mode: "full" truncates and reloads, "update" upserts
            version: Feed version, recorded in the report

        Returns:
            ImportReport with per-table results

        Raises:
            FatalIngestError: Missing layout, failed precheck or store loss
        """
        pass

    @abstractmethod
    async def sync(self, mode: ImportMode) -> ImportReport:
        """Download the current archive for mode, then ingest it."""
        pass


class Service(IService):
    """
    Usage:
        db = Database.from_env()
        await db.connect()
        service = Service(db, IngestConfig.from_env())
        report = await service.ingest("/data/hotelbeds_update.zip", "update")
    """

    def __init__(
        self,
        db: Optional[Database] = None,
        config: Optional[IngestConfig] = None,
        feed_source: Optional[ArchiveSource] = None,
        blob_store: Optional[BlobStore] = None,
        store: Optional[RelationalStore] = None,
    ):
        self.config = config or IngestConfig()
        self.db = db
        self._feed_source = feed_source
        self._blob_store = blob_store
        self._store = store

    @property
    def feed_source(self) -> ArchiveSource:
        if self._feed_source is None:
            self._feed_source = FeedDownloader(FeedConfig.from_env())
        return self._feed_source

    @property
    def blob_store(self) -> BlobStore:
        if self._blob_store is None:
            if self.config.staging_bucket:
                self._blob_store = S3BlobStore(
                    self.config.staging_bucket,
                    prefix=self.config.staging_prefix,
                    region=self.config.staging_region,
                )
            else:
                self._blob_store = LocalBlobStore(self.config.output_dir)
        return self._blob_store

    @property
    def store(self) -> RelationalStore:
        if self._store is None:
            if self.db is None:
                raise ValueError("A Database is required to load tables")
            self._store = RelationalStore(
                self.db,
                region=self.config.staging_region,
                retries=self.config.load_retries,
            )
        return self._store

    async def generate_tables(self, archive_root: Union[str, Path], mode: ImportMode) -> GeneratedTables:
        _check_mode(mode)
        layout = locate_layout(Path(archive_root))
        output_dir = Path(self.config.output_dir)
        logger.info(f"Generating tables from {layout.root} into {output_dir}")

        detector = DuplicateDetector(natural_keys(), max_size=self.config.dedup_max_size)
        with TableWriter(output_dir) as writer:
            generator = TableGenerator(
                writer,
                detector,
                concurrency=self.config.concurrency,
                max_file_bytes=self.config.max_file_bytes,
                progress_every=self.config.progress_every,
            )
            stats = await generator.generate(layout)

        duplicates = detector.stats()
        logger.info(
            f"Duplicates: {duplicates.duplicates_skipped} skipped of {duplicates.total_processed} "
            f"({duplicates.duplicate_percentage:.2f}%)"
        )

        return GeneratedTables(
            mode=mode,
            output_dir=output_dir,
            stats=stats,
            duplicates=duplicates.to_dict(),
            counts=writer.counts(),
            paths=writer.paths(),
        )

    async def stage(self, generated: GeneratedTables) -> Dict[str, str]:
        """Put every non-empty table file in the blob store. Returns table -> reference."""
        blob_store = self.blob_store
        if self.config.staging_bucket:
            removed = await blob_store.delete_all()
            if removed:
                logger.info(f"Removed {removed} stale staged objects")

        sources: Dict[str, str] = {}
        for table, path in generated.non_empty.items():
            sources[table] = await blob_store.put(str(path))
        logger.info(f"Staged {len(sources)} table files")
        return sources

    async def ingest(
        self,
        archive_path: Union[str, Path],
        mode: ImportMode,
        version: Optional[str] = None,
    ) -> ImportReport:
        _check_mode(mode)
        start = time.monotonic()
        archive_path = Path(archive_path)

        if archive_path.is_file():
            root = extract_archive(archive_path, Path(self.config.work_dir) / "extracted")
        else:
            root = archive_path

        generated = await self.generate_tables(root, mode)
        report = ImportReport(
            mode=mode,
            stats=generated.stats,
            duplicates=generated.duplicates,
            row_counts=generated.counts,
            version=version,
        )

        run_health_check(generated.counts, self.config.health, generated.paths.get("hotels"))

        try:
            await self.store.ping()
        except CONNECTION_ERRORS as e:
            raise StoreUnavailableError(f"Store unavailable before load: {e}") from e

        sources = await self.stage(generated)
        orchestrator = BulkLoadOrchestrator(self.store, disable_fk_checks=self.config.disable_fk_checks)
        try:
            await orchestrator.load(sources, mode, report)
        finally:
            report.total_duration = time.monotonic() - start

        if report.success:
            logger.info(f"Import ({mode}) finished in {report.total_duration:.1f}s")
        else:
            logger.warning(
                f"Import ({mode}) finished in {report.total_duration:.1f}s "
                f"with failed tables: {', '.join(report.failed_tables)}"
            )
        return report

    async def sync(self, mode: ImportMode) -> ImportReport:
        _check_mode(mode)
        download = await self.feed_source.fetch(mode, Path(self.config.work_dir) / "downloads")
        logger.info(f"Downloaded {download.bytes} bytes (version {download.version})")
        return await self.ingest(download.path, mode, version=download.version)
