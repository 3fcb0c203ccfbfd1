#!/usr/bin/env python3
"""
Ingest the Hotelbeds cache feed into the hotelbeds schema.

Downloads (or reads) a feed archive, turns it into one CSV per table,
runs the data health precheck and bulk loads the tables phase by phase.

Usage:
    # Download the latest update archive and load it
    uv run python -m workflows.ingest_hotelbeds --download --mode update

    # Full reload from a local archive
    uv run python -m workflows.ingest_hotelbeds --archive /data/hotelbeds_full.zip --mode full

    # Generate CSVs only, no database access
    uv run python -m workflows.ingest_hotelbeds --archive /data/extracted --dry-run

Exit code is 1 when the run aborts or any table fails to load.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

load_dotenv()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ingest the Hotelbeds cache feed")

    source_group = parser.add_mutually_exclusive_group(required=True)
    source_group.add_argument(
        "--archive", "-a",
        type=str,
        help="Local archive: zip file or extracted directory",
    )
    source_group.add_argument(
        "--download",
        action="store_true",
        help="Download the archive from the feed API",
    )

    parser.add_argument(
        "--mode", "-m",
        choices=["full", "update"],
        default="update",
        help="full truncates and reloads, update upserts (default: update)",
    )
    parser.add_argument(
        "--work-dir",
        type=str,
        help="Working directory for extraction and CSVs (default: HOTELBEDS_WORK_DIR or /tmp/hotelbeds)",
    )
    parser.add_argument(
        "--concurrency", "-c",
        type=int,
        help="Hotel files processed concurrently (default: 50)",
    )
    parser.add_argument(
        "--skip-health-check",
        action="store_true",
        help="Load even if row-count minimums are not met",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Generate CSVs and print counts without touching the database",
    )
    parser.add_argument(
        "--log-dir",
        type=str,
        help="Also keep a gzipped copy of the run log in this directory",
    )
    return parser


def build_config(args):
    from services.ingestor.config import IngestConfig

    overrides = {}
    if args.work_dir:
        overrides["work_dir"] = args.work_dir
    if args.concurrency:
        overrides["concurrency"] = args.concurrency
    config = IngestConfig.from_env(**overrides)
    if args.skip_health_check:
        config.health.enabled = False
    return config


async def run_dry(args) -> int:
    from services.ingestor.archive import extract_archive
    from services.ingestor.service import Service

    config = build_config(args)
    service = Service(config=config)

    if args.download:
        download = await service.feed_source.fetch(args.mode, Path(config.work_dir) / "downloads")
        archive = download.path
    else:
        archive = Path(args.archive)

    root = extract_archive(archive, Path(config.work_dir) / "extracted") if archive.is_file() else archive
    generated = await service.generate_tables(root, args.mode)

    logger.info("=" * 50)
    logger.info("DRY RUN - tables generated, nothing loaded")
    logger.info("=" * 50)
    for table, count in generated.counts.items():
        logger.info(f"  {table}: {count}")
    logger.info(f"CSV directory: {generated.output_dir}")
    logger.info(f"Stats: {generated.stats.to_dict()}")
    return 0


async def ingest(args, db) -> int:
    """Run one ingestion against an open Database. Returns the exit code."""
    from services.ingestor.errors import FatalIngestError, FeedDownloadError
    from services.ingestor.logging import capture_ingest_logs
    from services.ingestor.service import Service

    service = Service(db, build_config(args))

    with capture_ingest_logs("hotelbeds", mode=args.mode, local_backup_dir=args.log_dir) as log:
        try:
            if args.download:
                report = await service.sync(args.mode)
            else:
                report = await service.ingest(args.archive, args.mode)
        except (FatalIngestError, FeedDownloadError) as e:
            logger.error(f"Ingestion aborted: {e}")
            return 1

        log.record_report(report.to_dict())

    logger.info("=" * 50)
    logger.info("INGESTION SUMMARY")
    logger.info("=" * 50)
    for table, result in report.per_table.items():
        status = f"{result.rows_affected} rows" if result.success else f"FAILED ({result.error})"
        logger.info(f"  {table}: {status}")
    logger.info(f"Duration: {report.total_duration:.1f}s")
    print(json.dumps(report.to_dict(), indent=2))

    return 0 if report.success else 1


async def run_ingest(args) -> int:
    from db.client import Database

    db = Database.from_env()
    await db.connect()
    try:
        return await ingest(args, db)
    finally:
        await db.close()


def main():
    args = build_parser().parse_args()
    runner = run_dry if args.dry_run else run_ingest
    sys.exit(asyncio.run(runner(args)))


if __name__ == "__main__":
    main()
