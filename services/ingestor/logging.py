"""
Ingest run logging - Capture a run's log, compress it, keep it in S3
and/or a local directory.
"""

import gzip
import io
import json
import os
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import boto3
from loguru import logger


class IngestLogger:
    """
    Captures logs during an ingestion run and saves them when it ends.

    Usage:
        with IngestLogger("hotelbeds", mode="update") as log:
            report = await service.ingest(path, "update")
            log.record_report(report.to_dict())
        # Log is compressed and uploaded to S3
    """

    def __init__(
        self,
        source_name: str,
        mode: Optional[str] = None,
        s3_bucket: Optional[str] = None,
        s3_prefix: str = "ingest-logs/",
        local_backup_dir: Optional[str] = None,
    ):
        """
        Args:
            source_name: Name of the feed (e.g. 'hotelbeds')
            mode: Import mode, part of the log file name
            s3_bucket: S3 bucket for log uploads (defaults to INGEST_LOG_BUCKET env var)
            s3_prefix: S3 key prefix for logs
            local_backup_dir: Local directory for log backup (optional)
        """
        self.source_name = source_name
        self.mode = mode
        self.s3_bucket = s3_bucket or os.environ.get("INGEST_LOG_BUCKET")
        self.s3_prefix = s3_prefix
        self.local_backup_dir = local_backup_dir

        self._log_buffer = io.StringIO()
        self._handler_id: Optional[int] = None
        self._start_time: Optional[datetime] = None
        self.saved_to: Optional[str] = None

    @property
    def run_name(self) -> str:
        return f"{self.source_name}_{self.mode}" if self.mode else self.source_name

    def __enter__(self) -> "IngestLogger":
        self._start_time = datetime.now(timezone.utc)

        self._handler_id = logger.add(
            self._log_buffer,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {message}",
            level="DEBUG",
        )

        logger.info(f"=== Ingestion started: {self.run_name} ===")
        logger.info(f"Start time: {self._start_time.isoformat()}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        end_time = datetime.now(timezone.utc)

        if exc_type:
            logger.error(f"Ingestion failed with error: {exc_val}")

        logger.info(f"End time: {end_time.isoformat()}")
        logger.info(f"Duration: {end_time - self._start_time}")
        logger.info(f"=== Ingestion completed: {self.run_name} ===")

        if self._handler_id is not None:
            logger.remove(self._handler_id)
            self._handler_id = None

        try:
            self.saved_to = self._save_log(self._log_buffer.getvalue(), end_time)
        except Exception as e:
            logger.error(f"Failed to save ingestion log: {e}")

        return False

    def record_report(self, report: dict) -> None:
        """Write the run's structured report into the captured log."""
        logger.info(f"Import report: {json.dumps(report, default=str)}")

    def filename(self, timestamp: datetime) -> str:
        return f"{self.run_name}_{timestamp.strftime('%Y-%m-%d')}_{timestamp.strftime('%H%M%S')}.log.gz"

    def _save_log(self, content: str, timestamp: datetime) -> Optional[str]:
        """Compress the log and upload and/or back it up. Returns where it went."""
        filename = self.filename(timestamp)
        compressed = gzip.compress(content.encode("utf-8"))
        saved_to = None

        if self.s3_bucket:
            try:
                key = self._upload_to_s3(compressed, filename)
                saved_to = f"s3://{self.s3_bucket}/{key}"
                logger.info(f"Log uploaded to {saved_to}")
            except Exception as e:
                logger.error(f"S3 upload failed: {e}")

        if self.local_backup_dir:
            try:
                local_path = self._save_local(compressed, filename)
                saved_to = saved_to or str(local_path)
                logger.info(f"Log saved locally: {local_path}")
            except Exception as e:
                logger.error(f"Local save failed: {e}")

        return saved_to

    def _upload_to_s3(self, content: bytes, filename: str) -> str:
        s3 = boto3.client("s3")
        key = f"{self.s3_prefix}{filename}"
        s3.put_object(
            Bucket=self.s3_bucket,
            Key=key,
            Body=content,
            ContentType="application/gzip",
            ContentEncoding="gzip",
        )
        return key

    def _save_local(self, content: bytes, filename: str) -> Path:
        backup_dir = Path(self.local_backup_dir)
        backup_dir.mkdir(parents=True, exist_ok=True)
        filepath = backup_dir / filename
        filepath.write_bytes(content)
        return filepath


@contextmanager
def capture_ingest_logs(
    source_name: str,
    mode: Optional[str] = None,
    s3_bucket: Optional[str] = None,
    s3_prefix: str = "ingest-logs/",
    local_backup_dir: Optional[str] = None,
):
    """
    Context manager to capture ingestion logs.

    Usage:
        with capture_ingest_logs("hotelbeds", mode="full") as log:
            logger.info("Processing...")
    """
    ingest_logger = IngestLogger(
        source_name=source_name,
        mode=mode,
        s3_bucket=s3_bucket,
        s3_prefix=s3_prefix,
        local_backup_dir=local_backup_dir,
    )
    with ingest_logger as log:
        yield log
