"""Tests for ingestor logging module."""

import gzip
import pytest
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch, MagicMock
from loguru import logger

from services.ingestor.logging import IngestLogger, capture_ingest_logs


class TestIngestLogger:
    """Tests for IngestLogger class."""

    @pytest.mark.no_db
    def test_captures_logs(self):
        """Logger captures log messages."""
        with IngestLogger("hotelbeds", s3_bucket=None) as log:
            logger.info("Parsed 12 hotel files")
            logger.info("Loaded hotel_rates")

        content = log._log_buffer.getvalue()
        assert "Parsed 12 hotel files" in content
        assert "Loaded hotel_rates" in content

    @pytest.mark.no_db
    def test_run_name_includes_mode(self):
        """Start and end markers name the feed and the import mode."""
        with IngestLogger("hotelbeds", mode="update", s3_bucket=None) as log:
            logger.info("Work in progress")

        content = log._log_buffer.getvalue()
        assert "=== Ingestion started: hotelbeds_update ===" in content
        assert "=== Ingestion completed: hotelbeds_update ===" in content
        assert "Duration:" in content

    @pytest.mark.no_db
    def test_filename(self):
        log = IngestLogger("hotelbeds", mode="full", s3_bucket=None)
        stamp = datetime(2025, 6, 1, 3, 4, 5, tzinfo=timezone.utc)
        assert log.filename(stamp) == "hotelbeds_full_2025-06-01_030405.log.gz"

    @pytest.mark.no_db
    def test_records_report(self):
        """The structured report ends up in the captured log."""
        with IngestLogger("hotelbeds", s3_bucket=None) as log:
            log.record_report({"mode": "full", "success": True})

        content = log._log_buffer.getvalue()
        assert 'Import report: {"mode": "full", "success": true}' in content

    @pytest.mark.no_db
    def test_saves_local_backup(self, tmp_path):
        """Logger saves a compressed local backup when configured."""
        with IngestLogger("hotelbeds", s3_bucket=None, local_backup_dir=str(tmp_path)) as log:
            logger.info("Test message")

        files = list(tmp_path.glob("*.log.gz"))
        assert len(files) == 1
        assert log.saved_to == str(files[0])

        content = gzip.decompress(files[0].read_bytes()).decode()
        assert "Test message" in content

    @pytest.mark.no_db
    def test_uploads_to_s3(self):
        """Logger uploads to S3 when bucket is configured."""
        mock_s3 = MagicMock()

        with patch("services.ingestor.logging.boto3") as mock_boto3:
            mock_boto3.client.return_value = mock_s3

            with IngestLogger("hotelbeds", mode="update", s3_bucket="test-bucket") as log:
                logger.info("Test message")

        mock_s3.put_object.assert_called_once()
        call_kwargs = mock_s3.put_object.call_args[1]
        assert call_kwargs["Bucket"] == "test-bucket"
        assert call_kwargs["Key"].startswith("ingest-logs/hotelbeds_update_")
        assert call_kwargs["Key"].endswith(".log.gz")
        assert log.saved_to.startswith("s3://test-bucket/ingest-logs/")

    @pytest.mark.no_db
    def test_s3_failure_does_not_raise(self, tmp_path):
        """A failed upload still leaves the local backup."""
        mock_s3 = MagicMock()
        mock_s3.put_object.side_effect = RuntimeError("denied")

        with patch("services.ingestor.logging.boto3") as mock_boto3:
            mock_boto3.client.return_value = mock_s3

            with IngestLogger(
                "hotelbeds", s3_bucket="test-bucket", local_backup_dir=str(tmp_path)
            ) as log:
                logger.info("Test")

        assert len(list(tmp_path.glob("*.log.gz"))) == 1
        assert log.saved_to.endswith(".log.gz")

    @pytest.mark.no_db
    def test_logs_exception_on_error(self):
        """Logger captures exception info and lets it propagate."""
        with pytest.raises(ValueError):
            with IngestLogger("hotelbeds", s3_bucket=None) as log:
                logger.info("Before error")
                raise ValueError("Archive is missing GENERAL")

        content = log._log_buffer.getvalue()
        assert "Before error" in content
        assert "Ingestion failed with error: Archive is missing GENERAL" in content

    @pytest.mark.no_db
    def test_uses_env_bucket(self):
        """Logger uses INGEST_LOG_BUCKET env var."""
        mock_s3 = MagicMock()

        with patch.dict("os.environ", {"INGEST_LOG_BUCKET": "env-bucket"}):
            with patch("services.ingestor.logging.boto3") as mock_boto3:
                mock_boto3.client.return_value = mock_s3

                with IngestLogger("hotelbeds"):
                    logger.info("Test")

        call_kwargs = mock_s3.put_object.call_args[1]
        assert call_kwargs["Bucket"] == "env-bucket"


class TestCaptureIngestLogs:
    """Tests for capture_ingest_logs context manager."""

    @pytest.mark.no_db
    def test_passes_all_options(self, tmp_path):
        with capture_ingest_logs(
            "hotelbeds",
            mode="full",
            s3_bucket=None,
            s3_prefix="custom/",
            local_backup_dir=str(tmp_path),
        ) as log:
            logger.info("Captured message")

        assert "Captured message" in log._log_buffer.getvalue()
        files = list(Path(tmp_path).glob("hotelbeds_full_*.log.gz"))
        assert len(files) == 1
