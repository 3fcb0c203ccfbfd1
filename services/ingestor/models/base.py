"""
Base models for ingestion runs.
"""

from typing import Dict, Optional

from pydantic import BaseModel, Field


class IngestStats(BaseModel):
    """Statistics from generating table rows out of an archive."""

    files_processed: int = 0
    files_failed: int = 0
    files_skipped_large: int = 0
    lines_parsed: int = 0
    line_errors: int = 0
    records_written: int = 0
    duplicates_skipped: int = 0
    unknown_sections: int = 0

    def merge(self, other: "IngestStats") -> None:
        for name in IngestStats.model_fields:
            setattr(self, name, getattr(self, name) + getattr(other, name))

    def to_dict(self) -> dict:
        """Convert to dict for reports and logs."""
        return {
            "files_processed": self.files_processed,
            "files_failed": self.files_failed,
            "files_skipped_large": self.files_skipped_large,
            "lines_parsed": self.lines_parsed,
            "line_errors": self.line_errors,
            "records_written": self.records_written,
            "duplicates_skipped": self.duplicates_skipped,
            "unknown_sections": self.unknown_sections,
        }


class TableLoadResult(BaseModel):
    """Outcome of loading one table."""

    success: bool
    rows_affected: Optional[int] = None
    error: Optional[str] = None
    duration: float = 0.0
    phase: Optional[int] = None

    def to_dict(self) -> dict:
        result = {"success": self.success, "duration": round(self.duration, 3)}
        if self.success:
            result["rowsAffected"] = self.rows_affected
        else:
            result["error"] = self.error
        return result


class ImportReport(BaseModel):
    """Structured result of an ingestion run."""

    mode: str
    per_table: Dict[str, TableLoadResult] = Field(default_factory=dict)
    total_duration: float = 0.0
    stats: IngestStats = Field(default_factory=IngestStats)
    duplicates: dict = Field(default_factory=dict)
    row_counts: Dict[str, int] = Field(default_factory=dict)
    version: Optional[str] = None
    aborted: bool = False
    abort_reason: Optional[str] = None

    @property
    def success(self) -> bool:
        return not self.aborted and all(r.success for r in self.per_table.values())

    @property
    def failed_tables(self) -> list:
        return [name for name, result in self.per_table.items() if not result.success]

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "success": self.success,
            "perTable": {name: result.to_dict() for name, result in self.per_table.items()},
            "totalDuration": round(self.total_duration, 3),
            "stats": self.stats.to_dict(),
            "duplicates": self.duplicates,
            "rowCounts": self.row_counts,
            "version": self.version,
            "aborted": self.aborted,
            "abortReason": self.abort_reason,
        }
