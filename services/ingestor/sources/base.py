"""
Base archive source - Abstract base for where feed archives come from.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from services.ingestor.config import ImportMode


class DownloadResult(BaseModel):
    """A feed archive on local disk."""

    path: Path = Field(..., description="Local archive path")
    version: Optional[str] = Field(default=None, description="Feed version reported by the source")
    bytes: int = Field(default=0, description="Archive size in bytes")


class ArchiveSource(ABC):
    """
    Abstract base class for archive sources.

    Fetches one complete feed archive for an import mode.
    """

    @abstractmethod
    async def fetch(self, mode: ImportMode, dest_dir: Path) -> DownloadResult:
        """
        Fetch the archive for mode into dest_dir.

        Args:
            mode: "full" or "update"
            dest_dir: Directory to write the archive to

        Returns:
            DownloadResult describing the local archive
        """
        pass
