"""
Archive sources for the feed ingestor.
"""

from services.ingestor.sources.base import ArchiveSource, DownloadResult
from services.ingestor.sources.feed import FeedDownloader

__all__ = [
    "ArchiveSource",
    "DownloadResult",
    "FeedDownloader",
]
