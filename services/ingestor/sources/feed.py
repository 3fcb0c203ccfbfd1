"""
Feed downloader - Streams the Hotelbeds cache archive over HTTP.

GET <base_url>/<mode> with the Api-key header. The body is written to disk
as it arrives, so archives of several GB never sit in memory.
"""

import asyncio
from pathlib import Path
from typing import Optional

import httpx
from loguru import logger

from services.ingestor.config import FeedConfig, ImportMode
from services.ingestor.errors import FeedDownloadError
from services.ingestor.sources.base import ArchiveSource, DownloadResult

VERSION_HEADERS = ("X-Version", "Version")


class FeedDownloader(ArchiveSource):
    """
    Download feed archives with retries.

    Usage:
        downloader = FeedDownloader(FeedConfig.from_env())
        result = await downloader.fetch("update", Path("/tmp/hotelbeds"))
    """

    def __init__(self, config: FeedConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self._transport = transport

    def url_for(self, mode: ImportMode) -> str:
        return f"{self.config.base_url.rstrip('/')}/{mode}"

    def _timeout(self) -> httpx.Timeout:
        # read applies between chunks, not to the whole transfer
        return httpx.Timeout(self.config.read_timeout, connect=self.config.connect_timeout)

    async def fetch(self, mode: ImportMode, dest_dir: Path) -> DownloadResult:
        return await self.download(mode, dest_dir)

    async def download(self, mode: ImportMode, dest_dir: Path) -> DownloadResult:
        """
        Download the archive for mode, retrying with exponential backoff.

        Raises:
            FeedDownloadError: Client error, or every attempt failed
        """
        if not self.config.base_url or not self.config.api_key:
            raise FeedDownloadError("Feed base URL and API key are required")

        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)
        path = dest_dir / f"hotelbeds_{mode}.zip"
        url = self.url_for(mode)

        attempts = self.config.retries + 1
        for attempt in range(1, attempts + 1):
            try:
                logger.info(f"Downloading {url} (attempt {attempt}/{attempts})...")
                return await self._download_once(url, path)
            except httpx.HTTPStatusError as e:
                path.unlink(missing_ok=True)
                status = e.response.status_code
                if status < 500:
                    raise FeedDownloadError(f"Feed download rejected with HTTP {status}") from e
                error = e
            except (httpx.HTTPError, OSError) as e:
                path.unlink(missing_ok=True)
                error = e

            if attempt == attempts:
                raise FeedDownloadError(f"Feed download failed after {attempts} attempts: {error}") from error
            delay = self.config.backoff_base * (2 ** (attempt - 1))
            logger.warning(f"Download failed ({error}), retrying in {delay:.0f}s")
            await asyncio.sleep(delay)

    async def _download_once(self, url: str, path: Path) -> DownloadResult:
        headers = {"Api-key": self.config.api_key}
        received = 0
        next_progress = self.config.progress_bytes

        async with httpx.AsyncClient(timeout=self._timeout(), transport=self._transport) as client:
            async with client.stream("GET", url, headers=headers) as response:
                response.raise_for_status()
                version = next(
                    (response.headers[h] for h in VERSION_HEADERS if h in response.headers), None
                )

                with open(path, "wb") as handle:
                    async for chunk in response.aiter_bytes(self.config.chunk_size):
                        handle.write(chunk)
                        received += len(chunk)
                        if received >= next_progress:
                            logger.info(f"  Downloaded {received / (1024 * 1024):.1f} MB")
                            next_progress += self.config.progress_bytes

        logger.info(f"Downloaded {path.name}: {received} bytes (version {version})")
        return DownloadResult(path=path, version=version, bytes=received)
