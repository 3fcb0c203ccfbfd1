"""Blob store interface and the local-directory implementation."""

import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from loguru import logger


class BlobStore(ABC):
    """Staging area the bulk loader reads table files from."""

    @abstractmethod
    async def put(self, local_path: str) -> str:
        """Store a file and return the reference the loader should read."""
        pass

    @abstractmethod
    async def list_objects(self) -> List[str]:
        """References of every staged object."""
        pass

    @abstractmethod
    async def delete_all(self) -> int:
        """Remove every staged object. Returns count removed."""
        pass


class LocalBlobStore(BlobStore):
    """
    Stages files in a local directory.

    Files already inside the directory are referenced in place.
    """

    def __init__(self, directory: str):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    async def put(self, local_path: str) -> str:
        source = Path(local_path).resolve()
        target = self.directory.resolve() / source.name
        if source != target:
            shutil.copyfile(source, target)
            logger.debug(f"Staged {source} -> {target}")
        return str(target)

    async def list_objects(self) -> List[str]:
        return sorted(str(p.resolve()) for p in self.directory.iterdir() if p.is_file())

    async def delete_all(self) -> int:
        removed = 0
        for path in self.directory.iterdir():
            if path.is_file():
                path.unlink()
                removed += 1
        return removed
