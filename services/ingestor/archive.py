"""
Archive handling - Extraction, layout validation and hotel file discovery.

Layout of an extracted feed archive:

    <root>/GENERAL/...            master files (GHOT_F, IDES_F, GCAT_F, GTTO_F)
    <root>/DESTINATIONS/D_*/...   one detail file per hotel contract

Some archives wrap everything in a single top-level directory, so the
layout is searched one level deep as well.
"""

import re
import shutil
import zipfile
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import BaseModel

from services.ingestor.errors import ArchiveLayoutError

GENERAL_DIR = "GENERAL"
DESTINATIONS_DIR = "DESTINATIONS"

_DIGITS = re.compile(r"^\d+$")
_FIRST_DIGITS = re.compile(r"(\d+)")


class ArchiveLayout(BaseModel):
    root: Path
    general_dir: Path
    destinations_dir: Path


def extract_archive(archive_path: Path, dest_dir: Path, clean: bool = True) -> Path:
    """Extract a zip archive into dest_dir and return dest_dir."""
    archive_path = Path(archive_path)
    dest_dir = Path(dest_dir)

    if clean and dest_dir.exists():
        shutil.rmtree(dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)

    logger.info(f"Extracting {archive_path.name} to {dest_dir}...")
    with zipfile.ZipFile(archive_path) as archive:
        archive.extractall(dest_dir)
        logger.info(f"  Extracted {len(archive.namelist())} entries")
    return dest_dir


def locate_layout(root: Path) -> ArchiveLayout:
    """
    Find GENERAL/ and DESTINATIONS/ under root (or one level below).

    Raises:
        ArchiveLayoutError: If either directory is missing
    """
    root = Path(root)
    candidates = [root] + sorted(p for p in root.iterdir() if p.is_dir()) if root.is_dir() else [root]

    for candidate in candidates:
        general = candidate / GENERAL_DIR
        destinations = candidate / DESTINATIONS_DIR
        if general.is_dir() and destinations.is_dir():
            return ArchiveLayout(root=candidate, general_dir=general, destinations_dir=destinations)

    missing = [
        name for name in (GENERAL_DIR, DESTINATIONS_DIR)
        if not any((c / name).is_dir() for c in candidates)
    ]
    raise ArchiveLayoutError(missing or [GENERAL_DIR, DESTINATIONS_DIR], str(root))


def discover_hotel_files(destinations_dir: Path) -> List[Path]:
    """All detail files under DESTINATIONS/D_*/, sorted for stable runs."""
    destinations_dir = Path(destinations_dir)
    files: List[Path] = []
    for dest in sorted(destinations_dir.iterdir()):
        if not dest.is_dir() or not dest.name.startswith("D_"):
            continue
        files.extend(sorted(p for p in dest.rglob("*") if p.is_file()))
    logger.info(f"Discovered {len(files)} hotel files in {destinations_dir}")
    return files


def extract_hotel_id(filename: str) -> Optional[int]:
    """
    Hotel id from a detail file name such as "ES_1234_56_F".

    Tries, in order: the second "_" part when there are at least four parts,
    the second numeric part, the largest positive numeric part, the first
    digit run anywhere in the name.
    """
    parts = filename.split("_")

    if len(parts) >= 4 and _DIGITS.match(parts[1]):
        hotel_id = int(parts[1])
        if hotel_id > 0:
            return hotel_id

    numeric = [int(part) for part in parts if _DIGITS.match(part)]
    if len(numeric) >= 2 and numeric[1] > 0:
        return numeric[1]

    positive = [n for n in numeric if n > 0]
    if positive:
        return max(positive)

    match = _FIRST_DIGITS.search(filename)
    return int(match.group(1)) if match else None
