"""
GENERAL folder parser - Master reference data shipped with every archive.

- GHOT_F: hotels
- IDES_F: destinations
- GCAT_F: categories
- GTTO_F: chains / tour operators

Each file holds one {TAG}...{/TAG} block per type. Rows are deduplicated
by primary code across files, first occurrence wins.
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional, TypeVar

from loguru import logger
from pydantic import BaseModel, Field

from lib.hotelbeds.normalize import null_if_empty, parse_float, parse_int
from lib.hotelbeds.tokenizer import DEFAULT_MAX_FILE_BYTES, tokenize_file
from services.ingestor.models.general import Category, Chain, Destination, MasterHotel

T = TypeVar("T", bound=BaseModel)

GHOT_MIN_FIELDS = 12


class GeneralData(BaseModel):
    """Parsed master data plus line-level error count."""

    hotels: List[MasterHotel] = Field(default_factory=list)
    destinations: List[Destination] = Field(default_factory=list)
    categories: List[Category] = Field(default_factory=list)
    chains: List[Chain] = Field(default_factory=list)
    line_errors: int = 0

    def counts(self) -> Dict[str, int]:
        return {
            "hotels": len(self.hotels),
            "destinations": len(self.destinations),
            "categories": len(self.categories),
            "chains": len(self.chains),
        }


def parse_hotel_line(line: str) -> Optional[MasterHotel]:
    """
    hotel_id:category:destination_code:chain_code:accommodation_type:ranking:
    group_hotel:country_code:state_code:longitude:latitude:name

    Names may contain ":", so everything from field 11 on is the name.
    """
    parts = line.split(":")
    if len(parts) < GHOT_MIN_FIELDS:
        return None
    hotel_id = parse_int(parts[0])
    if hotel_id is None or hotel_id <= 0:
        return None
    name = ":".join(parts[11:]).strip()
    return MasterHotel(
        id=hotel_id,
        category=null_if_empty(parts[1]),
        destination_code=null_if_empty(parts[2]),
        chain_code=null_if_empty(parts[3]),
        accommodation_type=null_if_empty(parts[4]),
        ranking=parse_int(parts[5]),
        group_hotel=null_if_empty(parts[6]),
        country_code=null_if_empty(parts[7]),
        state_code=null_if_empty(parts[8]),
        longitude=parse_float(parts[9]),
        latitude=parse_float(parts[10]),
        name=name or None,
    )


def parse_destination_line(line: str) -> Optional[Destination]:
    parts = line.split(":")
    if not parts[0]:
        return None
    return Destination(
        code=parts[0],
        country_code=null_if_empty(parts[1]) if len(parts) > 1 else None,
        is_available=null_if_empty(parts[2]) if len(parts) > 2 else None,
        name=null_if_empty(":".join(parts[3:])) if len(parts) > 3 else None,
    )


def parse_category_line(line: str) -> Optional[Category]:
    parts = line.split(":")
    if not parts[0]:
        return None
    return Category(
        code=parts[0],
        type=null_if_empty(parts[1]) if len(parts) > 1 else None,
        simple_code=null_if_empty(parts[2]) if len(parts) > 2 else None,
        description=null_if_empty(":".join(parts[3:])) if len(parts) > 3 else None,
    )


def parse_chain_line(line: str) -> Optional[Chain]:
    parts = line.split(":")
    if not parts[0]:
        return None
    return Chain(code=parts[0], name=null_if_empty(":".join(parts[1:])) if len(parts) > 1 else None)


class GeneralDataParser:
    """
    Parses the GENERAL folder of an extracted archive.

    Usage:
        parser = GeneralDataParser(layout.general_dir)
        data = parser.parse_all()
    """

    def __init__(self, general_dir: Path, max_file_bytes: int = DEFAULT_MAX_FILE_BYTES):
        self.general_dir = Path(general_dir)
        self.max_file_bytes = max_file_bytes
        self.line_errors = 0

    def exists(self) -> bool:
        return self.general_dir.is_dir()

    def find_files(self, fragment: str) -> List[Path]:
        if not self.exists():
            return []
        return sorted(p for p in self.general_dir.rglob("*") if p.is_file() and fragment in p.name)

    def parse_all(self) -> GeneralData:
        if not self.exists():
            logger.warning(f"GENERAL folder not found at {self.general_dir}, skipping master data")
            return GeneralData()

        self.line_errors = 0
        data = GeneralData(
            hotels=self._parse("GHOT_F", "GHOT", parse_hotel_line, lambda h: h.id),
            destinations=self._parse("IDES_F", "IDES", parse_destination_line, lambda d: d.code),
            categories=self._parse("GCAT_F", "GCAT", parse_category_line, lambda c: c.code),
            chains=self._parse("GTTO_F", "GTTO", parse_chain_line, lambda c: c.code),
        )
        data.line_errors = self.line_errors
        logger.info(f"GENERAL parsed: {data.counts()} ({self.line_errors} bad lines)")
        return data

    def _parse(
        self,
        fragment: str,
        tag: str,
        parse_line: Callable[[str], Optional[T]],
        key: Callable[[T], object],
    ) -> List[T]:
        files = self.find_files(fragment)
        if not files:
            logger.warning(f"No {fragment} files found")
            return []

        seen = set()
        rows: List[T] = []
        for path in files:
            for block in tokenize_file(path, self.max_file_bytes):
                if block.tag != tag:
                    continue
                for line in block.lines:
                    row = parse_line(line)
                    if row is None:
                        self.line_errors += 1
                        continue
                    row_key = key(row)
                    if row_key in seen:
                        continue
                    seen.add(row_key)
                    rows.append(row)

        logger.info(f"  {fragment}: {len(rows)} unique rows from {len(files)} file(s)")
        return rows
