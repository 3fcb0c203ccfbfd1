"""
Table generation - Turns an extracted archive into per-table CSV files.

Master rows (phases 1 and 2) come from the GENERAL folder. Every hotel
detail file is processed independently:

    tokenize -> map -> expand -> dedup -> write

CNIN blocks are held back until the whole file has been read, since the
stop-sale (CNPV) and stay-rule (CNEM) blocks they are joined with may come
later in the file.
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from lib.hotelbeds.dedup import DuplicateDetector
from lib.hotelbeds.inventory import (
    ExpansionStats,
    build_min_max_lookup,
    build_stop_sale_lookup,
    expand_rates,
    expand_restrictions,
)
from lib.hotelbeds.schema import ParsedEntity, map_section
from lib.hotelbeds.tokenizer import DEFAULT_MAX_FILE_BYTES, FileTooLargeError, tokenize_file
from services.ingestor.archive import ArchiveLayout, discover_hotel_files, extract_hotel_id
from services.ingestor.general import GeneralData, GeneralDataParser
from services.ingestor.models.base import IngestStats
from services.ingestor.tables import table_for_section
from services.ingestor.writer import TableWriter

RESTRICTIONS_TAG = "CNIN"
RATES_TAG = "CNCT"
STOP_SALES_TAG = "CNPV"
STAY_RULES_TAG = "CNEM"


class HotelFileProcessor:
    """
    Processes one hotel detail file at a time. Safe to share across threads:
    per-file state is local, the writer and detector lock internally.
    """

    def __init__(
        self,
        writer: TableWriter,
        detector: DuplicateDetector,
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
    ):
        self.writer = writer
        self.detector = detector
        self.max_file_bytes = max_file_bytes

    def process(self, path: Path) -> IngestStats:
        path = Path(path)
        stats = IngestStats()

        hotel_id = extract_hotel_id(path.name)
        if hotel_id is None:
            logger.warning(f"No hotel id in file name {path.name}, skipping")
            stats.files_failed += 1
            return stats

        try:
            blocks = tokenize_file(path, self.max_file_bytes)
        except FileTooLargeError as e:
            logger.warning(str(e))
            stats.files_skipped_large += 1
            stats.files_failed += 1
            return stats

        restriction_lines: List[str] = []
        stop_sales: List[ParsedEntity] = []
        stay_rules: List[ParsedEntity] = []
        expansion = ExpansionStats()

        for block in blocks:
            stats.lines_parsed += len(block.lines)

            if block.tag == RESTRICTIONS_TAG:
                restriction_lines.extend(block.lines)
                continue

            if block.tag == RATES_TAG:
                for record in expand_rates(block.lines, expansion):
                    self._emit("hotel_rates", hotel_id, record.to_row(), stats)
                continue

            entities = map_section(block, hotel_id)
            if entities and not entities[0].known:
                stats.unknown_sections += 1
                logger.debug(f"Unknown section {{{block.tag}}} in {path.name}")
                continue

            malformed = [e for e in entities if e.malformed]
            if malformed:
                stats.line_errors += len(malformed)
                logger.debug(f"Skipping {len(malformed)} malformed {{{block.tag}}} lines in {path.name}")
                entities = [e for e in entities if not e.malformed]

            if block.tag == STOP_SALES_TAG:
                stop_sales.extend(entities)
            elif block.tag == STAY_RULES_TAG:
                stay_rules.extend(entities)

            spec = table_for_section(block.tag)
            if spec is None or spec.builder is None:
                continue
            for entity in entities:
                self._emit(spec.name, hotel_id, spec.builder(entity), stats)

        if restriction_lines:
            records = expand_restrictions(
                restriction_lines,
                build_stop_sale_lookup(stop_sales),
                build_min_max_lookup(stay_rules),
                expansion,
            )
            for record in records:
                self._emit("hotel_inventory", hotel_id, record.to_row(), stats)

        stats.line_errors += expansion.skipped_lines + expansion.malformed_tuples
        stats.files_processed += 1
        return stats

    def _emit(self, table: str, hotel_id: int, row: Dict[str, Any], stats: IngestStats) -> None:
        row["hotel_id"] = hotel_id
        if self.detector.is_duplicate(table, hotel_id, row):
            stats.duplicates_skipped += 1
            return
        self.writer.write(table, row)
        stats.records_written += 1


def write_general_data(writer: TableWriter, data: GeneralData) -> int:
    """Write the master rows (destinations, chains, categories, hotels)."""
    written = 0
    written += writer.write_many("destinations", (d.model_dump() for d in data.destinations))
    written += writer.write_many("chains", (c.model_dump() for c in data.chains))
    written += writer.write_many("categories", (c.model_dump() for c in data.categories))
    written += writer.write_many("hotels", (h.model_dump() for h in data.hotels))
    return written


class TableGenerator:
    """
    Generates all table CSVs for one extracted archive.

    Usage:
        generator = TableGenerator(writer, detector, concurrency=50)
        stats = await generator.generate(layout)
    """

    def __init__(
        self,
        writer: TableWriter,
        detector: DuplicateDetector,
        concurrency: int = 50,
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
        progress_every: int = 1000,
    ):
        self.writer = writer
        self.processor = HotelFileProcessor(writer, detector, max_file_bytes)
        self.concurrency = concurrency
        self.max_file_bytes = max_file_bytes
        self.progress_every = progress_every

    async def generate(self, layout: ArchiveLayout) -> IngestStats:
        stats = IngestStats()

        general = GeneralDataParser(layout.general_dir, self.max_file_bytes).parse_all()
        stats.line_errors += general.line_errors
        stats.records_written += write_general_data(self.writer, general)

        files = discover_hotel_files(layout.destinations_dir)
        stats.merge(await self.process_files(files))

        logger.info(f"Table generation done: {stats.to_dict()}")
        return stats

    async def process_files(self, files: List[Path]) -> IngestStats:
        """Process hotel files with at most `concurrency` in flight."""
        total = IngestStats()
        if not files:
            return total

        semaphore = asyncio.Semaphore(self.concurrency)
        done = 0

        async def process_file(path: Path) -> Optional[IngestStats]:
            nonlocal done
            async with semaphore:
                try:
                    result = await asyncio.to_thread(self.processor.process, path)
                except Exception as e:
                    logger.error(f"Failed to process {path.name}: {e}")
                    result = IngestStats(files_failed=1)
                done += 1
                if done % self.progress_every == 0:
                    logger.info(f"  Progress: {done}/{len(files)} files")
                return result

        results = await asyncio.gather(*[process_file(path) for path in files])
        for result in results:
            total.merge(result)

        logger.info(
            f"Processed {total.files_processed} files "
            f"({total.files_failed} failed, {total.files_skipped_large} too large)"
        )
        return total
