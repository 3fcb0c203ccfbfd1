"""Hotelbeds flat-file parsing library.

Pure parsing and expansion, no I/O beyond reading a single file:
- Section tokenizer ({TAG}...{/TAG} blocks)
- Schema registry mapping positional fields to typed fields
- Inventory and rate tuple decoders
- Per-day inventory expansion with stop-sale and stay-rule lookups
- Bounded duplicate detector

Business logic lives in services/ingestor/.
"""

from lib.hotelbeds.dedup import BoundedKeySet, DuplicateDetector, DuplicateStats
from lib.hotelbeds.inventory import (
    ExpansionStats,
    InventoryRecord,
    RateRecord,
    build_min_max_lookup,
    build_stop_sale_lookup,
    expand_rates,
    expand_restrictions,
)
from lib.hotelbeds.schema import ParsedEntity, SectionSchema, get_schema, map_section
from lib.hotelbeds.tokenizer import FileTooLargeError, SectionBlock, tokenize_file, tokenize_lines
from lib.hotelbeds.tuples import InventoryTuple, RateTuple, decode_inventory_tuples, decode_rate_tuples

__all__ = [
    "BoundedKeySet",
    "DuplicateDetector",
    "DuplicateStats",
    "ExpansionStats",
    "InventoryRecord",
    "RateRecord",
    "build_min_max_lookup",
    "build_stop_sale_lookup",
    "expand_rates",
    "expand_restrictions",
    "ParsedEntity",
    "SectionSchema",
    "get_schema",
    "map_section",
    "FileTooLargeError",
    "SectionBlock",
    "tokenize_file",
    "tokenize_lines",
    "InventoryTuple",
    "RateTuple",
    "decode_inventory_tuples",
    "decode_rate_tuples",
]
