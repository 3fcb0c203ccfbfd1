"""
Inventory expansion - Turns compact restriction and cost lines into one
record per calendar day.

A CNIN line covers a date range and carries one (releaseDays,allotment)
tuple per day starting at the line's start date. Stop-sale flags (CNPV) and
min/max stay rules (CNEM) are joined in through pre-built lookup maps.
"""

from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from loguru import logger

from lib.hotelbeds.normalize import null_if_empty, parse_calendar_date, parse_int
from lib.hotelbeds.schema import ParsedEntity
from lib.hotelbeds.tuples import (
    INVENTORY_LEADING_FIELDS,
    RATE_LEADING_FIELDS,
    decode_inventory_tuples,
    decode_rate_tuples,
    split_line,
)

StopSaleLookup = Dict[str, bool]
MinMaxLookup = Dict[str, Tuple[Optional[int], Optional[int]]]


@dataclass
class InventoryRecord:
    """One calendar day of availability for a room/characteristic/rate."""

    inventory_date: date
    room_code: Optional[str]
    characteristic: Optional[str]
    rate_code: Optional[str]
    allotment: Optional[int]
    release_days: Optional[int]
    stop_sale: bool
    cta: Optional[int]
    ctd: int
    min_nights: Optional[int]
    max_nights: Optional[int]

    def to_row(self) -> dict:
        row = asdict(self)
        row["inventory_date"] = self.inventory_date.isoformat()
        return row


@dataclass
class RateRecord:
    """One priced night from a cost line tuple."""

    rate_date: date
    date_to: Optional[date]
    room_code: Optional[str]
    characteristic: Optional[str]
    rate_code: Optional[str]
    rate_type: Optional[str]
    net_price: Optional[float]
    public_price: Optional[float]
    specific_rate: Optional[float]
    board_code: Optional[str]
    price: float

    def to_row(self) -> dict:
        row = asdict(self)
        row["rate_date"] = self.rate_date.isoformat()
        row["date_to"] = self.date_to.isoformat() if self.date_to else None
        return row


@dataclass
class ExpansionStats:
    lines: int = 0
    records: int = 0
    fallback_records: int = 0
    skipped_lines: int = 0
    malformed_tuples: int = 0


def lookup_key(*parts: Optional[str]) -> str:
    return "|".join(part or "" for part in parts)


def build_stop_sale_lookup(entities: Iterable[ParsedEntity]) -> StopSaleLookup:
    """Stop-sale flags keyed by roomCode|characteristic|rateCode."""
    lookup: StopSaleLookup = {}
    for entity in entities:
        key = lookup_key(entity.get("roomCode"), entity.get("characteristic"), entity.get("rateCode"))
        lookup[key] = entity.get("stopSalesFlag") is True
    return lookup


def parse_stay_rule(rule: Optional[str]) -> Tuple[Optional[int], Optional[int]]:
    """Split a "min-max" stay rule. Missing or non-numeric sides become None."""
    if not rule:
        return None, None
    low, _, high = rule.partition("-")
    return parse_int(low), parse_int(high)


def build_min_max_lookup(entities: Iterable[ParsedEntity]) -> MinMaxLookup:
    """Min/max nights keyed by roomCode|characteristic|boardCode."""
    lookup: MinMaxLookup = {}
    for entity in entities:
        key = lookup_key(entity.get("roomCode"), entity.get("characteristic"), entity.get("boardCode"))
        rule = entity.get("daysRules")
        if rule is None:
            low, high = entity.get("minNights"), entity.get("maxNights")
            rule = f"{'' if low is None else low}-{'' if high is None else high}"
        lookup[key] = parse_stay_rule(rule)
    return lookup


def expand_restriction_line(
    line: str,
    stop_sale: StopSaleLookup,
    min_max: MinMaxLookup,
    stats: Optional[ExpansionStats] = None,
) -> List[InventoryRecord]:
    """
    Expand one CNIN line into per-day inventory records.

    Zero decoded tuples still produce one record built from the line's own
    base allotment/releaseDays, dated at the start date.
    """
    stats = stats if stats is not None else ExpansionStats()
    stats.lines += 1

    head, tail = split_line(line, INVENTORY_LEADING_FIELDS)
    start = parse_calendar_date(head[0])
    if start is None:
        stats.skipped_lines += 1
        logger.debug(f"Skipping restriction line with bad start date: {line[:80]}")
        return []

    room_code = null_if_empty(head[2])
    characteristic = null_if_empty(head[3])
    rate_code = null_if_empty(head[4])

    flagged = stop_sale.get(lookup_key(room_code, characteristic, rate_code), False)
    # Board is not part of a restriction line, so the stay rule is looked up with it empty
    min_nights, max_nights = min_max.get(lookup_key(room_code, characteristic, ""), (None, None))

    tuples, malformed = decode_inventory_tuples(tail)
    stats.malformed_tuples += malformed

    if not tuples:
        base_release, base_allotment = _base_values(line)
        stats.fallback_records += 1
        stats.records += 1
        return [
            InventoryRecord(
                inventory_date=start,
                room_code=room_code,
                characteristic=characteristic,
                rate_code=rate_code,
                allotment=base_allotment,
                release_days=base_release,
                stop_sale=flagged or base_allotment == 0,
                cta=base_release,
                ctd=0,
                min_nights=min_nights,
                max_nights=max_nights,
            )
        ]

    records = [
        InventoryRecord(
            inventory_date=start + timedelta(days=item.index),
            room_code=room_code,
            characteristic=characteristic,
            rate_code=rate_code,
            allotment=item.allotment,
            release_days=item.release_days,
            stop_sale=flagged or item.allotment == 0,
            cta=item.release_days,
            ctd=0,
            min_nights=min_nights,
            max_nights=max_nights,
        )
        for item in tuples
    ]
    stats.records += len(records)
    return records


def _base_values(line: str) -> Tuple[Optional[int], Optional[int]]:
    """
    Base (releaseDays, allotment) for a line without tuples.

    Lines in the extended layout carry them as plain fields 5 and 6.
    """
    parts = line.split(":")
    if len(parts) >= 7 and "(" not in parts[5]:
        return parse_int(parts[5]), parse_int(parts[6])
    return None, None


def expand_restrictions(
    lines: Iterable[str],
    stop_sale: StopSaleLookup,
    min_max: MinMaxLookup,
    stats: Optional[ExpansionStats] = None,
) -> List[InventoryRecord]:
    stats = stats if stats is not None else ExpansionStats()
    records: List[InventoryRecord] = []
    for line in lines:
        records.extend(expand_restriction_line(line, stop_sale, min_max, stats))
    return records


def expand_rate_line(line: str, stats: Optional[ExpansionStats] = None) -> List[RateRecord]:
    """Expand one CNCT line into a record per positive-amount tuple."""
    stats = stats if stats is not None else ExpansionStats()
    stats.lines += 1

    head, tail = split_line(line, RATE_LEADING_FIELDS)
    start = parse_calendar_date(head[0])
    if start is None:
        stats.skipped_lines += 1
        return []

    tuples, malformed = decode_rate_tuples(tail)
    stats.malformed_tuples += malformed

    records = [
        RateRecord(
            rate_date=start + timedelta(days=item.index),
            date_to=parse_calendar_date(head[1]),
            room_code=null_if_empty(head[2]),
            characteristic=null_if_empty(head[3]),
            rate_code=null_if_empty(head[4]),
            rate_type=item.rate_type,
            net_price=item.net_price,
            public_price=item.public_price,
            specific_rate=item.specific_rate,
            board_code=item.board_code,
            price=item.amount,
        )
        for item in tuples
    ]
    stats.records += len(records)
    return records


def expand_rates(lines: Iterable[str], stats: Optional[ExpansionStats] = None) -> List[RateRecord]:
    stats = stats if stats is not None else ExpansionStats()
    records: List[RateRecord] = []
    for line in lines:
        records.extend(expand_rate_line(line, stats))
    return records
