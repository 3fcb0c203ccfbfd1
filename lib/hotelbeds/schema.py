"""
Schema registry - Maps positional section fields to named, typed fields.

Every known section tag is registered with its ordered field table. A None
entry in a table marks a position the feed leaves empty. Tags that are not
registered are mapped to a passthrough entity (field_0..field_n) instead of
raising.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from lib.hotelbeds.normalize import (
    null_if_empty,
    parse_bool,
    parse_date,
    parse_float,
    parse_int,
)
from lib.hotelbeds.tokenizer import SectionBlock

BOOLEAN_FIELDS = frozenset({
    "noHotel", "noHotelFlag", "dailyPrice", "opaque", "fixRate",
    "sellingPrice", "activeFlag", "checkInFlag", "checkOutFlag", "stopSalesFlag",
    "perPaxFlag", "monFlag", "tueFlag", "wedFlag", "thuFlag", "friFlag", "satFlag",
    "sunFlag", "mandatoryFlag", "includedFlag", "perDateFlag", "isIncluded",
    "validForCountry", "isPerService", "includedInPrice", "isPerNight", "isPerPax",
    "stopSale",
})

INT_FIELDS = frozenset({
    "allotment", "releaseDays", "minChildAge", "maxChildAge", "maxRooms", "minAdults",
    "minChildren", "maxAdults", "maxChildren", "maxInfants", "daysBeforeCheckin",
    "standardCapacity", "minPax", "maxPax", "minimumAge", "maximumAge", "minAge",
    "maxAge", "maximumNumberOfNights", "cta", "ctd", "minNights", "maxNights",
    "ranking",
})

FLOAT_FIELDS = frozenset({
    "genericRate", "specificRate", "amount", "netPrice", "publicPrice",
    "marketPrice", "amountSupplement", "percentageSupplement", "percentage",
    "adultAmount", "childAmount", "ageAmount", "amountFrom", "amountTo",
    "latitude", "longitude",
})

WEEKDAY_FLAGS = ("monFlag", "tueFlag", "wedFlag", "thuFlag", "friFlag", "satFlag", "sunFlag")


@dataclass(frozen=True)
class SectionSchema:
    """Ordered field table for one section tag."""

    tag: str
    fields: Tuple[Optional[str], ...]
    description: str = ""
    # Leading positions every line must carry
    required: int = 2
    # Last field is free text and may itself contain ":"
    text_tail: bool = False

    def field_names(self) -> List[str]:
        return [name for name in self.fields if name]

    def accepts(self, part_count: int) -> bool:
        """True when a line with this many parts fits the field table."""
        if part_count < min(self.required, len(self.fields)):
            return False
        return self.text_tail or part_count <= len(self.fields)


@dataclass
class ParsedEntity:
    """A schema-mapped row for one section line."""

    business_id: Optional[int]
    tag: str
    fields: Dict[str, Any] = field(default_factory=dict)
    known: bool = True
    malformed: bool = False

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)


_REGISTRY: Dict[str, SectionSchema] = {}


def register_section(
    tag: str,
    fields: Sequence[Optional[str]],
    description: str = "",
    required: int = 2,
    text_tail: bool = False,
) -> SectionSchema:
    """Register the field table for a section tag."""
    if tag in _REGISTRY:
        raise ValueError(f"Section '{tag}' is already registered")
    schema = SectionSchema(
        tag=tag, fields=tuple(fields), description=description,
        required=required, text_tail=text_tail,
    )
    _REGISTRY[tag] = schema
    return schema


def get_schema(tag: str) -> Optional[SectionSchema]:
    return _REGISTRY.get(tag)


def list_sections() -> List[str]:
    return list(_REGISTRY.keys())


def is_registered(tag: str) -> bool:
    return tag in _REGISTRY


def convert_value(name: str, raw: Optional[str]) -> Any:
    """Apply the field-name typing rules to one raw value."""
    if "date" in name.lower():
        return parse_date(raw)
    if name in BOOLEAN_FIELDS:
        return parse_bool(raw)
    if name in INT_FIELDS:
        return parse_int(raw)
    if name in FLOAT_FIELDS:
        return parse_float(raw)
    return null_if_empty(raw)


def map_line(tag: str, parts: Sequence[str]) -> Tuple[Dict[str, Any], bool]:
    """
    Map one pre-split line to a field dict.

    Returns:
        Tuple of (fields, known) where known is False for passthrough tags
    """
    schema = _REGISTRY.get(tag)
    if schema is None:
        return {f"field_{idx}": value for idx, value in enumerate(parts)}, False

    width = len(schema.fields)
    if schema.text_tail and len(parts) > width:
        parts = [*parts[:width - 1], ":".join(parts[width - 1:])]

    mapped: Dict[str, Any] = {}
    for idx, name in enumerate(schema.fields):
        if name is None:
            continue
        raw = parts[idx] if idx < len(parts) else None
        mapped[name] = convert_value(name, raw)
    return mapped, True


def map_section(block: SectionBlock, business_id: Optional[int] = None) -> List[ParsedEntity]:
    """Map every line of a block into a ParsedEntity.

    Lines whose part count does not fit the field table are flagged
    malformed, the caller decides whether to drop them.
    """
    schema = _REGISTRY.get(block.tag)
    entities = []
    for line in block.lines:
        parts = line.split(":")
        fields, known = map_line(block.tag, parts)
        entities.append(ParsedEntity(
            business_id=business_id,
            tag=block.tag,
            fields=fields,
            known=known,
            malformed=schema is not None and not schema.accepts(len(parts)),
        ))
    return entities


# =============================================================================
# Section field tables
# =============================================================================

register_section("HOTEL", [
    "hotelCode", "hotelCategory", "destinationCode", "chainCode", "contractMarket",
    "ranking", "noHotelFlag", "countryCode", "accommodationType", "latitude",
    "longitude", "hotelName",
], "Hotel master information")

register_section("BOARD", ["boardCode", "boardType", "boardName"], "Board master information")

register_section("CCON", [
    "externalInventory", "destinationCode", "officeCode", "contractNumber",
    "contractName", "companyCode", "serviceType", "hotelCode", "giataHotelCode",
    "initialDate", "endDate", "noHotel", "currency", "baseBoard", "classification",
    "paymentModel", "dailyPrice", "releaseDays", "minChildAge", "maxChildAge",
    "opaque", "fixRate", "contractType", "maxRooms", "hotelContent", "sellingPrice",
], "Contract header")

register_section("CNPR", [
    "code", "description", "initialDate", "finalDate", "applicationInitialDate",
    "applicationFinalDate", "isIncluded",
], "Promotions")

register_section("CNHA", [
    "roomCode", "characteristic", "standardCapacity", "minPax", "maxPax",
    "maxAdults", "maxChildren", "maxInfants", "minAdults", "minChildren",
], "Room occupancy")

# Tuples start at field 5 and are decoded separately
register_section("CNIN", [
    "startDate", "endDate", "roomCode", "characteristic", "rateCode", "inventoryTuples",
], "Inventory restrictions", text_tail=True)

# Rate tuples start at field 7 and are decoded separately
register_section("CNCT", [
    "startDate", "endDate", "roomCode", "characteristic", "rateCode",
    "releaseDays", "allotment", "rateTuples",
], "Costs", text_tail=True)

register_section("CNEM", [
    None, "startDate", "endDate", "checkInFlag", "perDateFlag", "roomCode",
    "characteristic", "boardCode", "minNights", "maxNights", *WEEKDAY_FLAGS,
], "Minimum and maximum stay")

register_section("CNSR", [
    "startDate", "endDate", "boardCode", "perPaxFlag", "amountSupplement",
    "percentageSupplement", "rateCode", "roomCode", "characteristic", "minAge",
    "maxAge", *WEEKDAY_FLAGS, "netPrice", "publicPrice", "marketPrice",
], "Board supplements")

register_section("CNPV", [
    "startDate", "endDate", "rateCode", "roomCode", "characteristic", "boardCode",
    "stopSalesFlag",
], "Stop sales")

register_section("CNCF", [
    None, "startDate", "endDate", "rateCode", "daysBeforeCheckin", "chargeType",
    "amount", "amountFrom", "amountTo", "percentage", None, "languageCode",
], "Cancellation fees")

register_section("CNTA", ["rateCode", "description"], "Valid rate codes", text_tail=True)

register_section("CNES", [
    "startDate", "endDate", "roomCode", "characteristic", "checkInFlag", "checkOutFlag",
], "Check-in and check-out restrictions")

register_section("CNSU", [
    "startDate", "endDate", "lastUpdate", "releaseEndDate", "supplementCode",
    "chargeType", "mandatoryFlag", "includedFlag", "daysBeforeCheckin",
    "applicability", "amount", "description", "perPaxFlag", "roomType", "rateCode",
    "boardCode", "characteristic", "minPax", "maxPax", "minAge", "maxAge",
    *WEEKDAY_FLAGS, "netPrice", "publicPrice",
], "Supplements and discounts")

register_section("CNGR", ["groupCode", "description"], "Groups", text_tail=True)

register_section("CNOE", ["offerCode", "description"], "Offers", text_tail=True)

register_section("CNNH", ["clientCode", "clientName", "clientType", "activeFlag"], "Clients")

register_section("CNCL", ["countryCode", "validForCountry"], "Valid markets")

register_section("CNHF", [
    "initialDate", "finalDate", "code", "rate", "type", "amount", "percentage",
    "adultAmount", "childAmount", "minimumAge", "maximumAge", "ageAmount",
    "isPerService",
], "Handling fees")

register_section("ATAX", [
    "initialDate", "finalDate", "roomCode", "boardCode", "taxCode",
    "includedInPrice", "maximumNumberOfNights", "minimumAge", "maximumAge",
    "isPerNight", "isPerPax", "amount", "percentage", "currency", "applyOver",
    "marketCode", "legalDescription",
], "Tax breakdown", text_tail=True)
