"""
Table catalogue - Target tables, load phases and section row builders.

Phases follow foreign-key dependencies:
    1. reference tables (destinations, chains, categories)
    2. hotels
    3. per-hotel detail tables, no dependencies among each other

Each detail table is fed by exactly one section tag. CNIN and CNCT are
expanded to one row per day by lib.hotelbeds.inventory, every other
section maps one line to one row.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from lib.hotelbeds.schema import WEEKDAY_FLAGS, ParsedEntity

PHASE_REFERENCE = 1
PHASE_HOTELS = 2
PHASE_DETAILS = 3

RowBuilder = Callable[[ParsedEntity], Dict[str, Any]]


@dataclass(frozen=True)
class TableSpec:
    """One target table."""

    name: str
    phase: int
    columns: Tuple[str, ...]
    key: Tuple[str, ...]
    section: Optional[str] = None
    builder: Optional[RowBuilder] = None

    @property
    def natural_key(self) -> Tuple[str, ...]:
        """Key fields without the owning hotel id (used for duplicate checks)."""
        return tuple(name for name in self.key if name != "hotel_id")


def _day(value: Optional[str]) -> Optional[str]:
    """ISO timestamp from the mapper to a plain YYYY-MM-DD."""
    return value[:10] if value else None


def _weekdays(entity: ParsedEntity) -> str:
    return "".join("Y" if entity.get(flag) else "N" for flag in WEEKDAY_FLAGS)


_FREE_NIGHTS = re.compile(r"(?:(\d+)\s*)?FREE\s*NIGHTS?", re.IGNORECASE)
_PERCENT = re.compile(r"(\d+(?:[.,]\d+)?)\s*%")


def classify_promotion(code: Optional[str], description: Optional[str]) -> Tuple[Optional[str], Optional[float]]:
    """
    Infer (promo_type, value) from a CNPR code and description.

    Only free-night and percentage promotions can be recognised from the
    feed text. Anything else stays unclassified and is not priced.
    """
    text = f"{code or ''} {description or ''}"
    free = _FREE_NIGHTS.search(text)
    if free:
        return "free_nights", float(free.group(1) or 1)
    percent = _PERCENT.search(text)
    if percent:
        return "percentage", float(percent.group(1).replace(",", "."))
    return None, None


# =============================================================================
# Row builders
# =============================================================================

def contract_row(e: ParsedEntity) -> Dict[str, Any]:
    return {
        "contract_code": e.get("contractNumber"),
        "contract_name": e.get("contractName"),
        "destination_code": e.get("destinationCode"),
        "office_code": e.get("officeCode"),
        "company_code": e.get("companyCode"),
        "service_type": e.get("serviceType"),
        "date_from": _day(e.get("initialDate")),
        "date_to": _day(e.get("endDate")),
        "currency": e.get("currency"),
        "base_board": e.get("baseBoard"),
        "classification": e.get("classification"),
        "payment_model": e.get("paymentModel"),
        "daily_price": e.get("dailyPrice"),
        "release_days": e.get("releaseDays"),
        "min_child_age": e.get("minChildAge"),
        "max_child_age": e.get("maxChildAge"),
        "opaque": e.get("opaque"),
        "fix_rate": e.get("fixRate"),
        "contract_type": e.get("contractType"),
        "max_rooms": e.get("maxRooms"),
        "selling_price": e.get("sellingPrice"),
    }


def room_allocation_row(e: ParsedEntity) -> Dict[str, Any]:
    return {
        "room_code": e.get("roomCode"),
        "characteristic": e.get("characteristic"),
        "standard_capacity": e.get("standardCapacity"),
        "min_pax": e.get("minPax"),
        "max_pax": e.get("maxPax"),
        "max_adults": e.get("maxAdults"),
        "max_children": e.get("maxChildren"),
        "max_infants": e.get("maxInfants"),
        "min_adults": e.get("minAdults"),
        "min_children": e.get("minChildren"),
    }


def supplement_row(e: ParsedEntity) -> Dict[str, Any]:
    return {
        "supplement_code": e.get("supplementCode"),
        "date_from": _day(e.get("startDate")),
        "date_to": _day(e.get("endDate")),
        "charge_type": e.get("chargeType"),
        "mandatory": e.get("mandatoryFlag"),
        "included": e.get("includedFlag"),
        "days_before_checkin": e.get("daysBeforeCheckin"),
        "applicability": e.get("applicability"),
        "amount": e.get("amount"),
        "description": e.get("description"),
        "per_pax": e.get("perPaxFlag"),
        "room_type": e.get("roomType"),
        "rate_code": e.get("rateCode"),
        "board_code": e.get("boardCode"),
        "characteristic": e.get("characteristic"),
        "min_pax": e.get("minPax"),
        "max_pax": e.get("maxPax"),
        "min_age": e.get("minAge"),
        "max_age": e.get("maxAge"),
        "weekdays": _weekdays(e),
        "net_price": e.get("netPrice"),
        "public_price": e.get("publicPrice"),
    }


def board_supplement_row(e: ParsedEntity) -> Dict[str, Any]:
    return {
        "date_from": _day(e.get("startDate")),
        "date_to": _day(e.get("endDate")),
        "board_code": e.get("boardCode"),
        "per_pax": e.get("perPaxFlag"),
        "amount": e.get("amountSupplement"),
        "percentage": e.get("percentageSupplement"),
        "rate_code": e.get("rateCode"),
        "room_code": e.get("roomCode"),
        "characteristic": e.get("characteristic"),
        "min_age": e.get("minAge"),
        "max_age": e.get("maxAge"),
        "weekdays": _weekdays(e),
        "net_price": e.get("netPrice"),
        "public_price": e.get("publicPrice"),
        "market_price": e.get("marketPrice"),
    }


def stop_sale_row(e: ParsedEntity) -> Dict[str, Any]:
    return {
        "date_from": _day(e.get("startDate")),
        "date_to": _day(e.get("endDate")),
        "rate_code": e.get("rateCode"),
        "room_code": e.get("roomCode"),
        "characteristic": e.get("characteristic"),
        "board_code": e.get("boardCode"),
        "stop_sale": e.get("stopSalesFlag"),
    }


def stay_rule_row(e: ParsedEntity) -> Dict[str, Any]:
    return {
        "date_from": _day(e.get("startDate")),
        "date_to": _day(e.get("endDate")),
        "check_in": e.get("checkInFlag"),
        "room_code": e.get("roomCode"),
        "characteristic": e.get("characteristic"),
        "board_code": e.get("boardCode"),
        "min_nights": e.get("minNights"),
        "max_nights": e.get("maxNights"),
        "weekdays": _weekdays(e),
    }


def cancellation_policy_row(e: ParsedEntity) -> Dict[str, Any]:
    return {
        "date_from": _day(e.get("startDate")),
        "date_to": _day(e.get("endDate")),
        "rate_code": e.get("rateCode"),
        "days_before": e.get("daysBeforeCheckin"),
        "charge_type": e.get("chargeType"),
        "amount": e.get("amount"),
        "amount_from": e.get("amountFrom"),
        "amount_to": e.get("amountTo"),
        "percentage": e.get("percentage"),
        "language_code": e.get("languageCode"),
    }


def rate_tag_row(e: ParsedEntity) -> Dict[str, Any]:
    return {"rate_code": e.get("rateCode"), "description": e.get("description")}


def extra_stay_row(e: ParsedEntity) -> Dict[str, Any]:
    return {
        "date_from": _day(e.get("startDate")),
        "date_to": _day(e.get("endDate")),
        "room_code": e.get("roomCode"),
        "characteristic": e.get("characteristic"),
        "check_in": e.get("checkInFlag"),
        "check_out": e.get("checkOutFlag"),
    }


def group_row(e: ParsedEntity) -> Dict[str, Any]:
    return {"group_code": e.get("groupCode"), "description": e.get("description")}


def offer_row(e: ParsedEntity) -> Dict[str, Any]:
    return {"offer_code": e.get("offerCode"), "description": e.get("description")}


def client_row(e: ParsedEntity) -> Dict[str, Any]:
    return {
        "client_code": e.get("clientCode"),
        "client_name": e.get("clientName"),
        "client_type": e.get("clientType"),
        "active": e.get("activeFlag"),
    }


def valid_market_row(e: ParsedEntity) -> Dict[str, Any]:
    return {"country_code": e.get("countryCode"), "valid": e.get("validForCountry")}


def handling_fee_row(e: ParsedEntity) -> Dict[str, Any]:
    return {
        "date_from": _day(e.get("initialDate")),
        "date_to": _day(e.get("finalDate")),
        "fee_code": e.get("code"),
        "rate": e.get("rate"),
        "fee_type": e.get("type"),
        "amount": e.get("amount"),
        "percentage": e.get("percentage"),
        "adult_amount": e.get("adultAmount"),
        "child_amount": e.get("childAmount"),
        "min_age": e.get("minimumAge"),
        "max_age": e.get("maximumAge"),
        "age_amount": e.get("ageAmount"),
        "per_service": e.get("isPerService"),
    }


def tax_row(e: ParsedEntity) -> Dict[str, Any]:
    return {
        "date_from": _day(e.get("initialDate")),
        "date_to": _day(e.get("finalDate")),
        "room_code": e.get("roomCode"),
        "board_code": e.get("boardCode"),
        "tax_code": e.get("taxCode"),
        "included_in_price": e.get("includedInPrice"),
        "max_nights": e.get("maximumNumberOfNights"),
        "min_age": e.get("minimumAge"),
        "max_age": e.get("maximumAge"),
        "per_night": e.get("isPerNight"),
        "per_pax": e.get("isPerPax"),
        "amount": e.get("amount"),
        "percentage": e.get("percentage"),
        "currency": e.get("currency"),
        "apply_over": e.get("applyOver"),
        "market_code": e.get("marketCode"),
        "legal_text": e.get("legalDescription"),
    }


def promotion_row(e: ParsedEntity) -> Dict[str, Any]:
    promo_type, value = classify_promotion(e.get("code"), e.get("description"))
    return {
        "promo_code": e.get("code"),
        "description": e.get("description"),
        "date_from": _day(e.get("initialDate")),
        "date_to": _day(e.get("finalDate")),
        "application_date_from": _day(e.get("applicationInitialDate")),
        "application_date_to": _day(e.get("applicationFinalDate")),
        "is_included": e.get("isIncluded"),
        "promo_type": promo_type,
        "discount_value": value,
        "combinable": False,
    }


def board_row(e: ParsedEntity) -> Dict[str, Any]:
    return {
        "board_code": e.get("boardCode"),
        "board_type": e.get("boardType"),
        "board_name": e.get("boardName"),
    }


def _detail(name, section, builder, key, extra_columns=()):
    """Detail table spec: hotel_id first, then the builder's columns in order."""
    sample = builder(ParsedEntity(business_id=None, tag=section or "")) if builder else {}
    columns = ("hotel_id",) + tuple(sample.keys()) + tuple(extra_columns)
    return TableSpec(
        name=name,
        phase=PHASE_DETAILS,
        columns=columns,
        key=("hotel_id",) + tuple(key),
        section=section,
        builder=builder,
    )


INVENTORY_COLUMNS = (
    "hotel_id", "room_code", "characteristic", "rate_code", "inventory_date",
    "allotment", "release_days", "stop_sale", "cta", "ctd", "min_nights", "max_nights",
)

RATE_COLUMNS = (
    "hotel_id", "room_code", "characteristic", "rate_code", "board_code", "rate_date",
    "date_to", "rate_type", "net_price", "public_price", "specific_rate", "price",
)


TABLES: List[TableSpec] = [
    # Phase 1
    TableSpec("destinations", PHASE_REFERENCE, ("code", "country_code", "is_available", "name"), ("code",)),
    TableSpec("chains", PHASE_REFERENCE, ("code", "name"), ("code",)),
    TableSpec("categories", PHASE_REFERENCE, ("code", "type", "simple_code", "description"), ("code",)),
    # Phase 2
    TableSpec(
        "hotels",
        PHASE_HOTELS,
        (
            "id", "category", "destination_code", "chain_code", "accommodation_type",
            "ranking", "group_hotel", "country_code", "state_code", "longitude",
            "latitude", "name",
        ),
        ("id",),
    ),
    # Phase 3
    _detail("hotel_contracts", "CCON", contract_row, ("contract_code", "date_from")),
    _detail("hotel_room_allocations", "CNHA", room_allocation_row, ("room_code", "characteristic")),
    TableSpec(
        "hotel_inventory", PHASE_DETAILS, INVENTORY_COLUMNS,
        ("hotel_id", "room_code", "characteristic", "rate_code", "inventory_date"), section="CNIN",
    ),
    TableSpec(
        "hotel_rates", PHASE_DETAILS, RATE_COLUMNS,
        ("hotel_id", "room_code", "characteristic", "rate_code", "board_code", "rate_date", "rate_type"),
        section="CNCT",
    ),
    _detail(
        "hotel_supplements", "CNSU", supplement_row,
        ("supplement_code", "date_from", "room_type", "rate_code", "board_code", "characteristic"),
    ),
    _detail(
        "hotel_board_supplements", "CNSR", board_supplement_row,
        ("board_code", "room_code", "characteristic", "rate_code", "date_from", "min_age"),
    ),
    _detail(
        "hotel_stop_sales", "CNPV", stop_sale_row,
        ("rate_code", "room_code", "characteristic", "board_code", "date_from"),
    ),
    _detail(
        "hotel_stay_rules", "CNEM", stay_rule_row,
        ("room_code", "characteristic", "board_code", "date_from"),
    ),
    _detail(
        "hotel_cancellation_policies", "CNCF", cancellation_policy_row,
        ("rate_code", "date_from", "days_before"),
    ),
    _detail("hotel_rate_tags", "CNTA", rate_tag_row, ("rate_code",)),
    _detail(
        "hotel_extra_stays", "CNES", extra_stay_row,
        ("room_code", "characteristic", "date_from"),
    ),
    _detail("hotel_groups", "CNGR", group_row, ("group_code",)),
    _detail("hotel_offers", "CNOE", offer_row, ("offer_code",)),
    _detail("hotel_clients", "CNNH", client_row, ("client_code",)),
    _detail("hotel_valid_markets", "CNCL", valid_market_row, ("country_code",)),
    _detail("hotel_handling_fees", "CNHF", handling_fee_row, ("fee_code", "date_from", "min_age")),
    _detail(
        "hotel_tax_info", "ATAX", tax_row,
        ("tax_code", "room_code", "board_code", "date_from", "min_age"),
    ),
    _detail("hotel_promotions", "CNPR", promotion_row, ("promo_code", "date_from")),
    _detail("hotel_boards", "BOARD", board_row, ("board_code",)),
]

TABLES_BY_NAME: Dict[str, TableSpec] = {spec.name: spec for spec in TABLES}
TABLES_BY_SECTION: Dict[str, TableSpec] = {spec.section: spec for spec in TABLES if spec.section}


def get_table(name: str) -> TableSpec:
    if name not in TABLES_BY_NAME:
        raise ValueError(f"Unknown table: '{name}'")
    return TABLES_BY_NAME[name]


def table_for_section(tag: str) -> Optional[TableSpec]:
    return TABLES_BY_SECTION.get(tag)


def phases() -> List[List[TableSpec]]:
    """Tables grouped by phase, in load order."""
    grouped: Dict[int, List[TableSpec]] = {}
    for spec in TABLES:
        grouped.setdefault(spec.phase, []).append(spec)
    return [grouped[phase] for phase in sorted(grouped)]


# Day-expanded tables rely on the load step's ON CONFLICT for duplicates
EXPANDED_TABLES = frozenset({"hotel_inventory", "hotel_rates"})


def natural_keys() -> Dict[str, Tuple[str, ...]]:
    """Per-table natural keys for the duplicate detector (detail tables only)."""
    return {
        spec.name: spec.natural_key
        for spec in TABLES
        if spec.phase == PHASE_DETAILS and spec.name not in EXPANDED_TABLES
    }
