"""
Cheapest-price engine - Pure functions, no database access.

Given per-day prices for a hotel, find the cheapest bookable window of
`min_nights` consecutive nights, apply the promotions active on its start
date, and express the result per person (double occupancy).

Ties between windows keep the earliest start: candidates are compared with
strict `<` in date order.
"""

from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

DEFAULT_OCCUPANCY = 2

PROMO_FREE_NIGHTS = "free_nights"
PROMO_PERCENTAGE = "percentage"
PROMO_ABSOLUTE = "absolute"
PROMO_COUPON = "coupon"

PROMOTION_ORDER = (PROMO_FREE_NIGHTS, PROMO_PERCENTAGE, PROMO_ABSOLUTE, PROMO_COUPON)

FREE_NIGHTS_MIN_STAY = 7


@dataclass
class DailyPrice:
    """Price and availability of one night for one room/rate/board combination."""

    day: date
    price: float
    allotment: Optional[int] = None
    stop_sale: bool = False
    room_code: Optional[str] = None
    characteristic: Optional[str] = None
    rate_code: Optional[str] = None
    board_code: Optional[str] = None

    @property
    def bookable(self) -> bool:
        return not self.stop_sale and (self.allotment or 0) > 0

    @property
    def combination(self) -> Tuple[Optional[str], ...]:
        return (self.room_code, self.characteristic, self.rate_code, self.board_code)


@dataclass
class PricedWindow:
    start_date: date
    nights: int
    total: float
    price_pp: float
    days: List[DailyPrice] = field(default_factory=list)


@dataclass
class Promotion:
    promo_type: str
    value: float
    code: Optional[str] = None
    description: Optional[str] = None
    combinable: bool = False
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    def active_on(self, day: date) -> bool:
        if self.date_from and day < self.date_from:
            return False
        if self.date_to and day > self.date_to:
            return False
        return True


@dataclass
class AppliedPromotion:
    type: str
    code: Optional[str]
    value: float
    description: Optional[str]
    discount_amount: float
    combinable: bool

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class CheapestPriceEntry:
    """Best price per person for one hotel and travel category."""

    hotel_id: int
    category_tag: str
    start_date: date
    nights: int
    total_price: float
    price_pp: float
    room_code: Optional[str] = None
    rate_code: Optional[str] = None
    board_code: Optional[str] = None
    applied_promotions: List[AppliedPromotion] = field(default_factory=list)
    derived_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None

    @property
    def has_promotion(self) -> bool:
        return bool(self.applied_promotions)


def _consecutive(days: Sequence[DailyPrice]) -> bool:
    return all(days[i].day - days[i - 1].day == timedelta(days=1) for i in range(1, len(days)))


def find_cheapest_window(
    days: Iterable[DailyPrice],
    min_nights: int,
    occupancy: int = DEFAULT_OCCUPANCY,
) -> Optional[PricedWindow]:
    """
    Cheapest window of exactly min_nights consecutive bookable days.

    Days under stop sale or without allotment are dropped first, so a window
    never spans them. Returns None when no window qualifies.
    """
    if min_nights < 1:
        raise ValueError(f"min_nights must be at least 1, got {min_nights}")

    retained = sorted((d for d in days if d.bookable), key=lambda d: d.day)
    best: Optional[PricedWindow] = None

    for i in range(len(retained) - min_nights + 1):
        window = retained[i:i + min_nights]
        if not _consecutive(window):
            continue
        total = sum(d.price for d in window)
        price_pp = total / occupancy
        if best is None or price_pp < best.price_pp:
            best = PricedWindow(
                start_date=window[0].day,
                nights=min_nights,
                total=total,
                price_pp=price_pp,
                days=list(window),
            )
    return best


def _discount(promo: Promotion, total: float, nights: int) -> Optional[float]:
    if promo.promo_type == PROMO_FREE_NIGHTS:
        if nights < FREE_NIGHTS_MIN_STAY:
            return None
        return total / nights * promo.value
    if promo.promo_type == PROMO_PERCENTAGE:
        return total * promo.value / 100
    if promo.promo_type in (PROMO_ABSOLUTE, PROMO_COUPON):
        return min(promo.value, total)
    return None


def apply_promotions(
    total: float, nights: int, promotions: Iterable[Promotion]
) -> Tuple[float, List[AppliedPromotion]]:
    """
    Apply promotions in fixed precedence: free nights, percentage, absolute,
    coupon. Each discount is taken from the running total.

    After a non-combinable promotion nothing else applies, and a
    non-combinable promotion is skipped once anything has been applied.
    """
    ordered = sorted(
        (p for p in promotions if p.promo_type in PROMOTION_ORDER),
        key=lambda p: PROMOTION_ORDER.index(p.promo_type),
    )
    applied: List[AppliedPromotion] = []

    for promo in ordered:
        if any(not a.combinable for a in applied):
            break
        if applied and not promo.combinable:
            continue
        discount = _discount(promo, total, nights)
        if discount is None or discount <= 0:
            continue
        discount = min(discount, total)
        total -= discount
        applied.append(
            AppliedPromotion(
                type=promo.promo_type,
                code=promo.code,
                value=promo.value,
                description=promo.description,
                discount_amount=round(discount, 2),
                combinable=promo.combinable,
            )
        )
    return total, applied


def group_by_combination(days: Iterable[DailyPrice]) -> Dict[Tuple[Optional[str], ...], List[DailyPrice]]:
    """Split days per room/characteristic/rate/board, keeping first-seen order."""
    groups: Dict[Tuple[Optional[str], ...], List[DailyPrice]] = {}
    for day in days:
        groups.setdefault(day.combination, []).append(day)
    return groups


def price_hotel(
    hotel_id: int,
    category_tag: str,
    min_nights: int,
    days: Iterable[DailyPrice],
    promotions: Iterable[Promotion] = (),
    occupancy: int = DEFAULT_OCCUPANCY,
) -> Optional[CheapestPriceEntry]:
    """
    Cheapest entry for one hotel and category.

    Every room/rate/board combination is searched on its own, so a window
    never mixes rooms. Between combinations the lower base price per person
    wins, the earlier start breaks ties. Promotions are then applied to the
    winning window.
    """
    best: Optional[PricedWindow] = None
    for group in group_by_combination(days).values():
        window = find_cheapest_window(group, min_nights, occupancy)
        if window is None:
            continue
        if (
            best is None
            or window.price_pp < best.price_pp
            or (window.price_pp == best.price_pp and window.start_date < best.start_date)
        ):
            best = window

    if best is None:
        return None

    active = [p for p in promotions if p.active_on(best.start_date)]
    total, applied = apply_promotions(best.total, best.nights, active)
    first = best.days[0]

    return CheapestPriceEntry(
        hotel_id=hotel_id,
        category_tag=category_tag,
        start_date=best.start_date,
        nights=best.nights,
        total_price=round(total, 2),
        price_pp=round(total / occupancy, 2),
        room_code=first.room_code,
        rate_code=first.rate_code,
        board_code=first.board_code,
        applied_promotions=applied,
    )
