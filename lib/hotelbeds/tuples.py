"""
Tuple decoders for compact per-day data embedded in a single feed line.

Inventory lines carry "(releaseDays,allotment)" groups, cost lines carry
"(rateType,netPrice,publicPrice,specificRate,boardCode,amount)" groups. A
line may hold anywhere from zero to several hundred groups.
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from lib.hotelbeds.normalize import null_if_empty, parse_float, parse_int

# Number of positional fields before the tuple tail
INVENTORY_LEADING_FIELDS = 5
RATE_LEADING_FIELDS = 7


@dataclass(frozen=True)
class InventoryTuple:
    index: int
    release_days: int
    allotment: int


@dataclass(frozen=True)
class RateTuple:
    index: int
    rate_type: Optional[str]
    net_price: Optional[float]
    public_price: Optional[float]
    specific_rate: Optional[float]
    board_code: Optional[str]
    amount: float


def split_line(line: str, leading: int) -> Tuple[List[str], str]:
    """
    Split a line into its leading positional fields and the re-joined tail.

    Some lines drop trailing empty leading fields, so the tail starts at the
    first "(" group if that comes before position `leading`.
    """
    parts = line.split(":")
    cut = leading
    for idx, part in enumerate(parts[:leading]):
        if part.startswith("("):
            cut = idx
            break
    head = parts[:cut]
    head += [""] * (leading - len(head))
    return head, ":".join(parts[cut:])


def iter_groups(tail: str) -> Iterator[Optional[str]]:
    """
    Yield the interior of every balanced (...) group in order.

    An unterminated trailing group yields None so callers can count it.
    """
    depth = 0
    start = 0
    for pos, char in enumerate(tail):
        if char == "(":
            if depth == 0:
                start = pos + 1
            depth += 1
        elif char == ")" and depth:
            depth -= 1
            if depth == 0:
                yield tail[start:pos]
    if depth:
        yield None


def decode_inventory_tuples(tail: str) -> Tuple[List[InventoryTuple], int]:
    """
    Decode (releaseDays,allotment) groups.

    Returns:
        Tuple of (decoded tuples, malformed group count). Malformed groups keep
        their index slot so later tuples still line up with calendar days.
    """
    decoded: List[InventoryTuple] = []
    malformed = 0
    for index, group in enumerate(iter_groups(tail)):
        values = group.split(",") if group is not None else []
        release = parse_int(values[0]) if len(values) == 2 else None
        allotment = parse_int(values[1]) if len(values) == 2 else None
        if release is None or allotment is None:
            malformed += 1
            continue
        decoded.append(InventoryTuple(index=index, release_days=release, allotment=allotment))
    return decoded, malformed


def decode_rate_tuples(tail: str) -> Tuple[List[RateTuple], int]:
    """
    Decode 6-field rate groups, keeping only strictly positive amounts.

    Non-positive amounts are dropped without counting as malformed.
    """
    decoded: List[RateTuple] = []
    malformed = 0
    for index, group in enumerate(iter_groups(tail)):
        values: Sequence[str] = group.split(",") if group is not None else []
        if len(values) != 6:
            malformed += 1
            continue
        amount = parse_float(values[5])
        if amount is None:
            malformed += 1
            continue
        if amount <= 0:
            continue
        decoded.append(
            RateTuple(
                index=index,
                rate_type=null_if_empty(values[0].strip()),
                net_price=parse_float(values[1]),
                public_price=parse_float(values[2]),
                specific_rate=parse_float(values[3]),
                board_code=null_if_empty(values[4].strip()),
                amount=amount,
            )
        )
    return decoded, malformed
