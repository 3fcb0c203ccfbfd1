"""
Pricing Repository - Database operations for the precompute pass.
"""

import json
from datetime import date, datetime
from typing import List, Optional

from db.client import Database, queries
from services.pricing.engine import CheapestPriceEntry, DailyPrice, Promotion


async def get_hotels(db: Database, hotel_id: Optional[int] = None) -> List[dict]:
    """Hotels to price as dicts with id and accommodation_type."""
    async with db.acquire() as conn:
        results = await queries.get_hotels_for_precompute(conn, hotel_id=hotel_id)
        return [dict(r) for r in results]


async def get_daily_prices(
    db: Database, hotel_id: int, date_from: date, date_to: date
) -> List[DailyPrice]:
    async with db.acquire() as conn:
        results = await queries.get_daily_prices(
            conn, hotel_id=hotel_id, date_from=date_from, date_to=date_to
        )
        return [
            DailyPrice(
                day=r["day"],
                price=float(r["price"]),
                allotment=r["allotment"],
                stop_sale=bool(r["stop_sale"]),
                room_code=r["room_code"],
                characteristic=r["characteristic"],
                rate_code=r["rate_code"],
                board_code=r["board_code"],
            )
            for r in results
        ]


async def get_promotions(
    db: Database, hotel_id: int, date_from: date, date_to: date
) -> List[Promotion]:
    async with db.acquire() as conn:
        results = await queries.get_promotions(
            conn, hotel_id=hotel_id, date_from=date_from, date_to=date_to
        )
        return [
            Promotion(
                promo_type=r["promo_type"],
                value=float(r["discount_value"]),
                code=r["promo_code"],
                description=r["description"],
                combinable=bool(r["combinable"]),
                date_from=r["date_from"],
                date_to=r["date_to"],
            )
            for r in results
        ]


async def upsert_cheapest_price(db: Database, entry: CheapestPriceEntry, currency: str = "EUR") -> None:
    async with db.acquire() as conn:
        await queries.upsert_cheapest_price(
            conn,
            hotel_id=entry.hotel_id,
            category_tag=entry.category_tag,
            start_date=entry.start_date,
            nights=entry.nights,
            total_price=entry.total_price,
            price_pp=entry.price_pp,
            room_code=entry.room_code,
            rate_code=entry.rate_code,
            board_code=entry.board_code,
            currency=currency,
            applied_promotions=json.dumps([p.to_dict() for p in entry.applied_promotions]),
            derived_at=entry.derived_at,
            expires_at=entry.expires_at,
        )


async def get_cheapest_prices(db: Database, hotel_id: int) -> List[dict]:
    async with db.acquire() as conn:
        results = await queries.get_cheapest_prices(conn, hotel_id=hotel_id)
        return [dict(r) for r in results]


async def delete_expired(db: Database, now: datetime) -> int:
    """Delete entries that expired before now. Returns count deleted."""
    async with db.acquire() as conn:
        return await queries.delete_expired_prices(conn, now=now) or 0


async def refresh_search_index(db: Database, today: date, now: datetime) -> int:
    """Rebuild per-hotel aggregates. Returns hotels written."""
    async with db.acquire() as conn:
        return await queries.refresh_search_index(conn, today=today, now=now) or 0
