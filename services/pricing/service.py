"""
Pricing Service - Precompute the cheapest price per person per hotel and
travel category, sweep expired entries, refresh the search index.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from loguru import logger
from pydantic import BaseModel

from db.client import Database
from services.pricing import repo
from services.pricing.config import (
    CATEGORIES,
    CATEGORY_ALL,
    PrecomputeConfig,
    categories_for_hotel,
)
from services.pricing.engine import price_hotel


class PrecomputeReport(BaseModel):
    """Result of a precompute pass."""

    processed: int = 0
    updated: int = 0
    failed: int = 0
    duration: float = 0.0

    def to_dict(self) -> dict:
        return {
            "processed": self.processed,
            "updated": self.updated,
            "failed": self.failed,
            "duration": round(self.duration, 3),
        }


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class IService(ABC):
    """Pricing Service - Cheapest-price precompute over the loaded feed."""

    @abstractmethod
    async def precompute_prices(
        self, category: str = CATEGORY_ALL, hotel_id: Optional[int] = None
    ) -> PrecomputeReport:
        """
        Price every hotel (or one) for every applicable category (or one)
        and upsert the results.
        """
        pass

    @abstractmethod
    async def cleanup_expired(self) -> int:
        """Delete entries past expires_at. Returns count deleted."""
        pass

    @abstractmethod
    async def update_search_index(self) -> int:
        """Refresh per-hotel price aggregates. Returns hotels written."""
        pass


class Service(IService):
    def __init__(
        self,
        db: Database,
        config: Optional[PrecomputeConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.config = config or PrecomputeConfig()
        self.clock = clock

    def expires_at(self, now: datetime) -> datetime:
        """Entries outlive two sync cycles."""
        return now + timedelta(minutes=2 * self.config.sync_interval_min)

    async def precompute_prices(
        self, category: str = CATEGORY_ALL, hotel_id: Optional[int] = None
    ) -> PrecomputeReport:
        if category != CATEGORY_ALL and category not in CATEGORIES:
            raise ValueError(f"Unknown category: '{category}'. Use one of {CATEGORIES} or {CATEGORY_ALL}")

        start = time.monotonic()
        now = self.clock()
        report = PrecomputeReport()

        hotels = await repo.get_hotels(self.db, hotel_id)
        logger.info(
            f"Precomputing {category} prices for {len(hotels)} hotels "
            f"(concurrency {self.config.concurrency}, horizon {self.config.horizon_days} days)"
        )

        semaphore = asyncio.Semaphore(self.config.concurrency)

        async def process_hotel(hotel: dict) -> None:
            async with semaphore:
                try:
                    report.updated += await self.precompute_hotel(
                        hotel["id"], hotel.get("accommodation_type"), category, now
                    )
                    report.processed += 1
                except Exception as e:
                    logger.error(f"Failed to precompute hotel {hotel['id']}: {e}")
                    report.failed += 1
                done = report.processed + report.failed
                if done % self.config.progress_every == 0:
                    logger.info(f"  Progress: {done}/{len(hotels)} hotels | {report.updated} prices")

        await asyncio.gather(*[process_hotel(h) for h in hotels])

        report.duration = time.monotonic() - start
        logger.info(
            f"Precompute complete: {report.processed} processed, {report.updated} updated, "
            f"{report.failed} failed in {report.duration:.1f}s"
        )
        return report

    async def precompute_hotel(
        self,
        hotel_id: int,
        accommodation_type: Optional[str] = None,
        category: str = CATEGORY_ALL,
        now: Optional[datetime] = None,
    ) -> int:
        """Price one hotel. Returns the number of entries upserted."""
        now = now or self.clock()
        categories = categories_for_hotel(self.config, accommodation_type, category)
        if not categories:
            return 0

        date_from = now.date()
        date_to = date_from + timedelta(days=self.config.horizon_days)
        days = await repo.get_daily_prices(self.db, hotel_id, date_from, date_to)
        promotions = await repo.get_promotions(self.db, hotel_id, date_from, date_to)

        updated = 0
        for cat in categories:
            entry = price_hotel(
                hotel_id, cat.tag, cat.min_nights, days, promotions, self.config.occupancy
            )
            if entry is None:
                # Any stored entry ages out through cleanup_expired
                continue
            entry.derived_at = now
            entry.expires_at = self.expires_at(now)
            await repo.upsert_cheapest_price(self.db, entry, self.config.currency)
            updated += 1
        return updated

    async def cleanup_expired(self) -> int:
        deleted = await repo.delete_expired(self.db, self.clock())
        logger.info(f"Cleaned up {deleted} expired cheapest prices")
        return deleted

    async def update_search_index(self) -> int:
        now = self.clock()
        updated = await repo.refresh_search_index(self.db, now.date(), now)
        logger.info(f"Search index updated: {updated} hotels")
        return updated
