"""
Precompute configuration and travel-category policy.
"""

import os
from typing import List, Optional

from pydantic import BaseModel, Field

CATEGORY_CITY_TRIP = "city_trip"
CATEGORY_OTHER = "other"
CATEGORY_BEACH = "beach"
CATEGORY_ALL = "ALL"

CATEGORIES = (CATEGORY_CITY_TRIP, CATEGORY_OTHER, CATEGORY_BEACH)

# Accommodation types that also get the beach category
BEACH_MARKERS = ("RESORT", "BEACH")


class Category(BaseModel):
    tag: str
    min_nights: int


class PrecomputeConfig(BaseModel):
    """Settings for the cheapest-price precompute pass."""

    horizon_days: int = Field(default=365, ge=1, description="Days ahead to search for windows")
    city_min_nights: int = Field(default=2, ge=1, description="Window length for city_trip")
    other_min_nights: int = Field(default=5, ge=1, description="Window length for other")
    beach_min_nights: int = Field(default=5, ge=1, description="Window length for beach")
    occupancy: int = Field(default=2, ge=1, description="Guests the total price is split across")
    concurrency: int = Field(default=10, ge=1, description="Hotels priced concurrently")
    sync_interval_min: int = Field(default=60, ge=1, description="Feed sync interval in minutes")
    currency: str = Field(default="EUR", description="Currency recorded on every entry")
    progress_every: int = Field(default=100, ge=1, description="Log progress every N hotels")

    @classmethod
    def from_env(cls, **overrides) -> "PrecomputeConfig":
        values = {}
        for field, env in (
            ("horizon_days", "PRECOMPUTE_HORIZON_DAYS"),
            ("city_min_nights", "PRECOMPUTE_CITY_MIN_NIGHTS"),
            ("other_min_nights", "PRECOMPUTE_OTHER_MIN_NIGHTS"),
            ("beach_min_nights", "PRECOMPUTE_BEACH_MIN_NIGHTS"),
            ("concurrency", "PRECOMPUTE_CONCURRENCY"),
            ("sync_interval_min", "SYNC_INTERVAL_MIN"),
        ):
            raw = os.getenv(env)
            if raw:
                values[field] = int(raw)
        values.update(overrides)
        return cls(**values)

    def min_nights(self, tag: str) -> int:
        if tag == CATEGORY_CITY_TRIP:
            return self.city_min_nights
        if tag == CATEGORY_BEACH:
            return self.beach_min_nights
        return self.other_min_nights


def is_beach_hotel(accommodation_type: Optional[str]) -> bool:
    if not accommodation_type:
        return False
    upper = accommodation_type.upper()
    return any(marker in upper for marker in BEACH_MARKERS)


def categories_for_hotel(
    config: PrecomputeConfig,
    accommodation_type: Optional[str] = None,
    only: str = CATEGORY_ALL,
) -> List[Category]:
    """
    Categories a hotel is priced for: city_trip and other always, beach
    only for resort/beach accommodation. `only` narrows to one tag.
    """
    tags = [CATEGORY_CITY_TRIP, CATEGORY_OTHER]
    if is_beach_hotel(accommodation_type):
        tags.append(CATEGORY_BEACH)
    if only != CATEGORY_ALL:
        tags = [tag for tag in tags if tag == only]
    return [Category(tag=tag, min_nights=config.min_nights(tag)) for tag in tags]
