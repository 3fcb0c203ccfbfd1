"""Pricing service.

Cheapest price per person per hotel and travel category.

Components:
- Engine: Window search and promotions, pure (engine.py)
- Config: Precompute settings and category policy (config.py)
- Repo: Database operations (repo.py)
- Service: Precompute, expiry sweep, search index (service.py)
"""

from services.pricing.config import PrecomputeConfig, categories_for_hotel
from services.pricing.engine import (
    AppliedPromotion,
    CheapestPriceEntry,
    DailyPrice,
    PricedWindow,
    Promotion,
    apply_promotions,
    find_cheapest_window,
    price_hotel,
)
from services.pricing.service import IService, PrecomputeReport, Service

__all__ = [
    "PrecomputeConfig",
    "categories_for_hotel",
    "AppliedPromotion",
    "CheapestPriceEntry",
    "DailyPrice",
    "PricedWindow",
    "Promotion",
    "apply_promotions",
    "find_cheapest_window",
    "price_hotel",
    "IService",
    "PrecomputeReport",
    "Service",
]
