#!/usr/bin/env python3
"""
Precompute the cheapest price per person per hotel and travel category.

Usage:
    # Every hotel, every category that applies to it
    uv run python -m workflows.precompute_prices

    # One category / one hotel
    uv run python -m workflows.precompute_prices --category city_trip
    uv run python -m workflows.precompute_prices --hotel-id 1234

    # Maintenance
    uv run python -m workflows.precompute_prices --cleanup-expired --update-search-index
"""

import argparse
import asyncio
import json
import sys

from dotenv import load_dotenv
from loguru import logger

load_dotenv()


def build_parser() -> argparse.ArgumentParser:
    from services.pricing.config import CATEGORIES, CATEGORY_ALL

    parser = argparse.ArgumentParser(description="Precompute cheapest prices")
    parser.add_argument(
        "--category",
        choices=[*CATEGORIES, CATEGORY_ALL],
        default=CATEGORY_ALL,
        help="Travel category to price (default: ALL)",
    )
    parser.add_argument(
        "--hotel-id",
        type=int,
        help="Price a single hotel",
    )
    parser.add_argument(
        "--concurrency", "-c",
        type=int,
        help="Hotels priced concurrently (default: PRECOMPUTE_CONCURRENCY or 10)",
    )
    parser.add_argument(
        "--cleanup-expired",
        action="store_true",
        help="Delete entries past their expiry after pricing",
    )
    parser.add_argument(
        "--update-search-index",
        action="store_true",
        help="Refresh per-hotel price aggregates after pricing",
    )
    parser.add_argument(
        "--skip-precompute",
        action="store_true",
        help="Only run the maintenance steps",
    )
    return parser


async def precompute(args, db) -> int:
    """Run the requested steps against an open Database. Returns the exit code."""
    from services.pricing.config import PrecomputeConfig
    from services.pricing.service import Service

    overrides = {"concurrency": args.concurrency} if args.concurrency else {}
    service = Service(db, PrecomputeConfig.from_env(**overrides))
    summary = {}

    if not args.skip_precompute:
        report = await service.precompute_prices(category=args.category, hotel_id=args.hotel_id)
        summary["precompute"] = report.to_dict()

    if args.cleanup_expired:
        summary["expired_deleted"] = await service.cleanup_expired()

    if args.update_search_index:
        summary["search_index_rows"] = await service.update_search_index()

    logger.info(f"Precompute summary: {summary}")
    print(json.dumps(summary, indent=2))

    failed = summary.get("precompute", {}).get("failed", 0)
    return 1 if failed else 0


async def run(args) -> int:
    from db.client import Database

    db = Database.from_env()
    await db.connect()
    try:
        return await precompute(args, db)
    finally:
        await db.close()


def main():
    args = build_parser().parse_args()
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
