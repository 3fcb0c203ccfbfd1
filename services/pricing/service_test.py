"""Unit tests for the pricing service."""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from services.pricing.config import PrecomputeConfig
from services.pricing.engine import DailyPrice, Promotion
from services.pricing.service import PrecomputeReport, Service

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def fixed_clock():
    return NOW


def week_of_prices(prices, room_code="DBL"):
    return [
        DailyPrice(day=date(2025, 6, 1) + timedelta(days=i), price=p, allotment=3, room_code=room_code)
        for i, p in enumerate(prices)
    ]


def make_service(**config):
    return Service(MagicMock(), PrecomputeConfig(**config), clock=fixed_clock)


def stub_repo(mock_repo, hotels, days, promotions=None):
    mock_repo.get_hotels = AsyncMock(return_value=hotels)
    mock_repo.get_daily_prices = AsyncMock(return_value=days)
    mock_repo.get_promotions = AsyncMock(return_value=promotions or [])
    mock_repo.upsert_cheapest_price = AsyncMock()


@pytest.mark.no_db
class TestPrecomputePrices:
    """Tests for Service.precompute_prices."""

    @pytest.mark.asyncio
    @patch("services.pricing.service.repo")
    async def test_prices_city_and_other(self, mock_repo):
        stub_repo(mock_repo, [{"id": 7, "accommodation_type": "HOTEL"}], week_of_prices([10, 10, 5, 5, 5, 8, 8]))

        report = await make_service().precompute_prices()

        assert report.processed == 1
        assert report.updated == 2
        assert report.failed == 0
        entries = {c.args[1].category_tag: c.args[1] for c in mock_repo.upsert_cheapest_price.call_args_list}
        assert set(entries) == {"city_trip", "other"}
        # city_trip: two nights, cheapest pair is 5+5 starting on day 2
        assert entries["city_trip"].start_date == date(2025, 6, 3)
        assert entries["city_trip"].price_pp == 5
        assert entries["other"].nights == 5

    @pytest.mark.asyncio
    @patch("services.pricing.service.repo")
    async def test_beach_category_for_resorts(self, mock_repo):
        stub_repo(mock_repo, [{"id": 7, "accommodation_type": "BEACH RESORT"}], week_of_prices([10] * 7))

        report = await make_service().precompute_prices()

        tags = {c.args[1].category_tag for c in mock_repo.upsert_cheapest_price.call_args_list}
        assert tags == {"city_trip", "other", "beach"}
        assert report.updated == 3

    @pytest.mark.asyncio
    @patch("services.pricing.service.repo")
    async def test_single_category(self, mock_repo):
        stub_repo(mock_repo, [{"id": 7, "accommodation_type": None}], week_of_prices([10] * 7))

        report = await make_service().precompute_prices(category="city_trip", hotel_id=7)

        assert mock_repo.get_hotels.call_args.args[1] == 7
        assert report.updated == 1
        assert mock_repo.upsert_cheapest_price.call_args.args[1].category_tag == "city_trip"

    @pytest.mark.asyncio
    @patch("services.pricing.service.repo")
    async def test_unknown_category_rejected(self, mock_repo):
        stub_repo(mock_repo, [], [])
        with pytest.raises(ValueError):
            await make_service().precompute_prices(category="ski")

    @pytest.mark.asyncio
    @patch("services.pricing.service.repo")
    async def test_no_window_leaves_stored_entry(self, mock_repo):
        """Without a bookable window nothing is written or removed, the old row expires on its own."""
        stub_repo(mock_repo, [{"id": 7, "accommodation_type": None}], [])

        report = await make_service().precompute_prices()

        assert report.processed == 1
        assert report.updated == 0
        mock_repo.upsert_cheapest_price.assert_not_awaited()
        mock_repo.delete_expired.assert_not_called()
        assert not [c for c in mock_repo.mock_calls if "delete" in c[0]]

    @pytest.mark.asyncio
    @patch("services.pricing.service.repo")
    async def test_failed_hotel_does_not_stop_others(self, mock_repo):
        stub_repo(
            mock_repo,
            [{"id": 1, "accommodation_type": None}, {"id": 2, "accommodation_type": None}],
            [],
        )
        mock_repo.get_daily_prices = AsyncMock(side_effect=[RuntimeError("boom"), week_of_prices([10] * 7)])

        report = await make_service(concurrency=1).precompute_prices()

        assert report.failed == 1
        assert report.processed == 1

    @pytest.mark.asyncio
    @patch("services.pricing.service.repo")
    async def test_expiry_is_two_sync_intervals(self, mock_repo):
        stub_repo(mock_repo, [{"id": 7, "accommodation_type": None}], week_of_prices([10] * 7))

        await make_service(sync_interval_min=30).precompute_prices(category="city_trip")

        entry = mock_repo.upsert_cheapest_price.call_args.args[1]
        assert entry.derived_at == NOW
        assert entry.expires_at == NOW + timedelta(minutes=60)

    @pytest.mark.asyncio
    @patch("services.pricing.service.repo")
    async def test_promotions_applied(self, mock_repo):
        promos = [Promotion(promo_type="percentage", value=50, code="HALF")]
        stub_repo(mock_repo, [{"id": 7, "accommodation_type": None}], week_of_prices([10] * 7), promos)

        await make_service().precompute_prices(category="city_trip")

        entry = mock_repo.upsert_cheapest_price.call_args.args[1]
        assert entry.total_price == 10
        assert entry.price_pp == 5
        assert entry.applied_promotions[0].code == "HALF"

    @pytest.mark.asyncio
    @patch("services.pricing.service.repo")
    async def test_rerun_is_idempotent(self, mock_repo):
        """Two runs over unchanged inputs leave identical rows."""
        stub_repo(
            mock_repo,
            [{"id": 1, "accommodation_type": "RESORT"}, {"id": 2, "accommodation_type": None}],
            week_of_prices([10, 10, 5, 5, 5, 8, 8]),
        )
        stored = {}

        async def upsert(db, entry, currency="EUR"):
            stored[(entry.hotel_id, entry.category_tag)] = (
                entry.start_date,
                entry.nights,
                entry.total_price,
                entry.price_pp,
                entry.room_code,
                [p.to_dict() for p in entry.applied_promotions],
                entry.derived_at,
                entry.expires_at,
            )

        mock_repo.upsert_cheapest_price = AsyncMock(side_effect=upsert)
        service = make_service()

        await service.precompute_prices()
        first = dict(stored)
        await service.precompute_prices()

        assert stored == first
        assert len(stored) == 5


@pytest.mark.no_db
class TestMaintenance:
    """Tests for expiry sweep and search index refresh."""

    @pytest.mark.asyncio
    @patch("services.pricing.service.repo")
    async def test_cleanup_expired_uses_clock(self, mock_repo):
        mock_repo.delete_expired = AsyncMock(return_value=4)
        service = make_service()

        deleted = await service.cleanup_expired()

        assert deleted == 4
        mock_repo.delete_expired.assert_awaited_once_with(service.db, NOW)

    @pytest.mark.asyncio
    @patch("services.pricing.service.repo")
    async def test_update_search_index(self, mock_repo):
        mock_repo.refresh_search_index = AsyncMock(return_value=12)
        service = make_service()

        updated = await service.update_search_index()

        assert updated == 12
        mock_repo.refresh_search_index.assert_awaited_once_with(service.db, NOW.date(), NOW)


@pytest.mark.no_db
def test_report_to_dict():
    report = PrecomputeReport(processed=3, updated=5, failed=1, duration=1.23456)
    assert report.to_dict() == {"processed": 3, "updated": 5, "failed": 1, "duration": 1.235}
