"""Unit tests for the cheapest-price engine."""

from datetime import date, timedelta

import pytest

from services.pricing.engine import (
    DailyPrice,
    Promotion,
    apply_promotions,
    find_cheapest_window,
    group_by_combination,
    price_hotel,
)

START = date(2025, 6, 1)


def make_days(prices, start=START, allotment=5, **kwargs):
    return [
        DailyPrice(day=start + timedelta(days=i), price=p, allotment=allotment, **kwargs)
        for i, p in enumerate(prices)
    ]


@pytest.mark.no_db
class TestFindCheapestWindow:
    """Tests for the sliding window search."""

    def test_picks_cheapest_window(self):
        """[10,10,5,5,5,8,8] with three nights starts at index 2."""
        window = find_cheapest_window(make_days([10, 10, 5, 5, 5, 8, 8]), 3)
        assert window.start_date == START + timedelta(days=2)
        assert window.total == 15
        assert window.price_pp == 7.5
        assert window.nights == 3

    def test_tie_keeps_earliest_window(self):
        """Equal totals keep the first window found."""
        window = find_cheapest_window(make_days([5, 5, 5, 5]), 2)
        assert window.start_date == START

    def test_later_equal_window_does_not_replace(self):
        window = find_cheapest_window(make_days([4, 6, 9, 1, 9]), 2)
        # [4,6]=10 first, [9,1]=10 and [1,9]=10 tie, earliest wins
        assert window.start_date == START
        assert window.total == 10

    def test_stop_sale_day_breaks_windows(self):
        days = make_days([1, 1, 10, 10, 10])
        days[1].stop_sale = True
        window = find_cheapest_window(days, 2)
        assert window.start_date == START + timedelta(days=2)
        assert window.total == 20

    def test_zero_allotment_day_is_excluded(self):
        days = make_days([1, 1, 3, 3])
        days[0].allotment = 0
        window = find_cheapest_window(days, 2)
        assert window.start_date == START + timedelta(days=1)
        assert window.total == 4

    def test_missing_allotment_is_not_bookable(self):
        days = make_days([1, 1], allotment=None)
        assert find_cheapest_window(days, 1) is None

    def test_gap_in_dates_is_not_a_window(self):
        days = make_days([1]) + make_days([1], start=START + timedelta(days=2))
        assert find_cheapest_window(days, 2) is None

    def test_unsorted_input(self):
        days = list(reversed(make_days([10, 10, 5, 5, 5, 8, 8])))
        window = find_cheapest_window(days, 3)
        assert window.start_date == START + timedelta(days=2)

    def test_not_enough_days(self):
        assert find_cheapest_window(make_days([5, 5]), 3) is None

    def test_empty(self):
        assert find_cheapest_window([], 2) is None

    def test_invalid_min_nights(self):
        with pytest.raises(ValueError):
            find_cheapest_window(make_days([5]), 0)

    def test_custom_occupancy(self):
        window = find_cheapest_window(make_days([30, 30]), 2, occupancy=3)
        assert window.price_pp == 20


@pytest.mark.no_db
class TestApplyPromotions:
    """Tests for promotion precedence and conflicts."""

    def test_free_night_needs_seven_nights(self):
        total, applied = apply_promotions(700, 7, [Promotion(promo_type="free_nights", value=1, code="7X6")])
        assert total == 600
        assert applied[0].type == "free_nights"
        assert applied[0].discount_amount == 100

    def test_free_night_short_stay_not_applied(self):
        total, applied = apply_promotions(500, 5, [Promotion(promo_type="free_nights", value=1)])
        assert total == 500
        assert applied == []

    def test_percentage(self):
        total, applied = apply_promotions(200, 2, [Promotion(promo_type="percentage", value=10)])
        assert total == 180
        assert applied[0].discount_amount == 20

    def test_absolute_capped_at_total(self):
        total, applied = apply_promotions(50, 2, [Promotion(promo_type="absolute", value=80)])
        assert total == 0
        assert applied[0].discount_amount == 50

    def test_fixed_precedence(self):
        """Percentage applies before absolute regardless of input order."""
        promos = [
            Promotion(promo_type="absolute", value=10, combinable=True),
            Promotion(promo_type="percentage", value=10, combinable=True),
        ]
        total, applied = apply_promotions(100, 2, promos)
        assert [a.type for a in applied] == ["percentage", "absolute"]
        assert total == 80

    def test_non_combinable_stops_further_promotions(self):
        promos = [
            Promotion(promo_type="percentage", value=10, combinable=False),
            Promotion(promo_type="absolute", value=10, combinable=True),
        ]
        total, applied = apply_promotions(200, 2, promos)
        assert [a.type for a in applied] == ["percentage"]
        assert total == 180

    def test_non_combinable_skipped_after_applied(self):
        promos = [
            Promotion(promo_type="percentage", value=10, combinable=True),
            Promotion(promo_type="absolute", value=20, combinable=False),
            Promotion(promo_type="coupon", value=5, combinable=True),
        ]
        total, applied = apply_promotions(200, 2, promos)
        assert [a.type for a in applied] == ["percentage", "coupon"]
        assert total == 175

    def test_unknown_type_ignored(self):
        total, applied = apply_promotions(100, 2, [Promotion(promo_type="mystery", value=50)])
        assert total == 100
        assert applied == []

    def test_applied_promotion_to_dict(self):
        _, applied = apply_promotions(
            100, 2, [Promotion(promo_type="percentage", value=10, code="EB10", description="Early booking")]
        )
        assert applied[0].to_dict() == {
            "type": "percentage",
            "code": "EB10",
            "value": 10,
            "description": "Early booking",
            "discount_amount": 10,
            "combinable": False,
        }


@pytest.mark.no_db
class TestPriceHotel:
    """Tests for pricing a hotel across room combinations."""

    def test_cheapest_combination_wins(self):
        days = make_days([10, 10, 10], room_code="DBL", rate_code="A") + make_days(
            [8, 8, 8], room_code="SGL", rate_code="B"
        )
        entry = price_hotel(1, "city_trip", 2, days)
        assert entry.room_code == "SGL"
        assert entry.rate_code == "B"
        assert entry.total_price == 16
        assert entry.price_pp == 8
        assert entry.category_tag == "city_trip"

    def test_windows_never_mix_rooms(self):
        days = make_days([1], room_code="DBL") + make_days(
            [1], start=START + timedelta(days=1), room_code="SGL"
        )
        assert price_hotel(1, "city_trip", 2, days) is None

    def test_equal_price_earlier_start_wins(self):
        days = make_days([9, 5, 5], room_code="DBL") + make_days([5, 5, 9], room_code="SGL")
        entry = price_hotel(1, "city_trip", 2, days)
        assert entry.room_code == "SGL"
        assert entry.start_date == START

    def test_promotion_active_on_start_date(self):
        days = make_days([100, 100])
        promos = [
            Promotion(promo_type="percentage", value=10, date_from=START, date_to=START),
            Promotion(promo_type="absolute", value=50, date_from=START + timedelta(days=1)),
        ]
        entry = price_hotel(1, "other", 2, days, promos)
        assert entry.total_price == 180
        assert entry.price_pp == 90
        assert [p.type for p in entry.applied_promotions] == ["percentage"]
        assert entry.has_promotion

    def test_no_window_returns_none(self):
        assert price_hotel(1, "other", 5, make_days([10, 10])) is None

    def test_group_by_combination_keeps_order(self):
        days = make_days([1], room_code="B") + make_days([1], room_code="A") + make_days([2], room_code="B")
        groups = group_by_combination(days)
        assert list(groups.keys()) == [("B", None, None, None), ("A", None, None, None)]
        assert len(groups[("B", None, None, None)]) == 2
