"""Tests for precompute configuration and category policy."""

import pytest

from services.pricing.config import PrecomputeConfig, categories_for_hotel, is_beach_hotel


@pytest.mark.no_db
class TestCategories:
    """Tests for category selection per hotel."""

    def test_default_categories(self):
        cats = categories_for_hotel(PrecomputeConfig(), "HOTEL")
        assert [(c.tag, c.min_nights) for c in cats] == [("city_trip", 2), ("other", 5)]

    def test_beach_for_resort(self):
        cats = categories_for_hotel(PrecomputeConfig(), "Apartment Resort")
        assert [c.tag for c in cats] == ["city_trip", "other", "beach"]

    def test_only_one_category(self):
        cats = categories_for_hotel(PrecomputeConfig(), None, only="other")
        assert [c.tag for c in cats] == ["other"]

    def test_beach_filter_on_non_beach_hotel(self):
        assert categories_for_hotel(PrecomputeConfig(), "HOTEL", only="beach") == []

    def test_is_beach_hotel(self):
        assert is_beach_hotel("beach house")
        assert not is_beach_hotel("APARTMENT")
        assert not is_beach_hotel(None)


@pytest.mark.no_db
class TestPrecomputeConfig:
    """Tests for PrecomputeConfig."""

    def test_defaults(self):
        config = PrecomputeConfig()
        assert config.horizon_days == 365
        assert config.concurrency == 10
        assert config.sync_interval_min == 60
        assert config.min_nights("beach") == 5

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PRECOMPUTE_CITY_MIN_NIGHTS", "3")
        monkeypatch.setenv("SYNC_INTERVAL_MIN", "15")
        config = PrecomputeConfig.from_env(concurrency=4)
        assert config.city_min_nights == 3
        assert config.sync_interval_min == 15
        assert config.concurrency == 4

    def test_rejects_zero_nights(self):
        with pytest.raises(ValueError):
            PrecomputeConfig(city_min_nights=0)
