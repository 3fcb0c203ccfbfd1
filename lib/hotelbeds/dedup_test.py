"""Tests for the duplicate detector."""

import threading

import pytest

from lib.hotelbeds.dedup import BoundedKeySet, DuplicateDetector, short_hash

KEYS = {
    "hotel_contracts": ("contract_code", "date_from"),
    "hotel_rates": ("room_code", "rate_date", "board_code"),
}


class TestBoundedKeySet:
    """Tests for the bounded key set."""

    @pytest.mark.no_db
    def test_add_reports_new_keys(self):
        keys = BoundedKeySet(10)

        assert keys.add("a") is True
        assert keys.add("a") is False
        assert len(keys) == 1

    @pytest.mark.no_db
    def test_evicts_oldest_half_past_ceiling(self):
        """Once size exceeds the ceiling, the oldest half goes before the next insert."""
        keys = BoundedKeySet(4)
        for key in "abcde":
            keys.add(key)

        assert len(keys) == 5
        keys.add("f")

        assert keys.evictions == 1
        assert "a" not in keys
        assert "b" not in keys
        assert "c" in keys
        assert "f" in keys

    @pytest.mark.no_db
    def test_rejects_tiny_ceiling(self):
        with pytest.raises(ValueError):
            BoundedKeySet(1)


class TestDuplicateDetector:
    """Tests for DuplicateDetector."""

    @pytest.mark.no_db
    def test_unique_then_duplicate(self):
        detector = DuplicateDetector(KEYS)
        row = {"contract_code": "C1", "date_from": "2025-01-01", "currency": "EUR"}

        assert detector.is_duplicate("hotel_contracts", 100, row) is False
        assert detector.is_duplicate("hotel_contracts", 100, dict(row, currency="USD")) is True

    @pytest.mark.no_db
    def test_different_business_ids_never_collide(self):
        detector = DuplicateDetector(KEYS)
        row = {"contract_code": "C1", "date_from": "2025-01-01"}

        assert detector.is_duplicate("hotel_contracts", 100, row) is False
        assert detector.is_duplicate("hotel_contracts", 200, row) is False

    @pytest.mark.no_db
    def test_tables_are_independent(self):
        detector = DuplicateDetector({"a": ("k",), "b": ("k",)})

        assert detector.is_duplicate("a", 1, {"k": 1}) is False
        assert detector.is_duplicate("b", 1, {"k": 1}) is False

    @pytest.mark.no_db
    def test_table_without_key_never_duplicate(self):
        detector = DuplicateDetector(KEYS)

        assert detector.is_duplicate("hotel_groups", 1, {"group_code": "G"}) is False
        assert detector.is_duplicate("hotel_groups", 1, {"group_code": "G"}) is False

    @pytest.mark.no_db
    def test_eviction_allows_old_key_back(self):
        """Documented approximation: evicted keys look unique again."""
        detector = DuplicateDetector({"t": ("k",)}, max_size=2)
        for value in range(4):
            detector.is_duplicate("t", 1, {"k": value})

        assert detector.is_duplicate("t", 1, {"k": 0}) is False
        assert detector.size("t") <= 3

    @pytest.mark.no_db
    def test_stats(self):
        detector = DuplicateDetector(KEYS)
        row = {"room_code": "DBL", "rate_date": "2025-01-01", "board_code": "RO"}
        detector.is_duplicate("hotel_rates", 1, row)
        detector.is_duplicate("hotel_rates", 1, row)
        detector.is_duplicate("hotel_rates", 1, dict(row, board_code="BB"))

        stats = detector.stats()

        assert stats.total_processed == 3
        assert stats.duplicates_skipped == 1
        assert stats.unique_records == 2
        assert stats.by_table["hotel_rates"].duplicates == 1
        assert stats.duplicate_percentage == pytest.approx(33.33)
        assert stats.to_dict()["by_table"]["hotel_rates"]["processed"] == 3

    @pytest.mark.no_db
    def test_reset(self):
        detector = DuplicateDetector(KEYS)
        detector.is_duplicate("hotel_contracts", 1, {"contract_code": "C"})

        detector.reset()

        assert detector.stats().total_processed == 0
        assert detector.size("hotel_contracts") == 0

    @pytest.mark.no_db
    def test_concurrent_inserts_report_one_unique(self):
        """Check-and-insert is atomic across threads."""
        detector = DuplicateDetector(KEYS)
        row = {"contract_code": "C1", "date_from": "2025-01-01"}
        results = []

        def worker():
            results.append(detector.is_duplicate("hotel_contracts", 7, row))

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(False) == 1

    @pytest.mark.no_db
    def test_short_hash_is_eight_hex_chars(self):
        value = short_hash("1:C1:2025-01-01")

        assert len(value) == 8
        int(value, 16)
