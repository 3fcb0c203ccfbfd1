"""Tests for GENERAL master file parsing."""

import pytest

from services.ingestor.general import (
    GeneralDataParser,
    parse_chain_line,
    parse_destination_line,
    parse_hotel_line,
)


class TestLineParsers:
    """Tests for master line parsers."""

    @pytest.mark.no_db
    def test_hotel_line(self):
        hotel = parse_hotel_line("1234:4EST:PMI:CH1:HOTEL:3:N:ES:07:2.65:39.57:Hotel Sol")

        assert hotel.id == 1234
        assert hotel.category == "4EST"
        assert hotel.accommodation_type == "HOTEL"
        assert hotel.ranking == 3
        assert hotel.longitude == 2.65
        assert hotel.name == "Hotel Sol"

    @pytest.mark.no_db
    def test_hotel_name_keeps_colons(self):
        hotel = parse_hotel_line("1:A:B:C:D:1:N:ES:07:1:2:Sol: Beach Club")
        assert hotel.name == "Sol: Beach Club"

    @pytest.mark.no_db
    def test_hotel_line_rejected(self):
        assert parse_hotel_line("1:too:short") is None
        assert parse_hotel_line("x:A:B:C:D:1:N:ES:07:1:2:Name") is None
        assert parse_hotel_line("0:A:B:C:D:1:N:ES:07:1:2:Name") is None

    @pytest.mark.no_db
    def test_empty_name_is_none(self):
        assert parse_hotel_line("5:A:B:C:D:1:N:ES:07:1:2:").name is None

    @pytest.mark.no_db
    def test_destination_and_chain(self):
        destination = parse_destination_line("PMI:ES:Y:Palma")
        assert destination.code == "PMI"
        assert destination.name == "Palma"

        assert parse_chain_line("CH1").name is None
        assert parse_destination_line("") is None


class TestGeneralDataParser:
    """Tests for GeneralDataParser."""

    @pytest.mark.no_db
    def test_first_occurrence_wins(self, tmp_path):
        (tmp_path / "GHOT_F_1").write_text(
            "{GHOT}\n1:A:B:C:D:1:N:ES:07:1:2:First\nbad line\n{/GHOT}\n"
        )
        (tmp_path / "GHOT_F_2").write_text("{GHOT}\n1:A:B:C:D:1:N:ES:07:1:2:Second\n{/GHOT}\n")
        (tmp_path / "GTTO_F").write_text("{GTTO}\nCH1:Chain\n{/GTTO}\n")

        data = GeneralDataParser(tmp_path).parse_all()

        assert [h.name for h in data.hotels] == ["First"]
        assert data.line_errors == 1
        assert data.counts() == {"hotels": 1, "destinations": 0, "categories": 0, "chains": 1}

    @pytest.mark.no_db
    def test_missing_folder(self, tmp_path):
        data = GeneralDataParser(tmp_path / "GENERAL").parse_all()
        assert data.hotels == []
