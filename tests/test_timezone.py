"""
Tests for the shared date/time utilities.
"""
from datetime import date, datetime, time, timezone

import pytest

from mitv_epg.exceptions import MalformedEntryError
from mitv_epg.utils.timezone import (
    combine_local,
    cutoff_instant,
    format_xmltv_time,
    listing_dates,
    parse_wall_clock,
    resolve_zone,
)
from tests.helpers import DAY, at


class TestParseWallClock:

    @pytest.mark.parametrize("text, expected", [
        ("23:30", time(23, 30)),
        ("7:05", time(7, 5)),
        (" 00:00 ", time(0, 0)),
        ("21h15", time(21, 15)),
    ])
    def test_valid_times(self, text, expected):
        assert parse_wall_clock(text) == expected

    @pytest.mark.parametrize("text", ["", "noon", "25:00", "12:60", "12", "12:3"])
    def test_invalid_times_raise(self, text):
        with pytest.raises(MalformedEntryError):
            parse_wall_clock(text)

    def test_malformed_entry_is_value_error(self):
        with pytest.raises(ValueError):
            parse_wall_clock("??")


class TestCombineLocal:

    def test_utc_site(self):
        assert combine_local(DAY, time(23, 30)) == at(DAY, 23, 30)

    def test_site_zone_converted_to_utc(self):
        sao_paulo = resolve_zone("America/Sao_Paulo")
        result = combine_local(DAY, time(23, 30), sao_paulo)
        assert result == datetime(2025, 10, 10, 2, 30, tzinfo=timezone.utc)
        assert result.tzinfo == timezone.utc

    def test_cutoff_instant(self):
        assert cutoff_instant(DAY, 3) == at(DAY, 3)


class TestListingDates:

    def test_inclusive_window(self):
        assert listing_dates(date(2025, 10, 9), -1, 2) == [
            date(2025, 10, 8),
            date(2025, 10, 9),
            date(2025, 10, 10),
            date(2025, 10, 11),
        ]

    def test_single_day(self):
        assert listing_dates(DAY, 0, 0) == [DAY]


class TestFormatXmltvTime:

    def test_utc(self):
        assert format_xmltv_time(at(DAY, 23, 30)) == "20251009233000 +0000"

    def test_target_zone_offset(self):
        assert format_xmltv_time(at(DAY, 23, 30), resolve_zone("America/Sao_Paulo")) == "20251009203000 -0300"


class TestResolveZone:

    def test_utc_alias(self):
        assert resolve_zone("utc") is timezone.utc

    def test_unknown_zone(self):
        with pytest.raises(ValueError):
            resolve_zone("Mars/Olympus_Mons")
