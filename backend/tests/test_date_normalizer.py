"""
Tests for scraped date normalization
"""
from datetime import datetime, timedelta, timezone

import pytest

from services.date_normalizer import normalize_scraped_date

NOW = datetime(2024, 7, 22, 12, 0, tzinfo=timezone.utc)


class TestRelativeDates:

    def test_hours_ago(self):
        assert normalize_scraped_date('2 hours ago', now=NOW) == NOW - timedelta(hours=2)

    def test_single_day_ago(self):
        assert normalize_scraped_date('1 day ago', now=NOW) == NOW - timedelta(days=1)

    def test_relative_phrase_inside_longer_text(self):
        result = normalize_scraped_date('Updated 3 days ago by FEMA', now=NOW)
        assert result == NOW - timedelta(days=3)

    def test_case_insensitive(self):
        assert normalize_scraped_date('5 HOURS AGO', now=NOW) == NOW - timedelta(hours=5)

    def test_non_numeric_amount_returns_now(self):
        """'a day ago' matches the pattern but 'a' is not a number"""
        assert normalize_scraped_date('a day ago', now=NOW) == NOW


class TestAbsoluteDates:

    def test_posted_on_prefix_is_stripped(self):
        result = normalize_scraped_date('Posted on 21 Jul 2024', now=NOW)
        assert result == datetime(2024, 7, 21, tzinfo=timezone.utc)

    def test_posted_on_prefix_any_case(self):
        result = normalize_scraped_date('POSTED ON July 20, 2024', now=NOW)
        assert result == datetime(2024, 7, 20, tzinfo=timezone.utc)

    def test_iso_with_offset_is_converted_to_utc(self):
        result = normalize_scraped_date('2024-07-21T08:30:00-04:00', now=NOW)
        assert result == datetime(2024, 7, 21, 12, 30, tzinfo=timezone.utc)
        assert result.utcoffset() == timedelta(0)

    def test_iso_with_z_suffix(self):
        result = normalize_scraped_date('2024-07-21T08:30:00Z', now=NOW)
        assert result == datetime(2024, 7, 21, 8, 30, tzinfo=timezone.utc)

    def test_naive_date_is_utc_midnight(self):
        result = normalize_scraped_date('2024-07-19', now=NOW)
        assert result == datetime(2024, 7, 19, tzinfo=timezone.utc)


class TestUnparseable:

    @pytest.mark.parametrize('value', [None, '', '   '])
    def test_empty_returns_now(self, value):
        assert normalize_scraped_date(value, now=NOW) == NOW

    def test_garbage_returns_now(self):
        assert normalize_scraped_date('unavailable', now=NOW) == NOW

    def test_posted_on_with_nothing_after_returns_now(self):
        assert normalize_scraped_date('Posted on', now=NOW) == NOW

    def test_default_now_is_aware_utc(self):
        result = normalize_scraped_date('')
        assert result.tzinfo is not None
        assert result.utcoffset() == timedelta(0)

    @pytest.mark.parametrize('value', [
        '999999 days ago',
        '9999999999 hours ago',
        '0001-01-01T00:00:00+05:00',
    ])
    def test_out_of_range_returns_now(self, value):
        assert normalize_scraped_date(value, now=NOW) == NOW
