"""
Unit tests for price and date formatting.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from marketplace.utils.formatters import format_number, format_price, currency_code, format_date
from marketplace.utils.clock import parse_datetime


class TestFormatNumber:

    @pytest.mark.parametrize('value,expected', [
        (1000, '1,000'),
        (950.5, '950.5'),
        (Decimal('1234.56'), '1,234.56'),
        ('150000.00', '150,000'),
        (-2500, '-2,500'),
        (None, '-'),
        ('abc', '-'),
    ])
    def test_format(self, value, expected):
        assert format_number(value) == expected


class TestFormatPrice:

    def test_pakistan(self):
        assert format_price(1000, 'Pakistan') == 'Rs. 1,000'

    def test_uae(self):
        assert format_price(250.5, 'UAE') == 'AED 250.5'

    def test_unknown_country_uses_default(self):
        assert format_price(10, 'Mars') == 'Rs. 10'
        assert currency_code('Mars') == 'PKR'

    def test_without_symbol(self):
        assert format_price(1000, show_symbol=False) == '1,000'


class TestDates:

    def test_format_date(self):
        assert format_date(date(2024, 3, 9)) == '09/03/2024'
        assert format_date(datetime(2024, 12, 31, 23, 59)) == '31/12/2024'
        assert format_date(None) == '-'

    def test_parse_aware_to_naive_utc(self):
        assert parse_datetime('2024-06-01T05:00:00+05:00') == datetime(2024, 6, 1, 0, 0)
        assert parse_datetime('2024-06-01T00:00:00Z') == datetime(2024, 6, 1, 0, 0)

    def test_parse_rejects_empty(self):
        with pytest.raises(ValueError):
            parse_datetime('')
