"""
Formatting helpers for prices and dates shown to customers (invoices, API).
"""
from decimal import Decimal, InvalidOperation
from datetime import date, datetime
from typing import Union, Optional

CURRENCY_CONFIG = {
    'Pakistan': {'code': 'PKR', 'symbol': 'Rs.'},
    'UAE': {'code': 'AED', 'symbol': 'AED'},
}
DEFAULT_COUNTRY = 'Pakistan'


def _currency(country: Optional[str]) -> dict:
    return CURRENCY_CONFIG.get(country or DEFAULT_COUNTRY, CURRENCY_CONFIG[DEFAULT_COUNTRY])


def format_number(value: Union[int, float, Decimal, str, None]) -> str:
    """
    Group thousands with commas and keep only significant decimals.

    Examples:
        format_number(1000) -> "1,000"
        format_number(950.5) -> "950.5"
        format_number(1234.56) -> "1,234.56"
        format_number(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value)).quantize(Decimal('0.01'))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    integer_part, decimal_part = f"{abs(num):.2f}".split(".")
    decimal_part = decimal_part.rstrip('0')
    sign = "-" if num < 0 else ""

    formatted = f"{int(integer_part):,}"
    if decimal_part:
        return f"{sign}{formatted}.{decimal_part}"
    return f"{sign}{formatted}"


def format_price(amount, country: Optional[str] = DEFAULT_COUNTRY, show_symbol: bool = True) -> str:
    """
    Format a price in the currency of a country.

    Examples:
        format_price(1000, 'Pakistan') -> "Rs. 1,000"
        format_price(250.5, 'UAE') -> "AED 250.5"
    """
    formatted = format_number(amount)
    if show_symbol and formatted != "-":
        return f"{_currency(country)['symbol']} {formatted}"
    return formatted


def currency_code(country: Optional[str] = DEFAULT_COUNTRY) -> str:
    return _currency(country)['code']


def format_date(value: Union[date, datetime, None]) -> str:
    """DD/MM/YYYY, or "-" when there is no date."""
    if value is None:
        return "-"
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        return "-"
    return value.strftime("%d/%m/%Y")
