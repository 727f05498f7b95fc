import pytest
from datetime import datetime

from backoffice.utils.format import format_currency, format_currency_ngn, format_order_date

@pytest.mark.parametrize("amount, expected", [
    (0, "₦0.00"),
    (1234.5, "₦1,234.50"),
    (2400000, "₦2,400,000.00"),
    (-75.25, "-₦75.25"),
])
def test_format_currency(amount, expected):
    assert format_currency(amount) == expected

def test_format_currency_custom_symbol():
    assert format_currency(99.999, "NGN ") == "NGN 100.00"

@pytest.mark.parametrize("value, expected", [
    ("₦5,000.00", "₦5,000.00"),
    ("5,000", "₦5,000.00"),
    ("NGN 12500.5", "₦12,500.50"),
    ("n/a", "n/a"),
    (300, "₦300.00"),
])
def test_format_currency_ngn(value, expected):
    assert format_currency_ngn(value) == expected

def test_format_order_date():
    assert format_order_date(datetime(2025, 3, 10, 14, 5)) == "10 Mar 2025 - 2:05 pm"
    assert format_order_date("2025-03-01T00:30:00Z") == "01 Mar 2025 - 12:30 am"
    assert format_order_date("yesterday") == "yesterday"
