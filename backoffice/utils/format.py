import re
from datetime import datetime
from typing import Union

from backoffice.config import settings

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


def format_currency(amount: float, symbol: str = None) -> str:
    """1234.5 -> '₦1,234.50'"""
    symbol = settings.CURRENCY_SYMBOL if symbol is None else symbol
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_currency_ngn(value: Union[str, float, int]) -> str:
    if isinstance(value, str):
        if value.strip().startswith("₦"):
            return value
        try:
            parsed = float(_NON_NUMERIC.sub("", value))
        except ValueError:
            return value
        return format_currency(parsed, "₦")
    return format_currency(value, "₦")


def format_order_date(value: Union[str, datetime]) -> str:
    """Format as 'DD Mon YYYY - h:mm am/pm'."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value

    hours = value.hour % 12 or 12
    ampm = "pm" if value.hour >= 12 else "am"
    return f"{value.day:02d} {value.strftime('%b')} {value.year} - {hours}:{value.minute:02d} {ampm}"
