"""
Utility functions for the application.
"""
from typing import Any, Dict, Optional

# Currencies whose minor unit is not 1/100 of the major unit
MINOR_UNIT_EXPONENTS = {
    "JPY": 0,
    "KRW": 0,
    "VND": 0,
    "BHD": 3,
    "KWD": 3,
    "OMR": 3,
}

CURRENCY_SYMBOLS = {
    "INR": "₹",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "AUD": "A$",
    "CAD": "C$",
    "JPY": "¥",
    "CNY": "¥",
    "KRW": "₩",
}


def minor_unit_exponent(currency: str) -> int:
    """Number of decimal places between major and minor units."""
    return MINOR_UNIT_EXPONENTS.get(currency.upper(), 2)


def format_money(amount: int, currency: str, signed: bool = False) -> str:
    """Render integer minor units for display, e.g. 12345 INR -> '₹123.45'."""
    exponent = minor_unit_exponent(currency)
    sign = "-" if amount < 0 else ("+" if signed and amount > 0 else "")
    whole, frac = divmod(abs(amount), 10 ** exponent)
    symbol = CURRENCY_SYMBOLS.get(currency.upper())
    number = f"{whole:,}.{frac:0{exponent}d}" if exponent else f"{whole:,}"
    if symbol:
        return f"{sign}{symbol}{number}"
    return f"{sign}{number} {currency.upper()}"


def format_error(error: str, message: str, field: Optional[str] = None) -> Dict[str, Any]:
    """Format error response."""
    response = {"error": error, "message": message}
    if field:
        response["field"] = field
    return response
