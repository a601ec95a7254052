"""
Unified money formatting for insight messages.

Usage:
    from suba.utils.money import format_money

    format_money(15000, "NGN")     -> "₦15,000.00"
    format_money(9.99, "USD")      -> "$9.99"
    format_money(12, "KES")        -> "KES 12.00"
"""
from decimal import Decimal, InvalidOperation

_CURRENCY_SYMBOL = {
    "NGN": "₦",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


def currency_label(code: str | None) -> str:
    """Symbol for known currencies, otherwise the ISO code plus a space."""
    code = (code or "NGN").upper()
    return _CURRENCY_SYMBOL.get(code, f"{code} ")


def format_money(amount, currency: str | None = "NGN", decimals: int = 2) -> str:
    """
    Format an amount with thousands separators and a currency prefix.

    Args:
        amount: int / float / Decimal / str (None and junk count as 0)
        currency: ISO currency code
        decimals: digits after the decimal point

    Returns:
        "₦15,000.00" / "$9.99"
    """
    try:
        value = Decimal(str(amount)) if amount is not None else Decimal("0")
    except (InvalidOperation, ValueError):
        value = Decimal("0")
    if not value.is_finite():
        value = Decimal("0")
    return f"{currency_label(currency)}{value:,.{decimals}f}"
