from typing import Optional


CURRENCY_SYMBOLS = {
    "INR": "₹",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "KES": "KSh ",
}
DEFAULT_SYMBOL = "$"


def plain_amount(amount: float) -> str:
    """Render an amount without trailing zeros: 500.0 -> '500', 12.5 -> '12.50'."""
    if float(amount).is_integer():
        return str(int(amount))
    return f"{amount:.2f}"


def format_currency(amount: Optional[float], currency: str = "INR") -> str:
    """
    Format an amount for display, e.g. format_currency(1200, "INR") -> '₹1,200.00'.

    Negative amounts keep the sign in front of the symbol ('-₹200.00').
    Unknown currency codes fall back to a dollar sign, formatted the same way.
    """
    if amount is None:
        return ""

    symbol = CURRENCY_SYMBOLS.get((currency or "").upper(), DEFAULT_SYMBOL)
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_discount(amount: float, currency: str = "INR") -> str:
    """A discount is always shown as a deduction: 200 -> '-₹200.00'."""
    return format_currency(-abs(amount), currency) if amount else format_currency(0, currency)
