"""Helper functions for formatting numbers and currencies."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CURRENCY_SYMBOLS = {
    "INR": "₹",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


def _group_digits(digits: str, style: str) -> str:
    """Insert thousands separators into a string of digits.

    ``indian`` keeps the last three digits together and groups the rest in
    pairs (12,34,567); ``western`` groups everything in threes (1,234,567).
    """
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    size = 2 if style == "indian" else 3
    groups: list[str] = []
    while head:
        groups.insert(0, head[-size:])
        head = head[:-size]
    return ",".join(groups + [tail])


def format_currency(
    value: int | float | Decimal | None,
    currency: str = "INR",
    locale: str = "en-IN",
) -> str:
    """Format ``value`` as a whole-unit currency string.

    ``None`` and non-finite values format as zero rather than raising.
    """
    try:
        d = Decimal(str(value)) if value is not None else Decimal(0)
    except InvalidOperation:
        d = Decimal(0)
    if not d.is_finite():
        d = Decimal(0)

    whole = d.quantize(Decimal(1), rounding=ROUND_HALF_UP)
    sign = "-" if whole < 0 else ""
    style = "indian" if locale.endswith("-IN") else "western"
    digits = _group_digits(str(abs(int(whole))), style)
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    return f"{sign}{symbol}{digits}"
