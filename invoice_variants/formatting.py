from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

from invoice_variants.money import Money, minor_unit_exponent, to_decimal

# en-US display symbols; other valid codes are shown as "AED 1,234.50"
CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "KRW": "₩",
    "ILS": "₪",
    "CAD": "CA$",
    "AUD": "A$",
    "NZD": "NZ$",
    "HKD": "HK$",
    "MXN": "MX$",
    "BRL": "R$",
    "CNY": "CN¥",
}


def _coerce_amount(value: Any) -> Decimal:
    """Anything non-numeric or non-finite becomes 0."""
    if isinstance(value, Money):
        return value.to_decimal()
    if value is None:
        return Decimal("0")
    try:
        d = to_decimal(value)
    except (ValueError, TypeError, ArithmeticError):
        return Decimal("0")
    return d if d.is_finite() else Decimal("0")


def _is_currency_code(code: Any) -> bool:
    return isinstance(code, str) and len(code) == 3 and code.isascii() and code.isalpha()


def _fallback(amount: Decimal, currency: Any) -> str:
    try:
        return f"{currency} {amount:.2f}"
    except (ArithmeticError, ValueError):
        return f"{currency} 0.00"


def format_money(value: Any, currency: Optional[str] = None) -> str:
    """
    Display string for an amount, e.g. format_money(1234.5, "USD") -> "$1,234.50".

    Never raises: bad amounts are shown as zero, and an unusable currency code
    falls back to "<currency> <amount with 2 decimals>".
    """
    if currency is None:
        currency = value.currency if isinstance(value, Money) else "USD"
    amount = _coerce_amount(value)

    if not _is_currency_code(currency):
        return _fallback(amount, currency)

    code = currency.upper()
    exp = minor_unit_exponent(code)
    try:
        q = amount.quantize(Decimal(1).scaleb(-exp), rounding=ROUND_HALF_UP)
    except ArithmeticError:
        return _fallback(amount, code)
    sign = "-" if q < 0 else ""
    digits = f"{abs(q):,.{exp}f}"

    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol:
        return f"{sign}{symbol}{digits}"
    return f"{sign}{code} {digits}"
