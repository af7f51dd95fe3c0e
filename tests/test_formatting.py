import pytest

from invoice_variants.formatting import format_money
from invoice_variants.money import Money


def test_usd():
    assert format_money(1234.5, "USD") == "$1,234.50"
    assert format_money(Money(-123450, "USD")) == "-$1,234.50"


def test_other_currencies():
    assert format_money(1234.5, "EUR") == "€1,234.50"
    assert format_money(1234.5, "JPY") == "¥1,235"
    assert format_money(Money(1235, "KWD")) == "KWD 1.235"
    assert format_money(1234.5, "AED") == "AED 1,234.50"


@pytest.mark.parametrize("value", [None, "abc", float("nan"), float("inf")])
def test_bad_amount_shows_zero(value):
    assert format_money(value, "USD") == "$0.00"


def test_bad_currency_falls_back():
    assert format_money(10, "not-a-code") == "not-a-code 10.00"
    assert format_money("abc", "??") == "?? 0.00"


def test_default_currency():
    assert format_money(3) == "$3.00"
