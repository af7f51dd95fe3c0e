import random
from decimal import Decimal

import pytest

from invoice_variants.errors import ComputationError, ValidationError
from invoice_variants.models import BaseInvoiceItem, MarginType, PricingRule
from invoice_variants.money import Money, RoundingRule
from invoice_variants.pricing import apply_pricing, price

BASE = Money(500, "USD")


def _price(base=BASE, margin_type=MarginType.PERCENTAGE, margin="0", fluctuation="0",
           rule=RoundingRule.NEAREST, seed=1, **kwargs):
    return price(base, margin_type, Decimal(margin), Decimal(fluctuation), rule, random.Random(seed), **kwargs)


def test_neutral_config_keeps_base_price():
    assert _price() == BASE
    assert _price(margin_type=MarginType.FIXED) == BASE


def test_percentage_margin():
    assert _price(margin="10") == Money(550, "USD")


def test_fixed_margin():
    assert _price(margin_type=MarginType.FIXED, margin="2") == Money(700, "USD")


def test_discount_then_markup():
    # 5.00 +10% = 5.50, -10% = 4.95, +1 = 5.95
    assert _price(margin="10", discount_percent=Decimal("10")) == Money(495, "USD")
    assert _price(margin="10", discount_percent=Decimal("10"), fixed_markup=Decimal("1")) == Money(595, "USD")


@pytest.mark.parametrize("rule, minor", [
    (RoundingRule.UP, 101),
    (RoundingRule.DOWN, 100),
    (RoundingRule.NEAREST, 101),
])
def test_rounding_applied_last(rule, minor):
    # 1.00 * 1.005 = 1.005
    assert _price(base=Money(100, "USD"), margin="0.5", rule=rule).minor == minor


def test_negative_margin_rejected():
    with pytest.raises(ValidationError):
        _price(margin="-1")


def test_negative_result_raises_with_position():
    items = [
        BaseInvoiceItem("Widget", 1, Money(10000, "USD")),
        BaseInvoiceItem("Washer", 1, Money(50, "USD")),
    ]
    rule = PricingRule(MarginType.FIXED, Decimal("0"), Decimal("0"), fixed_markup=Decimal("-5"))

    with pytest.raises(ComputationError) as ei:
        apply_pricing(items, rule, random.Random(0), variant_index=3)

    assert ei.value.variant_index == 3
    assert ei.value.item_index == 1


def test_fluctuation_stays_in_range():
    base = Money(10000, "USD")
    for seed in range(200):
        p = _price(base=base, fluctuation="10", seed=seed)
        assert Money(9000, "USD") <= p <= Money(11000, "USD")


def test_one_draw_per_item():
    rng = random.Random(7)
    price(BASE, MarginType.PERCENTAGE, Decimal("0"), Decimal("5"), RoundingRule.NEAREST, rng)

    expected = random.Random(7)
    expected.uniform(-5, 5)
    assert rng.getstate() == expected.getstate()


def test_same_seed_same_prices():
    items = [BaseInvoiceItem("Widget", 3, Money(1999, "USD")), BaseInvoiceItem("Gadget", 1, Money(4250, "USD"))]
    rule = PricingRule(MarginType.PERCENTAGE, Decimal("15"), Decimal("20"))

    first = apply_pricing(items, rule, random.Random(42))
    second = apply_pricing(items, rule, random.Random(42))

    assert first == second
    assert [it.quantity for it in first] == [3, 1]
