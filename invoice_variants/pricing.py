from __future__ import annotations

from decimal import Decimal
import random
from typing import List, Optional, Sequence

from invoice_variants.errors import ComputationError, ValidationError
from invoice_variants.models import BaseInvoiceItem, MarginType, PricingRule, VariantItem
from invoice_variants.money import Money, RoundingRule

_HUNDRED = Decimal("100")


def _apply_margin(value: Decimal, margin_type: MarginType, margin_value: Decimal) -> Decimal:
    if MarginType(margin_type) is MarginType.PERCENTAGE:
        return value * (Decimal("1") + margin_value / _HUNDRED)
    return value + margin_value


def _fluctuation(rng: random.Random, fluctuation_range: Decimal) -> Decimal:
    """Uniform draw from [-range%, +range%], as a fraction."""
    spread = float(fluctuation_range)
    return Decimal(str(rng.uniform(-spread, spread))) / _HUNDRED


def price(
    base_unit_price: Money,
    margin_type: MarginType,
    margin_value: Decimal,
    fluctuation_range: Decimal,
    rounding_rule: RoundingRule,
    rng: random.Random,
    discount_percent: Optional[Decimal] = None,
    fixed_markup: Optional[Decimal] = None,
) -> Money:
    """
    Unit price of one item in one variant.

    Order: margin -> fluctuation -> discount -> fixed markup -> rounding.
    Exactly one rng draw per call. A negative or non-finite result raises
    ComputationError; nothing is clamped.
    """
    if margin_value < 0:
        raise ValidationError(f"marginValue must be non-negative, got {margin_value}")

    value = _apply_margin(base_unit_price.to_decimal(), margin_type, margin_value)
    value += value * _fluctuation(rng, fluctuation_range)

    if discount_percent:
        value -= value * discount_percent / _HUNDRED
    if fixed_markup:
        value += fixed_markup

    if not value.is_finite():
        raise ComputationError(f"Price is not finite: {value}")
    if value < 0:
        raise ComputationError(f"Adjusted price is negative: {value}")

    return Money.from_decimal(value, base_unit_price.currency, rounding_rule)


def apply_pricing(
    items: Sequence[BaseInvoiceItem],
    rule: PricingRule,
    rng: random.Random,
    variant_index: Optional[int] = None,
) -> List[VariantItem]:
    out: List[VariantItem] = []

    for item_index, it in enumerate(items):
        try:
            unit_price = price(
                it.unit_price,
                rule.margin_type,
                rule.margin_value,
                rule.fluctuation_range,
                rule.rounding_rule,
                rng,
                discount_percent=rule.discount_percent,
                fixed_markup=rule.fixed_markup,
            )
        except ComputationError as e:
            raise ComputationError(e.message, variant_index=variant_index, item_index=item_index) from e

        out.append(VariantItem(
            description=it.description,
            quantity=it.quantity,
            unit=it.unit,
            unit_price=unit_price,
        ))

    return out
