from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP
from enum import Enum
from typing import Union


class RoundingRule(str, Enum):
    UP = "UP"            # ceiling to the next minor unit
    DOWN = "DOWN"        # floor
    NEAREST = "NEAREST"  # half-up


_DECIMAL_ROUNDING = {
    RoundingRule.UP: ROUND_CEILING,
    RoundingRule.DOWN: ROUND_FLOOR,
    RoundingRule.NEAREST: ROUND_HALF_UP,
}

# ISO 4217 exponents that differ from the usual 2 digits
_MINOR_UNIT_EXPONENTS = {
    "BIF": 0, "CLP": 0, "DJF": 0, "GNF": 0, "ISK": 0, "JPY": 0, "KMF": 0, "KRW": 0,
    "PYG": 0, "RWF": 0, "UGX": 0, "VND": 0, "VUV": 0, "XAF": 0, "XOF": 0, "XPF": 0,
    "BHD": 3, "IQD": 3, "JOD": 3, "KWD": 3, "LYD": 3, "OMR": 3, "TND": 3,
}

Number = Union[int, float, str, Decimal]


def minor_unit_exponent(currency: str) -> int:
    """Number of decimal digits of the currency's minor unit (cents -> 2)."""
    return _MINOR_UNIT_EXPONENTS.get((currency or "").upper(), 2)


def to_decimal(value: Number) -> Decimal:
    """Exact Decimal from user input; floats go through str() to drop binary noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, float):
        return Decimal(str(value))
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Not a number: {value!r}") from e


def round_to_minor(amount: Decimal, currency: str, rule: RoundingRule = RoundingRule.NEAREST) -> int:
    exp = minor_unit_exponent(currency)
    scaled = amount.scaleb(exp)
    return int(scaled.quantize(Decimal("1"), rounding=_DECIMAL_ROUNDING[RoundingRule(rule)]))


@dataclass(frozen=True)
class Money:
    """Amount held as an integer count of minor units of `currency`."""

    minor: int
    currency: str = "USD"

    def __post_init__(self):
        if not isinstance(self.minor, int) or isinstance(self.minor, bool):
            raise TypeError(f"Money.minor must be int, got {type(self.minor).__name__}")
        object.__setattr__(self, "currency", self.currency.upper())

    @classmethod
    def zero(cls, currency: str) -> "Money":
        return cls(0, currency)

    @classmethod
    def from_decimal(cls, amount: Decimal, currency: str, rule: RoundingRule = RoundingRule.NEAREST) -> "Money":
        if not amount.is_finite():
            raise ValueError(f"Amount is not finite: {amount}")
        return cls(round_to_minor(amount, currency, rule), currency)

    @classmethod
    def parse(cls, value: Number, currency: str, rule: RoundingRule = RoundingRule.NEAREST) -> "Money":
        """Boundary conversion from caller input (e.g. "12.50", 12.5) to Money."""
        return cls.from_decimal(to_decimal(value), currency, rule)

    @property
    def exponent(self) -> int:
        return minor_unit_exponent(self.currency)

    def to_decimal(self) -> Decimal:
        return Decimal(self.minor).scaleb(-self.exponent)

    def is_negative(self) -> bool:
        return self.minor < 0

    def _check_currency(self, other: "Money") -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Cannot combine Money with {type(other).__name__}")
        if other.currency != self.currency:
            raise ValueError(f"Currency mismatch: {self.currency} vs {other.currency}")

    def __add__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.minor + other.minor, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check_currency(other)
        return Money(self.minor - other.minor, self.currency)

    def __lt__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.minor < other.minor

    def __le__(self, other: "Money") -> bool:
        self._check_currency(other)
        return self.minor <= other.minor

    def multiply(self, factor: Number, rule: RoundingRule = RoundingRule.NEAREST) -> "Money":
        exact = Decimal(self.minor) * to_decimal(factor)
        return Money(int(exact.quantize(Decimal("1"), rounding=_DECIMAL_ROUNDING[RoundingRule(rule)])), self.currency)

    def scale(self, percent: Number, rule: RoundingRule = RoundingRule.NEAREST) -> "Money":
        """`percent`% of this amount, rounded to a whole minor unit."""
        return self.multiply(to_decimal(percent) / Decimal("100"), rule)

    def __str__(self) -> str:
        return f"{self.to_decimal():.{self.exponent}f}"
