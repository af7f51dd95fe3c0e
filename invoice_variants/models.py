from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from invoice_variants.money import Money, RoundingRule, to_decimal


class MarginType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class FailurePolicy(str, Enum):
    ABORT = "abort"  # one failed render fails the whole batch
    SKIP = "skip"    # failed variants are reported, the rest are merged


class PipelineState(str, Enum):
    VALIDATING = "Validating"
    GENERATING = "Generating"
    RENDERING = "Rendering"
    MERGING = "Merging"
    COMPLETED = "Completed"
    PARTIALLY_COMPLETED = "PartiallyCompleted"
    FAILED = "Failed"


@dataclass(frozen=True)
class BaseInvoiceItem:
    description: str
    quantity: int
    unit_price: Money
    unit: str = ""


@dataclass(frozen=True)
class NormalizedInvoice:
    items: Tuple[BaseInvoiceItem, ...]

    @property
    def currency(self) -> Optional[str]:
        return self.items[0].unit_price.currency if self.items else None


@dataclass
class CompanyProfile:
    name: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    currency: Optional[str] = None
    logo: Optional[str] = None            # path to an image file
    primary_color: Optional[str] = None   # "#RRGGBB"
    secondary_color: Optional[str] = None
    font_family: Optional[str] = None
    id: Optional[str] = None
    tax_id: Optional[str] = None


@dataclass
class BuyerProfile:
    name: Optional[str] = None
    address: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class InvoiceMeta:
    tax_percent: Decimal = Decimal("0")
    currency: Optional[str] = None
    invoice_number: Optional[str] = None   # numbering base; variants get a suffix
    quotation_number: Optional[str] = None
    issue_date: Optional[date] = None
    company_profile: Optional[CompanyProfile] = None
    footer_notes: Optional[str] = None
    terms: Optional[str] = None
    delivery_period: Optional[str] = None


@dataclass(frozen=True)
class PricingRule:
    margin_type: MarginType
    margin_value: Decimal
    fluctuation_range: Decimal           # +/- percent
    rounding_rule: RoundingRule = RoundingRule.NEAREST
    discount_percent: Optional[Decimal] = None
    fixed_markup: Optional[Decimal] = None


@dataclass
class GenerateVariantsPayload:
    number_of_variants: int
    margin_type: MarginType
    margin_value: Decimal
    fluctuation_range: Decimal
    base_invoice: NormalizedInvoice
    rounding_rule: RoundingRule = RoundingRule.NEAREST
    discount_percent: Optional[Decimal] = None
    fixed_markup: Optional[Decimal] = None
    invoice_meta: InvoiceMeta = field(default_factory=InvoiceMeta)
    buyer_profiles: List[BuyerProfile] = field(default_factory=list)
    logos: List[str] = field(default_factory=list)
    seed: Optional[int] = None

    @property
    def pricing_rule(self) -> PricingRule:
        return PricingRule(
            margin_type=MarginType(self.margin_type),
            margin_value=to_decimal(self.margin_value),
            fluctuation_range=to_decimal(self.fluctuation_range),
            rounding_rule=RoundingRule(self.rounding_rule),
            discount_percent=None if self.discount_percent is None else to_decimal(self.discount_percent),
            fixed_markup=None if self.fixed_markup is None else to_decimal(self.fixed_markup),
        )


@dataclass(frozen=True)
class VariantItem:
    description: str
    quantity: int
    unit_price: Money
    unit: str = ""

    @property
    def line_total(self) -> Money:
        return self.unit_price.multiply(self.quantity, RoundingRule.NEAREST)


@dataclass
class GeneratedInvoice:
    variant_index: int
    invoice_number: str
    date: date
    items: List[VariantItem]
    subtotal: Money
    tax: Money
    total: Money
    currency: str
    tax_percent: Decimal = Decimal("0")
    company_profile: Optional[CompanyProfile] = None
    buyer_profile: Optional[BuyerProfile] = None
    logo: Optional[str] = None
    quotation_number: Optional[str] = None
    footer_notes: Optional[str] = None
    terms: Optional[str] = None
    delivery_period: Optional[str] = None
    document_path: Optional[Path] = None


@dataclass
class VariantFailure:
    variant_index: Optional[int]
    stage: str                 # "render", "merge" or "cancelled"
    error: Exception

    @property
    def message(self) -> str:
        return str(self.error)


@dataclass
class GenerationResult:
    invoices: List[GeneratedInvoice]
    state: PipelineState
    merged_document_path: Optional[Path] = None
    failures: List[VariantFailure] = field(default_factory=list)
    seed: Optional[int] = None
