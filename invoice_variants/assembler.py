from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import List, Optional, Sequence

from invoice_variants.config import MAX_VARIANTS
from invoice_variants.models import (
    BuyerProfile,
    CompanyProfile,
    GeneratedInvoice,
    InvoiceMeta,
    VariantItem,
)
from invoice_variants.money import Money, RoundingRule

DEFAULT_NUMBER_BASE = "INV"


def suffix_width(max_variants: int = MAX_VARIANTS) -> int:
    """Digits needed so every suffix of a full batch has the same length."""
    return len(str(max(max_variants - 1, 0)))


def invoice_number_for(base: str, variant_index: int, width: int) -> str:
    """'INV-100' + variant 0 -> 'INV-100-000' (width 3). Pure function of the index."""
    return f"{base}-{variant_index:0{width}d}"


def allocate_invoice_numbers(base: Optional[str], count: int, width: int) -> List[str]:
    base = base or DEFAULT_NUMBER_BASE
    return [invoice_number_for(base, i, width) for i in range(count)]


def compute_totals(items: Sequence[VariantItem], tax_percent, currency: str):
    """(subtotal, tax, total); line totals are rounded one by one before summing."""
    subtotal = Money.zero(currency)
    for it in items:
        subtotal = subtotal + it.line_total
    tax = subtotal.scale(tax_percent, RoundingRule.NEAREST)
    return subtotal, tax, subtotal + tax


def assemble(
    variant_index: int,
    priced_items: Sequence[VariantItem],
    company_profile: Optional[CompanyProfile],
    buyer_profile: Optional[BuyerProfile],
    meta: InvoiceMeta,
    *,
    invoice_number: Optional[str] = None,
    issue_date: Optional[date] = None,
    logo: Optional[str] = None,
) -> GeneratedInvoice:
    if not priced_items:
        raise ValueError("Cannot assemble an invoice without items")

    currency = priced_items[0].unit_price.currency
    if invoice_number is None:
        invoice_number = invoice_number_for(meta.invoice_number or DEFAULT_NUMBER_BASE, variant_index, suffix_width())

    if company_profile is not None and logo:
        company_profile = replace(company_profile, logo=logo)

    subtotal, tax, total = compute_totals(priced_items, meta.tax_percent, currency)

    return GeneratedInvoice(
        variant_index=variant_index,
        invoice_number=invoice_number,
        date=issue_date or meta.issue_date or date.today(),
        items=list(priced_items),
        subtotal=subtotal,
        tax=tax,
        total=total,
        currency=currency,
        tax_percent=meta.tax_percent,
        company_profile=company_profile,
        buyer_profile=buyer_profile,
        logo=logo or (company_profile.logo if company_profile else None),
        quotation_number=meta.quotation_number,
        footer_notes=meta.footer_notes,
        terms=meta.terms,
        delivery_period=meta.delivery_period,
    )
