from decimal import Decimal

import pytest
from PIL import Image

from invoice_variants.assembler import assemble
from invoice_variants.models import (
    BaseInvoiceItem,
    BuyerProfile,
    CompanyProfile,
    GenerateVariantsPayload,
    InvoiceMeta,
    MarginType,
    NormalizedInvoice,
    VariantItem,
)
from invoice_variants.money import Money

COMPANY = CompanyProfile(name="Acme Supplies", address="1 Main St", email="sales@acme.test", phone="555-0100", currency="USD")
BUYERS = [BuyerProfile(name="Globex"), BuyerProfile(name="Initech")]


def build_payload(
    n=3,
    items=(("Widget", 10, "5.00"),),
    margin_type=MarginType.PERCENTAGE,
    margin_value="10",
    fluctuation_range="0",
    currency="USD",
    tax_percent="0",
    invoice_number="INV-100",
    **kwargs,
):
    base = NormalizedInvoice(items=tuple(
        BaseInvoiceItem(description=d, quantity=q, unit_price=Money.parse(p, currency), unit="pcs")
        for d, q, p in items
    ))
    meta = InvoiceMeta(
        tax_percent=Decimal(tax_percent),
        currency=currency,
        invoice_number=invoice_number,
        company_profile=kwargs.pop("company_profile", COMPANY),
    )
    return GenerateVariantsPayload(
        number_of_variants=n,
        margin_type=margin_type,
        margin_value=Decimal(margin_value),
        fluctuation_range=Decimal(fluctuation_range),
        base_invoice=base,
        invoice_meta=meta,
        **kwargs,
    )


def build_invoice(items=(("Widget", 10, 550), ("Gadget", 2, 1250)), index=0, logo=None, tax_percent="0"):
    priced = [VariantItem(description=d, quantity=q, unit_price=Money(m, "USD"), unit="pcs") for d, q, m in items]
    meta = InvoiceMeta(tax_percent=Decimal(tax_percent), invoice_number="INV-100", company_profile=COMPANY, terms="Net 30")
    return assemble(index, priced, COMPANY, BUYERS[index % 2], meta, logo=logo)


@pytest.fixture
def payload_factory():
    return build_payload


@pytest.fixture
def invoice_factory():
    return build_invoice


@pytest.fixture
def logo_png(tmp_path):
    path = tmp_path / "logo.png"
    Image.new("RGB", (80, 40), "red").save(path)
    return path
