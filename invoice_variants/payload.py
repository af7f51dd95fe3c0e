from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from invoice_variants.config import DEFAULT_CURRENCY, MAX_FLUCTUATION, MAX_VARIANTS
from invoice_variants.errors import ValidationError
from invoice_variants.models import (
    BaseInvoiceItem,
    BuyerProfile,
    CompanyProfile,
    GenerateVariantsPayload,
    InvoiceMeta,
    MarginType,
    NormalizedInvoice,
)
from invoice_variants.money import Money, RoundingRule, to_decimal

_COMPANY_KEYS = {
    "name": "name",
    "address": "address",
    "email": "email",
    "phone": "phone",
    "currency": "currency",
    "logo": "logo",
    "logoPath": "logo",
    "primaryColor": "primary_color",
    "secondaryColor": "secondary_color",
    "fontFamily": "font_family",
    "id": "id",
    "taxId": "tax_id",
}

_BUYER_KEYS = ("name", "address", "email", "phone")


def _decimal(data: Dict[str, Any], key: str, default: Optional[Decimal] = None) -> Optional[Decimal]:
    raw = data.get(key)
    if raw is None or raw == "":
        return default
    try:
        d = to_decimal(raw)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"'{key}' must be a number, got {raw!r}") from e
    if not d.is_finite():
        raise ValidationError(f"'{key}' must be finite, got {raw!r}")
    return d


def _int(data: Dict[str, Any], key: str) -> int:
    raw = data.get(key)
    if isinstance(raw, bool) or raw is None:
        raise ValidationError(f"'{key}' is required and must be an integer")
    try:
        value = int(raw)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"'{key}' must be an integer, got {raw!r}") from e
    if str(value) != str(raw).strip() and value != raw:
        raise ValidationError(f"'{key}' must be an integer, got {raw!r}")
    return value


def _enum(enum_cls, raw: Any, key: str):
    try:
        return enum_cls(raw)
    except ValueError as e:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"'{key}' must be one of: {allowed}; got {raw!r}") from e


def _currency(raw: Any) -> str:
    code = str(raw or DEFAULT_CURRENCY).strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValidationError(f"'currency' must be a 3-letter ISO code, got {raw!r}")
    return code


def _company(raw: Optional[Dict[str, Any]]) -> Optional[CompanyProfile]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValidationError("'companyProfile' must be an object")
    kwargs = {attr: raw[key] for key, attr in _COMPANY_KEYS.items() if raw.get(key) is not None}
    return CompanyProfile(**kwargs)


def _buyers(raw: Any) -> List[BuyerProfile]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("'buyerProfiles' must be a list")
    buyers = []
    for idx, row in enumerate(raw):
        if not isinstance(row, dict):
            raise ValidationError(f"buyerProfiles[{idx}] must be an object")
        buyers.append(BuyerProfile(**{k: row.get(k) for k in _BUYER_KEYS}))
    return buyers


def parse_items(raw_items: Any, currency: str) -> NormalizedInvoice:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("'baseInvoice.items' must be a non-empty list")

    items = []
    for idx, row in enumerate(raw_items):
        if not isinstance(row, dict):
            raise ValidationError(f"baseInvoice.items[{idx}] must be an object", item_index=idx)
        try:
            quantity = _int(row, "quantity")
            unit_price = _decimal(row, "unitPrice")
        except ValidationError as e:
            raise ValidationError(e.message, item_index=idx) from e
        if quantity < 1:
            raise ValidationError(f"quantity must be >= 1, got {quantity}", item_index=idx)
        if unit_price is None or unit_price < 0:
            raise ValidationError(f"unitPrice must be a non-negative number, got {row.get('unitPrice')!r}", item_index=idx)
        items.append(BaseInvoiceItem(
            description=str(row.get("description") or "").strip(),
            quantity=quantity,
            unit_price=Money.parse(unit_price, currency),
            unit=str(row.get("unit") or "").strip(),
        ))
    return NormalizedInvoice(items=tuple(items))


def _meta(raw: Any) -> InvoiceMeta:
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValidationError("'invoiceMeta' must be an object")

    company = _company(raw.get("companyProfile"))
    currency = _currency(raw.get("currency") or (company.currency if company else None))

    issue_date = None
    if raw.get("date"):
        try:
            issue_date = date.fromisoformat(str(raw["date"]))
        except ValueError as e:
            raise ValidationError(f"'invoiceMeta.date' must be YYYY-MM-DD, got {raw['date']!r}") from e

    tax_percent = _decimal(raw, "taxPercent", Decimal("0"))
    if tax_percent < 0:
        raise ValidationError(f"'taxPercent' must be non-negative, got {tax_percent}")

    return InvoiceMeta(
        tax_percent=tax_percent,
        currency=currency,
        invoice_number=str(raw["invoiceNumber"]).strip() if raw.get("invoiceNumber") else None,
        quotation_number=raw.get("quotationNumber"),
        issue_date=issue_date,
        company_profile=company,
        footer_notes=raw.get("footerNotes"),
        terms=raw.get("terms"),
        delivery_period=raw.get("deliveryPeriod"),
    )


def parse_payload(data: Dict[str, Any]) -> GenerateVariantsPayload:
    """Build a payload from the JSON request body (camelCase keys)."""
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    meta = _meta(data.get("invoiceMeta"))

    base = data.get("baseInvoice")
    if not isinstance(base, dict):
        raise ValidationError("'baseInvoice' is required")
    base_invoice = parse_items(base.get("items"), meta.currency)

    logos = data.get("logos") or []
    if not isinstance(logos, list) or not all(isinstance(x, str) for x in logos):
        raise ValidationError("'logos' must be a list of strings")

    seed = data.get("seed")
    if seed is not None:
        seed = _int(data, "seed")

    return GenerateVariantsPayload(
        number_of_variants=_int(data, "numberOfVariants"),
        margin_type=_enum(MarginType, data.get("marginType"), "marginType"),
        margin_value=_decimal(data, "marginValue", Decimal("0")),
        fluctuation_range=_decimal(data, "fluctuationRange", Decimal("0")),
        discount_percent=_decimal(data, "discountPercent"),
        fixed_markup=_decimal(data, "fixedMarkup"),
        rounding_rule=_enum(RoundingRule, data.get("roundingRule") or RoundingRule.NEAREST.value, "roundingRule"),
        invoice_meta=meta,
        buyer_profiles=_buyers(data.get("buyerProfiles")),
        logos=list(logos),
        base_invoice=base_invoice,
        seed=seed,
    )


def _as_decimal(value: Any, name: str) -> Decimal:
    try:
        d = to_decimal(value)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name} must be a number, got {value!r}") from e
    if not d.is_finite():
        raise ValidationError(f"{name} must be finite, got {value!r}")
    return d


def validate_payload(
    payload: GenerateVariantsPayload,
    max_variants: int = MAX_VARIANTS,
    max_fluctuation: Decimal = MAX_FLUCTUATION,
) -> None:
    """Checks that must pass before any variant is generated."""
    n = payload.number_of_variants
    if not isinstance(n, int) or isinstance(n, bool) or not 1 <= n <= max_variants:
        raise ValidationError(f"numberOfVariants must be between 1 and {max_variants}, got {n!r}")

    try:
        MarginType(payload.margin_type)
    except ValueError as e:
        raise ValidationError(f"Unknown marginType: {payload.margin_type!r}") from e
    try:
        RoundingRule(payload.rounding_rule)
    except ValueError as e:
        raise ValidationError(f"Unknown roundingRule: {payload.rounding_rule!r}") from e

    if _as_decimal(payload.margin_value, "marginValue") < 0:
        raise ValidationError(f"marginValue must be non-negative, got {payload.margin_value}")

    fr = _as_decimal(payload.fluctuation_range, "fluctuationRange")
    if not Decimal("0") <= fr <= max_fluctuation:
        raise ValidationError(f"fluctuationRange must be between 0 and {max_fluctuation}, got {fr}")

    if payload.discount_percent is not None and _as_decimal(payload.discount_percent, "discountPercent") < 0:
        raise ValidationError(f"discountPercent must be non-negative, got {payload.discount_percent}")
    if payload.fixed_markup is not None:
        _as_decimal(payload.fixed_markup, "fixedMarkup")

    if payload.base_invoice is None or not payload.base_invoice.items:
        raise ValidationError("baseInvoice.items must not be empty")

    currencies = {it.unit_price.currency for it in payload.base_invoice.items}
    if len(currencies) > 1:
        raise ValidationError(f"baseInvoice mixes currencies: {sorted(currencies)}")

    meta = payload.invoice_meta
    if meta is not None and meta.currency and meta.currency.upper() not in currencies:
        raise ValidationError(
            f"invoiceMeta.currency {meta.currency!r} does not match the items' currency {currencies.pop()!r}"
        )
