from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Union

from invoice_variants.formatting import format_money
from invoice_variants.models import GeneratedInvoice


def _text(value) -> str:
    return "" if value is None else str(value)


def placeholder_values(invoice: GeneratedInvoice) -> Dict[str, str]:
    """Every {{PLACEHOLDER}} a template may use, already formatted for display."""
    company = invoice.company_profile
    buyer = invoice.buyer_profile
    return {
        "{{COMPANY_NAME}}": _text(company.name if company else None),
        "{{COMPANY_ADDRESS}}": _text(company.address if company else None),
        "{{COMPANY_EMAIL}}": _text(company.email if company else None),
        "{{COMPANY_PHONE}}": _text(company.phone if company else None),
        "{{COMPANY_TAX_ID}}": _text(company.tax_id if company else None),
        "{{BUYER_NAME}}": _text(buyer.name if buyer else None),
        "{{BUYER_ADDRESS}}": _text(buyer.address if buyer else None),
        "{{BUYER_EMAIL}}": _text(buyer.email if buyer else None),
        "{{BUYER_PHONE}}": _text(buyer.phone if buyer else None),
        "{{INVOICE_NUMBER}}": invoice.invoice_number,
        "{{QUOTATION_NUMBER}}": _text(invoice.quotation_number),
        "{{DATE}}": invoice.date.isoformat(),
        "{{CURRENCY}}": invoice.currency,
        "{{SUBTOTAL}}": format_money(invoice.subtotal),
        "{{TAX_PERCENT}}": f"{invoice.tax_percent.normalize():f}",
        "{{TAX}}": format_money(invoice.tax),
        "{{TOTAL}}": format_money(invoice.total),
        "{{FOOTER_NOTES}}": _text(invoice.footer_notes),
        "{{TERMS}}": _text(invoice.terms),
        "{{DELIVERY_PERIOD}}": _text(invoice.delivery_period),
    }


def replace_placeholders(text: str, values: Dict[str, str]) -> str:
    if "{{" not in text or "}}" not in text:
        return text
    for ph, v in values.items():
        text = text.replace(ph, v)
    return text


def safe_file_stem(name: str) -> str:
    return "".join(ch for ch in name if ch.isalnum() or ch in " _-").strip().replace(" ", "_") or "invoice"


class FileRenderer:
    """
    Renders one GeneratedInvoice into `output_dir/<invoice number><suffix>`.

    Instances are plain callables, so they satisfy the pipeline's
    `render(invoice) -> path` contract.
    """

    suffix = ""

    def __init__(self, output_dir: Union[str, Path], template_path: Optional[Union[str, Path]] = None):
        self.output_dir = Path(output_dir)
        self.template_path = Path(template_path) if template_path else None

    def output_path(self, invoice: GeneratedInvoice) -> Path:
        return self.output_dir / f"{safe_file_stem(invoice.invoice_number)}{self.suffix}"

    def render(self, invoice: GeneratedInvoice, output_path: Path) -> None:
        raise NotImplementedError

    def __call__(self, invoice: GeneratedInvoice) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        out = self.output_path(invoice)
        self.render(invoice, out)
        return out


# Goods-table header synonyms, checked in this order so that
# "Unit price" is a price column and not a unit column.
HEADER_SYNONYMS = (
    ("price", ("unit price", "unitprice", "price", "unit cost", "cost", "rate")),
    ("amount", ("amount", "line total", "total", "sum")),
    ("qty", ("quantity", "qty", "qtty", "count", "units")),
    ("unit", ("unit", "uom", "measure")),
    ("name", ("description", "item", "product", "service", "name")),
)


def normalize_text(s: str) -> str:
    """Lowercase + collapse spaces + strip."""
    s = (s or "").replace("\u00a0", " ")
    return " ".join(s.split()).lower()


def match_header(text: str) -> Optional[str]:
    t = normalize_text(text)
    if not t:
        return None
    for key, syns in HEADER_SYNONYMS:
        if any(syn in t for syn in syns):
            return key
    return None


def classify_total_label(text: str) -> Optional[str]:
    """'subtotal', 'tax', 'total' or None for a totals-row label."""
    t = normalize_text(text).replace("-", "")
    if not t:
        return None
    # "subtotal" contains "total", check it first
    if "subtotal" in t or t.startswith("net"):
        return "subtotal"
    if "tax" in t or "vat" in t or "gst" in t:
        return "tax"
    if "total" in t or "amount due" in t:
        return "total"
    return None
