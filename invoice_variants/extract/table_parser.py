from __future__ import annotations

from decimal import Decimal
from typing import List, Optional
import re

from invoice_variants.config import DEFAULT_CURRENCY
from invoice_variants.models import BaseInvoiceItem, NormalizedInvoice
from invoice_variants.money import Money

MONEY_RE = re.compile(r"\d[\d,]*\.\d{2}\b")
INT_RE = re.compile(r"^\d+$")


def _to_decimal_en(s: str) -> Decimal:
    return Decimal(s.replace(",", ""))


def _parse_line(ln: str, currency: str) -> Optional[BaseInvoiceItem]:
    parts = [p.strip() for p in re.split(r"\s{2,}|\t+", ln) if p.strip()]
    if len(parts) < 3:
        return None

    monies = [m for p in parts[1:] for m in MONEY_RE.findall(p)]
    if not monies:
        return None
    # "... unit price   line amount": the unit price is the next-to-last figure
    price = _to_decimal_en(monies[-2] if len(monies) >= 2 else monies[-1])

    qty = None
    unit = ""
    for p in parts[1:]:
        if MONEY_RE.search(p):
            continue
        if qty is None and INT_RE.match(p):
            qty = int(p)
        elif qty is not None and not unit:
            unit = p

    if qty is None or qty < 1:
        return None

    return BaseInvoiceItem(description=parts[0], quantity=qty, unit=unit, unit_price=Money.parse(price, currency))


def parse_items_from_text(raw_text: str, currency: str = DEFAULT_CURRENCY) -> NormalizedInvoice:
    """
    Heuristic for text tables: a line is an item when its columns are
    separated by 2+ spaces or tabs and it holds a quantity and a price.
    """
    items: List[BaseInvoiceItem] = []
    for ln in (ln.strip() for ln in raw_text.splitlines()):
        if not ln:
            continue
        item = _parse_line(ln, currency)
        if item is not None:
            items.append(item)

    if not items:
        raise ValueError("No item table found in the PDF text. The document needs another template/format.")

    return NormalizedInvoice(items=tuple(items))
