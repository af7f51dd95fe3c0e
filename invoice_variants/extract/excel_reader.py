from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import List, Tuple

from openpyxl import load_workbook

from invoice_variants.config import DEFAULT_CURRENCY
from invoice_variants.models import BaseInvoiceItem, NormalizedInvoice
from invoice_variants.money import Money


def _norm(s: str) -> str:
    return "".join(ch for ch in str(s).lower() if ch.isalnum())


# normalized header -> field
REQUIRED = {
    "name": ["description", "item", "name", "product", "service"],
    "qty": ["quantity", "qty", "qtty", "count", "units"],
    "price": ["unitprice", "price", "unitcost", "cost", "rate"],
    "unit": ["unit", "uom", "measure", "measurement"],
    "amount": ["amount", "total", "linetotal"],
}

_STOP_LABELS = ("subtotal", "total", "tax", "vat", "grandtotal")


def _to_decimal(v) -> Decimal:
    if v is None:
        raise InvalidOperation()
    if isinstance(v, (int, float)):
        return Decimal(str(v))
    s = str(v).replace(" ", "").replace(",", "")
    s = "".join(ch for ch in s if ch.isdigit() or ch in ".-")
    return Decimal(s)


def _find_header(ws) -> Tuple[int, dict]:
    for r in range(1, min(ws.max_row, 80) + 1):
        col_map = {}
        for c in range(1, min(ws.max_column, 50) + 1):
            v = ws.cell(r, c).value
            if v is None:
                continue
            key = _norm(v)
            for field, syns in REQUIRED.items():
                if field not in col_map and key in syns:
                    col_map[field] = c
                    break

        if all(k in col_map for k in ("name", "qty")) and ("price" in col_map or "amount" in col_map):
            return r, col_map

    raise ValueError("Column headers not found in Excel. Expected Description, Quantity and Unit Price (or Amount).")


def read_base_invoice_from_excel(path: str, currency: str = DEFAULT_CURRENCY) -> Tuple[NormalizedInvoice, str]:
    wb = load_workbook(path, data_only=True)
    ws = wb.active

    header_row, col_map = _find_header(ws)
    items: List[BaseInvoiceItem] = []

    for r in range(header_row + 1, ws.max_row + 1):
        name = ws.cell(r, col_map["name"]).value
        if name is None or str(name).strip() == "":
            if len(items) > 0:
                break
            continue
        if _norm(name) in _STOP_LABELS:
            break

        try:
            qty_raw = _to_decimal(ws.cell(r, col_map["qty"]).value)
        except InvalidOperation as e:
            raise ValueError(f"Row {r}: quantity is not a number") from e
        if qty_raw != qty_raw.to_integral() or qty_raw < 1:
            raise ValueError(f"Row {r}: quantity must be a whole number >= 1, got {qty_raw}")
        qty = int(qty_raw)

        try:
            if "price" in col_map and ws.cell(r, col_map["price"]).value not in (None, ""):
                price = _to_decimal(ws.cell(r, col_map["price"]).value)
            else:
                # only a line amount: derive the unit price
                price = _to_decimal(ws.cell(r, col_map["amount"]).value) / qty
        except (InvalidOperation, KeyError) as e:
            raise ValueError(f"Row {r}: unit price is missing or not a number") from e
        if price < 0:
            raise ValueError(f"Row {r}: unit price must not be negative")

        unit = ""
        if col_map.get("unit"):
            unit = str(ws.cell(r, col_map["unit"]).value or "").strip()

        items.append(BaseInvoiceItem(
            description=str(name).strip(),
            quantity=qty,
            unit=unit,
            unit_price=Money.parse(price, currency),
        ))

    if not items:
        raise ValueError("Header row found, but no item rows below it.")

    return NormalizedInvoice(items=tuple(items)), ws.title
