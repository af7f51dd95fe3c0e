from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from openpyxl import load_workbook
from openpyxl.drawing.image import Image as XLImage
from openpyxl.worksheet.worksheet import Worksheet

from invoice_variants.create_templates import build_excel_template
from invoice_variants.models import GeneratedInvoice, VariantItem
from invoice_variants.money import Money
from invoice_variants.render.common import (
    FileRenderer,
    classify_total_label,
    match_header,
    placeholder_values,
    replace_placeholders,
)

LOGO_PLACEHOLDER = "{{LOGO}}"
LOGO_WIDTH_PX = 150


def _number_format(money: Money) -> str:
    return "#,##0" if money.exponent == 0 else "#,##0." + "0" * money.exponent


def _set_money(ws: Worksheet, row: int, col: int, money: Money) -> None:
    cell = ws.cell(row, col)
    cell.value = float(money.to_decimal())
    cell.number_format = _number_format(money)


def _insert_logo(ws: Worksheet, anchor: str, logo: Optional[str]) -> None:
    if not logo:
        return
    if not Path(logo).exists():
        raise FileNotFoundError(f"Logo not found: {logo}")
    img = XLImage(str(logo))
    if img.width:
        img.height = round(img.height * LOGO_WIDTH_PX / img.width)
        img.width = LOGO_WIDTH_PX
    ws.add_image(img, anchor)


def _replace_placeholders(ws: Worksheet, invoice: GeneratedInvoice) -> None:
    values = placeholder_values(invoice)
    for row in ws.iter_rows():
        for cell in row:
            if not isinstance(cell.value, str):
                continue
            if LOGO_PLACEHOLDER in cell.value:
                cell.value = None
                _insert_logo(ws, cell.coordinate, invoice.logo)
                continue
            cell.value = replace_placeholders(cell.value, values)


def _find_table(ws: Worksheet) -> Tuple[int, Dict[str, int]]:
    for r in range(1, min(ws.max_row, 120) + 1):
        col_map: Dict[str, int] = {}
        for c in range(1, min(ws.max_column, 60) + 1):
            v = ws.cell(r, c).value
            if v is None:
                continue
            key = match_header(str(v))
            if key and key not in col_map:
                col_map[key] = c

        if "name" in col_map and "qty" in col_map and "price" in col_map:
            return r, col_map

    raise ValueError("Goods table not found in the Excel template (need Description / Quantity / Unit Price headers).")


def _existing_item_rows(ws: Worksheet, start_row: int, name_col: int) -> int:
    """Rows of the template's own item block: up to the first blank or totals row."""
    r = start_row
    while r <= ws.max_row:
        v = ws.cell(r, name_col).value
        if v is None or str(v).strip() == "" or classify_total_label(str(v)):
            break
        r += 1
    return r - start_row


def _write_items(ws: Worksheet, header_row: int, col_map: Dict[str, int], items: List[VariantItem]) -> int:
    start_row = header_row + 1
    existing = _existing_item_rows(ws, start_row, col_map["name"])

    if len(items) > existing:
        ws.insert_rows(start_row + existing, amount=len(items) - existing)
    elif len(items) < existing:
        ws.delete_rows(start_row + len(items), amount=existing - len(items))

    for i, it in enumerate(items):
        rr = start_row + i
        ws.cell(rr, col_map["name"]).value = it.description
        ws.cell(rr, col_map["qty"]).value = it.quantity
        if col_map.get("unit"):
            ws.cell(rr, col_map["unit"]).value = it.unit
        _set_money(ws, rr, col_map["price"], it.unit_price)
        if col_map.get("amount"):
            _set_money(ws, rr, col_map["amount"], it.line_total)

    return start_row + len(items)


def _label(ws: Worksheet, row: int, amount_col: int) -> str:
    for c in range(1, amount_col):
        v = ws.cell(row, c).value
        if isinstance(v, str) and v.strip():
            return v
    return ""


def _update_totals(ws: Worksheet, after_items_row: int, col_map: Dict[str, int], invoice: GeneratedInvoice) -> None:
    amount_col = col_map.get("amount") or col_map["price"]
    values = {"subtotal": invoice.subtotal, "tax": invoice.tax, "total": invoice.total}
    done = set()

    for r in range(after_items_row, min(ws.max_row, after_items_row + 60) + 1):
        typ = classify_total_label(_label(ws, r, amount_col))
        if typ and typ not in done:
            _set_money(ws, r, amount_col, values[typ])
            done.add(typ)


def render_invoice_xlsx(template_path: Optional[str], invoice: GeneratedInvoice, output_path: str) -> None:
    wb = load_workbook(template_path) if template_path else build_excel_template()
    ws = wb.active
    _replace_placeholders(ws, invoice)
    header_row, col_map = _find_table(ws)
    after_row = _write_items(ws, header_row, col_map, invoice.items)
    _update_totals(ws, after_row, col_map, invoice)
    wb.save(output_path)


class ExcelRenderer(FileRenderer):
    suffix = ".xlsx"

    def render(self, invoice: GeneratedInvoice, output_path: Path) -> None:
        render_invoice_xlsx(str(self.template_path) if self.template_path else None, invoice, str(output_path))
