from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Dict, List, Optional, Tuple
import re

from docx import Document
from docx.shared import Cm
from docx.table import Table, _Cell
from docx.text.paragraph import Paragraph

from invoice_variants.create_templates import build_docx_template
from invoice_variants.formatting import format_money
from invoice_variants.models import GeneratedInvoice, VariantItem
from invoice_variants.render.common import (
    FileRenderer,
    classify_total_label,
    match_header,
    normalize_text,
    placeholder_values,
    replace_placeholders,
)

LOGO_PLACEHOLDER = "{{LOGO}}"
LOGO_WIDTH = Cm(4)


# ---------------------------
# 1) Safe text set in paragraph/cell
# ---------------------------

def _set_paragraph_text_preserve_runs(p: Paragraph, new_text: str) -> None:
    """
    Replace paragraph text while preserving formatting as much as possible:
    all runs are cleared and the text goes into the first one.
    """
    if not p.runs:
        p.add_run(new_text)
        return

    for r in p.runs:
        r.text = ""
    p.runs[0].text = new_text


def _set_cell_text_preserve(cell: _Cell, new_text: str) -> None:
    """Update the first paragraph's runs instead of assigning cell.text, which resets formatting."""
    if cell.paragraphs:
        _set_paragraph_text_preserve_runs(cell.paragraphs[0], new_text)
        for extra_p in cell.paragraphs[1:]:
            _set_paragraph_text_preserve_runs(extra_p, "")
    else:
        p = cell.add_paragraph()
        _set_paragraph_text_preserve_runs(p, new_text)


# ---------------------------
# 2) Placeholders and logo
# ---------------------------

def _iter_paragraphs(doc: Document):
    yield from doc.paragraphs
    for t in doc.tables:
        for row in t.rows:
            for cell in row.cells:
                yield from cell.paragraphs


def _insert_logo(p: Paragraph, logo: Optional[str]) -> None:
    _set_paragraph_text_preserve_runs(p, "")
    if not logo:
        return
    if not Path(logo).exists():
        raise FileNotFoundError(f"Logo not found: {logo}")
    p.runs[0].add_picture(str(logo), width=LOGO_WIDTH)


def _replace_placeholders_in_doc(doc: Document, invoice: GeneratedInvoice) -> None:
    values = placeholder_values(invoice)
    for p in _iter_paragraphs(doc):
        if not p.runs:
            continue
        full = "".join(r.text for r in p.runs)
        if LOGO_PLACEHOLDER in full:
            _insert_logo(p, invoice.logo)
            continue
        replaced = replace_placeholders(full, values)
        if replaced != full:
            _set_paragraph_text_preserve_runs(p, replaced)


# ---------------------------
# 3) Table/header detection
# ---------------------------

def _find_header_row_and_colmap(table: Table, max_scan_rows: int = 5) -> Tuple[int, Dict[str, int]]:
    """
    Scan the first rows for the goods table header; the column map may be
    spread over several header rows. Returns (last header row index, col_map).
    """
    scan_rows = min(max_scan_rows, len(table.rows))
    col_map: Dict[str, int] = {}
    header_rows_found: List[int] = []

    for r in range(scan_rows):
        for c_idx, cell in enumerate(table.rows[r].cells):
            key = match_header(cell.text)
            if key and key not in col_map:
                col_map[key] = c_idx
                header_rows_found.append(r)

        # minimal required: name, qty, and at least one of price/amount
        if "name" in col_map and "qty" in col_map and ("price" in col_map or "amount" in col_map):
            return max(header_rows_found), col_map

    raise ValueError(
        "Goods table not found: missing column headers "
        "(need at least description, quantity and price or amount)."
    )


def _find_goods_table(doc: Document) -> Tuple[Table, int, Dict[str, int]]:
    for t in doc.tables:
        try:
            header_end, col_map = _find_header_row_and_colmap(t)
            return t, header_end, col_map
        except ValueError:
            continue

    raise ValueError(
        "No goods table in the document. One of the tables needs column headers "
        "such as Description / Quantity / Unit Price / Amount."
    )


# ---------------------------
# 4) Totals detection
# ---------------------------

def _row_label(cells: List[_Cell], amount_col: Optional[int]) -> str:
    for idx, cell in enumerate(cells):
        if idx == amount_col:
            continue
        if cell.text.strip():
            return cell.text
    return ""


def _find_total_rows(table: Table, start_row: int, amount_col: Optional[int]) -> Dict[str, int]:
    """type -> row index of its first occurrence at or after start_row."""
    found: Dict[str, int] = {}
    for i in range(start_row, len(table.rows)):
        row_type = classify_total_label(_row_label(table.rows[i].cells, amount_col))
        if row_type and row_type not in found:
            found[row_type] = i
    return found


# ---------------------------
# 5) Row deletion / cloning
# ---------------------------

def _delete_rows(table: Table, indices: List[int]) -> None:
    for i in sorted(set(indices), reverse=True):
        if 0 <= i < len(table.rows):
            table._tbl.remove(table.rows[i]._tr)


def _clone_row_before(table: Table, src_row_idx: int, target_tr) -> None:
    new_tr = deepcopy(table.rows[src_row_idx]._tr)
    if target_tr is None:
        table._tbl.append(new_tr)
    else:
        target_tr.addprevious(new_tr)


def _fill_row_cells(row_cells: List[_Cell], col_map: Dict[str, int], item_no: int, it: VariantItem) -> None:
    # a leading "#" column (empty or digits in the sample row) gets the row number
    name_col = col_map.get("name")
    if name_col is not None and name_col > 0:
        first_cell_txt = normalize_text(row_cells[0].text)
        if first_cell_txt == "" or re.fullmatch(r"\d+", first_cell_txt):
            _set_cell_text_preserve(row_cells[0], str(item_no))

    if "name" in col_map:
        _set_cell_text_preserve(row_cells[col_map["name"]], it.description)
    if "qty" in col_map:
        _set_cell_text_preserve(row_cells[col_map["qty"]], str(it.quantity))
    if "unit" in col_map:
        _set_cell_text_preserve(row_cells[col_map["unit"]], it.unit or "")
    if "price" in col_map:
        _set_cell_text_preserve(row_cells[col_map["price"]], format_money(it.unit_price))
    if "amount" in col_map:
        _set_cell_text_preserve(row_cells[col_map["amount"]], format_money(it.line_total))


def _update_totals(table: Table, start_row: int, amount_col: Optional[int], invoice: GeneratedInvoice) -> None:
    if amount_col is None:
        return
    values = {"subtotal": invoice.subtotal, "tax": invoice.tax, "total": invoice.total}
    for typ, idx in _find_total_rows(table, start_row, amount_col).items():
        row = table.rows[idx]
        if amount_col < len(row.cells):
            _set_cell_text_preserve(row.cells[amount_col], format_money(values[typ]))


# ---------------------------
# 6) Main render function
# ---------------------------

def render_invoice_docx(template_path: Optional[str], invoice: GeneratedInvoice, output_path: str) -> None:
    """
    1) load the template (or the built-in layout)
    2) replace placeholders, insert the logo
    3) find the goods table and its sample row
    4) drop stale rows between the sample row and the totals
    5) clone the sample row per item, then drop the sample row
    6) write subtotal/tax/total and save
    """
    doc = Document(template_path) if template_path else build_docx_template()

    _replace_placeholders_in_doc(doc, invoice)

    table, header_end_row, col_map = _find_goods_table(doc)
    amount_col = col_map.get("amount", col_map.get("price"))

    sample_row_idx = header_end_row + 1
    if sample_row_idx >= len(table.rows):
        raise ValueError(
            "The template has goods table headers but no sample row right below them. "
            "Add at least one row showing the item formatting."
        )

    total_rows = _find_total_rows(table, sample_row_idx + 1, amount_col)
    first_total_idx = min(total_rows.values()) if total_rows else len(table.rows)
    _delete_rows(table, list(range(sample_row_idx + 1, first_total_idx)))

    target_tr = table.rows[sample_row_idx + 1]._tr if total_rows else None
    for idx, it in enumerate(invoice.items, start=1):
        _clone_row_before(table, sample_row_idx, target_tr)
        inserted_idx = sample_row_idx + idx
        _fill_row_cells(table.rows[inserted_idx].cells, col_map, idx, it)

    _delete_rows(table, [sample_row_idx])

    # item rows now sit right below the header
    _update_totals(table, sample_row_idx + len(invoice.items), amount_col, invoice)

    doc.save(output_path)


class DocxRenderer(FileRenderer):
    suffix = ".docx"

    def render(self, invoice: GeneratedInvoice, output_path: Path) -> None:
        render_invoice_docx(str(self.template_path) if self.template_path else None, invoice, str(output_path))
