"""
Creates sample invoice templates in assets/templates/.
Run from the project root: python -m invoice_variants.create_templates

The same builders give the renderers their default layout when no
template file is supplied.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from openpyxl import Workbook
from openpyxl.styles import Font

from invoice_variants.config import TEMPLATES_DIR

DOCX_HEADERS = ["#", "Description", "Quantity", "Unit", "Unit Price", "Amount"]
XLSX_HEADERS = ["Description", "Quantity", "Unit", "Unit Price", "Amount"]

# Row where the goods table header sits in the Excel template
XLSX_HEADER_ROW = 12


def build_docx_template() -> Document:
    doc = Document()
    doc.add_paragraph("{{LOGO}}")
    title = doc.add_paragraph("INVOICE {{INVOICE_NUMBER}}")
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER
    doc.add_paragraph("Date: {{DATE}}")
    doc.add_paragraph()
    doc.add_paragraph("From: {{COMPANY_NAME}}")
    doc.add_paragraph("{{COMPANY_ADDRESS}}")
    doc.add_paragraph("{{COMPANY_EMAIL}} {{COMPANY_PHONE}}")
    doc.add_paragraph()
    doc.add_paragraph("Bill to: {{BUYER_NAME}}")
    doc.add_paragraph("{{BUYER_ADDRESS}}")
    doc.add_paragraph("{{BUYER_EMAIL}} {{BUYER_PHONE}}")
    doc.add_paragraph()

    # header + sample row + stale row + totals
    table = doc.add_table(rows=6, cols=len(DOCX_HEADERS))
    table.style = "Table Grid"
    for i, text in enumerate(DOCX_HEADERS):
        table.rows[0].cells[i].text = text
    for i, text in enumerate(["1", "Sample item", "1", "pcs", "$100.00", "$100.00"]):
        table.rows[1].cells[i].text = text
    # stale row, removed on render
    for i in range(len(DOCX_HEADERS)):
        table.rows[2].cells[i].text = ""
    table.rows[3].cells[1].text = "Subtotal"
    table.rows[3].cells[5].text = "{{SUBTOTAL}}"
    table.rows[4].cells[1].text = "Tax ({{TAX_PERCENT}}%)"
    table.rows[4].cells[5].text = "{{TAX}}"
    table.rows[5].cells[1].text = "Total"
    table.rows[5].cells[5].text = "{{TOTAL}}"

    doc.add_paragraph()
    doc.add_paragraph("Delivery: {{DELIVERY_PERIOD}}")
    doc.add_paragraph("Terms: {{TERMS}}")
    doc.add_paragraph("{{FOOTER_NOTES}}")
    return doc


def build_excel_template() -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = "Invoice"

    ws["A1"] = "INVOICE {{INVOICE_NUMBER}}"
    ws["A1"].font = Font(bold=True, size=16)
    ws["A2"] = "Date: {{DATE}}"
    ws["D1"] = "{{LOGO}}"
    ws["A4"] = "From: {{COMPANY_NAME}}"
    ws["A5"] = "{{COMPANY_ADDRESS}}"
    ws["A6"] = "{{COMPANY_EMAIL}} {{COMPANY_PHONE}}"
    ws["A8"] = "Bill to: {{BUYER_NAME}}"
    ws["A9"] = "{{BUYER_ADDRESS}}"
    ws["A10"] = "{{BUYER_EMAIL}} {{BUYER_PHONE}}"

    for c, h in enumerate(XLSX_HEADERS, start=1):
        ws.cell(XLSX_HEADER_ROW, c).value = h
        ws.cell(XLSX_HEADER_ROW, c).font = Font(bold=True)
    sample = XLSX_HEADER_ROW + 1
    for c, v in enumerate(["Sample item", 1, "pcs", 100.0, 100.0], start=1):
        ws.cell(sample, c).value = v
    ws.cell(sample + 1, 1).value = "Subtotal"
    ws.cell(sample + 2, 1).value = "Tax ({{TAX_PERCENT}}%)"
    ws.cell(sample + 3, 1).value = "Total"
    ws.cell(sample + 3, 1).font = Font(bold=True)

    ws.cell(sample + 5, 1).value = "Delivery: {{DELIVERY_PERIOD}}"
    ws.cell(sample + 6, 1).value = "Terms: {{TERMS}}"
    ws.cell(sample + 7, 1).value = "{{FOOTER_NOTES}}"

    ws.column_dimensions["A"].width = 40
    for col in "BCDE":
        ws.column_dimensions[col].width = 14
    return wb


def create_docx_template(templates_dir: Optional[Path] = None) -> Path:
    templates_dir = templates_dir or TEMPLATES_DIR
    templates_dir.mkdir(parents=True, exist_ok=True)
    out = templates_dir / "template_invoice.docx"
    build_docx_template().save(out)
    return out


def create_excel_template(templates_dir: Optional[Path] = None) -> Path:
    templates_dir = templates_dir or TEMPLATES_DIR
    templates_dir.mkdir(parents=True, exist_ok=True)
    out = templates_dir / "template_invoice.xlsx"
    build_excel_template().save(out)
    return out


def create_templates(templates_dir: Optional[Path] = None) -> Tuple[Path, Path]:
    return create_docx_template(templates_dir), create_excel_template(templates_dir)


def main():
    print("Creating sample templates in", TEMPLATES_DIR)
    p1, p2 = create_templates()
    print("Created:", p1, p2)


if __name__ == "__main__":
    main()
