import fitz
import pytest
from openpyxl import Workbook

from invoice_variants.extract.excel_reader import read_base_invoice_from_excel
from invoice_variants.extract.pdf_reader import extract_text_from_pdf
from invoice_variants.extract.table_parser import parse_items_from_text
from invoice_variants.money import Money


def _workbook(tmp_path, rows, title="Quote"):
    wb = Workbook()
    ws = wb.active
    ws.title = title
    ws["A1"] = "Quotation 42"
    for r, row in enumerate(rows, start=3):
        for c, v in enumerate(row, start=1):
            ws.cell(r, c).value = v
    path = tmp_path / "base.xlsx"
    wb.save(path)
    return path


HEADERS = ["Description", "Qty", "Unit", "Unit Price", "Amount"]


def test_excel_items(tmp_path):
    path = _workbook(tmp_path, [
        HEADERS,
        ["Widget", 10, "pcs", 5, 50],
        ["Gadget", 2, None, "1,250.00", 2500],
        ["Total", None, None, None, 2550],
    ])

    invoice, sheet = read_base_invoice_from_excel(str(path))

    assert sheet == "Quote"
    assert [it.description for it in invoice.items] == ["Widget", "Gadget"]
    assert [it.quantity for it in invoice.items] == [10, 2]
    assert [it.unit_price for it in invoice.items] == [Money(500, "USD"), Money(125000, "USD")]
    assert invoice.items[1].unit == ""


def test_excel_amount_only_and_currency(tmp_path):
    path = _workbook(tmp_path, [
        ["Item", "Quantity", "Amount"],
        ["Bolt", 4, 10],
    ])
    invoice, _ = read_base_invoice_from_excel(str(path), currency="EUR")
    assert invoice.items[0].unit_price == Money(250, "EUR")


def test_excel_fractional_quantity(tmp_path):
    path = _workbook(tmp_path, [HEADERS, ["Widget", 2.5, "kg", 5, 12.5]])
    with pytest.raises(ValueError, match="whole number"):
        read_base_invoice_from_excel(str(path))


def test_excel_without_headers(tmp_path):
    path = _workbook(tmp_path, [["foo", "bar"], ["1", "2"]])
    with pytest.raises(ValueError, match="headers not found"):
        read_base_invoice_from_excel(str(path))


def test_text_table():
    text = "\n".join([
        "Quotation 42",
        "Date  2026-01-05  Ref",
        "Widget  10  pcs  5.00  50.00",
        "Gadget\t2\t1,250.00\t2,500.00",
        "Total  2,550.00",
    ])
    invoice = parse_items_from_text(text)

    assert [(it.description, it.quantity, it.unit) for it in invoice.items] == [("Widget", 10, "pcs"), ("Gadget", 2, "")]
    assert [it.unit_price for it in invoice.items] == [Money(500, "USD"), Money(125000, "USD")]


def test_text_without_table():
    with pytest.raises(ValueError):
        parse_items_from_text("Dear customer,\nthank you for your order.")


def test_pdf_digital_text(tmp_path):
    path = tmp_path / "base.pdf"
    with fitz.open() as doc:
        page = doc.new_page()
        for i in range(12):
            page.insert_text((50, 60 + 20 * i), f"Line {i} of a digital invoice with searchable text")
        doc.save(str(path))

    text = extract_text_from_pdf(str(path))
    assert "Line 11 of a digital invoice" in text
