import fitz
import pytest
from docx import Document
from openpyxl import load_workbook

from invoice_variants.create_templates import XLSX_HEADER_ROW, create_templates
from invoice_variants.render.common import classify_total_label, match_header, placeholder_values
from invoice_variants.render.docx_template import DocxRenderer
from invoice_variants.render.excel_template import ExcelRenderer
from invoice_variants.render.pdf_document import PdfRenderer

from conftest import build_invoice


def _doc_text(doc):
    return "\n".join(p.text for p in doc.paragraphs)


def test_header_matching():
    assert match_header("Unit Price") == "price"
    assert match_header("Qty") == "qty"
    assert match_header("UoM") == "unit"
    assert match_header("Description") == "name"
    assert match_header("Line total") == "amount"
    assert match_header("Notes") is None


def test_total_labels():
    assert classify_total_label("Sub-total") == "subtotal"
    assert classify_total_label("Tax (8.25%)") == "tax"
    assert classify_total_label("TOTAL") == "total"
    assert classify_total_label("Widget") is None


def test_placeholders():
    values = placeholder_values(build_invoice(tax_percent="8.25"))
    assert values["{{INVOICE_NUMBER}}"] == "INV-100-00"
    assert values["{{BUYER_NAME}}"] == "Globex"
    assert values["{{TAX_PERCENT}}"] == "8.25"
    assert values["{{SUBTOTAL}}"] == "$80.00"


def test_docx_default_layout(tmp_path):
    inv = build_invoice()
    path = DocxRenderer(tmp_path)(inv)

    assert path == tmp_path / "INV-100-00.docx"
    doc = Document(str(path))
    text = _doc_text(doc)
    assert "INVOICE INV-100-00" in text
    assert "Bill to: Globex" in text
    assert "Terms: Net 30" in text
    assert "{{" not in text

    rows = [[c.text for c in row.cells] for row in doc.tables[0].rows]
    # header, 2 items, subtotal, tax, total
    assert len(rows) == 6
    assert rows[1] == ["1", "Widget", "10", "pcs", "$5.50", "$55.00"]
    assert rows[2] == ["2", "Gadget", "2", "pcs", "$12.50", "$25.00"]
    assert rows[3][5] == "$80.00"
    assert rows[4][5] == "$0.00"
    assert rows[5][5] == "$80.00"
    assert all("Sample item" not in r for r in rows)


def test_docx_item_named_like_a_total(tmp_path):
    inv = build_invoice(items=(("Total care kit", 1, 1000),), tax_percent="10")
    doc = Document(str(DocxRenderer(tmp_path)(inv)))
    rows = [[c.text for c in row.cells] for row in doc.tables[0].rows]

    assert rows[1][1] == "Total care kit"
    assert rows[1][5] == "$10.00"
    assert [r[5] for r in rows[2:]] == ["$10.00", "$1.00", "$11.00"]


def test_docx_from_template_file_with_logo(tmp_path, logo_png):
    docx_tpl, _ = create_templates(tmp_path / "templates")
    path = DocxRenderer(tmp_path / "out", docx_tpl)(build_invoice(logo=str(logo_png)))

    assert len(Document(str(path)).inline_shapes) == 1


def test_docx_missing_logo(tmp_path):
    with pytest.raises(FileNotFoundError):
        DocxRenderer(tmp_path)(build_invoice(logo=str(tmp_path / "nope.png")))


def test_xlsx_default_layout(tmp_path):
    path = ExcelRenderer(tmp_path)(build_invoice())
    ws = load_workbook(path).active

    first = XLSX_HEADER_ROW + 1
    assert ws.cell(1, 1).value == "INVOICE INV-100-00"
    assert [ws.cell(first, c).value for c in range(1, 6)] == ["Widget", 10, "pcs", 5.5, 55.0]
    assert [ws.cell(first + 1, c).value for c in range(1, 6)] == ["Gadget", 2, "pcs", 12.5, 25.0]
    assert ws.cell(first + 2, 1).value == "Subtotal"
    assert ws.cell(first + 2, 5).value == 80.0
    assert ws.cell(first + 3, 5).value == 0.0
    assert ws.cell(first + 4, 1).value == "Total"
    assert ws.cell(first + 4, 5).value == 80.0
    assert ws.cell(first, 4).number_format == "#,##0.00"


def test_xlsx_single_item(tmp_path):
    path = ExcelRenderer(tmp_path)(build_invoice(items=(("Widget", 1, 999),)))
    ws = load_workbook(path).active

    first = XLSX_HEADER_ROW + 1
    assert ws.cell(first, 1).value == "Widget"
    assert ws.cell(first + 1, 1).value == "Subtotal"
    assert ws.cell(first + 1, 5).value == 9.99


def test_xlsx_logo(tmp_path, logo_png):
    ws = load_workbook(ExcelRenderer(tmp_path)(build_invoice(logo=str(logo_png)))).active
    assert len(ws._images) == 1
    assert ws["D1"].value is None

    plain = load_workbook(ExcelRenderer(tmp_path / "plain")(build_invoice())).active
    assert plain._images == []
    assert plain["D1"].value is None


def test_xlsx_missing_logo(tmp_path):
    with pytest.raises(FileNotFoundError):
        ExcelRenderer(tmp_path)(build_invoice(logo=str(tmp_path / "nope.png")))


def test_pdf_document(tmp_path):
    path = PdfRenderer(tmp_path)(build_invoice(tax_percent="10"))

    with fitz.open(str(path)) as doc:
        assert doc.page_count == 1
        text = doc[0].get_text()
    for expected in ("INVOICE INV-100-00", "Globex", "Widget", "$5.50", "$55.00", "$8.00", "$88.00"):
        assert expected in text


def test_pdf_long_invoice_paginates(tmp_path, logo_png):
    items = tuple((f"Part {i}", 1, 100 + i) for i in range(80))
    path = PdfRenderer(tmp_path)(build_invoice(items=items, logo=str(logo_png)))

    with fitz.open(str(path)) as doc:
        assert doc.page_count >= 2
