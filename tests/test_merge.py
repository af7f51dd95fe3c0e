import fitz
import pytest
from docx import Document
from openpyxl import load_workbook

from invoice_variants.errors import MergeError
from invoice_variants.merge import merge_documents
from invoice_variants.render.docx_template import DocxRenderer
from invoice_variants.render.excel_template import ExcelRenderer
from invoice_variants.render.pdf_document import PdfRenderer

from conftest import build_invoice


def _render(renderer, n, **kwargs):
    return [renderer(build_invoice(index=i, **kwargs)) for i in range(n)]


def test_pdf_bundle_keeps_order(tmp_path):
    paths = _render(PdfRenderer(tmp_path), 3)
    out = merge_documents(paths, tmp_path / "bundle.pdf")

    with fitz.open(str(out)) as doc:
        assert doc.page_count == 3
        for i, page in enumerate(doc):
            assert f"INV-100-0{i}" in page.get_text()


def test_docx_bundle_carries_images(tmp_path, logo_png):
    paths = _render(DocxRenderer(tmp_path), 2, logo=str(logo_png))
    out = merge_documents(paths, tmp_path / "bundle.docx")

    doc = Document(str(out))
    assert len(doc.tables) == 2
    assert len(doc.inline_shapes) == 2
    text = "\n".join(p.text for p in doc.paragraphs)
    assert text.index("INV-100-00") < text.index("INV-100-01")


def test_xlsx_bundle_one_sheet_per_variant(tmp_path):
    paths = _render(ExcelRenderer(tmp_path), 2)
    wb = load_workbook(merge_documents(paths, tmp_path / "bundle.xlsx"))

    assert wb.sheetnames == ["INV-100-00", "INV-100-01"]
    assert wb["INV-100-01"]["A1"].value == "INVOICE INV-100-01"


def test_xlsx_bundle_keeps_logos(tmp_path, logo_png):
    paths = _render(ExcelRenderer(tmp_path), 2, logo=str(logo_png))
    wb = load_workbook(merge_documents(paths, tmp_path / "bundle.xlsx"))

    assert [len(ws._images) for ws in wb.worksheets] == [1, 1]


def test_nothing_to_merge(tmp_path):
    with pytest.raises(MergeError):
        merge_documents([], tmp_path / "bundle.pdf")


def test_mixed_formats(tmp_path):
    a, b = tmp_path / "a.pdf", tmp_path / "b.docx"
    a.write_bytes(b"x")
    b.write_bytes(b"x")
    with pytest.raises(MergeError):
        merge_documents([a, b], tmp_path / "bundle.pdf")


def test_unsupported_format(tmp_path):
    a = tmp_path / "a.txt"
    a.write_text("x")
    with pytest.raises(MergeError):
        merge_documents([a], tmp_path / "bundle.txt")


def test_missing_input(tmp_path):
    with pytest.raises(MergeError):
        merge_documents([tmp_path / "gone.pdf"], tmp_path / "bundle.pdf")


def test_corrupt_input_is_wrapped(tmp_path):
    bad = tmp_path / "bad.xlsx"
    bad.write_bytes(b"not a workbook")
    with pytest.raises(MergeError):
        merge_documents([bad], tmp_path / "bundle.xlsx")
