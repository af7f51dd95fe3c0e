from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

import fitz  # PyMuPDF

from invoice_variants.formatting import format_money
from invoice_variants.models import GeneratedInvoice
from invoice_variants.render.common import FileRenderer

PAGE_WIDTH, PAGE_HEIGHT = fitz.paper_size("a4")
MARGIN = 50
FONT = "helv"
FONT_BOLD = "hebo"
FONT_SIZE = 10
LINE_HEIGHT = FONT_SIZE * 1.4
DEFAULT_COLOR = (0.17, 0.24, 0.31)  # #2c3e50

# x of the left edge of each column; amount columns are right-aligned to the next stop
COLUMNS = [("Description", MARGIN), ("Qty", 300), ("Unit", 340), ("Unit Price", 390), ("Amount", 470)]
RIGHT_EDGE = PAGE_WIDTH - MARGIN


def _hex_to_rgb(value: Optional[str]) -> Tuple[float, float, float]:
    s = (value or "").lstrip("#")
    if len(s) != 6:
        return DEFAULT_COLOR
    try:
        return tuple(int(s[i:i + 2], 16) / 255 for i in (0, 2, 4))
    except ValueError:
        return DEFAULT_COLOR


def _fit(text: str, width: float, fontsize: float = FONT_SIZE) -> str:
    """Cut text so it fits in `width` points."""
    if fitz.get_text_length(text, fontname=FONT, fontsize=fontsize) <= width:
        return text
    while text and fitz.get_text_length(text + "...", fontname=FONT, fontsize=fontsize) > width:
        text = text[:-1]
    return text + "..."


class _Writer:
    """Keeps track of the cursor and starts a new page when the current one is full."""

    def __init__(self, doc: fitz.Document):
        self.doc = doc
        self.page = doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        self.y = MARGIN

    def ensure(self, height: float) -> None:
        if self.y + height > PAGE_HEIGHT - MARGIN:
            self.page = self.doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
            self.y = MARGIN

    def line(self, text: str, x: float = MARGIN, size: float = FONT_SIZE, bold: bool = False, color=(0, 0, 0)) -> None:
        self.ensure(LINE_HEIGHT)
        self.y += LINE_HEIGHT
        self.page.insert_text((x, self.y), text, fontname=FONT_BOLD if bold else FONT, fontsize=size, color=color)

    def right(self, text: str, right_x: float, bold: bool = False) -> None:
        font = FONT_BOLD if bold else FONT
        width = fitz.get_text_length(text, fontname=font, fontsize=FONT_SIZE)
        self.page.insert_text((right_x - width, self.y), text, fontname=font, fontsize=FONT_SIZE)

    def skip(self, height: float = LINE_HEIGHT) -> None:
        self.y += height


def _party_lines(title: str, profile) -> List[str]:
    if profile is None:
        return []
    lines = [f"{title}: {profile.name or ''}".rstrip()]
    if profile.address:
        lines.append(profile.address)
    contact = " ".join(x for x in (profile.email, profile.phone) if x)
    if contact:
        lines.append(contact)
    return lines


def render_invoice_pdf(invoice: GeneratedInvoice, output_path: str) -> None:
    company = invoice.company_profile
    color = _hex_to_rgb(company.primary_color if company else None)

    with fitz.open() as doc:
        w = _Writer(doc)

        if invoice.logo:
            if not Path(invoice.logo).exists():
                raise FileNotFoundError(f"Logo not found: {invoice.logo}")
            w.page.insert_image(fitz.Rect(RIGHT_EDGE - 120, MARGIN, RIGHT_EDGE, MARGIN + 60), filename=str(invoice.logo))

        w.line(f"INVOICE {invoice.invoice_number}", size=18, bold=True, color=color)
        w.skip(6)
        w.line(f"Date: {invoice.date.isoformat()}")
        if invoice.quotation_number:
            w.line(f"Quotation: {invoice.quotation_number}")
        w.skip()

        for text in _party_lines("From", company):
            w.line(text)
        w.skip()
        for text in _party_lines("Bill to", invoice.buyer_profile):
            w.line(text)
        w.skip()

        # goods table
        w.ensure(LINE_HEIGHT * 2)
        w.page.draw_rect(fitz.Rect(MARGIN - 4, w.y + 3, RIGHT_EDGE + 4, w.y + LINE_HEIGHT + 5), color=color, fill=color)
        w.y += LINE_HEIGHT
        for title, x in COLUMNS:
            w.page.insert_text((x, w.y), title, fontname=FONT_BOLD, fontsize=FONT_SIZE, color=(1, 1, 1))
        w.skip(4)

        for it in invoice.items:
            w.line(_fit(it.description, COLUMNS[1][1] - MARGIN - 8))
            w.right(str(it.quantity), COLUMNS[2][1] - 8)
            w.page.insert_text((COLUMNS[2][1], w.y), _fit(it.unit or "", 45), fontname=FONT, fontsize=FONT_SIZE)
            w.right(format_money(it.unit_price), COLUMNS[4][1] - 8)
            w.right(format_money(it.line_total), RIGHT_EDGE)

        w.skip()
        for label, money, bold in (
            ("Subtotal", invoice.subtotal, False),
            (f"Tax ({invoice.tax_percent.normalize():f}%)", invoice.tax, False),
            ("Total", invoice.total, True),
        ):
            w.line(label, x=COLUMNS[3][1], bold=bold)
            w.right(format_money(money), RIGHT_EDGE, bold=bold)

        w.skip()
        for label, value in (("Delivery", invoice.delivery_period), ("Terms", invoice.terms)):
            if value:
                w.line(f"{label}: {value}")
        if invoice.footer_notes:
            w.skip()
            for text in str(invoice.footer_notes).splitlines():
                w.line(text)

        doc.save(output_path)


class PdfRenderer(FileRenderer):
    """Draws the invoice directly with PyMuPDF; templates are not used."""

    suffix = ".pdf"

    def render(self, invoice: GeneratedInvoice, output_path: Path) -> None:
        render_invoice_pdf(invoice, str(output_path))
