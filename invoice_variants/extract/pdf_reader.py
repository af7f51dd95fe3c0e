from __future__ import annotations

from pathlib import Path
from typing import Optional
import io

import fitz  # PyMuPDF
import pytesseract
from PIL import Image

from invoice_variants.config import TESSERACT_CANDIDATES

# below this many characters of embedded text the PDF is treated as a scan
MIN_TEXT_LENGTH = 200


def configure_tesseract() -> Optional[Path]:
    for p in TESSERACT_CANDIDATES:
        if p.exists():
            pytesseract.pytesseract.tesseract_cmd = str(p)
            return p
    return None


def extract_text_from_pdf(pdf_path: str, ocr_lang: str = "eng") -> str:
    with fitz.open(pdf_path) as doc:
        # 1) digital text
        text = "\n".join(page.get_text("text") for page in doc).strip()
        if len(text) >= MIN_TEXT_LENGTH:
            return text

        # 2) OCR fallback
        if configure_tesseract() is None:
            raise RuntimeError(
                "The PDF looks like a scan and needs OCR, but no tesseract binary was found. "
                "Install Tesseract or set TESSERACT_CMD."
            )

        ocr_parts = []
        for page in doc:
            pix = page.get_pixmap(dpi=300)
            img = Image.open(io.BytesIO(pix.tobytes("png")))
            ocr_parts.append(pytesseract.image_to_string(img, lang=ocr_lang))

        return "\n".join(ocr_parts)
