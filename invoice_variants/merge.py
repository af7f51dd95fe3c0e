from __future__ import annotations

import io
from copy import copy, deepcopy
from pathlib import Path
from typing import List, Sequence, Union

import fitz  # PyMuPDF
from docx import Document
from docx.enum.text import WD_BREAK
from docx.oxml.ns import qn
from openpyxl import Workbook, load_workbook

from invoice_variants.errors import MergeError

PathLike = Union[str, Path]

_R_EMBED = qn("r:embed")


def _merge_pdf(paths: Sequence[Path], output_path: Path) -> None:
    with fitz.open() as merged:
        for p in paths:
            with fitz.open(str(p)) as src:
                merged.insert_pdf(src)
        merged.save(str(output_path))


def _copy_images(src_doc, dst_doc, element) -> None:
    """Re-register pictures of an appended element in the destination package."""
    for blip in element.iter(qn("a:blip")):
        old_rid = blip.get(_R_EMBED)
        if not old_rid:
            continue
        image_part = src_doc.part.related_parts[old_rid]
        new_rid, _ = dst_doc.part.get_or_add_image(io.BytesIO(image_part.blob))
        blip.set(_R_EMBED, new_rid)


def _merge_docx(paths: Sequence[Path], output_path: Path) -> None:
    merged = Document(str(paths[0]))
    body = merged.element.body
    sect_pr = body.find(qn("w:sectPr"))

    for p in paths[1:]:
        # add_paragraph keeps the section properties last
        merged.add_paragraph().add_run().add_break(WD_BREAK.PAGE)

        src = Document(str(p))
        for element in src.element.body:
            if element.tag == qn("w:sectPr"):
                continue
            new_el = deepcopy(element)
            _copy_images(src, merged, new_el)
            if sect_pr is not None:
                sect_pr.addprevious(new_el)
            else:
                body.append(new_el)

    merged.save(str(output_path))


def _sheet_title(path: Path, used: List[str]) -> str:
    # Excel limits sheet titles to 31 chars and forbids a few symbols
    base = "".join(ch for ch in path.stem if ch not in '[]:*?/\\')[:31] or "Sheet"
    title, n = base, 2
    while title in used:
        suffix = f"_{n}"
        title = base[:31 - len(suffix)] + suffix
        n += 1
    used.append(title)
    return title


def _merge_xlsx(paths: Sequence[Path], output_path: Path) -> None:
    merged = Workbook()
    merged.remove(merged.active)
    used: List[str] = []

    for p in paths:
        src_ws = load_workbook(p).active
        ws = merged.create_sheet(_sheet_title(p, used))
        for row in src_ws.iter_rows():
            for cell in row:
                target = ws.cell(row=cell.row, column=cell.column, value=cell.value)
                if cell.has_style:
                    target.font = copy(cell.font)
                    target.border = copy(cell.border)
                    target.fill = copy(cell.fill)
                    target.number_format = cell.number_format
                    target.alignment = copy(cell.alignment)
        for key, dim in src_ws.column_dimensions.items():
            if dim.width:
                ws.column_dimensions[key].width = dim.width
        for rng in src_ws.merged_cells.ranges:
            ws.merge_cells(str(rng))
        # openpyxl exposes loaded pictures only through _images
        for img in src_ws._images:
            ws.add_image(img)

    merged.save(output_path)


_MERGERS = {
    ".pdf": _merge_pdf,
    ".docx": _merge_docx,
    ".xlsx": _merge_xlsx,
}


def merge_documents(ordered_paths: Sequence[PathLike], output_path: PathLike) -> Path:
    """
    Combine rendered variant documents into one bundle, keeping the given order.
    All inputs must share one format (.pdf, .docx or .xlsx).
    """
    paths = [Path(p) for p in ordered_paths]
    if not paths:
        raise MergeError("Nothing to merge: no rendered documents")

    suffixes = {p.suffix.lower() for p in paths}
    if len(suffixes) > 1:
        raise MergeError(f"Cannot merge mixed formats: {sorted(suffixes)}")
    suffix = suffixes.pop()
    merger = _MERGERS.get(suffix)
    if merger is None:
        raise MergeError(f"Unsupported document format for merging: {suffix or '(none)'}")

    missing = [str(p) for p in paths if not p.exists()]
    if missing:
        raise MergeError(f"Rendered documents not found: {missing}")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        merger(paths, output_path)
    except Exception as e:
        raise MergeError(f"Merging {len(paths)} {suffix} documents failed: {e}") from e
    return output_path
