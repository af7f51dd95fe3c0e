"""
Command line entry point.

Commands:
- generate: price N variants of a base invoice, render them and merge the bundle
- templates: write the sample DOCX/XLSX templates to a folder

The failure policy for renders (--on-render-error) has no default and must be given.
"""
from __future__ import annotations

import argparse
import json
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, List, Optional

from invoice_variants.config import APP_NAME, DEFAULT_CURRENCY, PROFILES_JSON, default_output_dir
from invoice_variants.create_templates import create_templates
from invoice_variants.errors import InvoiceEngineError
from invoice_variants.extract.excel_reader import read_base_invoice_from_excel
from invoice_variants.extract.pdf_reader import extract_text_from_pdf
from invoice_variants.extract.table_parser import parse_items_from_text
from invoice_variants.formatting import format_money
from invoice_variants.logger import setup_file_logger
from invoice_variants.merge import merge_documents
from invoice_variants.models import FailurePolicy, GenerateVariantsPayload, GenerationResult, NormalizedInvoice, PipelineState
from invoice_variants.payload import parse_payload
from invoice_variants.pipeline import GenerateVariantsPipeline
from invoice_variants.profile_store import ProfileStore
from invoice_variants.render.docx_template import DocxRenderer
from invoice_variants.render.excel_template import ExcelRenderer
from invoice_variants.render.pdf_document import PdfRenderer

logger = logging.getLogger(__name__)

RENDERERS = {
    "docx": DocxRenderer,
    "xlsx": ExcelRenderer,
    "pdf": PdfRenderer,
}

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_PARTIAL = 2


def _payload_currency(data: Dict[str, Any]) -> str:
    meta = data.get("invoiceMeta") or {}
    company = meta.get("companyProfile") or {}
    return str(meta.get("currency") or company.get("currency") or DEFAULT_CURRENCY).upper()


def read_base_invoice(path: Path, currency: str) -> NormalizedInvoice:
    suffix = path.suffix.lower()
    if suffix == ".xls":
        raise ValueError(".xls is not supported. Save the file as .xlsx.")
    if suffix == ".xlsx":
        invoice, sheet = read_base_invoice_from_excel(str(path), currency=currency)
        logger.info(f"Items read from Excel: {len(invoice.items)} (sheet: {sheet})")
        return invoice
    if suffix == ".pdf":
        invoice = parse_items_from_text(extract_text_from_pdf(str(path)), currency=currency)
        logger.info(f"Items read from PDF: {len(invoice.items)}")
        return invoice
    raise ValueError(f"Unsupported base invoice format: {path.suffix or '(none)'}. Use .xlsx or .pdf.")


def _items_as_json(invoice: NormalizedInvoice) -> List[Dict[str, Any]]:
    return [
        {"description": it.description, "quantity": it.quantity, "unitPrice": str(it.unit_price), "unit": it.unit}
        for it in invoice.items
    ]


def load_payload(args: argparse.Namespace) -> GenerateVariantsPayload:
    data = json.loads(Path(args.payload).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{args.payload} must contain a JSON object")

    if args.currency:
        data.setdefault("invoiceMeta", {})["currency"] = args.currency

    if args.base_invoice:
        base = read_base_invoice(Path(args.base_invoice), _payload_currency(data))
        data["baseInvoice"] = {"items": _items_as_json(base)}

    payload = parse_payload(data)

    profiles = Path(args.profiles) if args.profiles else (PROFILES_JSON if PROFILES_JSON.exists() else None)
    if profiles is not None:
        pools = ProfileStore(profiles).load()
        meta = payload.invoice_meta
        if meta.company_profile is None:
            meta.company_profile = pools.company
        if not payload.buyer_profiles:
            payload.buyer_profiles = pools.buyers
        if not payload.logos:
            payload.logos = pools.logos

    if args.seed is not None:
        payload.seed = args.seed
    return payload


def summarize(result: GenerationResult) -> Dict[str, Any]:
    return {
        "state": result.state.value,
        "seed": result.seed,
        "mergedDocumentPath": str(result.merged_document_path) if result.merged_document_path else None,
        "invoices": [
            {
                "variantIndex": inv.variant_index,
                "invoiceNumber": inv.invoice_number,
                "buyer": inv.buyer_profile.name if inv.buyer_profile else None,
                "subtotal": format_money(inv.subtotal),
                "tax": format_money(inv.tax),
                "total": format_money(inv.total),
                "documentPath": str(inv.document_path) if inv.document_path else None,
            }
            for inv in result.invoices
        ],
        "failures": [
            {"variantIndex": f.variant_index, "stage": f.stage, "message": f.message}
            for f in result.failures
        ],
    }


def _run(pipeline: GenerateVariantsPipeline, payload: GenerateVariantsPayload) -> GenerationResult:
    # the batch runs off the main thread so Ctrl+C can cancel it cleanly
    cancel = threading.Event()
    with ThreadPoolExecutor(max_workers=1, thread_name_prefix="batch") as runner:
        fut = runner.submit(pipeline.generate, payload, cancel_event=cancel)
        try:
            return fut.result()
        except KeyboardInterrupt:
            logger.warning("Interrupted, cancelling remaining variants...")
            cancel.set()
            return fut.result()


def cmd_generate(args: argparse.Namespace) -> int:
    out_dir = Path(args.out).expanduser() if args.out else default_output_dir()
    setup_file_logger(out_dir, console=args.verbose)

    payload = load_payload(args)
    renderer = RENDERERS[args.format](out_dir, args.template)
    pipeline = GenerateVariantsPipeline(
        failure_policy=FailurePolicy(args.on_render_error),
        renderer=renderer,
        merger=None if args.no_merge else merge_documents,
        output_dir=out_dir,
        max_workers=args.workers,
    )

    logger.info(f"Generating {payload.number_of_variants} variant(s) as {args.format} into {out_dir}")
    result = _run(pipeline, payload)
    print(json.dumps(summarize(result), indent=2, ensure_ascii=False))
    return EXIT_OK if result.state is PipelineState.COMPLETED else EXIT_PARTIAL


def cmd_templates(args: argparse.Namespace) -> int:
    docx_path, xlsx_path = create_templates(Path(args.out).expanduser() if args.out else None)
    print("Created:", docx_path, xlsx_path)
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="invoice-variants", description=APP_NAME)
    sub = p.add_subparsers(dest="cmd", required=True)

    gen = sub.add_parser("generate", help="Generate, render and merge invoice variants")
    gen.add_argument("--payload", required=True, help="JSON request (numberOfVariants, marginType, ...)")
    gen.add_argument("--base-invoice", default=None, help="Read the base items from an .xlsx or .pdf instead of the payload")
    gen.add_argument("--profiles", default=None, help="JSON with company/buyers/logos pools (default: assets/profiles.json if present)")
    gen.add_argument("--format", choices=sorted(RENDERERS), default="pdf")
    gen.add_argument("--template", default=None, help="DOCX/XLSX template (ignored for pdf)")
    gen.add_argument("--out", default=None, help="Output folder")
    gen.add_argument(
        "--on-render-error",
        required=True,
        choices=[fp.value for fp in FailurePolicy],
        help="abort: one failed render fails the batch; skip: report it and merge the rest",
    )
    gen.add_argument("--seed", type=int, default=None, help="Seed for reproducible price fluctuation")
    gen.add_argument("--workers", type=int, default=None, help="Worker threads (default: INVOICE_VARIANTS_WORKERS)")
    gen.add_argument("--currency", default=None, help="Override invoiceMeta.currency")
    gen.add_argument("--no-merge", action="store_true", help="Do not build the merged bundle")
    gen.add_argument("-v", "--verbose", action="store_true", help="Also log to the console")
    gen.set_defaults(func=cmd_generate)

    tpl = sub.add_parser("templates", help="Write sample DOCX/XLSX templates")
    tpl.add_argument("--out", default=None, help="Folder (default: assets/templates)")
    tpl.set_defaults(func=cmd_templates)
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except (InvoiceEngineError, ValueError, RuntimeError, OSError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        print(f"Error: {e}")
        return EXIT_ERROR
