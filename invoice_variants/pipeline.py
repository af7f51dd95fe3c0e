from __future__ import annotations

import logging
import random
import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union
from uuid import uuid4

from invoice_variants.assembler import allocate_invoice_numbers, assemble, suffix_width
from invoice_variants.config import MAX_FLUCTUATION, MAX_VARIANTS, MAX_WORKERS, default_output_dir
from invoice_variants.errors import (
    BatchCancelledError,
    ComputationError,
    InvoiceEngineError,
    MergeError,
    RenderError,
    ValidationError,
)
from invoice_variants.merge import merge_documents
from invoice_variants.models import (
    FailurePolicy,
    GeneratedInvoice,
    GenerateVariantsPayload,
    GenerationResult,
    PipelineState,
    PricingRule,
    VariantFailure,
)
from invoice_variants.payload import validate_payload
from invoice_variants.pricing import apply_pricing
from invoice_variants.profiles import assign
from invoice_variants.render.common import safe_file_stem

logger = logging.getLogger(__name__)

Renderer = Callable[[GeneratedInvoice], Union[str, Path, bytes]]
Merger = Callable[[Sequence[Path], Path], Union[str, Path]]


class _NotDispatched(InvoiceEngineError):
    pass


@dataclass
class _Job:
    """Everything one generate() call shares with its workers. Read-only once dispatched."""

    payload: GenerateVariantsPayload
    rule: PricingRule
    numbers: List[str]
    seeds: List[int]
    issue_date: date
    number_base: str
    cancel_event: Optional[threading.Event]
    halt: threading.Event = field(default_factory=threading.Event)
    state: PipelineState = PipelineState.VALIDATING

    def stopped(self) -> bool:
        return self.halt.is_set() or (self.cancel_event is not None and self.cancel_event.is_set())


class GenerateVariantsPipeline:
    """
    Turns one GenerateVariantsPayload into N priced, rendered and merged invoices.

    The failure policy has no default: callers decide whether one failed render
    aborts the batch (FailurePolicy.ABORT) or is skipped (FailurePolicy.SKIP).
    """

    def __init__(
        self,
        *,
        failure_policy: FailurePolicy,
        renderer: Optional[Renderer] = None,
        merger: Optional[Merger] = merge_documents,
        output_dir: Optional[Union[str, Path]] = None,
        max_workers: Optional[int] = None,
        max_variants: int = MAX_VARIANTS,
        max_fluctuation: Decimal = MAX_FLUCTUATION,
    ):
        self.failure_policy = FailurePolicy(failure_policy)
        self.renderer = renderer
        self.merger = merger
        self.output_dir = Path(output_dir) if output_dir else None
        self.max_workers = max_workers or MAX_WORKERS
        self.max_variants = max_variants
        self.max_fluctuation = max_fluctuation

    # ---------------------------
    # public entry point
    # ---------------------------

    def generate(
        self,
        payload: GenerateVariantsPayload,
        *,
        rng: Optional[random.Random] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> GenerationResult:
        logger.info(f"Batch: {PipelineState.VALIDATING.value}")
        try:
            validate_payload(payload, self.max_variants, self.max_fluctuation)
        except ValidationError as e:
            logger.error(f"Batch: {PipelineState.FAILED.value}, invalid request: {e}")
            raise

        seed = None
        if rng is None:
            seed = payload.seed if payload.seed is not None else random.SystemRandom().randrange(2 ** 63)
            rng = random.Random(seed)

        job = self._prepare(payload, rng, cancel_event)
        failures: List[VariantFailure] = []

        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="variant") as pool:
            self._enter(job, PipelineState.GENERATING)
            invoices = self._generate_all(pool, job, failures)

            if self.renderer is not None:
                self._enter(job, PipelineState.RENDERING)
                invoices = self._render_all(pool, job, invoices, failures)

        failures.sort(key=lambda f: f.variant_index if f.variant_index is not None else -1)
        if failures and self.failure_policy is FailurePolicy.ABORT:
            self._abort(job, failures)

        ordered = [invoices[i] for i in sorted(invoices)]
        merged_path = None
        if self.renderer is not None and self.merger is not None and ordered:
            self._enter(job, PipelineState.MERGING)
            merged_path = self._merge(job, ordered, failures)

        final = PipelineState.PARTIALLY_COMPLETED if failures else PipelineState.COMPLETED
        self._enter(job, final)
        return GenerationResult(
            invoices=ordered,
            state=final,
            merged_document_path=merged_path,
            failures=failures,
            seed=seed,
        )

    # ---------------------------
    # steps
    # ---------------------------

    def _prepare(self, payload: GenerateVariantsPayload, rng: random.Random, cancel_event) -> _Job:
        n = payload.number_of_variants
        meta = payload.invoice_meta
        base = meta.invoice_number or f"INV-{uuid4().hex[:8].upper()}"
        # numbers and per-variant seeds are fixed before fan-out; workers share nothing mutable
        return _Job(
            payload=payload,
            rule=payload.pricing_rule,
            numbers=allocate_invoice_numbers(base, n, suffix_width(self.max_variants)),
            seeds=[rng.getrandbits(64) for _ in range(n)],
            issue_date=meta.issue_date or date.today(),
            number_base=base,
            cancel_event=cancel_event,
        )

    def _enter(self, job: _Job, state: PipelineState) -> None:
        job.state = state
        logger.info(f"Batch {job.number_base}: {state.value}")

    def _build_variant(self, job: _Job, index: int) -> GeneratedInvoice:
        if job.stopped():
            raise _NotDispatched("Cancelled before generation", variant_index=index)

        payload = job.payload
        items = apply_pricing(payload.base_invoice.items, job.rule, random.Random(job.seeds[index]), variant_index=index)
        assignment = assign(index, payload.buyer_profiles, payload.logos)
        return assemble(
            index,
            items,
            payload.invoice_meta.company_profile,
            assignment.buyer_profile,
            payload.invoice_meta,
            invoice_number=job.numbers[index],
            issue_date=job.issue_date,
            logo=assignment.logo,
        )

    def _generate_all(self, pool: ThreadPoolExecutor, job: _Job, failures: List[VariantFailure]) -> Dict[int, GeneratedInvoice]:
        futures: Dict[Future, int] = {
            pool.submit(self._build_variant, job, i): i for i in range(job.payload.number_of_variants)
        }
        invoices: Dict[int, GeneratedInvoice] = {}
        errors: List[ComputationError] = []

        for fut in as_completed(futures):
            index = futures[fut]
            try:
                invoices[index] = fut.result()
            except ComputationError as e:
                job.halt.set()
                errors.append(e)
            except _NotDispatched as e:
                failures.append(VariantFailure(index, "cancelled", e))

        if errors:
            first = min(errors, key=lambda e: (e.variant_index, e.item_index or 0))
            logger.error(f"Batch {job.number_base}: {PipelineState.FAILED.value}, {first}")
            raise first
        return invoices

    def _render_one(self, job: _Job, invoice: GeneratedInvoice) -> GeneratedInvoice:
        index = invoice.variant_index
        if job.stopped():
            raise _NotDispatched("Cancelled before rendering", variant_index=index)
        try:
            output = self.renderer(invoice)
            path = self._store_output(output, invoice)
        except Exception as e:
            raise RenderError(f"Rendering {invoice.invoice_number} failed: {e}", variant_index=index) from e
        return replace(invoice, document_path=path)

    def _render_all(
        self,
        pool: ThreadPoolExecutor,
        job: _Job,
        invoices: Dict[int, GeneratedInvoice],
        failures: List[VariantFailure],
    ) -> Dict[int, GeneratedInvoice]:
        futures: Dict[Future, int] = {pool.submit(self._render_one, job, inv): i for i, inv in invoices.items()}
        rendered: Dict[int, GeneratedInvoice] = {}

        # merge must not start before every render has finished, so all futures are drained here
        for fut in as_completed(futures):
            index = futures[fut]
            try:
                rendered[index] = fut.result()
            except RenderError as e:
                logger.error(f"Batch {job.number_base}: {e}")
                failures.append(VariantFailure(index, "render", e))
                if self.failure_policy is FailurePolicy.ABORT:
                    job.halt.set()
            except _NotDispatched as e:
                failures.append(VariantFailure(index, "cancelled", e))
        return rendered

    def _store_output(self, output, invoice: GeneratedInvoice) -> Path:
        if isinstance(output, (bytes, bytearray)):
            out_dir = self._output_dir()
            out_dir.mkdir(parents=True, exist_ok=True)
            path = out_dir / f"{safe_file_stem(invoice.invoice_number)}{getattr(self.renderer, 'suffix', '.pdf')}"
            path.write_bytes(output)
            return path
        return Path(output)

    def _output_dir(self) -> Path:
        return self.output_dir or getattr(self.renderer, "output_dir", None) or default_output_dir()

    def _abort(self, job: _Job, failures: List[VariantFailure]) -> None:
        render_failures = [f for f in failures if f.stage == "render"]
        self._enter(job, PipelineState.FAILED)
        if render_failures:
            error = render_failures[0].error
            error.failures = failures
            raise error
        raise BatchCancelledError(
            f"Batch {job.number_base} cancelled: {len(failures)} variant(s) not produced", failures=failures
        )

    def _merge(self, job: _Job, invoices: List[GeneratedInvoice], failures: List[VariantFailure]) -> Optional[Path]:
        paths = [inv.document_path for inv in invoices]
        bundle = self._output_dir() / f"{safe_file_stem(job.number_base)}_bundle{paths[0].suffix}"
        try:
            merged = Path(self.merger(paths, bundle))
        except Exception as e:
            error = e if isinstance(e, MergeError) else MergeError(f"Merging failed: {e}")
            logger.error(f"Batch {job.number_base}: {error}")
            failures.append(VariantFailure(None, "merge", error))
            return None
        logger.info(f"Batch {job.number_base}: bundle saved to {merged}")
        return merged
