from __future__ import annotations

from typing import List, Optional


class InvoiceEngineError(Exception):
    """Base error of the variant engine; pinpoints the failing variant/item when known."""

    def __init__(self, message: str, variant_index: Optional[int] = None, item_index: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.variant_index = variant_index
        self.item_index = item_index

    def __str__(self) -> str:
        where = []
        if self.variant_index is not None:
            where.append(f"variant {self.variant_index}")
        if self.item_index is not None:
            where.append(f"item {self.item_index}")
        if where:
            return f"{self.message} ({', '.join(where)})"
        return self.message


class ValidationError(InvoiceEngineError, ValueError):
    """Malformed batch request. Raised before any work is done."""


class ComputationError(InvoiceEngineError, ArithmeticError):
    """A price came out negative or non-finite after all adjustments."""


class RenderError(InvoiceEngineError, RuntimeError):
    """The document renderer failed for one variant."""

    def __init__(self, message: str, variant_index: Optional[int] = None, item_index: Optional[int] = None):
        super().__init__(message, variant_index, item_index)
        # filled by the pipeline under the abort policy
        self.failures: List = []


class MergeError(InvoiceEngineError, RuntimeError):
    """Combining the rendered documents into one bundle failed."""


class BatchCancelledError(InvoiceEngineError):
    """The batch was cancelled before every variant was dispatched."""

    def __init__(self, message: str, failures: Optional[List] = None):
        super().__init__(message)
        self.failures = failures or []
