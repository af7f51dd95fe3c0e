from decimal import Decimal

import pytest

from invoice_variants.config import _env_decimal, _env_int


def test_env_int(monkeypatch):
    monkeypatch.delenv("INVOICE_VARIANTS_MAX", raising=False)
    assert _env_int("INVOICE_VARIANTS_MAX", 100) == 100

    monkeypatch.setenv("INVOICE_VARIANTS_MAX", "25")
    assert _env_int("INVOICE_VARIANTS_MAX", 100) == 25

    monkeypatch.setenv("INVOICE_VARIANTS_MAX", "lots")
    with pytest.raises(ValueError, match="INVOICE_VARIANTS_MAX"):
        _env_int("INVOICE_VARIANTS_MAX", 100)

    monkeypatch.setenv("INVOICE_VARIANTS_WORKERS", "0")
    with pytest.raises(ValueError, match="INVOICE_VARIANTS_WORKERS"):
        _env_int("INVOICE_VARIANTS_WORKERS", 4)


def test_env_decimal(monkeypatch):
    monkeypatch.delenv("INVOICE_VARIANTS_MAX_FLUCTUATION", raising=False)
    assert _env_decimal("INVOICE_VARIANTS_MAX_FLUCTUATION", "50") == Decimal("50")

    monkeypatch.setenv("INVOICE_VARIANTS_MAX_FLUCTUATION", "12.5")
    assert _env_decimal("INVOICE_VARIANTS_MAX_FLUCTUATION", "50") == Decimal("12.5")

    for bad in ("fifty", "-3", "NaN"):
        monkeypatch.setenv("INVOICE_VARIANTS_MAX_FLUCTUATION", bad)
        with pytest.raises(ValueError, match="INVOICE_VARIANTS_MAX_FLUCTUATION"):
            _env_decimal("INVOICE_VARIANTS_MAX_FLUCTUATION", "50")
