from __future__ import annotations
import os
from decimal import Decimal, InvalidOperation
from pathlib import Path

APP_NAME = "Invoice Variants"

BASE_DIR = Path(__file__).resolve().parent

ASSETS_DIR = BASE_DIR / "assets"

PROFILES_JSON = ASSETS_DIR / "profiles.json"

TEMPLATES_DIR = ASSETS_DIR / "templates"

DEFAULT_CURRENCY = "USD"

def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}") from e
    if value < 1:
        raise ValueError(f"Environment variable {name} must be >= 1, got {value}")
    return value


def _env_decimal(name: str, default: str) -> Decimal:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        raw = default
    try:
        value = Decimal(raw.strip())
    except InvalidOperation as e:
        raise ValueError(f"Environment variable {name} must be a number, got {raw!r}") from e
    if not value.is_finite() or value < 0:
        raise ValueError(f"Environment variable {name} must be a non-negative number, got {raw!r}")
    return value


# Upper bound for numberOfVariants in one batch
MAX_VARIANTS = _env_int("INVOICE_VARIANTS_MAX", 100)

# Upper bound for fluctuationRange, in percent
MAX_FLUCTUATION = _env_decimal("INVOICE_VARIANTS_MAX_FLUCTUATION", "50")

MAX_WORKERS = _env_int("INVOICE_VARIANTS_WORKERS", min(8, (os.cpu_count() or 1) + 4))


# Where to look for the tesseract binary (priority order)
def _tesseract_candidates() -> list:
    candidates = []
    env_cmd = os.getenv("TESSERACT_CMD")
    if env_cmd:
        candidates.append(Path(env_cmd))
    candidates += [
        BASE_DIR / "tesseract" / "tesseract.exe",
        Path("/usr/bin/tesseract"),
        Path("/usr/local/bin/tesseract"),
        Path("C:/Program Files/Tesseract-OCR/tesseract.exe"),
    ]
    return candidates

TESSERACT_CANDIDATES = _tesseract_candidates()


# Default output folder (created on first generation)
def default_output_dir() -> Path:
    preferred = Path(os.getenv("INVOICE_VARIANTS_OUTPUT", str(Path.home() / "Documents" / "Invoice_Variants_Output")))
    try:
        preferred.mkdir(parents=True, exist_ok=True)
        return preferred
    except OSError:
        fallback = Path.cwd() / "output"
        fallback.mkdir(parents=True, exist_ok=True)
        return fallback