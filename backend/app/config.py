"""
Pricing configuration — single source of truth for tax rates, fee names,
reserved tax-line identifiers and quote token format.

Import from here in all engines and routes rather than hardcoding values.
"""
from __future__ import annotations

import os


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# ── Tax rates ─────────────────────────────────────────────────────────────────

# Federal Excise Tax on the aircraft-charter portion only (never on services)
FEDERAL_EXCISE_TAX_RATE: float = _env_float("FEDERAL_EXCISE_TAX_RATE", 0.075)

# Flat tax on taxable service line items
SERVICE_TAX_RATE: float = _env_float("SERVICE_TAX_RATE", 0.075)

# Rate used by the one-shot FET fee auto-calculation (operator cost only)
FET_FEE_RATE: float = 0.075


# ── Fees ──────────────────────────────────────────────────────────────────────

FET_FEE_NAME: str = "Federal Excise Tax (FET)"

# (name, amount, is_auto_calculated) seeded on every new quote option
DEFAULT_OPTION_FEES: list[tuple[str, float, bool]] = [
    ("US Domestic Segment Fee", 4.30, False),
    ("US International Head Tax", 19.10, False),
    (FET_FEE_NAME, 0.00, True),
]


# ── Tax lines ─────────────────────────────────────────────────────────────────

# Lines whose id starts with this prefix are recomputed, never user-edited
SYSTEM_TAX_PREFIX: str = "system:"
FET_TAX_LINE_ID: str = SYSTEM_TAX_PREFIX + "fet"
SERVICE_TAX_LINE_ID: str = SYSTEM_TAX_PREFIX + "service-tax"

FET_TAX_LINE_NAME: str = "Federal Excise Tax (7.5%)"
SERVICE_TAX_LINE_NAME: str = "Service Tax (7.5%)"


# ── Quotes ────────────────────────────────────────────────────────────────────

QUOTE_TOKEN_PREFIX: str = "qt_"
QUOTE_TOKEN_LENGTH: int = 12
QUOTE_TOKEN_ALPHABET: str = "abcdefghijklmnopqrstuvwxyz0123456789"

MAX_PASSENGERS_PER_LEG: int = 50


# ── Display ───────────────────────────────────────────────────────────────────

CURRENCY: str = os.getenv("CURRENCY", "USD")

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "CAD": "CA$",
}

UNKNOWN_SPEC_LABEL: str = "Unknown"
