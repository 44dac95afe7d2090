"""
QuotePricingEngine — quote totals, system tax lines and option fee rules.

Covers:
  - Aircraft subtotal (stored price_total vs operator cost + commission + fees)
  - Services subtotal and taxable-services subtotal
  - Federal Excise Tax on the aircraft portion only
  - Flat service tax on taxable service lines
  - User-managed tax lines, taken verbatim
  - Explicit recompute of system-managed tax lines on dependency change
  - One-shot FET fee auto-calculation when fees are switched on

Every function is pure and never raises on missing or malformed numbers:
those count as zero. All derived amounts are rounded to cents where they
are produced.
"""

import logging
import math
import uuid
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from app.config import (
    DEFAULT_OPTION_FEES,
    FET_FEE_NAME,
    FET_FEE_RATE,
    FET_TAX_LINE_ID,
    FET_TAX_LINE_NAME,
    SERVICE_TAX_LINE_ID,
    SERVICE_TAX_LINE_NAME,
)
from app.models.quote_schemas import (
    Fee,
    QuoteOption,
    QuoteTotals,
    ServiceLine,
    SubtotalSource,
    TaxLine,
    TaxRules,
)
from app.services.money import line_amount, money_sum, percent_of, quantize, round2, to_decimal
from app.services.perf_monitor import timed

logger = logging.getLogger("charter-api.pricing")

_ZERO = Decimal("0")


# ---------------------------------------------------------------------------
# Subtotals
# ---------------------------------------------------------------------------

def _has_stored_total(value) -> bool:
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, float) and math.isnan(value):
        return False
    return True


def fee_total(option: Optional[QuoteOption]) -> float:
    """Sum of fee amounts, or 0 while fees are disabled on the option."""
    if option is None or not option.fees_enabled:
        return 0.0
    return money_sum(f.amount for f in option.fees)


def derive_aircraft_subtotal(option: Optional[QuoteOption]) -> float:
    """operator cost + commission + enabled fees, ignoring any stored total."""
    if option is None:
        return 0.0
    return round2(
        to_decimal(option.operator_cost)
        + to_decimal(option.commission)
        + to_decimal(fee_total(option))
    )


def resolve_aircraft_subtotal(option: Optional[QuoteOption]) -> Tuple[float, SubtotalSource]:
    """
    Aircraft subtotal with the source that produced it.

    A stored price_total wins whenever it is present (0 included). Stored
    and derived figures can drift apart in existing data; the source tag
    lets callers surface that instead of hiding it.
    """
    if option is not None and _has_stored_total(option.price_total):
        stored = round2(option.price_total)
        derived = derive_aircraft_subtotal(option)
        if stored != derived:
            logger.debug(
                "stored option total differs from derived total",
                extra={"option_id": option.id, "stored": stored, "derived": derived},
            )
        return stored, SubtotalSource.STORED_TOTAL
    return derive_aircraft_subtotal(option), SubtotalSource.DERIVED


def compute_aircraft_subtotal(option: Optional[QuoteOption]) -> float:
    return resolve_aircraft_subtotal(option)[0]


def compute_services_subtotal(services: Iterable[ServiceLine]) -> float:
    """Sum of per-line amounts (each rounded to cents); taxability does not matter here."""
    return money_sum(line_amount(s.qty, s.unit_price) for s in services or [])


def compute_taxable_services_subtotal(services: Iterable[ServiceLine]) -> float:
    """Only lines whose taxable flag is not explicitly False."""
    return money_sum(
        line_amount(s.qty, s.unit_price)
        for s in services or []
        if s.taxable is not False
    )


# ---------------------------------------------------------------------------
# Taxes
# ---------------------------------------------------------------------------

def compute_federal_excise_tax(aircraft_subtotal: float, rules: TaxRules) -> float:
    if not rules.fet_enabled:
        return 0.0
    base = to_decimal(aircraft_subtotal)
    if base <= 0:
        return 0.0
    return percent_of(base, rules.federal_excise_tax_rate)


def compute_service_tax(taxable_services_subtotal: float, rules: TaxRules) -> float:
    if not rules.service_tax_enabled:
        return 0.0
    amount = percent_of(taxable_services_subtotal, rules.service_tax_rate)
    return amount if amount > 0 else 0.0


def user_tax_lines(tax_lines: Iterable[TaxLine]) -> List[TaxLine]:
    return [t for t in tax_lines or [] if not t.is_system_managed]


def recompute_system_tax_lines(
    tax_lines: Sequence[TaxLine],
    aircraft_subtotal: float,
    taxable_services_subtotal: float,
    rules: Optional[TaxRules] = None,
) -> List[TaxLine]:
    """
    Rebuild the system-managed tax lines from current inputs.

    Call whenever the aircraft subtotal or the taxable-services subtotal
    changes. Existing system lines are dropped and at most one FET line and
    one service-tax line are emitted, each under its reserved id. A disabled
    or zero tax produces no line at all. User lines keep order and amounts.
    """
    rules = rules or TaxRules()
    fresh: List[TaxLine] = []

    fet = compute_federal_excise_tax(aircraft_subtotal, rules)
    if fet > 0:
        fresh.append(TaxLine(id=FET_TAX_LINE_ID, name=FET_TAX_LINE_NAME, amount=fet))

    service_tax = compute_service_tax(taxable_services_subtotal, rules)
    if service_tax > 0:
        fresh.append(TaxLine(id=SERVICE_TAX_LINE_ID, name=SERVICE_TAX_LINE_NAME, amount=service_tax))

    return fresh + [t.model_copy() for t in user_tax_lines(tax_lines)]


@timed
def compute_quote_totals(
    selected_option: Optional[QuoteOption],
    services: Optional[Sequence[ServiceLine]] = None,
    user_taxes: Optional[Sequence[TaxLine]] = None,
    rules: Optional[TaxRules] = None,
) -> QuoteTotals:
    """
    Full totals for the selected option of a quote.

    Formula:
        subtotal    = aircraft_subtotal + services_subtotal
        tax_total   = FET(aircraft) + service_tax(taxable services) + user taxes
        grand_total = subtotal + tax_total

    System-managed lines found in ``user_taxes`` are ignored; they are always
    recomputed from the current inputs.
    """
    rules = rules or TaxRules()
    services = list(services or [])
    user_taxes = list(user_taxes or [])

    aircraft_subtotal, source = resolve_aircraft_subtotal(selected_option)
    services_subtotal = compute_services_subtotal(services)
    taxable_subtotal = compute_taxable_services_subtotal(services)
    subtotal = round2(to_decimal(aircraft_subtotal) + to_decimal(services_subtotal))

    fet = compute_federal_excise_tax(aircraft_subtotal, rules)
    service_tax = compute_service_tax(taxable_subtotal, rules)
    others = user_tax_lines(user_taxes)
    other_total = round2(sum((quantize(t.amount) for t in others), _ZERO))

    tax_total = round2(to_decimal(fet) + to_decimal(service_tax) + to_decimal(other_total))
    grand_total = round2(to_decimal(subtotal) + to_decimal(tax_total))

    return QuoteTotals(
        aircraft_subtotal=aircraft_subtotal,
        aircraft_subtotal_source=source,
        services_subtotal=services_subtotal,
        taxable_services_subtotal=taxable_subtotal,
        subtotal=subtotal,
        federal_excise_tax=fet,
        service_tax=service_tax,
        other_taxes_total=other_total,
        tax_total=tax_total,
        grand_total=grand_total,
        tax_lines=recompute_system_tax_lines(user_taxes, aircraft_subtotal, taxable_subtotal, rules),
    )


# ---------------------------------------------------------------------------
# Option fees
# ---------------------------------------------------------------------------

def default_option_fees() -> List[Fee]:
    """Fee set seeded on a new quote option (fees start disabled)."""
    return [
        Fee(id=str(uuid.uuid4()), name=name, amount=amount, is_auto_calculated=auto)
        for name, amount, auto in DEFAULT_OPTION_FEES
    ]


def apply_fet_auto_calc(fees: Sequence[Fee], operator_cost: Optional[float]) -> List[Fee]:
    """
    Recompute the auto-calculated FET fee as 7.5% of operator cost.

    Returns a new list. Fees the user has edited (is_auto_calculated False)
    are left alone; a list without an FET fee comes back unchanged.
    """
    amount = percent_of(operator_cost, FET_FEE_RATE)
    updated: List[Fee] = []
    for fee in fees or []:
        if fee.name == FET_FEE_NAME and fee.is_auto_calculated:
            updated.append(fee.model_copy(update={"amount": amount}))
        else:
            updated.append(fee.model_copy())
    return updated


def set_fees_enabled(option: QuoteOption, enabled: bool) -> QuoteOption:
    """
    Toggle fees on an option.

    The FET auto-calculation fires only on the off -> on transition; later
    operator cost changes do not re-trigger it.
    """
    turning_on = enabled and not option.fees_enabled
    fees = apply_fet_auto_calc(option.fees, option.operator_cost) if turning_on else option.fees
    return option.model_copy(update={"fees_enabled": bool(enabled), "fees": list(fees)})


def edit_fee_amount(fees: Sequence[Fee], fee_id: str, amount: Optional[float]) -> List[Fee]:
    """Manual edit: store the amount and stop auto-calculating that fee."""
    updated: List[Fee] = []
    for fee in fees or []:
        if fee.id == fee_id:
            updated.append(fee.model_copy(update={
                "amount": round2(amount),
                "is_auto_calculated": False,
            }))
        else:
            updated.append(fee.model_copy())
    return updated
