"""
Quote pricing routes

POST /api/pricing/quote-totals          — subtotal / taxes / grand total for an option
POST /api/pricing/tax-lines/recompute   — rebuild system-managed tax lines
POST /api/pricing/fees/auto-calc        — FET fee auto-calculation
POST /api/pricing/fees/toggle           — enable/disable fees on an option
POST /api/pricing/fees/edit             — manual fee edit (stops auto-calculation)
GET  /api/pricing/fees/defaults         — fee set for a new option
"""
from typing import List, Optional

from fastapi import APIRouter
from pydantic import BaseModel

from app.models.quote_schemas import (
    Fee,
    QuoteOption,
    QuoteTotals,
    ServiceLine,
    TaxLine,
    TaxRules,
)
from app.services.quote_pricing_engine import (
    apply_fet_auto_calc,
    compute_aircraft_subtotal,
    compute_quote_totals,
    compute_taxable_services_subtotal,
    default_option_fees,
    edit_fee_amount,
    recompute_system_tax_lines,
    set_fees_enabled,
)

router = APIRouter(prefix="/api/pricing", tags=["Quote Pricing"])


# ── Pydantic Models ─────────────────────────────────────────────────────────

class QuoteTotalsRequest(BaseModel):
    option: Optional[QuoteOption] = None
    services: List[ServiceLine] = []
    taxes: List[TaxLine] = []
    rules: TaxRules = TaxRules()


class FeeAutoCalcRequest(BaseModel):
    fees: List[Fee] = []
    operator_cost: Optional[float] = 0.0


class FeeToggleRequest(BaseModel):
    option: QuoteOption
    enabled: bool


class FeeEditRequest(BaseModel):
    fees: List[Fee]
    fee_id: str
    amount: Optional[float] = 0.0


# ── Routes ───────────────────────────────────────────────────────────────────

@router.post("/quote-totals", response_model=QuoteTotals)
async def quote_totals(req: QuoteTotalsRequest):
    """Totals for the selected option. An absent option prices services only."""
    return compute_quote_totals(req.option, req.services, req.taxes, req.rules)


@router.post("/tax-lines/recompute")
async def recompute_tax_lines(req: QuoteTotalsRequest):
    lines = recompute_system_tax_lines(
        req.taxes,
        compute_aircraft_subtotal(req.option),
        compute_taxable_services_subtotal(req.services),
        req.rules,
    )
    return {"tax_lines": lines}


@router.post("/fees/auto-calc")
async def fees_auto_calc(req: FeeAutoCalcRequest):
    return {"fees": apply_fet_auto_calc(req.fees, req.operator_cost)}


@router.post("/fees/toggle", response_model=QuoteOption)
async def fees_toggle(req: FeeToggleRequest):
    return set_fees_enabled(req.option, req.enabled)


@router.post("/fees/edit")
async def fees_edit(req: FeeEditRequest):
    return {"fees": edit_fee_amount(req.fees, req.fee_id, req.amount)}


@router.get("/fees/defaults")
async def fees_defaults():
    return {"fees": default_option_fees()}
