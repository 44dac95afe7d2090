"""
Invoice / contract payload builder.

Turns a quote into the line items and totals that the (external) invoice
and contract generators render. Totals always come from
``compute_quote_totals`` so the document can never disagree with the quote
screen.
"""
import logging
from typing import Any, Dict, List, Optional

from app.models.quote_schemas import Quote, TaxRules
from app.services.money import (
    format_currency,
    format_flight_time,
    line_amount,
    quantize,
    round2,
    to_decimal,
)
from app.services.quote_lifecycle import QuoteStateError
from app.services.quote_pricing_engine import compute_quote_totals

logger = logging.getLogger("charter-api.invoice")


def _aircraft_label(quote: Quote, option) -> str:
    if option.label:
        return option.label
    position = next((i for i, o in enumerate(quote.options) if o.id == option.id), 0)
    return f"Option {position + 1}"


def build_invoice_payload(quote: Quote, rules: Optional[TaxRules] = None) -> Dict[str, Any]:
    """
    Invoice basis for the quote's selected option.

    Line types:
        aircraft — one line, never taxable itself (FET is its own tax line)
        service  — one per service, taxable flag preserved
        tax      — one per non-zero tax line (credits included)

    Raises QuoteStateError when the quote has no usable selected option.
    """
    rules = rules or TaxRules()
    option = quote.get_option(quote.selected_option_id)
    if option is None:
        raise QuoteStateError(f"Quote {quote.id} has no selected aircraft option")

    totals = compute_quote_totals(option, quote.services, quote.taxes, rules)
    service_rate_pct = round2(to_decimal(rules.service_tax_rate) * 100)

    lines: List[Dict[str, Any]] = [{
        "type": "aircraft",
        "description": _aircraft_label(quote, option),
        "qty": 1,
        "unit_price": totals.aircraft_subtotal,
        "amount": totals.aircraft_subtotal,
        "taxable": False,
        "tax_rate": 0.0,
        "flight_time": format_flight_time(option.flight_hours),
    }]

    for service in quote.services:
        taxable = service.taxable is not False
        lines.append({
            "type": "service",
            "description": service.name or service.description or "Service",
            "qty": float(to_decimal(service.qty)),
            "unit_price": round2(service.unit_price),
            "amount": line_amount(service.qty, service.unit_price),
            "taxable": taxable,
            "tax_rate": service_rate_pct if taxable else 0.0,
        })

    for tax in totals.tax_lines:
        if quantize(tax.amount) == 0:
            continue
        lines.append({
            "type": "tax",
            "tax_id": tax.id,
            "description": tax.name or "Tax",
            "qty": 1,
            "unit_price": round2(tax.amount),
            "amount": round2(tax.amount),
            "taxable": False,
            "tax_rate": 0.0,
        })

    logger.info(
        "invoice payload built",
        extra={"quote_id": quote.id, "line_count": len(lines)},
    )
    return {
        "quote_id": quote.id,
        "option_id": option.id,
        "lines": lines,
        "subtotal": totals.subtotal,
        "tax_total": totals.tax_total,
        "total": totals.grand_total,
        "display_total": format_currency(totals.grand_total, whole_units=False),
        "totals": totals.model_dump(mode="json"),
    }
