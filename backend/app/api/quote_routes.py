"""
Quote lifecycle routes

POST /api/quotes/publish            — draft -> sent, issues a shareable token
POST /api/quotes/select-option      — choose the option that will be invoiced
POST /api/quotes/invoice-preview    — invoice / contract line items and totals
POST /api/quotes/status             — normalise a stored status and report guards
"""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from app.models.quote_schemas import Quote, TaxRules
from app.services.invoice_engine import build_invoice_payload
from app.services.quote_lifecycle import (
    QuotePublishError,
    QuoteStateError,
    can_edit_quote,
    can_publish_quote,
    is_terminal_status,
    normalize_status,
    publish_quote,
    select_option,
)

router = APIRouter(prefix="/api/quotes", tags=["Quotes"])
logger = logging.getLogger("charter-api.quote-routes")


# ── Pydantic Models ─────────────────────────────────────────────────────────

class PublishRequest(BaseModel):
    quote: Quote


class SelectOptionRequest(BaseModel):
    quote: Quote
    option_id: str


class InvoicePreviewRequest(BaseModel):
    quote: Quote
    rules: TaxRules = TaxRules()


class StatusRequest(BaseModel):
    status: Optional[str] = None


# ── Routes ───────────────────────────────────────────────────────────────────

@router.post("/publish", response_model=Quote)
async def publish(req: PublishRequest):
    try:
        return publish_quote(req.quote)
    except QuotePublishError as e:
        raise HTTPException(status_code=422, detail={"message": str(e), "problems": e.problems})


@router.post("/select-option", response_model=Quote)
async def choose_option(req: SelectOptionRequest):
    try:
        return select_option(req.quote, req.option_id)
    except QuoteStateError as e:
        status_code = 409 if not can_edit_quote(req.quote.status) else 422
        logger.info("option selection refused", extra={"quote_id": req.quote.id, "option_id": req.option_id})
        raise HTTPException(status_code=status_code, detail={"message": str(e), "problems": e.problems})


@router.post("/invoice-preview")
async def invoice_preview(req: InvoicePreviewRequest):
    try:
        return build_invoice_payload(req.quote, req.rules)
    except QuoteStateError as e:
        logger.info("invoice preview refused", extra={"quote_id": req.quote.id})
        raise HTTPException(status_code=422, detail={"message": str(e), "problems": e.problems})


@router.post("/status")
async def quote_status(req: StatusRequest):
    status = normalize_status(req.status)
    return {
        "status": status.value,
        "is_terminal": is_terminal_status(status),
        "can_edit": can_edit_quote(status),
        "can_publish": can_publish_quote(status),
    }
