"""
Quote lifecycle rules: status normalisation, edit/publish guards and the
draft -> sent publication transition.

Once a quote is published its totals are the contractual invoice basis, so
callers must check ``ensure_editable`` before changing options or services.
"""
import logging
import secrets
from datetime import datetime, timezone
from typing import Any, List, Optional

from app.config import QUOTE_TOKEN_ALPHABET, QUOTE_TOKEN_LENGTH, QUOTE_TOKEN_PREFIX
from app.models.quote_schemas import Quote, QuoteStatus

logger = logging.getLogger("charter-api.quotes")


class QuoteStateError(ValueError):
    """A quote is not in a state that allows the requested change."""

    def __init__(self, message: str, problems: Optional[List[str]] = None):
        super().__init__(message)
        self.problems: List[str] = problems or [message]


class QuotePublishError(QuoteStateError):
    """Publishing was refused; ``problems`` lists every failed precondition."""


# Legacy workflow statuses still found on older rows
_LEGACY_STATUS_MAP = {
    "pending_response": QuoteStatus.SENT,
    "client_accepted": QuoteStatus.ACCEPTED,
    "availability_confirmed": QuoteStatus.ACCEPTED,
    "pending_payment": QuoteStatus.ACCEPTED,
    "payment_received": QuoteStatus.ACCEPTED,
    "itinerary_created": QuoteStatus.ACCEPTED,
}

_TERMINAL = {
    QuoteStatus.ACCEPTED,
    QuoteStatus.DECLINED,
    QuoteStatus.CANCELLED,
    QuoteStatus.INVOICED,
    QuoteStatus.EXPIRED,
}
_EDITABLE = {QuoteStatus.DRAFT, QuoteStatus.SENT, QuoteStatus.OPENED}


def normalize_status(raw: Any) -> QuoteStatus:
    """Map any stored status (current or legacy) onto QuoteStatus; unknown -> draft."""
    if isinstance(raw, QuoteStatus):
        return raw
    key = str(raw or "").strip().lower()
    if key in _LEGACY_STATUS_MAP:
        return _LEGACY_STATUS_MAP[key]
    try:
        return QuoteStatus(key)
    except ValueError:
        return QuoteStatus.DRAFT


def is_terminal_status(status: Any) -> bool:
    return normalize_status(status) in _TERMINAL


def can_edit_quote(status: Any) -> bool:
    return normalize_status(status) in _EDITABLE


def can_publish_quote(status: Any) -> bool:
    return normalize_status(status) == QuoteStatus.DRAFT


def ensure_editable(quote: Quote) -> None:
    if not can_edit_quote(quote.status):
        raise QuoteStateError(f"Quote {quote.id} is {quote.status.value} and can no longer be edited")


def generate_quote_token() -> str:
    """Shareable read-only token, e.g. ``qt_k3v9x0a1b2c3``."""
    body = "".join(secrets.choice(QUOTE_TOKEN_ALPHABET) for _ in range(QUOTE_TOKEN_LENGTH))
    return QUOTE_TOKEN_PREFIX + body


def select_option(quote: Quote, option_id: str) -> Quote:
    ensure_editable(quote)
    if quote.get_option(option_id) is None:
        raise QuoteStateError(f"Option {option_id} does not belong to quote {quote.id}")
    return quote.model_copy(update={"selected_option_id": option_id})


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def publish_quote(quote: Quote, now: Optional[datetime] = None) -> Quote:
    """
    draft -> sent. Requires an expiration in the future, at least one leg and
    one option, and a valid selected option (the first option is selected
    when none is set). Returns a new Quote carrying a fresh token.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    problems: List[str] = []

    if not can_publish_quote(quote.status):
        problems.append(f"Only draft quotes can be published (status is {quote.status.value})")
    if quote.valid_until is None:
        problems.append("Expiration date is required")
    elif _as_utc(quote.valid_until) <= now:
        problems.append("Expiration date must be in the future")
    if not quote.legs:
        problems.append("At least one trip leg is required")
    if not quote.options:
        problems.append("At least one aircraft option is required")

    selected_id = quote.selected_option_id
    if quote.options:
        if selected_id is None:
            selected_id = quote.options[0].id
        elif quote.get_option(selected_id) is None:
            problems.append(f"Selected option {selected_id} does not exist on this quote")

    if problems:
        logger.info("quote publish refused", extra={"quote_id": quote.id})
        raise QuotePublishError("Quote cannot be published", problems)

    published = quote.model_copy(update={
        "status": QuoteStatus.SENT,
        "selected_option_id": selected_id,
        "published_at": now,
        "token": generate_quote_token(),
    })
    logger.info("quote published", extra={"quote_id": quote.id})
    return published
